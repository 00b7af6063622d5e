"""
DeptDesk - Expense Submissions & HR Approval
Any department submits; HR approves or rejects once. Decided expenses are final.
"""
import math
from datetime import date, datetime

from deptdesk.config import EXPENSE_CATEGORIES, DEFAULT_EXPENSE_CATEGORY
from deptdesk.db import find_doc, new_id, now_iso
from deptdesk.errors import NotFoundError, ValidationError

DECISION_STATUSES = ("approved", "rejected")


def _parse_amount(amount) -> float:
    if amount is None or amount == "":
        raise ValidationError("Description and amount are required")
    if isinstance(amount, bool):
        raise ValidationError("Amount must be a number")
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a number")
    if not math.isfinite(value):
        raise ValidationError("Amount must be a number")
    if value < 0:
        raise ValidationError("Amount cannot be negative")
    return value


def _check_date(value) -> str:
    if not value:
        return date.today().isoformat()
    try:
        datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError("Date must be an ISO-8601 date")
    return str(value)


def submit_expense(db: dict, creator: dict, description: str, amount,
                   category: str = None, expense_date: str = None) -> dict:
    if not description:
        raise ValidationError("Description and amount are required")
    value = _parse_amount(amount)
    category = category or DEFAULT_EXPENSE_CATEGORY
    if category not in EXPENSE_CATEGORIES:
        raise ValidationError(f"Invalid category. Must be one of: {EXPENSE_CATEGORIES}")

    now = now_iso()
    expense = {
        "id": new_id(),
        "description": description.strip(),
        "amount": value,
        "category": category,
        "date": _check_date(expense_date),
        "createdBy": creator["name"],
        "createdByDepartment": creator["department"],
        "createdByUserId": creator["id"],
        "status": "pending",
        "approvedBy": None,
        "approvedByUserId": None,
        "approvalDate": None,
        "hrNotes": None,
        "createdAt": now,
        "updatedAt": now,
    }
    db["expenses"].append(expense)
    return expense


def approve_expense(db: dict, expense_id: str, status: str, approver: dict,
                    hr_notes: str = None) -> dict:
    """Record HR's decision on a pending expense."""
    expense = find_doc(db, "expenses", expense_id)
    if not expense:
        raise NotFoundError("Expense not found")
    if status not in DECISION_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {list(DECISION_STATUSES)}")
    if expense["status"] != "pending":
        raise ValidationError(f"Expense already {expense['status']}")

    now = now_iso()
    expense.update({
        "status": status,
        "approvedBy": approver["name"],
        "approvedByUserId": approver["id"],
        "approvalDate": now,
        "hrNotes": hr_notes or None,
        "updatedAt": now,
    })
    return expense


def list_expenses(db: dict) -> list:
    return sorted(db["expenses"], key=lambda e: e["createdAt"], reverse=True)


def list_pending_expenses(db: dict) -> list:
    return [e for e in list_expenses(db) if e["status"] == "pending"]
