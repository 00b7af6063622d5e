"""
DeptDesk - Dashboard Analytics
Aggregate counts across users, issues and expenses.
"""
from deptdesk.config import ISSUE_STATUSES, EXPENSE_STATUSES


def _count_by(docs, key: str, seed=()) -> dict:
    counts = {k: 0 for k in seed}
    for d in docs:
        value = d.get(key) or "Unassigned"
        counts[value] = counts.get(value, 0) + 1
    return counts


def summary(db: dict) -> dict:
    issues = db["issues"]
    expenses = db["expenses"]
    routed = [i for i in issues if i.get("routedToDepartment")]

    return {
        "totalUsers": len(db["users"]),
        "totalIssues": len(issues),
        "totalExpenses": len(expenses),
        "pendingIssues": sum(1 for i in issues if i["status"] == "pending"),
        "totalExpenseAmount": round(sum(float(e.get("amount") or 0) for e in expenses), 2),
        "approvedExpenseAmount": round(sum(float(e.get("amount") or 0)
                                           for e in expenses if e["status"] == "approved"), 2),
        "issuesByStatus": _count_by(issues, "status", ISSUE_STATUSES),
        "issuesByPriority": _count_by(issues, "priority"),
        "issuesByDepartment": _count_by(routed, "routedToDepartment"),
        "expensesByStatus": _count_by(expenses, "status", EXPENSE_STATUSES),
    }
