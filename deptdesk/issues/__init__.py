"""
DeptDesk - Issue Store & Lifecycle

Issue Lifecycle:
  pending -> routed -> working -> resolved -> closed

  Shortcuts and backward moves:
    pending  -> working, resolved
    resolved -> working   (reopen)
    working  -> pending   (HR only)

Every write bumps updatedAt. hrNotes is append-only: each note becomes a new
timestamped line. Routing fields are written by deptdesk.routing only.
"""
from deptdesk.config import (
    ISSUE_CATEGORIES, ISSUE_PRIORITIES, ISSUE_STATUSES,
    DEFAULT_ISSUE_CATEGORY, DEFAULT_ISSUE_PRIORITY, DEPARTMENTS, HR_DEPARTMENT,
)
from deptdesk.db import find_doc, new_id, now_iso
from deptdesk.errors import AuthorizationError, NotFoundError, ValidationError

# ============================================================
# STATUS TRANSITIONS
# ============================================================
ALLOWED_TRANSITIONS = {
    "pending":  ["routed", "working", "resolved"],
    "routed":   ["working"],
    "working":  ["resolved", "pending"],
    "resolved": ["closed", "working"],  # Can reopen
    "closed":   [],  # Terminal
}

# Transitions only HR may perform
HR_ONLY_TRANSITIONS = {("working", "pending")}

# Department queues only show work that has left HR's hands
DEPARTMENT_QUEUE_STATUSES = ("routed", "working", "resolved")


def can_transition(current: str, new_status: str) -> bool:
    return new_status in ALLOWED_TRANSITIONS.get(current, [])


def check_transition(issue: dict, new_status: str, actor: dict = None):
    current = issue["status"]
    if new_status not in ISSUE_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {ISSUE_STATUSES}")
    if not can_transition(current, new_status):
        raise ValidationError(
            f"Cannot transition from '{current}' to '{new_status}'. "
            f"Allowed: {ALLOWED_TRANSITIONS.get(current, [])}")
    if (current, new_status) in HR_ONLY_TRANSITIONS and (actor or {}).get("department") != HR_DEPARTMENT:
        raise AuthorizationError(f"Only HR users can move an issue from {current} to {new_status}")


# ============================================================
# NOTES
# ============================================================
def append_hr_note(issue: dict, text: str, at: str = None) -> dict:
    line = f"[{at or now_iso()}] {text}"
    existing = issue.get("hrNotes") or ""
    issue["hrNotes"] = f"{existing}\n{line}" if existing else line
    return issue


# ============================================================
# ISSUE CREATION
# ============================================================
def create_issue(db: dict, reporter: dict, title: str, description: str,
                 category: str = None, priority: str = None,
                 reported_by_department: str = None, hr_owner: dict = None) -> dict:
    """Create a pending issue. hr_owner, when given, is the HR user whose team
    covers the reporter."""
    title = (title or "").strip()
    if not title or not description:
        raise ValidationError("Title and description are required")

    category = category or DEFAULT_ISSUE_CATEGORY
    priority = priority or DEFAULT_ISSUE_PRIORITY
    department = reported_by_department or reporter["department"]
    if category not in ISSUE_CATEGORIES:
        raise ValidationError(f"Invalid category. Must be one of: {ISSUE_CATEGORIES}")
    if priority not in ISSUE_PRIORITIES:
        raise ValidationError(f"Invalid priority. Must be one of: {ISSUE_PRIORITIES}")
    if department not in DEPARTMENTS:
        raise ValidationError(f"Invalid department. Must be one of: {DEPARTMENTS}")

    now = now_iso()
    issue = {
        "id": new_id(),
        "title": title,
        "description": description,
        "reportedBy": reporter["name"],
        "reportedByDepartment": department,
        "reportedByUserId": reporter["id"],
        "category": category,
        "priority": priority,
        "status": "pending",
        "assignedToHR": hr_owner["id"] if hr_owner else None,
        "assignedToHRName": hr_owner["name"] if hr_owner else None,
        "routedToDepartment": None,
        "assignedToDepartmentUser": None,
        "assignedToDepartmentUserName": None,
        "hrNotes": "",
        "resolutionNotes": "",
        "autoRouted": False,
        "createdAt": now,
        "updatedAt": now,
    }
    db["issues"].append(issue)
    return issue


# ============================================================
# ISSUE UPDATES
# ============================================================
def get_issue(db: dict, issue_id: str) -> dict:
    issue = find_doc(db, "issues", issue_id)
    if not issue:
        raise NotFoundError("Issue not found")
    return issue


def update_issue(db: dict, issue_id: str, changes: dict, actor: dict) -> dict:
    """Apply a status / priority / notes update from a dashboard."""
    issue = get_issue(db, issue_id)

    status = changes.get("status")
    if status and status != issue["status"]:
        if status == "routed":
            raise ValidationError("Use route-to-department to route an issue")
        check_transition(issue, status, actor)

    priority = changes.get("priority")
    if priority and priority not in ISSUE_PRIORITIES:
        raise ValidationError(f"Invalid priority. Must be one of: {ISSUE_PRIORITIES}")

    now = now_iso()
    if status and status != issue["status"]:
        issue["status"] = status
    if priority:
        issue["priority"] = priority
    if changes.get("hrNotes"):
        append_hr_note(issue, f"{actor['name']}: {changes['hrNotes']}", at=now)
    if changes.get("resolutionNotes") is not None:
        issue["resolutionNotes"] = changes["resolutionNotes"]
    issue["updatedAt"] = now
    return issue


# ============================================================
# LISTINGS
# ============================================================
def _newest_first(issues) -> list:
    return sorted(issues, key=lambda i: i["createdAt"], reverse=True)


def list_issues(db: dict) -> list:
    return _newest_first(db["issues"])


def list_pending_issues(db: dict) -> list:
    """Pending issues in store order."""
    return [i for i in db["issues"] if i["status"] == "pending"]


def list_user_issues(db: dict, username: str) -> list:
    return _newest_first(i for i in db["issues"] if i["reportedBy"] == username)


def list_department_issues(db: dict, department: str) -> list:
    return _newest_first(i for i in db["issues"]
                         if i.get("routedToDepartment") == department
                         and i["status"] in DEPARTMENT_QUEUE_STATUSES)
