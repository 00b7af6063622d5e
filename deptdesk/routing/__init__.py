"""
DeptDesk - Issue Routing Engine

Two independent assignment channels:
  1. Creation-time: an issue filed by a member of an HR user's team is stamped
     with that HR user (assignedToHR / assignedToHRName).
  2. Department routing: category -> department via the policy table, then an
     assignee picked from the department's users by the named assignee policy.
     Manual (HR chooses department and optionally the person) or batch
     auto-route over every pending issue.

The two channels are never reconciled; both sets of fields are kept.

All mutating functions expect to run inside deptdesk.db.transaction() so the
read-decide-write sequence is atomic. Auto-route additionally applies each
update only while the issue is still pending.
"""
from deptdesk.config import DEPARTMENTS, HR_DEPARTMENT
from deptdesk.db import now_iso, update_if
from deptdesk.directory import get_user, list_department_users, public_user
from deptdesk.errors import ValidationError
from deptdesk.issues import append_hr_note, create_issue, get_issue, list_pending_issues
from deptdesk.policy import ASSIGNEE_POLICIES, get_policy
from deptdesk.teams import find_team_for_member

# Statuses an issue can be (re)routed from
ROUTABLE_STATUSES = ("pending", "routed")


# ============================================================
# DECISIONS
# ============================================================
def route_category(category: str, rules: dict = None) -> str:
    """Target department for an issue category. Unmapped categories go to the
    policy's default department (Tech)."""
    policy = get_policy()
    table = rules if rules is not None else policy["routing_rules"]
    return table.get(category) or policy["default_department"]


def pick_assignee(candidates: list, policy_name: str = None):
    name = policy_name or get_policy()["assignee_policy"]
    return ASSIGNEE_POLICIES[name](candidates)


def suggestion_confidence(category: str) -> str:
    return "high" if category and category != "other" else "medium"


# ============================================================
# CREATION-TIME PRE-ASSIGNMENT
# ============================================================
def pre_assign_hr(db: dict, reporter: dict) -> dict:
    """HR user whose team covers the reporter, if any. HR reporters are never
    pre-assigned."""
    if reporter["department"] == HR_DEPARTMENT:
        return None
    return find_team_for_member(db, reporter["id"])


def file_issue(db: dict, reporter: dict, title: str, description: str,
               category: str = None, priority: str = None,
               reported_by_department: str = None) -> dict:
    hr_owner = pre_assign_hr(db, reporter)
    issue = create_issue(db, reporter, title, description, category, priority,
                         reported_by_department=reported_by_department, hr_owner=hr_owner)
    if hr_owner:
        print(f"[Routing] Issue {issue['id']} pre-assigned to HR {hr_owner['name']}")
    return issue


# ============================================================
# MANUAL ROUTING
# ============================================================
def _routing_fields(department: str, assignee: dict, auto: bool, at: str) -> dict:
    return {
        "status": "routed",
        "routedToDepartment": department,
        "assignedToDepartmentUser": assignee["id"],
        "assignedToDepartmentUserName": assignee["name"],
        "autoRouted": auto,
        "updatedAt": at,
    }


def route_issue(db: dict, issue_id: str, department: str, actor: dict,
                assigned_user_id: str = None) -> dict:
    """Route one issue to a department, to a named user or the policy's pick."""
    issue = get_issue(db, issue_id)
    if department not in DEPARTMENTS:
        raise ValidationError(f"Invalid department. Must be one of: {DEPARTMENTS}")
    if issue["status"] not in ROUTABLE_STATUSES:
        raise ValidationError(f"Cannot route an issue in '{issue['status']}' status")

    if assigned_user_id:
        assignee = get_user(db, assigned_user_id)
        if not assignee or assignee["department"] != department:
            raise ValidationError("Invalid user for the target department")
    else:
        assignee = pick_assignee(list_department_users(db, department))
        if not assignee:
            raise ValidationError(f"No users found in {department} department")

    now = now_iso()
    issue.update(_routing_fields(department, assignee, auto=False, at=now))
    append_hr_note(issue, f"Routed to {department} by {actor['name']}. Assigned to: {assignee['name']}", at=now)
    print(f"[Routing] Issue {issue['id']} routed to {department} ({assignee['name']}) by {actor['name']}")
    return issue


# ============================================================
# BATCH AUTO-ROUTE
# ============================================================
def auto_route(db: dict, rules: dict = None) -> dict:
    """Route every pending issue by category. Issues whose target department
    has no users stay pending and are counted as skipped."""
    routed, skipped = [], 0

    for issue in list_pending_issues(db):
        department = route_category(issue["category"], rules)
        assignee = pick_assignee(list_department_users(db, department))
        if not assignee:
            skipped += 1
            continue

        now = now_iso()
        updated = update_if(db, "issues", issue["id"], {"status": "pending"},
                            _routing_fields(department, assignee, auto=True, at=now))
        if updated is None:
            # Status moved off pending after listing
            skipped += 1
            continue
        append_hr_note(updated, f"Auto-routed based on category: {issue['category']}", at=now)
        routed.append({
            "issueId": issue["id"],
            "title": issue["title"],
            "category": issue["category"],
            "routedTo": department,
            "assignedTo": assignee["name"],
        })

    if routed or skipped:
        print(f"[Routing] Auto-route: {len(routed)} routed, {skipped} skipped")
    return {
        "message": f"Successfully auto-routed {len(routed)} issues",
        "routedCount": len(routed),
        "skippedCount": skipped,
        "routingResults": routed,
    }


# ============================================================
# SUGGESTIONS (read-only)
# ============================================================
def routing_suggestions(db: dict, rules: dict = None) -> list:
    """Preview of what auto-route would do. Does not modify anything."""
    suggestions = []
    for issue in list_pending_issues(db):
        category = issue.get("category") or "other"
        department = route_category(category, rules)
        suggestions.append({
            "issueId": issue["id"],
            "title": issue["title"],
            "category": category,
            "priority": issue.get("priority") or "medium",
            "reportedBy": issue["reportedBy"],
            "reportedByDepartment": issue.get("reportedByDepartment") or "Unknown",
            "suggestedDepartment": department,
            "availableUsers": [public_user(u) for u in list_department_users(db, department)],
            "confidence": suggestion_confidence(issue.get("category")),
        })
    return suggestions
