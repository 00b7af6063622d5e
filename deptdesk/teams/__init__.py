"""
DeptDesk - Team Membership Registry

Each HR user owns one team: per-department lists of member users
(Tech / IT / Finance). Teams are created lazily on first access and never
deleted. A member belongs to at most one HR team per department; the check
runs inside the caller's store transaction so two HR users cannot both claim
the same person.

Team membership drives creation-time pre-assignment of issues: an issue filed
by a member is stamped with the owning HR user (see deptdesk.routing).
"""
from deptdesk.config import TEAM_DEPARTMENTS, TEAM_MEMBER_KEYS
from deptdesk.db import new_id, now_iso
from deptdesk.directory import get_user, list_department_users, public_user
from deptdesk.errors import ConflictError, NotFoundError, ValidationError


def _empty_members() -> dict:
    return {dept: [] for dept in TEAM_DEPARTMENTS}


def find_team(db: dict, hr_user_id: str) -> dict:
    return next((t for t in db["teams"] if t["hrUser"] == hr_user_id), None)


def get_or_create_team(db: dict, hr_user_id: str) -> dict:
    team = find_team(db, hr_user_id)
    if team:
        return team
    now = now_iso()
    team = {"id": new_id(), "hrUser": hr_user_id, "members": _empty_members(),
            "createdAt": now, "updatedAt": now}
    db["teams"].append(team)
    print(f"[Teams] Created empty team for HR user {hr_user_id}")
    return team


def _check_department(department: str):
    if department not in TEAM_DEPARTMENTS:
        raise ValidationError(f"Invalid team department. Must be one of: {TEAM_DEPARTMENTS}")


def add_member(db: dict, hr_user_id: str, target_user_id: str, department: str = "Tech") -> dict:
    """Add a user to the HR user's team list for their department."""
    _check_department(department)
    if not target_user_id:
        raise ValidationError("User ID is required")

    target = get_user(db, target_user_id)
    if not target:
        raise NotFoundError("User not found")
    if target["department"] != department:
        raise ValidationError(f"Invalid {department} user: user belongs to {target['department']}")

    team = get_or_create_team(db, hr_user_id)
    members = team["members"].setdefault(department, [])
    if target["id"] in members:
        raise ConflictError(f"{department} user is already in your team")

    for other in db["teams"]:
        if other is not team and target["id"] in other["members"].get(department, []):
            raise ConflictError(f"{department} user is already assigned to another HR team")

    members.append(target["id"])
    team["updatedAt"] = now_iso()
    return team


def remove_member(db: dict, hr_user_id: str, target_user_id: str, department: str = None) -> dict:
    """Drop a member from one department list, or from every list when no
    department is given. Removing someone who is not there is a no-op."""
    team = find_team(db, hr_user_id)
    if not team:
        raise NotFoundError("Team not found")
    if department is not None:
        _check_department(department)
        departments = [department]
    else:
        departments = list(team["members"])

    for dept in departments:
        team["members"][dept] = [m for m in team["members"].get(dept, []) if m != target_user_id]
    team["updatedAt"] = now_iso()
    return team


def find_team_for_member(db: dict, user_id: str) -> dict:
    """Return the HR user owning a team that lists user_id, or None."""
    for team in db["teams"]:
        if any(user_id in ids for ids in team["members"].values()):
            return get_user(db, team["hrUser"])
    return None


def assigned_ids(db: dict, department: str) -> set:
    ids = set()
    for team in db["teams"]:
        ids.update(team["members"].get(department, []))
    return ids


def list_unassigned(db: dict, department: str) -> list:
    """Directory users of a department that no team has claimed yet."""
    _check_department(department)
    taken = assigned_ids(db, department)
    return [u for u in list_department_users(db, department) if u["id"] not in taken]


def team_view(db: dict, team: dict) -> dict:
    """API projection: populated member lists under techMembers/itMembers/financeMembers."""
    view = {"id": team["id"], "hrUser": public_user(get_user(db, team["hrUser"]))}
    for dept, key in TEAM_MEMBER_KEYS.items():
        users = (get_user(db, uid) for uid in team["members"].get(dept, []))
        view[key] = [public_user(u) for u in users if u]
    view["updatedAt"] = team["updatedAt"]
    return view
