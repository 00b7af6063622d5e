"""
DeptDesk - User Directory
Account records with department affiliation. Consulted by every other module.
"""
from deptdesk.auth import hash_password, verify_password
from deptdesk.config import DEPARTMENTS, MIN_PASSWORD_LENGTH, HR_DEPARTMENT
from deptdesk.db import find_doc, new_id, now_iso
from deptdesk.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError


def public_user(user: dict) -> dict:
    """Projection safe to return from the API (no password hash)."""
    if not user:
        return None
    return {"id": user["id"], "name": user["name"], "email": user["email"],
            "department": user["department"]}


def get_user(db: dict, user_id) -> dict:
    return find_doc(db, "users", user_id)


def find_by_email(db: dict, email: str) -> dict:
    email = (email or "").strip().lower()
    return next((u for u in db["users"] if u["email"] == email), None)


def list_department_users(db: dict, department: str) -> list:
    """Users of one department, in creation order."""
    return [u for u in db["users"] if u["department"] == department]


def create_user(db: dict, name: str, email: str, password: str, department: str) -> dict:
    if not name or not email or not password or not department:
        raise ValidationError("All fields are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if department not in DEPARTMENTS:
        raise ValidationError(f"Invalid department. Must be one of: {DEPARTMENTS}")
    if find_by_email(db, email):
        raise ValidationError("User with this email already exists")

    now = now_iso()
    user = {
        "id": new_id(),
        "name": name.strip(),
        "email": email.strip().lower(),
        "password": hash_password(password),
        "department": department,
        "createdAt": now,
        "updatedAt": now,
    }
    db["users"].append(user)
    return user


def authenticate(db: dict, email: str, password: str) -> dict:
    if not email or not password:
        raise ValidationError("Email and password are required")
    user = find_by_email(db, email)
    if not user or not verify_password(password, user["password"]):
        raise AuthenticationError("Invalid email or password")
    return user


def change_department(db: dict, user_id: str, new_department: str) -> dict:
    """Move a user to another department.

    Issue and expense snapshots keep the department recorded at creation.
    A user still referenced by a team must be released from it first, since
    membership is only valid for the member's own department.
    """
    user = get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    if new_department not in DEPARTMENTS:
        raise ValidationError(f"Invalid department. Must be one of: {DEPARTMENTS}")
    if user["department"] == new_department:
        raise ValidationError(f"User is already in {new_department} department")

    for team in db["teams"]:
        if team["hrUser"] == user["id"] and user["department"] == HR_DEPARTMENT:
            if any(team["members"].values()):
                raise ConflictError("User owns a non-empty team; remove its members first")
        if any(user["id"] in ids for ids in team["members"].values()):
            raise ConflictError("User is a team member; remove them from the team first")

    user["department"] = new_department
    user["updatedAt"] = now_iso()
    return user
