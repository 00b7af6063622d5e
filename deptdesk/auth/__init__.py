"""
DeptDesk - Authentication & department guards
JWT bearer tokens, bcrypt password hashing, department-based access control.
"""
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt as pyjwt
from fastapi import Request

from deptdesk.config import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRY_HOURS, BCRYPT_ROUNDS, HR_DEPARTMENT
from deptdesk.errors import AuthenticationError, AuthorizationError

# ============================================================
# PASSWORD HASHING
# ============================================================
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False

# ============================================================
# JWT
# ============================================================
def create_jwt(user: dict) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user["id"], "email": user["email"], "department": user["department"],
        "exp": now + timedelta(hours=JWT_EXPIRY_HOURS),
        "iat": now,
    }
    return pyjwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_jwt(token: str) -> dict:
    try:
        return pyjwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except pyjwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except pyjwt.InvalidTokenError:
        raise AuthenticationError("Invalid token.")

# ============================================================
# REQUEST HELPERS
# ============================================================
def _token_from_request(request: Request) -> str:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[7:].strip()
    return ""


async def get_current_user(request: Request) -> dict:
    """Dependency: require a valid token for a user that still exists."""
    from deptdesk.db import get_db
    from deptdesk.directory import get_user

    token = _token_from_request(request)
    if not token:
        print("[Auth] No token provided")
        raise AuthenticationError("Access denied. No token provided.")

    payload = decode_jwt(token)
    user = get_user(get_db(), payload.get("sub"))
    if not user:
        print("[Auth] User not found for token")
        raise AuthenticationError("Invalid token.")
    return user

# ============================================================
# DEPARTMENT GUARDS
# ============================================================
def require_department(*departments: str, action: str = "access this endpoint"):
    """Dependency: require the caller to belong to one of the given departments."""
    async def checker(request: Request):
        user = await get_current_user(request)
        if user["department"] not in departments:
            who = " or ".join(departments)
            raise AuthorizationError(f"Only {who} users can {action}")
        return user
    return checker


def require_hr(action: str = "access this endpoint"):
    return require_department(HR_DEPARTMENT, action=action)


def require_non_hr(action: str = "access this endpoint"):
    """Dependency: any department except HR."""
    async def checker(request: Request):
        user = await get_current_user(request)
        if user["department"] == HR_DEPARTMENT:
            raise AuthorizationError(f"HR users cannot {action}")
        return user
    return checker
