"""
DeptDesk - Configuration & Constants
All environment variables, feature flags, domain enums and routing defaults.
"""
import os
from pathlib import Path

# ============================================================
# PATHS
# ============================================================
BASE_DIR = Path(__file__).parent.parent.parent
PACKAGE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.environ.get("DEPTDESK_DATA_DIR", str(BASE_DIR / "data")))

DB_PATH = DATA_DIR / "db.json"

# ============================================================
# FEATURE FLAGS
# ============================================================
PERSIST_DATA = os.environ.get("PERSIST_DATA", "true").lower() == "true"
DATABASE_URL = os.environ.get("DATABASE_URL")

if PERSIST_DATA:
    DATA_DIR.mkdir(parents=True, exist_ok=True)

# ============================================================
# AUTH
# ============================================================
JWT_SECRET = os.environ.get("JWT_SECRET", os.urandom(32).hex())
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = int(os.environ.get("JWT_EXPIRY_HOURS", "168"))  # 7 days
MIN_PASSWORD_LENGTH = 6
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

# ============================================================
# DOMAIN ENUMS
# ============================================================
DEPARTMENTS = ["HR", "Tech", "Finance", "IT"]
HR_DEPARTMENT = "HR"

# Departments an HR user can keep a team of handlers in
TEAM_DEPARTMENTS = ["Tech", "IT", "Finance"]
TEAM_MEMBER_KEYS = {"Tech": "techMembers", "IT": "itMembers", "Finance": "financeMembers"}

ISSUE_CATEGORIES = ["hardware", "software", "network", "salary", "benefits", "policy", "training", "other"]
ISSUE_PRIORITIES = ["low", "medium", "high", "urgent"]
ISSUE_STATUSES = ["pending", "routed", "working", "resolved", "closed"]
DEFAULT_ISSUE_CATEGORY = "other"
DEFAULT_ISSUE_PRIORITY = "medium"

EXPENSE_CATEGORIES = ["office-supplies", "travel", "equipment", "software",
                      "marketing", "hardware", "maintenance", "training"]
EXPENSE_STATUSES = ["pending", "approved", "rejected"]
DEFAULT_EXPENSE_CATEGORY = "office-supplies"

# ============================================================
# ROUTING
# ============================================================
DEFAULT_ROUTING_RULES = {
    "hardware": "IT",
    "software": "IT",
    "network": "IT",
    "salary": "Finance",
    "benefits": "Finance",
    "policy": "HR",
    "training": "HR",
    "other": "Tech",
}
DEFAULT_ROUTING_DEPARTMENT = "Tech"
DEFAULT_ASSIGNEE_POLICY = os.environ.get("ASSIGNEE_POLICY", "first")

# ============================================================
# REFRESH
# ============================================================
# 0 disables the background auto-route sweep
AUTO_ROUTE_INTERVAL_SECONDS = float(os.environ.get("AUTO_ROUTE_INTERVAL_SECONDS", "0"))
DASHBOARD_POLL_SECONDS = int(os.environ.get("DASHBOARD_POLL_SECONDS", "10"))

# ============================================================
# ASSISTANT
# ============================================================
USE_REAL_API = bool(os.environ.get("ANTHROPIC_API_KEY"))
ASSISTANT_MODEL = os.environ.get("ASSISTANT_MODEL", "claude-sonnet-4-20250514")
ASSISTANT_MAX_TOKENS = 600

# ============================================================
# HTTP
# ============================================================
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

# ============================================================
# VERSION
# ============================================================
VERSION = "1.0.0"
