"""
DeptDesk - Multi-Department Issue & Expense API
FastAPI routing layer. Business rules live in the deptdesk sub-packages; this
module wires them to HTTP, guards routes by department, and renders every
failure as {"error": message}.
"""
import os
import traceback
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from deptdesk.analytics import summary
from deptdesk.assistant import build_briefing, narrate_briefing
from deptdesk.auth import create_jwt, get_current_user, require_hr, require_non_hr
from deptdesk.config import (
    AUTO_ROUTE_INTERVAL_SECONDS, CORS_ORIGINS, DASHBOARD_POLL_SECONDS, DEPARTMENTS,
    HR_DEPARTMENT, VERSION, USE_REAL_API,
)
from deptdesk.db import get_db, transaction
from deptdesk.directory import (
    authenticate, change_department, create_user, list_department_users, public_user,
)
from deptdesk.errors import AuthorizationError, DeptDeskError, ValidationError
from deptdesk.expenses import approve_expense, list_expenses, list_pending_expenses, submit_expense
from deptdesk.issues import list_department_issues, list_issues, list_user_issues, update_issue
from deptdesk.policy import get_policy, update_policy
from deptdesk.refresh import RefreshScheduler, auto_route_sweep
from deptdesk.routing import auto_route, file_issue, route_issue, routing_suggestions
from deptdesk.teams import (
    find_team_for_member, get_or_create_team, list_unassigned, remove_member, add_member, team_view,
)


# ============================================================
# APP
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    sweep = None
    if AUTO_ROUTE_INTERVAL_SECONDS > 0:
        sweep = RefreshScheduler(AUTO_ROUTE_INTERVAL_SECONDS, auto_route_sweep, name="auto-route")
        sweep.start()
    yield
    if sweep:
        sweep.cancel()


app = FastAPI(title="DeptDesk", version=VERSION, lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=CORS_ORIGINS, allow_credentials=True,
                   allow_methods=["*"], allow_headers=["*"])


@app.middleware("http")
async def log_requests(request: Request, call_next):
    print(f"[HTTP] {request.method} {request.url.path} - {datetime.now().isoformat()}")
    return await call_next(request)


# ============================================================
# ERROR ENVELOPES
# ============================================================
@app.exception_handler(DeptDeskError)
async def deptdesk_error_handler(request: Request, exc: DeptDeskError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        print(f"[HTTP] 404 - Route not found: {request.method} {request.url.path}")
        return JSONResponse(status_code=404, content={
            "error": "Route not found", "path": request.url.path, "method": request.method})
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", []) if p != "body")
        message = f"Invalid request: {field} {first.get('msg', '')}".strip()
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    print(f"[HTTP] Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
    traceback.print_exc()
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ============================================================
# REQUEST BODIES
# ============================================================
class SignupRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    department: Optional[str] = None


class SigninRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class IssueCreateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    reportedByDepartment: Optional[str] = None


class IssueUpdateRequest(BaseModel):
    status: Optional[str] = None
    priority: Optional[str] = None
    hrNotes: Optional[str] = None
    resolutionNotes: Optional[str] = None


class RouteRequest(BaseModel):
    department: Optional[str] = None
    assignedUserId: Optional[str] = None


class TeamMemberRequest(BaseModel):
    userId: Optional[str] = None
    techUserId: Optional[str] = None
    department: str = "Tech"


class DepartmentChangeRequest(BaseModel):
    newDepartment: Optional[str] = None


class ExpenseCreateRequest(BaseModel):
    description: Optional[str] = None
    amount: Any = None
    category: Optional[str] = None
    date: Optional[str] = None


class ExpenseApprovalRequest(BaseModel):
    status: Optional[str] = None
    hrNotes: Optional[str] = None


# ============================================================
# HEALTH
# ============================================================
@app.get("/api/health")
async def health():
    return {"message": "Multi-Department API is running!", "version": VERSION,
            "timestamp": datetime.now().isoformat(),
            "pollIntervalSeconds": DASHBOARD_POLL_SECONDS,
            "assistant": "claude_api" if USE_REAL_API else "rules"}


# ============================================================
# AUTH
# ============================================================
def _auth_payload(user: dict, message: str) -> dict:
    return {"user": public_user(user), "token": create_jwt(user), "message": message}


@app.post("/api/auth/signup", status_code=201)
async def signup(body: SignupRequest):
    with transaction() as db:
        user = create_user(db, body.name, body.email, body.password, body.department)
    print(f"[Auth] Signed up {user['email']} ({user['department']})")
    return _auth_payload(user, "User created successfully")


@app.post("/api/auth/signin")
async def signin(body: SigninRequest):
    user = authenticate(get_db(), body.email, body.password)
    return _auth_payload(user, "Login successful")


# ============================================================
# USERS
# ============================================================
def _check_department(department: str):
    if department not in DEPARTMENTS:
        raise ValidationError(f"Invalid department. Must be one of: {DEPARTMENTS}")


@app.get("/api/users/department/{department}")
async def users_by_department(department: str, user: dict = Depends(require_hr("access this endpoint"))):
    _check_department(department)
    return [public_user(u) for u in list_department_users(get_db(), department)]


@app.post("/api/users/{user_id}/change-department")
async def change_user_department(user_id: str, body: DepartmentChangeRequest,
                                 user: dict = Depends(require_hr("change user departments"))):
    with transaction() as db:
        changed = change_department(db, user_id, body.newDepartment)
    print(f"[Auth] {user['name']} moved {changed['email']} to {changed['department']}")
    return {"message": f"User moved to {changed['department']}", "user": public_user(changed)}


# ============================================================
# TEAMS
# ============================================================
@app.get("/api/teams/my-team")
async def my_team(user: dict = Depends(require_hr("access team management"))):
    with transaction() as db:
        team = get_or_create_team(db, user["id"])
        return team_view(db, team)


@app.post("/api/teams/add-member")
async def add_team_member(body: TeamMemberRequest, user: dict = Depends(require_hr("add team members"))):
    with transaction() as db:
        team = add_member(db, user["id"], body.userId or body.techUserId, body.department)
        view = team_view(db, team)
    return {"message": f"{body.department} member added successfully", **view}


@app.delete("/api/teams/remove-member/{member_id}")
async def remove_team_member(member_id: str, department: Optional[str] = None,
                             user: dict = Depends(require_hr("remove team members"))):
    with transaction() as db:
        team = remove_member(db, user["id"], member_id, department)
        view = team_view(db, team)
    return {"message": f"{department or 'Team'} member removed successfully", **view}


@app.get("/api/teams/my-hr")
async def my_hr(user: dict = Depends(require_non_hr("have an assigned HR"))):
    hr = find_team_for_member(get_db(), user["id"])
    if not hr:
        return {"assignedHR": None, "message": "You are not assigned to any HR team yet"}
    return {"assignedHR": public_user(hr)}


@app.get("/api/teams/unassigned/{department}")
async def unassigned_users(department: str, user: dict = Depends(require_hr("access this endpoint"))):
    return [public_user(u) for u in list_unassigned(get_db(), department)]


# ============================================================
# ISSUES
# ============================================================
@app.get("/api/issues")
async def get_issues(user: dict = Depends(get_current_user)):
    return list_issues(get_db())


@app.post("/api/issues", status_code=201)
async def create_issue_endpoint(body: IssueCreateRequest, user: dict = Depends(get_current_user)):
    with transaction() as db:
        return file_issue(db, user, body.title, body.description, body.category,
                          body.priority, reported_by_department=body.reportedByDepartment)


@app.post("/api/issues/auto-route")
async def auto_route_endpoint(user: dict = Depends(require_hr("auto-route issues"))):
    with transaction() as db:
        return auto_route(db)


@app.get("/api/issues/routing-suggestions")
async def routing_suggestions_endpoint(user: dict = Depends(require_hr("access routing suggestions"))):
    return routing_suggestions(get_db())


@app.get("/api/issues/user/{username}")
async def user_issues(username: str, user: dict = Depends(get_current_user)):
    return list_user_issues(get_db(), username)


@app.get("/api/issues/department/{department}")
async def department_issues(department: str, user: dict = Depends(get_current_user)):
    if user["department"] not in (department, HR_DEPARTMENT):
        raise AuthorizationError("Access denied to this department's issues")
    return list_department_issues(get_db(), department)


@app.put("/api/issues/{issue_id}")
async def update_issue_endpoint(issue_id: str, body: IssueUpdateRequest,
                                user: dict = Depends(get_current_user)):
    with transaction() as db:
        return update_issue(db, issue_id, body.model_dump(exclude_none=True), user)


@app.post("/api/issues/{issue_id}/route-to-department")
async def route_to_department(issue_id: str, body: RouteRequest,
                              user: dict = Depends(require_hr("manually route issues"))):
    if not body.department:
        raise ValidationError("Department is required")
    with transaction() as db:
        issue = route_issue(db, issue_id, body.department, user, body.assignedUserId)
    return {"message": f"Issue successfully routed to {body.department}", "issue": issue}


# ============================================================
# ROUTING POLICY
# ============================================================
@app.get("/api/routing/policy")
async def get_routing_policy(user: dict = Depends(require_hr("view the routing policy"))):
    return get_policy()


@app.put("/api/routing/policy")
async def put_routing_policy(updates: Dict[str, Any], user: dict = Depends(require_hr("change the routing policy"))):
    policy = update_policy(updates)
    print(f"[Routing] Policy updated by {user['name']}")
    return policy


# ============================================================
# EXPENSES
# ============================================================
@app.get("/api/expenses")
async def get_expenses(user: dict = Depends(get_current_user)):
    return list_expenses(get_db())


@app.post("/api/expenses", status_code=201)
async def create_expense(body: ExpenseCreateRequest, user: dict = Depends(get_current_user)):
    with transaction() as db:
        return submit_expense(db, user, body.description, body.amount, body.category, body.date)


@app.get("/api/expenses/pending")
async def pending_expenses(user: dict = Depends(require_hr("review pending expenses"))):
    return list_pending_expenses(get_db())


@app.put("/api/expenses/{expense_id}/approve")
async def approve_expense_endpoint(expense_id: str, body: ExpenseApprovalRequest,
                                   user: dict = Depends(require_hr("approve expenses"))):
    with transaction() as db:
        expense = approve_expense(db, expense_id, body.status, user, body.hrNotes)
    return {"message": f"Expense {expense['status']} successfully", "expense": expense}


# ============================================================
# ANALYTICS & ASSISTANT
# ============================================================
@app.get("/api/analytics/summary")
async def analytics_summary(user: dict = Depends(get_current_user)):
    return summary(get_db())


@app.get("/api/assistant/briefing")
async def assistant_briefing(user: dict = Depends(get_current_user)):
    db = get_db()
    mine = list_user_issues(db, user["name"])
    if user["department"] == HR_DEPARTMENT:
        department = list_issues(db)
    else:
        department = list_department_issues(db, user["department"])
    return await narrate_briefing(build_briefing(user, mine, department), user)


def main():
    import uvicorn
    port = int(os.environ.get("PORT", 3002))
    print(f"Starting DeptDesk v{VERSION} on port {port}")
    print(f"Assistant: {'Claude API' if USE_REAL_API else 'Rules only'}")
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
