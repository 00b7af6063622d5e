"""
DeptDesk - Dashboard Assistant Briefing

Per-department welcome briefing shown by the dashboards: issue counts, the
active routing table, and what the user can do next. Deterministic by
default; when ANTHROPIC_API_KEY is set Claude rephrases the briefing, with the
deterministic text as fallback on any API error.
"""
import anthropic

from deptdesk.config import USE_REAL_API, ASSISTANT_MODEL, ASSISTANT_MAX_TOKENS, HR_DEPARTMENT
from deptdesk.policy import get_policy


def _count(issues: list, status: str) -> int:
    return sum(1 for i in issues if i.get("status") == status)


def routing_table_lines(rules: dict = None) -> list:
    """Group categories by department: ['hardware/software/network -> IT', ...]."""
    rules = rules if rules is not None else get_policy()["routing_rules"]
    by_dept = {}
    for category, department in rules.items():
        by_dept.setdefault(department, []).append(category)
    return [f"{'/'.join(cats)} -> {dept}" for dept, cats in by_dept.items()]


def build_briefing(user: dict, my_issues: list, department_issues: list) -> dict:
    counts = {s: _count(department_issues, s) for s in ("pending", "routed", "working")}
    table = routing_table_lines()

    lines = [f"Welcome back, {user['name']}!", ""]
    if user["department"] == HR_DEPARTMENT:
        lines += [
            "HR issue management:",
            f"- {counts['pending']} issues awaiting routing",
            f"- {counts['routed']} issues routed to departments",
            f"- {counts['working']} issues being worked on",
            "",
            "Auto-routing sends issues by category:",
        ] + [f"- {line}" for line in table] + [""]
        if counts["pending"]:
            lines.append(f"{counts['pending']} pending issues are ready to auto-route.")
        else:
            lines.append("All issues are currently routed.")
    else:
        lines += [
            f"{user['department']} issues:",
            f"- {_count(my_issues, 'pending')} of your issues pending",
            f"- {_count(my_issues, 'working')} of your issues being resolved",
            f"- {len(department_issues)} issues assigned to {user['department']}",
        ]

    return {
        "department": user["department"],
        "counts": counts,
        "myIssues": len(my_issues),
        "departmentIssues": len(department_issues),
        "routingTable": table,
        "message": "\n".join(lines),
        "source": "rules",
    }


BRIEFING_PROMPT = """You are the assistant on an internal issue-tracking dashboard.
Rewrite the briefing below as a short, friendly welcome for {name} ({department} department).
Keep every number exactly as given. Plain text, at most 8 lines, no markdown.

BRIEFING:
{message}"""


async def narrate_briefing(briefing: dict, user: dict) -> dict:
    """Ask Claude to phrase the briefing. Returns the briefing unchanged in mock mode."""
    if not USE_REAL_API:
        return briefing

    client = anthropic.AsyncAnthropic()
    prompt = BRIEFING_PROMPT.format(name=user["name"], department=user["department"],
                                    message=briefing["message"])
    try:
        msg = await client.messages.create(model=ASSISTANT_MODEL, max_tokens=ASSISTANT_MAX_TOKENS,
                                           messages=[{"role": "user", "content": prompt}])
        text = msg.content[0].text.strip()
        if text:
            return {**briefing, "message": text, "source": "claude_api"}
    except anthropic.APIError as e:
        print(f"[Assistant] Claude error: {type(e).__name__}: {e}")
    return briefing
