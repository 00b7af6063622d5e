"""
DeptDesk - Routing Policy

Runtime state for the routing engine: the category -> department table, the
fallback department and the named assignee-selection policy.

  - DEFAULT_POLICY: base configuration with env var overrides
  - _active_policy: mutable runtime state, updated via API
  - get_policy() / update_policy() / reset_policy()
  - ASSIGNEE_POLICIES: named candidate pickers

The routing engine reads get_policy() on every call unless the caller passes
its own table, so tests can substitute routing policies without patching.
"""
import copy as _copy
import json
import os

from deptdesk.config import (
    DEFAULT_ROUTING_RULES, DEFAULT_ROUTING_DEPARTMENT, DEFAULT_ASSIGNEE_POLICY,
    DEPARTMENTS, ISSUE_CATEGORIES,
)


# ============================================================
# ASSIGNEE POLICIES
# ============================================================
def pick_first(candidates: list):
    """First listed candidate. No load balancing."""
    return candidates[0] if candidates else None


ASSIGNEE_POLICIES = {
    "first": pick_first,
}


# ============================================================
# DEFAULT POLICY
# ============================================================
def _rules_from_env() -> dict:
    rules = dict(DEFAULT_ROUTING_RULES)
    raw = os.environ.get("ROUTING_RULES", "").strip()
    if not raw:
        return rules
    try:
        overrides = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"[Policy] Ignoring ROUTING_RULES, not valid JSON: {e}")
        return rules
    for category, department in overrides.items():
        if category in ISSUE_CATEGORIES and department in DEPARTMENTS:
            rules[category] = department
    return rules


DEFAULT_POLICY = {
    "routing_rules": _rules_from_env(),
    "default_department": DEFAULT_ROUTING_DEPARTMENT,
    "assignee_policy": DEFAULT_ASSIGNEE_POLICY if DEFAULT_ASSIGNEE_POLICY in ASSIGNEE_POLICIES else "first",
}


# ============================================================
# RUNTIME STATE
# ============================================================
_active_policy = _copy.deepcopy(DEFAULT_POLICY)


def get_policy() -> dict:
    """Get the active routing policy."""
    return _active_policy


def update_policy(updates: dict) -> dict:
    """Update policy fields. Unknown keys and invalid values are skipped.
    Returns the full updated policy."""
    for key, value in updates.items():
        if key == "routing_rules" and isinstance(value, dict):
            for category, department in value.items():
                if category in ISSUE_CATEGORIES and department in DEPARTMENTS:
                    _active_policy["routing_rules"][category] = department
        elif key == "default_department" and value in DEPARTMENTS:
            _active_policy[key] = value
        elif key == "assignee_policy" and value in ASSIGNEE_POLICIES:
            _active_policy[key] = value
    return _active_policy


def reset_policy():
    """Reset policy to defaults. Used in testing."""
    _active_policy.clear()
    _active_policy.update(_copy.deepcopy(DEFAULT_POLICY))
