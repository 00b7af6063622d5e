"""
DeptDesk - Multi-Department Issue & Expense Tracker (v1.0.0)

Architecture:
  deptdesk/
  ├── config/      - Constants, enums, feature flags, routing defaults
  ├── errors/      - Typed error kinds (400/401/403/404/409)
  ├── db/          - JSON document store, atomic transactions, PostgreSQL option
  ├── auth/        - JWT, bcrypt, department guards
  ├── directory/   - User accounts and department affiliation
  ├── teams/       - HR team membership registry (Tech / IT / Finance)
  ├── issues/      - Issue records and lifecycle state machine
  ├── policy/      - Injectable routing policy (category table, assignee policy)
  ├── routing/     - Pre-assignment, manual routing, auto-route, suggestions
  ├── expenses/    - Expense submission and HR approval
  ├── analytics/   - Dashboard aggregates
  ├── refresh/     - Scheduled refresh with cancellation (auto-route sweep)
  ├── assistant/   - Dashboard briefing, optional Claude narration
  └── server.py    - FastAPI routing layer
"""
