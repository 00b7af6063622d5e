"""HTTP surface end to end through the FastAPI test client."""

from conftest import PASSWORD


class TestHealth:
    def test_health(self, client) -> None:
        res = client.get("/api/health")

        assert res.status_code == 200
        assert res.json()["message"] == "Multi-Department API is running!"
        assert res.json()["assistant"] == "rules"

    def test_unknown_route(self, client) -> None:
        res = client.get("/api/nowhere")

        assert res.status_code == 404
        assert res.json() == {"error": "Route not found", "path": "/api/nowhere", "method": "GET"}


class TestAuth:
    def test_signup_then_signin(self, client, signup) -> None:
        user, _ = signup("Tech", name="Ada")

        res = client.post("/api/auth/signin", json={"email": user["email"], "password": PASSWORD})

        assert res.status_code == 200
        body = res.json()
        assert body["user"] == user
        assert "password" not in body["user"]
        assert body["token"]

    def test_signup_validation_error(self, client) -> None:
        res = client.post("/api/auth/signup", json={"name": "Ada", "email": "a@example.com"})

        assert res.status_code == 400
        assert res.json() == {"error": "All fields are required"}

    def test_duplicate_signup(self, client, signup) -> None:
        user, _ = signup("Tech")

        res = client.post("/api/auth/signup", json={
            "name": "Again", "email": user["email"], "password": PASSWORD, "department": "IT"})

        assert res.status_code == 400

    def test_bad_password(self, client, signup) -> None:
        user, _ = signup("Tech")

        res = client.post("/api/auth/signin", json={"email": user["email"], "password": "nope-nope"})

        assert res.status_code == 401
        assert res.json() == {"error": "Invalid email or password"}

    def test_missing_token(self, client) -> None:
        res = client.get("/api/issues")

        assert res.status_code == 401
        assert res.json() == {"error": "Access denied. No token provided."}

    def test_garbage_token(self, client) -> None:
        res = client.get("/api/issues", headers={"Authorization": "Bearer not-a-jwt"})

        assert res.status_code == 401


class TestIssueFlow:
    def test_create_and_auto_route_salary_issue(self, client, signup) -> None:
        fin_user, fin_headers = signup("Finance")
        _, hr_headers = signup("HR")

        res = client.post("/api/issues", headers=fin_headers, json={
            "title": "Payslip", "description": "Salary missing", "category": "salary",
            "priority": "high"})
        assert res.status_code == 201
        issue = res.json()
        assert issue["status"] == "pending"
        assert issue["routedToDepartment"] is None

        res = client.post("/api/issues/auto-route", headers=hr_headers)
        assert res.status_code == 200
        assert res.json()["routedCount"] == 1

        queue = client.get("/api/issues/department/Finance", headers=fin_headers).json()
        assert [i["id"] for i in queue] == [issue["id"]]
        assert queue[0]["status"] == "routed"
        assert queue[0]["assignedToDepartmentUser"] == fin_user["id"]
        assert queue[0]["autoRouted"] is True

    def test_auto_route_requires_hr(self, client, signup) -> None:
        _, headers = signup("Tech")

        res = client.post("/api/issues/auto-route", headers=headers)

        assert res.status_code == 403
        assert res.json() == {"error": "Only HR users can auto-route issues"}

    def test_route_to_empty_department(self, client, signup) -> None:
        _, hr_headers = signup("HR")
        issue = client.post("/api/issues", headers=hr_headers, json={
            "title": "Printer", "description": "Jammed", "category": "hardware"}).json()

        res = client.post(f"/api/issues/{issue['id']}/route-to-department",
                          headers=hr_headers, json={"department": "IT"})

        assert res.status_code == 400
        assert res.json() == {"error": "No users found in IT department"}

    def test_manual_route(self, client, signup) -> None:
        it_user, it_headers = signup("IT")
        _, hr_headers = signup("HR")
        issue = client.post("/api/issues", headers=it_headers, json={
            "title": "VPN", "description": "Down", "category": "network"}).json()

        res = client.post(f"/api/issues/{issue['id']}/route-to-department",
                          headers=hr_headers, json={"department": "IT"})

        assert res.status_code == 200
        assert res.json()["message"] == "Issue successfully routed to IT"
        assert res.json()["issue"]["assignedToDepartmentUser"] == it_user["id"]

    def test_route_requires_department(self, client, signup) -> None:
        _, hr_headers = signup("HR")

        res = client.post("/api/issues/anything/route-to-department", headers=hr_headers, json={})

        assert res.status_code == 400
        assert res.json() == {"error": "Department is required"}

    def test_update_status_and_illegal_transition(self, client, signup) -> None:
        _, headers = signup("Tech")
        issue = client.post("/api/issues", headers=headers, json={
            "title": "Build", "description": "Broken"}).json()

        res = client.put(f"/api/issues/{issue['id']}", headers=headers, json={"status": "closed"})
        assert res.status_code == 400

        res = client.put(f"/api/issues/{issue['id']}", headers=headers,
                         json={"status": "working", "resolutionNotes": "on it"})
        assert res.status_code == 200
        assert res.json()["status"] == "working"
        assert res.json()["resolutionNotes"] == "on it"

    def test_update_unknown_issue(self, client, signup) -> None:
        _, headers = signup("Tech")

        res = client.put("/api/issues/missing", headers=headers, json={"status": "working"})

        assert res.status_code == 404
        assert res.json() == {"error": "Issue not found"}

    def test_department_queue_access(self, client, signup) -> None:
        _, tech_headers = signup("Tech")
        _, hr_headers = signup("HR")

        assert client.get("/api/issues/department/IT", headers=tech_headers).status_code == 403
        assert client.get("/api/issues/department/IT", headers=hr_headers).status_code == 200
        assert client.get("/api/issues/department/Tech", headers=tech_headers).status_code == 200

    def test_user_issues_and_suggestions(self, client, signup) -> None:
        user, headers = signup("Tech", name="Ada")
        _, hr_headers = signup("HR")
        client.post("/api/issues", headers=headers, json={
            "title": "Mouse", "description": "Broken", "category": "hardware"})

        mine = client.get("/api/issues/user/Ada", headers=headers).json()
        suggestions = client.get("/api/issues/routing-suggestions", headers=hr_headers).json()

        assert [i["title"] for i in mine] == ["Mouse"]
        assert suggestions[0]["suggestedDepartment"] == "IT"
        assert suggestions[0]["availableUsers"] == []


class TestTeams:
    def test_build_team_and_pre_assign(self, client, signup) -> None:
        hr_user, hr_headers = signup("HR")
        tech_user, tech_headers = signup("Tech")

        team = client.get("/api/teams/my-team", headers=hr_headers).json()
        assert team["techMembers"] == []

        unassigned = client.get("/api/teams/unassigned/Tech", headers=hr_headers).json()
        assert [u["id"] for u in unassigned] == [tech_user["id"]]

        res = client.post("/api/teams/add-member", headers=hr_headers,
                          json={"userId": tech_user["id"], "department": "Tech"})
        assert res.status_code == 200
        assert res.json()["techMembers"] == [tech_user]

        my_hr = client.get("/api/teams/my-hr", headers=tech_headers).json()
        assert my_hr["assignedHR"] == hr_user

        issue = client.post("/api/issues", headers=tech_headers, json={
            "title": "Access", "description": "Need repo"}).json()
        assert issue["assignedToHR"] == hr_user["id"]

        res = client.delete(f"/api/teams/remove-member/{tech_user['id']}?department=Tech",
                            headers=hr_headers)
        assert res.status_code == 200
        assert res.json()["techMembers"] == []

    def test_member_of_another_team(self, client, signup) -> None:
        _, hr1 = signup("HR")
        _, hr2 = signup("HR")
        it_user, _ = signup("IT")
        client.post("/api/teams/add-member", headers=hr1, json={"userId": it_user["id"], "department": "IT"})

        res = client.post("/api/teams/add-member", headers=hr2,
                          json={"userId": it_user["id"], "department": "IT"})

        assert res.status_code == 409

    def test_legacy_tech_user_id_field(self, client, signup) -> None:
        _, hr_headers = signup("HR")
        tech_user, _ = signup("Tech")

        res = client.post("/api/teams/add-member", headers=hr_headers, json={"techUserId": tech_user["id"]})

        assert res.status_code == 200
        assert [m["id"] for m in res.json()["techMembers"]] == [tech_user["id"]]

    def test_hr_has_no_assigned_hr(self, client, signup) -> None:
        _, hr_headers = signup("HR")

        res = client.get("/api/teams/my-hr", headers=hr_headers)

        assert res.status_code == 403

    def test_unassigned_member_has_no_hr(self, client, signup) -> None:
        _, headers = signup("Finance")

        assert client.get("/api/teams/my-hr", headers=headers).json()["assignedHR"] is None


class TestUsers:
    def test_department_listing_is_hr_only(self, client, signup) -> None:
        it_user, it_headers = signup("IT")
        _, hr_headers = signup("HR")

        assert client.get("/api/users/department/IT", headers=it_headers).status_code == 403
        assert client.get("/api/users/department/IT", headers=hr_headers).json() == [it_user]
        assert client.get("/api/users/department/Legal", headers=hr_headers).status_code == 400

    def test_change_department(self, client, signup) -> None:
        it_user, _ = signup("IT")
        _, hr_headers = signup("HR")

        res = client.post(f"/api/users/{it_user['id']}/change-department",
                          headers=hr_headers, json={"newDepartment": "Tech"})

        assert res.status_code == 200
        assert res.json()["user"]["department"] == "Tech"


class TestExpenses:
    def test_submit_and_approve(self, client, signup) -> None:
        _, tech_headers = signup("Tech")
        hr_user, hr_headers = signup("HR")

        res = client.post("/api/expenses", headers=tech_headers, json={
            "description": "Flight", "amount": 150.00, "category": "travel", "date": "2024-05-01"})
        assert res.status_code == 201
        expense = res.json()
        assert expense["status"] == "pending"

        pending = client.get("/api/expenses/pending", headers=hr_headers).json()
        assert [e["id"] for e in pending] == [expense["id"]]

        res = client.put(f"/api/expenses/{expense['id']}/approve", headers=hr_headers,
                         json={"status": "approved", "hrNotes": "ok"})
        assert res.status_code == 200
        assert res.json()["message"] == "Expense approved successfully"
        approved = res.json()["expense"]
        assert approved["approvedBy"] == hr_user["name"]
        assert approved["approvalDate"]

        listed = client.get("/api/expenses", headers=tech_headers).json()
        assert listed == [approved]

        res = client.put(f"/api/expenses/{expense['id']}/approve", headers=hr_headers,
                         json={"status": "rejected"})
        assert res.status_code == 400

    def test_non_hr_cannot_approve(self, client, signup) -> None:
        _, headers = signup("Finance")
        expense = client.post("/api/expenses", headers=headers, json={
            "description": "Pens", "amount": "3.50"}).json()

        res = client.put(f"/api/expenses/{expense['id']}/approve", headers=headers,
                         json={"status": "approved"})

        assert res.status_code == 403

    def test_non_finite_amount_is_rejected_and_not_stored(self, client, signup) -> None:
        _, headers = signup("Tech")

        res = client.post("/api/expenses", headers=headers, json={
            "description": "Taxi", "amount": "NaN", "category": "travel"})

        assert res.status_code == 400
        assert res.json() == {"error": "Amount must be a number"}
        assert client.get("/api/expenses", headers=headers).json() == []
        assert client.get("/api/analytics/summary", headers=headers).status_code == 200

    def test_missing_amount(self, client, signup) -> None:
        _, headers = signup("Finance")

        res = client.post("/api/expenses", headers=headers, json={"description": "Pens"})

        assert res.status_code == 400


class TestPolicyAndAnalytics:
    def test_policy_round_trip(self, client, signup) -> None:
        _, hr_headers = signup("HR")

        res = client.put("/api/routing/policy", headers=hr_headers,
                         json={"routing_rules": {"training": "Tech"}})

        assert res.status_code == 200
        assert res.json()["routing_rules"]["training"] == "Tech"
        got = client.get("/api/routing/policy", headers=hr_headers).json()
        assert got["routing_rules"]["training"] == "Tech"

    def test_policy_is_hr_only(self, client, signup) -> None:
        _, headers = signup("IT")

        assert client.get("/api/routing/policy", headers=headers).status_code == 403

    def test_analytics_summary(self, client, signup) -> None:
        _, headers = signup("Tech")
        client.post("/api/issues", headers=headers, json={"title": "a", "description": "b"})
        client.post("/api/expenses", headers=headers, json={"description": "c", "amount": 20})

        body = client.get("/api/analytics/summary", headers=headers).json()

        assert body["totalUsers"] == 1
        assert body["totalIssues"] == 1
        assert body["pendingIssues"] == 1
        assert body["totalExpenseAmount"] == 20.0
        assert body["approvedExpenseAmount"] == 0
        assert body["issuesByStatus"]["pending"] == 1

    def test_briefing(self, client, signup) -> None:
        _, hr_headers = signup("HR", name="Hana")

        body = client.get("/api/assistant/briefing", headers=hr_headers).json()

        assert body["source"] == "rules"
        assert "Welcome back, Hana!" in body["message"]
