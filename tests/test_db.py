"""Document store: transactions and conditional updates."""

import pytest

from deptdesk.db import find_doc, get_db, new_id, reset_db, transaction, update_if


class TestTransaction:
    def test_commit_on_success(self) -> None:
        with transaction() as db:
            db["users"].append({"id": "u1", "name": "Ada"})

        assert find_doc(get_db(), "users", "u1")["name"] == "Ada"

    def test_rollback_on_error(self) -> None:
        with transaction() as db:
            db["users"].append({"id": "u1", "name": "Ada"})

        with pytest.raises(RuntimeError):
            with transaction() as db:
                db["users"].append({"id": "u2", "name": "Bob"})
                find_doc(db, "users", "u1")["name"] = "Changed"
                raise RuntimeError("boom")

        users = get_db()["users"]
        assert [u["id"] for u in users] == ["u1"]
        assert users[0]["name"] == "Ada"

    def test_reset(self) -> None:
        with transaction() as db:
            db["issues"].append({"id": "i1"})

        reset_db()

        assert get_db() == {"users": [], "teams": [], "issues": [], "expenses": []}


class TestHelpers:
    def test_new_id_is_unique(self) -> None:
        assert new_id() != new_id()

    def test_find_doc(self) -> None:
        db = {"users": [{"id": "a"}, {"id": "b"}]}

        assert find_doc(db, "users", "b") == {"id": "b"}
        assert find_doc(db, "users", "c") is None
        assert find_doc(db, "users", None) is None
        assert find_doc(db, "teams", "a") is None


class TestUpdateIf:
    def test_applies_when_expected_matches(self) -> None:
        db = {"issues": [{"id": "i1", "status": "pending"}]}

        doc = update_if(db, "issues", "i1", {"status": "pending"}, {"status": "routed"})

        assert doc == {"id": "i1", "status": "routed"}

    def test_skips_when_document_moved_on(self) -> None:
        db = {"issues": [{"id": "i1", "status": "working"}]}

        assert update_if(db, "issues", "i1", {"status": "pending"}, {"status": "routed"}) is None
        assert db["issues"][0]["status"] == "working"

    def test_missing_document(self) -> None:
        assert update_if({"issues": []}, "issues", "i1", {}, {"status": "routed"}) is None
