"""
Integration tests for POST /account/delete-user.
"""
import pytest
from fastapi.testclient import TestClient

from clmp.main import app
from clmp.core.errors import UpstreamFailureError
from clmp.db.models import AuditLog, Role
from clmp.services import account_service, identity_service


@pytest.fixture(autouse=True)
def provider_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(identity_service, "delete_identity", calls.append)
    return calls


def test_missing_authorization_header(client):
    response = client.post("/account/delete-user", json={"userId": "3f1c2a9e-5b7d-4c1e-9a2b-8d6e4f0a1b2c"})

    assert response.status_code == 401
    assert response.json() == {"error": "Missing authorization header"}


def test_invalid_token(client):
    response = client.post(
        "/account/delete-user",
        json={"userId": "3f1c2a9e-5b7d-4c1e-9a2b-8d6e4f0a1b2c"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_missing_user_id(client, new_user_id, auth_headers):
    response = client.post("/account/delete-user", json={}, headers=auth_headers(new_user_id()))

    assert response.status_code == 400
    assert response.json() == {"error": "User ID is required"}


def test_invalid_user_id_format(client, new_user_id, auth_headers):
    response = client.post("/account/delete-user", json={"userId": "1234"}, headers=auth_headers(new_user_id()))

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid user ID format"}


def test_malformed_body(client, new_user_id, auth_headers):
    headers = {**auth_headers(new_user_id()), "Content-Type": "application/json"}
    response = client.post("/account/delete-user", content="{not json", headers=headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_self_deletion(client, db_session, new_user_id, auth_headers, grant_role, provider_calls):
    user_id = new_user_id()
    grant_role(user_id, Role.MEMBER)

    response = client.post("/account/delete-user", json={"userId": user_id}, headers=auth_headers(user_id))

    assert response.status_code == 200
    assert response.json() == {"message": "User deleted successfully"}
    assert provider_calls == [user_id]

    entries = db_session.query(AuditLog).all()
    assert [e.action for e in entries] == ["DELETE_USER_SUCCESS"]


def test_forbidden_for_other_user(client, db_session, new_user_id, auth_headers, provider_calls):
    requester_id, target_id = new_user_id(), new_user_id()

    response = client.post("/account/delete-user", json={"userId": target_id}, headers=auth_headers(requester_id))

    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized: You can only delete your own account"}
    assert provider_calls == []
    assert [e.action for e in db_session.query(AuditLog).all()] == ["DELETE_USER_DENIED"]


def test_last_admin_blocked(client, new_user_id, auth_headers, grant_role, provider_calls):
    admin_id = new_user_id()
    grant_role(admin_id, Role.ADMIN)

    response = client.post("/account/delete-user", json={"userId": admin_id}, headers=auth_headers(admin_id))

    assert response.status_code == 403
    assert response.json() == {
        "error": "Cannot delete this account because it is the last Admin. "
                 "Please assign the role to another user first."
    }
    assert provider_calls == []


def test_admin_deletes_other_admin(client, new_user_id, auth_headers, grant_role, provider_calls):
    first_admin, second_admin = new_user_id(), new_user_id()
    grant_role(first_admin, Role.ADMIN)
    grant_role(second_admin, Role.ADMIN)

    response = client.post("/account/delete-user", json={"userId": second_admin}, headers=auth_headers(first_admin))

    assert response.status_code == 200
    assert provider_calls == [second_admin]


def test_identity_provider_failure(client, monkeypatch, new_user_id, auth_headers):
    def _fail(user_id):
        raise UpstreamFailureError("Failed to delete user: rate limited")
    monkeypatch.setattr(identity_service, "delete_identity", _fail)
    user_id = new_user_id()

    response = client.post("/account/delete-user", json={"userId": user_id}, headers=auth_headers(user_id))

    assert response.status_code == 400
    assert response.json() == {"error": "Failed to delete user: rate limited"}


def test_unexpected_error(monkeypatch, new_user_id, auth_headers):
    def _boom(db, requester, target_user_id):
        raise RuntimeError("connection reset")
    monkeypatch.setattr(account_service, "delete_account", _boom)
    user_id = new_user_id()

    client = TestClient(app, raise_server_exceptions=False)
    response = client.post("/account/delete-user", json={"userId": user_id}, headers=auth_headers(user_id))

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_cors_preflight(client):
    response = client.options(
        "/account/delete-user",
        headers={
            "Origin": "https://app.example.ca",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, x-client-info, apikey, content-type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    allowed = response.headers["access-control-allow-headers"].lower()
    for header in ("authorization", "x-client-info", "apikey", "content-type"):
        assert header in allowed
