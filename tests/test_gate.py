import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from clinic_app.auth import CurrentUser
from clinic_app.config import ROLE_COOKIE_NAME
from clinic_app.gate import (
    RequestGateMiddleware,
    fast_path_redirect,
    is_protected_path,
    slow_path_redirect,
)
from clinic_app.role_claim import issue_role_claim, verify_role_claim
from conftest import FakeIdentityBackend

SIGNOUT_TO_SIGNIN = "/auth/signout?redirect=%2Fsignin"


@pytest.fixture
def gate_identity():
    backend = FakeIdentityBackend()
    backend.add_user("admin-token", "admin-1", role="admin")
    backend.add_user("patient-token", "patient-1", role="patient")
    return backend


@pytest.fixture
def gate_app(gate_identity):
    app = FastAPI()
    app.add_middleware(RequestGateMiddleware)
    app.state.identity = gate_identity

    for path in ["/admin", "/admin/orders", "/dashboard", "/signin", "/my-bookings", "/treatments"]:
        app.add_api_route(path, lambda: {"ok": True}, methods=["GET"])
    return app


def request(app, path, role_claim=None, token=None):
    cookies = {}
    if role_claim is not None:
        cookies[ROLE_COOKIE_NAME] = role_claim
    if token:
        cookies["sb-access-token"] = token
    client = TestClient(app, cookies=cookies, follow_redirects=False)
    return client.get(path)


def role_cookie(response):
    for header in response.headers.get_list("set-cookie"):
        if header.startswith(f"{ROLE_COOKIE_NAME}="):
            return header
    return None


# Pure routing rules


def test_protected_path_matching():
    assert is_protected_path("/admin")
    assert is_protected_path("/admin/orders")
    assert is_protected_path("/my-bookings")
    assert not is_protected_path("/administrator")
    assert not is_protected_path("/treatments")


def test_fast_path_rules():
    assert fast_path_redirect("/signin", "admin") == "/admin"
    assert fast_path_redirect("/signup", "patient") == "/dashboard"
    assert fast_path_redirect("/admin/orders", "patient") == SIGNOUT_TO_SIGNIN
    assert fast_path_redirect("/dashboard", "admin") == "/admin"
    assert fast_path_redirect("/admin", "admin") is None
    assert fast_path_redirect("/my-bookings", "patient") is None


def test_slow_path_rules():
    admin = CurrentUser(id="a", email=None, role="admin")
    patient = CurrentUser(id="p", email=None, role="patient")
    assert slow_path_redirect("/admin", None) == "/signin"
    assert slow_path_redirect("/admin", patient) == SIGNOUT_TO_SIGNIN
    assert slow_path_redirect("/admin", admin) is None
    assert slow_path_redirect("/signin", patient) == "/dashboard"
    assert slow_path_redirect("/signin", None) is None
    assert slow_path_redirect("/dashboard", admin) == "/admin"


# Middleware


def test_unprotected_path_skips_identity_backend(gate_app, gate_identity):
    response = request(gate_app, "/treatments")
    assert response.status_code == 200
    assert gate_identity.user_lookups == 0
    assert role_cookie(response) is None


def test_fast_path_redirects_signed_in_user_away_from_signin(gate_app, gate_identity):
    response = request(gate_app, "/signin", role_claim=issue_role_claim("admin"))
    assert response.status_code in (302, 307)
    assert response.headers["location"] == "/admin"
    assert gate_identity.user_lookups == 0


def test_fast_path_sends_non_admin_claim_to_signout(gate_app, gate_identity):
    response = request(gate_app, "/admin/orders", role_claim=issue_role_claim("patient"))
    assert response.headers["location"] == SIGNOUT_TO_SIGNIN
    assert gate_identity.user_lookups == 0


def test_admin_claim_alone_never_grants_admin_pages(gate_app, gate_identity):
    response = request(gate_app, "/admin", role_claim=issue_role_claim("admin"))
    assert gate_identity.user_lookups == 1
    assert response.headers["location"] == "/signin"
    assert "Max-Age=0" in role_cookie(response)


def test_forged_claim_falls_through_to_identity_backend(gate_app, gate_identity):
    unsigned_admin = issue_role_claim("admin", secret="")
    response = request(gate_app, "/admin", role_claim=unsigned_admin, token="admin-token")
    assert gate_identity.user_lookups == 1
    assert response.status_code == 200


def test_slow_path_serves_admin_and_refreshes_claim(gate_app):
    response = request(gate_app, "/admin", token="admin-token")
    assert response.status_code == 200

    cookie = role_cookie(response)
    assert cookie is not None
    assert "HttpOnly" in cookie
    value = cookie.split(";", 1)[0].split("=", 1)[1].strip('"')
    claim = verify_role_claim(value)
    assert claim.valid
    assert claim.role == "admin"


def test_slow_path_signs_out_non_admin_on_admin_pages(gate_app):
    response = request(gate_app, "/admin", token="patient-token")
    assert response.headers["location"] == SIGNOUT_TO_SIGNIN


def test_slow_path_moves_admin_off_dashboard(gate_app):
    response = request(gate_app, "/dashboard", token="admin-token")
    assert response.headers["location"] == "/admin"


def test_bearer_header_is_honoured(gate_app):
    client = TestClient(gate_app, follow_redirects=False)
    response = client.get("/admin", headers={"Authorization": "Bearer admin-token"})
    assert response.status_code == 200


def test_identity_failure_resolves_to_signed_out(gate_app, gate_identity):
    gate_identity.fail = True
    response = request(gate_app, "/admin", token="admin-token")
    assert response.headers["location"] == "/signin"

    response = request(gate_app, "/my-bookings", token="patient-token")
    assert response.status_code == 200
    assert "Max-Age=0" in role_cookie(response)
