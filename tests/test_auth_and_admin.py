import asyncio
import logging
from types import SimpleNamespace

import httpx
import pytest
from sqlalchemy import text

from clinic_app import cache as cache_module
from clinic_app.auth import IdentityBackend, resolve_user
from clinic_app.cache import InMemoryCache, invalidate_namespaces
from clinic_app.config import ROLE_COOKIE_NAME
from clinic_app.database import build_engine, log_slow_queries
from clinic_app.worker import get_redis_settings
from conftest import ADMIN_HEADERS, PATIENT_HEADERS


# Identity backend client


def identity_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/auth/v1/user":
        if request.headers.get("authorization") == "Bearer good-token":
            return httpx.Response(200, json={"id": "user-1", "email": "user@example.com"})
        return httpx.Response(401, json={"message": "invalid JWT"})
    if request.url.path == "/rest/v1/profiles":
        assert request.url.params["id"] == "eq.user-1"
        return httpx.Response(200, json=[{"id": "user-1", "email": "user@example.com", "role": "admin"}])
    return httpx.Response(404)


@pytest.fixture
def real_identity():
    return IdentityBackend(
        base_url="http://identity.test", api_key="anon", transport=httpx.MockTransport(identity_handler)
    )


def test_identity_backend_resolves_user_and_role(real_identity):
    user = asyncio.run(resolve_user(real_identity, "good-token"))
    assert user.id == "user-1"
    assert user.role == "admin"
    assert user.is_admin


def test_identity_backend_rejected_token_is_signed_out(real_identity):
    assert asyncio.run(resolve_user(real_identity, "bad-token")) is None
    assert asyncio.run(resolve_user(real_identity, None)) is None


def test_identity_backend_unreachable_is_signed_out():
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    backend = IdentityBackend(base_url="http://identity.test", transport=httpx.MockTransport(unreachable))
    assert asyncio.run(resolve_user(backend, "good-token")) is None


# Auth routes


def test_me_reports_role(client):
    assert client.get("/auth/me", headers=ADMIN_HEADERS).json() == {"role": "admin"}
    assert client.get("/auth/me").json() == {"role": None}


def test_me_reads_access_token_cookie(client):
    client.cookies.set("sb-access-token", "patient-token")
    assert client.get("/auth/me").json() == {"role": "patient"}


def test_signout_clears_cookies_and_redirects(client):
    response = client.get("/auth/signout", params={"redirect": "/signin"}, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/signin"
    cookies = response.headers.get_list("set-cookie")
    assert any(c.startswith(f"{ROLE_COOKIE_NAME}=") and "Max-Age=0" in c for c in cookies)
    assert any(c.startswith("sb-access-token=") for c in cookies)


def test_signout_ignores_offsite_redirect(client):
    response = client.post(
        "/auth/signout", params={"redirect": "//evil.example"}, follow_redirects=False
    )
    assert response.headers["location"] == "/signin"


# Admin cache maintenance


def test_admin_can_clear_a_namespace(client, cache):
    cache.set("orders:1", {"id": 1})
    cache.set("orders:2", {"id": 2})
    cache.set("users:1", {"id": 1})

    response = client.post("/api/admin/cache/clear", json={"prefix": "orders:"}, headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"success": True, "cleared": 2}
    assert cache.get("users:1") == {"id": 1}


def test_cache_clear_rejects_unknown_prefix(client):
    response = client.post("/api/admin/cache/clear", json={"prefix": ""}, headers=ADMIN_HEADERS)
    assert response.status_code == 400


def test_cache_clear_is_admin_only(client):
    response = client.post("/api/admin/cache/clear", json={"prefix": "orders:"}, headers=PATIENT_HEADERS)
    assert response.status_code == 403
    assert client.post("/api/admin/cache/clear", json={"prefix": "orders:"}).status_code == 401


# Cache contract


def test_in_memory_cache_expires_entries(monkeypatch):
    cache = InMemoryCache()
    clock = [100.0]
    monkeypatch.setattr(cache_module, "time", SimpleNamespace(monotonic=lambda: clock[0]))

    cache.set("availability:x", ["9:00 am"], ttl=30)
    assert cache.get("availability:x") == ["9:00 am"]
    clock[0] += 30
    assert cache.get("availability:x") is None


def test_invalidation_failure_never_raises():
    class BrokenCache:
        def invalidate_prefix(self, prefix):
            raise ConnectionError("redis down")

    assert invalidate_namespaces(BrokenCache(), "orders:", "sessions:") == 0


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


# Infrastructure


def test_slow_statements_are_logged(caplog):
    engine = build_engine("sqlite://")
    log_slow_queries(engine, threshold=0.0)

    with caplog.at_level(logging.WARNING, logger="clinic_app.database"):
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    assert any("Slow query" in r.message and "SELECT 1" in r.message for r in caplog.records)


def test_worker_redis_settings_from_url(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "rediss://:secret@cache.example:6380/2")
    settings = get_redis_settings()
    assert settings.host == "cache.example"
    assert settings.port == 6380
    assert settings.password == "secret"
    assert settings.ssl is True
    assert settings.database == 2
    assert settings.conn_timeout == 15


def test_worker_redis_settings_from_parts(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("REDIS_SSL", raising=False)
    monkeypatch.setenv("REDIS_HOST", "redis.internal")
    monkeypatch.setenv("REDIS_PORT", "6390")
    settings = get_redis_settings()
    assert (settings.host, settings.port, settings.ssl) == ("redis.internal", 6390, False)
