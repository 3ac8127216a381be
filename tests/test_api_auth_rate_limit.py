"""
鉴权与限流：Bearer token → user_id；按客户端 IP 固定窗口计数。
"""
import pytest
from fastapi import HTTPException

from conftest import AUTH_HEADER
from hirematch.api import rate_limit
from hirematch.api.auth import get_auth, get_bearer_token, get_sync_auth, verify_token


def test_bearer_token_parsing():
    assert get_bearer_token("Bearer abc") == "abc"
    assert get_bearer_token("bearer  abc ") == "abc"
    assert get_bearer_token("Basic abc") is None
    assert get_bearer_token("Bearer ") is None
    assert get_bearer_token(None) is None


def test_stub_user_id_derived_from_token():
    assert verify_token("test-user-1").user_id == "stub-test-user-1"
    assert verify_token("!!!").user_id == "stub-anon"


def test_get_auth_rejects_missing_token():
    with pytest.raises(HTTPException) as info:
        get_auth(None)
    assert info.value.status_code == 401
    assert info.value.detail == "Unauthorized. Please sign in."


def test_remote_auth_failure_is_401(monkeypatch):
    monkeypatch.setenv("QUANTUM_AUTH_URL", "http://127.0.0.1:1/verify")
    with pytest.raises(HTTPException) as info:
        get_auth("Bearer some-token")
    assert info.value.detail == "Invalid or expired token"


def test_sync_auth_optional_by_default(monkeypatch):
    assert get_sync_auth(None) is None
    monkeypatch.setenv("HIREMATCH_SYNC_REQUIRE_AUTH", "true")
    with pytest.raises(HTTPException):
        get_sync_auth(None)
    assert get_sync_auth("Bearer cron").user_id == "stub-cron"


def test_fixed_window_check():
    rule = rate_limit.RateLimitRule("t", 2, 10.0)
    assert rate_limit.check(rule, "ip", now=100.0) == (True, 1, 110.0)
    assert rate_limit.check(rule, "ip", now=101.0) == (True, 0, 110.0)
    assert rate_limit.check(rule, "ip", now=102.0) == (False, 0, 110.0)
    # 其他客户端互不影响
    assert rate_limit.check(rule, "other", now=102.0)[0] is True
    # 窗口结束后重新计数
    assert rate_limit.check(rule, "ip", now=110.0) == (True, 1, 120.0)


def test_eleventh_request_is_rejected(client, monkeypatch):
    monkeypatch.setenv("HIREMATCH_RATE_LIMIT_ENABLED", "true")
    for i in range(10):
        resp = client.get("/v1/jobs")
        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Remaining"] == str(9 - i)

    resp = client.get("/v1/jobs")
    assert resp.status_code == 429
    body = resp.json()
    assert body["message"] == "Rate limit exceeded. Please try again later."
    assert body["retryAfter"] >= 1
    assert resp.headers["Retry-After"] == str(body["retryAfter"])
    assert resp.headers["X-RateLimit-Limit"] == "10"


def test_ai_endpoints_have_tighter_limit(client, monkeypatch):
    monkeypatch.setenv("HIREMATCH_RATE_LIMIT_ENABLED", "true")
    for _ in range(3):
        assert client.get("/v1/jobs/match", headers=AUTH_HEADER).status_code == 400
    assert client.get("/v1/jobs/match", headers=AUTH_HEADER).status_code == 429


def test_forwarded_for_identifies_client(client, monkeypatch):
    monkeypatch.setenv("HIREMATCH_RATE_LIMIT_ENABLED", "true")
    for _ in range(10):
        client.get("/v1/jobs", headers={"X-Forwarded-For": "10.0.0.1, 10.0.0.2"})
    assert client.get("/v1/jobs", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429
    assert client.get("/v1/jobs", headers={"X-Forwarded-For": "10.0.0.9"}).status_code == 200


def test_expired_windows_are_swept():
    rule = rate_limit.RateLimitRule("t", 5, 10.0)
    for i in range(500):
        rate_limit.check(rule, f"client-{i}", now=0.0)
    assert len(rate_limit._memory) == 500

    rate_limit.check(rule, "late", now=10_000.0)
    assert list(rate_limit._memory) == [("t", "late")]
