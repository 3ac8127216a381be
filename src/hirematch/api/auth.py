"""
认证：从请求头取 Bearer token，远程校验（配置 QUANTUM_AUTH_URL 时）或 stub，将 user_id 注入请求上下文。

未配置 QUANTUM_AUTH_URL 时使用 stub：任意非空 token 视为一个用户，user_id 由 token 派生。
"""
import json
import logging
import os
import re
import urllib.error
import urllib.request
from dataclasses import dataclass

from fastapi import Header, HTTPException

from hirematch.core.config import sync_requires_auth

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    """请求上下文中的用户身份。"""
    user_id: str


def get_bearer_token(authorization: str | None = Header(None, alias="Authorization")) -> str | None:
    """从请求头取出 Bearer token；无头或格式不对返回 None。"""
    if not authorization or not isinstance(authorization, str):
        return None
    auth = authorization.strip()
    if not auth.lower().startswith("bearer "):
        return None
    token = auth[7:].strip()
    return token if token else None


def _verify_token_stub(token: str) -> AuthContext:
    safe = re.sub(r"[^a-zA-Z0-9\-]", "", token[:32]) or "anon"
    return AuthContext(user_id=f"stub-{safe}")


def _verify_token_remote(url: str, token: str) -> AuthContext | None:
    """调用认证服务校验 token；非 200、网络错误或缺 user_id 返回 None。"""
    req = urllib.request.Request(url, headers={"Authorization": f"Bearer {token}"}, method="GET")
    try:
        with urllib.request.urlopen(req, timeout=5) as resp:
            if resp.status != 200:
                return None
            data = json.loads(resp.read().decode())
    except (urllib.error.URLError, TimeoutError, ValueError) as e:
        logger.warning("Remote token verification failed: %s", type(e).__name__)
        return None
    user_id = data.get("user_id") if isinstance(data, dict) else None
    return AuthContext(user_id=str(user_id)) if user_id else None


def verify_token(token: str) -> AuthContext | None:
    """配置了 QUANTUM_AUTH_URL 则只认远程结果，否则 stub。"""
    url = os.environ.get("QUANTUM_AUTH_URL", "").strip()
    if url:
        return _verify_token_remote(url, token)
    return _verify_token_stub(token)


def get_auth(authorization: str | None = Header(None, alias="Authorization")) -> AuthContext:
    """
    依赖项：无 token 或校验失败抛出 401。
    """
    token = get_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized. Please sign in.")
    ctx = verify_token(token)
    if ctx is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return ctx


def get_optional_auth(authorization: str | None = Header(None, alias="Authorization")) -> AuthContext | None:
    """依赖项：有 token 则校验（失败 401），没有则返回 None。"""
    if not get_bearer_token(authorization):
        return None
    return get_auth(authorization)


def get_sync_auth(authorization: str | None = Header(None, alias="Authorization")) -> AuthContext | None:
    """职位同步的鉴权：HIREMATCH_SYNC_REQUIRE_AUTH=true 时必须登录，否则可匿名（供定时任务调用）。"""
    if sync_requires_auth():
        return get_auth(authorization)
    return get_optional_auth(authorization)
