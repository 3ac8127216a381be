"""
请求限流：按客户端 IP 固定窗口计数，进程内内存存储。

- api：10 次 / 10 秒（普通接口）
- ai：3 次 / 60 秒（调用 LLM 的接口）
HIREMATCH_RATE_LIMIT_ENABLED=false 时关闭；测试中用 reset() 清空计数。
"""
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Callable

from fastapi import HTTPException, Request, Response

from hirematch.core.config import rate_limit_enabled


@dataclass(frozen=True)
class RateLimitRule:
    name: str
    max_requests: int
    window_seconds: float


API_RULE = RateLimitRule("api", 10, 10.0)
AI_RULE = RateLimitRule("ai", 3, 60.0)

# (规则名, 客户端) -> (窗口结束时间戳, 已用次数)
_memory: dict[tuple[str, str], tuple[float, int]] = {}
_lock = Lock()
# 过期窗口每 60 秒清扫一次
SWEEP_INTERVAL = 60.0
_next_sweep = 0.0


def get_client_ip(request: Request) -> str:
    """X-Forwarded-For 最左端 > X-Real-IP > request.client.host。"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real = request.headers.get("X-Real-IP")
    if real:
        return real.strip()
    if request.client:
        return request.client.host or "unknown"
    return "unknown"


def check(rule: RateLimitRule, client_id: str, now: float | None = None) -> tuple[bool, int, float]:
    """
    计一次请求；返回 (是否放行, 剩余次数, 窗口结束时间戳)。超限时不计数。
    """
    global _next_sweep
    now = time.time() if now is None else now
    key = (rule.name, client_id)
    with _lock:
        if now >= _next_sweep:
            _sweep(now)
            _next_sweep = now + SWEEP_INTERVAL
        reset_at, used = _memory.get(key, (0.0, 0))
        if reset_at <= now:
            reset_at, used = now + rule.window_seconds, 0
        if used >= rule.max_requests:
            return False, 0, reset_at
        used += 1
        _memory[key] = (reset_at, used)
    return True, rule.max_requests - used, reset_at


def _sweep(now: float) -> None:
    """删除窗口已结束的计数；调用方持有 _lock。"""
    for key in [k for k, (reset_at, _) in _memory.items() if reset_at <= now]:
        del _memory[key]


def reset() -> None:
    global _next_sweep
    with _lock:
        _memory.clear()
        _next_sweep = 0.0


def _headers(rule: RateLimitRule, remaining: int, reset_at: float) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(rule.max_requests),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": datetime.fromtimestamp(reset_at, tz=timezone.utc).isoformat(),
    }


def rate_limit(rule: RateLimitRule) -> Callable[[Request, Response], None]:
    """生成 FastAPI 依赖项：超限抛 429（带 Retry-After），放行时在响应上写 X-RateLimit-* 头。"""

    def dependency(request: Request, response: Response) -> None:
        if not rate_limit_enabled():
            return
        allowed, remaining, reset_at = check(rule, get_client_ip(request))
        headers = _headers(rule, remaining, reset_at)
        if not allowed:
            retry_after = max(1, math.ceil(reset_at - time.time()))
            raise HTTPException(
                status_code=429,
                detail={"message": "Rate limit exceeded. Please try again later.", "retryAfter": retry_after},
                headers={**headers, "Retry-After": str(retry_after)},
            )
        response.headers.update(headers)

    dependency.__name__ = f"rate_limit_{rule.name}"
    return dependency


api_rate_limit = rate_limit(API_RULE)
ai_rate_limit = rate_limit(AI_RULE)
