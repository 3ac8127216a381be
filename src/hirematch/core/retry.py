"""
异步重试：指数退避，仅对可重试错误（429 / 5xx）重试，其余错误立即抛出。
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def error_status(exc: BaseException) -> int | None:
    """取异常上的 HTTP 状态码：LLMError.status、LiteLLM 的 status_code、httpx 响应。"""
    for attr in ("status", "status_code"):
        val = getattr(exc, attr, None)
        if isinstance(val, int):
            return val
    response = getattr(exc, "response", None)
    val = getattr(response, "status_code", None)
    return val if isinstance(val, int) else None


def is_retryable_status(exc: BaseException) -> bool:
    """限流（429）或服务端错误（>=500）才重试；鉴权、参数错误等直接失败。"""
    status = error_status(exc)
    if status is None:
        return False
    return status == 429 or status >= 500


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    retryable: Callable[[BaseException], bool] = is_retryable_status,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    调用 fn，失败且 retryable(exc) 为真时等待后重试，延迟每次翻倍并封顶 max_delay。
    最多调用 max_attempts 次；最后一次的异常原样抛出。
    """
    delay = initial_delay
    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except Exception as exc:
            if attempt >= max_attempts or not retryable(exc):
                raise
            logger.warning(
                "attempt %d/%d failed (status=%s), retrying in %.1fs",
                attempt,
                max_attempts,
                error_status(exc),
                delay,
            )
            await sleep(delay)
            delay = min(delay * 2, max_delay)
    raise RuntimeError("with_retry called with max_attempts < 1")
