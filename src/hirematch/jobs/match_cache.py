"""
匹配分缓存：按 resumeId 存一整批职位的分数，带 TTL。

默认进程内存；配置 REDIS_URL 时用 Redis（键 hirematch:match:{resume_id}），Redis 不可用时退回内存。
只有缓存中的职位集合与本次待打分的职位集合完全一致时才算命中；用户主动「重新匹配」时调用 invalidate。
"""
from __future__ import annotations

import json
import logging
import threading
import time
from typing import Callable, Iterable, Optional

from hirematch.core.config import match_cache_ttl, redis_url

logger = logging.getLogger(__name__)


def _redis_key(resume_id: str) -> str:
    return f"hirematch:match:{resume_id}"


class MatchScoreCache:
    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        redis_url_: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl_seconds if ttl_seconds is not None else match_cache_ttl()
        self._redis_url = redis_url_ if redis_url_ is not None else redis_url()
        self._clock = clock
        self._memory: dict[str, tuple[float, dict[str, int]]] = {}
        self._lock = threading.Lock()
        self._redis = None

    def _client(self):
        if not self._redis_url:
            return None
        if self._redis is None:
            import redis.asyncio as aioredis
            self._redis = aioredis.from_url(self._redis_url)
        return self._redis

    @staticmethod
    def _complete(scores: dict[str, int], job_ids: Iterable[str]) -> bool:
        return set(scores) == set(job_ids)

    async def get(self, resume_id: str, job_ids: Iterable[str]) -> Optional[dict[str, int]]:
        """命中返回 {job_id: score}；过期、缺失或职位集合不一致返回 None。"""
        if self.ttl <= 0:
            return None
        job_ids = list(job_ids)
        client = self._client()
        if client is not None:
            try:
                raw = await client.get(_redis_key(resume_id))
                if raw is None:
                    return None
                scores = {k: int(v) for k, v in json.loads(raw).items()}
                return scores if self._complete(scores, job_ids) else None
            except Exception as e:
                logger.warning("Redis match cache read failed, using memory: %s", type(e).__name__)
        with self._lock:
            entry = self._memory.get(resume_id)
            if entry is None:
                return None
            expires_at, scores = entry
            if self._clock() >= expires_at:
                del self._memory[resume_id]
                return None
        return dict(scores) if self._complete(scores, job_ids) else None

    async def set(self, resume_id: str, scores: dict[str, int]) -> None:
        if self.ttl <= 0:
            return
        client = self._client()
        if client is not None:
            try:
                await client.set(_redis_key(resume_id), json.dumps(scores), ex=self.ttl)
                return
            except Exception as e:
                logger.warning("Redis match cache write failed, using memory: %s", type(e).__name__)
        with self._lock:
            now = self._clock()
            for key in [k for k, (expires_at, _) in self._memory.items() if expires_at <= now]:
                del self._memory[key]
            self._memory[resume_id] = (now + self.ttl, dict(scores))

    async def invalidate(self, resume_id: str) -> None:
        client = self._client()
        if client is not None:
            try:
                await client.delete(_redis_key(resume_id))
            except Exception as e:
                logger.warning("Redis match cache delete failed: %s", type(e).__name__)
        with self._lock:
            self._memory.pop(resume_id, None)

    async def aclose(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
