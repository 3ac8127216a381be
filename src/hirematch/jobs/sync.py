"""
职位同步：把职位源拉到的最新职位合并进职位库。

同一职位（有真实链接按链接，否则按 title+company+location）只更新不新增；
按批并发写库，上一批全部结束后才开始下一批。单条失败记入 errors，不影响其余条目。
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from hirematch.core.config import sync_batch_size
from hirematch.core.errors import sanitize_error
from hirematch.jobs.schemas import ScrapedJob, SyncResult
from hirematch.jobs.sources.base import JobSource
from hirematch.jobs.store import JobStore

logger = logging.getLogger(__name__)

ConfigLoader = Callable[[str], Awaitable[Optional[dict[str, Any]]]]

# 运行期配置记录名（Apify KV 中为 "job-sync-config"）
CONFIG_NAME = "job-sync"


class JobSyncReconciler:
    def __init__(
        self,
        store: JobStore,
        source: JobSource,
        config_loader: Optional[ConfigLoader] = None,
        batch_size: Optional[int] = None,
    ):
        self.store = store
        self.source = source
        self.config_loader = config_loader
        self.batch_size = batch_size

    async def _resolve_batch_size(self) -> int:
        if self.batch_size is not None and self.batch_size > 0:
            return self.batch_size
        if self.config_loader is not None:
            config = await self.config_loader(CONFIG_NAME)
            value = (config or {}).get("batchSize")
            if isinstance(value, int) and not isinstance(value, bool) and value > 0:
                return value
        return max(1, sync_batch_size())

    async def _sync_one(self, scraped: ScrapedJob) -> str:
        """返回 "created" 或 "updated"。"""
        existing = await self.store.find_job_by_url_or_composite_key(scraped)
        if existing is not None:
            await self.store.update_job(existing.id, scraped)
            return "updated"
        await self.store.create_job(scraped)
        return "created"

    async def run(self) -> SyncResult:
        result = SyncResult()
        batch_size = await self._resolve_batch_size()
        logger.info("Starting job sync from source %s (batch size %d)", self.source.source_id, batch_size)

        try:
            scraped_jobs = await self.source.fetch_latest_postings()
        except Exception as e:
            message = f"Failed to fetch jobs: {sanitize_error(e)}"
            logger.error(message)
            result.errors.append(message)
            return result

        if not scraped_jobs:
            logger.warning("No jobs fetched from job source")
            result.errors.append("No jobs fetched from job source")
            return result

        result.total = len(scraped_jobs)
        for start in range(0, len(scraped_jobs), batch_size):
            batch = scraped_jobs[start : start + batch_size]
            outcomes = await asyncio.gather(
                *(self._sync_one(job) for job in batch), return_exceptions=True
            )
            for job, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    message = f'Error syncing job "{job.title}" at {job.company}: {sanitize_error(outcome)}'
                    logger.error(message)
                    result.errors.append(message)
                elif outcome == "updated":
                    result.updated += 1
                else:
                    result.created += 1

        logger.info(
            "Job sync complete: %d created, %d updated, %d errors (of %d)",
            result.created,
            result.updated,
            len(result.errors),
            result.total,
        )
        return result


async def sync_jobs(store: JobStore, source: JobSource, config_loader: Optional[ConfigLoader] = None) -> SyncResult:
    """便捷入口：一次性构造同步器并执行。"""
    return await JobSyncReconciler(store, source, config_loader=config_loader).run()
