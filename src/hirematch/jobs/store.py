"""
职位持久化协作方：同步与匹配只依赖这里的几个异步方法。

每个方法各开一个 AsyncSession，同一批次内的并发条目互不共享事务。
"""
from __future__ import annotations

from typing import Literal, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from hirematch.db.base import utcnow
from hirematch.db.models import Job

from .schemas import JobPosting, ScrapedJob

OrderBy = Literal["posted_at", "created_at", "updated_at"]
Order = Literal["asc", "desc"]

_ORDER_COLUMNS = {
    "posted_at": Job.posted_at,
    "created_at": Job.created_at,
    "updated_at": Job.updated_at,
}


class JobStore(Protocol):
    async def find_job_by_url_or_composite_key(self, scraped: ScrapedJob) -> Optional[JobPosting]: ...

    async def create_job(self, scraped: ScrapedJob) -> JobPosting: ...

    async def update_job(self, job_id: str, scraped: ScrapedJob) -> JobPosting: ...

    async def list_jobs(
        self, limit: int = 100, offset: int = 0, order_by: OrderBy = "posted_at", order: Order = "desc"
    ) -> list[JobPosting]: ...

    async def get_job_by_id(self, job_id: str) -> Optional[JobPosting]: ...

    async def count_jobs(self) -> int: ...


class SqlJobStore:
    """基于 SQLAlchemy 的 JobStore 实现。"""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def find_job_by_url_or_composite_key(self, scraped: ScrapedJob) -> Optional[JobPosting]:
        """
        有真实链接时只按 source_url 查；链接缺失或为 "#" 时按 (title, company, location) 精确匹配。
        """
        url = scraped.identity_url
        if url is not None:
            stmt = select(Job).where(Job.source_url == url)
        else:
            stmt = select(Job).where(
                Job.title == scraped.title,
                Job.company == scraped.company,
                Job.location == scraped.location,
            )
        async with self._session_factory() as session:
            row = (await session.execute(stmt.order_by(Job.created_at).limit(1))).scalar_one_or_none()
            return JobPosting.model_validate(row) if row else None

    async def create_job(self, scraped: ScrapedJob) -> JobPosting:
        now = utcnow()
        job = Job(
            title=scraped.title,
            company=scraped.company,
            location=scraped.location,
            job_type=scraped.job_type,
            short_description=scraped.short_description,
            full_description=scraped.full_description,
            source_url=scraped.identity_url,
            posted_at=now,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            session.add(job)
            await session.commit()
            return JobPosting.model_validate(job)

    async def update_job(self, job_id: str, scraped: ScrapedJob) -> JobPosting:
        """覆盖除 id / created_at / posted_at 以外的字段；新数据无真实链接时保留原链接。"""
        async with self._session_factory() as session:
            job = await session.get(Job, job_id)
            if job is None:
                raise LookupError(f"job {job_id} disappeared before update")
            job.title = scraped.title
            job.company = scraped.company
            job.location = scraped.location
            job.job_type = scraped.job_type
            job.short_description = scraped.short_description
            job.full_description = scraped.full_description
            job.source_url = scraped.identity_url or job.source_url
            job.updated_at = utcnow()
            await session.commit()
            return JobPosting.model_validate(job)

    async def list_jobs(
        self, limit: int = 100, offset: int = 0, order_by: OrderBy = "posted_at", order: Order = "desc"
    ) -> list[JobPosting]:
        column = _ORDER_COLUMNS.get(order_by, Job.posted_at)
        ordering = column.asc() if order == "asc" else column.desc()
        stmt = select(Job).order_by(ordering, Job.id).limit(limit).offset(offset)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [JobPosting.model_validate(r) for r in rows]

    async def get_job_by_id(self, job_id: str) -> Optional[JobPosting]:
        async with self._session_factory() as session:
            job = await session.get(Job, job_id)
            return JobPosting.model_validate(job) if job else None

    async def count_jobs(self) -> int:
        async with self._session_factory() as session:
            return int((await session.execute(select(func.count()).select_from(Job))).scalar_one())
