"""
职位同步：按身份键新增/更新、分批并发、单条失败不影响其余条目。
"""
import asyncio
import uuid
from typing import Optional

from hirematch.db.base import utcnow
from hirematch.jobs.schemas import JobPosting, ScrapedJob
from hirematch.jobs.sources.base import JobSource
from hirematch.jobs.sync import JobSyncReconciler, sync_jobs


class FakeJobStore:
    """内存版 JobStore，记录每次写入的开始/结束事件。"""

    def __init__(self, fail_titles: tuple[str, ...] = (), delay: float = 0.0):
        self.jobs: dict[str, JobPosting] = {}
        self.events: list[tuple[str, str]] = []
        self.fail_titles = fail_titles
        self.delay = delay

    async def find_job_by_url_or_composite_key(self, scraped: ScrapedJob) -> Optional[JobPosting]:
        url = scraped.identity_url
        for job in self.jobs.values():
            if url is not None:
                if job.source_url == url:
                    return job
            elif (job.title, job.company, job.location) == (scraped.title, scraped.company, scraped.location):
                return job
        return None

    async def _write(self, scraped: ScrapedJob) -> None:
        self.events.append(("start", scraped.title))
        await asyncio.sleep(self.delay)
        if scraped.title in self.fail_titles:
            self.events.append(("end", scraped.title))
            raise RuntimeError("database unavailable for alice@example.com")
        self.events.append(("end", scraped.title))

    async def create_job(self, scraped: ScrapedJob) -> JobPosting:
        await self._write(scraped)
        now = utcnow()
        job = JobPosting(
            id=str(uuid.uuid4()),
            **scraped.model_dump(exclude={"source_url"}),
            source_url=scraped.identity_url,
            posted_at=now,
            created_at=now,
            updated_at=now,
        )
        self.jobs[job.id] = job
        return job

    async def update_job(self, job_id: str, scraped: ScrapedJob) -> JobPosting:
        await self._write(scraped)
        old = self.jobs[job_id]
        job = old.model_copy(
            update={
                **scraped.model_dump(exclude={"source_url"}),
                "source_url": scraped.identity_url or old.source_url,
                "updated_at": utcnow(),
            }
        )
        self.jobs[job_id] = job
        return job


class FakeSource(JobSource):
    source_id = "fake"

    def __init__(self, jobs=None, error: Optional[Exception] = None):
        self.jobs = jobs or []
        self.error = error

    async def fetch_latest_postings(self):
        if self.error is not None:
            raise self.error
        return list(self.jobs)


def _job(n: int, url: Optional[str] = None, **overrides) -> ScrapedJob:
    data = dict(
        title=f"Engineer {n}",
        company="Acme",
        location="Remote",
        job_type="Full-time",
        short_description="short",
        full_description=f"Job {n} description",
        source_url=url if url is not None else f"https://jobs.example.com/{n}",
    )
    data.update(overrides)
    return ScrapedJob(**data)


async def test_sync_three_new_postings():
    store = FakeJobStore()
    result = await JobSyncReconciler(store, FakeSource([_job(1), _job(2), _job(3)])).run()
    assert (result.created, result.updated, result.total, result.errors) == (3, 0, 3, [])
    assert len(store.jobs) == 3


async def test_second_run_updates_instead_of_creating():
    store = FakeJobStore()
    source = FakeSource([_job(1), _job(2), _job(3)])
    await JobSyncReconciler(store, source).run()
    result = await JobSyncReconciler(store, source).run()
    assert result.created == 0
    assert result.updated == 3
    assert len(store.jobs) == 3


async def test_same_url_with_changed_fields_updates_in_place():
    store = FakeJobStore()
    await JobSyncReconciler(store, FakeSource([_job(1)])).run()
    original = next(iter(store.jobs.values()))

    changed = _job(1, title="Staff Engineer", location="Berlin")
    result = await JobSyncReconciler(store, FakeSource([changed])).run()

    assert (result.created, result.updated) == (0, 1)
    updated = store.jobs[original.id]
    assert updated.title == "Staff Engineer"
    assert updated.location == "Berlin"
    assert updated.posted_at == original.posted_at


async def test_sentinel_url_falls_back_to_composite_key():
    store = FakeJobStore()
    await JobSyncReconciler(store, FakeSource([_job(1, url="#")])).run()
    result = await JobSyncReconciler(store, FakeSource([_job(1, url="#", full_description="new text")])).run()
    assert (result.created, result.updated) == (0, 1)
    job = next(iter(store.jobs.values()))
    assert job.source_url is None
    assert job.full_description == "new text"


async def test_fetch_failure_is_soft():
    source = FakeSource(error=RuntimeError("robot exploded, key sk-abcdefghijklmnopqrstuvwxyz"))
    result = await JobSyncReconciler(FakeJobStore(), source).run()
    assert result.total == 0
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Failed to fetch jobs: ")
    assert "sk-abcdefghij" not in result.errors[0]


async def test_empty_fetch_reports_no_jobs():
    result = await JobSyncReconciler(FakeJobStore(), FakeSource([])).run()
    assert result.total == 0
    assert result.errors == ["No jobs fetched from job source"]


async def test_failing_item_does_not_stop_others():
    store = FakeJobStore(fail_titles=("Engineer 2",))
    result = await JobSyncReconciler(store, FakeSource([_job(1), _job(2), _job(3)])).run()
    assert result.created == 2
    assert result.total == 3
    assert len(result.errors) == 1
    assert result.errors[0].startswith('Error syncing job "Engineer 2" at Acme: ')
    assert "alice@example.com" not in result.errors[0]


async def test_next_batch_waits_for_previous_batch():
    store = FakeJobStore(delay=0.01)
    jobs = [_job(i) for i in range(5)]
    await JobSyncReconciler(store, FakeSource(jobs), batch_size=2).run()

    def position(kind: str, title: str) -> int:
        return store.events.index((kind, title))

    batches = [jobs[0:2], jobs[2:4], jobs[4:5]]
    for prev, nxt in zip(batches, batches[1:]):
        last_end = max(position("end", j.title) for j in prev)
        first_start = min(position("start", j.title) for j in nxt)
        assert last_end < first_start


async def test_batch_size_from_config_loader():
    seen = []

    async def loader(name):
        seen.append(name)
        return {"batchSize": 4}

    reconciler = JobSyncReconciler(FakeJobStore(), FakeSource([_job(1)]), config_loader=loader)
    assert await reconciler._resolve_batch_size() == 4
    assert seen == ["job-sync"]


async def test_invalid_config_batch_size_uses_default(monkeypatch):
    monkeypatch.setenv("HIREMATCH_SYNC_BATCH_SIZE", "7")

    async def loader(name):
        return {"batchSize": "lots"}

    reconciler = JobSyncReconciler(FakeJobStore(), FakeSource([]), config_loader=loader)
    assert await reconciler._resolve_batch_size() == 7


async def test_explicit_batch_size_wins_over_config():
    async def loader(name):
        raise AssertionError("config should not be read")

    reconciler = JobSyncReconciler(FakeJobStore(), FakeSource([]), config_loader=loader, batch_size=3)
    assert await reconciler._resolve_batch_size() == 3


async def test_sync_jobs_helper_runs_once():
    store = FakeJobStore()
    result = await sync_jobs(store, FakeSource([_job(1), _job(2)]))
    assert (result.created, result.updated, result.total) == (2, 0, 2)
