"""
Browse AI 职位源：对每个配置的 robot 启动一次任务，轮询到完成后取 capturedLists 中的职位列表。

需配置 BROWSEAI_API_KEY 与 BROWSEAI_ROBOT_IDS（或 BROWSEAI_ROBOT_ID）。
单个 robot 失败只影响它自己（返回空列表），多个 robot 并行拉取后按 (title, company, location) 去重。
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from hirematch.core.config import (
    browse_ai_api_key,
    browse_ai_base_url,
    browse_ai_robot_ids,
    browse_ai_task_timeout,
)
from hirematch.core.errors import sanitize_error
from hirematch.jobs.schemas import SENTINEL_URL, ScrapedJob
from .base import JobSource

logger = logging.getLogger(__name__)

# robot 常用的列表名，按顺序尝试；都没有时取第一个列表
LIST_NAMES = ("jobs", "job_listings", "listings", "results", "items")


class BrowseAiError(Exception):
    """Browse AI 接口返回非 2xx。"""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class ScraperTaskError(BrowseAiError):
    """任务执行失败（status=failed）。"""


class ScraperTimeoutError(BrowseAiError):
    """任务在截止时间内未完成；调用方应视为终态，不在同一次调用内重试。"""


class BrowseAiClient:
    """Browse AI v2 REST 的最小封装；http 由调用方创建并关闭。"""

    def __init__(self, http: httpx.AsyncClient, api_key: str, poll_interval: float = 2.0):
        if not api_key:
            raise BrowseAiError("Browse AI API key is missing")
        self._http = http
        self._headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        self.poll_interval = poll_interval

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        resp = await self._http.request(method, path, headers=self._headers, **kwargs)
        if resp.is_success:
            try:
                return resp.json()
            except ValueError:
                raise BrowseAiError(
                    f"Browse AI API returned a non-JSON body for {method} {path}", status=resp.status_code
                ) from None
        message = f"Browse AI API Error: {resp.status_code} {resp.reason_phrase}"
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            if body.get("messageCode") == "credits_limit_reached":
                message = "Browse AI credits limit reached. Please add credits to your Browse AI account."
            elif body.get("message") or body.get("error"):
                message += f" - {body.get('message') or body.get('error')}"
        elif resp.text:
            message += f" - {resp.text[:200]}"
        raise BrowseAiError(message, status=resp.status_code)

    async def get_robots(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/robots")
        return ((data.get("robots") or {}).get("items")) or []

    async def run_robot_task(self, robot_id: str, input_parameters: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", f"/robots/{robot_id}/tasks", json={"inputParameters": input_parameters})
        return data.get("result") or {}

    async def get_robot_task(self, robot_id: str, task_id: str) -> dict[str, Any]:
        data = await self._request("GET", f"/robots/{robot_id}/tasks/{task_id}")
        return data.get("result") or {}

    async def wait_for_task_completion(self, robot_id: str, task_id: str, timeout: float = 60.0) -> dict[str, Any]:
        """轮询任务直到 successful；failed 抛 ScraperTaskError，超过 timeout 秒抛 ScraperTimeoutError。"""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            task = await self.get_robot_task(robot_id, task_id)
            status = task.get("status")
            if status == "successful":
                return task
            if status == "failed":
                raise ScraperTaskError(f"Browse AI task {task_id} failed")
            await asyncio.sleep(self.poll_interval)
        raise ScraperTimeoutError(f"Browse AI task {task_id} timed out after {timeout:.0f}s")


def build_input_parameters(robot: dict[str, Any]) -> dict[str, Any]:
    """按 robot 声明的输入参数取默认值；数字型无默认时取 10，其余无默认则不传。"""
    params: dict[str, Any] = {}
    for param in robot.get("inputParameters") or []:
        name = param.get("name")
        if not name:
            continue
        if param.get("defaultValue") is not None:
            params[name] = param["defaultValue"]
        elif param.get("type") == "number":
            params[name] = 10
        elif param.get("value") is not None:
            params[name] = param["value"]
    return params


def pick_captured_list(task: dict[str, Any]) -> list[dict[str, Any]]:
    lists = task.get("capturedLists") or {}
    for name in LIST_NAMES:
        if lists.get(name):
            return lists[name]
    for value in lists.values():
        return value or []
    return []


def normalize_browse_ai_job(item: dict[str, Any]) -> ScrapedJob:
    description = str(item.get("description") or item.get("summary") or "")
    short = description[:150] + ("..." if len(description) > 150 else "")
    return ScrapedJob(
        title=str(item.get("title") or item.get("job_title") or "Untitled Role"),
        company=str(item.get("company") or item.get("company_name") or "Unknown Company"),
        location=str(item.get("location") or item.get("job_location") or "Remote"),
        job_type=str(item.get("job_type") or item.get("type") or "Full-time"),
        short_description=short,
        full_description=description,
        source_url=str(item.get("url") or item.get("link") or item.get("source_url") or SENTINEL_URL),
    )


def dedupe_jobs(jobs: list[ScrapedJob]) -> list[ScrapedJob]:
    """按 (title, company, location) 去重，保留首次出现。"""
    seen: set[tuple[str, str, str]] = set()
    out: list[ScrapedJob] = []
    for job in jobs:
        key = (job.title, job.company, job.location)
        if key in seen:
            continue
        seen.add(key)
        out.append(job)
    return out


class BrowseAiJobSource(JobSource):
    """从 Browse AI robots 拉取职位。"""

    source_id = "browse_ai"

    def __init__(
        self,
        api_key: str | None = None,
        robot_ids: list[str] | None = None,
        base_url: str | None = None,
        task_timeout: float | None = None,
        poll_interval: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = (api_key if api_key is not None else browse_ai_api_key()).strip()
        self.robot_ids = robot_ids if robot_ids is not None else browse_ai_robot_ids()
        self.base_url = base_url or browse_ai_base_url()
        self.task_timeout = task_timeout if task_timeout is not None else browse_ai_task_timeout()
        self.poll_interval = poll_interval
        self._transport = transport

    async def fetch_latest_postings(self) -> list[ScrapedJob]:
        if not self.api_key or not self.robot_ids:
            logger.warning("Browse AI not configured (BROWSEAI_API_KEY / BROWSEAI_ROBOT_IDS), no jobs fetched")
            return []
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=30.0, transport=self._transport) as http:
                client = BrowseAiClient(http, self.api_key, poll_interval=self.poll_interval)
                robots = await client.get_robots()
                batches = await asyncio.gather(
                    *(self._fetch_from_robot(client, robots, rid) for rid in self.robot_ids)
                )
        except (BrowseAiError, httpx.HTTPError) as e:
            logger.error("Failed to fetch jobs from Browse AI: %s", sanitize_error(e))
            return []
        jobs = dedupe_jobs([job for batch in batches for job in batch])
        logger.info("Fetched %d unique jobs from %d robot(s)", len(jobs), len(self.robot_ids))
        return jobs

    async def _fetch_from_robot(
        self, client: BrowseAiClient, robots: list[dict[str, Any]], robot_id: str
    ) -> list[ScrapedJob]:
        robot = next((r for r in robots if r.get("id") == robot_id), None)
        if robot is None:
            logger.warning("Robot %s not found", robot_id)
            return []
        try:
            task = await client.run_robot_task(robot_id, build_input_parameters(robot))
            logger.info("Task %s started for robot %s, waiting for completion", task.get("id"), robot.get("name"))
            done = await client.wait_for_task_completion(robot_id, task["id"], timeout=self.task_timeout)
        except Exception as e:
            logger.error("Failed to fetch jobs from robot %s: %s", robot_id, sanitize_error(e))
            return []
        raw = pick_captured_list(done)
        return [normalize_browse_ai_job(item) for item in raw if isinstance(item, dict)]
