"""
Apify 职位源：读取各 actor 最近一次成功运行的 dataset 与 key-value store，抽取职位。
需配置 APIFY_API_TOKEN（兼容 APIFY_API_KEY）；APIFY_ACTOR_IDS 不设时遍历账号下全部 actor。
不主动启动 actor，只消费已有的运行结果。
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from apify_client import ApifyClientAsync

from hirematch.core.config import apify_actor_ids, apify_api_token
from hirematch.core.errors import sanitize_error
from hirematch.jobs.schemas import SENTINEL_URL, ScrapedJob
from .base import JobSource

logger = logging.getLogger(__name__)

# 单个 dataset 最多读取的条数
MAX_DATASET_ITEMS = 10_000

_JOB_HINT_FIELDS = ("title", "jobTitle", "position", "company", "location", "url", "link")
_NESTED_LIST_FIELDS = ("jobs", "data", "items", "results")


def extract_job_items(value: Any) -> list[dict[str, Any]]:
    """
    从 dataset 条目或 KV 记录中抽取职位对象：
    本身像职位则原样返回；否则展开 jobs / data / items / results 中的列表。
    """
    if isinstance(value, list):
        return [v for v in value if isinstance(v, dict)]
    if not isinstance(value, dict):
        return []
    if any(value.get(f) for f in _JOB_HINT_FIELDS):
        return [value]
    for field in _NESTED_LIST_FIELDS:
        nested = value.get(field)
        if isinstance(nested, list):
            return [v for v in nested if isinstance(v, dict)]
    return []


def normalize_apify_job(item: dict[str, Any]) -> Optional[ScrapedJob]:
    """字段名各 actor 不一，按常见别名取值；没有标题的条目丢弃。"""
    if not isinstance(item, dict):
        return None
    title = item.get("title") or item.get("jobTitle") or item.get("position") or item.get("name")
    if not title:
        return None
    description = str(item.get("description") or item.get("summary") or item.get("details") or "")
    return ScrapedJob(
        title=str(title),
        company=str(item.get("company") or item.get("companyName") or item.get("employer") or "Unknown Company"),
        location=str(item.get("location") or item.get("city") or item.get("place") or "Remote"),
        job_type=str(item.get("jobType") or item.get("type") or item.get("employmentType") or "Full-time"),
        short_description=description[:150] + ("..." if len(description) > 150 else ""),
        full_description=description,
        source_url=str(
            item.get("url") or item.get("link") or item.get("sourceUrl") or item.get("applyUrl") or SENTINEL_URL
        ),
    )


class ApifyActorsJobSource(JobSource):
    """
    从 Apify actors 的最近成功运行中拉取职位。
    未配置 token 时返回空列表；单个 actor 出错只跳过该 actor。
    """

    source_id = "apify"

    def __init__(
        self,
        api_token: str | None = None,
        actor_ids: list[str] | None = None,
        client: ApifyClientAsync | None = None,
    ):
        self.api_token = (api_token if api_token is not None else apify_api_token()).strip()
        self.actor_ids = actor_ids if actor_ids is not None else apify_actor_ids()
        self._client = client

    def _get_client(self) -> ApifyClientAsync:
        if self._client is None:
            self._client = ApifyClientAsync(self.api_token)
        return self._client

    async def fetch_latest_postings(self) -> list[ScrapedJob]:
        if not self.api_token and self._client is None:
            logger.warning("APIFY_API_TOKEN not set, no jobs fetched from Apify")
            return []
        client = self._get_client()
        actor_ids = list(self.actor_ids)
        if not actor_ids:
            try:
                page = await client.actors().list()
            except Exception as e:
                logger.error("Failed to list Apify actors: %s", sanitize_error(e))
                return []
            actor_ids = [a["id"] for a in page.items if a.get("id")]
        logger.info("Checking %d Apify actor(s)", len(actor_ids))

        raw: list[dict[str, Any]] = []
        for actor_id in actor_ids:
            try:
                raw.extend(await self._items_from_actor(client, actor_id))
            except Exception as e:
                logger.error("Error processing Apify actor %s: %s", actor_id, sanitize_error(e))

        jobs = [job for job in (normalize_apify_job(item) for item in raw) if job is not None]
        logger.info("Total jobs found from Apify actors: %d", len(jobs))
        return jobs

    async def _items_from_actor(self, client: ApifyClientAsync, actor_id: str) -> list[dict[str, Any]]:
        run = await client.actor(actor_id).last_run(status="SUCCEEDED").get()
        if not run:
            logger.warning("No successful runs found for actor %s", actor_id)
            return []

        items: list[dict[str, Any]] = []
        dataset_id = run.get("defaultDatasetId")
        if dataset_id:
            count = 0
            async for entry in client.dataset(dataset_id).iterate_items():
                items.extend(extract_job_items(entry))
                count += 1
                if count >= MAX_DATASET_ITEMS:
                    break
            logger.info("Actor %s dataset %s: %d item(s)", actor_id, dataset_id, count)

        store_id = run.get("defaultKeyValueStoreId")
        if store_id:
            store = client.key_value_store(store_id)
            keys = await store.list_keys()
            for key in (k["key"] for k in keys.get("items") or []):
                record = await store.get_record(key)
                if record is not None:
                    items.extend(extract_job_items(record.get("value")))
        return items
