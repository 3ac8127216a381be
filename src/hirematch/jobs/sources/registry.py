"""根据配置返回当前使用的职位源。"""
import logging

from hirematch.core.config import (
    apify_actor_ids,
    apify_api_token,
    browse_ai_api_key,
    browse_ai_robot_ids,
    job_source_id,
)
from hirematch.jobs.sources.base import JobSource
from hirematch.jobs.sources.mock import MockJobSource

logger = logging.getLogger(__name__)


def resolve_source_id(source_id: str | None = None) -> str:
    """
    auto：配置了 Browse AI（key + robot）用 browse_ai；否则配置了 Apify（token + actor）用 apify；都没有用 mock。
    """
    sid = (source_id or job_source_id()).strip().lower()
    if sid != "auto":
        return sid
    if browse_ai_api_key() and browse_ai_robot_ids():
        return "browse_ai"
    if apify_api_token() and apify_actor_ids():
        return "apify"
    return "mock"


def get_job_source(source_id: str | None = None) -> JobSource:
    """
    返回职位源实例。
    source_id 可选：auto（默认）、browse_ai、apify、mock；不传则读 HIREMATCH_JOB_SOURCE。
    """
    sid = resolve_source_id(source_id)
    if sid == "browse_ai":
        from hirematch.jobs.sources.browse_ai import BrowseAiJobSource
        return BrowseAiJobSource()
    if sid == "apify":
        from hirematch.jobs.sources.apify_actors import ApifyActorsJobSource
        return ApifyActorsJobSource()
    if sid != "mock":
        logger.warning("Unknown job source %r, falling back to mock", sid)
    return MockJobSource()
