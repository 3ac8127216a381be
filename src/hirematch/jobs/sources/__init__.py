"""
职位源：拉取最新职位列表，交给同步器入库。
- browse_ai：Browse AI robots，需 BROWSEAI_API_KEY + BROWSEAI_ROBOT_IDS。
- apify：Apify actors 最近一次成功运行的结果，需 APIFY_API_TOKEN。
- mock：内置几条示例职位，无需 API Key，用于本地开发与测试。
"""
from .base import JobSource
from .mock import MockJobSource
from .registry import get_job_source, resolve_source_id

__all__ = ["JobSource", "MockJobSource", "get_job_source", "resolve_source_id"]
