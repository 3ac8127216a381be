"""职位源抽象：拉取最新职位列表。"""
from abc import ABC, abstractmethod

from hirematch.jobs.schemas import ScrapedJob


class JobSource(ABC):
    """职位源接口：返回待同步的原始职位。拉取失败时返回空列表，不抛异常。"""

    source_id: str = "base"

    @abstractmethod
    async def fetch_latest_postings(self) -> list[ScrapedJob]:
        """拉取当前可用的全部职位。"""
        ...
