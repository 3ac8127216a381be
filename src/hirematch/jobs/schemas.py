"""
职位、匹配分与同步结果的数据模型。
对外 JSON 字段为 camelCase（jobType、sourceUrl、matchScore …），Python 侧为 snake_case。
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from hirematch.core.schemas import CamelModel

# 「无真实链接」的占位值，不参与身份匹配
SENTINEL_URL = "#"


def real_source_url(url: Optional[str]) -> Optional[str]:
    """去掉空白与占位值，返回可用于身份匹配的链接；否则 None。"""
    url = (url or "").strip()
    if not url or url == SENTINEL_URL:
        return None
    return url


class ScrapedJob(CamelModel):
    """职位源返回的原始职位（未入库、无 id/时间戳），同步结束即丢弃。"""
    title: str = Field(..., description="职位名称")
    company: str = Field(..., description="公司名称")
    location: str = Field(..., description="工作地点")
    job_type: Optional[str] = Field(None, description="用工类型，如 Full-time")
    short_description: Optional[str] = Field(None, description="摘要")
    full_description: str = Field("", description="职位描述全文")
    source_url: Optional[str] = Field(None, description="原始链接；缺失或 \"#\" 视为无链接")

    @property
    def identity_url(self) -> Optional[str]:
        return real_source_url(self.source_url)


class JobPosting(CamelModel):
    """已入库职位。"""
    id: str
    title: str
    company: str
    location: str
    job_type: Optional[str] = None
    short_description: Optional[str] = None
    full_description: str = ""
    source_url: Optional[str] = None
    posted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def description(self) -> str:
        """打分用描述：全文优先，其次摘要。"""
        return self.full_description or self.short_description or ""


class ScoredJob(JobPosting):
    """职位 + 匹配分（展示/排序用，不入库）。"""
    match_score: int = Field(..., ge=0, le=100)


class MatchScore(CamelModel):
    """单条（简历, 职位）匹配分，0–100 整数。"""
    job_id: str
    score: int = Field(..., ge=0, le=100)


class SyncResult(BaseModel):
    """一次同步的汇总。"""
    created: int = 0
    updated: int = 0
    total: int = 0
    errors: list[str] = Field(default_factory=list)
