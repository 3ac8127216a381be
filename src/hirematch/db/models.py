"""
持久化模型：职位（jobs）与简历（resumes）。

职位唯一性不靠数据库约束，而是由同步逻辑按 source_url / (title, company, location) 判定，
这里只为两种查找方式建索引。
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKey, utcnow


class Job(UUIDPrimaryKey, TimestampMixin, Base):
    """抓取来的职位。"""
    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_identity", "title", "company", "location"),
        Index("ix_jobs_posted_at", "posted_at"),
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    company: Mapped[str] = mapped_column(String(500), nullable=False)
    location: Mapped[str] = mapped_column(String(500), nullable=False)
    job_type: Mapped[Optional[str]] = mapped_column(String(100))
    short_description: Mapped[Optional[str]] = mapped_column(Text)
    full_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # 无真实链接（缺失或占位 "#"）时为 NULL
    source_url: Mapped[Optional[str]] = mapped_column(String(2000), index=True)
    posted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Job(title={self.title!r}, company={self.company!r})>"


class Resume(UUIDPrimaryKey, TimestampMixin, Base):
    """用户简历；content 为 ResumeDocument 的 JSON。"""
    __tablename__ = "resumes"

    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="My Resume")
    content: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    raw_text: Mapped[Optional[str]] = mapped_column(Text)
    # UPLOADED | GENERATED
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="UPLOADED")
