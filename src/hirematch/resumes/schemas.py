"""
结构化简历：LLM 解析 / 生成 / 定制的输出边界，也是 resumes.content 列里存的 JSON。
对外 JSON 为 camelCase（fullName、headlineOrTitle、jobTitle …）。
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import Field

from hirematch.core.schemas import CamelModel

ResumeType = Literal["UPLOADED", "GENERATED"]


class ExperienceEntry(CamelModel):
    job_title: str = ""
    company: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    description: str = ""


class EducationEntry(CamelModel):
    degree: str = ""
    institution: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ResumeDocument(CamelModel):
    """简历内容；keywords 为 None 表示未提取过，匹配时退回用 skills。"""
    full_name: str = Field("", description="姓名")
    email: str = Field("", description="邮箱")
    phone: Optional[str] = None
    location: Optional[str] = None
    headline_or_title: Optional[str] = Field(None, description="一句话头衔，如 Senior Python Engineer")
    summary: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    keywords: Optional[list[str]] = Field(None, description="用于职位匹配的关键词：技能、语言、框架、工具等")
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)

    @property
    def effective_keywords(self) -> list[str]:
        return self.keywords if self.keywords is not None else self.skills

    def with_merged_keywords(self) -> "ResumeDocument":
        """keywords ∪ skills，保序去重。"""
        merged = list(dict.fromkeys([*(self.keywords or []), *self.skills]))
        return self.model_copy(update={"keywords": merged})

    def to_text(self) -> str:
        """打分 prompt 与 raw_text 用的纯文本形式。"""
        lines = [
            f"Name: {self.full_name or 'Not provided'}",
            f"Headline: {self.headline_or_title or ''}",
            f"Summary: {self.summary or ''}",
            f"Skills: {', '.join(self.skills)}",
            f"Keywords: {', '.join(self.effective_keywords)}",
            "Experience:",
        ]
        lines += [
            f"{e.job_title} at {e.company} ({e.start_date or ''} - {e.end_date or ''}): {e.description}"
            for e in self.experience
        ]
        lines.append("Education:")
        lines += [f"{e.degree} at {e.institution}" for e in self.education]
        return "\n".join(lines)


class ResumeRecord(CamelModel):
    """已入库简历。"""
    id: str
    user_id: str
    title: str = "My Resume"
    content: dict[str, Any] = Field(default_factory=dict)
    raw_text: Optional[str] = None
    type: ResumeType = "UPLOADED"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def document(self) -> ResumeDocument:
        """content → ResumeDocument；内容不合法时抛 pydantic.ValidationError。"""
        return ResumeDocument.model_validate(self.content)
