"""简历：结构化内容模型与按用户隔离的存储。"""
from .schemas import EducationEntry, ExperienceEntry, ResumeDocument, ResumeRecord, ResumeType
from .store import SqlResumeStore

__all__ = [
    "EducationEntry",
    "ExperienceEntry",
    "ResumeDocument",
    "ResumeRecord",
    "ResumeType",
    "SqlResumeStore",
]
