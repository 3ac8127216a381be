# PydanticAI 类型安全智能体：简历解析 / 生成 / 定制 + 求职信

from .resume_writer import ResumeWriter, cover_letter_candidate_summary

__all__ = ["ResumeWriter", "cover_letter_candidate_summary"]
