"""
简历写作智能体：解析、生成、按职位定制简历，以及写求职信。

结构化输出走 PydanticAI Agent（output_type=ResumeDocument），AI 只返回符合模型的 JSON；
求职信是纯文本，直接走 LiteLLM completion。所有调用都经过 with_retry（仅 429 / 5xx 重试）。
"""
from __future__ import annotations

import json
from typing import Any, Optional

from hirematch.core.config import get_default_model, llm_max_attempts
from hirematch.core.llm import LLMClient
from hirematch.core.retry import with_retry
from hirematch.resumes.schemas import ResumeDocument

_PARSE_PROMPT = (
    "You are a resume parser. Extract structured data from the resume text the user provides.\n"
    "Important:\n"
    "- Extract ALL skills mentioned in the resume\n"
    '- In "keywords", include technical skills, programming languages, frameworks, tools, soft skills '
    "and any other terms useful for matching with job descriptions\n"
    "- Keep dates as written; leave a field empty when it is not present\n"
    "Only return the structured result, no explanation."
)

_GENERATE_PROMPT = (
    "You are a professional resume writer. Create a complete, professional resume from the profile data "
    "the user provides. Write a concise summary and a headline for the target role, describe each "
    "experience entry in one or two sentences, and fill skills and keywords for job matching.\n"
    "Do not invent employers, degrees or dates that are not in the profile. Only return the structured result."
)

_TAILOR_PROMPT = (
    "You are an expert resume writer and career strategist. Tailor the provided resume to the job description "
    "by optimizing content, structure and emphasis while preserving all original information.\n"
    "1. Identify required skills, responsibilities, preferred experience and industry keywords in the job.\n"
    "2. Reorder work experiences so the most relevant come first, rewrite the summary and headline to match "
    "the role, and emphasize matching skills and keywords.\n"
    "3. Constraints: preserve ALL original experiences, education and skills; do not fabricate experience or "
    "achievements; keep dates, company names and other facts unchanged; only reorder, rephrase and emphasize.\n"
    "Only return the tailored resume."
)

_COVER_LETTER_SYSTEM = "You are an expert career coach and cover letter writer."


def _model():
    """LiteLLM 模型实例，与 HIREMATCH_DEFAULT_MODEL 一致。"""
    from pydantic_ai_litellm import LiteLLMModel
    return LiteLLMModel(model_name=get_default_model())


def _resume_agent(system_prompt: str):
    from pydantic_ai import Agent
    return Agent(model=_model(), output_type=ResumeDocument, system_prompt=system_prompt)


def _resume_json(resume: ResumeDocument) -> str:
    return json.dumps(resume.model_dump(by_alias=True, exclude_none=True), indent=2, ensure_ascii=False)


def cover_letter_candidate_summary(resume: ResumeDocument, candidate_name: Optional[str] = None) -> str:
    """求职信 prompt 中的候选人信息块，空字段不输出。"""
    lines = [f"Candidate Name: {resume.full_name or candidate_name or 'Candidate'}"]
    if resume.headline_or_title:
        lines.append(f"Professional Title: {resume.headline_or_title}")
    if resume.summary:
        lines.append(f"Professional Summary: {resume.summary}")
    lines.append(f"Skills: {', '.join(resume.skills)}")
    if resume.keywords:
        lines.append(f"Keywords: {', '.join(resume.keywords)}")
    lines.append("Professional Experience:")
    for i, exp in enumerate(resume.experience, 1):
        dates = ""
        if exp.start_date or exp.end_date:
            dates = f" ({exp.start_date or ''} - {exp.end_date or 'Present'})"
        lines.append(f"{i}. {exp.job_title or 'Position'} at {exp.company or 'Company'}{dates}")
        if exp.description:
            lines.append(f"   {exp.description}")
    if resume.education:
        lines.append("Education:")
        for edu in resume.education:
            dates = ""
            if edu.start_date or edu.end_date:
                dates = f" ({edu.start_date or ''} - {edu.end_date or ''})"
            lines.append(f"- {edu.degree or 'Degree'} from {edu.institution or 'Institution'}{dates}")
    if resume.email:
        lines.append(f"Contact: {resume.email}")
    if resume.location:
        lines.append(f"Location: {resume.location}")
    return "\n".join(lines)


class ResumeWriter:
    """
    简历相关的 LLM 操作。Agent 懒加载并按用途缓存；llm 用于求职信，可注入假实现。
    """

    def __init__(self, llm: Optional[LLMClient] = None, max_attempts: Optional[int] = None):
        self.llm = llm or LLMClient()
        self.max_attempts = max_attempts if max_attempts is not None else llm_max_attempts()
        self._agents: dict[str, Any] = {}

    def _get_agent(self, name: str):
        if name not in self._agents:
            prompts = {"parse": _PARSE_PROMPT, "generate": _GENERATE_PROMPT, "tailor": _TAILOR_PROMPT}
            if name not in prompts:
                raise ValueError(f"未知简历操作: {name}，支持 parse / generate / tailor")
            self._agents[name] = _resume_agent(prompts[name])
        return self._agents[name]

    async def _run_agent(self, name: str, prompt: str) -> ResumeDocument:
        agent = self._get_agent(name)
        result = await with_retry(lambda: agent.run(prompt), max_attempts=self.max_attempts)
        return result.output

    async def parse_resume_from_text(self, text: str) -> ResumeDocument:
        """简历文本 → 结构化简历；keywords 与 skills 合并去重。"""
        parsed = await self._run_agent("parse", text)
        return parsed.with_merged_keywords()

    async def generate_resume_from_profile(self, profile: dict[str, Any]) -> ResumeDocument:
        """表单资料（姓名、邮箱、目标岗位、技能、经历）→ 完整简历。"""
        prompt = f"Profile data:\n{json.dumps(profile, indent=2, ensure_ascii=False)}"
        generated = await self._run_agent("generate", prompt)
        return generated.with_merged_keywords()

    async def tailor_resume_to_job(self, resume: ResumeDocument, job_description: str) -> ResumeDocument:
        prompt = f"Original Resume:\n{_resume_json(resume)}\n\nJob Description:\n{job_description}"
        return await self._run_agent("tailor", prompt)

    async def generate_cover_letter(
        self, resume: ResumeDocument, job_description: str, candidate_name: Optional[str] = None
    ) -> str:
        """300–400 词的求职信正文。"""
        prompt = (
            "Write a compelling, personalized cover letter that demonstrates how the candidate's "
            "qualifications align with the job requirements.\n"
            "Instructions:\n"
            "1. Identify the key requirements, responsibilities and qualifications in the job description\n"
            "2. Match the candidate's skills, experiences and achievements to those requirements\n"
            "3. Reference specific experiences and skills from the resume\n"
            "4. Write in a professional, confident and enthusiastic tone\n"
            "5. Keep the letter between 300-400 words\n"
            "6. Structure: an opening paragraph naming the position, 2-3 body paragraphs on relevant "
            "experience, and a closing paragraph expressing eagerness to discuss further\n\n"
            f"Candidate Information:\n{cover_letter_candidate_summary(resume, candidate_name)}\n\n"
            f"Job Description:\n{job_description}"
        )
        return await with_retry(
            lambda: self.llm.complete_text(prompt, system=_COVER_LETTER_SYSTEM),
            max_attempts=self.max_attempts,
        )
