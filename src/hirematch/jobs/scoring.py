"""
简历 vs 职位批量打分：一次 LLM 调用给整批职位打 0–100 分，失败时退回关键词匹配。

LLM 输出按三种形状依次解码（先严格，再两种兜底形状）：
- Strict：{"scores": [{"jobId": "...", "score": 85}, ...]}
- Array：[{"jobId": "...", "score": 85}, ...]
- KeyedObject：{"<jobId>": 85, "<jobId>": {"score": 70}, ...}
三种都不匹配、不是 JSON、重试耗尽或不可重试错误，一律走关键词兜底；对调用方从不抛异常。
"""
from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from typing import Any, Awaitable, Callable, Literal, Optional, Protocol, Sequence, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from hirematch.core.config import llm_max_attempts, scoring_description_tokens
from hirematch.core.retry import with_retry
from hirematch.core.tokens import truncate_to_tokens
from hirematch.jobs.schemas import JobPosting, MatchScore
from hirematch.resumes.schemas import ResumeDocument

logger = logging.getLogger(__name__)

# LLM 漏掉某条职位或给了 null / NaN 时的中性分
NEUTRAL_SCORE = 50


class JsonCompleter(Protocol):
    async def complete_json(self, prompt: str) -> str: ...


class ScoreParseError(ValueError):
    """LLM 输出不是 JSON，或不符合任何一种已知形状。"""


class ScoreEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)

    job_id: str
    score: Optional[float] = None


class KeyedScore(BaseModel):
    score: Optional[float] = None


class StrictScores(BaseModel):
    kind: Literal["strict"] = "strict"
    scores: list[ScoreEntry]

    def entries(self) -> list[tuple[str, Optional[float]]]:
        return [(e.job_id, e.score) for e in self.scores]


class ArrayScores(BaseModel):
    kind: Literal["array"] = "array"
    scores: list[ScoreEntry]

    def entries(self) -> list[tuple[str, Optional[float]]]:
        return [(e.job_id, e.score) for e in self.scores]


class KeyedObjectScores(BaseModel):
    kind: Literal["keyed_object"] = "keyed_object"
    scores: dict[str, Union[float, KeyedScore, None]]

    def entries(self) -> list[tuple[str, Optional[float]]]:
        return [
            (job_id, value.score if isinstance(value, KeyedScore) else value)
            for job_id, value in self.scores.items()
        ]


ScoreResponse = Union[StrictScores, ArrayScores, KeyedObjectScores]


def strip_code_fences(raw: str) -> str:
    """去掉 ```json ... ``` 包裹。"""
    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", (raw or "").strip())
    return re.sub(r"\n?```\s*$", "", cleaned)


def decode_score_response(raw: str) -> ScoreResponse:
    try:
        data = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as e:
        raise ScoreParseError(f"Invalid JSON response from LLM: {e}") from e

    if isinstance(data, dict) and "scores" in data:
        try:
            return StrictScores.model_validate(data)
        except ValidationError:
            pass
    if isinstance(data, list):
        try:
            return ArrayScores.model_validate({"scores": data})
        except ValidationError:
            pass
    if isinstance(data, dict):
        try:
            return KeyedObjectScores.model_validate({"scores": data})
        except ValidationError:
            pass
    raise ScoreParseError("LLM response matches none of the accepted score shapes")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_score(value: Optional[float]) -> int:
    """null / NaN / inf → 50；其余夹到 [0, 100] 后四舍五入。"""
    if value is None or not math.isfinite(value):
        return NEUTRAL_SCORE
    return round_half_up(max(0.0, min(100.0, float(value))))


def resume_to_text_and_keywords(resume: Union[ResumeDocument, str]) -> tuple[str, list[str]]:
    """字符串简历原样使用，没有关键词。"""
    if isinstance(resume, str):
        return resume, []
    return resume.to_text(), list(resume.effective_keywords)


def keyword_fallback_scores(keywords: Sequence[str], jobs: Sequence[JobPosting]) -> list[MatchScore]:
    """
    50 + 50 × 命中数 / 关键词总数；命中 = 非空关键词（不区分大小写）出现在 "标题 公司 描述" 中。
    没有关键词时一律 50。
    """
    out: list[MatchScore] = []
    for job in jobs:
        if not keywords:
            out.append(MatchScore(job_id=job.id, score=NEUTRAL_SCORE))
            continue
        haystack = f"{job.title} {job.company} {job.description}".lower()
        matched = sum(1 for k in keywords if k and k.strip() and k.lower() in haystack)
        score = min(100.0, NEUTRAL_SCORE + matched / len(keywords) * 50)
        out.append(MatchScore(job_id=job.id, score=round_half_up(score)))
    return out


def build_scoring_prompt(resume_text: str, job_payload: list[dict[str, Any]]) -> str:
    n = len(job_payload)
    return (
        "You are a job matching expert. Analyze the following resume and score how well it matches "
        "EACH job description.\n"
        "You MUST provide a score for EVERY job in the list. Pay special attention to:\n"
        "- Keyword matches between resume and job description\n"
        "- Skill alignment (technical skills, tools, technologies)\n"
        "- Experience relevance (years of experience, industry experience)\n"
        "- Education requirements\n"
        "- Overall fit and compatibility\n\n"
        f"Resume:\n{resume_text}\n\n"
        f"Jobs to score (you MUST score ALL {n} jobs):\n"
        f"{json.dumps(job_payload, indent=2, ensure_ascii=False)}\n\n"
        'Return a JSON object with a "scores" array. Each item in the array MUST have:\n'
        "- jobId: the exact job ID from the list above\n"
        "- score: a number from 0-100 indicating match quality (0 = no match, 100 = perfect match)\n\n"
        f'IMPORTANT: You must return scores for ALL {n} jobs. The "scores" array must contain exactly {n} items.\n\n'
        'Format: { "scores": [{ "jobId": "...", "score": 85 }, ...] }'
    )


class MatchScoringPipeline:
    """
    llm 只需提供 async complete_json(prompt) -> str；测试中注入假实现。
    last_outcome 记录最近一次调用走的是 "llm" 还是 "fallback"。
    """

    def __init__(
        self,
        llm: JsonCompleter,
        max_attempts: Optional[int] = None,
        initial_delay: float = 1.0,
        max_delay: float = 10.0,
        description_tokens: Optional[int] = None,
        model_name: Optional[str] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.llm = llm
        self.max_attempts = max_attempts if max_attempts is not None else llm_max_attempts()
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.description_tokens = (
            description_tokens if description_tokens is not None else scoring_description_tokens()
        )
        self.model_name = model_name
        self._sleep = sleep
        self.last_outcome: Optional[str] = None

    def _job_payload(self, jobs: Sequence[JobPosting]) -> list[dict[str, Any]]:
        return [
            {
                "id": job.id,
                "title": job.title,
                "company": job.company,
                "description": truncate_to_tokens(job.description, self.description_tokens, self.model_name),
            }
            for job in jobs
        ]

    async def score_jobs_for_resume(
        self, resume: Union[ResumeDocument, str], jobs: Sequence[JobPosting]
    ) -> list[MatchScore]:
        if not jobs:
            logger.warning("No jobs provided to score")
            self.last_outcome = None
            return []

        resume_text, keywords = resume_to_text_and_keywords(resume)
        prompt = build_scoring_prompt(resume_text, self._job_payload(jobs))

        try:
            raw = await with_retry(
                lambda: self.llm.complete_json(prompt),
                max_attempts=self.max_attempts,
                initial_delay=self.initial_delay,
                max_delay=self.max_delay,
                sleep=self._sleep,
            )
            response = decode_score_response(raw)
        except Exception as e:
            logger.warning(
                "LLM scoring failed (%s: %s), using keyword fallback for %d jobs",
                type(e).__name__,
                str(e)[:200],
                len(jobs),
            )
            self.last_outcome = "fallback"
            return keyword_fallback_scores(keywords, jobs)

        by_id: dict[str, Optional[float]] = {}
        for job_id, score in response.entries():
            by_id.setdefault(job_id, score)

        missing = [job.id for job in jobs if job.id not in by_id]
        if missing:
            logger.warning("LLM returned no score for %d job(s), defaulting to %d: %s", len(missing), NEUTRAL_SCORE, missing)

        result = [MatchScore(job_id=job.id, score=normalize_score(by_id.get(job.id))) for job in jobs]
        self.last_outcome = "llm"
        logger.info(
            "Scored %d jobs with LLM (%s response), range %d-%d",
            len(result),
            response.kind,
            min(r.score for r in result),
            max(r.score for r in result),
        )
        return result


def sort_by_score(scored: list[Any]) -> list[Any]:
    """按 match_score 降序，同分保持原顺序。"""
    return sorted(scored, key=lambda s: s.match_score, reverse=True)
