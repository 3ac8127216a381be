"""
职位匹配流水线：给定简历与职位池 → 取缓存或一次 LLM 打分 → 附上 matchScore → 按分数降序（同分保持原顺序）。
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from hirematch.jobs.match_cache import MatchScoreCache
from hirematch.jobs.schemas import JobPosting, ScoredJob
from hirematch.jobs.scoring import MatchScoringPipeline, sort_by_score
from hirematch.resumes.schemas import ResumeDocument

logger = logging.getLogger(__name__)


async def run_job_match_pipeline(
    resume: Union[ResumeDocument, str],
    jobs: Sequence[JobPosting],
    scorer: MatchScoringPipeline,
    cache: Optional[MatchScoreCache] = None,
    cache_key: Optional[str] = None,
    refresh: bool = False,
) -> list[ScoredJob]:
    """
    cache 与 cache_key（通常为 resumeId）同时给出时启用缓存；refresh=True 先清掉旧缓存再打分。
    jobs 为空返回 []。
    """
    if not jobs:
        return []

    use_cache = cache is not None and cache_key is not None
    job_ids = [job.id for job in jobs]
    scores: Optional[dict[str, int]] = None

    if use_cache:
        if refresh:
            await cache.invalidate(cache_key)
        else:
            scores = await cache.get(cache_key, job_ids)
            if scores is not None:
                logger.info("Using cached match scores for %s (%d jobs)", cache_key, len(scores))

    if scores is None:
        results = await scorer.score_jobs_for_resume(resume, jobs)
        scores = {r.job_id: r.score for r in results}
        # 兜底分不缓存，LLM 恢复后可重新打分
        if use_cache and scorer.last_outcome == "llm":
            await cache.set(cache_key, scores)

    scored = [ScoredJob(**job.model_dump(), match_score=scores.get(job.id, 50)) for job in jobs]
    return sort_by_score(scored)
