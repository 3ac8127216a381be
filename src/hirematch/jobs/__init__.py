"""
职位：抓取 → 同步入库 → 简历 vs 职位批量打分。
"""
from .schemas import JobPosting, MatchScore, ScoredJob, ScrapedJob, SyncResult
from .store import JobStore, SqlJobStore
from .sync import JobSyncReconciler, sync_jobs
from .scoring import MatchScoringPipeline, decode_score_response, keyword_fallback_scores
from .match_cache import MatchScoreCache
from .pipeline import run_job_match_pipeline

__all__ = [
    "JobPosting",
    "JobStore",
    "JobSyncReconciler",
    "MatchScore",
    "MatchScoreCache",
    "MatchScoringPipeline",
    "ScoredJob",
    "ScrapedJob",
    "SqlJobStore",
    "SyncResult",
    "decode_score_response",
    "keyword_fallback_scores",
    "run_job_match_pipeline",
    "sync_jobs",
]
