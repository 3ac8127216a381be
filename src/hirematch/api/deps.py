"""
依赖注入：数据库会话工厂、存储、职位源、LLM、打分流水线、缓存与简历写作。

会话工厂与缓存在应用 lifespan 中创建并挂到 app.state；其余按请求构造。
测试通过 app.dependency_overrides 替换 get_llm_client / get_job_source / get_resume_writer 等。
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import async_sessionmaker

from hirematch.agents.resume_writer import ResumeWriter
from hirematch.core.llm import LLMClient
from hirematch.jobs.match_cache import MatchScoreCache
from hirematch.jobs.scoring import MatchScoringPipeline
from hirematch.jobs.scraper_config import get_scraper_config
from hirematch.jobs.sources import JobSource, get_job_source as _get_job_source
from hirematch.jobs.store import SqlJobStore
from hirematch.jobs.sync import ConfigLoader
from hirematch.resumes.store import SqlResumeStore


def get_session_factory(request: Request) -> async_sessionmaker:
    return request.app.state.session_factory


def get_job_store(session_factory: async_sessionmaker = Depends(get_session_factory)) -> SqlJobStore:
    return SqlJobStore(session_factory)


def get_resume_store(session_factory: async_sessionmaker = Depends(get_session_factory)) -> SqlResumeStore:
    return SqlResumeStore(session_factory)


def get_job_source() -> JobSource:
    return _get_job_source()


def get_config_loader() -> ConfigLoader:
    return get_scraper_config


def get_llm_client() -> LLMClient:
    return LLMClient()


def get_scoring_pipeline(llm: LLMClient = Depends(get_llm_client)) -> MatchScoringPipeline:
    return MatchScoringPipeline(llm)


def get_match_cache(request: Request) -> MatchScoreCache:
    return request.app.state.match_cache


def get_resume_writer(llm: LLMClient = Depends(get_llm_client)) -> ResumeWriter:
    return ResumeWriter(llm)
