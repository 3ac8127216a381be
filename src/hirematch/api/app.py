"""
hirematch HTTP 入口。

- 职位同步：GET|POST /v1/jobs/sync（别名 /sync-jobs），抓取最新职位并合并进职位库。
- 职位匹配：GET|POST /v1/jobs/match（别名 /match-jobs），一次 LLM 调用给职位池打分并按分数排序。
- 简历：保存 / 读取 / 上传解析 / 文本解析 / 生成 / 按职位定制；求职信生成。

所有响应均为 JSON；错误统一为 {message, error?}，校验错误附 errors[]。
"""
import json
import logging
from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from hirematch.agents.resume_writer import ResumeWriter
from hirematch.core.config import load_settings, match_pool_size
from hirematch.core.errors import sanitize_error
from hirematch.core.log import configure_logging
from hirematch.db import create_engine, create_session_factory, init_db
from hirematch.ingest import DocumentConversionError, extract_resume_text
from hirematch.jobs.match_cache import MatchScoreCache
from hirematch.jobs.pipeline import run_job_match_pipeline
from hirematch.jobs.scoring import MatchScoringPipeline
from hirematch.jobs.sources import JobSource
from hirematch.jobs.store import SqlJobStore
from hirematch.jobs.sync import ConfigLoader, JobSyncReconciler
from hirematch.resumes.schemas import ResumeDocument, ResumeRecord
from hirematch.resumes.store import SqlResumeStore

from .auth import AuthContext, get_auth, get_sync_auth
from .deps import (
    get_config_loader,
    get_job_source,
    get_job_store,
    get_match_cache,
    get_resume_store,
    get_resume_writer,
    get_scoring_pipeline,
)
from .rate_limit import ai_rate_limit, api_rate_limit
from .schemas import (
    CoverLetterRequest,
    CoverLetterResponse,
    GenerateResumeRequest,
    JobListResponse,
    JobSummary,
    MatchJobsRequest,
    MatchJobsResponse,
    ParseResumeRequest,
    ResumeDocumentResponse,
    ResumeResponse,
    SavedResumeSummary,
    SaveResumeRequest,
    SaveResumeResponse,
    SingleJobMatchResponse,
    SyncJobsResponse,
    TailorResumeRequest,
    TailorResumeResponse,
)

logger = logging.getLogger(__name__)

_ORDER_BY = {"postedAt": "posted_at", "createdAt": "created_at", "updatedAt": "updated_at"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """启动时校验配置、建表，并把会话工厂与匹配缓存挂到 app.state；关闭时释放连接。"""
    configure_logging()
    settings = load_settings()
    engine = create_engine(settings.database_url)
    await init_db(engine)
    app.state.session_factory = create_session_factory(engine)
    app.state.match_cache = MatchScoreCache(ttl_seconds=settings.match_cache_ttl, redis_url_=settings.redis_url)
    logger.info("hirematch started (job source: %s, model: %s)", settings.job_source, settings.default_model)
    try:
        yield
    finally:
        await app.state.match_cache.aclose()
        await engine.dispose()


app = FastAPI(
    title="hirematch API",
    description="职位同步 + 简历 vs 职位 LLM 匹配打分 + 简历/求职信生成",
    version="0.1.0",
    lifespan=lifespan,
)


# ---------- 错误响应：统一 JSON ----------

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = exc.detail if isinstance(exc.detail, dict) else {"message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "path": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header")),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Validation error", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error", "error": sanitize_error(exc)})


def _resume_document(record: ResumeRecord, message: str = "Invalid resume data format") -> ResumeDocument:
    try:
        return record.document()
    except ValidationError:
        raise HTTPException(status_code=400, detail=message)


def _llm_failure(message: str, exc: Exception) -> HTTPException:
    logger.error("%s: %s", message, sanitize_error(exc))
    return HTTPException(status_code=500, detail={"message": message, "error": sanitize_error(exc)})


@app.get("/health")
def health():
    """探活。"""
    return {"status": "ok", "service": "hirematch"}


# ---------- 职位同步 ----------

@app.api_route(
    "/v1/jobs/sync",
    methods=["GET", "POST"],
    response_model=SyncJobsResponse,
    dependencies=[Depends(api_rate_limit)],
)
@app.api_route(
    "/sync-jobs",
    methods=["GET", "POST"],
    response_model=SyncJobsResponse,
    dependencies=[Depends(api_rate_limit)],
)
async def sync_jobs(
    auth: Optional[AuthContext] = Depends(get_sync_auth),
    store: SqlJobStore = Depends(get_job_store),
    source: JobSource = Depends(get_job_source),
    config_loader: ConfigLoader = Depends(get_config_loader),
):
    """
    抓取最新职位并合并进职位库。部分条目失败仍返回 200（见 errors）；同步器之外的异常返回 500。
    """
    try:
        result = await JobSyncReconciler(store, source, config_loader=config_loader).run()
    except Exception as e:
        logger.exception("Job sync failed")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Failed to sync jobs", "error": sanitize_error(e)},
        )
    return SyncJobsResponse(
        success=True,
        message=f"Job sync completed: {result.created} created, {result.updated} updated, {result.total} total",
        created=result.created,
        updated=result.updated,
        total=result.total,
        errors=result.errors,
    )


# ---------- 职位列表与匹配 ----------

@app.get("/v1/jobs", response_model=JobListResponse, dependencies=[Depends(api_rate_limit)])
async def list_jobs(
    job_id: Optional[str] = Query(None, alias="id"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    order_by: Literal["postedAt", "createdAt", "updatedAt"] = Query("postedAt", alias="orderBy"),
    order: Literal["asc", "desc"] = Query("desc"),
    store: SqlJobStore = Depends(get_job_store),
):
    """职位列表；带 id 时只返回该职位。"""
    if job_id:
        job = await store.get_job_by_id(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail={"success": False, "message": "Job not found"})
        return JobListResponse(jobs=[job], total=1, limit=1, offset=0, showing=1)
    jobs = await store.list_jobs(limit=limit, offset=offset, order_by=_ORDER_BY[order_by], order=order)
    total = await store.count_jobs()
    return JobListResponse(jobs=jobs, total=total, limit=limit, offset=offset, showing=len(jobs))


async def _match_jobs(
    resume_id: str,
    refresh: bool,
    auth: AuthContext,
    resume_store: SqlResumeStore,
    job_store: SqlJobStore,
    scorer: MatchScoringPipeline,
    cache: MatchScoreCache,
) -> MatchJobsResponse:
    record = await resume_store.get_for_user(resume_id, auth.user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Resume not found")
    resume = _resume_document(record)

    jobs = await job_store.list_jobs(limit=match_pool_size(), order_by="posted_at", order="desc")
    if not jobs:
        raise HTTPException(status_code=404, detail="No jobs available in database. Please sync jobs first.")

    scored = await run_job_match_pipeline(resume, jobs, scorer, cache=cache, cache_key=record.id, refresh=refresh)
    logger.info(
        "Matched %d jobs for resume %s (%s)", len(scored), record.id, scorer.last_outcome or "cache"
    )
    return MatchJobsResponse(
        resume_id=record.id, resume_title=record.title, jobs=scored, total_jobs=len(scored)
    )


@app.get("/v1/jobs/match", response_model=MatchJobsResponse, dependencies=[Depends(ai_rate_limit)])
@app.get("/match-jobs", response_model=MatchJobsResponse, dependencies=[Depends(ai_rate_limit)])
async def match_jobs_get(
    resume_id: Optional[str] = Query(None, alias="resumeId"),
    refresh: bool = Query(False),
    auth: AuthContext = Depends(get_auth),
    resume_store: SqlResumeStore = Depends(get_resume_store),
    job_store: SqlJobStore = Depends(get_job_store),
    scorer: MatchScoringPipeline = Depends(get_scoring_pipeline),
    cache: MatchScoreCache = Depends(get_match_cache),
):
    if not resume_id:
        raise HTTPException(status_code=400, detail="Resume ID is required as query parameter")
    return await _match_jobs(resume_id, refresh, auth, resume_store, job_store, scorer, cache)


@app.post("/v1/jobs/match", response_model=MatchJobsResponse, dependencies=[Depends(ai_rate_limit)])
@app.post("/match-jobs", response_model=MatchJobsResponse, dependencies=[Depends(ai_rate_limit)])
async def match_jobs_post(
    body: MatchJobsRequest,
    auth: AuthContext = Depends(get_auth),
    resume_store: SqlResumeStore = Depends(get_resume_store),
    job_store: SqlJobStore = Depends(get_job_store),
    scorer: MatchScoringPipeline = Depends(get_scoring_pipeline),
    cache: MatchScoreCache = Depends(get_match_cache),
):
    """给简历匹配职位池（按发布时间倒序取前 HIREMATCH_MATCH_POOL_SIZE 条），返回按分数降序的职位。"""
    return await _match_jobs(body.resume_id, body.refresh, auth, resume_store, job_store, scorer, cache)


@app.get("/v1/jobs/match/{job_id}", response_model=SingleJobMatchResponse, dependencies=[Depends(ai_rate_limit)])
async def match_single_job(
    job_id: str,
    resume_id: Optional[str] = Query(None, alias="resumeId"),
    auth: AuthContext = Depends(get_auth),
    resume_store: SqlResumeStore = Depends(get_resume_store),
    job_store: SqlJobStore = Depends(get_job_store),
    scorer: MatchScoringPipeline = Depends(get_scoring_pipeline),
):
    """单条职位的匹配分，不走缓存。"""
    if not resume_id:
        raise HTTPException(status_code=400, detail="Resume ID is required as query parameter")
    record = await resume_store.get_for_user(resume_id, auth.user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Resume not found")
    resume = _resume_document(record)
    job = await job_store.get_job_by_id(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    scores = await scorer.score_jobs_for_resume(resume, [job])
    return SingleJobMatchResponse(
        job_id=job.id,
        match_score=scores[0].score,
        job=JobSummary.model_validate(job.model_dump()),
    )


# ---------- 简历 ----------

@app.post("/v1/resumes", status_code=201, response_model=SaveResumeResponse, dependencies=[Depends(api_rate_limit)])
async def save_resume(
    body: SaveResumeRequest,
    auth: AuthContext = Depends(get_auth),
    store: SqlResumeStore = Depends(get_resume_store),
):
    """保存简历；content 可为对象或 JSON 字符串，至少要有 fullName 或 skills。"""
    content = body.content
    if isinstance(content, str):
        try:
            content = json.loads(content)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid resume content format. Expected valid JSON.")
    if not isinstance(content, dict) or (not content.get("fullName") and not content.get("skills")):
        raise HTTPException(status_code=400, detail="Invalid resume data format")
    try:
        doc = ResumeDocument.model_validate(content)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid resume data format")

    record = await store.create_resume(
        auth.user_id,
        doc.model_dump(by_alias=True),
        title=body.title or doc.headline_or_title or "My Resume",
        raw_text=body.raw_text or doc.to_text(),
        type=body.type,
    )
    return SaveResumeResponse(
        message="Resume saved successfully",
        resume_id=record.id,
        resume=SavedResumeSummary.model_validate(record.model_dump()),
    )


@app.get("/v1/resumes/{resume_id}", response_model=ResumeResponse, dependencies=[Depends(api_rate_limit)])
async def get_resume(
    resume_id: str,
    auth: AuthContext = Depends(get_auth),
    store: SqlResumeStore = Depends(get_resume_store),
):
    record = await store.get_for_user(resume_id, auth.user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Resume not found")
    return ResumeResponse.model_validate(record.model_dump())


@app.post(
    "/v1/resumes/upload", status_code=201, response_model=SaveResumeResponse, dependencies=[Depends(ai_rate_limit)]
)
async def upload_resume(
    file: UploadFile = File(..., description="简历文件（PDF / Word 等）"),
    title: Optional[str] = Form(None),
    auth: AuthContext = Depends(get_auth),
    store: SqlResumeStore = Depends(get_resume_store),
    writer: ResumeWriter = Depends(get_resume_writer),
):
    """
    上传简历：MarkItDown 提取文字 → LLM 结构化 → 保存为 UPLOADED。
    文件为空或提取不到足够文字返回 400。
    """
    data = await file.read()
    try:
        text = await run_in_threadpool(extract_resume_text, data, file.filename or None)
    except DocumentConversionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        parsed = await writer.parse_resume_from_text(text)
    except Exception as e:
        raise _llm_failure("Failed to parse resume", e)

    record = await store.create_resume(
        auth.user_id,
        parsed.model_dump(by_alias=True),
        title=title or parsed.headline_or_title or "My Resume",
        raw_text=text,
        type="UPLOADED",
    )
    logger.info("Parsed uploaded resume %s: %d skills, %d keywords", record.id, len(parsed.skills), len(parsed.effective_keywords))
    return SaveResumeResponse(
        message="Resume uploaded successfully",
        resume_id=record.id,
        resume=SavedResumeSummary.model_validate(record.model_dump()),
    )


@app.post("/v1/resumes/parse", response_model=ResumeDocumentResponse, dependencies=[Depends(ai_rate_limit)])
async def parse_resume(body: ParseResumeRequest, writer: ResumeWriter = Depends(get_resume_writer)):
    """简历文本 → 结构化简历（不保存）。"""
    try:
        parsed = await writer.parse_resume_from_text(body.text)
    except Exception as e:
        raise _llm_failure("Failed to parse resume", e)
    return ResumeDocumentResponse(message="Resume parsed successfully", resume=parsed)


@app.post("/v1/resumes/generate", response_model=ResumeDocumentResponse, dependencies=[Depends(ai_rate_limit)])
async def generate_resume(body: GenerateResumeRequest, writer: ResumeWriter = Depends(get_resume_writer)):
    """表单资料 → AI 生成简历（不保存）。"""
    try:
        generated = await writer.generate_resume_from_profile(body.model_dump(by_alias=True))
    except Exception as e:
        raise _llm_failure("Failed to generate resume", e)
    return ResumeDocumentResponse(message="Resume generated successfully", resume=generated)


@app.post("/v1/resumes/tailor", response_model=TailorResumeResponse, dependencies=[Depends(ai_rate_limit)])
async def tailor_resume(
    body: TailorResumeRequest,
    auth: AuthContext = Depends(get_auth),
    resume_store: SqlResumeStore = Depends(get_resume_store),
    job_store: SqlJobStore = Depends(get_job_store),
    writer: ResumeWriter = Depends(get_resume_writer),
):
    """按职位定制简历；不传 resumeId 时用最近一份简历。"""
    if body.job_id:
        job = await job_store.get_job_by_id(body.job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        job_description = job.description
    else:
        job_description = body.job_description or ""

    if body.resume_id:
        record = await resume_store.get_for_user(body.resume_id, auth.user_id)
    else:
        record = await resume_store.latest_for_user(auth.user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No resume found. Please upload or generate a resume first.")
    resume = _resume_document(record, "Failed to parse resume content")

    try:
        tailored = await writer.tailor_resume_to_job(resume, job_description)
    except Exception as e:
        raise _llm_failure("Failed to tailor resume", e)
    return TailorResumeResponse(tailored_resume=tailored)


@app.post("/v1/cover-letters/generate", response_model=CoverLetterResponse, dependencies=[Depends(ai_rate_limit)])
async def generate_cover_letter(
    body: CoverLetterRequest,
    auth: AuthContext = Depends(get_auth),
    resume_store: SqlResumeStore = Depends(get_resume_store),
    job_store: SqlJobStore = Depends(get_job_store),
    writer: ResumeWriter = Depends(get_resume_writer),
):
    job = await job_store.get_job_by_id(body.job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    if body.resume_id:
        record = await resume_store.get_for_user(body.resume_id, auth.user_id)
    else:
        record = await resume_store.latest_for_user(auth.user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No resume found. Please upload or generate a resume first.")
    resume = _resume_document(record, "Failed to parse resume content")

    try:
        letter = await writer.generate_cover_letter(resume, job.description)
    except Exception as e:
        raise _llm_failure("Failed to generate cover letter", e)
    return CoverLetterResponse(cover_letter=letter)
