"""
配置：从环境变量读取，供职位同步、匹配打分与 API 各模块使用。

读取方式与各 getter 保持「随用随读」，便于测试中 monkeypatch 环境变量；
应用启动时由 load_settings() 统一校验一遍，配置有误直接拒绝启动。
"""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

# 项目根（与 pyproject.toml 同层）：src/hirematch/core/config.py -> parents[3]
_PROJECT_ROOT = Path(__file__).resolve().parents[3]

# 可选加载 .env（若存在）：先项目根，再当前工作目录
for _p in (_PROJECT_ROOT / ".env", Path.cwd() / ".env"):
    if _p.exists():
        load_dotenv(_p)
        break


class ConfigError(RuntimeError):
    """环境变量校验失败。"""


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("true", "1", "yes")


def _env_list(*names: str) -> list[str]:
    """逗号分隔列表；按顺序取第一个非空的变量。"""
    for name in names:
        raw = os.getenv(name)
        if raw and raw.strip():
            return [x.strip() for x in raw.split(",") if x.strip()]
    return []


def get_default_model() -> str:
    """LiteLLM 模型名，如 openai/gpt-4o、deepseek/deepseek-chat。"""
    return os.getenv("HIREMATCH_DEFAULT_MODEL", "openai/gpt-4o")


def get_database_url() -> str:
    """
    SQLAlchemy 异步连接串。
    默认：项目根下 .data/hirematch.db（SQLite + aiosqlite），可通过 DATABASE_URL 覆盖。
    """
    url = (os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    return f"sqlite+aiosqlite:///{_PROJECT_ROOT / '.data' / 'hirematch.db'}"


def job_source_id() -> str:
    """职位源：auto（默认）| browse_ai | apify | mock。"""
    return (os.getenv("HIREMATCH_JOB_SOURCE") or "auto").strip().lower()


def sync_batch_size() -> int:
    """职位同步每批并发写库条数，默认 10。"""
    return _env_int("HIREMATCH_SYNC_BATCH_SIZE", 10)


def sync_requires_auth() -> bool:
    return _env_bool("HIREMATCH_SYNC_REQUIRE_AUTH", False)


def match_pool_size() -> int:
    """匹配时从库中取多少条职位参与打分（按发布时间倒序），默认 100。"""
    return _env_int("HIREMATCH_MATCH_POOL_SIZE", 100)


def match_cache_ttl() -> int:
    """匹配分缓存有效期（秒），默认 24 小时。"""
    return _env_int("HIREMATCH_MATCH_CACHE_TTL", 24 * 60 * 60)


def llm_max_attempts() -> int:
    return _env_int("HIREMATCH_LLM_MAX_ATTEMPTS", 3)


def scoring_description_tokens() -> int:
    """打分 prompt 中单条职位描述的 token 上限。"""
    return _env_int("HIREMATCH_SCORING_DESCRIPTION_TOKENS", 1500)


def rate_limit_enabled() -> bool:
    return _env_bool("HIREMATCH_RATE_LIMIT_ENABLED", True)


def browse_ai_api_key() -> str:
    return (os.getenv("BROWSEAI_API_KEY") or "").strip()


def browse_ai_robot_ids() -> list[str]:
    """BROWSEAI_ROBOT_IDS（逗号分隔）优先，其次单个 BROWSEAI_ROBOT_ID。"""
    return _env_list("BROWSEAI_ROBOT_IDS", "BROWSEAI_ROBOT_ID")


def browse_ai_base_url() -> str:
    return (os.getenv("BROWSEAI_BASE_URL") or "https://api.browse.ai/v2").strip().rstrip("/")


def browse_ai_task_timeout() -> float:
    """Browse AI 任务轮询的硬截止时间（秒），超时即失败，不在同一次调用内重试。"""
    return float(_env_int("HIREMATCH_BROWSEAI_TASK_TIMEOUT", 60))


def apify_api_token() -> str:
    return (os.getenv("APIFY_API_TOKEN") or os.getenv("APIFY_API_KEY") or "").strip()


def apify_kv_store_id() -> str:
    return (os.getenv("APIFY_KV_STORE_ID") or "").strip()


def apify_actor_ids() -> list[str]:
    return _env_list("APIFY_ACTOR_IDS")


def redis_url() -> str:
    return (os.getenv("REDIS_URL") or "").strip()


class Settings(BaseModel):
    """启动时校验用的配置快照；各模块运行期仍通过上面的 getter 读取。"""
    database_url: str
    default_model: str = Field(..., min_length=1)
    job_source: str
    sync_batch_size: int = Field(..., ge=1)
    match_pool_size: int = Field(..., ge=1, le=500)
    match_cache_ttl: int = Field(..., ge=0)
    llm_max_attempts: int = Field(..., ge=1, le=10)
    scoring_description_tokens: int = Field(..., ge=50)
    browse_ai_task_timeout: float = Field(..., gt=0)
    redis_url: str = ""

    @field_validator("database_url")
    @classmethod
    def _async_driver(cls, v: str) -> str:
        if "+" not in v.split("://", 1)[0]:
            raise ValueError("DATABASE_URL must name an async driver, e.g. sqlite+aiosqlite:// or postgresql+asyncpg://")
        return v

    @field_validator("job_source")
    @classmethod
    def _known_source(cls, v: str) -> str:
        if v not in ("auto", "browse_ai", "apify", "mock"):
            raise ValueError("HIREMATCH_JOB_SOURCE must be one of auto, browse_ai, apify, mock")
        return v

    @field_validator("redis_url")
    @classmethod
    def _redis_scheme(cls, v: str) -> str:
        if v and not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must start with redis://, rediss:// or unix://")
        return v


def load_settings() -> Settings:
    """
    读取并校验全部配置；任一项不合法时抛出 ConfigError，列出所有问题。
    """
    try:
        return Settings(
            database_url=get_database_url(),
            default_model=get_default_model(),
            job_source=job_source_id(),
            sync_batch_size=sync_batch_size(),
            match_pool_size=match_pool_size(),
            match_cache_ttl=match_cache_ttl(),
            llm_max_attempts=llm_max_attempts(),
            scoring_description_tokens=scoring_description_tokens(),
            browse_ai_task_timeout=browse_ai_task_timeout(),
            redis_url=redis_url(),
        )
    except ValidationError as e:
        problems = "\n".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(
            f"Environment variable validation failed:\n{problems}\n\n"
            "Please check your .env file and ensure all variables are valid."
        ) from e
