"""
共享夹具：隔离环境变量、临时 SQLite、假 LLM、API TestClient。
"""
import json
import re

import pytest
from fastapi.testclient import TestClient

from hirematch.api import rate_limit
from hirematch.api.app import app
from hirematch.db import create_engine, create_session_factory, init_db

_ISOLATED_VARS = (
    "REDIS_URL",
    "QUANTUM_AUTH_URL",
    "BROWSEAI_API_KEY",
    "BROWSEAI_ROBOT_IDS",
    "BROWSEAI_ROBOT_ID",
    "APIFY_API_TOKEN",
    "APIFY_API_KEY",
    "APIFY_KV_STORE_ID",
    "APIFY_ACTOR_IDS",
    "HIREMATCH_SYNC_REQUIRE_AUTH",
    "HIREMATCH_SYNC_BATCH_SIZE",
    "HIREMATCH_MATCH_POOL_SIZE",
)

AUTH_HEADER = {"Authorization": "Bearer test-user-1"}
OTHER_AUTH_HEADER = {"Authorization": "Bearer test-user-2"}


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """不读真实凭据、不连外部服务；限流默认关闭。"""
    for var in _ISOLATED_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HIREMATCH_JOB_SOURCE", "mock")
    monkeypatch.setenv("HIREMATCH_RATE_LIMIT_ENABLED", "false")
    rate_limit.reset()
    yield
    rate_limit.reset()


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def client(monkeypatch, tmp_path):
    """每个测试一个独立数据库。"""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    app.dependency_overrides.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class FakeLLM:
    """
    按顺序返回预设结果；只剩最后一个时重复使用。
    结果可以是字符串、异常（抛出）或以 prompt 为参数的函数。
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts: list[str] = []

    def _next(self, prompt: str):
        self.prompts.append(prompt)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(prompt)
        return item

    async def complete_json(self, prompt: str) -> str:
        return self._next(prompt)

    async def complete_text(self, prompt: str, system: str | None = None) -> str:
        return self._next(prompt)

    @property
    def calls(self) -> int:
        return len(self.prompts)


class StatusError(Exception):
    """带 HTTP 状态码的上游错误。"""

    def __init__(self, status: int):
        super().__init__(f"upstream error {status}")
        self.status = status


def jobs_in_prompt(prompt: str) -> list[dict]:
    """从打分 prompt 中取出职位列表（id / title / company / description）。"""
    m = re.search(r"Jobs to score \(you MUST score ALL \d+ jobs\):\n(.*?)\n\nReturn a JSON", prompt, re.S)
    assert m, "job list not found in prompt"
    return json.loads(m.group(1))


async def no_sleep(_delay: float) -> None:
    return None
