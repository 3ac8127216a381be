"""
职位接口：同步、列表、匹配（兜底分 / LLM 分 / 缓存 / 重新匹配）、单职位匹配。
"""
import asyncio
import json

from conftest import AUTH_HEADER, OTHER_AUTH_HEADER, FakeLLM, StatusError, jobs_in_prompt
from hirematch.api.app import app
from hirematch.api.deps import get_config_loader, get_job_source, get_llm_client
from hirematch.db import create_engine, create_session_factory
from hirematch.jobs.schemas import ScrapedJob
from hirematch.jobs.sources import JobSource
from hirematch.resumes.store import SqlResumeStore

RESUME = {"fullName": "Jane Doe", "skills": ["React", "TypeScript"]}


def _use_llm(llm):
    app.dependency_overrides[get_llm_client] = lambda: llm
    return llm


def _sync(client):
    resp = client.post("/v1/jobs/sync")
    assert resp.status_code == 200
    return resp.json()


def _save_resume(client, content=None, headers=AUTH_HEADER, **extra):
    resp = client.post("/v1/resumes", json={"content": content or RESUME, **extra}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["resumeId"]


def _insert_raw_resume(tmp_path, user_id, content):
    """绕过接口校验直接写库，模拟历史遗留的坏数据。"""

    async def insert():
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
        try:
            record = await SqlResumeStore(create_session_factory(engine)).create_resume(user_id, content)
            return record.id
        finally:
            await engine.dispose()

    return asyncio.run(insert())


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "service": "hirematch"}


def test_sync_creates_then_updates(client):
    first = _sync(client)
    assert first["success"] is True
    assert (first["created"], first["updated"], first["total"]) == (3, 0, 3)
    assert first["message"] == "Job sync completed: 3 created, 0 updated, 3 total"
    assert first["errors"] == []

    second = client.get("/sync-jobs").json()
    assert (second["created"], second["updated"], second["total"]) == (0, 3, 3)
    assert client.get("/v1/jobs").json()["total"] == 3


def test_sync_failure_returns_500(client):
    async def broken_loader(name):
        raise RuntimeError("kv store down for ops@example.com")

    app.dependency_overrides[get_config_loader] = lambda: broken_loader
    resp = client.post("/v1/jobs/sync")
    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Failed to sync jobs"
    assert "ops@example.com" not in body["error"]


def test_sync_can_require_auth(client, monkeypatch):
    monkeypatch.setenv("HIREMATCH_SYNC_REQUIRE_AUTH", "true")
    resp = client.post("/v1/jobs/sync")
    assert resp.status_code == 401
    assert resp.json() == {"message": "Unauthorized. Please sign in."}
    assert client.post("/v1/jobs/sync", headers=AUTH_HEADER).status_code == 200


def test_list_jobs_and_by_id(client):
    _sync(client)
    body = client.get("/v1/jobs", params={"limit": 2, "offset": 1, "orderBy": "createdAt", "order": "asc"}).json()
    assert body["success"] is True
    assert (body["total"], body["limit"], body["offset"], body["showing"]) == (3, 2, 1, 2)
    job = body["jobs"][0]
    assert {"id", "title", "company", "jobType", "sourceUrl", "postedAt"} <= set(job)

    single = client.get("/v1/jobs", params={"id": job["id"]}).json()
    assert (single["total"], single["limit"], single["offset"], single["showing"]) == (1, 1, 0, 1)
    assert single["jobs"][0]["id"] == job["id"]


def test_list_jobs_unknown_id_and_bad_order(client):
    resp = client.get("/v1/jobs", params={"id": "nope"})
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Job not found"}

    resp = client.get("/v1/jobs", params={"orderBy": "salary"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Validation error"
    assert body["errors"][0]["path"] == "orderBy"


def test_match_requires_auth_and_resume_id(client):
    assert client.get("/v1/jobs/match", params={"resumeId": "x"}).status_code == 401
    resp = client.get("/v1/jobs/match", headers=AUTH_HEADER)
    assert resp.status_code == 400
    assert resp.json() == {"message": "Resume ID is required as query parameter"}


def test_match_unknown_or_foreign_resume(client):
    _sync(client)
    resume_id = _save_resume(client)
    resp = client.get("/v1/jobs/match", params={"resumeId": resume_id}, headers=OTHER_AUTH_HEADER)
    assert resp.status_code == 404
    assert resp.json() == {"message": "Resume not found"}
    assert client.post("/match-jobs", json={"resumeId": "missing"}, headers=AUTH_HEADER).status_code == 404


def test_match_without_jobs(client):
    resume_id = _save_resume(client)
    resp = client.get("/v1/jobs/match", params={"resumeId": resume_id}, headers=AUTH_HEADER)
    assert resp.status_code == 404
    assert resp.json() == {"message": "No jobs available in database. Please sync jobs first."}


def test_match_invalid_stored_resume(client, tmp_path):
    _sync(client)
    resume_id = _insert_raw_resume(tmp_path, "stub-test-user-1", {"skills": "not-a-list"})
    resp = client.get("/v1/jobs/match", params={"resumeId": resume_id}, headers=AUTH_HEADER)
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid resume data format"}


def test_match_falls_back_to_keyword_scores(client):
    llm = _use_llm(FakeLLM(StatusError(401)))
    _sync(client)
    resume_id = _save_resume(client, title="Frontend CV")

    resp = client.post("/v1/jobs/match", json={"resumeId": resume_id}, headers=AUTH_HEADER)
    assert resp.status_code == 200
    body = resp.json()
    assert body["resumeId"] == resume_id
    assert body["resumeTitle"] == "Frontend CV"
    assert body["totalJobs"] == 3
    assert [j["matchScore"] for j in body["jobs"]] == [100, 75, 50]
    assert body["jobs"][0]["title"] == "Senior Frontend Engineer (Mock)"
    assert llm.calls == 1


def _score_by_title(prompt):
    scores = {"Python Backend Engineer (Mock)": 92, "Full Stack Developer (Mock)": 61}
    return json.dumps({j["id"]: scores.get(j["title"], 30) for j in jobs_in_prompt(prompt)})


def test_match_uses_llm_scores_and_cache(client):
    llm = _use_llm(FakeLLM(_score_by_title))
    _sync(client)
    resume_id = _save_resume(client)

    first = client.get("/v1/jobs/match", params={"resumeId": resume_id}, headers=AUTH_HEADER).json()
    assert [(j["title"], j["matchScore"]) for j in first["jobs"]] == [
        ("Python Backend Engineer (Mock)", 92),
        ("Full Stack Developer (Mock)", 61),
        ("Senior Frontend Engineer (Mock)", 30),
    ]

    again = client.get("/match-jobs", params={"resumeId": resume_id}, headers=AUTH_HEADER).json()
    assert again["jobs"] == first["jobs"]
    assert llm.calls == 1

    client.post("/v1/jobs/match", json={"resumeId": resume_id, "refresh": True}, headers=AUTH_HEADER)
    assert llm.calls == 2


def test_match_cache_survives_resync_of_same_jobs(client):
    llm = _use_llm(FakeLLM(_score_by_title))
    _sync(client)
    resume_id = _save_resume(client)
    client.get("/v1/jobs/match", params={"resumeId": resume_id}, headers=AUTH_HEADER)
    # 再次同步只更新同一批职位，职位集合不变，仍命中缓存
    assert _sync(client)["updated"] == 3
    client.get("/v1/jobs/match", params={"resumeId": resume_id}, headers=AUTH_HEADER)
    assert llm.calls == 1


def test_single_job_match(client):
    _use_llm(FakeLLM(StatusError(400)))
    _sync(client)
    resume_id = _save_resume(client)
    jobs = client.get("/v1/jobs").json()["jobs"]
    frontend = next(j for j in jobs if j["title"].startswith("Senior Frontend"))

    resp = client.get(f"/v1/jobs/match/{frontend['id']}", params={"resumeId": resume_id}, headers=AUTH_HEADER)
    assert resp.status_code == 200
    body = resp.json()
    assert body["jobId"] == frontend["id"]
    assert body["matchScore"] == 100
    assert body["job"]["company"] == "TechCorp AI"

    missing = client.get("/v1/jobs/match/nope", params={"resumeId": resume_id}, headers=AUTH_HEADER)
    assert missing.status_code == 404
    assert missing.json() == {"message": "Job not found"}


def test_sync_writes_batches_concurrently(client):
    jobs = [
        ScrapedJob(title=f"Engineer {i}", company="Acme", location="Remote", source_url=f"https://jobs.example.com/{i}")
        for i in range(25)
    ]

    class _ManyJobs(JobSource):
        source_id = "many"

        async def fetch_latest_postings(self):
            return list(jobs)

    app.dependency_overrides[get_job_source] = lambda: _ManyJobs()
    first = _sync(client)
    assert (first["created"], first["updated"], first["errors"]) == (25, 0, [])
    second = _sync(client)
    assert (second["created"], second["updated"], second["errors"]) == (0, 25, [])
    assert client.get("/v1/jobs").json()["total"] == 25
