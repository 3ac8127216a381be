#!/usr/bin/env python3
"""
命令行跑一次职位同步（定时任务可直接调用），结果打印到终端。
用法: uv run python scripts/sync_jobs.py [auto|browse_ai|apify|mock]
不传参数时读 HIREMATCH_JOB_SOURCE（默认 auto）。
"""
import asyncio
import sys

from hirematch.core.log import configure_logging
from hirematch.db import create_engine, create_session_factory, init_db
from hirematch.jobs import SqlJobStore, sync_jobs
from hirematch.jobs.scraper_config import get_scraper_config
from hirematch.jobs.sources import get_job_source


async def run(source_id: str | None) -> int:
    engine = create_engine()
    try:
        await init_db(engine)
        store = SqlJobStore(create_session_factory(engine))
        source = get_job_source(source_id)
        print(f"=== 职位源: {source.source_id} ===\n")
        result = await sync_jobs(store, source, config_loader=get_scraper_config)
    finally:
        await engine.dispose()

    print(f"新增: {result.created}  更新: {result.updated}  共: {result.total}")
    for err in result.errors:
        print(f"  ! {err}")
    return 1 if result.errors and not (result.created or result.updated) else 0


def main():
    configure_logging()
    source_id = sys.argv[1] if len(sys.argv) > 1 else None
    sys.exit(asyncio.run(run(source_id)))


if __name__ == "__main__":
    main()
