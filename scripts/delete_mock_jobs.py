#!/usr/bin/env python3
"""
清理 mock 职位源写入的示例职位（标题以 "(Mock)" 结尾或链接为 example.com）。
正常同步流程从不删除职位，切换到真实职位源后用本脚本清一次库。
用法: uv run python scripts/delete_mock_jobs.py [--yes]
"""
import asyncio
import sys

from sqlalchemy import delete, or_, select

from hirematch.db import Job, create_engine, create_session_factory, init_db

_MOCK_FILTER = or_(Job.title.like("%(Mock)"), Job.source_url.like("https://example.com/jobs/%"))


async def run(confirm: bool) -> None:
    engine = create_engine()
    try:
        await init_db(engine)
        session_factory = create_session_factory(engine)
        async with session_factory() as session:
            rows = (await session.execute(select(Job.id, Job.title, Job.company).where(_MOCK_FILTER))).all()
            if not rows:
                print("没有 mock 职位。")
                return
            for _id, title, company in rows:
                print(f"- {title} @ {company}")
            if not confirm:
                print(f"\n共 {len(rows)} 条；加 --yes 执行删除。")
                return
            await session.execute(delete(Job).where(_MOCK_FILTER))
            await session.commit()
            print(f"\n已删除 {len(rows)} 条 mock 职位。")
    finally:
        await engine.dispose()


def main():
    asyncio.run(run("--yes" in sys.argv[1:]))


if __name__ == "__main__":
    main()
