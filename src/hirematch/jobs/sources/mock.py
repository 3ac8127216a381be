"""Mock 职位源：返回固定示例职位，无需外部 API，用于本地开发与测试。"""
from hirematch.jobs.schemas import ScrapedJob
from .base import JobSource


class MockJobSource(JobSource):
    """内置示例职位，便于端到端跑通同步与匹配。"""

    source_id = "mock"

    async def fetch_latest_postings(self) -> list[ScrapedJob]:
        return [
            ScrapedJob(
                title="Senior Frontend Engineer (Mock)",
                company="TechCorp AI",
                location="Remote",
                job_type="Full-time",
                short_description="We are looking for a React expert to build our next-gen AI interface.",
                full_description=(
                    "We are looking for a Senior Frontend Engineer to join our team. You will be responsible "
                    "for building the UI for our AI-powered platform. Requirements: React, TypeScript, "
                    "Tailwind CSS, Next.js. Experience with AI integrations is a plus."
                ),
                source_url="https://example.com/jobs/1",
            ),
            ScrapedJob(
                title="Full Stack Developer (Mock)",
                company="StartupX",
                location="San Francisco, CA",
                job_type="Hybrid",
                short_description="Join a fast-paced startup building the future of finance.",
                full_description=(
                    "StartupX is seeking a Full Stack Developer. You will work on both the frontend and "
                    "backend of our fintech application. Stack: Node.js, PostgreSQL, React. "
                    "Competitive salary and equity."
                ),
                source_url="https://example.com/jobs/2",
            ),
            ScrapedJob(
                title="Python Backend Engineer (Mock)",
                company="DataWorks",
                location="Berlin, Germany",
                job_type="Full-time",
                short_description="Build data APIs with Python and FastAPI.",
                full_description=(
                    "DataWorks needs a backend engineer for its data platform. Python, FastAPI, "
                    "PostgreSQL and async IO experience required; LLM integration experience is a plus."
                ),
                source_url="https://example.com/jobs/3",
            ),
        ]
