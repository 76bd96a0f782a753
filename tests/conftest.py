import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest

from app.models.models import JobPosting, ResumeProfile


class FakeLLM:
    """Scripted completion callable; Exception replies are raised."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def __call__(self, prompt, temperature=0.2):
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def make_llm():
    return FakeLLM


@pytest.fixture
def resume():
    return ResumeProfile(
        user_id="user-1",
        extracted_text="Jane Doe\n4 years of experience building APIs on AWS with agile teams.",
        skills=["Python", "AWS", "react"],
        experience=[
            "Built Python services on AWS",
            "Organised the office party",
            "Led an agile team of four",
            "Wrote React dashboards",
            "Migrated Python jobs to Docker",
        ],
        keywords=["cloud", "services"],
    )


@pytest.fixture
def job():
    return JobPosting(
        id="job-1",
        title="Backend Engineer",
        company="Acme",
        skills=["Python", "AWS", "Docker"],
        description="Join an agile team building cloud services.",
        requirements=["Python", "Experience with testing"],
    )
