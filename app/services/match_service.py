"""
Match Service: batch scoring, stored matches and match reports
"""
import asyncio
import os
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import pandas as pd
from dotenv import load_dotenv

from app.models.models import JobPosting, MatchScore, ResumeProfile
from app.services.db import MatchStore
from app.services.matching import calculate_match_score
from app.utils.logging_config import get_logger, PerformanceMonitor

load_dotenv()
MATCH_BATCH_SIZE = int(os.getenv("MATCH_BATCH_SIZE", "10"))
REPORT_DIR = os.getenv("REPORT_DIR", "./reports")

logger = get_logger(__name__)


def filter_by_band(matches: List[MatchScore], band: str = "all") -> List[MatchScore]:
    if band == "high":
        return [m for m in matches if m.score > 70]
    if band == "medium":
        return [m for m in matches if 40 <= m.score <= 70]
    return list(matches)


class MatchService:
    def __init__(self, store: MatchStore, llm: Optional[Callable[..., str]] = None,
                 batch_size: int = MATCH_BATCH_SIZE):
        self.store = store
        self.llm = llm
        self.batch_size = max(1, batch_size)

    async def score_jobs(self, resume: ResumeProfile, jobs: List[JobPosting]) -> List[MatchScore]:
        """Score jobs in batches of `batch_size` concurrent calls, keeping input order."""
        loop = asyncio.get_running_loop()
        matches: List[MatchScore] = []
        for i in range(0, len(jobs), self.batch_size):
            batch = jobs[i:i + self.batch_size]
            results = await asyncio.gather(*[
                loop.run_in_executor(None, calculate_match_score, resume, job, self.llm)
                for job in batch
            ])
            matches.extend(results)
            logger.debug(f"Scored batch {i // self.batch_size + 1} ({len(batch)} jobs) for {resume.user_id}")
        return matches

    async def calculate_matches(self, user_id: str, resume: ResumeProfile, jobs: List[JobPosting]) -> List[MatchScore]:
        unique = {}
        for job in jobs:
            unique.setdefault(job.id, job)  # first posting wins
        if len(unique) < len(jobs):
            logger.warning(f"Ignoring {len(jobs) - len(unique)} duplicate job ids for {user_id}")
            jobs = list(unique.values())
        with PerformanceMonitor(f"calculate_matches ({len(jobs)} jobs)", logger, threshold_ms=30000):
            matches = await self.score_jobs(resume, jobs)
        await self.store.replace_for_user(user_id, matches)
        logger.info(f"Stored {len(matches)} matches for {user_id}")
        return matches

    async def get_matches(self, user_id: str, job_ids: Optional[List[str]] = None, band: str = "all") -> List[MatchScore]:
        matches = await self.store.list_for_user(user_id)
        if job_ids:
            wanted = set(job_ids)
            matches = [m for m in matches if m.job_id in wanted]
        return filter_by_band(matches, band)

    async def get_best_matches(self, user_id: str, limit: int = 8) -> List[MatchScore]:
        matches = await self.store.list_for_user(user_id)
        return sorted(matches, key=lambda m: m.score, reverse=True)[:limit]

    async def get_match_for_job(self, user_id: str, job_id: str) -> Optional[MatchScore]:
        for m in await self.store.list_for_user(user_id):
            if m.job_id == job_id:
                return m
        return None

    async def export_report(self, user_id: str, report_dir: str = None) -> Tuple[str, str]:
        matches = await self.store.list_for_user(user_id)
        return write_match_report(user_id, matches, report_dir or REPORT_DIR)


def write_match_report(user_id: str, matches: List[MatchScore], report_dir: str) -> Tuple[str, str]:
    Path(report_dir).mkdir(parents=True, exist_ok=True)

    data = [{
        "job_id": m.job_id,
        "score": m.score,
        "matching_skills": ", ".join(m.explanation.matching_skills),
        "keyword_alignment": ", ".join(m.explanation.keyword_alignment),
        "reason": m.explanation.overall_reason,
    } for m in matches]

    df = pd.DataFrame(data, columns=["job_id", "score", "matching_skills", "keyword_alignment", "reason"])
    if len(df):
        df = df.sort_values("score", ascending=False)

    csv_path = os.path.join(report_dir, f"{user_id}_matches.csv")
    df.to_csv(csv_path, index=False)  # headers only when empty

    md_lines = [f"# Top Matches for {user_id}"]
    if len(df):
        md_lines += [
            "| Rank | Job ID | Score | Matching Skills |",
            "|---:|---|---:|---|",
        ]
        for i, r in enumerate(df.head(10).itertuples(), start=1):
            md_lines.append(f"| {i} | {r.job_id} | {r.score} | {r.matching_skills or '-'} |")
        md_lines.append("\n---\nReasons (top-5):")
        for r in df.head(5).itertuples():
            md_lines.append(f"- **{r.job_id}**: {r.reason}")
    else:
        md_lines.append("> No matches calculated yet.\n")

    md_path = os.path.join(report_dir, f"{user_id}_top.md")
    Path(md_path).write_text("\n".join(md_lines), encoding="utf-8")
    logger.info(f"Wrote match report for {user_id}: {csv_path}, {md_path}")
    return csv_path, md_path
