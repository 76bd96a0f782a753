import os
import re
import math
from typing import Callable, List

from dotenv import load_dotenv

from app.helpers.prompts import EXPERIENCE_PROMPT, EXPLANATION_PROMPT
from app.models.models import JobPosting, MatchExplanation, MatchScore, ResumeProfile
from app.utils.exceptions import CompletionError
from app.utils.logging_config import get_logger
from app.utils.utils import complete, safe_float

load_dotenv()
SCORING_TEMPERATURE = float(os.getenv("SCORING_TEMPERATURE", "0.3"))

logger = get_logger(__name__)

SKILLS_WEIGHT = 40
EXPERIENCE_WEIGHT = 30
KEYWORD_WEIGHT = 20
LEVEL_WEIGHT = 10

# Domain terms looked for in job text
JOB_KEYWORDS = [
    "agile", "scrum", "ci/cd", "api", "microservices",
    "cloud", "aws", "azure", "gcp", "testing",
    "leadership", "team", "architect", "design", "scale",
]

YEARS_PATTERNS = [
    re.compile(r"(\d+)\+?\s*years?\s*of\s*experience", re.IGNORECASE),
    re.compile(r"experience:\s*(\d+)\+?\s*years?", re.IGNORECASE),
]


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def matching_skills(resume_skills: List[str], job_skills: List[str]) -> List[str]:
    have = set(s.lower() for s in resume_skills)
    return [s for s in job_skills if s.lower() in have]


def skill_overlap_score(resume_skills: List[str], job_skills: List[str]) -> float:
    matched = matching_skills(resume_skills, job_skills)
    return len(matched) / max(len(job_skills), 1) * SKILLS_WEIGHT


def experience_relevance(experience: List[str], requirements: List[str], description: str,
                         llm: Callable[..., str] = None) -> float:
    """Model-rated 0..30; the midpoint when the model is unavailable or unparsable."""
    llm = llm or complete
    midpoint = EXPERIENCE_WEIGHT / 2
    try:
        resp = llm(EXPERIENCE_PROMPT.format(
            requirements="\n".join(requirements),
            description=description,
            experience="\n".join(experience),
        ), temperature=SCORING_TEMPERATURE)
    except CompletionError as e:
        logger.warning(f"Experience relevance completion failed, using midpoint: {e}")
        return midpoint

    score = safe_float(resp, fallback=None)
    if score is None:
        logger.warning(f"Unparsable experience relevance reply {resp[:40]!r}, using midpoint")
        return midpoint
    return max(0.0, min(float(EXPERIENCE_WEIGHT), score))


def extract_keywords(text: str) -> List[str]:
    lower = text.lower()
    return [k for k in JOB_KEYWORDS if k in lower]


def job_text(job: JobPosting) -> str:
    return job.description + " " + " ".join(job.requirements)


def keyword_matches(resume: ResumeProfile, job_keywords: List[str]) -> List[str]:
    resume_keywords = set(k.lower() for k in resume.keywords)
    text = resume.extracted_text.lower()
    return [k for k in job_keywords if k.lower() in resume_keywords or k.lower() in text]


def keyword_alignment_score(matches: List[str], job_keywords: List[str]) -> float:
    return len(matches) / max(len(job_keywords), 1) * KEYWORD_WEIGHT


def extract_years_of_experience(text: str) -> int:
    for pattern in YEARS_PATTERNS:
        m = pattern.search(text)
        if m:
            return int(m.group(1))
    # dash bullets as a rough proxy
    bullets = re.findall(r"^-", text, re.MULTILINE)
    return min(15, len(bullets))


def infer_job_level(job: JobPosting) -> int:
    title = job.title.lower()
    if "intern" in title or "junior" in title:
        return 1
    if "senior" in title or "lead" in title:
        return 3
    if "staff" in title or "principal" in title:
        return 4
    if "director" in title or "vp" in title:
        return 5
    return 2


def infer_candidate_level(resume: ResumeProfile) -> int:
    years = extract_years_of_experience(resume.extracted_text)
    if years < 2:
        return 1
    if years < 5:
        return 2
    if years < 8:
        return 3
    if years < 12:
        return 4
    return 5


def level_fit(job_level: int, candidate_level: int) -> float:
    diff = abs(job_level - candidate_level)
    if diff == 0:
        return 1.0
    if diff == 1:
        return 0.7
    if diff == 2:
        return 0.4
    return 0.2


def level_fit_score(resume: ResumeProfile, job: JobPosting) -> float:
    return level_fit(infer_job_level(job), infer_candidate_level(resume)) * LEVEL_WEIGHT


def total_score(skills: float, experience: float, keywords: float, level: float) -> int:
    return min(100, round_half_up(skills + experience + keywords + level))


def score_band(score: int) -> str:
    if score > 70:
        return "strong"
    if score > 40:
        return "medium"
    return "weak"


def default_explanation(score: int, skill_matches: int, job_title: str) -> str:
    band = score_band(score)
    if band == "strong":
        return f"Strong match for {job_title}! You have {skill_matches} matching skills and relevant experience."
    if band == "medium":
        return f"Moderate fit for {job_title}. You meet some requirements, with {skill_matches} matching skills."
    return f"This {job_title} role has different requirements, with limited skill overlap. Consider it for growth opportunities."


def generate_explanation(job: JobPosting, skills: List[str], keywords: List[str], score: int,
                         llm: Callable[..., str] = None) -> str:
    llm = llm or complete
    try:
        resp = llm(EXPLANATION_PROMPT.format(
            job_title=job.title,
            company=job.company,
            score=score,
            matching_skills=", ".join(skills) or "None directly listed",
            keywords=", ".join(keywords) or "Limited overlap",
            level=score_band(score),
        ), temperature=SCORING_TEMPERATURE)
    except CompletionError as e:
        logger.warning(f"Explanation completion failed for job {job.id}: {e}")
        return default_explanation(score, len(skills), job.title)
    return resp.strip() or default_explanation(score, len(skills), job.title)


def find_relevant_experience(experience: List[str], job: JobPosting, limit: int = 3) -> List[str]:
    """First `limit` bullets mentioning a job skill or job keyword, in resume order."""
    skills = [s.lower() for s in job.skills if s.strip()]
    keywords = extract_keywords(job_text(job))
    out = []
    for bullet in experience:
        lower = bullet.lower()
        if any(s in lower for s in skills) or any(k in lower for k in keywords):
            out.append(bullet)
            if len(out) == limit:
                break
    return out


def calculate_match_score(resume: ResumeProfile, job: JobPosting, llm: Callable[..., str] = None) -> MatchScore:
    skills = matching_skills(resume.skills, job.skills)
    skills_score = skill_overlap_score(resume.skills, job.skills)

    experience_score = experience_relevance(resume.experience, job.requirements, job.description, llm)

    job_keywords = extract_keywords(job_text(job))
    keywords = keyword_matches(resume, job_keywords)
    keyword_score = keyword_alignment_score(keywords, job_keywords)

    level_score = level_fit_score(resume, job)

    score = total_score(skills_score, experience_score, keyword_score, level_score)
    logger.debug(
        f"Scored job {job.id} for {resume.user_id}: skills={skills_score:.1f} "
        f"experience={experience_score:.1f} keywords={keyword_score:.1f} level={level_score:.1f} total={score}"
    )

    return MatchScore(
        job_id=job.id,
        user_id=resume.user_id,
        score=score,
        explanation=MatchExplanation(
            matching_skills=skills,
            relevant_experience=find_relevant_experience(resume.experience, job),
            keyword_alignment=keywords,
            overall_reason=generate_explanation(job, skills, keywords, score, llm),
        ),
    )
