import io
import re
from collections import Counter
from pathlib import Path
from typing import List
from pdfminer.high_level import extract_text as pdf_extract
from docx import Document
from app.models.models import ResumeProfile
from app.utils.exceptions import ValidationError
from app.utils.logging_config import get_logger
import logging
logging.getLogger("pdfminer").setLevel(logging.ERROR)

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = [".pdf", ".docx", ".txt"]

COMMON_SKILLS = [
    "JavaScript", "TypeScript", "Python", "Java", "C++", "Go", "Rust",
    "React", "Vue", "Angular", "Next.js", "Node.js", "Express",
    "Django", "Flask", "Spring", "FastAPI",
    "PostgreSQL", "MongoDB", "MySQL", "Redis",
    "AWS", "Azure", "GCP", "Docker", "Kubernetes",
    "Git", "CI/CD", "REST", "GraphQL", "Microservices",
    "TensorFlow", "PyTorch", "Machine Learning", "AI",
    "Agile", "Scrum", "Leadership", "Team Management",
]

SECTION_START = re.compile(r"experience|work history|employment", re.IGNORECASE)
SECTION_END = re.compile(r"education|skills|projects|certifications", re.IGNORECASE)
BULLET = re.compile(r"^[-•*]\s*")


def read_txt(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")


def read_docx(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    return "\n".join([p.text for p in doc.paragraphs])


def read_pdf(data: bytes) -> str:
    try:
        return pdf_extract(io.BytesIO(data))
    except Exception as e:
        # unreadable PDFs still produce a (blank) profile
        logger.warning(f"PDF parsing error: {e}")
        return ""


def extract_text(data: bytes, filename: str) -> str:
    ext = Path(filename).suffix.lower()
    if ext == ".txt":
        return read_txt(data)
    if ext == ".pdf":
        return read_pdf(data)
    if ext == ".docx":
        return read_docx(data)
    raise ValidationError(
        "Unsupported file type. Please upload PDF, DOCX or TXT.",
        field="filename", value=filename,
    )


def extract_skills(text: str) -> List[str]:
    return [
        s for s in COMMON_SKILLS
        if re.search(rf"(?<!\w){re.escape(s)}(?!\w)", text, re.IGNORECASE)
    ]


def extract_experience(text: str) -> List[str]:
    bullets = []
    in_section = False
    for line in text.splitlines():
        trimmed = line.strip()
        is_bullet = bool(BULLET.match(trimmed))

        if not is_bullet and SECTION_START.search(trimmed):
            in_section = True
            continue
        if not is_bullet and SECTION_END.search(trimmed):
            in_section = False

        if in_section and is_bullet:
            bullets.append(BULLET.sub("", trimmed))
    return bullets


def extract_keywords(text: str, top: int = 20) -> List[str]:
    words = re.sub(r"[^\w\s]", " ", text.lower()).split()
    counts = Counter(w for w in words if len(w) > 4)
    return [w for w, _ in counts.most_common(top)]


def build_resume_profile(user_id: str, filename: str, data: bytes) -> ResumeProfile:
    text = extract_text(data, filename)
    profile = ResumeProfile(
        user_id=user_id,
        filename=filename,
        extracted_text=text,
        skills=extract_skills(text),
        experience=extract_experience(text),
        keywords=extract_keywords(text),
    )
    logger.info(
        f"Parsed resume {filename} for {user_id}: {len(profile.skills)} skills, "
        f"{len(profile.experience)} experience bullets"
    )
    return profile
