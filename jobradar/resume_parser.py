"""Extract structured profile data from an uploaded resume.

Supports PDF (via pdftotext or pypdf), DOCX (via stdlib zipfile), and TXT.
With an LLM configured the raw text is sent for structured extraction;
otherwise a heuristic regex parser fills the same shape.
"""
from __future__ import annotations

import re
import shutil
import subprocess
import time
import zipfile
from pathlib import Path
from typing import Any
from xml.etree import ElementTree

from jobradar.context import AppContext
from jobradar.llm import LLMClient
from jobradar.log import get_logger

log = get_logger(__name__)

SUPPORTED_SUFFIXES = (".pdf", ".docx", ".txt")

# ── Text extraction ──────────────────────────────────────────────────────


def extract_text(path: Path) -> str:
    """Return plain text from a PDF, DOCX, or TXT file."""
    suffix = path.suffix.lower()
    if suffix == ".txt":
        return path.read_text(encoding="utf-8", errors="ignore")
    if suffix == ".docx":
        return _extract_docx(path)
    if suffix == ".pdf":
        return _extract_pdf(path)
    raise ValueError(f"Unsupported resume format: {suffix}")


def _fix_spacing(text: str) -> str:
    """Re-insert spaces when PDF extraction merges words together."""
    if not text or len(text) < 50:
        return text
    space_ratio = text.count(" ") / len(text)
    if space_ratio > 0.08:
        return text

    log.debug("Low space ratio (%.2f%%) — applying spacing fix", space_ratio * 100)
    fixed = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    fixed = re.sub(r"([a-zA-Z])(\d)", r"\1 \2", fixed)
    fixed = re.sub(r"(\d)([a-zA-Z])", r"\1 \2", fixed)
    fixed = re.sub(r"([.!?,;:])([A-Za-z])", r"\1 \2", fixed)
    return fixed


def _extract_pdf(path: Path) -> str:
    if shutil.which("pdftotext"):
        result = subprocess.run(
            ["pdftotext", "-layout", str(path), "-"],
            capture_output=True,
            text=True,
            timeout=30,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout
        log.debug("pdftotext gave no text for %s, trying pypdf", path.name)

    from pypdf import PdfReader

    try:
        reader = PdfReader(str(path))
        pages = [_fix_spacing(page.extract_text() or "") for page in reader.pages]
    except Exception as exc:
        raise ValueError(f"Failed to parse PDF content: {exc}") from exc
    return "\n".join(pages)


def _extract_docx(path: Path) -> str:
    ns = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
    texts: list[str] = []
    with zipfile.ZipFile(path) as zf:
        with zf.open("word/document.xml") as f:
            tree = ElementTree.parse(f)
            for para in tree.iter(f"{ns}p"):
                parts = [node.text for node in para.iter(f"{ns}t") if node.text]
                if parts:
                    texts.append("".join(parts))
    return "\n".join(texts)


# ── LLM-based extraction ────────────────────────────────────────────────

_PARSE_PROMPT = """\
You are a Resume Parser. Extract the following JSON structure from the resume
text below. Return ONLY the JSON, no markdown formatting.

Structure:
{{
  "contactInfo": {{"email": string, "phone": string, "linkedin": string, "website": string}},
  "summary": string,
  "skills": [{{"category": string, "items": [string]}}],
  "experience": [{{"role": string, "company": string, "duration": string, "keyAchievements": [string]}}],
  "education": [{{"degree": string, "school": string, "year": string}}],
  "technicalProficiency": [{{"tech": string, "level": "Beginner" | "Intermediate" | "Advanced" | "Expert"}}]
}}

Resume Text:
{resume_text}
"""

_LIST_KEYS = ("skills", "experience", "education", "technicalProficiency")


def _normalize_structured(data: dict[str, Any]) -> dict[str, Any]:
    contact = data.get("contactInfo")
    data["contactInfo"] = contact if isinstance(contact, dict) else {}
    data["summary"] = str(data.get("summary") or "")
    for key in _LIST_KEYS:
        value = data.get(key)
        data[key] = [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []
    return data


def llm_extract(text: str, llm: LLMClient) -> dict[str, Any]:
    prompt = _PARSE_PROMPT.format(resume_text=text[:12000])
    return _normalize_structured(llm.complete_json(prompt, max_tokens=3000, temperature=0.1))


# ── Heuristic fallback ──────────────────────────────────────────────────

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
_PHONE_RE = re.compile(r"[\+]?\d[\d\s\-().]{7,15}\d")
_LINKEDIN_RE = re.compile(r"(?:https?://)?(?:www\.)?linkedin\.com/in/[\w-]+/?", re.IGNORECASE)

_COMMON_SKILLS = [
    "python", "java", "javascript", "typescript", "react", "node", "angular",
    "vue", "go", "rust", "sql", "mongodb", "postgresql", "mysql", "redis",
    "docker", "kubernetes", "aws", "gcp", "azure", "terraform", "ansible",
    "git", "linux", "ci/cd", "graphql", "microservices", "kafka", "spark",
    "machine learning", "pandas", "pytorch", "tensorflow", "figma",
]


def heuristic_extract(text: str) -> dict[str, Any]:
    """Best-effort extraction without an LLM."""
    low = text.lower()
    found = [s for s in _COMMON_SKILLS if re.search(rf"(?<![\w]){re.escape(s)}(?![\w])", low)]
    email = _EMAIL_RE.search(text)
    phone = _PHONE_RE.search(text)
    linkedin = _LINKEDIN_RE.search(text)
    return _normalize_structured({
        "contactInfo": {
            "email": email.group(0) if email else "",
            "phone": phone.group(0).strip() if phone else "",
            "linkedin": linkedin.group(0) if linkedin else "",
            "website": "",
        },
        "summary": "",
        "skills": [{"category": "Detected", "items": found}] if found else [],
        "technicalProficiency": [{"tech": s, "level": "Intermediate"} for s in found],
    })


# ── Public API ───────────────────────────────────────────────────────────


def parse_resume(path: Path, llm: LLMClient | None = None) -> dict[str, Any]:
    log.info("Extracting text from %s", path.name)
    text = extract_text(path)
    if not text.strip():
        raise ValueError(f"Could not extract any text from {path.name}")
    log.debug("Resume text length: %d", len(text))

    if llm is not None:
        log.info("Parsing resume with LLM (%s)", llm.model)
        try:
            return llm_extract(text, llm)
        except Exception as exc:
            log.warning("LLM parsing failed (%s), falling back to heuristic", exc)

    log.info("Parsing resume with heuristic extractor")
    return heuristic_extract(text)


def upload_resume(ctx: AppContext, filename: str, data: bytes) -> dict[str, Any]:
    """Store an uploaded resume, extract its profile, and record it."""
    if not filename or not data:
        return {"success": False, "error": "No file provided"}

    suffix = Path(filename).suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        return {"success": False, "error": f"Unsupported resume format: {suffix or filename}"}

    user_dir = Path(ctx.settings.resume_dir) / ctx.user_id
    try:
        user_dir.mkdir(parents=True, exist_ok=True)
        dest = user_dir / f"{int(time.time() * 1000)}{suffix}"
        dest.write_bytes(data)
    except OSError as exc:
        log.error("Upload error: %s", exc)
        return {"success": False, "error": f"Failed to upload file: {exc}"}
    log.info("Stored %s → %s", filename, dest)

    try:
        structured = parse_resume(dest, ctx.llm)
        resume_id = ctx.store.save_resume(ctx.user_id, str(dest), filename, structured)
    except Exception as exc:
        log.error("Failed to process resume %s: %s", filename, exc)
        return {"success": False, "error": f"Failed to process resume: {exc}"}

    return {"success": True, "resume_id": resume_id, "structured_data": structured}


def skill_names(structured: dict[str, Any] | None) -> list[str]:
    """Flat, de-duplicated skill list (proficiency first) for pre-filling searches."""
    if not structured:
        return []
    names = [str(t.get("tech", "")) for t in structured.get("technicalProficiency", [])]
    for group in structured.get("skills", []):
        group_items = group.get("items")
        if isinstance(group_items, list):
            names.extend(i for i in group_items if isinstance(i, str))
    return list(dict.fromkeys(n.strip() for n in names if n and n.strip()))
