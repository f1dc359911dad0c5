"""
CV ingestion module.

Extracts text from uploaded CV files and analyzes it into the structured
CVData schema using the LLM.
"""

from __future__ import annotations

import io
import logging
import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cv_voice_assistant.models.llm_client import LLMClient, Message
from cv_voice_assistant.schemas import CVData, ExperienceEntry, PersonalInfo

logger = logging.getLogger(__name__)

PDF_TYPES = {"application/pdf"}
DOCX_TYPES = {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}


@dataclass(frozen=True)
class UploadedFile:
    """An uploaded source document."""

    name: str
    mime_type: str
    data: bytes

    @classmethod
    def from_path(cls, file_path: str | Path) -> "UploadedFile":
        """
        Load a file from disk.

        Raises:
            FileNotFoundError: If the file doesn't exist.
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"CV file not found: {path}")
        mime_type = mimetypes.guess_type(path.name)[0] or "text/plain"
        return cls(name=path.name, mime_type=mime_type, data=path.read_bytes())


def _read_pdf(data: bytes) -> str:
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(data))
    pages = [page.extract_text() or "" for page in reader.pages]
    return "\n".join(p for p in pages if p.strip())


def _read_docx(data: bytes) -> str:
    from docx import Document

    doc = Document(io.BytesIO(data))
    paragraphs = [para.text for para in doc.paragraphs if para.text.strip()]
    return "\n".join(paragraphs)


def parse_document(file: UploadedFile) -> str:
    """
    Extract plain text from an uploaded CV.

    PDF and DOCX are detected by MIME type or extension; anything else is
    decoded as UTF-8 text.

    Raises:
        ValueError: If no text could be extracted.
    """
    suffix = Path(file.name).suffix.lower()
    if file.mime_type in PDF_TYPES or suffix == ".pdf":
        text = _read_pdf(file.data)
    elif file.mime_type in DOCX_TYPES or suffix == ".docx":
        text = _read_docx(file.data)
    else:
        text = file.data.decode("utf-8", errors="replace")

    text = text.strip()
    if not text:
        raise ValueError(f"CV file is empty: {file.name}")
    logger.debug(f"Document text extracted: {file.name} ({len(text)} chars)")
    return text


class CVAnalyzer:
    """
    Analyzes raw CV text into CVData.

    Uses the LLM to extract structure; falls back to a simple heuristic
    parse when the model output is unusable.
    """

    ANALYSIS_PROMPT = """You are a CV parser. Extract structured information from the following CV.

CV Text:
\"\"\"
{raw_text}
\"\"\"

Return JSON in exactly this shape:
{{
    "personal_info": {{
        "name": "<full name or empty string>",
        "email": "<email or empty string>",
        "summary": "<two or three sentence professional summary>"
    }},
    "skills": ["<skill1>", "<skill2>", ...],
    "experience": [
        {{
            "role": "<job title>",
            "company": "<employer>",
            "period": "<e.g. 2019 - 2022>",
            "highlights": ["<achievement or responsibility>", ...]
        }}
    ]
}}

Rules:
- List experience most recent first
- Keep highlights short and factual, taken from the CV
- If a field is not present, use an empty string or empty list

Only return valid JSON, no other text."""

    def __init__(self, llm_client: LLMClient) -> None:
        """
        Initialize the CV analyzer.

        Args:
            llm_client: LLM client for structured extraction.
        """
        self._llm_client = llm_client

    async def analyze(self, raw_text: str) -> CVData:
        """
        Analyze CV text into structured data.

        Raises:
            CompletionFailedError: If the hosted call fails.
        """
        prompt = self.ANALYSIS_PROMPT.format(raw_text=raw_text[:12000])
        parsed = await self._llm_client.chat_with_json(
            messages=[Message(role="user", content=prompt)],
        )

        if parsed:
            try:
                cv_data = CVData.model_validate(self._normalize(parsed))
                logger.info(
                    f"CV analysis complete: {len(cv_data.skills)} skills, "
                    f"{len(cv_data.experience)} experience entries"
                )
                return cv_data
            except ValidationError as e:
                logger.warning(f"LLM CV output failed validation, using fallback: {e}")
        else:
            logger.warning("LLM returned no usable CV structure, using fallback")

        return self._fallback_parse(raw_text)

    @staticmethod
    def _normalize(parsed: dict[str, Any]) -> dict[str, Any]:
        """Coerce loosely-typed model output into the CVData shape."""
        personal = parsed.get("personal_info") or {}
        if not isinstance(personal, dict):
            personal = {"summary": str(personal)}

        skills = parsed.get("skills") or []
        if isinstance(skills, str):
            skills = [s.strip() for s in skills.split(",")]

        experience = []
        for entry in parsed.get("experience") or []:
            if not isinstance(entry, dict):
                continue
            highlights = entry.get("highlights") or []
            if isinstance(highlights, str):
                highlights = [highlights]
            experience.append(
                {
                    "role": str(entry.get("role") or ""),
                    "company": str(entry.get("company") or ""),
                    "period": str(entry.get("period") or ""),
                    "highlights": [str(h) for h in highlights if h],
                }
            )

        return {
            "personal_info": {
                "name": str(personal.get("name") or ""),
                "email": str(personal.get("email") or ""),
                "summary": str(personal.get("summary") or ""),
            },
            "skills": [str(s) for s in skills if s],
            "experience": experience,
        }

    def _fallback_parse(self, raw_text: str) -> CVData:
        """
        Heuristic parser used when the LLM output is unusable.

        Picks up an email, a "Skills:" line and "<role> at <company> (<period>)"
        lines.
        """
        lines = [line.strip() for line in raw_text.splitlines() if line.strip()]

        email_match = re.search(r"[\w.+-]+@[\w-]+\.[\w.-]+", raw_text)
        name = lines[0] if lines and len(lines[0]) < 80 and "@" not in lines[0] else ""

        skills: list[str] = []
        for line in lines:
            match = re.match(r"(?i)^(?:technical\s+)?skills\s*[:\-]\s*(.+)$", line)
            if match:
                skills.extend(s.strip() for s in re.split(r"[,;|]", match.group(1)) if s.strip())

        experience: list[ExperienceEntry] = []
        exp_pattern = re.compile(r"^(?P<role>.+?)\s+at\s+(?P<company>[^()]+?)\s*(?:\((?P<period>[^)]*)\))?$")
        for line in lines:
            match = exp_pattern.match(line)
            if match:
                experience.append(
                    ExperienceEntry(
                        role=match.group("role").strip(),
                        company=match.group("company").strip(),
                        period=(match.group("period") or "").strip(),
                    )
                )

        summary = " ".join(lines[1:4])[:500] if len(lines) > 1 else ""

        return CVData(
            personal_info=PersonalInfo(
                name=name,
                email=email_match.group(0) if email_match else "",
                summary=summary,
            ),
            skills=skills,
            experience=experience,
        )
