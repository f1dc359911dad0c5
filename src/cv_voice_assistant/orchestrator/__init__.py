"""
Orchestrator module for CV ingestion and question answering.
"""

from cv_voice_assistant.orchestrator.cv_ingestion import CVAnalyzer, UploadedFile, parse_document
from cv_voice_assistant.orchestrator.query_orchestrator import (
    SYSTEM_PROMPT,
    QueryOrchestrator,
    build_context,
    format_interaction,
)

__all__ = [
    "CVAnalyzer",
    "UploadedFile",
    "parse_document",
    "QueryOrchestrator",
    "SYSTEM_PROMPT",
    "build_context",
    "format_interaction",
]
