"""Structured methods -- prompt templates whose answers are parsed as JSON.

Public API:
    MethodBuilder     - owns the dialog session, creates methods
    StructuredMethod  - execute() / build_prompt()
    MethodConfig      - method definition
    extract_json      - JSON extraction with required-field checks
"""

from k2think.methods.builder import MethodBuilder, StructuredMethod, create
from k2think.methods.extractor import extract_json, is_extraction_error, validate_required
from k2think.methods.schemas import BuilderStatus, MethodConfig
from k2think.methods.templates import TEMPLATES

__all__ = [
    "BuilderStatus",
    "MethodBuilder",
    "MethodConfig",
    "StructuredMethod",
    "TEMPLATES",
    "create",
    "extract_json",
    "is_extraction_error",
    "validate_required",
]
