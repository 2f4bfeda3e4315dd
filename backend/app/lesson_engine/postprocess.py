"""Post-processing of raw model output into candidate component source."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from app.lesson_engine.prompts import COMPONENT_NAME

logger = logging.getLogger(__name__)

# ``` optionally followed by a language tag that ends the line (```tsx, ```typescript, ...)
_FENCE_RE = re.compile(r"```(?:[A-Za-z0-9_+.-]+(?=[ \t]*(?:\r?\n|$)))?[ \t]*(?:\r?\n)?")

EXPORT_MARKER = "export default"
FRAMEWORK_IMPORT_MARKER = "import React"
_COMPONENT_DECL_RE = re.compile(rf"\b(?:const|let|var|function)\s+{COMPONENT_NAME}\b")
_RETURN_RE = re.compile(r"\breturn\b")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences wherever they appear, then trim.

    Handles zero, one or several fences. Idempotent.
    """
    if not text:
        return ""
    return _FENCE_RE.sub("", text).strip()


@dataclass
class ValidationReport:
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_component_source(source: str, min_length: int = 100) -> ValidationReport:
    """Lenient structural check of generated component source.

    Missing markers only produce warnings. The source is rejected when it is
    too short to be a component, or has neither a ``return`` statement nor an
    arrow function.
    """
    report = ValidationReport()

    if EXPORT_MARKER not in source:
        report.warnings.append("missing default export")
    if not _COMPONENT_DECL_RE.search(source):
        report.warnings.append(f"missing {COMPONENT_NAME} declaration")
    if FRAMEWORK_IMPORT_MARKER not in source:
        report.warnings.append("missing React import")

    if len(source) < min_length:
        report.errors.append(
            f"Generated content is too short ({len(source)} characters, minimum {min_length})"
        )
    if not _RETURN_RE.search(source) and "=>" not in source:
        report.errors.append("Generated content has no return statement or arrow function")

    for warning in report.warnings:
        logger.warning("Generated content check: %s", warning)
    return report
