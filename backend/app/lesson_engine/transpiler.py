"""TSX → JSX type stripping and default-export rewriting.

Generated lessons are a small dialect: one React component written in TSX,
no imports other than React, ending in ``export default LessonComponent;``.
This module removes the TypeScript layer so Babel's React preset can compile
what is left:

- ``import`` statements
- ``interface`` and ``type`` declarations
- annotations on variables, parameters and return types
- generic arguments on hook calls (``useState<T>(...)``)
- ``as`` casts

Every pass searches a *masked* copy of the source in which string literals
and comments are blanked out (same length, same newlines), then applies its
edits to the real text.
"""

from __future__ import annotations

import re
from typing import Optional

from app.lesson_engine.errors import LessonLoadError

_IDENT = r"[A-Za-z_$][\w$]*"


# ─────────────────────────────────────────────────────────────────────────────
# Masking and edit helpers
# ─────────────────────────────────────────────────────────────────────────────

def mask_source(src: str) -> str:
    """Blank out comments and string literal bodies, keeping offsets intact."""
    out = list(src)
    i, n = 0, len(src)
    while i < n:
        c = src[i]
        nxt = src[i + 1] if i + 1 < n else ""
        if c == "/" and nxt == "/":
            j = src.find("\n", i)
            j = n if j == -1 else j
            for k in range(i, j):
                out[k] = " "
            i = j
        elif c == "/" and nxt == "*":
            j = src.find("*/", i + 2)
            j = n if j == -1 else j + 2
            for k in range(i, j):
                if out[k] != "\n":
                    out[k] = " "
            i = j
        elif c in "'\"`":
            j = i + 1
            while j < n:
                if src[j] == "\\":
                    j += 2
                    continue
                if src[j] == c:
                    break
                # quotes in JSX text are not strings; stop at the line end
                if src[j] == "\n" and c != "`":
                    break
                j += 1
            for k in range(i + 1, min(j, n)):
                if out[k] != "\n":
                    out[k] = "x"
            i = j + 1
        else:
            i += 1
    return "".join(out)


def _apply_edits(text: str, edits: list[tuple[int, int, str]]) -> str:
    """Apply (start, end, replacement) edits, dropping any nested in an earlier one."""
    kept: list[tuple[int, int, str]] = []
    last_end = -1
    for start, end, repl in sorted(edits, key=lambda e: (e[0], -e[1])):
        if start < last_end:
            continue
        kept.append((start, end, repl))
        last_end = end
    for start, end, repl in reversed(kept):
        text = text[:start] + repl + text[end:]
    return text


def _match_paren(masked: str, open_idx: int) -> Optional[int]:
    depth = 0
    for i in range(open_idx, len(masked)):
        c = masked[i]
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth == 0:
                return i
    return None


def _match_angle(masked: str, open_idx: int) -> Optional[int]:
    depth = 0
    i = open_idx
    while i < len(masked):
        c = masked[i]
        if c == "=" and masked.startswith("=>", i):
            i += 2
            continue
        if c == "<":
            depth += 1
        elif c == ">":
            depth -= 1
            if depth == 0:
                return i
        elif c in ";":
            return None
        i += 1
    return None


def _scan_type(masked: str, start: int, end: int, stops: str) -> int:
    """Index where a type expression starting at ``start`` ends.

    The type ends at the first depth-0 character in ``stops`` or at a closing
    bracket that was not opened inside it. ``=>`` (function types) and
    ``==`` are never treated as ``=`` stops.
    """
    depth = 0
    i = start
    while i < end:
        c = masked[i]
        if c == "=" and masked.startswith("=>", i):
            i += 2
            continue
        if c in "([{<":
            depth += 1
        elif c in ")]}>":
            if depth == 0:
                return i
            depth -= 1
        elif depth == 0 and c in stops:
            return i
        i += 1
    return end


def _trim_back(masked: str, start: int, end: int) -> int:
    while end > start and masked[end - 1].isspace():
        end -= 1
    return end


# ─────────────────────────────────────────────────────────────────────────────
# Passes
# ─────────────────────────────────────────────────────────────────────────────

_IMPORT_FROM_RE = re.compile(
    r"^[ \t]*import\b[^;]*?\bfrom\s*(['\"])[^'\"\n]*\1[ \t]*;?[ \t]*(?:\r?\n)?",
    re.MULTILINE | re.DOTALL,
)
_IMPORT_BARE_RE = re.compile(r"^[ \t]*import\s*(['\"])[^'\"\n]*\1[ \t]*;?[ \t]*(?:\r?\n)?", re.MULTILINE)


def strip_imports(code: str) -> str:
    masked = mask_source(code)
    edits = [(m.start(), m.end(), "") for m in _IMPORT_FROM_RE.finditer(masked)]
    edits += [(m.start(), m.end(), "") for m in _IMPORT_BARE_RE.finditer(masked)]
    return _apply_edits(code, edits)


_INTERFACE_RE = re.compile(
    rf"^[ \t]*(?:export\s+)?(?:declare\s+)?interface\s+{_IDENT}[^{{;]*\{{",
    re.MULTILINE,
)
_TYPE_ALIAS_RE = re.compile(
    rf"^[ \t]*(?:export\s+)?(?:declare\s+)?type\s+{_IDENT}\s*(?:<[^=\n]*>)?\s*=",
    re.MULTILINE,
)


def _type_alias_end(masked: str, start: int) -> int:
    depth = 0
    i = start
    n = len(masked)
    while i < n:
        c = masked[i]
        if c == "=" and masked.startswith("=>", i):
            i += 2
            continue
        if c in "([{<":
            depth += 1
        elif c in ")]}>":
            depth -= 1
        elif depth == 0 and c == ";":
            return i + 1
        elif depth == 0 and c == "\n" and masked[start:i].strip():
            following = masked[i + 1:].lstrip()
            if not following.startswith(("|", "&")):
                return i
        i += 1
    return n


def strip_type_declarations(code: str) -> str:
    masked = mask_source(code)
    edits = []
    for m in _INTERFACE_RE.finditer(masked):
        brace = m.end() - 1
        depth = 0
        close = None
        for i in range(brace, len(masked)):
            if masked[i] == "{":
                depth += 1
            elif masked[i] == "}":
                depth -= 1
                if depth == 0:
                    close = i
                    break
        if close is None:
            continue
        end = close + 1
        if masked.startswith(";", end):
            end += 1
        edits.append((m.start(), end, ""))
    for m in _TYPE_ALIAS_RE.finditer(masked):
        edits.append((m.start(), _type_alias_end(masked, m.end()), ""))
    return _apply_edits(code, edits)


_NAMED_EXPORT_RE = re.compile(r"^([ \t]*)export\s+(?!default\b)(?=(?:const|let|var|function|class)\b)", re.MULTILINE)


def strip_named_exports(code: str) -> str:
    masked = mask_source(code)
    edits = [(m.start(), m.end(), m.group(1)) for m in _NAMED_EXPORT_RE.finditer(masked)]
    return _apply_edits(code, edits)


_HOOK_GENERIC_RE = re.compile(r"\b(?:React\.)?use[A-Z][\w$]*(?=<)")


def strip_hook_generics(code: str) -> str:
    masked = mask_source(code)
    edits = []
    for m in _HOOK_GENERIC_RE.finditer(masked):
        open_idx = m.end()
        close_idx = _match_angle(masked, open_idx)
        if close_idx is None:
            continue
        if masked[close_idx + 1:].lstrip().startswith("("):
            edits.append((open_idx, close_idx + 1, ""))
    return _apply_edits(code, edits)


_VAR_ANNOTATION_RE = re.compile(rf"\b(?:const|let|var)\s+{_IDENT}\s*(?=!?:)")


def strip_variable_annotations(code: str) -> str:
    masked = mask_source(code)
    edits = []
    for m in _VAR_ANNOTATION_RE.finditer(masked):
        start = m.end()
        colon = start + 1 if masked[start] == "!" else start
        end = _scan_type(masked, colon + 1, len(masked), "=;,\n")
        end = _trim_back(masked, colon + 1, end)
        edits.append((start, end, ""))
    return _apply_edits(code, edits)


_SIMPLE_TYPE_RE = re.compile(
    rf"^\s*{_IDENT}(?:\.{_IDENT})*(?:<[^()]*?>)?(?:\[\])*"
    rf"(?:\s*\|\s*{_IDENT}(?:\.{_IDENT})*(?:<[^()]*?>)?(?:\[\])*)*\s*$"
)
_FUNCTION_HEAD_RE = re.compile(rf"\bfunction\b\s*(?:{_IDENT})?\s*$")


def _param_edits(masked: str, start: int, end: int) -> list[tuple[int, int, str]]:
    """Edits removing annotations from the parameters between start and end."""
    segments = []
    depth = 0
    seg_start = start
    i = start
    while i < end:
        c = masked[i]
        if c == "=" and masked.startswith("=>", i):
            i += 2
            continue
        if c in "([{<":
            depth += 1
        elif c in ")]}>":
            depth -= 1
        elif c == "," and depth == 0:
            segments.append((seg_start, i))
            seg_start = i + 1
        i += 1
    segments.append((seg_start, end))

    edits = []
    for s, e in segments:
        colon = _scan_type(masked, s, e, ":")
        if colon >= e or masked[colon] != ":":
            continue
        cut = colon - 1 if colon > s and masked[colon - 1] == "?" else colon
        type_end = _scan_type(masked, colon + 1, e, "=")
        type_end = _trim_back(masked, colon + 1, type_end)
        edits.append((cut, type_end, ""))
    return edits


def strip_parameter_annotations(code: str) -> str:
    masked = mask_source(code)
    edits = []
    n = len(masked)
    for open_idx, c in enumerate(masked):
        if c != "(":
            continue
        close_idx = _match_paren(masked, open_idx)
        if close_idx is None:
            continue
        j = close_idx + 1
        while j < n and masked[j].isspace():
            j += 1

        is_params = False
        if masked.startswith("=>", j):
            is_params = True
        elif masked.startswith(":", j):
            arrow = masked.find("=>", j)
            if arrow != -1 and _SIMPLE_TYPE_RE.match(masked[j + 1:arrow]):
                is_params = True
                edits.append((close_idx + 1, arrow, " "))
        if not is_params and _FUNCTION_HEAD_RE.search(masked, max(0, open_idx - 80), open_idx):
            is_params = True
            if masked.startswith(":", j):
                brace = masked.find("{", j)
                if brace != -1 and _SIMPLE_TYPE_RE.match(masked[j + 1:brace]):
                    edits.append((close_idx + 1, brace, " "))

        if is_params:
            edits.extend(_param_edits(masked, open_idx + 1, close_idx))
    return _apply_edits(code, edits)


_AS_CAST_RE = re.compile(
    rf"(?<=[\w$)\]}}'\"])\s+as\s+(?:const|{_IDENT}(?:\.{_IDENT})*(?:<[^<>\n]*>)?(?:\[\])*)(?=\s*[);,\]}}\n])"
)


def strip_casts(code: str) -> str:
    masked = mask_source(code)
    edits = [(m.start(), m.end(), "") for m in _AS_CAST_RE.finditer(masked)]
    return _apply_edits(code, edits)


def strip_types(source: str) -> str:
    """Turn lesson TSX into plain JSX."""
    code = strip_imports(source)
    code = strip_type_declarations(code)
    code = strip_named_exports(code)
    code = strip_hook_generics(code)
    code = strip_variable_annotations(code)
    code = strip_parameter_annotations(code)
    code = strip_casts(code)
    return code.strip()


# ─────────────────────────────────────────────────────────────────────────────
# Default export
# ─────────────────────────────────────────────────────────────────────────────

_EXPORT_DEFAULT_RE = re.compile(r"\bexport\s+default\b")
_EXPORT_NAME_RE = re.compile(rf"^[ \t]*export\s+default\s+({_IDENT})\s*;?[ \t]*$", re.MULTILINE)
_EXPORT_FUNCTION_RE = re.compile(rf"\bexport\s+default\s+(?=function\s+({_IDENT}))")


def rewrite_default_export(code: str) -> tuple[str, str]:
    """Replace the default export with a ``return`` of the exported name.

    Returns the rewritten code and the component name.

    Raises:
        LessonLoadError: no default export, more than one, or a form other
            than ``export default Name;`` / ``export default function Name``.
    """
    masked = mask_source(code)
    exports = list(_EXPORT_DEFAULT_RE.finditer(masked))
    if not exports:
        raise LessonLoadError("Generated content missing export default statement")
    if len(exports) > 1:
        raise LessonLoadError("Generated content has more than one default export")

    m = _EXPORT_NAME_RE.search(masked)
    if m:
        name = m.group(1)
        return code[:m.start()] + f"return {name};" + code[m.end():], name

    m = _EXPORT_FUNCTION_RE.search(masked)
    if m:
        name = m.group(1)
        return code[:m.start()] + code[m.end():].rstrip() + f"\nreturn {name};", name

    raise LessonLoadError("Unsupported default export form")
