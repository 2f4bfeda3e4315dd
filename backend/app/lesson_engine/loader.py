"""Dynamic loader — turns stored lesson source into a runnable component module.

Pipeline for one lesson:
  1. resolve the source (object storage first, inline ``content`` second)
  2. require a default export
  3. strip TypeScript (app.lesson_engine.transpiler)
  4. rewrite ``export default X;`` into ``return X;``
  5. wrap the body in a shell function whose parameters are the only runtime
     bindings the component can see, and compile JSX/ES2015 with Babel
  6. evaluate the shell in Duktape against a stub runtime and check that it
     yields a function

The compiled shell is returned to the client, which calls it with the real
React runtime. Every failure is a LessonLoadError; callers show a generic
message and log the detail.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import dukpy

from app.lesson_engine.errors import LessonLoadError, StorageError
from app.lesson_engine.transpiler import mask_source, rewrite_default_export, strip_types
from app.services.lesson_storage import LessonStorage, get_lesson_storage

logger = logging.getLogger(__name__)

EXPORT_MARKER = "export default"
SHELL_NAME = "__lessonShell"

# Order matters: the client passes the real objects positionally.
RUNTIME_BINDINGS: tuple[str, ...] = (
    "React",
    "useState",
    "useEffect",
    "useRef",
    "useMemo",
    "useCallback",
    "console",
    "window",
    "document",
)

# dukpy.jsx_compile applies the es2015 and react presets itself.
BABEL_PLUGINS = ["transform-object-rest-spread"]

# Babel's es2015 preset leaves async functions as they are and Duktape
# cannot parse them.
_ASYNC_RE = re.compile(r"\basync\s+(?:function\b|\(|[A-Za-z_$][\w$]*\s*(?:=>|\())")

# Stand-ins used only to check that the shell evaluates to a component.
_STUB_RUNTIME = """
var __lessonRuntime = (function () {
  function noop() {}
  var React = {
    Fragment: 'Fragment',
    createElement: function (type, props) {
      return { type: type, props: props || {}, children: Array.prototype.slice.call(arguments, 2) };
    },
    useState: function (initial) {
      return [typeof initial === 'function' ? initial() : initial, noop];
    },
    useEffect: noop,
    useRef: function (initial) { return { current: initial }; },
    useMemo: function (factory) { return factory(); },
    useCallback: function (fn) { return fn; }
  };
  return {
    React: React,
    useState: React.useState,
    useEffect: React.useEffect,
    useRef: React.useRef,
    useMemo: React.useMemo,
    useCallback: React.useCallback,
    console: { log: noop, info: noop, warn: noop, error: noop, debug: noop },
    window: {},
    document: {}
  };
})();
"""


@dataclass
class LoadedComponent:
    lesson_id: str
    component_name: str
    # ES5 source defining ``var __lessonShell = function (<bindings>) {...}``
    code: str
    entry: str = SHELL_NAME
    bindings: list[str] = field(default_factory=lambda: list(RUNTIME_BINDINGS))
    source: str = "storage"


async def resolve_source(
    file_path: Optional[str],
    content: Optional[str],
    storage: Optional[LessonStorage],
) -> tuple[str, str]:
    """Return (source text, where it came from: "storage" | "database")."""
    if file_path and storage is not None:
        try:
            text = await storage.download(file_path)
            if text:
                return text, "storage"
            logger.warning("Stored lesson file %s is empty, trying database content", file_path)
        except StorageError as e:
            logger.warning("Storage download failed, trying database content: %s", e)
    if content:
        return content, "database"
    raise LessonLoadError("No lesson content found in storage or database")


def build_shell(body: str) -> str:
    params = ", ".join(RUNTIME_BINDINGS)
    return f"var {SHELL_NAME} = function ({params}) {{\n{body}\n}};\n"


def compile_shell(shell: str) -> str:
    """Compile JSX and ES2015 syntax down to ES5 with Babel."""
    try:
        code = dukpy.jsx_compile(shell, plugins=BABEL_PLUGINS)
    except dukpy.JSRuntimeError as e:
        raise LessonLoadError(f"Babel transformation failed: {e}") from e
    except Exception as e:
        raise LessonLoadError(f"Babel transformation failed ({type(e).__name__}): {e}") from e
    if not code:
        raise LessonLoadError("Babel transformation failed - no code generated")
    return code


def evaluate_shell(compiled: str) -> str:
    """Run the shell against the stub runtime; return ``typeof`` its result."""
    args = ", ".join(f"__lessonRuntime.{name}" for name in RUNTIME_BINDINGS)
    script = "\n".join([
        compiled,
        _STUB_RUNTIME,
        f"var __lessonComponent = {SHELL_NAME}({args});",
        "typeof __lessonComponent;",
    ])
    try:
        return dukpy.evaljs(script)
    except dukpy.JSRuntimeError as e:
        raise LessonLoadError(f"Failed to execute generated component: {e}") from e
    except Exception as e:
        raise LessonLoadError(f"Failed to execute generated component ({type(e).__name__}): {e}") from e


def prepare_component(lesson_id: str, source: str) -> LoadedComponent:
    """Synchronous part of the loader: validate, transpile, compile, evaluate."""
    if EXPORT_MARKER not in source:
        raise LessonLoadError("Generated content missing export default statement")
    if _ASYNC_RE.search(mask_source(source)):
        raise LessonLoadError("Generated content uses async functions, which the lesson runtime cannot run")

    body = strip_types(source)
    body, component_name = rewrite_default_export(body)
    compiled = compile_shell(build_shell(body))

    kind = evaluate_shell(compiled)
    if kind != "function":
        raise LessonLoadError(f"Generated content did not return a valid React component (got {kind})")

    return LoadedComponent(lesson_id=lesson_id, component_name=component_name, code=compiled)


class DynamicLoader:
    def __init__(self, storage: Optional[LessonStorage]):
        self.storage = storage

    async def load(self, lesson) -> LoadedComponent:
        """Load a generated lesson record into a component module.

        Raises:
            LessonLoadError: at any step; the lesson cannot be rendered.
        """
        source, origin = await resolve_source(lesson.file_path, lesson.content, self.storage)
        logger.debug("Lesson %s source resolved from %s (%d chars)", lesson.id, origin, len(source))
        # Babel and Duktape block; keep them off the event loop
        component = await asyncio.to_thread(prepare_component, lesson.id, source)
        component.source = origin
        return component


def get_lesson_loader() -> DynamicLoader:
    """FastAPI dependency."""
    return DynamicLoader(get_lesson_storage())
