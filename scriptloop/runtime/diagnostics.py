"""
Map diagnostic line numbers back to the caller's source coordinates.

The parent prepends ``linecount`` boilerplate lines to the user's code, so a
line ``L`` in the temporary script is line ``L - linecount`` of the user's
code. Lines that fall before the user code belong to the injected
boilerplate; those keep their raw number and are annotated instead.
"""

from __future__ import annotations

import re
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import scriptloop

INJECTED_ANNOTATION = "In Class"

# Files of this package; line references into them point at loop code.
DRIVER_ROOT = str(Path(scriptloop.__file__).resolve().parent)

_FRAME_LINE = re.compile(r'(?P<head>File "(?P<file>[^"]*)", )line (?P<line>\d+)')
_FREE_LINE = re.compile(r"\bline (?P<line>\d+)\b")


@dataclass(frozen=True)
class LineRemap:
    raw: int
    line: int
    injected: bool

    def render(self) -> str:
        if self.injected:
            return f"line: {self.line} - {INJECTED_ANNOTATION}"
        return f"line: {self.line}"


@dataclass
class Diagnostic:
    message: str
    trace: str = ""
    remaps: list[LineRemap] = field(default_factory=list)

    @property
    def text(self) -> str:
        return f"{self.trace}{self.message}".rstrip("\n")


def remap_line(raw: int, offset: int) -> LineRemap:
    shifted = raw - offset
    if shifted < 0:
        return LineRemap(raw=raw, line=raw, injected=True)
    return LineRemap(raw=raw, line=shifted, injected=False)


def names_driver(text: str, driver_roots: Iterable[str] = (DRIVER_ROOT,)) -> bool:
    return any(root in text for root in driver_roots)


def normalize_text(
    text: str,
    offset: int,
    *,
    driver_roots: Iterable[str] = (DRIVER_ROOT,),
    remaps: Optional[list[LineRemap]] = None,
) -> str:
    """
    Textual fallback: rewrite ``File "...", line N`` frame references and
    free-standing ``line N`` references found in raw diagnostic text.
    """
    roots = tuple(driver_roots)

    def _substitute(match: re.Match) -> str:
        remap = remap_line(int(match.group("line")), offset)
        if remaps is not None:
            remaps.append(remap)
        return match.groupdict().get("head", "") + remap.render()

    def _frame(match: re.Match) -> str:
        if names_driver(match.group("file"), roots):
            return match.group(0)
        return _substitute(match)

    rows = []
    for row in text.splitlines(keepends=True):
        if _FRAME_LINE.search(row):
            row = _FRAME_LINE.sub(_frame, row)
        elif not names_driver(row, roots):
            row = _FREE_LINE.sub(_substitute, row)
        rows.append(row)
    return "".join(rows)


def build_diagnostic(
    exc: BaseException,
    offset: int,
    script_path: Optional[Path | str],
) -> Diagnostic:
    """
    Structured pass over the traceback: frames executing the temporary script
    are remapped from their frame line numbers; the exception text itself
    goes through :func:`normalize_text`.
    """
    remaps: list[LineRemap] = []
    te = traceback.TracebackException.from_exception(exc)
    trace, message = _render(te, offset, str(script_path or ""), remaps)
    return Diagnostic(message=message, trace=trace, remaps=remaps)


def _render(
    te: traceback.TracebackException,
    offset: int,
    script_path: str,
    remaps: list[LineRemap],
) -> tuple[str, str]:
    chained = ""
    if te.__cause__ is not None:
        chained = "".join(_render(te.__cause__, offset, script_path, remaps))
        chained += "\nThe above exception was the direct cause of the following exception:\n\n"
    elif te.__context__ is not None and not te.__suppress_context__:
        chained = "".join(_render(te.__context__, offset, script_path, remaps))
        chained += "\nDuring handling of the above exception, another exception occurred:\n\n"

    rows = [chained]
    if te.stack:
        rows.append("Traceback (most recent call last):\n")
        for frame in te.stack:
            rows.append(_render_frame(frame, offset, script_path, remaps))

    message = normalize_text(
        "".join(te.format_exception_only()),
        offset,
        remaps=remaps,
    )
    return "".join(rows), message


def _render_frame(
    frame: traceback.FrameSummary,
    offset: int,
    script_path: str,
    remaps: list[LineRemap],
) -> str:
    if frame.filename == script_path and frame.lineno is not None:
        remap = remap_line(frame.lineno, offset)
        remaps.append(remap)
        reference = remap.render()
    else:
        reference = f"line {frame.lineno}"

    row = f'  File "{frame.filename}", {reference}, in {frame.name}\n'
    if frame.line:
        row += f"    {frame.line.strip()}\n"
    return row
