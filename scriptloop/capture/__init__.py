from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .console import ConsoleCapture
from .native import NativeCapture, native_capture_supported

STDERR_LABEL = "Stderr:"
STDERR_NATIVE_LABEL = "Stderr native:"


@dataclass(frozen=True)
class CapturedOutput:
    stdout: str = ""
    stderr: str = ""


def merge_stream(
    console_text: str,
    native_text: str,
    *,
    console_label: Optional[str] = None,
    native_label: Optional[str] = None,
) -> str:
    """
    Join the interpreter-sink text and the duplicated-descriptor text of one
    stream, sink first. Empty sources are dropped.
    """
    parts: list[str] = []
    for text, label in ((console_text, console_label), (native_text, native_label)):
        text = text.rstrip("\r\n")
        if not text:
            continue
        parts.append(f"{label}\n{text}" if label else text)
    return "\n".join(parts)


class CaptureSet:
    """Console sinks plus, when available, native descriptor capture."""

    def __init__(
        self,
        console: ConsoleCapture,
        native: Optional[NativeCapture] = None,
    ) -> None:
        self.console = console
        self.native = native

    def flush(self) -> CapturedOutput:
        out, err = self.console.drain()
        native_out = native_err = ""
        if self.native is not None:
            native_out = self.native.read_stdout()
            native_err = self.native.read_stderr()

        return CapturedOutput(
            stdout=merge_stream(out, native_out),
            stderr=merge_stream(
                err,
                native_err,
                console_label=STDERR_LABEL,
                native_label=STDERR_NATIVE_LABEL,
            ),
        )

    def clear(self) -> None:
        self.console.clear()
        if self.native is not None:
            self.native.read_stdout()
            self.native.read_stderr()


__all__ = [
    "CaptureSet",
    "CapturedOutput",
    "ConsoleCapture",
    "NativeCapture",
    "merge_stream",
    "native_capture_supported",
]
