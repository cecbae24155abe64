from __future__ import annotations

import io
import sys
from typing import Optional, TextIO


class ConsoleCapture:
    """
    Interpreter-level sinks for ``sys.stdout`` / ``sys.stderr``.

    Installed once for the whole process lifetime; every ``print`` made by a
    snippet lands in an in-memory buffer instead of a descriptor.
    """

    def __init__(self) -> None:
        self.out = io.StringIO()
        self.err = io.StringIO()
        self._saved: Optional[tuple[TextIO, TextIO]] = None

    @property
    def installed(self) -> bool:
        return self._saved is not None

    def install(self) -> None:
        if self._saved is not None:
            raise RuntimeError("Console capture already installed")

        self._saved = (sys.stdout, sys.stderr)
        sys.stdout = self.out
        sys.stderr = self.err

    def uninstall(self) -> None:
        if self._saved is None:
            return

        sys.stdout, sys.stderr = self._saved
        self._saved = None

    def drain(self) -> tuple[str, str]:
        """Return everything written so far and empty both sinks."""
        out = self.out.getvalue()
        err = self.err.getvalue()
        self.clear()
        return out, err

    def clear(self) -> None:
        for sink in (self.out, self.err):
            sink.seek(0)
            sink.truncate(0)
