"""
Duplicated-descriptor capture for output that bypasses ``sys.stdout``.

C extensions, child processes and ``os.write`` calls write straight to
descriptors 1 and 2. Those descriptors are pointed at append-only temporary
files so such writers cannot corrupt the protocol stream, which keeps its own
duplicate of the original descriptor 1.
"""

from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, TextIO

STDOUT_FD = 1
STDERR_FD = 2


def native_capture_supported() -> bool:
    """Feature-detect descriptor duplication on this platform."""
    return sys.platform != "win32" and hasattr(os, "dup2")


@dataclass
class CapturedDescriptor:
    fd: int
    path: Path
    saved_fd: int
    reader: BinaryIO

    def read_new(self) -> str:
        """Return only the bytes written since the previous read."""
        data = self.reader.read()
        if not data:
            return ""
        return data.decode("utf-8", errors="replace")


class NativeCapture:
    def __init__(self, directory: Optional[Path] = None) -> None:
        self.directory = directory
        self.protocol_stream: Optional[TextIO] = None
        self._descriptors: dict[int, CapturedDescriptor] = {}

    @property
    def installed(self) -> bool:
        return bool(self._descriptors)

    def install(self) -> TextIO:
        """
        Redirect descriptors 1/2 and return a text stream on the original
        descriptor 1 for protocol writes.
        """
        if not native_capture_supported():
            raise RuntimeError("Descriptor duplication is not supported here")
        if self.installed:
            raise RuntimeError("Native capture already installed")

        for stream in (sys.__stdout__, sys.__stderr__):
            if stream is not None:
                stream.flush()

        protocol_fd = os.dup(STDOUT_FD)
        try:
            for fd in (STDOUT_FD, STDERR_FD):
                self._descriptors[fd] = self._redirect(fd)
        except OSError:
            self.close()
            os.close(protocol_fd)
            raise

        self.protocol_stream = os.fdopen(
            protocol_fd,
            "w",
            encoding="utf-8",
            buffering=1,
        )
        return self.protocol_stream

    def read_stdout(self) -> str:
        return self._read(STDOUT_FD)

    def read_stderr(self) -> str:
        return self._read(STDERR_FD)

    def close(self) -> None:
        """Restore the original descriptors and remove the backing files."""
        for fd, captured in list(self._descriptors.items()):
            try:
                os.dup2(captured.saved_fd, fd)
            finally:
                os.close(captured.saved_fd)
                captured.reader.close()
                try:
                    captured.path.unlink()
                except OSError:
                    pass
        self._descriptors.clear()

        if self.protocol_stream is not None:
            self.protocol_stream.close()
            self.protocol_stream = None

    def _read(self, fd: int) -> str:
        captured = self._descriptors.get(fd)
        if captured is None:
            return ""
        return captured.read_new()

    def _redirect(self, fd: int) -> CapturedDescriptor:
        handle, raw_path = tempfile.mkstemp(
            prefix=f"scriptloop-fd{fd}-",
            suffix=".log",
            dir=self.directory,
        )
        os.close(handle)
        path = Path(raw_path)

        # O_APPEND keeps writers at end-of-file independent of the reader offset.
        writer = os.open(path, os.O_WRONLY | os.O_APPEND)
        saved_fd = os.dup(fd)
        try:
            os.dup2(writer, fd)
        except OSError:
            os.close(saved_fd)
            raise
        finally:
            os.close(writer)

        return CapturedDescriptor(
            fd=fd,
            path=path,
            saved_fd=saved_fd,
            reader=open(path, "rb"),
        )
