"""Tests for console sinks, descriptor capture and stream merging"""

import os
import sys
from contextlib import contextmanager

import pytest

from scriptloop.capture import (
    CaptureSet,
    ConsoleCapture,
    NativeCapture,
    merge_stream,
    native_capture_supported,
)


class TestMergeStream:
    def test_console_then_native(self):
        assert merge_stream("from print\n", "from fd\n") == "from print\nfrom fd"

    def test_single_source(self):
        assert merge_stream("", "only native\n") == "only native"
        assert merge_stream("only console", "") == "only console"

    def test_both_empty(self):
        assert merge_stream("", "") == ""

    def test_labels(self):
        merged = merge_stream(
            "bad",
            "worse",
            console_label="Stderr:",
            native_label="Stderr native:",
        )

        assert merged == "Stderr:\nbad\nStderr native:\nworse"


@contextmanager
def console_installed():
    capture = ConsoleCapture()
    capture.install()
    try:
        yield capture
    finally:
        capture.uninstall()


@contextmanager
def native_installed(directory):
    capture = NativeCapture(directory=directory)
    capture.install()
    try:
        yield capture
    finally:
        capture.close()


class TestConsoleCapture:
    """Sinks are installed inside each test body, after pytest has set up its own capture"""

    def test_print_lands_in_sinks(self):
        with console_installed() as console:
            print("hello")
            print("problem", file=sys.stderr)

            assert console.drain() == ("hello\n", "problem\n")

    def test_drain_clears(self):
        with console_installed() as console:
            print("once")
            console.drain()

            assert console.drain() == ("", "")

    def test_uninstall_restores(self):
        original = sys.stdout
        capture = ConsoleCapture()
        capture.install()
        capture.uninstall()

        assert sys.stdout is original
        assert not capture.installed

    def test_double_install_rejected(self):
        with console_installed() as console:
            with pytest.raises(RuntimeError):
                console.install()


@pytest.mark.skipif(not native_capture_supported(), reason="descriptor duplication unavailable")
class TestNativeCapture:
    def test_descriptor_writes_captured(self, tmp_path):
        with native_installed(tmp_path) as native:
            os.write(1, b"raw out\n")
            os.write(2, b"raw err\n")

            assert native.read_stdout() == "raw out\n"
            assert native.read_stderr() == "raw err\n"

    def test_reads_only_new_bytes(self, tmp_path):
        with native_installed(tmp_path) as native:
            os.write(1, b"first\n")
            native.read_stdout()
            os.write(1, b"second\n")

            assert native.read_stdout() == "second\n"

    def test_protocol_stream_bypasses_capture(self, tmp_path):
        with native_installed(tmp_path) as native:
            native.protocol_stream.write("frame\n")
            native.protocol_stream.flush()

            assert native.read_stdout() == ""

    def test_close_removes_backing_files(self, tmp_path):
        capture = NativeCapture(directory=tmp_path)
        capture.install()
        capture.close()

        assert list(tmp_path.iterdir()) == []
        assert capture.protocol_stream is None


class TestCaptureSet:
    def test_flush_labels_stderr(self):
        console = ConsoleCapture()
        capture = CaptureSet(console)
        console.out.write("hi\n")
        console.err.write("oops\n")

        captured = capture.flush()

        assert captured.stdout == "hi"
        assert captured.stderr == "Stderr:\noops"

    def test_clear_empties_sinks(self):
        console = ConsoleCapture()
        capture = CaptureSet(console)
        console.out.write("left over")

        capture.clear()

        assert capture.flush().stdout == ""

    @pytest.mark.skipif(not native_capture_supported(), reason="descriptor duplication unavailable")
    def test_flush_joins_sink_then_descriptor_text(self, tmp_path):
        with native_installed(tmp_path) as native, console_installed() as console:
            capture = CaptureSet(console, native)
            print("from print")
            print("print problem", file=sys.stderr)
            os.write(1, b"from fd\n")
            os.write(2, b"fd problem\n")

            captured = capture.flush()
            again = capture.flush()

        assert captured.stdout == "from print\nfrom fd"
        assert captured.stderr == "Stderr:\nprint problem\nStderr native:\nfd problem"
        assert again.stdout == ""
        assert again.stderr == ""
