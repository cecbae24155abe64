from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Optional, TextIO

from scriptloop.capture import (
    CaptureSet,
    ConsoleCapture,
    NativeCapture,
    native_capture_supported,
)
from scriptloop.core.config import LoopConfig
from scriptloop.core.errors import LoopError, ProtocolViolation
from scriptloop.core.logging import configure_logging, get_logger, log_event
from scriptloop.protocol.channel import ControlChannel
from scriptloop.protocol.messages import Message
from scriptloop.protocol.state import LoopState
from scriptloop.runtime.api import build_injections
from scriptloop.runtime.diagnostics import build_diagnostic
from scriptloop.runtime.entry import Entry, parse_entry
from scriptloop.runtime.isolation import EnvironmentSnapshot, purge_bindings
from scriptloop.runtime.routing import (
    DEFAULT_STDERR_TARGET,
    DEFAULT_STDOUT_TARGET,
    route_output,
)
from scriptloop.runtime.sandbox import ExecutionOutcome, Sandbox

logger = get_logger(__name__)


@dataclass
class LoopContext:
    """Process-lifetime state threaded through every iteration."""

    config: LoopConfig
    channel: ControlChannel
    capture: CaptureSet
    sandbox: Sandbox
    environment: EnvironmentSnapshot

    @classmethod
    def bootstrap(
        cls,
        config: LoopConfig,
        *,
        inbound: Optional[TextIO] = None,
        outbound: Optional[TextIO] = None,
    ) -> "LoopContext":
        """
        Configure logging, take the gold environment snapshot and install
        output capture.

        Protocol frames go to ``outbound`` when given, otherwise to the
        duplicate of the original descriptor 1 (or the real stdout when
        descriptor capture is off).
        """
        # Before descriptor redirection so loop.log is opened on a real file.
        configure_logging(config)
        environment = EnvironmentSnapshot.capture()

        native: Optional[NativeCapture] = None
        protocol_stream = outbound
        if not config.disable_native_capture:
            if native_capture_supported():
                native = NativeCapture()
                stream = native.install()
                if protocol_stream is None:
                    protocol_stream = stream
            else:
                log_event(logger, "native_capture_unavailable", platform=sys.platform)

        if protocol_stream is None:
            protocol_stream = sys.stdout

        console = ConsoleCapture()
        console.install()

        return cls(
            config=config,
            channel=ControlChannel(
                inbound=inbound if inbound is not None else sys.stdin,
                outbound=protocol_stream,
            ),
            capture=CaptureSet(console=console, native=native),
            sandbox=Sandbox(
                directory=config.script_dir,
                default_name=config.script_name,
            ),
            environment=environment,
        )

    def close(self) -> None:
        self.capture.console.uninstall()
        if self.capture.native is not None:
            self.capture.native.close()


class ScriptLoop:
    """
    Receives one Entry at a time, runs it, reports, and resets.
    """

    def __init__(self, context: LoopContext) -> None:
        self.context = context
        self.state: LoopState = LoopState.AWAIT_ENTRY

    def run(self) -> None:
        """
        Main blocking loop. Returns after a native Entry; a closed inbound
        stream raises ``TransportClosed``.
        """
        log_event(logger, "loop_started")
        while self.state is not LoopState.TERMINATE:
            self.step()
        log_event(logger, "loop_terminated")

    def step(self) -> None:
        self._transition(LoopState.AWAIT_ENTRY)
        line = self.context.channel.read_entry()
        self.process(line)

    def process(self, line: str) -> None:
        try:
            entry = parse_entry(line)
        except ProtocolViolation as exc:
            log_event(logger, "entry_rejected", level=logging.WARNING, error=str(exc))
            self.context.channel.send(Message.exception(str(exc)))
            self.context.channel.send(Message.completed())
            return

        log_event(
            logger,
            "entry_received",
            linecount=entry.linecount,
            native=entry.native,
            context_keys=sorted(entry.context),
        )

        outcome: Optional[ExecutionOutcome] = None
        try:
            self._transition(LoopState.EXECUTE)
            outcome = self._execute(entry)

            self._transition(LoopState.REPORT)
            self._report(entry, outcome)
        finally:
            self._transition(LoopState.RESET)
            self._reset(outcome)

        if entry.native:
            self._transition(LoopState.TERMINATE)
        else:
            self._transition(LoopState.AWAIT_ENTRY)

    # -------------------------
    # Phases
    # -------------------------

    def _execute(self, entry: Entry) -> ExecutionOutcome:
        injected = build_injections(self.context.channel, entry.context)
        try:
            outcome = self.context.sandbox.run(entry.script, injected)
        except OSError as exc:
            # Temp script could not be written.
            return ExecutionOutcome(script_path=None, error=exc)

        if outcome.ok:
            log_event(logger, "entry_executed", new_bindings=len(outcome.new_bindings))
        else:
            log_event(
                logger,
                "entry_failed",
                level=logging.WARNING,
                error=type(outcome.error).__name__,
            )
        return outcome

    def _report(self, entry: Entry, outcome: ExecutionOutcome) -> None:
        channel = self.context.channel
        config = self.context.config

        try:
            if outcome.error is None:
                captured = self.context.capture.flush()
                route_output(channel, config.stdout_target, DEFAULT_STDOUT_TARGET, captured.stdout)
                route_output(channel, config.stderr_target, DEFAULT_STDERR_TARGET, captured.stderr)
            else:
                diagnostic = build_diagnostic(
                    outcome.error,
                    entry.linecount,
                    outcome.script_path,
                )
                channel.send(Message.exception(diagnostic.text))
        except LoopError as exc:
            log_event(logger, "report_failed", level=logging.ERROR, error=str(exc))
            channel.send(Message.exception(str(exc)))

        channel.send(Message.completed())

    def _reset(self, outcome: Optional[ExecutionOutcome]) -> None:
        self.context.environment.restore()

        if outcome is not None:
            purge_bindings(self.context.sandbox.namespace, outcome.new_bindings)
            try:
                self.context.sandbox.discard(outcome.script_path)
            except OSError as exc:
                log_event(
                    logger,
                    "script_discard_failed",
                    level=logging.WARNING,
                    path=str(outcome.script_path),
                    error=str(exc),
                )

        self.context.capture.clear()

    def _transition(self, new_state: LoopState) -> None:
        if new_state is not self.state:
            logger.debug("State %s -> %s", self.state.name, new_state.name)
        self.state = new_state
