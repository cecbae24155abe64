from __future__ import annotations

from enum import Enum
from typing import Optional

from scriptloop.core.logging import get_logger, log_event
from scriptloop.protocol.channel import ControlChannel
from scriptloop.protocol.messages import EntryType, LogLevel, Message

logger = get_logger(__name__)


class OutputTarget(str, Enum):
    NONE = "none"
    NOTE = "note"
    WARNING = "warning"
    ERROR = "error"
    LOG_INFO = "log_info"
    LOG_ERROR = "log_error"
    LOG_DEBUG = "log_debug"


DEFAULT_STDOUT_TARGET = OutputTarget.NOTE
DEFAULT_STDERR_TARGET = OutputTarget.WARNING

_RESULT_TARGETS = {
    OutputTarget.NOTE: EntryType.NOTE,
    OutputTarget.WARNING: EntryType.WARNING,
    OutputTarget.ERROR: EntryType.ERROR,
}

_LOG_TARGETS = {
    OutputTarget.LOG_INFO: LogLevel.INFO,
    OutputTarget.LOG_ERROR: LogLevel.ERROR,
    OutputTarget.LOG_DEBUG: LogLevel.DEBUG,
}


def build_output_message(
    selector: str,
    default: OutputTarget,
    text: str,
) -> Optional[Message]:
    """
    Translate captured text into the frame chosen by ``selector``.

    An empty selector means ``default``. An unrecognised one also falls back
    to ``default``, with a warning line appended to the text.
    """
    selector = (selector or "").strip().lower()

    try:
        target = OutputTarget(selector) if selector else default
    except ValueError:
        log_event(logger, "routing_unknown_target", target=selector, default=default.value)
        text = (
            f"{text}\nWarning: unknown output target '{selector}', "
            f"using '{default.value}'"
        )
        target = default

    if target is OutputTarget.NONE:
        return None

    if target in _RESULT_TARGETS:
        return Message.result(_RESULT_TARGETS[target], text)

    return Message.log(_LOG_TARGETS[target], [text])


def route_output(
    channel: ControlChannel,
    selector: str,
    default: OutputTarget,
    text: str,
) -> None:
    if not text:
        return

    msg = build_output_message(selector, default, text)
    if msg is not None:
        channel.send(msg)
