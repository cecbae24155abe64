from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Iterable, Mapping


class MessageType(Enum):
    # Loop -> Parent
    PONG = "pong"
    LOG = "log"
    RESULT = "result"
    EXCEPTION = "exception"
    COMPLETED = "completed"


class EntryType(IntEnum):
    NOTE = 1
    ERROR = 4
    WARNING = 11


class LogLevel(Enum):
    INFO = "info"
    ERROR = "error"
    DEBUG = "debug"


CONTENTS_FORMAT = "text"

# An RPC reply containing this marker is an error; the text after it is the message.
RPC_ERROR_MARKER = "[ERROR-fd5a7750-7182-4b38-90ba-091824478903]"

PING_FRAMES = frozenset({"ping", '"ping"'})


@dataclass(frozen=True, slots=True)
class Message:
    """
    One outbound report frame.

    The wire form is flat: ``{"type": <tag>, **payload}``. Each tag carries a
    fixed field set, enforced by the constructors below and by the JSON
    schemas under ``protocol/schemas``.
    """

    type: MessageType
    payload: Mapping[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, **dict(self.payload)}

    @staticmethod
    def pong() -> "Message":
        return Message(type=MessageType.PONG, payload={})

    @staticmethod
    def log(level: LogLevel, args: Iterable[Any]) -> "Message":
        return Message(
            type=MessageType.LOG,
            payload={"command": level.value, "args": {"args": list(args)}},
        )

    @staticmethod
    def result(entry_type: EntryType, contents: str) -> "Message":
        return Message(
            type=MessageType.RESULT,
            payload={
                "results": [
                    {
                        "Type": int(entry_type),
                        "ContentsFormat": CONTENTS_FORMAT,
                        "Contents": contents,
                    }
                ]
            },
        )

    @staticmethod
    def exception(text: str) -> "Message":
        return Message(
            type=MessageType.EXCEPTION,
            payload={"args": {"exception": text}},
        )

    @staticmethod
    def completed() -> "Message":
        return Message(type=MessageType.COMPLETED, payload={})
