from __future__ import annotations

from typing import Any, Dict, Mapping

from scriptloop.protocol.channel import ControlChannel
from scriptloop.protocol.messages import EntryType, LogLevel, Message


class ScriptAPI:
    """High-level helpers exposed to snippets as the global ``host``."""

    def __init__(self, channel: ControlChannel, context: Mapping[str, Any]) -> None:
        self._channel = channel
        self.context: Dict[str, Any] = dict(context)

    def call(self, type: str, **fields: Any) -> Any:
        """
        Ask the parent to do something and wait for its reply.

        Raises ``RPCError`` when the parent answers with an error.
        """
        request: Dict[str, Any] = {"type": type, **fields}
        return self._channel.call(request)

    def log(self, level: str, *args: Any) -> None:
        self._channel.send(Message.log(LogLevel(level), [str(arg) for arg in args]))

    def results(self, contents: str, *, entry_type: str = "note") -> None:
        kind = EntryType[entry_type.upper()]
        self._channel.send(Message.result(kind, str(contents)))


def build_injections(channel: ControlChannel, context: Mapping[str, Any]) -> dict[str, Any]:
    """Global names bound for the duration of one execution."""
    api = ScriptAPI(channel, context)
    return {"host": api, "context": api.context}
