from __future__ import annotations

import json
from typing import Any, Mapping, Optional, TextIO

from scriptloop.core.errors import ProtocolViolation, RPCError, TransportClosed
from scriptloop.core.logging import get_logger, log_event
from scriptloop.protocol.messages import PING_FRAMES, RPC_ERROR_MARKER, Message
from scriptloop.protocol.validator import ProtocolValidator

logger = get_logger(__name__)


class ControlChannel:
    """
    Line-delimited JSON link to the parent process.

    ``inbound`` and ``outbound`` are independent text streams. Keep-alive
    pings are answered inline by every read and never reach the caller.
    """

    def __init__(
        self,
        inbound: TextIO,
        outbound: TextIO,
        validator: Optional[ProtocolValidator] = None,
    ) -> None:
        self.inbound = inbound
        self.outbound = outbound
        self.validator = validator or ProtocolValidator()

    def read_entry(self) -> str:
        """Block until the next Entry line arrives."""
        return self._read_frame()

    def send(self, msg: Message) -> None:
        self.validator.validate(msg)
        self._write_line(msg.to_dict())

    def call(self, request: Mapping[str, Any]) -> Any:
        """
        Synchronous outbound RPC: one request line, exactly one reply line.
        """
        if "type" not in request:
            raise ProtocolViolation("RPC request requires a 'type' field")

        self._write_line(request)
        reply = self._read_frame()

        if RPC_ERROR_MARKER in reply:
            _, _, message = reply.partition(RPC_ERROR_MARKER)
            raise RPCError(message.strip())

        try:
            return json.loads(reply)
        except json.JSONDecodeError as exc:
            raise ProtocolViolation(f"Invalid JSON reply from parent: {exc}") from exc

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_frame(self) -> str:
        while True:
            line = self.inbound.readline()
            if not line:
                raise TransportClosed("Parent closed the inbound stream")

            frame = line.strip()
            if not frame:
                continue

            if frame in PING_FRAMES:
                log_event(logger, "ping")
                self.send(Message.pong())
                continue

            return frame

    def _write_line(self, payload: Mapping[str, Any]) -> None:
        self.outbound.write(json.dumps(dict(payload), ensure_ascii=False) + "\n")
        self.outbound.flush()
