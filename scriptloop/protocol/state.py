from __future__ import annotations

from enum import Enum, auto


class LoopState(Enum):
    """
    Authoritative loop state machine.
    """

    AWAIT_ENTRY = auto()  # blocked on the inbound stream, pings absorbed
    EXECUTE = auto()      # snippet running in the sandbox
    REPORT = auto()       # output / exception frames, then completed
    RESET = auto()        # environment, bindings, temp file, sinks
    TERMINATE = auto()    # native entry handled, loop exits
