from .state import LoopState
from .messages import EntryType, LogLevel, Message, MessageType
from .validator import ProtocolValidator
from .channel import ControlChannel

__all__ = [
    "ControlChannel",
    "EntryType",
    "LogLevel",
    "LoopState",
    "Message",
    "MessageType",
    "ProtocolValidator",
]
