class LoopError(Exception):
    """Base class for all script loop errors."""


class TransportClosed(LoopError, EOFError):
    """Parent closed the inbound stream."""


class ProtocolViolation(LoopError):
    """A frame on the control channel is malformed or illegal."""


class RPCError(LoopError):
    """The parent answered an outbound call with an error reply."""
