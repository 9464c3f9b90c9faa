"""
Error taxonomy for the streaming generation client.
"""


class SwarmError(Exception):
    """Base class for all errors raised by swarmgen."""


class SwarmConnectionError(SwarmError):
    """The duplex connection could not be opened or maintained."""


class ProtocolError(SwarmError):
    """A message was malformed or lacked an expected field."""


class BackendError(SwarmError):
    """The backend reported an explicit error for the generation."""


class TranscodeError(SwarmError):
    """A decoded frame could not be classified or re-encoded."""
