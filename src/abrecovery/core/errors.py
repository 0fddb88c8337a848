"""Exceptions raised by the job supervisor and its collaborators."""


class RecoveryError(Exception):
    """Base class for errors surfaced to callers."""


class NotPermittedError(RecoveryError):
    """The requested job is not allowed from the partition currently booted."""


class RootQueryError(RecoveryError):
    """The identity of the live root filesystem could not be determined."""


class BootAreaError(RecoveryError):
    """The boot area mount state could not be queried or changed."""


class InvariantError(RuntimeError):
    """A programming error, such as an unknown job kind."""
