"""Exception hierarchy for dexter."""

from __future__ import annotations


class DexterError(Exception):
    """Base class for all dexter errors."""


class ActorStoppedError(DexterError):
    """A call was sent to an actor that is no longer running."""


class ActorCrashedError(DexterError):
    """The actor crashed while handling a call.

    The original exception is available as ``__cause__``.
    """


class MailboxFullError(DexterError):
    """A call was dropped by a bounded mailbox."""


class NameTakenError(DexterError, ValueError):
    """A live actor is already registered under the requested name."""


class NameNotFoundError(DexterError, LookupError):
    """No actor is registered under the requested name."""


class ConfigError(DexterError, ValueError):
    """The configuration file holds an invalid value."""
