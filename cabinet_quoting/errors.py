"""
Engine exceptions.

Only hard failures live here. Soft states (a processing waiting for its
options, a missing companion processing) are reported as Diagnostic records
on the engine result and never raised.
"""


class CPQError(Exception):
    """Base class for every error raised by the quoting engine."""


class ConfigurationError(CPQError):
    """Catalog data the engine cannot evaluate: unknown pricing model,
    malformed quantity formula, unreadable catalog file."""


class NotFoundError(CPQError):
    """A product, processing, item or room id that does not exist."""


class InvalidActionError(CPQError):
    """A user action that can never succeed as requested."""


class PropagationError(CPQError):
    """Room propagation left an item in a state it must never reach.
    Always a bug in the engine, never a user mistake."""
