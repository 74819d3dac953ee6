"""Errors raised by the engine before any remote call is made."""


class ValidationError(ValueError):
    """Raised when a requested operation is rejected locally.

    Covers self-moves, moves into a descendant and malformed upload paths.
    Never retried.
    """
