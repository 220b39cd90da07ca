# tapesig/core/errors.py
from typing import Optional


class PreconditionError(ValueError):
    """Fatal input problem detected before any verification happens. Names the argument."""

    def __init__(self, argument: str, reason: str = "must be present"):
        self.argument = argument
        self.reason = reason
        super().__init__(f"Invalid parameters. {argument}: {reason}")


class EncodingError(PreconditionError):
    """Input matched an encoding heuristic (or a length range) but could not be encoded/decoded."""

    def __init__(self, argument: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(argument, reason)
        self.cause = cause
