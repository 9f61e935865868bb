"""Error taxonomy for the PKI bootstrap.

Every failure is fatal for the run: nothing here is retried, the
orchestrator records the error against the step that raised it and stops.
"""

from pathlib import Path
from typing import Optional, Union


class PKIError(Exception):
    """Base class for all bootstrap failures."""

    kind = "PKIError"

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.step = step

    def __str__(self) -> str:
        if self.step:
            return f"{self.kind} in {self.step}: {self.message}"
        return f"{self.kind}: {self.message}"


class RandomSourceFailure(PKIError):
    """The entropy source failed while generating key material."""

    kind = "RandomSourceFailure"


class SigningFailure(PKIError):
    """A certificate could not be assembled or signed."""

    kind = "SigningFailure"


class EncodingFailure(PKIError):
    """DER marshaling, DER parsing or PEM framing failed."""

    kind = "EncodingFailure"


class PersistenceFailure(PKIError):
    """An artifact could not be written to (or read from) disk."""

    kind = "PersistenceFailure"

    def __init__(self, message: str, path: Union[str, Path, None] = None, step: Optional[str] = None):
        super().__init__(message, step=step)
        self.path = Path(path) if path is not None else None
