"""Exception types raised across the poster generation pipeline."""
from __future__ import annotations

from typing import List, Optional


class Paper2PosterError(RuntimeError):
    """Base class for all pipeline errors."""


class InvalidInputError(Paper2PosterError, ValueError):
    """Malformed generation input, out-of-range concept count or bad layout margins."""

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors: List[str] = list(errors or [])


class PromptValidationError(Paper2PosterError):
    """A built structured prompt failed the structural checks."""

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors: List[str] = list(errors or [])


class RendererError(Paper2PosterError):
    """The image renderer rejected, failed or returned an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RendererTimeoutError(RendererError):
    """Polling budget exhausted before the render job reached a final state."""


class StorageError(Paper2PosterError):
    """Persisting a rendered image failed."""
