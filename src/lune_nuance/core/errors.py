"""
Purpose: Error kinds raised by the extraction pipeline.
Constraints: Exception types only; the pipeline boundary converts fatal ones to results.
"""

from __future__ import annotations


class NuanceError(Exception):
    """Base class for extraction errors."""


class NoPayloadFound(NuanceError):
    def __init__(self, message: str = "No script containing secrets was found"):
        super().__init__(message)


class NoPairsFound(NuanceError):
    def __init__(self, message: str = "No secret/version pairs found"):
        super().__init__(message)


class PairDecodeFailure(NuanceError):
    """Decoding a single pair failed; the pair is dropped and the run continues."""

    def __init__(self, version: int, cause: Exception):
        super().__init__(f"Error decoding v{version}: {cause}")
        self.version = version
        self.cause = cause


class FetchFailure(NuanceError):
    """A single candidate bundle could not be fetched."""

    def __init__(self, url: str, cause: Exception | None = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Could not fetch {url}{detail}")
        self.url = url
        self.cause = cause
