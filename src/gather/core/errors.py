"""Exception hierarchy shared by the classifier, dispatcher and transports."""

from __future__ import annotations

from gather.core.models import ProtocolCategory


class GatherError(Exception):
    """Base class for all gather errors."""


# ── Classification ──────────────────────────────────────────────────


class ClassificationError(GatherError, ValueError):
    """Raised when a source string cannot be mapped to a protocol."""

    def __init__(self, message: str, *, source: str = "") -> None:
        super().__init__(message)
        self.source = source


class UnsupportedSchemeError(ClassificationError):
    """The source carries an explicit scheme no transport understands."""

    def __init__(self, scheme: str, *, source: str = "") -> None:
        super().__init__(f"unsupported protocol: {scheme}", source=source)
        self.scheme = scheme


class SchemeRequiredError(ClassificationError):
    """The source looks like a host but has no scheme."""

    def __init__(self, source: str) -> None:
        super().__init__(
            f"got {source}. HTTP(S) URIs require a scheme (http:// or https://)",
            source=source,
        )


# ── Dispatch ────────────────────────────────────────────────────────


class UnregisteredProtocolError(GatherError):
    """No gatherer is registered for a classified protocol."""

    def __init__(self, category: ProtocolCategory) -> None:
        super().__init__(f"unsupported source protocol: {category}")
        self.category = category


# ── Transports ──────────────────────────────────────────────────────


class TransportError(GatherError):
    """Raised by a gatherer when retrieval fails."""

    category: ProtocolCategory = ProtocolCategory.UNKNOWN


class GitError(TransportError):
    """A git subprocess failed."""

    category = ProtocolCategory.GIT

    def __init__(self, message: str, *, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


class HTTPError(TransportError):
    """An HTTP request failed or returned a non-success status."""

    category = ProtocolCategory.HTTP

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FileSourceError(TransportError):
    """A local source path is missing or unreadable."""

    category = ProtocolCategory.FILE


# ── Destination / lifecycle ─────────────────────────────────────────


class DestinationExistsError(GatherError, FileExistsError):
    """Pre-flight validation found something at the destination."""

    def __init__(self, path: str) -> None:
        super().__init__(f"destination already exists: {path}")
        self.path = path


class Cancelled(GatherError):
    """The context was cancelled before the gather completed."""


class DeadlineExceeded(Cancelled):
    """The context deadline passed before the gather completed."""


class ConfigError(GatherError):
    """Settings file or environment override is invalid."""
