"""Data shapes for protocol classification and gather results.

Every gatherer returns one of the metadata dataclasses below. They share no
base class; callers that only need the common surface use the ``Metadata``
protocol, callers that need transport-specific fields check ``category``
or match on the concrete type.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gather.core.context import Context
    from gather.core.errors import ClassificationError


class ProtocolCategory(Enum):
    """Transport kinds a source string can denote.

    The value is the canonical name used as the registry key.
    """

    GIT = "GitURI"
    HTTP = "HTTPURI"
    FILE = "FileURI"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one source string."""

    category: ProtocolCategory
    error: ClassificationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> ProtocolCategory:
        """Return the category, or raise the classification error."""
        if self.error is not None:
            raise self.error
        return self.category


# ── Metadata ────────────────────────────────────────────────────────


@runtime_checkable
class Metadata(Protocol):
    """What every gather result can tell a caller."""

    @property
    def category(self) -> ProtocolCategory:
        ...

    def describe(self) -> dict[str, Any]:
        """Return a JSON-friendly description of what was fetched."""
        ...

    def pinned_url(self) -> str:
        """Return a source string that re-gathers the same content."""
        ...


@dataclass(frozen=True)
class GitMetadata:
    """A repository checkout."""

    url: str
    commit: str
    ref: str = ""
    subdir: str = ""
    destination: str = ""

    @property
    def category(self) -> ProtocolCategory:
        return ProtocolCategory.GIT

    def describe(self) -> dict[str, Any]:
        return {"protocol": str(self.category), **asdict(self)}

    def pinned_url(self) -> str:
        pinned = f"git::{self.url}"
        if self.subdir:
            pinned += f"//{self.subdir}"
        return f"{pinned}?ref={self.commit}"


@dataclass(frozen=True)
class HTTPMetadata:
    """A single downloaded HTTP response body."""

    url: str
    final_url: str
    status_code: int
    content_length: int
    content_type: str = ""
    sha256: str = ""
    destination: str = ""

    @property
    def category(self) -> ProtocolCategory:
        return ProtocolCategory.HTTP

    def describe(self) -> dict[str, Any]:
        return {"protocol": str(self.category), **asdict(self)}

    def pinned_url(self) -> str:
        return self.final_url or self.url


@dataclass(frozen=True)
class FileMetadata:
    """A file or directory copied from the local filesystem."""

    path: str
    file_count: int
    size: int
    sha256: str = ""
    destination: str = ""

    @property
    def category(self) -> ProtocolCategory:
        return ProtocolCategory.FILE

    def describe(self) -> dict[str, Any]:
        return {"protocol": str(self.category), **asdict(self)}

    def pinned_url(self) -> str:
        return f"file::{self.path}"


# ── Gatherer contract ───────────────────────────────────────────────


@runtime_checkable
class Gatherer(Protocol):
    """One transport. Implementations must honour ``ctx`` cancellation."""

    def gather(self, ctx: Context, source: str, destination: str) -> Metadata:
        ...
