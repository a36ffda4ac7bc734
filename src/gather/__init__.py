"""gather: fetch git, HTTP(S) and local sources into a destination."""

__version__ = "0.1.0"

from gather.core.context import Context  # noqa: E402
from gather.core.errors import (  # noqa: E402
    Cancelled,
    ClassificationError,
    DeadlineExceeded,
    DestinationExistsError,
    GatherError,
    TransportError,
    UnregisteredProtocolError,
)
from gather.core.models import (  # noqa: E402
    FileMetadata,
    GitMetadata,
    HTTPMetadata,
    Metadata,
    ProtocolCategory,
)
from gather.core.paths import validate_destination  # noqa: E402
from gather.core.uri import classify, classify_uri  # noqa: E402
from gather.fetchers import Dispatcher, gather  # noqa: E402

__all__ = [
    "Cancelled",
    "ClassificationError",
    "Context",
    "DeadlineExceeded",
    "DestinationExistsError",
    "Dispatcher",
    "FileMetadata",
    "GatherError",
    "GitMetadata",
    "HTTPMetadata",
    "Metadata",
    "ProtocolCategory",
    "TransportError",
    "UnregisteredProtocolError",
    "__version__",
    "classify",
    "classify_uri",
    "gather",
    "validate_destination",
]
