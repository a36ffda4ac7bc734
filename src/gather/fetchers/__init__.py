"""Transport layer: classify a source, then hand it to the matching gatherer.

Registry keys are the canonical category names:
  GitURI   → fetchers.git   (git clone, sparse for //subdir)
  HTTPURI  → fetchers.http  (single download via httpx)
  FileURI  → fetchers.file  (local copy)
  Unknown  → never registered; dispatch fails
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from types import MappingProxyType

from gather.core.context import Context
from gather.core.errors import ClassificationError, UnregisteredProtocolError
from gather.core.models import ClassificationResult, Gatherer, Metadata, ProtocolCategory
from gather.core.paths import validate_destination
from gather.core.uri import URIClassifier
from gather.fetchers.file import FileGatherer
from gather.fetchers.git import GitGatherer
from gather.fetchers.http import HTTPGatherer
from gather.repo.config import Settings, load_settings

logger = logging.getLogger(__name__)

Classifier = Callable[[str], ClassificationResult]


def default_registry(settings: Settings | None = None) -> dict[str, Gatherer]:
    """Build the standard category-name → gatherer table."""
    settings = settings or Settings()
    return {
        str(ProtocolCategory.FILE): FileGatherer(),
        str(ProtocolCategory.GIT): GitGatherer(settings.git),
        str(ProtocolCategory.HTTP): HTTPGatherer(settings.http),
    }


class Dispatcher:
    """Route sources to gatherers by classified protocol.

    The registry is frozen at construction; ``register`` returns a new
    dispatcher instead of mutating this one.
    """

    def __init__(
        self,
        registry: Mapping[str, Gatherer],
        *,
        classifier: Classifier | None = None,
    ) -> None:
        self.registry: Mapping[str, Gatherer] = MappingProxyType(dict(registry))
        self.classifier: Classifier = classifier or URIClassifier()

    def register(self, category: ProtocolCategory, gatherer: Gatherer) -> Dispatcher:
        return Dispatcher({**self.registry, str(category): gatherer}, classifier=self.classifier)

    def missing(self) -> list[ProtocolCategory]:
        """Categories other than UNKNOWN with no registered gatherer."""
        return [
            c for c in ProtocolCategory
            if c is not ProtocolCategory.UNKNOWN and str(c) not in self.registry
        ]

    def gatherer_for(self, category: ProtocolCategory) -> Gatherer:
        try:
            return self.registry[str(category)]
        except KeyError:
            raise UnregisteredProtocolError(category) from None

    def gather(self, ctx: Context, source: str, destination: str) -> Metadata:
        """Classify *source* and forward to its gatherer unchanged."""
        result = self.classifier(source)
        if result.error is not None:
            raise ClassificationError(
                f"failed to classify source URI: {result.error}", source=source
            ) from result.error

        gatherer = self.gatherer_for(result.category)
        logger.debug("Dispatching %s as %s to %s", source, result.category, type(gatherer).__name__)
        return gatherer.gather(ctx, source, destination)


_default_dispatcher: Dispatcher | None = None
_default_lock = threading.Lock()


def default_dispatcher() -> Dispatcher:
    """Process-wide dispatcher built once from the effective settings."""
    global _default_dispatcher
    with _default_lock:
        if _default_dispatcher is None:
            _default_dispatcher = Dispatcher(default_registry(load_settings()))
        return _default_dispatcher


def gather(
    ctx: Context | None,
    source: str,
    destination: str,
    *,
    no_clobber: bool = False,
    dispatcher: Dispatcher | None = None,
) -> Metadata:
    """Fetch *source* into *destination* and return the transport's metadata.

    With *no_clobber* the destination is validated first and an existing
    path raises ``DestinationExistsError``.
    """
    if no_clobber:
        validate_destination(destination)
    return (dispatcher or default_dispatcher()).gather(ctx or Context.background(), source, destination)
