"""Source string classification.

Rules are evaluated in a fixed order and the first match wins:

  git:: / file:: / http:: prefix      → forced category
  github.com… / gitlab.com…           → git
  ./ ../ / C:\\ ~/ file://            → file (git when it ends in .git)
  ssh, http(s), git:// repo shapes    → git (http(s) needs .git unless
                                        the host is github.com/gitlab.com;
                                        //subdir and ?ref= allowed),
                                        bare owner/repo (no dot in owner)
  http(s)://host.tld/…                → http, once the URL validates
  other scheme                        → unknown + UnsupportedSchemeError
  anything else with a dot            → unknown + SchemeRequiredError
  the rest                            → unknown
"""

from __future__ import annotations

import re
from urllib.parse import SplitResult, urlsplit

import httpx

from gather.core.errors import SchemeRequiredError, UnsupportedSchemeError
from gather.core.models import ClassificationResult, ProtocolCategory
from gather.core.paths import HomeResolver, default_home, expand_tilde

FORCED_PREFIXES: tuple[tuple[str, ProtocolCategory], ...] = (
    ("git::", ProtocolCategory.GIT),
    ("file::", ProtocolCategory.FILE),
    ("http::", ProtocolCategory.HTTP),
)

GIT_HOSTS = ("github.com", "gitlab.com")

_SEG = r"[\w.\-]+"
_OWNER = r"[\w\-]+"
_SUFFIX = r"(?://[^?#]*)?(?:\?.*)?"

_GIT_URI_RE = re.compile(
    "|".join([
        rf"git@{_SEG}:{_SEG}/{_SEG}(?:\.git)?{_SUFFIX}",
        rf"https?://(?:github\.com|gitlab\.com)/{_SEG}/{_SEG}(?:\.git)?{_SUFFIX}",
        rf"https?://{_SEG}/{_SEG}/{_SEG}\.git{_SUFFIX}",
        rf"git://{_SEG}/{_SEG}/{_SEG}(?:\.git)?{_SUFFIX}",
        rf"{_SEG}/{_SEG}/{_SEG}//.*",
        rf"{_OWNER}/{_SEG}(?:\.git)?",
    ]),
    re.ASCII,
)
_HTTP_URI_RE = re.compile(r"https?://[\w\-]+(?:\.[\w\-]+)+.*", re.ASCII)
_FILE_PATH_RE = re.compile(r"(?:\./|\.\./|/|[a-zA-Z]:\\|~/|file://).*")

_HTTP_SCHEMES = frozenset({"http", "https"})
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class URIClassifier:
    """Classify source strings; *home_resolver* is consulted for ``~/`` paths."""

    def __init__(self, home_resolver: HomeResolver = default_home) -> None:
        self.home_resolver = home_resolver

    def __call__(self, source: str) -> ClassificationResult:
        return self.classify(source)

    def classify(self, source: str) -> ClassificationResult:
        for prefix, category in FORCED_PREFIXES:
            if source.startswith(prefix):
                return ClassificationResult(category)

        if source.startswith(GIT_HOSTS):
            return ClassificationResult(ProtocolCategory.GIT)

        if _FILE_PATH_RE.match(source):
            expanded = expand_tilde(source, self.home_resolver)
            if expanded.endswith(".git"):
                return ClassificationResult(ProtocolCategory.GIT)
            return ClassificationResult(ProtocolCategory.FILE)

        if _GIT_URI_RE.fullmatch(source):
            return ClassificationResult(ProtocolCategory.GIT)

        parsed = _split(source)

        if _HTTP_URI_RE.fullmatch(source) and parsed is not None and _valid_http(source, parsed):
            return ClassificationResult(ProtocolCategory.HTTP)

        if parsed is not None and parsed.scheme and parsed.scheme not in _HTTP_SCHEMES:
            return ClassificationResult(
                ProtocolCategory.UNKNOWN,
                UnsupportedSchemeError(parsed.scheme, source=source),
            )

        if "." in source:
            return ClassificationResult(ProtocolCategory.UNKNOWN, SchemeRequiredError(source))

        return ClassificationResult(ProtocolCategory.UNKNOWN)


def _split(source: str) -> SplitResult | None:
    try:
        return urlsplit(source)
    except ValueError:
        return None


def _valid_http(source: str, parsed: SplitResult) -> bool:
    """Whether *parsed* is a well-formed http(s) URL that httpx will accept."""
    if parsed.scheme not in _HTTP_SCHEMES or not parsed.hostname:
        return False
    if any(c.isspace() or not c.isprintable() for c in parsed.netloc):
        return False
    if _BAD_ESCAPE_RE.search(parsed.path):
        return False
    try:
        parsed.port
        httpx.URL(source)
    except (ValueError, httpx.InvalidURL):
        return False
    return True


_default = URIClassifier()


def classify(source: str, *, home_resolver: HomeResolver | None = None) -> ClassificationResult:
    """Classify *source* without raising."""
    if home_resolver is None:
        return _default.classify(source)
    return URIClassifier(home_resolver).classify(source)


def classify_uri(source: str, *, home_resolver: HomeResolver | None = None) -> ProtocolCategory:
    """Classify *source*, raising ``ClassificationError`` on failure."""
    return classify(source, home_resolver=home_resolver).unwrap()
