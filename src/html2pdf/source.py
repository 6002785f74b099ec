import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlparse


class SourceKind(Enum):
    FILE = "file"
    URL = "url"
    INLINE_HTML = "inline_html"


# Single-letter schemes are Windows drive letters, not URLs
SCHEME_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9+.\-]+:.+', re.DOTALL)
NETWORK_SCHEMES = {'http', 'https', 'ftp', 'ws', 'wss'}


@dataclass(frozen=True)
class Source:
    """Classified origin of the HTML to convert."""
    kind: SourceKind
    value: str

    @property
    def is_url(self) -> bool:
        return self.kind is SourceKind.URL

    @property
    def is_file(self) -> bool:
        return self.kind is SourceKind.FILE

    def markup(self) -> Optional[str]:
        """Return page markup for file and inline sources, None for URLs."""
        if self.kind is SourceKind.FILE:
            with open(self.value, 'r', encoding='utf-8', errors='replace') as f:
                return f.read()
        if self.kind is SourceKind.INLINE_HTML:
            return self.value
        return None

    def describe(self) -> str:
        if self.kind is SourceKind.INLINE_HTML:
            return f"inline HTML ({len(self.value)} chars)"
        return self.value


def is_url(value: str) -> bool:
    """Check whether a string parses as a well-formed URL."""
    if not value or any(ch.isspace() for ch in value):
        return False
    if not SCHEME_PATTERN.match(value):
        return False

    parsed = urlparse(value)
    if not parsed.scheme:
        return False
    if parsed.scheme.lower() in NETWORK_SCHEMES:
        return bool(parsed.netloc)
    return True


def resolve(source_string: str) -> Source:
    """
    Classify a source string.

    An existing regular file always wins over URL syntax; anything that is
    neither a file nor a URL is treated as inline markup.
    """
    if source_string and os.path.isfile(source_string):
        return Source(SourceKind.FILE, source_string)
    if is_url(source_string):
        return Source(SourceKind.URL, source_string)
    return Source(SourceKind.INLINE_HTML, source_string or '')
