"""
Request and response descriptors shared by the cache, batcher and dispatcher.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit


@dataclass
class RequestSpec:
    """An outbound request to the upstream REST API."""
    method: str = "GET"
    url: str = ""
    params: Optional[Mapping[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        self.method = (self.method or "GET").upper()

    @property
    def path(self) -> str:
        """URL without query string or fragment."""
        parts = urlsplit(self.url)
        if parts.scheme or parts.netloc:
            return f"{parts.scheme}://{parts.netloc}{parts.path}"
        return parts.path

    def canonical_query(self) -> str:
        """Query parameters merged from the URL and ``params``, sorted by name."""
        items = parse_qsl(urlsplit(self.url).query, keep_blank_values=True)
        for name, value in (self.params or {}).items():
            if isinstance(value, (list, tuple)):
                items.extend((name, str(v)) for v in value)
            elif value is not None:
                items.append((name, str(value)))
        return urlencode(sorted(items), safe="")


@dataclass
class HttpResponse:
    """Upstream response as seen by the resilience layer."""
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    @property
    def not_modified(self) -> bool:
        return self.status_code == 304
