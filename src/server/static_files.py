"""Static UI assets served next to the websocket endpoint."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Optional

_TEXT_MIME_TYPES = frozenset(
    {
        "application/javascript",
        "application/json",
        "application/manifest+json",
        "application/xml",
    }
)


def guess_content_type(path: Path) -> str:
    """Content type for `path`, with a UTF-8 charset on text payloads."""
    mime_type, _ = mimetypes.guess_type(str(path))
    if not mime_type:
        return "application/octet-stream"
    if mime_type.startswith("text/") or mime_type in _TEXT_MIME_TYPES:
        return f"{mime_type}; charset=utf-8"
    return mime_type


class StaticAssets:
    """Index page plus the files beside it; nothing outside that directory."""

    def __init__(self, index_file: str | Path):
        self._index_path = Path(index_file).resolve()
        self._root = self._index_path.parent
        self._index_html = self._index_path.read_bytes()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def index_html(self) -> bytes:
        return self._index_html

    def resolve(self, request_path: str) -> Optional[Path]:
        relative = request_path.lstrip("/")
        if not relative:
            return None

        candidate = (self._root / relative).resolve()
        if self._root not in candidate.parents or not candidate.is_file():
            return None
        return candidate

    def load(self, request_path: str) -> Optional[tuple[bytes, str]]:
        """Body and content type for `request_path`, or None when not served."""
        path = self.resolve(request_path)
        if path is None:
            return None
        return path.read_bytes(), guess_content_type(path)
