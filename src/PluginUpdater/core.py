"""Core primitives and shared utilities for PluginUpdater."""

from __future__ import annotations

import re
import threading
from typing import Iterable, Optional
from urllib.parse import unquote, urlsplit

from PluginUpdater.api.exceptions import OperationCancelled

ARTIFACT_EXTENSION = ".jar"
DEFAULT_USER_AGENT = "PluginUpdater/1.0"
UNKNOWN_VERSION = "unknown"
MAX_MESSAGE_LENGTH = 120

# Characters rejected by common filesystems (the Windows set is the strictest).
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


class CancellationToken:
    """Thread-safe cancellation flag shared by a run and its workers."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled()


def check_cancelled(token: Optional[CancellationToken]) -> None:
    """Raise :class:`OperationCancelled` when ``token`` has fired."""

    if token is not None:
        token.raise_if_cancelled()


def short_message(message: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Truncate ``message`` to ``limit`` characters, marking the cut with ``...``."""

    if len(message) <= limit:
        return message
    return f"{message[:limit]}..."


def normalize_version(version: str) -> str:
    """Trim whitespace and quotes, then drop a single leading ``v``/``V``."""

    normalized = (version or "").strip().strip("\"'")
    if normalized[:1] in ("v", "V") and len(normalized) > 1:
        normalized = normalized[1:]
    return normalized


def is_same_version(current: str, latest: str) -> bool:
    """Return ``True`` when two version labels name the same release."""

    left = normalize_version(current)
    right = normalize_version(latest)
    if not left.strip() or not right.strip():
        return False
    return left.casefold() == right.casefold()


def dedupe_casefold(items: Iterable[Optional[str]]) -> list[str]:
    """Trim items and drop blanks and case-insensitive repeats, keeping order."""

    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if not item or not item.strip():
            continue
        value = item.strip()
        key = value.casefold()
        if key not in seen:
            seen.add(key)
            result.append(value)
    return result


def host_matches(url: str, domain: str) -> bool:
    """Return ``True`` when ``url`` is absolute and its host contains ``domain``."""

    if not url or not url.strip():
        return False
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.hostname:
        return False
    return domain.lower() in parts.hostname.lower()


def path_segments(url: str) -> list[str]:
    """Return the non-empty path segments of ``url``."""

    return [segment for segment in urlsplit(url.strip()).path.split("/") if segment]


def extract_filename_from_disposition(disposition: str | None) -> str | None:
    """Return the filename component from a Content-Disposition header."""

    if not disposition:
        return None
    parts = [segment.strip() for segment in disposition.split(";") if segment.strip()]
    plain: str | None = None
    for part in parts:
        lower = part.lower()
        if lower.startswith("filename*="):
            value = part.split("=", 1)[1].strip()
            # charset'language'value; the language tag may be empty
            pieces = value.split("'", 2)
            encoded = pieces[2] if len(pieces) == 3 else value
            candidate = unquote(encoded).strip('"')
            if candidate:
                return candidate
        elif lower.startswith("filename=") and plain is None:
            candidate = part.split("=", 1)[1].strip().strip('"')
            if candidate:
                plain = candidate
    return plain


def sanitize_filename(filename: str) -> str:
    """Replace characters that are invalid in a file name with ``_``."""

    return _INVALID_FILENAME_CHARS.sub("_", filename)


def ensure_extension(filename: str, extension: str = ARTIFACT_EXTENSION) -> str:
    """Append ``extension`` unless ``filename`` already ends with it (any case)."""

    if filename.lower().endswith(extension.lower()):
        return filename
    return f"{filename}{extension}"


__all__ = [
    "ARTIFACT_EXTENSION",
    "CancellationToken",
    "DEFAULT_USER_AGENT",
    "MAX_MESSAGE_LENGTH",
    "UNKNOWN_VERSION",
    "check_cancelled",
    "dedupe_casefold",
    "ensure_extension",
    "extract_filename_from_disposition",
    "host_matches",
    "is_same_version",
    "normalize_version",
    "path_segments",
    "sanitize_filename",
    "short_message",
]
