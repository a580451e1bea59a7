# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for the PluginUpdater suite",
#   "sections": [
#     {"id": "jar-factory", "name": "make_plugin_jar", "anchor": "fixture-make-plugin-jar", "kind": "fixture"},
#     {"id": "client-factory", "name": "mock_client", "anchor": "fixture-mock-client", "kind": "fixture"},
#     {"id": "router", "name": "Router", "anchor": "class-router", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Builds plugin jars inside ``tmp_path`` and HTTP clients backed by
``httpx.MockTransport`` so every test runs without network access.
"""

from __future__ import annotations

import json
import struct
import zipfile
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import httpx
import pytest

from PluginUpdater.config import UpdaterConfig
from PluginUpdater.net import build_http_client

Handler = Callable[[httpx.Request], httpx.Response]


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )


def jar_response(
    content: bytes = b"PK\x03\x04jar-bytes",
    *,
    disposition: Optional[str] = None,
    content_type: str = "application/java-archive",
) -> httpx.Response:
    headers = {"Content-Type": content_type}
    if disposition:
        headers["Content-Disposition"] = disposition
    return httpx.Response(200, content=content, headers=headers)


def corrupt_zip_entry(path: Path, entry_name: str = "plugin.yml") -> None:
    """Overwrite the compressed bytes of one archive entry with 0xFF."""

    with zipfile.ZipFile(path) as archive:
        info = archive.getinfo(entry_name)
    data = bytearray(path.read_bytes())
    # local file header: 30 fixed bytes, then the name and extra field
    name_len, extra_len = struct.unpack_from("<HH", data, info.header_offset + 26)
    start = info.header_offset + 30 + name_len + extra_len
    data[start : start + info.compress_size] = b"\xff" * info.compress_size
    path.write_bytes(bytes(data))


class Router:
    """Route mock requests by ``(host, path)`` and record every request seen."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, response: httpx.Response | Handler) -> "Router":
        parsed = httpx.URL(url)
        if isinstance(response, httpx.Response):
            template = response

            def handler(_request: httpx.Request) -> httpx.Response:
                # a fresh response per request; httpx closes them after use
                return httpx.Response(
                    template.status_code,
                    headers=template.headers,
                    content=template.content,
                )

        else:
            handler = response
        self.routes[(parsed.host, parsed.path)] = handler
        return self

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.url.host, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        return handler(request)


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def mock_client() -> Iterator[Callable[[Handler], httpx.Client]]:
    """Factory building clients whose transport is the given handler."""

    clients: list[httpx.Client] = []

    def _factory(handler: Handler, config: Optional[UpdaterConfig] = None) -> httpx.Client:
        client = build_http_client(config or UpdaterConfig(), httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.close()


@pytest.fixture
def make_plugin_jar(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a jar with an optional embedded ``plugin.yml``."""

    def _factory(
        file_name: str,
        descriptor: Optional[str] = None,
        *,
        entry_name: str = "plugin.yml",
        directory: Optional[Path] = None,
        encoding: str = "utf-8",
        compression: int = zipfile.ZIP_STORED,
    ) -> Path:
        target_dir = directory or tmp_path / "plugins"
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / file_name
        with zipfile.ZipFile(path, "w", compression=compression) as archive:
            archive.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")
            if descriptor is not None:
                archive.writestr(entry_name, descriptor.encode(encoding))
        return path

    return _factory


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    path = tmp_path / "out"
    path.mkdir()
    return path
