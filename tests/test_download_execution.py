"""Tests for the download stage."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import httpx
import pytest

from conftest import jar_response
from PluginUpdater.api import (
    ArtifactDescriptor,
    DownloadError,
    LookupResult,
    OperationCancelled,
)
from PluginUpdater.core import CancellationToken
from PluginUpdater.download_execution import build_unique_path, download_artifact

URL = "https://cdn.example.org/files/cool.jar"


def _descriptor() -> ArtifactDescriptor:
    return ArtifactDescriptor(
        source_path=Path("plugins/Cool.jar"), display_name="Cool", declared_version="1.0"
    )


def _lookup(suggested: str | None = None) -> LookupResult:
    return LookupResult(
        provider_name="Modrinth",
        project_display_name="Cool",
        latest_version_label="2.0",
        download_url=URL,
        suggested_file_name=suggested,
    )


# --- naming -----------------------------------------------------------------


def test_unique_path_uses_plain_name_when_free(output_dir: Path) -> None:
    assert build_unique_path(output_dir, "plugin.jar") == output_dir / "plugin.jar"


def test_unique_path_probes_numbered_variants(output_dir: Path) -> None:
    (output_dir / "plugin.jar").write_bytes(b"")
    assert build_unique_path(output_dir, "plugin.jar") == output_dir / "plugin (1).jar"

    (output_dir / "plugin (1).jar").write_bytes(b"")
    assert build_unique_path(output_dir, "plugin.jar") == output_dir / "plugin (2).jar"


def test_unique_path_gives_up_after_max_probes(output_dir: Path) -> None:
    for name in ("plugin.jar", "plugin (1).jar", "plugin (2).jar"):
        (output_dir / name).write_bytes(b"")

    with pytest.raises(DownloadError) as excinfo:
        build_unique_path(output_dir, "plugin.jar", max_probes=2)
    assert excinfo.value.reason == "names-exhausted"


# --- download ---------------------------------------------------------------


def test_download_prefers_content_disposition(router, mock_client, output_dir: Path) -> None:
    router.add(URL, jar_response(b"payload", disposition='attachment; filename="Cool-2.0.jar"'))

    saved = download_artifact(mock_client(router), _lookup("ignored.jar"), _descriptor(), output_dir)

    assert saved == output_dir / "Cool-2.0.jar"
    assert saved.read_bytes() == b"payload"


def test_download_uses_suggested_then_synthesized_name(router, mock_client, output_dir: Path) -> None:
    router.add(URL, jar_response(b"payload"))
    client = mock_client(router)

    suggested = download_artifact(client, _lookup("Cool:Fancy"), _descriptor(), output_dir)
    synthesized = download_artifact(client, _lookup(), _descriptor(), output_dir)

    assert suggested.name == "Cool_Fancy.jar"
    assert synthesized.name == "Cool-2.0.jar"


def test_download_does_not_overwrite_existing_files(router, mock_client, output_dir: Path) -> None:
    (output_dir / "Cool-2.0.jar").write_bytes(b"old")
    router.add(URL, jar_response(b"new"))

    saved = download_artifact(mock_client(router), _lookup(), _descriptor(), output_dir)

    assert saved.name == "Cool-2.0 (1).jar"
    assert (output_dir / "Cool-2.0.jar").read_bytes() == b"old"


def test_html_response_fails_before_creating_a_file(router, mock_client, output_dir: Path) -> None:
    router.add(URL, jar_response(b"<html></html>", content_type="text/html; charset=utf-8"))

    with pytest.raises(DownloadError) as excinfo:
        download_artifact(mock_client(router), _lookup(), _descriptor(), output_dir)

    assert excinfo.value.reason == "html-redirect"
    assert "redirect" in str(excinfo.value).lower()
    assert list(output_dir.iterdir()) == []


def test_error_status_raises_http_error(router, mock_client, output_dir: Path) -> None:
    with pytest.raises(DownloadError) as excinfo:
        download_artifact(mock_client(router), _lookup(), _descriptor(), output_dir)

    assert excinfo.value.reason == "http-error"
    assert "404" in str(excinfo.value)


def test_transport_failure_raises_conn_error(mock_client, output_dir: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(DownloadError) as excinfo:
        download_artifact(mock_client(handler), _lookup(), _descriptor(), output_dir)
    assert excinfo.value.reason == "conn-error"


def test_redirects_are_followed(router, mock_client, output_dir: Path) -> None:
    router.add(
        "https://api.example.org/download",
        httpx.Response(302, headers={"Location": URL}),
    )
    router.add(URL, jar_response(b"payload"))
    lookup = LookupResult(
        provider_name="Spiget",
        project_display_name="Cool",
        latest_version_label="2.0",
        download_url="https://api.example.org/download",
    )

    saved = download_artifact(mock_client(router), lookup, _descriptor(), output_dir)

    assert saved.read_bytes() == b"payload"


def test_cancellation_removes_partial_file(mock_client, output_dir: Path) -> None:
    token = CancellationToken()

    def body() -> Iterator[bytes]:
        yield b"aaaa"
        token.cancel()
        yield b"bbbb"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body(), headers={"Content-Type": "application/java-archive"})

    with pytest.raises(OperationCancelled):
        download_artifact(
            mock_client(handler), _lookup(), _descriptor(), output_dir, cancel=token, chunk_size=4
        )

    assert list(output_dir.iterdir()) == []


def test_cancelled_before_request_sends_nothing(router, mock_client, output_dir: Path) -> None:
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelled):
        download_artifact(mock_client(router), _lookup(), _descriptor(), output_dir, cancel=token)
    assert router.requests == []


def _breaking_body() -> Iterator[bytes]:
    yield b"aaaa"
    raise httpx.ReadError("connection reset")


def _breaking_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200, content=_breaking_body(), headers={"Content-Type": "application/java-archive"}
    )


def test_mid_stream_failure_removes_partial_file(mock_client, output_dir: Path) -> None:
    with pytest.raises(DownloadError) as excinfo:
        download_artifact(
            mock_client(_breaking_handler), _lookup(), _descriptor(), output_dir, chunk_size=4
        )

    assert excinfo.value.reason == "conn-error"
    assert list(output_dir.iterdir()) == []


def test_partial_file_kept_when_cleanup_disabled(mock_client, output_dir: Path) -> None:
    with pytest.raises(DownloadError):
        download_artifact(
            mock_client(_breaking_handler),
            _lookup(),
            _descriptor(),
            output_dir,
            chunk_size=4,
            delete_partial=False,
        )

    assert (output_dir / "Cool-2.0.jar").read_bytes() == b"aaaa"
