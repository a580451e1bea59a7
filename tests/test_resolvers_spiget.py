"""Tests for the Spiget resolver."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import json_response
from PluginUpdater.api import ArtifactDescriptor, ArtifactKind, OperationCancelled
from PluginUpdater.core import DEFAULT_USER_AGENT, CancellationToken
from PluginUpdater.resolvers.spiget import (
    EXTERNAL_UNSUPPORTED_NOTE,
    PREMIUM_NOTE,
    SpigetResolver,
    extract_resource_id,
)

API = "https://api.spiget.org/v2"
HOMEPAGE = "https://www.spigotmc.org/resources/coolplugin.12345/"


def _descriptor(homepage: str = "", **kwargs) -> ArtifactDescriptor:
    return ArtifactDescriptor(
        source_path=Path("plugins/CoolPlugin.jar"),
        display_name="CoolPlugin",
        declared_version="1.0",
        homepage_url=homepage,
        **kwargs,
    )


def _resource(resource_id: int = 12345, **fields) -> dict:
    data = {
        "id": resource_id,
        "name": "CoolPlugin",
        "tag": "A cool plugin",
        "premium": False,
        "external": False,
        "existenceStatus": 1,
    }
    data.update(fields)
    return data


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        (HOMEPAGE, 12345),
        ("https://spigotmc.org/resources/12345", 12345),
        ("https://www.spigotmc.org/resources/cool-plugin.777/updates", 777),
        ("https://www.spigotmc.org/threads/cool.555/", None),
        ("https://example.com/resources/cool.1/", None),
        ("", None),
    ],
)
def test_extract_resource_id(url: str, expected) -> None:
    assert extract_resource_id(url) == expected


def test_direct_resource_builds_download_url(router, mock_client) -> None:
    router.add(f"{API}/resources/12345", json_response(_resource()))
    router.add(f"{API}/resources/12345/versions/latest", json_response({"id": 9, "name": "2.0"}))

    result = SpigetResolver().try_resolve(_descriptor(HOMEPAGE), mock_client(router))

    assert result is not None
    assert result.provider_name == "Spiget"
    assert result.latest_version_label == "2.0"
    assert result.download_url == f"{API}/resources/12345/download"
    assert result.suggested_file_name == "CoolPlugin-2.0.jar"
    assert result.note is None


def test_premium_resource_is_not_downloadable(router, mock_client) -> None:
    router.add(f"{API}/resources/12345", json_response(_resource(premium=True)))

    result = SpigetResolver().try_resolve(_descriptor(HOMEPAGE), mock_client(router))

    assert result is not None
    assert not result.can_download
    assert result.note == PREMIUM_NOTE
    assert result.latest_version_label == "unknown"
    assert "/v2/resources/12345/versions/latest" not in router.paths()


def test_external_jar_url_is_accepted_with_note(router, mock_client) -> None:
    router.add(
        f"{API}/resources/12345",
        json_response(_resource(external=True, file={"externalUrl": "https://github.com/x/Cool.jar"})),
    )
    router.add(f"{API}/resources/12345/versions/latest", json_response({"name": "3.1"}))

    result = SpigetResolver().try_resolve(_descriptor(HOMEPAGE), mock_client(router))

    assert result is not None
    assert result.download_url == "https://github.com/x/Cool.jar"
    assert result.note


def test_external_page_is_not_downloadable(router, mock_client) -> None:
    router.add(
        f"{API}/resources/12345",
        json_response(_resource(external=True, file={"externalUrl": "https://github.com/x/releases"})),
    )
    router.add(f"{API}/resources/12345/versions/latest", json_response({"name": "3.1"}))

    result = SpigetResolver().try_resolve(_descriptor(HOMEPAGE), mock_client(router))

    assert result is not None
    assert not result.can_download
    assert result.note == EXTERNAL_UNSUPPORTED_NOTE
    assert result.latest_version_label == "3.1"


def test_search_skips_removed_resources(router, mock_client) -> None:
    router.add(
        f"{API}/search/resources/CoolPlugin",
        json_response(
            [
                _resource(1, existenceStatus=0),
                _resource(2, name="Cool Plugin Extras", tag="extras"),
            ]
        ),
    )
    router.add(f"{API}/resources/2/versions/latest", json_response({"name": "1.5"}))

    result = SpigetResolver().try_resolve(_descriptor(), mock_client(router))

    assert result is not None
    assert result.download_url == f"{API}/resources/2/download"
    assert router.requests[0].url.params["size"] == "20"
    assert "/v2/resources/1/versions/latest" not in router.paths()


def test_search_rejects_weak_matches(router, mock_client) -> None:
    router.add(
        f"{API}/search/resources/CoolPlugin",
        json_response([_resource(3, name="Totally Different", tag="nothing")]),
    )

    assert SpigetResolver().try_resolve(_descriptor(), mock_client(router)) is None


def test_missing_latest_version_returns_none(router, mock_client) -> None:
    router.add(f"{API}/resources/12345", json_response(_resource()))

    assert SpigetResolver().try_resolve(_descriptor(HOMEPAGE), mock_client(router)) is None


def test_runtime_descriptor_is_declined(router, mock_client) -> None:
    descriptor = _descriptor(HOMEPAGE, kind=ArtifactKind.SERVER_RUNTIME)

    assert SpigetResolver().try_resolve(descriptor, mock_client(router)) is None
    assert router.requests == []


def test_requests_carry_identifying_headers(router, mock_client) -> None:
    router.add(f"{API}/resources/12345", json_response(_resource()))
    router.add(f"{API}/resources/12345/versions/latest", json_response({"id": 9, "name": "2.0"}))

    SpigetResolver().try_resolve(_descriptor(HOMEPAGE), mock_client(router))

    assert router.requests
    for request in router.requests:
        assert request.headers["User-Agent"] == DEFAULT_USER_AGENT
        assert request.headers["Spiget-User-Agent"] == DEFAULT_USER_AGENT
        assert request.headers["Accept-Encoding"] == "gzip, deflate"


def test_cancelled_token_stops_before_any_request(router, mock_client) -> None:
    router.add(f"{API}/resources/12345", json_response(_resource()))
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelled):
        SpigetResolver().try_resolve(_descriptor(HOMEPAGE), mock_client(router), cancel=token)
    assert router.requests == []
