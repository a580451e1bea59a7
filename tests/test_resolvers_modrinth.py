"""Tests for the Modrinth resolver."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from conftest import json_response
from PluginUpdater.api import ArtifactDescriptor, ArtifactKind, ProviderError
from PluginUpdater.resolvers.modrinth import ModrinthResolver, extract_project_slug

API = "https://api.modrinth.com/v2"


def _descriptor(name: str = "CoolPlugin", homepage: str = "", **kwargs) -> ArtifactDescriptor:
    return ArtifactDescriptor(
        source_path=Path(f"plugins/{name}-1.0.0.jar"),
        display_name=name,
        declared_version="1.0.0",
        homepage_url=homepage,
        **kwargs,
    )


def _version(number: str, published: str, files: list[dict]) -> dict:
    return {"version_number": number, "date_published": published, "files": files}


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://modrinth.com/plugin/coolplugin", "coolplugin"),
        ("https://modrinth.com/mod/coolplugin/versions", "coolplugin"),
        ("https://modrinth.com/project/AbCd1234", "AbCd1234"),
        ("https://modrinth.com/user/someone/coolplugin", "coolplugin"),
        ("https://example.com/plugin/coolplugin", None),
        ("https://modrinth.com/", None),
        ("", None),
    ],
)
def test_extract_project_slug(url: str, expected) -> None:
    assert extract_project_slug(url) == expected


def test_direct_slug_picks_newest_version_and_primary_file(router, mock_client) -> None:
    router.add(
        f"{API}/project/coolplugin/version",
        json_response(
            [
                _version(
                    "1.1.0",
                    "2024-01-01T00:00:00Z",
                    [{"url": "https://cdn.modrinth.com/old.jar", "filename": "old.jar", "primary": True}],
                ),
                _version("2.0.0", "2024-06-01T00:00:00.123456Z", []),
                _version(
                    "1.2.0",
                    "2024-03-01T12:00:00Z",
                    [
                        {"url": "https://cdn.modrinth.com/sources.zip", "filename": "sources.zip"},
                        {"url": "https://cdn.modrinth.com/Cool-1.2.0.jar", "filename": "Cool-1.2.0.jar", "primary": True},
                    ],
                ),
            ]
        ),
    )
    resolver = ModrinthResolver()

    result = resolver.try_resolve(
        _descriptor(homepage="https://modrinth.com/plugin/coolplugin"), mock_client(router)
    )

    assert result is not None
    assert result.provider_name == "Modrinth"
    assert result.latest_version_label == "1.2.0"
    assert result.download_url == "https://cdn.modrinth.com/Cool-1.2.0.jar"
    assert result.suggested_file_name == "Cool-1.2.0.jar"
    assert result.can_download
    assert json.loads(router.requests[0].url.params["loaders"]) == [
        "paper",
        "spigot",
        "bukkit",
        "purpur",
        "folia",
    ]
    assert all(not path.endswith("/search") for path in router.paths())


def test_file_selection_falls_back_to_jar_then_first(router, mock_client) -> None:
    router.add(
        f"{API}/project/coolplugin/version",
        json_response(
            [
                _version(
                    "1.0.1",
                    "2024-01-01T00:00:00Z",
                    [
                        {"url": "https://cdn/readme.txt", "filename": "readme.txt"},
                        {"url": "https://cdn/cool.JAR", "filename": "cool.JAR"},
                    ],
                )
            ]
        ),
    )

    result = ModrinthResolver().try_resolve(
        _descriptor(homepage="https://modrinth.com/plugin/coolplugin"), mock_client(router)
    )

    assert result is not None
    assert result.download_url == "https://cdn/cool.JAR"


def test_search_scores_hits_and_fetches_best_project(router, mock_client) -> None:
    router.add(
        f"{API}/search",
        json_response(
            {
                "hits": [
                    {"project_id": "zzz", "slug": "unrelated", "title": "Something Else", "categories": ["paper"]},
                    {"project_id": "abc", "slug": "coolplugin", "title": "CoolPlugin", "categories": ["paper", "spigot"]},
                ]
            }
        ),
    )
    router.add(
        f"{API}/project/abc/version",
        json_response(
            [_version("1.3.0", "2024-05-01T00:00:00Z", [{"url": "https://cdn/c.jar", "filename": "c.jar"}])]
        ),
    )

    result = ModrinthResolver().try_resolve(_descriptor(), mock_client(router))

    assert result is not None
    assert result.project_display_name == "CoolPlugin"
    assert result.latest_version_label == "1.3.0"
    search = router.requests[0]
    assert search.url.params["query"] == "CoolPlugin"
    assert search.url.params["index"] == "relevance"
    assert json.loads(search.url.params["facets"]) == [
        ["categories:paper", "categories:spigot", "categories:bukkit", "categories:purpur", "categories:folia"]
    ]


def test_search_below_threshold_returns_none(router, mock_client) -> None:
    router.add(
        f"{API}/search",
        json_response({"hits": [{"project_id": "x", "slug": "other", "title": "Other", "categories": []}]}),
    )

    assert ModrinthResolver().try_resolve(_descriptor(), mock_client(router)) is None
    assert all(path.endswith("/search") for path in router.paths())


def test_project_is_checked_once_across_queries(router, mock_client) -> None:
    router.add(
        f"{API}/search",
        json_response({"hits": [{"project_id": "ABC", "slug": "coolplugin", "title": "CoolPlugin"}]}),
    )
    router.add(f"{API}/project/ABC/version", json_response([]))

    assert ModrinthResolver().try_resolve(_descriptor(), mock_client(router)) is None
    assert router.paths().count("/v2/project/ABC/version") == 1
    assert router.paths().count("/v2/search") == 2


def test_runtime_descriptor_is_declined_without_requests(router, mock_client) -> None:
    descriptor = _descriptor(kind=ArtifactKind.SERVER_RUNTIME)

    assert ModrinthResolver().try_resolve(descriptor, mock_client(router)) is None
    assert router.requests == []


def test_transport_failure_raises_provider_error(mock_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(ProviderError) as excinfo:
        ModrinthResolver().try_resolve(_descriptor(), mock_client(handler))
    assert excinfo.value.provider == "Modrinth"


def test_invalid_json_raises_provider_error(router, mock_client) -> None:
    router.add(f"{API}/search", httpx.Response(200, content=b"<html>nope</html>"))

    with pytest.raises(ProviderError, match="invalid JSON"):
        ModrinthResolver().try_resolve(_descriptor(), mock_client(router))
