"""
Template Resolver Tests
=======================
"""

import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.routing import Route
from starlette.testclient import TestClient

from turnstile_proxy.templates import TemplateRenderer, TemplateResolver, split_path


def write(root, relative, content="x"):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


@pytest.fixture
def overrides(tmp_path):
    root = tmp_path / "overrides"
    write(root, "example.com/a/challenge.html", "A {{ request_id }}")
    write(root, "example.com/a/b/challenge.html", "AB {{ request_id }}")
    write(root, "example.com/failed.html", "HOST FAILED")
    write(root, "Mixed.Example.org/challenge.html", "MIXED")
    write(root, "stray.html", "no host")
    write(root, "example.com/a/notes.txt", "ignored")
    return root


@pytest.fixture
def resolver(overrides):
    return TemplateResolver().load(override_path=str(overrides))


class TestLoad:

    def test_core_templates_registered(self):
        resolver = TemplateResolver().load()
        assert "core/challenge" in resolver
        assert "core/failed" in resolver

    def test_overrides_keyed_by_host_and_path(self, resolver):
        assert "example.com/a/challenge" in resolver
        assert "example.com/a/b/challenge" in resolver
        assert "example.com/failed" in resolver

    def test_hostnames_lowercased(self, resolver):
        assert "mixed.example.org/challenge" in resolver

    def test_skips_files_without_host_or_suffix(self, resolver):
        assert "stray" not in resolver
        assert not any(name.endswith("notes") for name in resolver.names)

    def test_missing_override_path(self, tmp_path):
        resolver = TemplateResolver().load(override_path=str(tmp_path / "nope"))
        assert resolver.names == ["core/challenge", "core/failed"]


class TestResolve:

    def test_longest_prefix_wins(self, resolver):
        """host/a/b/c resolves to the host/a/b override, not host/a."""
        assert resolver.resolve("example.com", "/a/b/c", "challenge") == "example.com/a/b/challenge"

    def test_shallower_override(self, resolver):
        assert resolver.resolve("example.com", "/a/z", "challenge") == "example.com/a/challenge"
        assert resolver.resolve("example.com", "/a", "challenge") == "example.com/a/challenge"

    def test_host_root_override(self, resolver):
        assert resolver.resolve("example.com", "/deep/path/here", "failed") == "example.com/failed"

    def test_falls_back_to_core(self, resolver):
        assert resolver.resolve("example.com", "/x", "challenge") == "core/challenge"
        assert resolver.resolve("other.net", "/a/b", "challenge") == "core/challenge"

    def test_host_case_insensitive(self, resolver):
        assert resolver.resolve("MIXED.example.ORG", "/", "challenge") == "mixed.example.org/challenge"

    def test_traversal_collapsed(self, resolver):
        """.. segments cannot climb out of the requested subtree."""
        assert resolver.resolve("example.com", "/x/../a/b/./c", "challenge") == "example.com/a/b/challenge"
        assert resolver.resolve("example.com", "/../../a", "challenge") == "example.com/a/challenge"

    def test_empty_host(self, resolver):
        assert resolver.resolve("", "/a/b", "challenge") == "core/challenge"

    @pytest.mark.parametrize("path,expected", [
        ("/", []),
        ("", []),
        ("/a/b/", ["a", "b"]),
        ("//a//b", ["a", "b"]),
        ("/a/../../b", ["b"]),
    ])
    def test_split_path(self, path, expected):
        assert split_path(path) == expected


class TestRenderer:

    def _client(self, resolver):
        renderer = TemplateRenderer(resolver)

        async def page(request: Request):
            return renderer.render(request, "challenge", {"request_id": "<rid>"}, status_code=200)

        app = Starlette(routes=[Route("/{path:path}", page)])
        return TestClient(app, base_url="https://example.com")

    def test_renders_resolved_override(self, resolver):
        response = self._client(resolver).get("/a/b/c")
        assert response.status_code == 200
        assert response.text == "AB &lt;rid&gt;"
        assert response.headers["cache-control"] == "no-store"

    def test_renders_core_default(self, resolver):
        response = self._client(resolver).get("/elsewhere")
        assert 'name="request_id" value="&lt;rid&gt;"' in response.text

    def test_port_ignored_for_host(self, resolver):
        client = self._client(resolver)
        response = client.get("https://example.com:8443/a/b")
        assert response.text.startswith("AB")
