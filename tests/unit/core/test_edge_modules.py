"""Tests for edge module rendering."""

import pytest

from fastlypurge.core.services.edge_modules import (
    MODULES,
    EdgeModuleError,
    edge_module_status,
    get_edge_module,
    is_edge_module_snippet,
    render_edge_module,
)


class TestRegistry:
    """Tests for the module registry."""

    def test_known_modules(self) -> None:
        assert list(MODULES) == [
            "cors_headers",
            "countryblock",
            "disable_cache",
            "force_cache_miss_on_hard_reload_for_admins",
            "increase_timeouts_long_jobs",
        ]

    def test_unknown_module(self) -> None:
        with pytest.raises(EdgeModuleError, match="Unknown edge module"):
            get_edge_module("nope")

    def test_snippet_names(self) -> None:
        module = get_edge_module("countryblock")

        assert module.snippet_name("recv") == "edgemodule_countryblock_recv"
        assert is_edge_module_snippet("edgemodule_countryblock_error", module)
        assert not is_edge_module_snippet("edgemodule_cors_headers_deliver", module)


class TestRender:
    """Tests for render_edge_module."""

    def test_countryblock(self) -> None:
        snippets = render_edge_module("countryblock", {"countries": ["ru", "KP"]})

        recv, error = snippets
        assert recv.name == "edgemodule_countryblock_recv"
        assert recv.type == "recv"
        assert (
            'client.geo.country_code == "RU" || client.geo.country_code == "KP"'
            in recv.content
        )
        assert 'error 971 "Forbidden";' in recv.content
        assert error.type == "error"
        assert "set obj.status = 403;" in error.content

    def test_empty_render_skipped(self) -> None:
        assert render_edge_module("countryblock", {"countries": []}) == []
        assert render_edge_module("disable_cache", {}) == []

    def test_cors_anyone(self) -> None:
        (snippet,) = render_edge_module("cors_headers", {"origin": "anyone"})

        assert 'set resp.http.Access-Control-Allow-Origin = "*";' in snippet.content
        assert '"GET,HEAD,POST,OPTIONS"' in snippet.content

    def test_cors_regex(self) -> None:
        (snippet,) = render_edge_module(
            "cors_headers",
            {
                "origin": "regex",
                "cors_allowed_origins_regex": "^https://(www\\.)?example\\.com$",
                "cors_allowed_methods": "GET,POST",
            },
        )

        assert 'req.http.Origin ~ "^https://(www\\.)?example\\.com$"' in snippet.content
        assert '"GET,POST"' in snippet.content

    def test_disable_cache_modes(self) -> None:
        recv, deliver = render_edge_module(
            "disable_cache",
            {
                "rules": [
                    {"pattern": "^/cart", "mode": "both"},
                    {"pattern": "^/account", "mode": "fastly"},
                ]
            },
        )

        assert recv.content.count("return(pass);") == 2
        assert recv.content.count("X-Fastly-Browser-No-Cache") == 1
        assert "X-Fastly-Browser-No-Cache" in deliver.content

    def test_increase_timeouts(self) -> None:
        recv, pass_ = render_edge_module(
            "increase_timeouts_long_jobs",
            {"rules": [{"pattern": "^/export", "timeout": 600}, {"pattern": "^/import"}]},
        )

        assert recv.priority == 80
        assert pass_.priority == 50
        assert "bereq.first_byte_timeout = 600s;" in pass_.content
        assert "bereq.first_byte_timeout = 300s;" in pass_.content

    def test_force_cache_miss(self) -> None:
        recv, hash_ = render_edge_module(
            "force_cache_miss_on_hard_reload_for_admins", {"acl": "admins"}
        )

        assert "client.ip ~ admins" in recv.content
        assert "req.hash_always_miss = true" in recv.content
        assert hash_.type == "hash"

    def test_template_error_wrapped(self) -> None:
        with pytest.raises(EdgeModuleError, match="Unable to render"):
            render_edge_module("increase_timeouts_long_jobs", {"rules": 5})


class TestStatus:
    """Tests for edge_module_status."""

    def test_status_from_snippets(self) -> None:
        statuses = edge_module_status(
            [
                {"name": "edgemodule_countryblock_recv", "updated_at": "2024-01-01T00:00:00Z"},
                {"name": "custom_snippet"},
            ]
        )

        by_id = {status.module.id: status for status in statuses}
        assert len(statuses) == len(MODULES)
        assert by_id["countryblock"].enabled is True
        assert by_id["countryblock"].updated_at == "2024-01-01T00:00:00Z"
        assert by_id["cors_headers"].enabled is False
