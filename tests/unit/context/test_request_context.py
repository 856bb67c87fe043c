"""
Tests for the acting identity and client address resolution.
"""

import threading

import pytest

from devnotes_vault.context.request_context import (
    RequestContext,
    actor_required,
    request_context,
    resolve_client_address,
)
from devnotes_vault.exceptions import ValidationError


class TestRequestContext:
    def test_set_and_get(self):
        RequestContext.set_current("7", "198.51.100.4")

        assert RequestContext.get_current_actor_id() == "7"
        assert RequestContext.get_client_address() == "198.51.100.4"

    def test_defaults_without_context(self):
        assert RequestContext.get_current() is None
        assert RequestContext.get_current_actor_id() is None
        assert RequestContext.get_client_address() == "0.0.0.0"

    def test_address_defaults_to_unknown(self):
        RequestContext.set_current("7")
        assert RequestContext.get_client_address() == "0.0.0.0"

    @pytest.mark.parametrize("actor_id", ["", "   ", None])
    def test_empty_actor_rejected(self, actor_id):
        with pytest.raises(ValidationError):
            RequestContext.set_current(actor_id)

    def test_numeric_actor_normalized_to_string(self):
        RequestContext.set_current(15)
        assert RequestContext.get_current_actor_id() == "15"

    def test_require_actor_id(self):
        with pytest.raises(ValidationError):
            RequestContext.require_actor_id()

        RequestContext.set_current("3")
        assert RequestContext.require_actor_id() == "3"

    def test_thread_isolation(self):
        RequestContext.set_current("main")
        seen = []

        def worker():
            seen.append(RequestContext.get_current_actor_id())

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        assert seen == [None]
        assert RequestContext.get_current_actor_id() == "main"


class TestRequestContextManager:
    def test_clears_afterwards(self):
        with request_context("1", "192.0.2.1") as identity:
            assert identity.actor_id == "1"
            assert identity.client_address == "192.0.2.1"

        assert RequestContext.get_current() is None

    def test_restores_previous_identity(self):
        with request_context("outer", "192.0.2.1"):
            with request_context("inner"):
                assert RequestContext.get_current_actor_id() == "inner"
            assert RequestContext.get_current_actor_id() == "outer"
            assert RequestContext.get_client_address() == "192.0.2.1"

    def test_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with request_context("1"):
                raise RuntimeError("boom")

        assert RequestContext.get_current() is None


class TestActorRequired:
    def test_rejects_anonymous_calls(self):
        @actor_required
        def protected():
            return "ok"

        with pytest.raises(ValidationError):
            protected()

        with request_context("1"):
            assert protected() == "ok"


class TestResolveClientAddress:
    def test_cloudflare_header_wins(self):
        headers = {"CF-Connecting-IP": "203.0.113.9", "X-Forwarded-For": "198.51.100.1"}
        assert resolve_client_address(headers, "10.0.0.1") == "203.0.113.9"

    def test_first_forwarded_entry(self):
        headers = {"x-forwarded-for": "198.51.100.1, 10.0.0.2, 10.0.0.3"}
        assert resolve_client_address(headers, "10.0.0.1") == "198.51.100.1"

    def test_invalid_header_skipped(self):
        headers = {"X-Forwarded-For": "unknown", "X-Cluster-Client-IP": "2001:db8::1"}
        assert resolve_client_address(headers) == "2001:db8::1"

    def test_falls_back_to_remote_addr(self):
        assert resolve_client_address({}, "192.0.2.44") == "192.0.2.44"

    def test_unknown_when_nothing_valid(self):
        assert resolve_client_address({"Forwarded": "garbage"}, "also garbage") == "0.0.0.0"
        assert resolve_client_address() == "0.0.0.0"
