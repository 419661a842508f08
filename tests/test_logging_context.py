"""Tests for per-request logging context."""

import threading

import pytest

from jobping.logging.context import (
    clear_log_context,
    get_log_context,
    log_context,
    pop_log_context,
    push_log_context,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_log_context()
    yield
    clear_log_context()


class TestPushPop:
    """Tests for the token-based push/pop API."""

    def test_starts_empty(self):
        assert get_log_context() == {}

    def test_push_merges_and_pop_restores(self):
        outer = push_log_context(request_id="req-1", tier="free")
        inner = push_log_context(email="user@example.com")

        assert get_log_context() == {
            "request_id": "req-1",
            "tier": "free",
            "email": "user@example.com",
        }

        pop_log_context(inner)
        assert get_log_context() == {"request_id": "req-1", "tier": "free"}

        pop_log_context(outer)
        assert get_log_context() == {}

    def test_inner_value_shadows_outer(self):
        outer = push_log_context(tier="free")
        inner = push_log_context(tier="premium")

        assert get_log_context()["tier"] == "premium"

        pop_log_context(inner)
        assert get_log_context()["tier"] == "free"
        pop_log_context(outer)

    def test_returned_context_is_a_copy(self):
        token = push_log_context(request_id="req-1")

        get_log_context()["tier"] = "modified"

        assert get_log_context() == {"request_id": "req-1"}
        pop_log_context(token)

    def test_clear(self):
        push_log_context(request_id="req-1")

        clear_log_context()

        assert get_log_context() == {}


class TestLogContextManager:
    """Tests for the log_context context manager."""

    def test_scoped_fields(self):
        with log_context(request_id="req-1", tier="premium"):
            assert get_log_context() == {"request_id": "req-1", "tier": "premium"}

        assert get_log_context() == {}

    def test_nested_scopes(self):
        with log_context(request_id="req-1"):
            with log_context(batch=2):
                assert get_log_context() == {"request_id": "req-1", "batch": 2}
            assert get_log_context() == {"request_id": "req-1"}

    def test_restored_after_exception(self):
        with pytest.raises(ValueError):
            with log_context(request_id="req-1"):
                raise ValueError("boom")

        assert get_log_context() == {}

    def test_context_does_not_leak_across_threads(self):
        """Test that a concurrent request never sees another request's fields."""
        seen = {}

        def worker():
            seen["before"] = get_log_context()
            with log_context(request_id="req-thread"):
                seen["inside"] = get_log_context()

        with log_context(request_id="req-main"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()
            assert get_log_context() == {"request_id": "req-main"}

        assert seen["before"] == {}
        assert seen["inside"] == {"request_id": "req-thread"}
