# SPDX-License-Identifier: Apache-2.0
"""
Unit tests for RateLimitTracker.

Tests cover:
- update() / get() snapshot semantics
- can_make_request() admission rules
- get_wait_time() retry-after and earliest-reset selection
- should_throttle() usage thresholds
- Monotonicity of admission and throttling
- Concurrent writers
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from llm_provider_kit.config import TrackerConfig
from llm_provider_kit.ratelimit.parsers import CerebrasParser, OpenAIParser
from llm_provider_kit.ratelimit.tracker import RateLimitTracker
from llm_provider_kit.types.rate_limit import RateLimitInfo

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _in(seconds: float) -> datetime:
    return NOW + timedelta(seconds=seconds)


@pytest.fixture
def tracker() -> RateLimitTracker:
    return RateLimitTracker()


class TestUpdateAndGet:
    """Test storage semantics."""

    def test_get_unknown_model(self, tracker: RateLimitTracker) -> None:
        assert tracker.get("gpt-4") is None
        assert tracker.last_update is None

    def test_get_returns_equal_record(self, tracker: RateLimitTracker) -> None:
        info = RateLimitInfo(
            provider="openai",
            model="gpt-4",
            requests_limit=100,
            requests_remaining=10,
            requests_reset=_in(30),
            custom_data={"k": "v"},
        )
        tracker.update(info)
        assert tracker.get("gpt-4") == info
        assert tracker.last_update is not None

    def test_returned_record_is_a_copy(self, tracker: RateLimitTracker) -> None:
        tracker.update(RateLimitInfo(model="gpt-4", requests_limit=100, custom_data={"a": 1}))
        first = tracker.get("gpt-4")
        assert first is not None
        first.requests_limit = 1
        first.custom_data["a"] = 2
        second = tracker.get("gpt-4")
        assert second is not None
        assert second.requests_limit == 100
        assert second.custom_data == {"a": 1}

    def test_stored_record_is_a_copy(self, tracker: RateLimitTracker) -> None:
        info = RateLimitInfo(model="gpt-4", requests_limit=100)
        tracker.update(info)
        info.requests_limit = 5
        assert tracker.get("gpt-4").requests_limit == 100  # type: ignore[union-attr]

    def test_latest_update_wins(self, tracker: RateLimitTracker) -> None:
        tracker.update(RateLimitInfo(model="m", requests_limit=100, tokens_limit=50))
        tracker.update(RateLimitInfo(model="m", requests_limit=10))
        info = tracker.get("m")
        assert info is not None
        assert info.requests_limit == 10
        assert info.tokens_limit == 0

    def test_none_is_ignored(self, tracker: RateLimitTracker) -> None:
        tracker.update(None)
        assert len(tracker) == 0

    def test_models_remove_clear(self, tracker: RateLimitTracker) -> None:
        tracker.update(RateLimitInfo(model="a"))
        tracker.update(RateLimitInfo(model="b"))
        assert sorted(tracker.models()) == ["a", "b"]
        assert "a" in tracker
        assert tracker.remove("a") is True
        assert tracker.remove("a") is False
        tracker.clear()
        assert len(tracker) == 0

    def test_update_from_headers(self, tracker: RateLimitTracker) -> None:
        info = tracker.update_from_headers(
            OpenAIParser(), {"x-ratelimit-limit-requests": "60"}, "gpt-4"
        )
        assert info.requests_limit == 60
        assert tracker.get("gpt-4") == info


class TestCanMakeRequest:
    """Test admission decisions."""

    def test_untracked_model_is_allowed(self, tracker: RateLimitTracker) -> None:
        assert tracker.can_make_request("unknown", 10_000, now=NOW) is True

    def test_exhausted_requests_deny(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(model="m", requests_limit=10, requests_remaining=0, requests_reset=_in(30))
        )
        assert tracker.can_make_request("m", now=NOW) is False

    def test_rolled_over_request_window_allows(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(
                model="m",
                requests_limit=10,
                requests_remaining=0,
                requests_reset=_in(-1),
                credits_limit=5.0,
                credits_remaining=0.0,
            )
        )
        assert tracker.can_make_request("m", now=NOW) is True

    def test_zero_limit_is_not_reported(self, tracker: RateLimitTracker) -> None:
        tracker.update(RateLimitInfo(model="m", requests_limit=0, requests_remaining=0))
        assert tracker.can_make_request("m", now=NOW) is True

    def test_input_token_window(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(
                model="m",
                input_tokens_limit=1000,
                input_tokens_remaining=100,
                input_tokens_reset=_in(10),
            )
        )
        assert tracker.can_make_request("m", 100, now=NOW) is True
        assert tracker.can_make_request("m", 101, now=NOW) is False

    def test_expired_token_window_is_ignored(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(model="m", tokens_limit=1000, tokens_remaining=0, tokens_reset=_in(-5))
        )
        assert tracker.can_make_request("m", 500, now=NOW) is True

    def test_exhausted_daily_window(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(
                model="m",
                daily_requests_limit=100,
                daily_requests_remaining=0,
                daily_requests_reset=_in(3600),
            )
        )
        assert tracker.can_make_request("m", now=NOW) is False

    def test_exhausted_credits(self, tracker: RateLimitTracker) -> None:
        tracker.update(RateLimitInfo(model="m", credits_limit=5.0, credits_remaining=0.0))
        assert tracker.can_make_request("m", now=NOW) is False

    def test_cerebras_admission(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(
                provider="cerebras",
                model="llama3.1-8b",
                daily_requests_limit=14400,
                daily_requests_remaining=8500,
                requests_limit=30,
                requests_remaining=5,
                requests_reset=_in(45),
                tokens_limit=60000,
                tokens_remaining=10000,
                tokens_reset=_in(45),
            )
        )
        assert tracker.can_make_request("llama3.1-8b", 20000, now=NOW) is False
        assert tracker.can_make_request("llama3.1-8b", 100, now=NOW) is True

    def test_cerebras_admission_from_headers(self, tracker: RateLimitTracker) -> None:
        headers = {
            "x-ratelimit-limit-requests-day": "14400",
            "x-ratelimit-remaining-requests-day": "8500",
            "x-ratelimit-limit-requests-minute": "30",
            "x-ratelimit-remaining-requests-minute": "5",
            "x-ratelimit-reset-requests-minute": "45",
            "x-ratelimit-limit-tokens-minute": "60000",
            "x-ratelimit-remaining-tokens-minute": "10000",
            "x-ratelimit-reset-tokens-minute": "45",
        }
        tracker.update_from_headers(CerebrasParser(), headers, "llama3.1-8b")
        assert tracker.can_make_request("llama3.1-8b", 20000) is False
        assert tracker.can_make_request("llama3.1-8b", 100) is True

    def test_admission_is_non_increasing_in_tokens(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(
                model="m",
                requests_limit=10,
                requests_remaining=3,
                requests_reset=_in(30),
                tokens_limit=5000,
                tokens_remaining=1200,
                tokens_reset=_in(30),
                input_tokens_limit=4000,
                input_tokens_remaining=900,
                input_tokens_reset=_in(30),
            )
        )
        decisions = [tracker.can_make_request("m", n, now=NOW) for n in range(0, 3000, 50)]
        # Once denied, never allowed again for larger estimates
        first_denial = decisions.index(False)
        assert all(decisions[:first_denial])
        assert not any(decisions[first_denial:])


class TestGetWaitTime:
    """Test wait-time calculation."""

    def test_untracked_model(self, tracker: RateLimitTracker) -> None:
        assert tracker.get_wait_time("m", now=NOW) == 0.0

    def test_retry_after_wins(self, tracker: RateLimitTracker) -> None:
        tracker.update(RateLimitInfo(model="m", retry_after=7.0, requests_reset=_in(2)))
        assert tracker.get_wait_time("m", now=NOW) == 7.0

    def test_earliest_future_reset(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(
                model="m",
                requests_reset=_in(-10),
                tokens_reset=_in(40),
                output_tokens_reset=_in(15),
                daily_requests_reset=_in(3600),
            )
        )
        assert tracker.get_wait_time("m", now=NOW) == pytest.approx(15.0)

    def test_no_future_reset(self, tracker: RateLimitTracker) -> None:
        tracker.update(RateLimitInfo(model="m", requests_reset=_in(-10)))
        assert tracker.get_wait_time("m", now=NOW) == 0.0


class TestShouldThrottle:
    """Test throttle decisions."""

    def test_usage_at_threshold(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(model="m", requests_limit=100, requests_remaining=20, requests_reset=_in(30))
        )
        assert tracker.should_throttle("m", 0.8, now=NOW) is True
        assert tracker.should_throttle("m", 0.81, now=NOW) is False

    def test_inactive_window_is_ignored(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(model="m", requests_limit=100, requests_remaining=0, requests_reset=_in(-1))
        )
        assert tracker.should_throttle("m", 0.5, now=NOW) is False

    def test_window_without_reset_is_ignored(self, tracker: RateLimitTracker) -> None:
        tracker.update(RateLimitInfo(model="m", tokens_limit=100, tokens_remaining=0))
        assert tracker.should_throttle("m", 0.5, now=NOW) is False

    def test_credits_are_always_evaluated(self, tracker: RateLimitTracker) -> None:
        tracker.update(RateLimitInfo(model="m", credits_limit=10.0, credits_remaining=1.0))
        assert tracker.should_throttle("m", 0.9, now=NOW) is True

    @pytest.mark.parametrize("threshold", [-0.1, 1.5, None])
    def test_out_of_range_threshold_uses_default(
        self, tracker: RateLimitTracker, threshold: float | None
    ) -> None:
        tracker.update(
            RateLimitInfo(model="m", requests_limit=100, requests_remaining=25, requests_reset=_in(30))
        )
        # usage 0.75 is below the 0.8 default
        assert tracker.should_throttle("m", threshold, now=NOW) is False
        tracker.update(
            RateLimitInfo(model="m", requests_limit=100, requests_remaining=15, requests_reset=_in(30))
        )
        assert tracker.should_throttle("m", threshold, now=NOW) is True

    def test_configured_default(self) -> None:
        tracker = RateLimitTracker(TrackerConfig(default_throttle_threshold=0.5))
        tracker.update(
            RateLimitInfo(model="m", requests_limit=100, requests_remaining=40, requests_reset=_in(30))
        )
        assert tracker.should_throttle("m", 2.0, now=NOW) is True

    def test_throttle_is_non_increasing_in_threshold(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(
                model="m",
                requests_limit=100,
                requests_remaining=37,
                requests_reset=_in(30),
                tokens_limit=1000,
                tokens_remaining=120,
                tokens_reset=_in(30),
            )
        )
        decisions = [tracker.should_throttle("m", r / 100, now=NOW) for r in range(0, 101)]
        first_false = decisions.index(False)
        assert all(decisions[:first_false])
        assert not any(decisions[first_false:])

    def test_untracked_model(self, tracker: RateLimitTracker) -> None:
        assert tracker.should_throttle("m", 0.0, now=NOW) is False


class TestNaiveResets:
    """Naive reset instants are read as UTC."""

    def test_naive_reset_blocks_until_it_passes(self, tracker: RateLimitTracker) -> None:
        reset = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(seconds=30)
        tracker.update(
            RateLimitInfo(model="m", requests_limit=1, requests_remaining=0, requests_reset=reset)
        )

        assert tracker.can_make_request("m") is False
        assert 0 < tracker.get_wait_time("m") <= 30
        assert tracker.should_throttle("m") is True

    def test_naive_now(self, tracker: RateLimitTracker) -> None:
        tracker.update(
            RateLimitInfo(model="m", requests_limit=10, requests_remaining=0, requests_reset=_in(10))
        )
        naive_now = NOW.replace(tzinfo=None)
        assert tracker.can_make_request("m", now=naive_now) is False
        assert tracker.get_wait_time("m", now=naive_now) == 10.0
        assert tracker.should_throttle("m", now=naive_now) is True

    def test_reset_assigned_after_construction(self, tracker: RateLimitTracker) -> None:
        info = RateLimitInfo(model="m", tokens_limit=100, tokens_remaining=0)
        info.tokens_reset = NOW.replace(tzinfo=None) + timedelta(seconds=5)
        tracker.update(info)
        assert tracker.get_wait_time("m", now=NOW) == 5.0


class TestConcurrency:
    """Test concurrent writers and readers."""

    def test_readers_during_writes(self, tracker: RateLimitTracker) -> None:
        errors: list[BaseException] = []
        done = threading.Event()

        def writer() -> None:
            for i in range(500):
                tracker.update(
                    RateLimitInfo(
                        model="m", requests_limit=10, requests_remaining=i % 10, requests_reset=_in(60)
                    )
                )
            done.set()

        def reader() -> None:
            try:
                while not done.is_set():
                    tracker.can_make_request("m", now=NOW)
                    tracker.get_wait_time("m", now=NOW)
                    tracker.should_throttle("m", now=NOW)
            except BaseException as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(4)]
        threads.append(threading.Thread(target=writer))
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []

    def test_concurrent_updates(self, tracker: RateLimitTracker) -> None:
        errors: list[BaseException] = []

        def writer(worker: int) -> None:
            try:
                for i in range(200):
                    tracker.update(
                        RateLimitInfo(model=f"m{worker % 4}", requests_limit=i + 1, requests_remaining=i)
                    )
                    info = tracker.get(f"m{worker % 4}")
                    assert info is not None
                    assert info.requests_remaining == info.requests_limit - 1
                    tracker.can_make_request(f"m{worker % 4}", 10)
            except BaseException as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(w,)) for w in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sorted(tracker.models()) == ["m0", "m1", "m2", "m3"]
