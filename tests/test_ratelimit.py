import time

import pytest
from limits.storage import MemoryStorage

from dinedesk_ext.ratelimit import OTP_VERIFY, PASSWORD_RESET, FixedWindowRateLimiter, RateLimitDecision, get_limiter


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def limiter(storage):
    return FixedWindowRateLimiter(storage, limit=3, window_seconds=900, namespace="test")


def test_allows_up_to_limit_then_refuses(limiter):
    decisions = [limiter.check("1.2.3.4") for _ in range(4)]
    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.attempts_left for d in decisions] == [2, 1, 0, 0]


def test_refused_calls_do_not_extend_window(limiter):
    for _ in range(3):
        limiter.check("key")
    first_refusal = limiter.check("key")
    second_refusal = limiter.check("key")
    assert not second_refusal.allowed
    assert second_refusal.reset_at == pytest.approx(first_refusal.reset_at, abs=1)


def test_window_reopens_after_reset(storage):
    limiter = FixedWindowRateLimiter(storage, limit=1, window_seconds=1, namespace="short")
    assert limiter.check("key").allowed
    assert not limiter.check("key").allowed
    time.sleep(1.2)
    decision = limiter.check("key")
    assert decision.allowed
    assert decision.attempts_left == 0


def test_keys_are_independent(limiter):
    for _ in range(3):
        limiter.check("a@example.com")
    assert not limiter.check("a@example.com").allowed
    assert limiter.check("b@example.com").allowed


def test_namespaces_share_a_storage_without_collisions(storage):
    first = FixedWindowRateLimiter(storage, limit=1, window_seconds=60, namespace="one")
    second = FixedWindowRateLimiter(storage, limit=1, window_seconds=60, namespace="two")
    assert first.check("key").allowed
    assert second.check("key").allowed
    assert not first.check("key").allowed


def test_limiters_sharing_a_storage_count_every_hit(storage):
    first = FixedWindowRateLimiter(storage, limit=3, window_seconds=60, namespace="shared")
    second = FixedWindowRateLimiter(storage, limit=3, window_seconds=60, namespace="shared")
    first.check("key")
    first.check("key")

    results = [first.check("key").allowed, second.check("key").allowed]

    assert results == [True, False]
    assert not first.check("key").allowed


def test_reset_time_is_reported_in_the_future(limiter):
    decision = limiter.check("key")
    assert decision.reset_at > time.time()
    assert 1 <= decision.retry_after(time.time()) <= 900


def test_retry_after_and_wait_minutes():
    decision = RateLimitDecision(allowed=False, attempts_left=0, reset_at=1_000.0 + 61)
    assert decision.retry_after(1_000.0) == 61
    assert decision.wait_minutes(1_000.0) == 2
    assert decision.retry_after(2_000.0) == 1


def test_rejects_invalid_configuration(storage):
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(storage, limit=0, window_seconds=60)


def test_app_limiters_share_one_storage(app):
    reset = get_limiter(PASSWORD_RESET)
    verify = get_limiter(OTP_VERIFY)
    assert reset.storage is verify.storage
    assert (reset.limit, reset.window_seconds) == (3, 900)
    assert (verify.limit, verify.window_seconds) == (3, 300)
