import threading

import pytest

from core.exceptions import ConfigurationError, RateLimitExceededError
from core.rate_limit import RateLimiter, RateLimitPolicy, resolve_client_identity


def _limiter(clock, max_requests=3, window=60, sweep_interval=600):
    policy = RateLimitPolicy('analyze', window_seconds=window, max_requests=max_requests)
    return RateLimiter(policies={'analyze': policy}, sweep_interval=sweep_interval, clock=clock)


def test_requests_within_limit_are_allowed(clock):
    """Test remaining count decreases until the budget is used up."""
    limiter = _limiter(clock)

    results = [limiter.check('analyze', '1.2.3.4') for _ in range(3)]

    assert all(result.allowed for result in results)
    assert [result.remaining for result in results] == [2, 1, 0]


def test_request_over_limit_is_rejected(clock):
    """Test the request after the budget is rejected with retry information."""
    limiter = _limiter(clock, max_requests=2, window=60)
    limiter.enforce('analyze', 'client')
    limiter.enforce('analyze', 'client')

    clock.advance(15)
    with pytest.raises(RateLimitExceededError) as exc_info:
        limiter.enforce('analyze', 'client')

    error = exc_info.value
    assert error.limit == 2
    assert error.retry_after_seconds == pytest.approx(45)
    assert error.retry_after_iso.endswith('+00:00')


def test_window_resets_after_expiry(clock):
    """Test a fresh window starts once the old one has expired."""
    limiter = _limiter(clock, max_requests=1, window=60)
    assert limiter.check('analyze', 'client').allowed
    assert not limiter.check('analyze', 'client').allowed

    clock.advance(60)
    result = limiter.check('analyze', 'client')

    assert result.allowed
    assert result.remaining == 0


def test_identities_and_policies_have_separate_windows(clock):
    """Test one caller exhausting a policy does not affect others."""
    limiter = RateLimiter(policies={
        'analyze': RateLimitPolicy('analyze', 60, 1),
        'health': RateLimitPolicy('health', 60, 1),
    }, clock=clock)

    assert limiter.check('analyze', 'a').allowed
    assert not limiter.check('analyze', 'a').allowed
    assert limiter.check('analyze', 'b').allowed
    assert limiter.check('health', 'a').allowed


def test_sweep_removes_expired_windows(clock):
    """Test periodic sweeping drops windows whose reset time has passed."""
    limiter = _limiter(clock, window=60, sweep_interval=600)
    limiter.check('analyze', 'a')
    limiter.check('analyze', 'b')
    assert limiter.window_count() == 2

    clock.advance(601)
    limiter.check('analyze', 'c')

    assert limiter.window_count() == 1


def test_unknown_policy_raises_configuration_error(clock):
    """Test checking an unregistered policy fails loudly."""
    limiter = _limiter(clock)

    with pytest.raises(ConfigurationError):
        limiter.check('missing', 'client')


def test_result_headers(clock):
    """Test rate-limit headers carry the reset time in epoch milliseconds."""
    limiter = _limiter(clock, max_requests=5, window=60)

    headers = limiter.check('analyze', 'client').to_headers()

    assert headers['X-RateLimit-Limit'] == '5'
    assert headers['X-RateLimit-Remaining'] == '4'
    assert headers['X-RateLimit-Reset'] == str(int((clock.time() + 60) * 1000))


@pytest.mark.parametrize("headers,expected", [
    ({'X-Forwarded-For': '10.0.0.1, 192.168.1.1'}, '10.0.0.1'),
    ({'x-forwarded-for': ' 10.0.0.2 '}, '10.0.0.2'),
    ({'X-Real-IP': '10.0.0.3'}, '10.0.0.3'),
    ({'X-Forwarded-For': '', 'X-Real-IP': '10.0.0.4'}, '10.0.0.4'),
    ({}, 'unknown'),
    (None, 'unknown'),
])
def test_resolve_client_identity(headers, expected):
    """Test caller identity comes from proxy headers with a shared fallback."""
    assert resolve_client_identity(headers) == expected


def test_concurrent_checks_allow_exactly_the_budget(clock):
    """Test parallel checks for one identity never admit more than max_requests."""
    limiter = _limiter(clock, max_requests=50, window=60)
    barrier = threading.Barrier(10)
    allowed = []
    allowed_lock = threading.Lock()

    def _worker():
        barrier.wait()
        for _ in range(20):
            result = limiter.check('analyze', 'shared-client')
            if result.allowed:
                with allowed_lock:
                    allowed.append(result.remaining)

    threads = [threading.Thread(target=_worker) for _ in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert len(allowed) == 50
    assert sorted(allowed) == list(range(50))
