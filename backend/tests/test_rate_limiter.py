"""
Lintgate Backend: Rate Limiter Tests
=====================================

What we test:
    ✅ N requests pass, request N+1 is denied with a positive retry_after
    ✅ Window rollover restarts the counter at 1
    ✅ A minute denial leaves the hour counter untouched
    ✅ Auth-sensitive policy uses its own ceilings and counters
    ✅ A ceiling of 0 disables that window
    ✅ Client identity resolution and idle pruning
"""

from starlette.requests import Request

from lintgate.config import RateLimitSettings
from lintgate.services.rate_limiter import AUTH_POLICY, RateLimiter, resolve_client_id


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_limiter(clock: FakeClock, **overrides) -> RateLimiter:
    return RateLimiter(RateLimitSettings(**overrides), clock=clock)


class TestFixedWindow:
    def setup_method(self):
        self.clock = FakeClock()
        self.limiter = make_limiter(self.clock, requests_per_minute=3, requests_per_hour=100)

    def test_allows_up_to_ceiling_then_denies(self):
        for _ in range(3):
            assert self.limiter.check("1.2.3.4").allowed is True

        decision = self.limiter.check("1.2.3.4")
        assert decision.allowed is False
        assert decision.limit == 3
        assert decision.period == "minute"
        assert 1 <= decision.retry_after <= 60
        assert decision.message == "You have exceeded the 3 requests per minute rate limit."

    def test_retry_after_counts_down(self):
        for _ in range(3):
            self.limiter.check("c")
        self.clock.advance(45)
        assert self.limiter.check("c").retry_after == 15

    def test_retry_after_is_at_least_one_second(self):
        for _ in range(3):
            self.limiter.check("c")
        self.clock.advance(59.9)
        assert self.limiter.check("c").retry_after == 1

    def test_rollover_restarts_counter_at_one(self):
        for _ in range(4):
            self.limiter.check("c")

        self.clock.advance(61)
        assert self.limiter.check("c").allowed is True
        assert self.limiter.window_state("c")["minute"]["count"] == 1

    def test_clients_are_independent(self):
        for _ in range(4):
            self.limiter.check("a")
        assert self.limiter.check("b").allowed is True

    def test_minute_denial_does_not_count_toward_hour(self):
        for _ in range(10):
            self.limiter.check("c")
        state = self.limiter.window_state("c")
        assert state["minute"]["count"] == 10
        assert state["hour"]["count"] == 3

    def test_hour_ceiling(self):
        limiter = make_limiter(self.clock, requests_per_minute=0, requests_per_hour=2)
        assert limiter.check("c").allowed is True
        assert limiter.check("c").allowed is True
        decision = limiter.check("c")
        assert decision.allowed is False
        assert decision.period == "hour"
        assert decision.retry_after == 3600


class TestPolicies:
    def setup_method(self):
        self.clock = FakeClock()
        self.limiter = make_limiter(
            self.clock,
            requests_per_minute=100,
            auth_requests_per_minute=2,
            auth_requests_per_hour=50,
        )

    def test_auth_policy_is_stricter(self):
        self.limiter.check("c", auth_sensitive=True)
        self.limiter.check("c", auth_sensitive=True)
        decision = self.limiter.check("c", auth_sensitive=True)
        assert decision.allowed is False
        assert decision.policy == AUTH_POLICY
        assert decision.message == (
            "Too many authentication attempts. You have exceeded the 2 attempts per minute rate limit."
        )

    def test_auth_policy_has_separate_counters(self):
        for _ in range(3):
            self.limiter.check("c", auth_sensitive=True)
        assert self.limiter.check("c").allowed is True
        assert self.limiter.window_state("c")["minute"]["count"] == 1

    def test_zero_ceilings_disable_limiting(self):
        limiter = make_limiter(self.clock, requests_per_minute=0, requests_per_hour=0)
        for _ in range(500):
            assert limiter.check("c").allowed is True


class TestHousekeeping:
    def test_prune_drops_only_idle_clients(self):
        clock = FakeClock()
        limiter = make_limiter(clock, requests_per_minute=10, requests_per_hour=0)
        limiter.check("idle")
        clock.advance(30)
        limiter.check("active")
        clock.advance(40)

        assert limiter.prune() == 1
        assert limiter.window_state("idle") is None
        assert limiter.window_state("active") is not None


def make_request(headers=None, client=("10.0.0.1", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "query_string": b"",
        "client": client,
    }
    return Request(scope)


class TestClientIdentity:
    def test_attached_api_key_wins(self):
        request = make_request({"X-Forwarded-For": "9.9.9.9"})
        request.state.api_key = "k" * 48
        assert resolve_client_id(request) == "k" * 48

    def test_first_forwarded_address(self):
        request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
        assert resolve_client_id(request) == "203.0.113.7"

    def test_peer_address(self):
        assert resolve_client_id(make_request()) == "10.0.0.1"

    def test_unknown(self):
        assert resolve_client_id(make_request(client=None)) == "unknown"
