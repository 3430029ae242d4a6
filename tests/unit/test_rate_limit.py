"""
Tests for app/middleware/rate_limit.py

Uses a fake clock for the limiter and a throwaway FastAPI app for the
dependency; authentication is overridden.
"""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.middleware.auth import verify_supabase_jwt
from app.middleware.rate_limit import RATE_LIMITS, RateLimiter, limiter, rate_limit


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def small_limiter(clock):
    return RateLimiter({'generate': 2, 'default': 5}, window_seconds=60, clock=clock)


class TestRateLimiter:
    """Tests for RateLimiter.check()"""

    @pytest.mark.unit
    def test_counts_down_then_blocks(self, small_limiter):
        """Should allow `limit` requests per window and block the next"""
        first = small_limiter.check('user-1', 'generate')
        second = small_limiter.check('user-1', 'generate')
        third = small_limiter.check('user-1', 'generate')

        assert (first.success, first.remaining) == (True, 1)
        assert (second.success, second.remaining) == (True, 0)
        assert third.success is False
        assert third.remaining == 0
        assert third.retry_after == 60

    @pytest.mark.unit
    def test_window_resets(self, small_limiter, clock):
        """Should allow requests again once the window has passed"""
        for _ in range(3):
            small_limiter.check('user-1', 'generate')

        clock.now += 60
        result = small_limiter.check('user-1', 'generate')

        assert result.success is True
        assert result.remaining == 1

    @pytest.mark.unit
    def test_retry_after_counts_down(self, small_limiter, clock):
        """Should report the seconds left in the window"""
        small_limiter.check('user-1', 'generate')
        small_limiter.check('user-1', 'generate')
        clock.now += 45.5

        assert small_limiter.check('user-1', 'generate').retry_after == 15

    @pytest.mark.unit
    def test_users_and_types_are_independent(self, small_limiter):
        """Should keep separate counters per user and per limit type"""
        small_limiter.check('user-1', 'generate')
        small_limiter.check('user-1', 'generate')

        assert small_limiter.check('user-2', 'generate').success is True
        assert small_limiter.check('user-1', 'default').success is True

    @pytest.mark.unit
    def test_unknown_type_uses_default(self, small_limiter):
        assert small_limiter.check('user-1', 'something-else').limit == 5

    @pytest.mark.unit
    def test_headers(self, small_limiter):
        """Should add Retry-After only when blocked"""
        allowed = small_limiter.check('user-1', 'generate')
        assert allowed.headers() == {
            'X-RateLimit-Limit': '2',
            'X-RateLimit-Remaining': '1',
            'X-RateLimit-Reset': '1060',
        }

        small_limiter.check('user-1', 'generate')
        blocked = small_limiter.check('user-1', 'generate')
        assert blocked.headers()['Retry-After'] == '60'

    @pytest.mark.unit
    def test_reset_clears_counters(self, small_limiter):
        for _ in range(3):
            small_limiter.check('user-1', 'generate')
        small_limiter.reset()
        assert small_limiter.check('user-1', 'generate').success is True

    @pytest.mark.unit
    def test_default_limits(self):
        """Should ship the documented per-minute limits"""
        assert RATE_LIMITS['transcripts'] == 20
        assert RATE_LIMITS['transcripts_batch'] == 5
        assert RATE_LIMITS['generate'] == 10
        assert RATE_LIMITS['youtube_search'] == 30


class TestRateLimitDependency:
    """Tests for the rate_limit() dependency factory"""

    @pytest.fixture
    def client(self):
        app = FastAPI()

        @app.get('/limited')
        async def limited(user_id: str = Depends(rate_limit('webhooks_test'))):
            return {'user_id': user_id}

        app.dependency_overrides[verify_supabase_jwt] = lambda: 'user-1'
        limiter.reset()
        yield TestClient(app)
        limiter.reset()

    @pytest.mark.unit
    def test_sets_headers_and_returns_user(self, client):
        """Should pass the user through and expose limit headers"""
        response = client.get('/limited')

        assert response.status_code == 200
        assert response.json() == {'user_id': 'user-1'}
        assert response.headers['X-RateLimit-Limit'] == str(RATE_LIMITS['webhooks_test'])
        assert response.headers['X-RateLimit-Remaining'] == str(RATE_LIMITS['webhooks_test'] - 1)

    @pytest.mark.unit
    def test_blocks_with_429(self, client):
        """Should answer 429 with Retry-After once the limit is used up"""
        for _ in range(RATE_LIMITS['webhooks_test']):
            assert client.get('/limited').status_code == 200

        response = client.get('/limited')

        assert response.status_code == 429
        assert 'Retry-After' in response.headers
        assert response.headers['X-RateLimit-Remaining'] == '0'
        assert 'Rate limit exceeded' in response.json()['detail']
