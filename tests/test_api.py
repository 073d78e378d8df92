"""api モジュールのテスト."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from pinsearch.api import RateLimiter, create_app, parse_scrolls
from pinsearch.models import PinRecord, SearchParams, SearchResult


def _result() -> SearchResult:
    pins = [PinRecord(pin_id="A", url="https://www.pinterest.com/pin/A/", saves=100)]
    return SearchResult.build("ceramic mugs", pins, 6)


@pytest.fixture
def searcher():
    mock = MagicMock()
    mock.fetch_results = AsyncMock(return_value=_result())
    return mock


@pytest.fixture
def client(searcher):
    return TestClient(create_app(searcher=searcher, api_key="", rate_limit=0))


class TestPinterestEndpoint:
    """GET /api/pinterest のテスト."""

    def test_success(self, client, searcher):
        resp = client.get("/api/pinterest", params={"q": "ceramic mugs", "scrolls": "2", "login": "0"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["ok"] is True
        assert body["data"]["loadedPins"] == 1
        assert body["data"]["keywordDifficulty"] == 6
        assert body["data"]["lowCompetition"] is True
        assert body["data"]["sample"][0]["pinId"] == "A"
        searcher.fetch_results.assert_awaited_once_with(SearchParams("ceramic mugs", 2, False))

    @pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "   "}])
    def test_missing_q(self, client, searcher, params):
        """q が無い・空白のみなら 400 で、検索は実行しないこと."""
        resp = client.get("/api/pinterest", params=params)

        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing q"}
        searcher.fetch_results.assert_not_called()

    @pytest.mark.parametrize("scrolls, expected", [("0", 1), ("15", 10), ("5", 5), ("abc", 3), (None, 3)])
    def test_scrolls_clamped(self, client, searcher, scrolls, expected):
        params = {"q": "mugs"}
        if scrolls is not None:
            params["scrolls"] = scrolls

        client.get("/api/pinterest", params=params)

        sent = searcher.fetch_results.await_args.args[0]
        assert sent.scroll_count == expected

    def test_login_flag(self, client, searcher):
        client.get("/api/pinterest", params={"q": "mugs", "login": "1"})
        assert searcher.fetch_results.await_args.args[0].use_login is True

        client.get("/api/pinterest", params={"q": "mugs", "login": "true"})
        assert searcher.fetch_results.await_args.args[0].use_login is False

    def test_query_is_trimmed(self, client, searcher):
        client.get("/api/pinterest", params={"q": "  mugs  "})
        assert searcher.fetch_results.await_args.args[0].query == "mugs"

    def test_internal_error(self, client, searcher):
        searcher.fetch_results.side_effect = TimeoutError("Timeout 30000ms exceeded")

        resp = client.get("/api/pinterest", params={"q": "mugs"})

        assert resp.status_code == 500
        assert resp.json() == {"ok": False, "error": "Timeout 30000ms exceeded"}


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}


class TestApiKey:
    """API キーによる認証のテスト."""

    def test_rejects_missing_key(self, searcher):
        client = TestClient(create_app(searcher=searcher, api_key="k3y", rate_limit=0))

        resp = client.get("/api/pinterest", params={"q": "mugs"})

        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}
        searcher.fetch_results.assert_not_called()

    def test_accepts_valid_key(self, searcher):
        client = TestClient(create_app(searcher=searcher, api_key="k3y", rate_limit=0))

        resp = client.get("/api/pinterest", params={"q": "mugs"}, headers={"x-api-key": "k3y"})

        assert resp.status_code == 200

    def test_health_is_public(self, searcher):
        client = TestClient(create_app(searcher=searcher, api_key="k3y", rate_limit=0))
        assert client.get("/health").status_code == 200


class TestRateLimit:
    """レート制限のテスト."""

    def test_endpoint_limited(self, searcher):
        client = TestClient(create_app(searcher=searcher, api_key="", rate_limit=2))

        codes = [client.get("/api/pinterest", params={"q": "mugs"}).status_code for _ in range(3)]

        assert codes == [200, 200, 429]

    def test_window_slides(self):
        limiter = RateLimiter(limit=1, window_sec=60)

        assert limiter.is_limited("1.2.3.4", now=0) is False
        assert limiter.is_limited("1.2.3.4", now=30) is True
        assert limiter.is_limited("5.6.7.8", now=30) is False
        assert limiter.is_limited("1.2.3.4", now=61) is False

    def test_forwarded_header_ignored_by_default(self, searcher):
        """X-Forwarded-For を変えても制限を回避できないこと."""
        client = TestClient(create_app(searcher=searcher, api_key="", rate_limit=2))

        codes = [
            client.get("/api/pinterest", params={"q": "mugs"}, headers={"x-forwarded-for": f"10.0.0.{i}"}).status_code
            for i in range(6)
        ]

        assert codes == [200, 200, 429, 429, 429, 429]

    def test_forwarded_header_with_trusted_proxy(self, searcher):
        client = TestClient(create_app(searcher=searcher, api_key="", rate_limit=1, trust_proxy=True))

        codes = [
            client.get("/api/pinterest", params={"q": "mugs"}, headers={"x-forwarded-for": f"10.0.0.{i}"}).status_code
            for i in range(3)
        ]

        assert codes == [200, 200, 200]

    def test_drained_clients_are_forgotten(self):
        limiter = RateLimiter(limit=1, window_sec=60)
        for i in range(50):
            limiter.is_limited(f"10.0.0.{i}", now=1)
        assert limiter.tracked_clients == 50

        limiter.is_limited("192.168.0.1", now=200)

        assert limiter.tracked_clients == 1

    def test_disabled(self):
        limiter = RateLimiter(limit=0)
        assert not any(limiter.is_limited("ip") for _ in range(100))


class TestParseScrolls:
    def test_default(self):
        assert parse_scrolls(None) == 3

    def test_negative(self):
        assert parse_scrolls("-4") == 1

    @pytest.mark.parametrize("raw, expected", [("2.5", 2), ("4px", 4), (" 7", 7), ("+5", 5), ("px4", 3), ("", 3)])
    def test_leading_integer(self, raw, expected):
        assert parse_scrolls(raw) == expected
