import httpx
import pytest

from agrisync.exceptions import FetchError, RetryExhaustedError
from agrisync.services import outsource
from agrisync.services.api_client import LOGIN_PATH, login, retry_after_seconds

from helpers import FakeSleep, FakeTokens, envelope, request_body


@pytest.mark.asyncio
async def test_bearer_header_attached(make_outsource):
    seen = []

    def handler(request):
        seen.append(request.headers.get("Authorization"))
        return envelope([{"recId": "1"}])

    client = make_outsource(handler)
    payload = await outsource.get_farmers(client, {"pageIndex": 1})
    assert payload["data"] == [{"recId": "1"}]
    assert seen == ["Bearer token-1"]


@pytest.mark.asyncio
async def test_401_refreshes_once_and_retries(make_outsource):
    tokens = FakeTokens()

    def handler(request):
        if request.headers["Authorization"] == "Bearer token-1":
            return httpx.Response(401)
        return envelope([])

    client = make_outsource(handler, tokens=tokens)
    await outsource.get_news(client, {})
    assert tokens.refreshes == 1


@pytest.mark.asyncio
async def test_second_401_propagates(make_outsource):
    tokens = FakeTokens()
    client = make_outsource(lambda request: httpx.Response(401), tokens=tokens)

    with pytest.raises(httpx.HTTPStatusError):
        await outsource.get_news(client, {})
    assert tokens.refreshes == 1


@pytest.mark.asyncio
async def test_retry_after_honoured(make_outsource):
    responses = iter([
        httpx.Response(429, headers={"Retry-After": "2"}),
        envelope([{"recId": "1"}]),
    ])
    sleep = FakeSleep()
    client = make_outsource(lambda request: next(responses), sleep=sleep)

    payload = await outsource.get_operations(client, {"cropYear": 2024})
    assert payload["data"] == [{"recId": "1"}]
    assert sleep.calls == [2.0]


@pytest.mark.asyncio
async def test_three_429s_exhaust_retries(make_outsource):
    calls = []
    sleep = FakeSleep()

    def handler(request):
        calls.append(request)
        return httpx.Response(429, headers={"Retry-After": "2"})

    client = make_outsource(handler, sleep=sleep)
    with pytest.raises(RetryExhaustedError, match="get_operations"):
        await outsource.get_operations(client, {})
    assert len(calls) == 3
    assert sleep.calls == [2.0, 2.0]


@pytest.mark.asyncio
async def test_other_errors_not_retried(make_outsource):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    client = make_outsource(handler)
    with pytest.raises(httpx.HTTPStatusError):
        await outsource.get_merchants(client, {})
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_envelope_failure_raises(make_outsource):
    client = make_outsource(lambda request: envelope(None, success=False))
    with pytest.raises(FetchError, match="boom"):
        await outsource.get_communities(client, {})


def test_retry_after_default_when_missing_or_garbage():
    assert retry_after_seconds(httpx.Response(429), 60) == 60.0
    assert retry_after_seconds(httpx.Response(429, headers={"Retry-After": "soon"}), 60) == 60.0
    assert retry_after_seconds(httpx.Response(429, headers={"Retry-After": "5"}), 60) == 5.0


@pytest.mark.asyncio
async def test_login_posts_credentials_without_auth():
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = request_body(request)
        return httpx.Response(200, json={"accessToken": "t", "expiresIn": 3600})

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://outsource.test"
    ) as http:
        payload = await login(http, "user", "secret")

    assert payload["accessToken"] == "t"
    assert captured == {
        "path": LOGIN_PATH,
        "auth": None,
        "body": {"username": "user", "password": "secret"},
    }
