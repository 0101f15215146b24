"""Raw marketplace REST client tests using httpx.MockTransport."""

import json
import uuid

import httpx
import pytest
from authlib.integrations.httpx_client import OAuthError

from app.marketplace.client import MarketplaceSaaSClient

BASE_URL = "https://marketplace.test/api"
API_VERSION = "2018-08-31"
TOKEN_URL = "https://login.test/tenant/oauth2/token"


class _TokenEndpoint:
    """Fake identity provider counting token requests."""

    def __init__(self, status_code: int = 200, expires_in: str = "3599") -> None:
        self.status_code = status_code
        self.expires_in = expires_in
        self.calls = 0
        self.forms: list[dict[str, str]] = []

    @property
    def last_form(self) -> dict[str, str]:
        return self.forms[-1]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        self.forms.append(dict(httpx.QueryParams(request.content.decode())))
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "invalid_client"})
        return httpx.Response(
            200,
            json={"access_token": f"test-token-{self.calls}", "token_type": "Bearer", "expires_in": self.expires_in},
        )


def _client(handler, token_endpoint=None) -> MarketplaceSaaSClient:
    token_endpoint = token_endpoint or _TokenEndpoint()

    def route(request: httpx.Request) -> httpx.Response:
        if request.url.host == "login.test":
            return token_endpoint(request)
        return handler(request)

    return MarketplaceSaaSClient(
        base_url=BASE_URL,
        api_version=API_VERSION,
        token_url=TOKEN_URL,
        client_id="client-id",
        client_secret="client-secret",
        resource="marketplace-resource",
        transport=httpx.MockTransport(route),
    )


class TestRequests:
    """Requests carry auth, correlation headers and the API version."""

    async def test_get_subscription_headers(self):
        sub_id = uuid.uuid4()
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": str(sub_id)})

        async with _client(handler) as client:
            payload = await client.get_subscription(sub_id)

        assert payload == {"id": str(sub_id)}
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == f"/api/saas/subscriptions/{sub_id}"
        assert request.url.params["api-version"] == API_VERSION
        assert request.headers["Authorization"] == "Bearer test-token-1"
        assert uuid.UUID(request.headers["x-ms-requestid"])
        assert uuid.UUID(request.headers["x-ms-correlationid"])

    async def test_list_subscriptions_follows_next_link(self):
        first, second = str(uuid.uuid4()), str(uuid.uuid4())
        next_link = f"{BASE_URL}/saas/subscriptions?continuationToken=page2&api-version={API_VERSION}"

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("continuationToken") == "page2":
                return httpx.Response(200, json={"subscriptions": [{"id": second}], "@nextLink": ""})
            return httpx.Response(200, json={"subscriptions": [{"id": first}], "@nextLink": next_link})

        async with _client(handler) as client:
            subscriptions = await client.list_subscriptions()

        assert [s["id"] for s in subscriptions] == [first, second]

    async def test_resolve_sends_marketplace_token(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": str(uuid.uuid4())})

        async with _client(handler) as client:
            await client.resolve("purchase-token")

        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/saas/subscriptions/resolve"
        assert seen[0].headers["x-ms-marketplace-token"] == "purchase-token"

    async def test_update_subscription_returns_operation_location(self):
        sub_id = uuid.uuid4()
        location = f"{BASE_URL}/saas/subscriptions/{sub_id}/operations/{uuid.uuid4()}?api-version={API_VERSION}"
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(202, headers={"Operation-Location": location})

        async with _client(handler) as client:
            result = await client.update_subscription(sub_id, plan_id="gold")

        assert result == location
        assert bodies == [{"planId": "gold"}]

    async def test_activate_body(self):
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200)

        async with _client(handler) as client:
            await client.activate_subscription(uuid.uuid4(), "silver", quantity=3)

        assert bodies == [{"planId": "silver", "quantity": 3}]

    async def test_error_status_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "not found"})

        async with _client(handler) as client:
            with pytest.raises(httpx.HTTPStatusError) as exc_info:
                await client.get_subscription(uuid.uuid4())

        assert exc_info.value.response.status_code == 404


class TestClientCredentialsToken:
    """Tokens are requested with client credentials, cached and refreshed by authlib."""

    async def test_token_cached_between_requests(self):
        token_endpoint = _TokenEndpoint()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        async with _client(handler, token_endpoint) as client:
            await client.get_subscription(uuid.uuid4())
            await client.get_subscription(uuid.uuid4())

        assert token_endpoint.calls == 1
        assert token_endpoint.last_form["grant_type"] == "client_credentials"
        assert token_endpoint.last_form["client_id"] == "client-id"
        assert token_endpoint.last_form["client_secret"] == "client-secret"
        assert token_endpoint.last_form["resource"] == "marketplace-resource"

    async def test_expiring_token_refetched_with_resource(self):
        # expires inside authlib's 60 second leeway, so every request refreshes
        token_endpoint = _TokenEndpoint(expires_in="30")
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        async with _client(handler, token_endpoint) as client:
            await client.get_subscription(uuid.uuid4())
            await client.get_subscription(uuid.uuid4())

        assert token_endpoint.calls == 2
        assert all(form["resource"] == "marketplace-resource" for form in token_endpoint.forms)
        assert seen[-1].headers["Authorization"] == "Bearer test-token-2"

    async def test_rejected_credentials(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("API must not be called without a token")

        async with _client(handler, _TokenEndpoint(status_code=401)) as client:
            with pytest.raises(OAuthError) as exc_info:
                await client.get_subscription(uuid.uuid4())

        assert exc_info.value.error == "invalid_client"

    async def test_unreachable_identity_provider(self):
        def token_down(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(lambda request: httpx.Response(200, json={}), token_down) as client:
            with pytest.raises(OAuthError) as exc_info:
                await client.get_subscription(uuid.uuid4())

        assert exc_info.value.error == "token_request_failed"
