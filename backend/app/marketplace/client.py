"""Async REST client for the marketplace SaaS fulfillment API (v2).

Thin transport layer: builds requests, attaches a bearer token and returns
raw JSON. Requests go through an authlib OAuth2 session using the
client-credentials grant; authlib caches the token and fetches a new one
shortly before it expires. Failures surface as httpx exceptions, or as
authlib ``OAuthError`` when no token can be obtained. Classification
happens in the adapter.
"""

import logging
import uuid
from typing import Any

import httpx
from authlib.integrations.httpx_client import AsyncOAuth2Client, OAuthError

from app.config import Settings, settings

logger = logging.getLogger(__name__)


class MarketplaceOAuth2Client(AsyncOAuth2Client):
    """Client-credentials OAuth2 session that always asks for the marketplace resource.

    authlib re-fetches client-credentials tokens on expiry without the extra
    form fields of the first request, so ``resource`` is added here for every
    token request.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_endpoint: str,
        resource: str,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            client_id=client_id,
            client_secret=client_secret,
            token_endpoint=token_endpoint,
            token_endpoint_auth_method="client_secret_post",
            grant_type="client_credentials",
            **kwargs,
        )
        self.resource = resource

    async def fetch_token(self, url=None, **kwargs):
        kwargs.setdefault("resource", self.resource)
        logger.info("Requesting marketplace access token for client %s", self.client_id)
        return await super().fetch_token(url, **kwargs)


class MarketplaceSaaSClient:
    """Raw fulfillment API client. One instance per application."""

    def __init__(
        self,
        base_url: str,
        api_version: str,
        token_url: str,
        client_id: str,
        client_secret: str,
        resource: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_version = api_version
        self._http = MarketplaceOAuth2Client(
            client_id=client_id,
            client_secret=client_secret,
            token_endpoint=token_url,
            resource=resource,
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "MarketplaceSaaSClient":
        """Build a client from application settings."""
        return cls(
            base_url=config.marketplace_api_base_url,
            api_version=config.marketplace_api_version,
            token_url=config.token_url,
            client_id=config.client_id,
            client_secret=config.client_secret,
            resource=config.marketplace_resource_id,
            timeout=config.marketplace_http_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "MarketplaceSaaSClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def ensure_token(self) -> None:
        """Fetch the first access token, or refresh it when it is about to expire.

        Raises:
            OAuthError: the identity provider rejected the credentials, was
                unreachable, or answered without an access token.
        """
        try:
            if not self._http.token:
                await self._http.fetch_token()
            else:
                await self._http.ensure_active_token(self._http.token)
        except (httpx.HTTPError, ValueError) as e:
            raise OAuthError(error="token_request_failed", description=str(e)) from e

        if "access_token" not in self._http.token:
            self._http.token = None
            raise OAuthError(
                error="invalid_token_response",
                description="Token response did not contain an access_token",
            )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        versioned: bool = True,
    ) -> httpx.Response:
        await self.ensure_token()
        request_headers = {
            "x-ms-requestid": str(uuid.uuid4()),
            "x-ms-correlationid": str(uuid.uuid4()),
        }
        if headers:
            request_headers.update(headers)
        params = {"api-version": self._api_version} if versioned else None

        # token already checked above; sign with it directly
        response = await self._http.request(
            method, url, params=params, json=json, headers=request_headers, auth=self._http.token_auth
        )
        logger.debug("%s %s -> %s", method, url, response.status_code)
        response.raise_for_status()
        return response

    # --- Subscriptions ---

    async def list_subscriptions(self) -> list[dict[str, Any]]:
        """List every subscription of the publisher, following @nextLink pages."""
        subscriptions: list[dict[str, Any]] = []
        response = await self._request("GET", "/saas/subscriptions")
        while True:
            payload = response.json() or {}
            subscriptions.extend(payload.get("subscriptions") or [])
            next_link = payload.get("@nextLink")
            if not next_link:
                return subscriptions
            # nextLink already carries api-version and the continuation token
            response = await self._request("GET", next_link, versioned=False)

    async def get_subscription(self, subscription_id: uuid.UUID) -> dict[str, Any]:
        response = await self._request("GET", f"/saas/subscriptions/{subscription_id}")
        return response.json()

    async def list_available_plans(self, subscription_id: uuid.UUID) -> dict[str, Any]:
        response = await self._request("GET", f"/saas/subscriptions/{subscription_id}/listAvailablePlans")
        return response.json()

    async def resolve(self, marketplace_token: str) -> dict[str, Any]:
        response = await self._request(
            "POST",
            "/saas/subscriptions/resolve",
            headers={"x-ms-marketplace-token": marketplace_token},
        )
        return response.json()

    async def activate_subscription(
        self, subscription_id: uuid.UUID, plan_id: str, quantity: int | None = None
    ) -> None:
        body: dict[str, Any] = {"planId": plan_id}
        if quantity is not None:
            body["quantity"] = quantity
        await self._request("POST", f"/saas/subscriptions/{subscription_id}/activate", json=body)

    async def update_subscription(
        self,
        subscription_id: uuid.UUID,
        plan_id: str | None = None,
        quantity: int | None = None,
    ) -> str:
        """Start a plan or quantity change. Returns the Operation-Location header."""
        body: dict[str, Any] = {}
        if plan_id is not None:
            body["planId"] = plan_id
        if quantity is not None:
            body["quantity"] = quantity
        response = await self._request("PATCH", f"/saas/subscriptions/{subscription_id}", json=body)
        return response.headers.get("Operation-Location", "")

    async def delete_subscription(self, subscription_id: uuid.UUID) -> str:
        """Start an unsubscribe. Returns the Operation-Location header."""
        response = await self._request("DELETE", f"/saas/subscriptions/{subscription_id}")
        return response.headers.get("Operation-Location", "")

    # --- Operations ---

    async def get_operation_status(self, subscription_id: uuid.UUID, operation_id: uuid.UUID) -> dict[str, Any]:
        response = await self._request(
            "GET", f"/saas/subscriptions/{subscription_id}/operations/{operation_id}"
        )
        return response.json()

    async def update_operation_status(
        self, subscription_id: uuid.UUID, operation_id: uuid.UUID, status: str
    ) -> None:
        await self._request(
            "PATCH",
            f"/saas/subscriptions/{subscription_id}/operations/{operation_id}",
            json={"status": status},
        )
