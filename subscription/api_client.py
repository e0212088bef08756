"""
REST client for the subscription backend.

ApiClient owns the aiohttp session and turns every failure into an ApiError
with a classified ErrorKind. SubscriptionApi has one method per backend
endpoint and returns the decoded response envelope.
"""

import asyncio
import inspect
import json
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import aiohttp
from pydantic import ValidationError

from config import settings
from subscription.errors import ApiError, ErrorKind
from subscription.schemas import (
    ApiEnvelope,
    AutoRenewalRequest,
    CreateRecurringRequest,
    PreferencesUpdate,
    ScheduleDowngradeRequest,
    UpgradePreviewRequest,
)
from utils.logger import logger

TokenProvider = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


class ApiClient:
    """
    Thin JSON-over-HTTP client.

    Usage:
        async with ApiClient() as client:
            envelope = await client.get('/subscriptions/current')
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        token_provider: Optional[TokenProvider] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.REQUEST_TIMEOUT_SECONDS)
        self._token_provider = token_provider or (lambda: settings.AUTH_TOKEN)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> 'ApiClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._token_provider()
        if inspect.isawaitable(token):
            token = await token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _decode(raw: bytes, charset: Optional[str] = None) -> Any:
        if not raw:
            return None
        try:
            body = raw.decode(charset or "utf-8", errors="replace")
        except LookupError:
            body = raw.decode("utf-8", errors="replace")
        try:
            return json.loads(body)
        except ValueError:
            return body

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> ApiEnvelope:
        """Send a request and return the decoded envelope, raising ApiError on failure"""
        url = f"{self.base_url}{path}"
        session = self._get_session()

        try:
            async with session.request(
                method,
                url,
                json=body,
                params=params,
                headers=await self._headers(),
            ) as response:
                status = response.status
                payload = self._decode(await response.read(), response.charset)
        except asyncio.TimeoutError as e:
            logger.warning(f"{method} {path} timed out")
            raise ApiError(ErrorKind.NETWORK, "Request timed out") from e
        except aiohttp.ClientError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(ErrorKind.NETWORK, f"Network error: {e}") from e

        if status >= 400:
            error = ApiError.from_response(status, payload)
            logger.debug(f"{method} {path} -> {status} ({error.kind.value})")
            raise error

        if isinstance(payload, dict):
            try:
                return ApiEnvelope.model_validate(payload)
            except ValidationError as e:
                logger.warning(f"{method} {path} returned a malformed envelope: {e.error_count()} errors")
                raise ApiError(
                    ErrorKind.UNKNOWN,
                    "Unexpected response from server",
                    status=status,
                    payload=payload,
                ) from e
        return ApiEnvelope(success=True, data=payload)

    async def get(self, path: str, params: Optional[dict] = None) -> ApiEnvelope:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Optional[dict] = None) -> ApiEnvelope:
        return await self.request("POST", path, body=body)

    async def put(self, path: str, body: Optional[dict] = None) -> ApiEnvelope:
        return await self.request("PUT", path, body=body)


class SubscriptionApi:
    """Centralized service for all subscription-related API calls"""

    def __init__(self, client: ApiClient):
        self.client = client

    # ========== Preferences & profile ==========

    async def get_preferences(self) -> ApiEnvelope:
        return await self.client.get('/auth/preferences')

    async def update_preferences(self, currency_code: str) -> ApiEnvelope:
        return await self.client.put('/auth/preferences', PreferencesUpdate(currency=currency_code).to_body())

    async def get_profile(self) -> ApiEnvelope:
        return await self.client.get('/auth/profile')

    # ========== Plans & subscription ==========

    async def get_plans(self, currency_code: Optional[str] = None) -> ApiEnvelope:
        params = {'currency': currency_code} if currency_code else None
        return await self.client.get('/subscriptions/plans', params=params)

    async def get_current_subscription(self) -> ApiEnvelope:
        return await self.client.get('/subscriptions/current')

    async def get_user_features(self) -> ApiEnvelope:
        return await self.client.get('/features/user')

    async def get_billing_details(self) -> ApiEnvelope:
        return await self.client.get('/subscriptions/billing-details')

    async def get_transactions(self, page: int = 1, limit: int = 20) -> ApiEnvelope:
        return await self.client.get('/subscriptions/transactions', params={'page': page, 'limit': limit})

    # ========== Plan changes & payments ==========

    async def get_upgrade_preview(self, plan_id: str, currency_code: str) -> ApiEnvelope:
        return await self.client.post(
            f'/subscriptions/upgrade-preview/{plan_id}',
            UpgradePreviewRequest(currency=currency_code).to_body(),
        )

    async def create_recurring_subscription(self, plan_id: str, currency_code: str) -> ApiEnvelope:
        return await self.client.post(
            '/subscriptions/create-recurring',
            CreateRecurringRequest(plan_id=plan_id, currency=currency_code).to_body(),
        )

    async def verify_payment(self, order_id: str) -> ApiEnvelope:
        return await self.client.get(f'/subscriptions/verify-payment/{order_id}')

    async def schedule_downgrade(self, plan_id: str) -> ApiEnvelope:
        return await self.client.post(
            '/subscriptions/schedule-downgrade',
            ScheduleDowngradeRequest(plan_id=plan_id).to_body(),
        )

    # ========== Subscription management ==========

    async def cancel_subscription(self) -> ApiEnvelope:
        return await self.client.post('/subscriptions/cancel')

    async def reactivate_subscription(self) -> ApiEnvelope:
        return await self.client.post('/subscriptions/reactivate')

    async def update_auto_renewal(self, auto_renewal: bool) -> ApiEnvelope:
        return await self.client.post(
            '/subscriptions/auto-renewal',
            AutoRenewalRequest(auto_renewal=auto_renewal).to_body(),
        )
