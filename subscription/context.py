"""
Billing client wiring.

BillingClient builds the API client, storage and every subscription
component once and hands them to screens. Use it as an async context
manager, or call get_billing_client() for the shared instance.
"""

from pathlib import Path
from typing import Optional

from config import settings
from subscription.api_client import ApiClient, SubscriptionApi, TokenProvider
from subscription.currency_handler import CurrencyResolver, CurrencySelector
from subscription.feature_gate import FeatureGate
from subscription.payment_session import PaymentSessionManager
from subscription.plan_catalog import PlanCatalog
from subscription.plan_change import PlanChangeEvaluator
from subscription.screen import ProfileRefresher, SubscriptionScreen
from subscription.storage import LocalStore, PendingOrderStore
from subscription.subscription_state import SubscriptionState
from utils.logger import logger


class BillingClient:
    """Owns the shared subscription components for one signed-in session"""

    def __init__(
        self,
        client: ApiClient,
        store: LocalStore,
        selector: Optional[CurrencySelector] = None,
        dev_currency: Optional[str] = None,
    ):
        self.client = client
        self.store = store
        self.api = SubscriptionApi(client)
        self.pending_orders = PendingOrderStore(store)
        self.resolver = CurrencyResolver(
            self.api,
            store,
            selector=selector,
            dev_currency=dev_currency,
        )
        self.catalog = PlanCatalog(self.api)
        self.state = SubscriptionState(self.api)
        self.evaluator = PlanChangeEvaluator(self.api)
        self.payments = PaymentSessionManager(self.api, self.pending_orders)
        self._feature_gate: Optional[FeatureGate] = None

    @classmethod
    def create(
        cls,
        base_url: Optional[str] = None,
        storage_path: Optional[Path] = None,
        token_provider: Optional[TokenProvider] = None,
        selector: Optional[CurrencySelector] = None,
    ) -> 'BillingClient':
        """Build a client from settings, overriding whatever is passed in"""
        client = ApiClient(base_url=base_url, token_provider=token_provider)
        store = LocalStore(storage_path)
        logger.debug(f"Billing client for {client.base_url}, storage at {store.path}")
        return cls(client, store, selector=selector, dev_currency=settings.DEV_CURRENCY)

    async def __aenter__(self) -> 'BillingClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def feature_gate(self) -> FeatureGate:
        if self._feature_gate is None:
            self._feature_gate = FeatureGate(self.state)
        return self._feature_gate

    def screen(self, profile_refresher: Optional[ProfileRefresher] = None) -> SubscriptionScreen:
        """New subscription screen controller sharing this client's components"""
        return SubscriptionScreen(
            api=self.api,
            resolver=self.resolver,
            catalog=self.catalog,
            state=self.state,
            evaluator=self.evaluator,
            payments=self.payments,
            pending_orders=self.pending_orders,
            profile_refresher=profile_refresher,
        )

    async def close(self) -> None:
        await self.client.close()


# Global instance
_billing_client: Optional[BillingClient] = None


def get_billing_client() -> BillingClient:
    """Get the global billing client instance"""
    global _billing_client
    if _billing_client is None:
        _billing_client = BillingClient.create()
    return _billing_client
