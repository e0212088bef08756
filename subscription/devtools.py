"""
Developer tooling for the billing client.

Explicit operations for inspecting and resetting local billing state, used
by `python -m subscription` and by tests.
"""

from typing import Optional

from subscription.context import BillingClient
from subscription.models import Currency
from subscription.payment_recovery import PaymentRecovery, RecoveryResult
from utils.logger import logger


class DevTools:
    """Diagnostics bound to a BillingClient"""

    def __init__(self, billing: BillingClient):
        self.billing = billing

    async def force_currency_check(self) -> Optional[Currency]:
        """
        Forget the saved currency and run detection again.

        The result is only what local signals say; nothing is persisted, so the
        next screen load still goes through the full resolution chain.
        """
        await self.billing.resolver.reset_currency_selection()
        detected = self.billing.resolver.detect_currency()
        logger.info(f"Forced currency check detected {detected.code if detected else 'nothing'}")
        return detected

    async def reset_currency(self) -> None:
        await self.billing.resolver.reset_currency_selection()
        logger.info("Currency selection reset")

    async def current_currency(self) -> Currency:
        return await self.billing.resolver.resolve_currency()

    async def pending_order(self) -> Optional[str]:
        return await self.billing.pending_orders.get()

    async def clear_pending_order(self) -> Optional[str]:
        """Drop the stored pending order id; returns what was cleared"""
        order_id = await self.billing.pending_orders.get()
        if order_id and await self.billing.pending_orders.compare_and_clear(order_id):
            logger.info(f"Cleared pending order {order_id}")
            return order_id
        return None

    async def recover(self) -> RecoveryResult:
        """Run pending-payment recovery once, refreshing subscription state on success"""
        recovery = PaymentRecovery(
            self.billing.api,
            self.billing.pending_orders,
            on_refresh=self.billing.state.refresh,
        )
        return await recovery.recover_pending_payment()
