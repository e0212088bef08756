"""
Payment session management.

Creates a recurring-subscription order with the backend and records its id
on the device before the payment UI opens, so an interrupted payment can be
reconciled later by the recovery flow.
"""

from dataclasses import dataclass
from typing import Iterable

from subscription.api_client import SubscriptionApi
from subscription.errors import ApiError, CurrencyMismatchError, PlanNotFoundError
from subscription.models import Currency, OrderDetails, Plan
from subscription.storage import PendingOrderStore
from utils.logger import logger


@dataclass
class PaymentSession:
    """Everything the payment dialog needs"""
    order: OrderDetails
    plan: Plan
    currency: Currency


class PaymentSessionManager:
    """Starts payments and tracks the pending order id"""

    def __init__(self, api: SubscriptionApi, pending_orders: PendingOrderStore):
        self.api = api
        self.pending_orders = pending_orders

    @staticmethod
    def select_plan(plan_id: str, currency: Currency, plans: Iterable[Plan]) -> Plan:
        """
        Find the plan in the loaded catalog and check its currency.

        Raises PlanNotFoundError or CurrencyMismatchError. A mismatch means the
        catalog was loaded before the user changed currency.
        """
        plan = next((p for p in plans if p.id == plan_id), None)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        if plan.currency != currency.code:
            logger.warning(
                f"Plan {plan_id} is priced in {plan.currency} but billing currency is {currency.code}"
            )
            raise CurrencyMismatchError(plan.currency, currency.code)
        return plan

    async def initiate_payment(
        self,
        plan_id: str,
        currency: Currency,
        plans: Iterable[Plan],
    ) -> PaymentSession:
        """
        Create a recurring order and persist its id.

        The returned session is only handed out after the order id is stored.
        """
        plan = self.select_plan(plan_id, currency, plans)

        response = await self.api.create_recurring_subscription(plan_id, currency.code)
        if not response.success or not response.data_dict().get('orderId'):
            raise ApiError.unsuccessful(response.message, "Failed to create payment order")

        order = OrderDetails.from_dict(response.data_dict())
        await self.pending_orders.put(order.order_id)
        logger.info(f"Created order {order.order_id} for {plan_id} in {currency.code}")

        return PaymentSession(order=order, plan=plan, currency=currency)

    async def complete_payment(self, order_id: str) -> bool:
        """Forget the pending order once the payment UI reports success"""
        cleared = await self.pending_orders.compare_and_clear(order_id)
        if not cleared:
            logger.info(f"Pending order slot no longer holds {order_id}, leaving it")
        return cleared
