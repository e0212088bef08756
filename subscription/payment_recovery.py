"""
Pending-payment recovery.

When a payment is interrupted (app killed, network drop) the order id stays
on the device. Each time the subscription screen gains focus this flow asks
the backend whether that order settled and reconciles local state.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from subscription.api_client import SubscriptionApi
from subscription.errors import ApiError, ErrorKind
from subscription.models import PaymentStatus, PaymentVerification
from subscription.storage import PendingOrderStore
from utils.logger import logger

RECOVERED_MESSAGE = "Your payment was processed successfully. Your subscription is now active!"
COMPLETED_MESSAGE = "Your subscription is active!"


@dataclass
class RecoveryResult:
    order_id: Optional[str] = None
    status: Optional[PaymentStatus] = None
    cleared: bool = False
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is not None and self.status.is_settled


class PaymentRecovery:
    """
    Verifies a stored pending order.

    on_success receives the user-facing message; on_refresh reloads
    subscription and profile data. Both run at most once per settled order.
    """

    def __init__(
        self,
        api: SubscriptionApi,
        pending_orders: PendingOrderStore,
        on_refresh: Callable[[], Awaitable[None]],
        on_success: Optional[Callable[[str], None]] = None,
    ):
        self.api = api
        self.pending_orders = pending_orders
        self.on_refresh = on_refresh
        self.on_success = on_success

    async def recover_pending_payment(self) -> RecoveryResult:
        """
        Reconcile the stored pending order, if any.

        A 404 from the backend clears the stored id. Other failures are
        re-raised for the caller to log.
        """
        order_id = await self.pending_orders.get()
        if not order_id:
            return RecoveryResult()

        try:
            verification = await self._verify(order_id)
        except ApiError as e:
            if e.kind == ErrorKind.NOT_FOUND:
                cleared = await self.pending_orders.compare_and_clear(order_id)
                logger.info(f"Pending order {order_id} not found on backend, cleared={cleared}")
                return RecoveryResult(order_id=order_id, cleared=cleared)
            raise

        if verification is None or not verification.is_settled:
            status = verification.status if verification else None
            logger.debug(f"Pending order {order_id} not settled yet ({status})")
            return RecoveryResult(order_id=order_id, status=status)

        cleared = await self.pending_orders.compare_and_clear(order_id)
        message = RECOVERED_MESSAGE if verification.status == PaymentStatus.RECOVERED else COMPLETED_MESSAGE
        logger.info(f"Pending order {order_id} settled as {verification.status.value}")

        if self.on_success is not None:
            self.on_success(message)
        await self.on_refresh()

        return RecoveryResult(
            order_id=order_id,
            status=verification.status,
            cleared=cleared,
            message=message,
        )

    async def _verify(self, order_id: str) -> Optional[PaymentVerification]:
        response = await self.api.verify_payment(order_id)
        if not response.success:
            return None
        status = PaymentStatus.parse(response.data_dict().get('status'))
        return PaymentVerification(order_id=order_id, status=status)
