"""
Subscription screen controller.

Drives the plan list, plan changes, payments, currency switching and
pending-payment recovery, and exposes the resulting dialog state. It holds no
rendering code.

Lifetime: close() cancels every task started through spawn() and marks the
screen closed. Flows check `closed` after each await and stop touching state
once the screen is gone.
"""

import asyncio
from typing import Any, Awaitable, Callable, Coroutine, List, Optional, Set

from subscription.api_client import SubscriptionApi
from subscription.currency_handler import CurrencyResolver
from subscription.dialogs import (
    ConfirmDialog,
    CurrencyDialog,
    DialogState,
    FailureDialog,
    PaymentDialog,
    SuccessDialog,
    UpgradePreviewDialog,
)
from subscription.errors import (
    ApiError,
    CurrencyMismatchError,
    CurrencyPersistenceError,
    PlanNotFoundError,
    SubscriptionError,
    payment_error_message,
)
from subscription.models import Currency, Plan, PlanChange
from subscription.payment_recovery import PaymentRecovery, RecoveryResult
from subscription.payment_session import PaymentSessionManager
from subscription.plan_catalog import PlanCatalog
from subscription.plan_change import PlanChangeEvaluator, classify
from subscription.storage import PendingOrderStore
from subscription.subscription_state import SubscriptionState
from utils.logger import logger

ProfileRefresher = Callable[[], Awaitable[Any]]

DOWNGRADE_SCHEDULED_MESSAGE = (
    "Your plan will be downgraded at the end of your current billing cycle. "
    "You can cancel this change anytime before then."
)
ACTIVATED_MESSAGE = "Your subscription has been activated successfully."


class SubscriptionScreen:
    """Orchestrates the subscription screen's async flows"""

    def __init__(
        self,
        api: SubscriptionApi,
        resolver: CurrencyResolver,
        catalog: PlanCatalog,
        state: SubscriptionState,
        evaluator: PlanChangeEvaluator,
        payments: PaymentSessionManager,
        pending_orders: PendingOrderStore,
        profile_refresher: Optional[ProfileRefresher] = None,
    ):
        self.api = api
        self.resolver = resolver
        self.catalog = catalog
        self.state = state
        self.evaluator = evaluator
        self.payments = payments
        self.recovery = PaymentRecovery(
            api,
            pending_orders,
            on_refresh=self._refresh_all,
            on_success=self._show_recovered_payment,
        )
        self._profile_refresher = profile_refresher or self._fetch_profile

        self.dialogs = DialogState()
        self.currency: Optional[Currency] = None
        self.plans: List[Plan] = []
        self.profile: Optional[dict] = None
        self.loading = False
        self.refreshing = False
        self.error: Optional[str] = None
        self.warnings: List[str] = []
        # Plan id whose change is in flight; gates duplicate presses
        self.upgrade_loading: Optional[str] = None
        self.last_recovery_error: Optional[BaseException] = None

        self._closed = False
        self._tasks: Set[asyncio.Task] = set()
        self._currency_choice: Optional[asyncio.Future] = None

    # ========== Lifetime ==========

    @property
    def closed(self) -> bool:
        return self._closed

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        """Run a flow bound to this screen's lifetime"""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def close(self) -> None:
        """Cancel in-flight flows and stop all further state updates"""
        self._closed = True
        if self._currency_choice is not None and not self._currency_choice.done():
            self._currency_choice.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ========== Loading ==========

    async def load(self) -> None:
        """Resolve currency, fetch plans and subscription, then reconcile pending payments"""
        self.loading = True
        self.error = None
        try:
            currency = await self.resolver.resolve_currency(selector=self._select_currency)
            if self._closed:
                return
            self.currency = currency

            await self._load_plans(currency)
            if self._closed:
                return

            await self.state.refresh()
            if self._closed:
                return

            await self.on_focus()
        except CurrencyPersistenceError as e:
            if not self._closed:
                self._show_failure("Save Error", e.message)
        finally:
            self.loading = False

    async def _load_plans(self, currency: Currency) -> None:
        plans = await self.catalog.fetch_plans(currency.code)
        if self._closed:
            return
        self.plans = list(plans)
        self.error = self.catalog.error

    async def refresh(self) -> None:
        """Pull-to-refresh"""
        self.refreshing = True
        try:
            await self.load()
        finally:
            self.refreshing = False

    async def on_focus(self) -> Optional[RecoveryResult]:
        """Check for an interrupted payment. Failures are logged, never shown."""
        try:
            result = await self.recovery.recover_pending_payment()
            self.last_recovery_error = None
            return result
        except (ApiError, OSError) as e:
            logger.error(f"Error checking pending payments: {e}")
            self.last_recovery_error = e
            return None

    async def _refresh_all(self) -> None:
        await self.state.refresh()
        if self._closed:
            return
        await self._profile_refresher()

    async def _fetch_profile(self) -> None:
        try:
            response = await self.api.get_profile()
        except ApiError as e:
            logger.warning(f"Could not refresh profile: {e.message}")
            return
        if not self._closed and response.success:
            self.profile = response.data_dict()

    # ========== Plan changes ==========

    async def handle_plan_change(self, plan_id: str) -> None:
        """Entry point for a plan button press"""
        if self.upgrade_loading is not None:
            logger.debug(f"Plan change for {self.upgrade_loading} already running, ignoring {plan_id}")
            return

        self.upgrade_loading = plan_id
        try:
            current = self.state.current_plan
            current_plan_id = current.id if self.state.has_active_subscription else 'free'
            change = classify(current_plan_id, plan_id)

            if change == PlanChange.DOWNGRADE:
                self._open_downgrade_dialog(plan_id)
                return

            currency = await self._ensure_currency()
            if self._closed:
                return

            if change == PlanChange.UPGRADE:
                preview = await self.evaluator.preview_upgrade(plan_id, currency.code)
                if self._closed:
                    return
                if preview is not None:
                    self.dialogs.upgrade_preview = UpgradePreviewDialog(
                        visible=True,
                        plan_id=plan_id,
                        preview=preview,
                        currency=currency,
                    )
                    return

            await self._start_payment(plan_id, currency)
        except CurrencyPersistenceError as e:
            if not self._closed:
                self._show_failure("Save Error", e.message)
        finally:
            self.upgrade_loading = None

    async def confirm_upgrade_preview(self) -> None:
        dialog = self.dialogs.upgrade_preview
        if not dialog.visible or dialog.plan_id is None:
            return
        if self.upgrade_loading is not None:
            return

        plan_id = dialog.plan_id
        currency = dialog.currency or await self._ensure_currency()
        self.dialogs.upgrade_preview = UpgradePreviewDialog()

        self.upgrade_loading = plan_id
        try:
            await self._start_payment(plan_id, currency)
        finally:
            self.upgrade_loading = None

    def cancel_upgrade_preview(self) -> None:
        self.dialogs.upgrade_preview = UpgradePreviewDialog()

    async def _ensure_currency(self) -> Currency:
        if self.currency is None:
            currency = await self.resolver.resolve_currency(selector=self._select_currency)
            if not self._closed:
                self.currency = currency
            return currency
        return self.currency

    async def _start_payment(self, plan_id: str, currency: Currency) -> None:
        try:
            session = await self.payments.initiate_payment(plan_id, currency, self.plans)
        except SubscriptionError as e:
            if self._closed:
                return
            logger.error(f"Error creating payment order for {plan_id}: {e!r}")
            if isinstance(e, CurrencyMismatchError):
                title = "Currency Changed"
            elif isinstance(e, PlanNotFoundError):
                title = "Error"
            else:
                title = "Payment Error"
            self._show_failure(title, payment_error_message(e))
            return

        if self._closed:
            return
        self.dialogs.payment = PaymentDialog(
            visible=True,
            order=session.order,
            plan=session.plan,
            currency=session.currency,
        )

    def _open_downgrade_dialog(self, plan_id: str) -> None:
        target = self.catalog.find(plan_id)
        current_name = self.state.current_plan.name or 'Current Plan'
        target_name = target.name if target else 'Selected Plan'
        self.dialogs.confirm = ConfirmDialog(
            visible=True,
            title='Downgrade Plan',
            message=(
                f"Downgrades take effect at the end of your current billing cycle. "
                f"You'll continue to have access to {current_name} features until then, "
                f"and will be charged for {target_name} on your next billing date."
            ),
            plan_id=plan_id,
            is_downgrade=True,
        )

    async def confirm_dialog(self) -> None:
        dialog = self.dialogs.confirm
        if dialog.plan_id and dialog.is_downgrade:
            await self._schedule_downgrade(dialog.plan_id)
        elif dialog.plan_id:
            plan_id = dialog.plan_id
            self.dialogs.confirm = ConfirmDialog()
            await self.handle_plan_change(plan_id)
        else:
            self.dialogs.confirm = ConfirmDialog()

    def cancel_dialog(self) -> None:
        self.dialogs.confirm = ConfirmDialog()

    async def _schedule_downgrade(self, plan_id: str) -> None:
        self.dialogs.confirm.loading = True
        try:
            await self.evaluator.schedule_downgrade(plan_id)
        except ApiError as e:
            logger.error(f"Error scheduling downgrade: {e.message}")
            if not self._closed:
                self.dialogs.confirm = ConfirmDialog(
                    visible=True,
                    title='Error',
                    message=e.message if e.server_message else 'Failed to schedule downgrade. Please try again.',
                )
            return

        if self._closed:
            return
        self.dialogs.confirm = ConfirmDialog()
        self.dialogs.success = SuccessDialog(
            visible=True,
            title='Downgrade Scheduled',
            plan_name=self.state.current_plan.name,
            message=DOWNGRADE_SCHEDULED_MESSAGE,
        )
        await self.state.refresh()

    # ========== Payment results ==========

    async def handle_payment_success(self, order_id: Optional[str] = None) -> None:
        """Called by the payment UI once the processor confirms payment"""
        order = self.dialogs.payment.order
        order_id = order_id or (order.order_id if order else None)
        self.dialogs.payment = PaymentDialog()

        if order_id:
            await self.payments.complete_payment(order_id)
        await self._refresh_all()
        if self._closed:
            return
        self.dialogs.success = SuccessDialog(
            visible=True,
            plan_name=self.state.current_plan.name or 'Subscription',
            message=ACTIVATED_MESSAGE,
        )

    def handle_payment_failure(self, error_message: Optional[str] = None) -> None:
        """
        Called by the payment UI when payment fails or is dismissed.

        The pending order id is kept so recovery can still pick it up.
        """
        self.dialogs.payment = PaymentDialog()
        self._show_failure(
            'Payment Failed',
            error_message or 'Payment could not be completed. Please try again.',
        )

    def _show_recovered_payment(self, message: str) -> None:
        if self._closed:
            return
        self.dialogs.success = SuccessDialog(
            visible=True,
            plan_name=self.state.current_plan.name or 'Subscription',
            message=message,
        )

    def dismiss_success(self) -> None:
        self.dialogs.success = SuccessDialog()

    def dismiss_failure(self) -> None:
        self.dialogs.failure = FailureDialog()

    def _show_failure(self, title: str, message: str) -> None:
        self.dialogs.failure = FailureDialog(visible=True, title=title, message=message)

    # ========== Currency ==========

    async def _select_currency(self) -> Optional[Currency]:
        """
        Wait for choose_currency().

        Only one currency dialog is ever open; a second caller waits on the
        same answer instead of replacing it.
        """
        if self._currency_choice is None or self._currency_choice.done():
            choice = asyncio.get_running_loop().create_future()
            choice.add_done_callback(self._hide_currency_dialog)
            self._currency_choice = choice
            self.dialogs.currency = CurrencyDialog(visible=True)
        # Shielded so one waiter being cancelled does not answer for the others
        return await asyncio.shield(self._currency_choice)

    def _hide_currency_dialog(self, choice: asyncio.Future) -> None:
        if self._currency_choice is choice:
            self._currency_choice = None
            self.dialogs.currency = CurrencyDialog()

    def choose_currency(self, currency: Optional[Currency]) -> None:
        """Answer the open currency dialog; None means the user dismissed it"""
        if self._currency_choice is not None and not self._currency_choice.done():
            self._currency_choice.set_result(currency)

    async def handle_currency_change(self) -> Optional[Currency]:
        """Let the user pick a new currency and reload plans priced in it"""
        choice = await self._select_currency()
        if choice is None or self._closed:
            return None

        try:
            update = await self.resolver.set_currency(choice)
        except CurrencyPersistenceError as e:
            if not self._closed:
                self._show_failure("Save Error", e.message)
            return None

        if self._closed:
            return None
        self.currency = update.currency
        self.warnings = update.warnings
        await self._load_plans(update.currency)
        return update.currency

    # ========== Subscription management ==========

    async def cancel_subscription(self) -> bool:
        return await self._manage(
            self.api.cancel_subscription,
            'Subscription Cancelled',
            'Your subscription will remain active until the end of the current billing period.',
            'Failed to cancel subscription. Please try again.',
        )

    async def reactivate_subscription(self) -> bool:
        return await self._manage(
            self.api.reactivate_subscription,
            'Subscription Reactivated',
            'Your subscription will continue to renew as before.',
            'Failed to reactivate subscription. Please try again.',
        )

    async def toggle_auto_renewal(self, enabled: bool) -> bool:
        state = 'enabled' if enabled else 'disabled'
        return await self._manage(
            lambda: self.api.update_auto_renewal(enabled),
            'Auto-Renewal Updated',
            f'Auto-renewal has been {state}.',
            'Failed to update auto-renewal. Please try again.',
        )

    async def _manage(
        self,
        call: Callable[[], Awaitable[Any]],
        success_title: str,
        success_message: str,
        failure_message: str,
    ) -> bool:
        try:
            response = await call()
            if not response.success:
                raise ApiError.unsuccessful(response.message, failure_message)
        except ApiError as e:
            logger.error(f"{success_title} failed: {e.message}")
            if not self._closed:
                self._show_failure('Error', e.server_message or failure_message)
            return False

        if self._closed:
            return True
        self.dialogs.success = SuccessDialog(
            visible=True,
            title=success_title,
            plan_name=self.state.current_plan.name,
            message=success_message,
        )
        await self.state.refresh()
        return True
