"""
Plan change evaluation.

Classifies a switch between plans using a fixed ordinal table, asks the
backend for a proration quote on upgrades and schedules downgrades for the
end of the billing period.
"""

from typing import Optional

from subscription.api_client import SubscriptionApi
from subscription.errors import ApiError
from subscription.models import PlanChange, UpgradePreview
from utils.logger import logger

# Tier hierarchy for comparison (higher = more features)
PLAN_HIERARCHY = {
    'free': 0,
    'basic_monthly': 1,
    'standard_quarterly': 2,
    'pro_yearly': 3,
}


def get_plan_level(plan_id: Optional[str]) -> int:
    """Ordinal of a plan id; unknown ids rank with free"""
    return PLAN_HIERARCHY.get(plan_id or 'free', 0)


def is_downgrade(current_plan_id: Optional[str], target_plan_id: str) -> bool:
    return get_plan_level(target_plan_id) < get_plan_level(current_plan_id)


def classify(current_plan_id: Optional[str], target_plan_id: str) -> PlanChange:
    """
    Classify a plan change.

    DOWNGRADE iff the target ranks strictly below the current plan.
    Otherwise NEW_PURCHASE when there is no paid plan yet, else UPGRADE.
    """
    if is_downgrade(current_plan_id, target_plan_id):
        return PlanChange.DOWNGRADE
    if not current_plan_id or current_plan_id == 'free':
        return PlanChange.NEW_PURCHASE
    return PlanChange.UPGRADE


class PlanChangeEvaluator:
    """Backend calls that accompany a plan change"""

    def __init__(self, api: SubscriptionApi):
        self.api = api

    async def preview_upgrade(self, plan_id: str, currency_code: str) -> Optional[UpgradePreview]:
        """
        Ask the backend for a proration quote.

        Returns None if the quote is unavailable; the upgrade then goes ahead
        without one.
        """
        try:
            response = await self.api.get_upgrade_preview(plan_id, currency_code)
        except ApiError as e:
            logger.warning(f"Upgrade preview for {plan_id} failed, continuing without it: {e.message}")
            return None

        if not response.success or not response.data_dict():
            logger.warning(f"Upgrade preview for {plan_id} unavailable: {response.message}")
            return None
        return UpgradePreview.from_dict(response.data_dict())

    async def schedule_downgrade(self, plan_id: str) -> None:
        """Schedule a downgrade for the end of the current period; raises ApiError on failure"""
        response = await self.api.schedule_downgrade(plan_id)
        if not response.success:
            raise ApiError.unsuccessful(response.message, "Failed to schedule downgrade. Please try again.")
        logger.info(f"Downgrade to {plan_id} scheduled for period end")
