"""
Subscription read model.

Aggregates the current subscription, usage counters and feature flags into
the single object the screens read from. The cached copy only changes when
refresh() is called.
"""

from typing import Any, Dict, Optional, Tuple

from subscription.api_client import SubscriptionApi
from subscription.errors import ApiError
from subscription.models import (
    CurrentPlan,
    PlanTier,
    Subscription,
    Usage,
    UsageCounter,
)
from utils.logger import logger

# plan id -> (display name, tier)
PLAN_TABLE: Dict[str, Tuple[str, PlanTier]] = {
    'basic_monthly': ('Basic', PlanTier.BASIC),
    'standard_quarterly': ('Standard', PlanTier.STANDARD),
    'pro_yearly': ('Pro', PlanTier.PRO),
}

FREE_LESSON_LIMIT = 5
# AI sessions are unmetered on every plan; 15 is only the placeholder shown before the first fetch
DEFAULT_AI_SESSION_LIMIT = 15


class SubscriptionState:
    """Cached subscription, usage and feature data for the signed-in user"""

    def __init__(self, api: SubscriptionApi):
        self.api = api
        self._subscription: Optional[Subscription] = None
        self._has_active_subscription = False
        self._features: Optional[Dict[str, Any]] = None
        self.loading = False
        self.error: Optional[str] = None

    # ========== Fetching ==========

    async def refresh(self) -> None:
        """Reload subscription and feature data; failures are kept in `error`"""
        self.loading = True
        self.error = None
        try:
            subscription_data = await self.api.get_current_subscription()
            features_data = await self.api.get_user_features()

            if subscription_data.success:
                data = subscription_data.data_dict()
                raw = data.get('subscription')
                self._subscription = Subscription.from_dict(raw) if isinstance(raw, dict) else None
                self._has_active_subscription = bool(data.get('hasActiveSubscription', False))
            else:
                logger.warning(f"Subscription fetch unsuccessful: {subscription_data.message}")

            if features_data.success:
                self._features = features_data.data_dict()
            else:
                logger.warning(f"Feature fetch unsuccessful: {features_data.message}")
        except ApiError as e:
            logger.error(f"Error fetching subscription data: {e.message}")
            self.error = e.message
        finally:
            self.loading = False

    # ========== Read model ==========

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    @property
    def has_active_subscription(self) -> bool:
        return self._has_active_subscription

    @property
    def features(self) -> Optional[Dict[str, Any]]:
        return self._features

    @property
    def current_plan(self) -> CurrentPlan:
        sub = self._subscription
        if sub is None:
            return CurrentPlan.free()

        entry = PLAN_TABLE.get(sub.plan_id)
        if entry is None:
            if sub.plan_id != 'free':
                logger.warning(f"Unknown plan id from backend: {sub.plan_id!r}, treating as Free")
            name, tier = 'Free', PlanTier.FREE
        else:
            name, tier = entry

        return CurrentPlan(
            id=sub.plan_id,
            name=name,
            tier=tier,
            is_active=self._has_active_subscription,
            price=sub.amount,
            interval=sub.interval,
            interval_count=sub.interval_count,
            current_period_end=sub.current_period_end,
            cancel_at_period_end=sub.cancel_at_period_end,
            auto_renewal=sub.auto_renewal,
            subscription_id=sub.subscription_id,
            is_recognized=entry is not None or sub.plan_id == 'free',
        )

    @property
    def usage(self) -> Usage:
        if self._features is None:
            return Usage(
                lessons=UsageCounter.limited(0, FREE_LESSON_LIMIT),
                ai_sessions=UsageCounter.limited(0, DEFAULT_AI_SESSION_LIMIT),
                vocabulary=UsageCounter.unlimited(),
            )

        usage_data = self._features.get('usage') or {}
        lesson_usage = usage_data.get('lessons') or {}
        lessons_current = int(lesson_usage.get('currentCount') or 0)

        if self.current_plan.tier == PlanTier.FREE:
            lessons = UsageCounter.limited(lessons_current, FREE_LESSON_LIMIT)
        else:
            lessons = UsageCounter.unlimited(lessons_current)

        return Usage(
            lessons=lessons,
            ai_sessions=UsageCounter.unlimited(),
            vocabulary=UsageCounter.unlimited(),
        )

    def can_access(self, feature: str) -> bool:
        """Whether the backend granted access to a named feature"""
        available = ((self._features or {}).get('features') or {}).get('available')
        if not isinstance(available, dict):
            return False
        entry = available.get(feature)
        return bool(entry.get('hasAccess')) if isinstance(entry, dict) else False

    def has_reached_limit(self, feature: str) -> bool:
        """Whether usage of a metered feature is at its ceiling; unknown features are unlimited"""
        counter = self.usage.get(feature)
        if counter is None:
            return False
        return counter.is_exhausted()
