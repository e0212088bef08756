"""
Feature Gate System - Controls access to features based on subscription

Usage:
    gate = FeatureGate(subscription_state)

    # Runtime check
    if gate.has_feature('bonus_content'):
        show_deep_dive()

    # Limit check
    allowed, reason = gate.check_limit('lessons')

    # Decorator-based (for functions)
    @feature_required(lambda: gate, 'certification')
    async def issue_certificate(...):
        ...
"""

import asyncio
from functools import wraps
from typing import Any, Callable, Optional, Tuple

from subscription.errors import FeatureGateError
from subscription.models import PlanTier
from subscription.subscription_state import SubscriptionState
from utils.logger import logger


class FeatureGate:
    """
    Controls access to features based on the current plan tier.

    The backend's per-feature grant wins when it has one; otherwise the
    static minimum-tier table decides.
    """

    # Feature to tier mapping (minimum tier required)
    FEATURE_REQUIREMENTS = {
        'community': PlanTier.BASIC,
        'monthly_newsletter': PlanTier.BASIC,
        'bonus_content': PlanTier.STANDARD,
        'certification': PlanTier.STANDARD,
        'early_access': PlanTier.STANDARD,
        'priority_support': PlanTier.PRO,
        'live_chat_support': PlanTier.PRO,
    }

    TIER_HIERARCHY = {
        PlanTier.FREE: 0,
        PlanTier.BASIC: 1,
        PlanTier.STANDARD: 2,
        PlanTier.PRO: 3,
    }

    def __init__(self, state: SubscriptionState):
        self.state = state

    def has_feature(self, feature_name: str) -> bool:
        if self.state.can_access(feature_name):
            return True

        required_tier = self.FEATURE_REQUIREMENTS.get(feature_name)
        if required_tier is None:
            # Not restricted
            return True

        current_tier = self.state.current_plan.tier
        return self.TIER_HIERARCHY[current_tier] >= self.TIER_HIERARCHY[required_tier]

    def check_limit(self, usage_name: str) -> Tuple[bool, Optional[str]]:
        """
        Check whether one more use of a metered feature is allowed.

        Returns:
            Tuple of (is_allowed, error_message)
        """
        if not self.state.has_reached_limit(usage_name):
            return True, None

        counter = self.state.usage.get(usage_name)
        limit = counter.limit if counter else 0
        label = usage_name.replace('_', ' ')
        return False, f"Limit reached: your plan includes {limit} {label} per month. Upgrade to continue."

    def get_required_tier(self, feature_name: str) -> Optional[PlanTier]:
        return self.FEATURE_REQUIREMENTS.get(feature_name)

    def get_upgrade_message(self, feature_name: str) -> str:
        required_tier = self.get_required_tier(feature_name)
        feature_display = feature_name.replace('_', ' ').title()

        if required_tier is None:
            return f"'{feature_display}' is not available with your current subscription."
        return f"'{feature_display}' requires the {required_tier.value.title()} plan or higher. Upgrade now to unlock it!"


def feature_required(gate_getter: Callable[[], FeatureGate], feature_name: str, raise_error: bool = True):
    """
    Decorator to require a feature for a function.

    Args:
        gate_getter: Returns the FeatureGate to consult at call time
        feature_name: Name of the required feature
        raise_error: If True, raise FeatureGateError. If False, return None.
    """
    def check() -> bool:
        gate = gate_getter()
        if gate.has_feature(feature_name):
            return True

        required_tier = gate.get_required_tier(feature_name)
        message = gate.get_upgrade_message(feature_name)
        if raise_error:
            raise FeatureGateError(
                feature=feature_name,
                required_tier=required_tier.value if required_tier else 'unknown',
                message=message,
            )
        logger.warning(f"Feature '{feature_name}' not available: {message}")
        return False

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            if not check():
                return None
            return await func(*args, **kwargs)

        @wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            if not check():
                return None
            return func(*args, **kwargs)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
