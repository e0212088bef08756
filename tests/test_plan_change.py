#!/usr/bin/env python3
"""
Plan Change Tests

Tests for upgrade/downgrade classification, proration previews and
scheduled downgrades.
"""

import itertools
import pytest

from subscription.errors import ApiError, ErrorKind
from subscription.models import PlanChange
from subscription.plan_change import (
    PLAN_HIERARCHY,
    PlanChangeEvaluator,
    classify,
    get_plan_level,
)
from tests.conftest import ok, not_ok


class TestClassify:
    """Tests for the classify function"""

    @pytest.mark.parametrize(
        "current,target",
        list(itertools.product(PLAN_HIERARCHY, PLAN_HIERARCHY)),
    )
    def test_downgrade_iff_target_ranks_lower(self, current, target):
        """Every pair of known plans: DOWNGRADE exactly when the target ranks below"""
        is_downgrade = classify(current, target) == PlanChange.DOWNGRADE
        assert is_downgrade == (PLAN_HIERARCHY[target] < PLAN_HIERARCHY[current])

    def test_basic_to_pro_is_upgrade(self):
        assert classify('basic_monthly', 'pro_yearly') == PlanChange.UPGRADE

    def test_free_to_paid_is_new_purchase(self):
        assert classify('free', 'basic_monthly') == PlanChange.NEW_PURCHASE
        assert classify(None, 'pro_yearly') == PlanChange.NEW_PURCHASE

    def test_same_plan_is_not_downgrade(self):
        assert classify('standard_quarterly', 'standard_quarterly') == PlanChange.UPGRADE

    def test_unknown_ids_rank_with_free(self):
        assert get_plan_level('legacy_plan') == 0
        assert classify('pro_yearly', 'legacy_plan') == PlanChange.DOWNGRADE


class TestPlanChangeEvaluator:
    """Tests for backend calls around plan changes"""

    async def test_preview_uses_resolved_currency(self, api):
        api.get_upgrade_preview.return_value = ok({
            'originalPrice': 2499,
            'prorationCredit': 150.5,
            'finalPrice': 2348.5,
            'remainingDays': 18,
        })
        evaluator = PlanChangeEvaluator(api)

        preview = await evaluator.preview_upgrade('pro_yearly', 'INR')

        api.get_upgrade_preview.assert_awaited_once_with('pro_yearly', 'INR')
        assert preview.proration_credit == 150.5
        assert preview.final_price == 2348.5
        assert preview.remaining_days == 18

    async def test_preview_failure_returns_none(self, api):
        api.get_upgrade_preview.side_effect = ApiError(ErrorKind.UNKNOWN, "Boom", status=500)
        assert await PlanChangeEvaluator(api).preview_upgrade('pro_yearly', 'USD') is None

    async def test_unsuccessful_preview_returns_none(self, api):
        api.get_upgrade_preview.return_value = not_ok("No active subscription")
        assert await PlanChangeEvaluator(api).preview_upgrade('pro_yearly', 'USD') is None

    async def test_schedule_downgrade(self, api):
        api.schedule_downgrade.return_value = ok({'scheduledPlanId': 'basic_monthly'})
        await PlanChangeEvaluator(api).schedule_downgrade('basic_monthly')
        api.schedule_downgrade.assert_awaited_once_with('basic_monthly')

    async def test_schedule_downgrade_unsuccessful_raises(self, api):
        api.schedule_downgrade.return_value = not_ok()

        with pytest.raises(ApiError) as exc_info:
            await PlanChangeEvaluator(api).schedule_downgrade('basic_monthly')

        assert exc_info.value.message == "Failed to schedule downgrade. Please try again."
