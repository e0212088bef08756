#!/usr/bin/env python3
"""
Pytest Configuration and Shared Fixtures

Provides shared fixtures and configuration for all tests.
"""

import pytest
import tempfile
import sys
import os
from pathlib import Path
from unittest.mock import AsyncMock

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from subscription.api_client import SubscriptionApi
from subscription.models import Plan
from subscription.schemas import ApiEnvelope
from subscription.storage import LocalStore, PendingOrderStore


# ============================================================================
# ASYNCIO CONFIGURATION
# ============================================================================
# Note: pytest-asyncio is configured with asyncio_mode = "auto" in pyproject.toml
# The event loop is automatically managed per-function by default


# ============================================================================
# TEMPORARY DIRECTORIES
# ============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir):
    """Local device storage backed by a temp file"""
    return LocalStore(temp_dir / "local_storage.json")


@pytest.fixture
def pending_orders(store):
    return PendingOrderStore(store)


# ============================================================================
# BACKEND FIXTURES
# ============================================================================

def ok(data=None, message=None):
    """Successful response envelope"""
    return ApiEnvelope(success=True, data=data, message=message)


def not_ok(message=None):
    """Envelope with success=false"""
    return ApiEnvelope(success=False, message=message)


@pytest.fixture
def api():
    """
    Mock SubscriptionApi with a signed-in free user and no saved preferences.

    Tests override individual methods as needed.
    """
    mock = AsyncMock(spec=SubscriptionApi)
    mock.get_preferences.return_value = ok({'preferences': {}})
    mock.update_preferences.return_value = ok()
    mock.get_profile.return_value = ok({'name': 'Test User'})
    mock.get_current_subscription.return_value = ok({
        'subscription': None,
        'hasActiveSubscription': False,
    })
    mock.get_user_features.return_value = ok({
        'usage': {'lessons': {'currentCount': 0}},
        'features': {'available': {}},
    })
    mock.cancel_subscription.return_value = ok()
    mock.reactivate_subscription.return_value = ok()
    mock.update_auto_renewal.return_value = ok()
    return mock


# ============================================================================
# PLAN FIXTURES
# ============================================================================

def make_plans(currency='INR'):
    """The three paid plans, priced in one currency"""
    inr = currency == 'INR'
    symbol = '₹' if inr else '$'
    raw = [
        {'id': 'basic_monthly', 'name': 'Basic', 'tier': 'basic',
         'price': 299 if inr else 3.99, 'intervalCount': 1, 'interval': 'month'},
        {'id': 'standard_quarterly', 'name': 'Standard', 'tier': 'standard',
         'price': 799 if inr else 9.99, 'intervalCount': 3, 'interval': 'month', 'popular': True},
        {'id': 'pro_yearly', 'name': 'Pro', 'tier': 'pro',
         'price': 2499 if inr else 29.99, 'intervalCount': 12, 'interval': 'month'},
    ]
    for plan in raw:
        plan['currency'] = currency
        plan['currencySymbol'] = symbol
    return raw


@pytest.fixture
def inr_plans():
    return [Plan.from_dict(p) for p in make_plans('INR')]


@pytest.fixture
def usd_plans():
    return [Plan.from_dict(p) for p in make_plans('USD')]
