#!/usr/bin/env python3
"""
Developer Tools Tests

Also checks how BillingClient wires the shared components together.
"""

import pytest
from unittest.mock import MagicMock

from subscription.api_client import ApiClient
from subscription.context import BillingClient
from subscription.devtools import DevTools
from subscription.models import SUPPORTED_CURRENCIES
from subscription.storage import SELECTED_CURRENCY_KEY
from tests.conftest import ok


@pytest.fixture
def billing(api, store):
    client = BillingClient(MagicMock(spec=ApiClient), store)
    # Route every component through the mocked endpoint layer
    client.api = api
    client.resolver.api = api
    client.catalog.api = api
    client.state.api = api
    client.evaluator.api = api
    client.payments.api = api
    client.resolver.timezone_provider = lambda: 'Asia/Kolkata'
    return client


@pytest.fixture
def tools(billing):
    return DevTools(billing)


class TestCurrencyTools:
    """Tests for the currency developer commands"""

    async def test_force_currency_check_clears_saved_choice(self, tools, billing, store):
        await billing.resolver.set_currency(SUPPORTED_CURRENCIES['DEFAULT'])

        detected = await tools.force_currency_check()

        assert detected.code == 'INR'
        assert billing.resolver.current is None
        assert await store.get_item(SELECTED_CURRENCY_KEY) is None

    async def test_current_currency(self, tools):
        assert (await tools.current_currency()).code == 'INR'

    async def test_reset_currency(self, tools, billing):
        await billing.resolver.set_currency(SUPPORTED_CURRENCIES['DEFAULT'])
        await tools.reset_currency()
        assert billing.resolver.current is None


class TestPendingOrderTools:
    """Tests for the pending order developer commands"""

    async def test_show_and_clear(self, tools, billing):
        await billing.pending_orders.put('order_7')

        assert await tools.pending_order() == 'order_7'
        assert await tools.clear_pending_order() == 'order_7'
        assert await tools.pending_order() is None
        assert await tools.clear_pending_order() is None

    async def test_clear_leaves_newer_order(self, tools, billing):
        """An order stored after the read is not wiped by the clear"""
        pending = billing.pending_orders
        await pending.put('order_1')
        read = pending.get

        async def get_then_new_order():
            order_id = await read()
            await pending.put('order_2')
            return order_id

        pending.get = get_then_new_order

        assert await tools.clear_pending_order() is None
        pending.get = read
        assert await pending.get() == 'order_2'

    async def test_recover_refreshes_state(self, tools, billing, api):
        await billing.pending_orders.put('order_7')
        api.verify_payment.return_value = ok({'status': 'completed'})

        result = await tools.recover()

        assert result.succeeded
        assert await tools.pending_order() is None
        api.get_current_subscription.assert_awaited_once()


class TestBillingClient:
    """Tests for component wiring"""

    def test_components_share_storage(self, billing, store):
        assert billing.pending_orders.store is store
        assert billing.resolver.store is store

    def test_feature_gate_is_cached(self, billing):
        assert billing.feature_gate() is billing.feature_gate()
        assert billing.feature_gate().state is billing.state

    async def test_screens_share_state(self, billing):
        first = billing.screen()
        second = billing.screen()

        assert first is not second
        assert first.state is second.state
        assert first.resolver is billing.resolver

        await first.close()
        await second.close()

    def test_create_uses_settings(self, temp_dir):
        billing = BillingClient.create(base_url='http://example.test/api/', storage_path=temp_dir / 'store.json')
        assert billing.client.base_url == 'http://example.test/api'
        assert billing.store.path == temp_dir / 'store.json'
