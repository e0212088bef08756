#!/usr/bin/env python3
"""
Local Storage Tests
"""

import asyncio
import json
import pytest

from subscription.storage import PENDING_ORDER_KEY, LocalStore, PendingOrderStore


class TestLocalStore:
    """Tests for the JSON file store"""

    async def test_set_get_remove(self, store):
        await store.set_item('greeting', 'annyeong')
        assert await store.get_item('greeting') == 'annyeong'

        await store.remove_item('greeting')
        assert await store.get_item('greeting') is None

    async def test_persists_across_instances(self, store, temp_dir):
        await store.set_item('key', 'value')
        assert await LocalStore(temp_dir / "local_storage.json").get_item('key') == 'value'

    async def test_corrupt_file_reads_as_empty(self, store):
        store.path.write_text('{broken', encoding='utf-8')

        assert await store.get_item('anything') is None
        await store.set_item('key', 'value')
        assert json.loads(store.path.read_text(encoding='utf-8')) == {'key': 'value'}

    async def test_non_string_values_are_ignored(self, store):
        store.path.write_text(json.dumps({'ok': 'yes', 'bad': 3}), encoding='utf-8')
        assert await store.get_item('ok') == 'yes'
        assert await store.get_item('bad') is None

    async def test_json_helpers(self, store):
        await store.set_json('currency', {'code': 'INR', 'symbol': '₹'})
        assert await store.get_json('currency') == {'code': 'INR', 'symbol': '₹'}

        await store.set_item('currency', 'not json')
        with pytest.raises(ValueError):
            await store.get_json('currency')

    async def test_concurrent_writes_keep_every_key(self, store):
        await asyncio.gather(*(store.set_item(f'k{i}', str(i)) for i in range(20)))
        for i in range(20):
            assert await store.get_item(f'k{i}') == str(i)

    async def test_clear(self, store):
        await store.set_item('a', '1')
        await store.clear()
        assert await store.get_item('a') is None


class TestPendingOrderStore:
    """Tests for the single-slot pending order store"""

    async def test_put_overwrites(self, pending_orders, store):
        await pending_orders.put('order_1')
        await pending_orders.put('order_2')

        assert await pending_orders.get() == 'order_2'
        assert await store.get_item(PENDING_ORDER_KEY) == 'order_2'

    async def test_compare_and_clear_matching(self, pending_orders):
        await pending_orders.put('order_1')
        assert await pending_orders.compare_and_clear('order_1') is True
        assert await pending_orders.get() is None

    async def test_compare_and_clear_other_id(self, pending_orders):
        await pending_orders.put('order_2')
        assert await pending_orders.compare_and_clear('order_1') is False
        assert await pending_orders.get() == 'order_2'

    async def test_compare_and_clear_empty(self, pending_orders):
        assert await pending_orders.compare_and_clear('order_1') is False

    async def test_clear(self, store):
        pending = PendingOrderStore(store)
        await pending.put('order_1')
        await pending.clear()
        assert await pending.get() is None
