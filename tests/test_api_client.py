#!/usr/bin/env python3
"""
API Client Tests

Runs the client against a local aiohttp server to check request shapes and
how failures are classified.
"""

import asyncio
import pytest
from aiohttp import web, test_utils

from subscription.api_client import ApiClient, SubscriptionApi
from subscription.errors import ApiError, ErrorKind


# ============================================================================
# TEST SERVER
# ============================================================================

async def current_subscription(request):
    return web.json_response({
        'success': True,
        'data': {'auth': request.headers.get('Authorization')},
    })


async def plans(request):
    return web.json_response({
        'success': True,
        'data': {'plans': [], 'currency': request.query.get('currency')},
    })


async def update_preferences(request):
    body = await request.json()
    return web.json_response({'success': True, 'data': {'received': body}})


async def create_recurring(request):
    body = await request.json()
    if body.get('planId') == 'disabled':
        return web.json_response({'message': 'Payments paused'}, status=503)
    return web.json_response({'success': True, 'data': {'orderId': 'order_1', 'received': body}})


async def verify_payment(request):
    if request.match_info['order_id'] == 'missing':
        return web.json_response({'message': 'Order not found'}, status=404)
    if request.match_info['order_id'] == 'garbled':
        return web.Response(body=b'\xff\xfe\xfa', status=502, content_type='text/plain', charset='utf-8')
    return web.json_response({'success': True, 'data': {'status': 'completed'}})


async def schedule_downgrade(request):
    return web.Response(text='Bad plan', status=400)


async def user_features(request):
    return web.json_response({'error': 'Internal'}, status=500)


async def auto_renewal(request):
    body = await request.json()
    return web.json_response({'success': True, 'data': body})


async def billing_details(request):
    return web.json_response({'success': None, 'data': {}, 'message': 42})


async def transactions(request):
    return web.json_response({
        'success': True,
        'data': {'page': request.query.get('page'), 'limit': request.query.get('limit')},
    })


async def slow(request):
    await asyncio.sleep(1)
    return web.json_response({'success': True})


@pytest.fixture
async def server():
    app = web.Application()
    app.router.add_get('/api/subscriptions/current', current_subscription)
    app.router.add_get('/api/subscriptions/plans', plans)
    app.router.add_put('/api/auth/preferences', update_preferences)
    app.router.add_post('/api/subscriptions/create-recurring', create_recurring)
    app.router.add_get('/api/subscriptions/verify-payment/{order_id}', verify_payment)
    app.router.add_post('/api/subscriptions/schedule-downgrade', schedule_downgrade)
    app.router.add_get('/api/features/user', user_features)
    app.router.add_post('/api/subscriptions/auto-renewal', auto_renewal)
    app.router.add_get('/api/subscriptions/transactions', transactions)
    app.router.add_get('/api/subscriptions/billing-details', billing_details)
    app.router.add_get('/api/slow', slow)

    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.fixture
async def client(server):
    api_client = ApiClient(
        base_url=str(server.make_url('/api')),
        token_provider=lambda: 'tok123',
    )
    yield api_client
    await api_client.close()


@pytest.fixture
def api(client):
    return SubscriptionApi(client)


# ============================================================================
# REQUESTS
# ============================================================================

class TestRequests:
    """Tests for request shapes"""

    async def test_bearer_token_is_sent(self, api):
        response = await api.get_current_subscription()
        assert response.success
        assert response.data['auth'] == 'Bearer tok123'

    async def test_async_token_provider(self, server):
        async def token():
            return 'async_tok'

        async with ApiClient(base_url=str(server.make_url('/api')), token_provider=token) as client:
            response = await client.get('/subscriptions/current')

        assert response.data['auth'] == 'Bearer async_tok'

    async def test_plans_currency_query(self, api):
        response = await api.get_plans('USD')
        assert response.data_dict()['currency'] == 'USD'

    async def test_preferences_body(self, api):
        response = await api.update_preferences('INR')
        assert response.data['received'] == {'currency': 'INR'}

    async def test_create_recurring_uses_camel_case(self, api):
        response = await api.create_recurring_subscription('pro_yearly', 'INR')
        assert response.data['received'] == {'planId': 'pro_yearly', 'currency': 'INR'}

    async def test_transactions_paging(self, api):
        response = await api.get_transactions(page=2, limit=10)
        assert response.data == {'page': '2', 'limit': '10'}

    async def test_auto_renewal_body(self, api):
        response = await api.update_auto_renewal(False)
        assert response.data == {'autoRenewal': False}


# ============================================================================
# ERROR CLASSIFICATION
# ============================================================================

class TestErrorClassification:
    """Tests for turning failures into ErrorKind"""

    async def test_not_found(self, api):
        with pytest.raises(ApiError) as exc_info:
            await api.verify_payment('missing')
        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert exc_info.value.status == 404
        assert exc_info.value.message == 'Order not found'

    async def test_server_disabled(self, api):
        with pytest.raises(ApiError) as exc_info:
            await api.create_recurring_subscription('disabled', 'INR')
        assert exc_info.value.kind == ErrorKind.SERVER_DISABLED
        assert exc_info.value.server_message == 'Payments paused'

    async def test_plain_text_error_body(self, api):
        with pytest.raises(ApiError) as exc_info:
            await api.schedule_downgrade('basic_monthly')
        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert exc_info.value.message == 'Bad plan'

    async def test_error_field_is_used(self, api):
        with pytest.raises(ApiError) as exc_info:
            await api.get_user_features()
        assert exc_info.value.kind == ErrorKind.UNKNOWN
        assert exc_info.value.message == 'Internal'

    async def test_undecodable_body_is_classified(self, api):
        with pytest.raises(ApiError) as exc_info:
            await api.verify_payment('garbled')
        assert exc_info.value.kind == ErrorKind.UNKNOWN
        assert exc_info.value.status == 502

    async def test_malformed_envelope_is_classified(self, api):
        with pytest.raises(ApiError) as exc_info:
            await api.get_billing_details()
        assert exc_info.value.kind == ErrorKind.UNKNOWN
        assert exc_info.value.status == 200
        assert exc_info.value.message == 'Unexpected response from server'

    async def test_timeout_is_network(self, server):
        async with ApiClient(base_url=str(server.make_url('/api')), timeout=0.1) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.get('/slow')
        assert exc_info.value.kind == ErrorKind.NETWORK
        assert exc_info.value.status is None

    async def test_connection_refused_is_network(self):
        async with ApiClient(base_url='http://127.0.0.1:1/api', timeout=2) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.get('/subscriptions/current')
        assert exc_info.value.kind == ErrorKind.NETWORK


class TestErrorKind:
    """Tests for status code mapping"""

    @pytest.mark.parametrize("status,kind", [
        (None, ErrorKind.NETWORK),
        (404, ErrorKind.NOT_FOUND),
        (503, ErrorKind.SERVER_DISABLED),
        (422, ErrorKind.VALIDATION),
        (401, ErrorKind.UNAUTHORIZED),
        (500, ErrorKind.UNKNOWN),
    ])
    def test_from_status(self, status, kind):
        assert ErrorKind.from_status(status) == kind
