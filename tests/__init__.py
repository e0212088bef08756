"""
HangulPath Billing Test Suite

Tests for:
- Currency resolution and price formatting
- Plan classification, upgrade previews and downgrades
- Payment orders and pending-payment recovery
- Subscription state and feature gating
- The subscription screen controller
- The aiohttp transport against a local test server

Run tests with:
    pytest tests/ -v
"""
