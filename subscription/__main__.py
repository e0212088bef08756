"""
Billing client command line.

    python -m subscription currency
    python -m subscription plans --currency INR
    python -m subscription recover
"""

import asyncio
import sys

from subscription.context import BillingClient
from subscription.currency_handler import format_price
from subscription.devtools import DevTools
from subscription.errors import ApiError


async def run(args) -> int:
    async with BillingClient.create(base_url=args.api_url) as billing:
        tools = DevTools(billing)

        if args.command == 'currency':
            currency = await tools.current_currency()
            print(f"{currency.code} ({currency.symbol}) - {currency.name}")

        elif args.command == 'reset-currency':
            await tools.reset_currency()
            print("Currency selection cleared")

        elif args.command == 'force-currency-check':
            detected = await tools.force_currency_check()
            if detected:
                print(f"Detected: {detected.code} ({detected.symbol})")
            else:
                print("Could not detect a currency; the user will be asked")

        elif args.command == 'plans':
            code = args.currency or (await tools.current_currency()).code
            plans = await billing.catalog.fetch_plans(code)
            if billing.catalog.error:
                print(billing.catalog.error)
                return 1
            print(f"\nPlans ({code}):")
            print("-" * 50)
            for plan in plans:
                popular = " (Popular)" if plan.popular else ""
                print(f"  {plan.id}{popular}")
                print(f"    Name: {plan.name}")
                print(f"    Price: {format_price(plan.price, plan.currency_symbol, plan.interval_count)}")

        elif args.command == 'pending':
            order_id = await tools.pending_order()
            print(order_id or "No pending order")

        elif args.command == 'clear-pending':
            order_id = await tools.clear_pending_order()
            print(f"Cleared {order_id}" if order_id else "No pending order")

        elif args.command == 'recover':
            result = await tools.recover()
            if result.order_id is None:
                print("No pending order")
            elif result.succeeded:
                print(f"{result.order_id}: {result.message}")
            else:
                status = result.status.value if result.status else 'unknown'
                cleared = " (cleared)" if result.cleared else ""
                print(f"{result.order_id}: {status}{cleared}")

    return 0


def main():
    """CLI for inspecting local billing state."""
    import argparse

    parser = argparse.ArgumentParser(description="HangulPath Billing Tools")
    parser.add_argument('--api-url', help="Backend base URL (defaults to API_BASE_URL)")
    subparsers = parser.add_subparsers(dest='command')

    subparsers.add_parser('currency', help="Resolve and show the billing currency")
    subparsers.add_parser('reset-currency', help="Forget the saved currency selection")
    subparsers.add_parser('force-currency-check', help="Reset and re-run currency detection")
    plans_parser = subparsers.add_parser('plans', help="List plans")
    plans_parser.add_argument('--currency', choices=['INR', 'USD'], help="Price plans in this currency")
    subparsers.add_parser('pending', help="Show the pending payment order id")
    subparsers.add_parser('clear-pending', help="Clear the pending payment order id")
    subparsers.add_parser('recover', help="Verify the pending payment now")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    try:
        code = asyncio.run(run(args))
    except ApiError as e:
        print(f"Error: {e.message}")
        sys.exit(1)
    if code:
        sys.exit(code)


if __name__ == '__main__':
    main()
