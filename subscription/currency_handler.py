"""
Currency Detection and Pricing Helpers

Resolves the user's billing currency. India pays in INR, everyone else in USD.

Resolution order:
1. Preference saved on the backend profile
2. Preference cached on this device (discarded if malformed)
3. Detection from developer override, system timezone and locale
4. Asking the user, whose choice is then saved locally and on the backend
"""

import asyncio
import locale
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from subscription.api_client import SubscriptionApi
from subscription.errors import ApiError, CurrencyPersistenceError, ErrorKind
from subscription.models import (
    CURRENCY_EXCHANGE_RATES,
    SUPPORTED_CURRENCIES,
    Currency,
    currency_for_code,
)
from subscription.storage import LocalStore, SEEN_CURRENCY_DIALOG_KEY, SELECTED_CURRENCY_KEY
from utils.logger import logger

CurrencySelector = Callable[[], Awaitable[Optional[Currency]]]

INDIAN_TIMEZONES = ("Asia/Kolkata", "Asia/Calcutta")


@dataclass
class CurrencyUpdate:
    """Outcome of saving a currency preference"""
    currency: Currency
    warnings: List[str] = field(default_factory=list)


# ============================================================================
# SYSTEM SIGNALS
# ============================================================================

def get_system_timezone() -> Optional[str]:
    """Best-effort IANA timezone name of this machine, or None if unknown"""
    tz = os.environ.get("TZ", "").lstrip(":")
    if tz:
        return tz

    try:
        localtime = Path("/etc/localtime")
        if localtime.is_symlink():
            target = str(localtime.resolve())
            if "zoneinfo/" in target:
                return target.split("zoneinfo/", 1)[1]

        timezone_file = Path("/etc/timezone")
        if timezone_file.exists():
            return timezone_file.read_text().strip() or None
    except OSError as e:
        logger.debug(f"Could not read system timezone: {e}")

    return None


def get_system_locale() -> Optional[str]:
    """Locale identifier such as en_IN, or None if unknown"""
    try:
        name = locale.getlocale()[0]
    except ValueError:
        name = None
    return name or os.environ.get("LANG") or None


def is_indian_timezone(timezone: Optional[str]) -> bool:
    return bool(timezone) and any(tz in timezone for tz in INDIAN_TIMEZONES)


def is_indian_locale(locale_name: Optional[str]) -> bool:
    if not locale_name:
        return False
    return "_IN" in locale_name or locale_name.endswith("-IN") or "india" in locale_name.lower()


# ============================================================================
# CURRENCY RESOLVER
# ============================================================================

class CurrencyResolver:
    """
    Determines and remembers the user's billing currency.

    A resolved currency is kept in memory until set_currency(),
    reset_currency_selection() or invalidate() is called.
    """

    def __init__(
        self,
        api: SubscriptionApi,
        store: LocalStore,
        selector: Optional[CurrencySelector] = None,
        timezone_provider: Callable[[], Optional[str]] = get_system_timezone,
        locale_provider: Callable[[], Optional[str]] = get_system_locale,
        dev_currency: Optional[str] = None,
    ):
        self.api = api
        self.store = store
        self.selector = selector
        self.timezone_provider = timezone_provider
        self.locale_provider = locale_provider
        self.dev_currency = dev_currency
        self._resolved: Optional[Currency] = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> Optional[Currency]:
        return self._resolved

    async def resolve_currency(self, selector: Optional[CurrencySelector] = None) -> Currency:
        """
        Return the user's currency, running the resolution chain on first use.

        selector overrides the resolver's default prompt for this call.
        """
        if self._resolved is not None:
            return self._resolved

        async with self._lock:
            if self._resolved is not None:
                return self._resolved

            currency = await self._from_backend()
            if currency is None:
                currency = await self._from_local_cache()
            if currency is None:
                currency = self.detect_currency()
            if currency is None:
                currency = await self._ask_user(selector or self.selector)

            self._resolved = currency
            logger.info(f"Resolved billing currency: {currency.code}")
            return currency

    async def _from_backend(self) -> Optional[Currency]:
        try:
            response = await self.api.get_preferences()
        except ApiError as e:
            if e.kind == ErrorKind.UNAUTHORIZED:
                logger.info("Not authenticated, skipping backend currency preference")
            else:
                logger.warning(f"Could not load currency preference from backend: {e.message}")
            return None

        preferences = response.data_dict().get('preferences') or {}
        code = preferences.get('currency') if isinstance(preferences, dict) else None
        if response.success and code:
            return currency_for_code(code)
        return None

    async def _from_local_cache(self) -> Optional[Currency]:
        try:
            cached = await self.store.get_json(SELECTED_CURRENCY_KEY)
        except ValueError:
            logger.warning("Cached currency is not valid JSON, clearing it")
            await self._discard_cache()
            return None

        if cached is None:
            return None
        if Currency.is_valid_payload(cached):
            try:
                return Currency.from_dict(cached)
            except (TypeError, ValueError) as e:
                logger.warning(f"Cached currency has bad fields, clearing it: {e}")
                await self._discard_cache()
                return None

        logger.warning("Cached currency is missing code or symbol, clearing it")
        await self._discard_cache()
        return None

    async def _discard_cache(self) -> None:
        try:
            await self.store.remove_item(SELECTED_CURRENCY_KEY)
        except OSError as e:
            logger.error(f"Could not clear cached currency: {e}")

    def detect_currency(self) -> Optional[Currency]:
        """
        Guess the currency from local signals.

        A known timezone decides on its own; locale is only consulted when the
        timezone is unknown. Returns None when neither is known, so the caller
        can ask the user instead.
        """
        if self.dev_currency:
            return currency_for_code(self.dev_currency)

        timezone = self.timezone_provider()
        if timezone:
            return SUPPORTED_CURRENCIES['IN' if is_indian_timezone(timezone) else 'DEFAULT']

        locale_name = self.locale_provider()
        if locale_name:
            return SUPPORTED_CURRENCIES['IN' if is_indian_locale(locale_name) else 'DEFAULT']
        return None

    async def _ask_user(self, selector: Optional[CurrencySelector]) -> Currency:
        if selector is None:
            logger.info("No currency selector available, defaulting to USD")
            return SUPPORTED_CURRENCIES['DEFAULT']

        try:
            await self.store.set_item(SEEN_CURRENCY_DIALOG_KEY, "true")
        except OSError as e:
            logger.warning(f"Could not record currency dialog flag: {e}")

        choice = await selector()
        if choice is None:
            return SUPPORTED_CURRENCIES['DEFAULT']

        update = await self.set_currency(choice)
        return update.currency

    async def set_currency(self, currency: Currency) -> CurrencyUpdate:
        """
        Save the user's currency on this device and on the backend.

        The local save must succeed. A failed backend save only adds a warning.
        """
        if not isinstance(currency, Currency) or not (currency.code and currency.symbol and currency.name):
            raise ValueError("Invalid currency object provided")

        try:
            await self.store.set_json(SELECTED_CURRENCY_KEY, currency.to_dict())
        except OSError as e:
            logger.error(f"Failed to save currency locally: {e}")
            raise CurrencyPersistenceError("Failed to save currency preference locally") from e

        warnings: List[str] = []
        try:
            response = await self.api.update_preferences(currency.code)
            if not response.success:
                warnings.append("Backend save unsuccessful")
        except ApiError as e:
            if e.kind == ErrorKind.UNAUTHORIZED:
                warnings.append("Not authenticated (local save only)")
            elif e.kind == ErrorKind.NETWORK:
                warnings.append("Network error (local save only)")
            elif e.status is not None and e.status >= 500:
                warnings.append("Server error (local save only)")
            else:
                warnings.append(f"Backend error: {e.message}")

        if warnings:
            logger.warning(f"Currency {currency.code} saved with warnings: {warnings}")

        self._resolved = currency
        return CurrencyUpdate(currency=currency, warnings=warnings)

    async def reset_currency_selection(self) -> None:
        """Forget the cached currency so the next resolution starts over"""
        self._resolved = None
        await self.store.remove_item(SELECTED_CURRENCY_KEY)
        await self.store.remove_item(SEEN_CURRENCY_DIALOG_KEY)

    def invalidate(self) -> None:
        """Drop the in-memory currency only"""
        self._resolved = None


# ============================================================================
# PRICE HELPERS
# ============================================================================

def convert_price(inr_price: float, target: Currency) -> float:
    """Convert an INR price into the target currency"""
    if target.code == 'USD':
        return round(inr_price * CURRENCY_EXCHANGE_RATES['INR_TO_USD'], 2)
    return inr_price


def convert_usd_to_inr(usd_price: float) -> float:
    return round(usd_price * CURRENCY_EXCHANGE_RATES['USD_TO_INR'], 2)


def get_payment_amount_inr(display_price: float, display_currency: str) -> float:
    """Amount the payment processor will actually charge, in INR"""
    if display_currency == 'USD':
        return convert_usd_to_inr(display_price)
    return display_price


def format_price(price: float, currency_symbol: str, interval_count: int = 1) -> str:
    """Format a plan price with its billing period"""
    if price == 0:
        return "Free"
    amount = str(int(price)) if float(price).is_integer() else f"{price:.2f}"
    if interval_count == 3:
        return f"{currency_symbol}{amount}/quarter"
    if interval_count == 12:
        return f"{currency_symbol}{amount}/year"
    return f"{currency_symbol}{amount}/month"
