"""
Subscription Data Models

Defines the core data structures for the billing client: currencies, plans,
the server-owned subscription record and the read models derived from it.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


class PlanTier(str, Enum):
    """Coarse plan classification used for feature gating"""
    FREE = "free"
    BASIC = "basic"
    STANDARD = "standard"
    PRO = "pro"


class PlanChange(str, Enum):
    """How a requested plan switch relates to the current plan"""
    DOWNGRADE = "downgrade"
    NEW_PURCHASE = "new_purchase"
    UPGRADE = "upgrade"


class PaymentStatus(str, Enum):
    """Settlement states reported by the verify-payment endpoint"""
    COMPLETED = "completed"
    RECOVERED = "recovered"
    PENDING = "pending"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'PaymentStatus':
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_settled(self) -> bool:
        return self in (PaymentStatus.COMPLETED, PaymentStatus.RECOVERED)


@dataclass(frozen=True)
class Currency:
    """
    Billing currency.

    Selected from the fixed SUPPORTED_CURRENCIES table, never built from
    arbitrary user input.
    """
    code: str
    symbol: str
    name: str
    country: Optional[str] = None
    exchange_rate: float = 1.0

    def to_dict(self) -> dict:
        """Serialize in the shape the mobile app keeps in device storage"""
        data = {
            'code': self.code,
            'symbol': self.symbol,
            'name': self.name,
            'exchangeRate': self.exchange_rate,
        }
        if self.country:
            data['country'] = self.country
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Currency':
        return cls(
            code=data['code'],
            symbol=data['symbol'],
            name=data.get('name', data['code']),
            country=data.get('country'),
            exchange_rate=float(data.get('exchangeRate', data.get('exchange_rate', 1.0))),
        )

    @staticmethod
    def is_valid_payload(data: Any) -> bool:
        """Check that a cached payload has the fields needed to rebuild a Currency"""
        return isinstance(data, dict) and bool(data.get('code')) and bool(data.get('symbol'))


# India = ₹ (INR), rest of the world = $ (USD)
SUPPORTED_CURRENCIES: Dict[str, Currency] = {
    'IN': Currency(
        code='INR',
        symbol='₹',
        name='Indian Rupee',
        country='India',
        exchange_rate=1.0,  # Base currency
    ),
    'DEFAULT': Currency(
        code='USD',
        symbol='$',
        name='US Dollar',
        country='International',
        exchange_rate=0.012,  # 1 INR = 0.012 USD
    ),
}

CURRENCY_EXCHANGE_RATES = {
    'INR_TO_USD': 0.012,
    'USD_TO_INR': 83.33,
}


def currency_for_code(code: Optional[str]) -> Currency:
    """Map a currency code to the supported table; anything but INR is USD"""
    if code and code.upper() == 'INR':
        return SUPPORTED_CURRENCIES['IN']
    return SUPPORTED_CURRENCIES['DEFAULT']


@dataclass
class Plan:
    """A purchasable plan, priced in a single currency"""
    id: str
    name: str
    tier: str
    price: float
    currency: str
    currency_symbol: str
    interval: Optional[str] = None
    interval_count: int = 1
    features: List[str] = field(default_factory=list)
    popular: bool = False

    @property
    def is_free(self) -> bool:
        return self.id == 'free' or self.price == 0

    @classmethod
    def from_dict(cls, data: dict) -> 'Plan':
        return cls(
            id=data['id'],
            name=data.get('name', data['id']),
            tier=data.get('tier', 'free'),
            price=float(data.get('price', 0)),
            currency=data.get('currency', 'INR'),
            currency_symbol=data.get('currencySymbol', ''),
            interval=data.get('interval'),
            interval_count=int(data.get('intervalCount') or 1),
            features=list(data.get('features') or []),
            popular=bool(data.get('popular', False)),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'tier': self.tier,
            'price': self.price,
            'currency': self.currency,
            'currencySymbol': self.currency_symbol,
            'interval': self.interval,
            'intervalCount': self.interval_count,
            'features': list(self.features),
            'popular': self.popular,
        }


@dataclass
class Subscription:
    """
    Read-only cached copy of the server-owned subscription record.

    Dates are kept as the ISO strings the backend sends.
    """
    plan_id: str
    amount: float = 0
    interval: Optional[str] = None
    interval_count: int = 1
    current_period_end: Optional[str] = None
    cancel_at_period_end: bool = False
    auto_renewal: bool = True
    subscription_id: Optional[str] = None
    next_renewal_date: Optional[str] = None
    is_recurring: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> 'Subscription':
        return cls(
            plan_id=data.get('planId', 'free'),
            amount=float(data.get('amount') or 0),
            interval=data.get('interval'),
            interval_count=int(data.get('intervalCount') or 1),
            current_period_end=data.get('currentPeriodEnd'),
            cancel_at_period_end=bool(data.get('cancelAtPeriodEnd', False)),
            auto_renewal=data.get('autoRenewal') is not False,
            subscription_id=data.get('subscriptionId'),
            next_renewal_date=data.get('nextRenewalDate'),
            is_recurring=bool(data.get('isRecurring', False)),
        )

    def to_dict(self) -> dict:
        return {
            'planId': self.plan_id,
            'amount': self.amount,
            'interval': self.interval,
            'intervalCount': self.interval_count,
            'currentPeriodEnd': self.current_period_end,
            'cancelAtPeriodEnd': self.cancel_at_period_end,
            'autoRenewal': self.auto_renewal,
            'subscriptionId': self.subscription_id,
            'nextRenewalDate': self.next_renewal_date,
            'isRecurring': self.is_recurring,
        }


@dataclass
class CurrentPlan:
    """Plan summary derived from the subscription record"""
    id: str
    name: str
    tier: PlanTier
    is_active: bool = False
    price: float = 0
    interval: Optional[str] = None
    interval_count: Optional[int] = None
    current_period_end: Optional[str] = None
    cancel_at_period_end: bool = False
    auto_renewal: bool = False
    subscription_id: Optional[str] = None
    # False when the backend reported a plan id missing from the local table
    is_recognized: bool = True

    @classmethod
    def free(cls) -> 'CurrentPlan':
        return cls(id='free', name='Free', tier=PlanTier.FREE)


UNLIMITED = -1


@dataclass
class UsageCounter:
    """Usage against a ceiling; UNLIMITED (-1) means no ceiling"""
    current: int = 0
    limit: int = UNLIMITED
    remaining: int = UNLIMITED

    @classmethod
    def limited(cls, current: int, limit: int) -> 'UsageCounter':
        return cls(current=current, limit=limit, remaining=max(0, limit - current))

    @classmethod
    def unlimited(cls, current: int = 0) -> 'UsageCounter':
        return cls(current=current, limit=UNLIMITED, remaining=UNLIMITED)

    @property
    def is_unlimited(self) -> bool:
        return self.limit == UNLIMITED

    def is_exhausted(self) -> bool:
        if self.is_unlimited:
            return False
        return self.current >= self.limit


@dataclass
class Usage:
    lessons: UsageCounter
    ai_sessions: UsageCounter
    vocabulary: UsageCounter

    _FIELDS = {
        'lessons': 'lessons',
        'ai_sessions': 'ai_sessions',
        'aiSessions': 'ai_sessions',
        'vocabulary': 'vocabulary',
    }

    def get(self, feature: str) -> Optional[UsageCounter]:
        """Look up a counter by name, accepting the backend's camelCase keys"""
        attr = self._FIELDS.get(feature)
        return getattr(self, attr) if attr else None


@dataclass
class UpgradePreview:
    """Proration quote for switching to a higher plan mid-cycle"""
    original_price: float
    proration_credit: float
    final_price: float
    remaining_days: int

    @classmethod
    def from_dict(cls, data: dict) -> 'UpgradePreview':
        return cls(
            original_price=float(data.get('originalPrice') or 0),
            proration_credit=float(data.get('prorationCredit') or 0),
            final_price=float(data.get('finalPrice') or 0),
            remaining_days=int(data.get('remainingDays') or 0),
        )


@dataclass
class OrderDetails:
    """Payment order created by the backend for a recurring subscription"""
    order_id: str
    amount: Optional[float] = None
    currency: Optional[str] = None
    payment_url: Optional[str] = None
    subscription_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'OrderDetails':
        amount = data.get('amount')
        return cls(
            order_id=data['orderId'],
            amount=float(amount) if amount is not None else None,
            currency=data.get('currency'),
            payment_url=data.get('paymentUrl'),
            subscription_id=data.get('subscriptionId'),
            raw=dict(data),
        )


@dataclass
class PaymentVerification:
    order_id: str
    status: PaymentStatus

    @property
    def is_settled(self) -> bool:
        return self.status.is_settled
