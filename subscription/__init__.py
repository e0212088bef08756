"""
Subscription and payment client for HangulPath

Billing side of the app:
- Currency resolution (INR for India, USD elsewhere)
- Plan catalog priced in the user's currency
- Upgrade/downgrade classification with proration previews
- Recurring payment orders tracked on the device
- Recovery of payments interrupted before confirmation
- Subscription, usage and feature state for the screens

Architecture:
- The backend owns all subscription and payment records
- This client reads them over REST and keeps only the currency preference
  and the in-flight order id on the device
"""

from subscription.models import (
    PlanTier,
    PlanChange,
    PaymentStatus,
    Currency,
    Plan,
    Subscription,
    CurrentPlan,
    Usage,
    UsageCounter,
    UpgradePreview,
    OrderDetails,
    SUPPORTED_CURRENCIES,
)
from subscription.errors import (
    ErrorKind,
    SubscriptionError,
    ApiError,
    PlanNotFoundError,
    CurrencyMismatchError,
    CurrencyPersistenceError,
    FeatureGateError,
)
from subscription.api_client import ApiClient, SubscriptionApi
from subscription.storage import LocalStore, PendingOrderStore
from subscription.currency_handler import CurrencyResolver, format_price
from subscription.plan_catalog import PlanCatalog
from subscription.plan_change import PlanChangeEvaluator, classify
from subscription.payment_session import PaymentSession, PaymentSessionManager
from subscription.payment_recovery import PaymentRecovery, RecoveryResult
from subscription.subscription_state import SubscriptionState
from subscription.feature_gate import FeatureGate, feature_required
from subscription.screen import SubscriptionScreen
from subscription.context import BillingClient, get_billing_client

__all__ = [
    # Models
    'PlanTier',
    'PlanChange',
    'PaymentStatus',
    'Currency',
    'Plan',
    'Subscription',
    'CurrentPlan',
    'Usage',
    'UsageCounter',
    'UpgradePreview',
    'OrderDetails',
    'SUPPORTED_CURRENCIES',
    # Errors
    'ErrorKind',
    'SubscriptionError',
    'ApiError',
    'PlanNotFoundError',
    'CurrencyMismatchError',
    'CurrencyPersistenceError',
    'FeatureGateError',
    # Transport and storage
    'ApiClient',
    'SubscriptionApi',
    'LocalStore',
    'PendingOrderStore',
    # Flows
    'CurrencyResolver',
    'format_price',
    'PlanCatalog',
    'PlanChangeEvaluator',
    'classify',
    'PaymentSession',
    'PaymentSessionManager',
    'PaymentRecovery',
    'RecoveryResult',
    'SubscriptionState',
    'FeatureGate',
    'feature_required',
    'SubscriptionScreen',
    'BillingClient',
    'get_billing_client',
]
