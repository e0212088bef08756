"""
Dialog state for the subscription screen.

Plain ephemeral state: a presentation layer renders whatever is visible and
calls back into the screen controller. Nothing here is persisted.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from subscription.models import (
    SUPPORTED_CURRENCIES,
    Currency,
    OrderDetails,
    Plan,
    UpgradePreview,
)


@dataclass
class ConfirmDialog:
    visible: bool = False
    title: str = ''
    message: str = ''
    plan_id: Optional[str] = None
    loading: bool = False
    is_downgrade: bool = False


@dataclass
class CurrencyDialog:
    visible: bool = False
    title: str = 'Select Your Currency'
    message: str = 'Choose your preferred currency for pricing:'
    options: Tuple[Currency, ...] = (SUPPORTED_CURRENCIES['IN'], SUPPORTED_CURRENCIES['DEFAULT'])


@dataclass
class PaymentDialog:
    visible: bool = False
    order: Optional[OrderDetails] = None
    plan: Optional[Plan] = None
    currency: Optional[Currency] = None


@dataclass
class UpgradePreviewDialog:
    visible: bool = False
    plan_id: Optional[str] = None
    preview: Optional[UpgradePreview] = None
    currency: Optional[Currency] = None

    @property
    def message(self) -> str:
        if self.preview is None or self.currency is None:
            return ''
        symbol = self.currency.symbol
        if self.preview.proration_credit > 0:
            return (
                f"You'll pay {symbol}{self.preview.final_price} "
                f"({symbol}{self.preview.proration_credit} credit applied for "
                f"{self.preview.remaining_days} remaining days) and get immediate access to all features."
            )
        return f"You'll pay {symbol}{self.preview.final_price} and get immediate access to all features."


@dataclass
class SuccessDialog:
    visible: bool = False
    title: str = 'Payment Successful!'
    plan_name: str = ''
    amount: Optional[float] = None
    message: str = ''


@dataclass
class FailureDialog:
    visible: bool = False
    title: str = ''
    message: str = ''


@dataclass
class DialogState:
    confirm: ConfirmDialog = field(default_factory=ConfirmDialog)
    currency: CurrencyDialog = field(default_factory=CurrencyDialog)
    payment: PaymentDialog = field(default_factory=PaymentDialog)
    upgrade_preview: UpgradePreviewDialog = field(default_factory=UpgradePreviewDialog)
    success: SuccessDialog = field(default_factory=SuccessDialog)
    failure: FailureDialog = field(default_factory=FailureDialog)

    def visible(self) -> List[str]:
        """Names of the dialogs currently shown"""
        return [name for name, dialog in vars(self).items() if dialog.visible]
