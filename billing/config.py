from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from .choices import PaymentMethodChoices


@dataclass(frozen=True)
class BillingConfig:
    """Knobs of bill numbering and default charges."""

    prefix: str = "BILL"
    sequence_width: int = 6
    period_format: str = "%Y%m"
    default_tax_percentage: Decimal = Decimal("0.00")
    default_payment_method: str = PaymentMethodChoices.CASH

    @classmethod
    def from_settings(cls):
        return cls(
            prefix=getattr(settings, "BILL_NUMBER_PREFIX", cls.prefix),
            sequence_width=getattr(settings, "BILL_SEQUENCE_WIDTH", cls.sequence_width),
            period_format=getattr(settings, "BILL_PERIOD_FORMAT", cls.period_format),
            default_tax_percentage=Decimal(
                str(
                    getattr(
                        settings, "DEFAULT_TAX_PERCENTAGE", cls.default_tax_percentage
                    )
                )
            ),
            default_payment_method=getattr(
                settings, "DEFAULT_PAYMENT_METHOD", cls.default_payment_method
            ),
        )
