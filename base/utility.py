from datetime import datetime, date
from decimal import Decimal, InvalidOperation

from django.utils import timezone


def get_billing_period(value=None, period_format="%Y%m"):
    """
    Get the billing period key for a given date.

    Bill numbers restart their sequence every period; by default a period is
    one calendar month, e.g. ``202410``.

    Args:
        value (str | datetime | date | None): Input date. ``None`` means
            today in the current time zone. Strings are accepted as
            "YYYY-MM-DD", "DD/MM/YYYY" or "DD-MM-YYYY".
        period_format (str): strftime pattern of the period key.

    Returns:
        str: The period key.

    Raises:
        ValueError: If the input cannot be parsed as a valid date.
    """
    if value is None:
        parsed_date = timezone.localdate()
    elif isinstance(value, str):
        for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y"):
            try:
                parsed_date = datetime.strptime(value, fmt).date()
                break
            except ValueError:
                continue
        else:
            raise ValueError(f"Unrecognized date format: {value}")
    elif isinstance(value, datetime):
        parsed_date = value.date()
    elif isinstance(value, date):
        parsed_date = value
    else:
        raise ValueError("Input must be a string, datetime, or date object")

    return parsed_date.strftime(period_format)


def to_decimal(value, default=None):
    """Convert user input to Decimal, returning ``default`` when impossible."""
    if value is None or value == "":
        return default
    if isinstance(value, float):
        value = str(value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return default
    # NaN and Infinity parse but cannot be stored or compared safely
    return result if result.is_finite() else default


def is_valid_percentage(value):
    return value is not None and Decimal("0") <= value <= Decimal("100")


class StringProcessor:
    """
    Normalises free text typed at the counter: collapses whitespace, drops
    characters that break bill and item codes, and converts case. ``None``
    is treated as an empty string.
    """

    def __init__(self, input_string=None):
        if input_string is None:
            self.input_string = ""
            self.cleaned_string = ""
        else:
            self.input_string = input_string
            self.clean()

    def clean(self):
        cleaned_string = " ".join(self.input_string.split())
        cleaned_string = cleaned_string.replace("?", "").replace(",", "")
        self.cleaned_string = cleaned_string

    def toUppercase(self):
        return self.cleaned_string.upper()

    def toLowercase(self):
        return self.cleaned_string.lower()

    def toTitle(self):
        return self.cleaned_string.title()

    def toCode(self):
        """Uppercase with internal spaces removed, for item and bill codes."""
        return self.cleaned_string.replace(" ", "").upper()
