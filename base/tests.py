from datetime import date, datetime
from decimal import Decimal

from django.test import SimpleTestCase

from .exceptions import InsufficientStock, ValidationFailed
from .utility import StringProcessor, get_billing_period, is_valid_percentage, to_decimal


class BillingPeriodTestCase(SimpleTestCase):
    def test_month_period_from_date(self):
        self.assertEqual(get_billing_period(date(2024, 10, 3)), "202410")

    def test_period_from_datetime_and_strings(self):
        self.assertEqual(get_billing_period(datetime(2025, 1, 31, 23, 59)), "202501")
        self.assertEqual(get_billing_period("2024-02-29"), "202402")
        self.assertEqual(get_billing_period("15/08/2024"), "202408")

    def test_custom_period_format(self):
        self.assertEqual(get_billing_period(date(2024, 10, 3), "%Y"), "2024")

    def test_unparseable_input(self):
        with self.assertRaises(ValueError):
            get_billing_period("yesterday")
        with self.assertRaises(ValueError):
            get_billing_period(12345)


class ConversionTestCase(SimpleTestCase):
    def test_to_decimal(self):
        self.assertEqual(to_decimal("10.50"), Decimal("10.50"))
        self.assertEqual(to_decimal(0.1), Decimal("0.1"))
        self.assertIsNone(to_decimal("abc"))
        self.assertEqual(to_decimal("", Decimal("0")), Decimal("0"))

    def test_to_decimal_rejects_non_finite_values(self):
        self.assertIsNone(to_decimal("NaN"))
        self.assertIsNone(to_decimal("Infinity"))
        self.assertIsNone(to_decimal(float("-inf")))
        self.assertIsNone(to_decimal(Decimal("sNaN")))
        self.assertEqual(to_decimal("NaN", Decimal("0")), Decimal("0"))

    def test_percentage_bounds(self):
        self.assertTrue(is_valid_percentage(Decimal("0")))
        self.assertTrue(is_valid_percentage(Decimal("100")))
        self.assertFalse(is_valid_percentage(Decimal("100.01")))
        self.assertFalse(is_valid_percentage(Decimal("-1")))
        self.assertFalse(is_valid_percentage(None))


class StringProcessorTestCase(SimpleTestCase):
    def test_code_normalisation(self):
        self.assertEqual(StringProcessor("  isbn 978, 01 ").toCode(), "ISBN97801")

    def test_title_and_none(self):
        self.assertEqual(StringProcessor("jane   doe").toTitle(), "Jane Doe")
        self.assertEqual(StringProcessor(None).toUppercase(), "")


class ExceptionTestCase(SimpleTestCase):
    def test_insufficient_stock_message(self):
        error = InsufficientStock(7, 2, 5, "Dune")
        self.assertEqual(error.available, 2)
        self.assertEqual(error.requested, 5)
        self.assertIn("Available: 2, Required: 5", error.message)

    def test_validation_errors_are_kept(self):
        error = ValidationFailed({"quantity": "Quantity must be positive"})
        self.assertEqual(error.errors, {"quantity": "Quantity must be positive"})
        self.assertIn("quantity", str(error))
