from decimal import Decimal

from django.test import TestCase

from .models import Customer


class CustomerTestCase(TestCase):
    def setUp(self):
        self.customer = Customer.objects.create(
            account_no=" acc 001 ", full_name="jane   austen"
        )

    def test_names_are_normalised(self):
        self.assertEqual(self.customer.account_no, "ACC001")
        self.assertEqual(self.customer.full_name, "Jane Austen")

    def test_soft_delete_hides_customer(self):
        self.customer.delete()

        self.assertFalse(Customer.objects.exists(self.customer.pk))
        self.assertTrue(Customer.all_objects.filter(pk=self.customer.pk).exists())

        self.customer.restore()
        self.assertTrue(Customer.objects.exists(self.customer.pk))

    def test_exists_rejects_missing_ids(self):
        self.assertFalse(Customer.objects.exists(None))
        self.assertFalse(Customer.objects.exists(self.customer.pk + 100))


class CustomerTotalsTestCase(TestCase):
    def setUp(self):
        self.customer = Customer.objects.create(account_no="ACC002", full_name="Leo")

    def test_record_and_reverse_bill(self):
        Customer.objects.record_bill(self.customer.pk, Decimal("49.50"))
        Customer.objects.record_bill(self.customer.pk, Decimal("10.00"))
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_bills, 2)
        self.assertEqual(self.customer.total_purchases, Decimal("59.50"))
        self.assertEqual(self.customer.average_bill_amount, Decimal("29.75"))

        Customer.objects.reverse_bill(self.customer.pk, Decimal("49.50"))
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_bills, 1)
        self.assertEqual(self.customer.total_purchases, Decimal("10.00"))

    def test_reverse_bill_never_goes_negative(self):
        Customer.objects.reverse_bill(self.customer.pk, Decimal("25.00"))
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_bills, 0)
        self.assertEqual(self.customer.total_purchases, Decimal("0.00"))

    def test_totals_follow_soft_deleted_customer(self):
        self.customer.soft_delete()
        Customer.objects.record_bill(self.customer.pk, Decimal("5.00"))
        customer = Customer.all_objects.get(pk=self.customer.pk)
        self.assertEqual(customer.total_bills, 1)
