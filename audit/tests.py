from unittest.mock import patch

from django.db import DatabaseError, transaction
from django.test import TestCase

from user.models import CustomUser

from .models import ActivityLog
from .services import AuditService


class AuditServiceTestCase(TestCase):
    def setUp(self):
        self.user = CustomUser.objects.create_user("auditor", password="secret")

    def test_record_creates_entry(self):
        entry = AuditService.record(
            self.user,
            ActivityLog.Actions.BILL_CREATED,
            ActivityLog.EntityTypes.BILLS,
            12,
            "Bill created: BILL202410000001",
        )

        self.assertIsNotNone(entry)
        self.assertEqual(entry.user, self.user)
        self.assertEqual(
            list(AuditService.history(ActivityLog.EntityTypes.BILLS, 12)), [entry]
        )

    @patch("audit.services.ActivityLog.objects.create")
    def test_failure_is_logged_and_swallowed(self, mock_create):
        mock_create.side_effect = DatabaseError("audit table locked")

        with self.assertLogs("audit.services", level="WARNING") as logs:
            result = AuditService.record(
                self.user, ActivityLog.Actions.BILL_CANCELLED, "bills", 3
            )

        self.assertIsNone(result)
        self.assertIn("BILL_CANCELLED", logs.output[0])

    @patch("audit.services.ActivityLog.objects.create")
    def test_failure_keeps_outer_transaction_usable(self, mock_create):
        mock_create.side_effect = DatabaseError("audit table locked")

        with transaction.atomic():
            with self.assertLogs("audit.services", level="WARNING"):
                AuditService.record(self.user, ActivityLog.Actions.UPDATE, "items", 1)
            CustomUser.objects.create_user("after-audit", password="secret")

        self.assertTrue(CustomUser.objects.filter(username="after-audit").exists())
