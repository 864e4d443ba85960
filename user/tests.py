from django.test import TestCase

from .models import CustomUser


class CustomUserTestCase(TestCase):
    def test_create_user(self):
        user = CustomUser.objects.create_user(
            "cashier", password="secret", full_name="  ann   lee ", email="Ann@Example.COM"
        )
        self.assertTrue(user.check_password("secret"))
        self.assertEqual(user.full_name, "Ann Lee")
        self.assertEqual(user.email, "ann@example.com")
        self.assertEqual(user.role, CustomUser.Roles.STAFF)
        self.assertFalse(user.is_staff)
        self.assertFalse(user.is_admin)

    def test_create_superuser(self):
        user = CustomUser.objects.create_superuser("admin", password="secret")
        self.assertTrue(user.is_superuser)
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_admin)

    def test_username_required(self):
        with self.assertRaises(ValueError):
            CustomUser.objects.create_user("", password="secret")
