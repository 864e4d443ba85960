from django.db import models
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.utils.translation import gettext_lazy as _
from .managers import CustomUserManager
from base.utility import StringProcessor


class CustomUser(AbstractBaseUser, PermissionsMixin):
    """Back-office account; every bill, ledger entry and audit row names one."""

    class Roles(models.TextChoices):
        ADMIN = "ADMIN", "Admin"
        MANAGER = "MANAGER", "Manager"
        STAFF = "STAFF", "Staff"

    username = models.CharField(_("Username"), max_length=50, unique=True)
    full_name = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        verbose_name=_("Email Address (Optional)"),
    )
    phone = models.CharField(max_length=20, blank=True, default="")
    role = models.CharField(max_length=20, choices=Roles.choices, default=Roles.STAFF)
    is_staff = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    date_joined = models.DateTimeField(auto_now_add=True)

    USERNAME_FIELD = "username"
    REQUIRED_FIELDS = ["full_name"]
    objects = CustomUserManager()

    def save(self, *args, **kwargs):
        # Empty strings would collide on the unique constraint
        if self.email == "":
            self.email = None
        if self.email:
            self.email = StringProcessor(self.email).toLowercase()
        self.full_name = StringProcessor(self.full_name).toTitle()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.full_name or self.username

    @property
    def is_admin(self):
        return self.role == self.Roles.ADMIN

    @property
    def is_manager(self):
        return self.role in [self.Roles.ADMIN, self.Roles.MANAGER]
