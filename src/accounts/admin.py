"""Admin interface for accounts app."""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from unfold.admin import ModelAdmin

from accounts.models import TurnstileUser


@admin.register(TurnstileUser)
class TurnstileUserAdmin(UserAdmin, ModelAdmin):  # type: ignore[type-arg,misc]
    list_display = ["username", "email", "guest", "email_verified", "is_staff", "is_active", "date_joined"]
    list_filter = ["guest", "is_staff", "is_superuser", "is_active", "email_verified", "date_joined"]
    search_fields = ["username", "first_name", "last_name", "email"]
    ordering = ["-date_joined"]
    date_hierarchy = "date_joined"
    readonly_fields = ["id", "date_joined", "last_login"]

    fieldsets = (
        ("Personal Information", {"fields": ("id", ("username", "email"), ("first_name", "last_name"))}),
        ("Status", {"fields": (("guest", "email_verified"), ("date_joined", "last_login"))}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
    )
