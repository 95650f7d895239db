import typing as t

from django.contrib import admin
from unfold.admin import ModelAdmin

from . import models


@admin.register(models.EmailLog)
class EmailLogAdmin(ModelAdmin):  # type: ignore[misc]
    list_display = ["to", "subject", "sent_at"]
    list_filter = ["sent_at"]
    search_fields = ["to", "subject"]
    readonly_fields = ["id", "created_at", "updated_at", "sent_at", "body", "html"]
    date_hierarchy = "sent_at"
    ordering = ["-sent_at"]

    def has_add_permission(self, request: t.Any) -> bool:
        return False

    def has_change_permission(self, request: t.Any, obj: t.Any = None) -> bool:
        return False
