"""Admin classes for the ticketing models."""

import typing as t

from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest
from django.urls import reverse
from django.utils.html import format_html
from unfold.admin import ModelAdmin, TabularInline

from events import models
from events.service.group_settlement import reissue_group_tickets


class EventLinkMixin:
    """Mixin to add a link to an event."""

    def event_link(self, obj: t.Any) -> str | None:
        if not hasattr(obj, "event") or not obj.event:
            return None
        url = reverse("admin:events_event_change", args=[obj.event.id])
        return format_html('<a href="{}">{}</a>', url, obj.event.name)

    event_link.short_description = "Event"  # type: ignore[attr-defined]


@admin.register(models.Organizer)
class OrganizerAdmin(ModelAdmin):  # type: ignore[misc]
    list_display = ["name", "slug", "owner", "plan", "stripe_account_id"]
    list_filter = ["plan"]
    search_fields = ["name", "slug", "owner__email"]
    prepopulated_fields = {"slug": ("name",)}
    autocomplete_fields = ["owner"]


class TicketTierInline(TabularInline):  # type: ignore[misc]
    model = models.TicketTier
    extra = 0
    fields = ["name", "price_cents", "currency", "quota", "quantity_sold", "display_order"]
    readonly_fields = ["quantity_sold"]


@admin.register(models.Event)
class EventAdmin(ModelAdmin):  # type: ignore[misc]
    list_display = ["name", "organizer", "start", "end"]
    list_filter = ["organizer"]
    search_fields = ["name", "organizer__name"]
    date_hierarchy = "start"
    inlines = [TicketTierInline]


@admin.register(models.TicketTier)
class TicketTierAdmin(ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["name", "event_link", "price_cents", "currency", "quota", "quantity_sold"]
    search_fields = ["name", "event__name"]
    autocomplete_fields = ["event"]
    readonly_fields = ["quantity_sold"]


class OrderItemInline(TabularInline):  # type: ignore[misc]
    model = models.OrderItem
    extra = 0
    fields = ["tier", "quantity", "unit_price_cents"]
    readonly_fields = ["tier", "quantity", "unit_price_cents"]

    def has_add_permission(self, request: HttpRequest, obj: t.Any = None) -> bool:
        return False


@admin.register(models.Order)
class OrderAdmin(ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["short_code", "event_link", "email", "kind", "status", "amount_total_cents", "created_at"]
    list_filter = ["status", "kind"]
    search_fields = ["short_code", "email", "checkout_session_id", "payment_intent_id"]
    readonly_fields = [
        "id",
        "short_code",
        "status",
        "checkout_session_id",
        "payment_intent_id",
        "completed_at",
        "created_at",
    ]
    autocomplete_fields = ["event", "user"]
    date_hierarchy = "created_at"
    inlines = [OrderItemInline]


@admin.register(models.Ticket)
class TicketAdmin(ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["serial", "event_link", "user", "status", "is_for_sale", "resale_price_cents", "issued_at"]
    list_filter = ["status", "is_for_sale"]
    search_fields = ["serial", "user__email", "order__short_code"]
    readonly_fields = ["id", "serial", "token", "integrity_hash", "original_price_cents", "issued_at", "used_at"]
    autocomplete_fields = ["event", "user", "tier"]
    date_hierarchy = "issued_at"

    def has_add_permission(self, request: HttpRequest) -> bool:
        return False


@admin.register(models.RefundRequest)
class RefundRequestAdmin(ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["ticket", "event_link", "user", "status", "created_at", "responded_at"]
    list_filter = ["status"]
    search_fields = ["ticket__serial", "user__email"]
    readonly_fields = ["ticket", "order", "event", "user", "organizer", "reason", "responded_at"]


class GroupOrderParticipantInline(TabularInline):  # type: ignore[misc]
    model = models.GroupOrderParticipant
    extra = 0
    fields = ["email", "user", "amount_cents", "status", "paid_at", "order"]
    readonly_fields = ["email", "user", "amount_cents", "status", "paid_at", "order"]

    def has_add_permission(self, request: HttpRequest, obj: t.Any = None) -> bool:
        return False


@admin.register(models.GroupOrder)
class GroupOrderAdmin(ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["share_code", "event_link", "tier", "total_tickets", "status", "expires_at", "completed_at"]
    list_filter = ["status"]
    search_fields = ["share_code", "participants__email"]
    readonly_fields = ["share_code", "status", "completed_at"]
    inlines = [GroupOrderParticipantInline]
    actions = ["reconcile_tickets"]

    @admin.action(description="Issue missing tickets for completed group orders")
    def reconcile_tickets(self, request: HttpRequest, queryset: QuerySet[models.GroupOrder]) -> None:
        for group_order in queryset.filter(status=models.GroupOrder.GroupOrderStatus.COMPLETED):
            report = reissue_group_tickets(group_order)
            level = messages.WARNING if report.failed_participant_ids else messages.SUCCESS
            self.message_user(
                request,
                f"{group_order.share_code}: {len(report.issued_order_ids)} issued, "
                f"{len(report.failed_participant_ids)} failed.",
                level=level,
            )


@admin.register(models.PromoCode)
class PromoCodeAdmin(ModelAdmin):  # type: ignore[misc]
    list_display = ["code", "organizer", "event", "discount_type", "discount_value", "usage_count", "is_active"]
    list_filter = ["discount_type", "is_active"]
    search_fields = ["code"]
    readonly_fields = ["usage_count"]
