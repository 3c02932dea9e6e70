"""Django admin configuration for shifts app."""

from django.contrib import admin

from .models import BulkOperation, Shift, ShiftNotification, ShiftTemplate, ShiftTransition, UrgencyAlert


class ReadOnlyAdmin(admin.ModelAdmin):
    """Audit rows are written by the workflow engine only."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class UrgencyAlertInline(admin.TabularInline):
    model = UrgencyAlert
    extra = 0
    fields = ["alert_type", "priority", "message", "resolved", "resolved_by", "resolved_reason"]
    readonly_fields = ["resolved", "resolved_by", "resolved_reason"]


@admin.register(Shift)
class ShiftAdmin(admin.ModelAdmin):
    """Status is changed through the board API so every move is audited."""
    list_display = ["title", "client_name", "site_name", "starts_at", "status", "priority", "assigned_guard_id"]
    list_filter = ["status", "priority"]
    search_fields = ["title", "client_name", "site_name", "assigned_guard_id"]
    readonly_fields = ["status", "created_at", "updated_at"]
    ordering = ["starts_at"]
    inlines = [UrgencyAlertInline]


@admin.register(ShiftTemplate)
class ShiftTemplateAdmin(admin.ModelAdmin):
    list_display = ["name", "title", "client_name", "priority", "is_active"]
    list_filter = ["is_active"]
    search_fields = ["name", "title", "client_name"]


@admin.register(UrgencyAlert)
class UrgencyAlertAdmin(admin.ModelAdmin):
    list_display = ["created_at", "shift", "alert_type", "priority", "resolved", "resolved_by"]
    list_filter = ["alert_type", "priority", "resolved"]
    readonly_fields = ["resolved_at", "acknowledged_by", "acknowledged_at"]
    ordering = ["-created_at"]


@admin.register(ShiftTransition)
class ShiftTransitionAdmin(ReadOnlyAdmin):
    """Admin for viewing the transition audit trail (read-only)."""
    list_display = ["created_at", "shift", "previous_status", "new_status", "method", "actor_id"]
    list_filter = ["new_status", "method", "created_at"]
    search_fields = ["shift__title", "actor_id"]
    ordering = ["-created_at"]


@admin.register(BulkOperation)
class BulkOperationAdmin(ReadOnlyAdmin):
    list_display = ["executed_at", "operation_type", "status", "executed_by"]
    list_filter = ["operation_type", "status"]
    search_fields = ["executed_by"]
    ordering = ["-executed_at"]


@admin.register(ShiftNotification)
class ShiftNotificationAdmin(admin.ModelAdmin):
    list_display = ["created_at", "shift", "sent_by", "delivered_at"]
    readonly_fields = ["shift", "message", "sent_by", "created_at"]
