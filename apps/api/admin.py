"""Django admin configuration for api app."""

from django.contrib import admin

from .models import ApiToken


@admin.register(ApiToken)
class ApiTokenAdmin(admin.ModelAdmin):
    """Admin for API tokens. Tokens are issued from code; the admin can revoke them."""
    list_display = ["label", "user", "created_at", "expires_at", "revoked_at", "last_used_at"]
    list_filter = ["user"]
    search_fields = ["label", "user__username"]
    readonly_fields = ["token_hash", "created_at", "last_used_at"]
    actions = ["revoke_tokens"]

    def has_add_permission(self, request):
        return False

    @admin.action(description="Revoke selected tokens")
    def revoke_tokens(self, request, queryset):
        for token in queryset:
            token.revoke()
