from django.contrib import admin
from .models import UserProfile, AccessToken


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'created_at']
    search_fields = ['user__username', 'user__email']
    list_select_related = ['user']


@admin.register(AccessToken)
class AccessTokenAdmin(admin.ModelAdmin):
    list_display = ['user', 'is_active', 'expires_at', 'last_used_at', 'created_at']
    list_filter = ['is_active', 'expires_at']
    search_fields = ['user__username', 'user__email']
    list_select_related = ['user']
    readonly_fields = ['token', 'last_used_at', 'created_at', 'updated_at']

    def has_add_permission(self, request):
        # Tokens are issued by sign in, not through admin
        return False
