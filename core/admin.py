from django.contrib import admin
from .models import Business


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'email', 'industry', 'is_active', 'created_at']
    list_filter = ['is_active', 'industry', 'created_at']
    search_fields = ['name', 'email', 'owner__email']
    list_select_related = ['owner']
    readonly_fields = ['created_at', 'updated_at']
