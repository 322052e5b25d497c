from django.contrib import admin
from .models import AnalyticsEvent


@admin.register(AnalyticsEvent)
class AnalyticsEventAdmin(admin.ModelAdmin):
    list_display = ['event_type', 'business', 'widget', 'views', 'clicks', 'conversions', 'created_at']
    list_filter = ['event_type', 'created_at']
    search_fields = ['business__name', 'widget__widget_code']
    list_select_related = ['business', 'widget']
    readonly_fields = [f.name for f in AnalyticsEvent._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
