from django.contrib import admin
from django.utils.html import format_html
from .models import Widget


@admin.register(Widget)
class WidgetAdmin(admin.ModelAdmin):
    list_display = ['name', 'widget_code', 'business', 'position', 'is_active', 'views', 'clicks', 'created_at']
    list_filter = ['is_active', 'theme', 'position', 'created_at']
    search_fields = ['name', 'widget_code', 'business__name']
    list_select_related = ['business']
    readonly_fields = ['widget_code', 'views', 'clicks', 'embed_snippet', 'created_at', 'updated_at']

    @admin.display(description='Embed snippet')
    def embed_snippet(self, obj):
        if not obj.pk:
            return '-'
        from django.conf import settings
        from .snippet import snippet_for_widget
        return format_html('<pre style="white-space: pre-wrap">{}</pre>', snippet_for_widget(obj, settings.MAIN_APP_URL))
