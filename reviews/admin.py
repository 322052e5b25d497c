from django.contrib import admin
from .models import Review


def publish_reviews(modeladmin, request, queryset):
    """Admin action to publish selected reviews"""
    updated = queryset.update(status='published')
    modeladmin.message_user(request, f"Published {updated} review(s).")

publish_reviews.short_description = "Publish selected reviews"


def hide_reviews(modeladmin, request, queryset):
    """Admin action to hide selected reviews"""
    updated = queryset.update(status='hidden')
    modeladmin.message_user(request, f"Hid {updated} review(s).")

hide_reviews.short_description = "Hide selected reviews"


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['title', 'business', 'widget', 'rating', 'status', 'source', 'created_at']
    list_filter = ['status', 'source', 'rating', 'created_at']
    search_fields = ['title', 'content', 'customer_name', 'customer_email', 'business__name']
    list_select_related = ['business', 'widget']
    readonly_fields = ['uuid', 'ip_address', 'user_agent', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'
    actions = [publish_reviews, hide_reviews]
