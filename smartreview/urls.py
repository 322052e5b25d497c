"""
URL configuration for smartreview project.
"""
from django.contrib import admin
from django.urls import path, include
from . import views

# Error handlers
handler404 = 'smartreview.views.handler404'
handler500 = 'smartreview.views.handler500'

urlpatterns = [
    path('health/', views.health_check, name='health_check'),
    path('admin/', admin.site.urls),

    # Public endpoints called by embedded widgets
    path('api/widgets/', include('widgets.urls')),

    # Stripe webhook and checkout approval callback
    path('api/', include('subscriptions.urls')),

    # Dashboard API (token or session auth)
    path('api/v1/auth/', include('accounts.urls')),
    path('api/v1/', include('api.urls')),
]
