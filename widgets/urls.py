from django.urls import path
from . import views

app_name = 'widgets'

urlpatterns = [
    path('submit-review/', views.submit_review, name='submit_review'),
    path('track-view/', views.track_view, name='track_view'),
]
