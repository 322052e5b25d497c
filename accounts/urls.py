from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('sign-up/', views.sign_up, name='sign_up'),
    path('sign-in/', views.sign_in, name='sign_in'),
    path('sign-out/', views.sign_out, name='sign_out'),
    path('user/', views.current_user, name='current_user'),
    path('profile/', views.update_profile, name='update_profile'),
    path('password/', views.update_password, name='update_password'),
    path('account/', views.delete_account, name='delete_account'),
]
