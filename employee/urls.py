from django.urls import path

from . import views

app_name = 'employee'

urlpatterns = [
    path('usage/', views.usage_view, name='usage'),
    path('profiles/<slug:profile_id>/instructions/', views.instructions_view, name='profile-instructions'),
]
