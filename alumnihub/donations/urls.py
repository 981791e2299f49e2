from django.urls import path
from . import views

urlpatterns = [
    path('campaigns/', views.campaign_list_create, name='campaign-list-create'),
    path('campaigns/<int:pk>/', views.campaign_detail, name='campaign-detail'),
    path('donations/', views.donation_list_create, name='donation-list-create'),
    path('donations/summary/', views.donation_summary, name='donation-summary'),
    path('donations/<int:pk>/', views.donation_detail, name='donation-detail'),
    path('donations/<int:pk>/status/', views.donation_update_status, name='donation-update-status'),
]
