from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard, name='reports-dashboard'),
    path('reports/engagement/', views.engagement_leaderboard, name='reports-engagement'),
]
