from django.urls import path
from . import views

urlpatterns = [
    path('alumni/', views.alumni_list, name='alumni-list'),
    path('alumni/me/', views.alumni_me, name='alumni-me'),
    path('alumni/<int:pk>/', views.alumni_detail, name='alumni-detail'),
    path('alumni/<int:pk>/360/', views.alumni_360, name='alumni-360'),

    # Notes
    path('alumni/<int:pk>/notes/', views.alumni_notes, name='alumni-notes'),
    path('alumni/<int:pk>/notes/<int:note_pk>/', views.alumni_note_detail, name='alumni-note-detail'),

    # Issues
    path('alumni/<int:pk>/issues/', views.alumni_issues, name='alumni-issues'),
    path('alumni/<int:pk>/issues/<int:issue_pk>/', views.alumni_issue_detail, name='alumni-issue-detail'),

    # Flags
    path('alumni/<int:pk>/flags/', views.alumni_flags, name='alumni-flags'),
    path('alumni/<int:pk>/flags/<str:flag_type>/', views.alumni_flag_delete, name='alumni-flag-delete'),

    path('alumni/<int:pk>/communications/', views.alumni_communications, name='alumni-communications'),
    path('alumni/<int:pk>/engagement/', views.alumni_engagement, name='alumni-engagement'),
    path('alumni/<int:pk>/analytics/', views.alumni_analytics, name='alumni-analytics'),

    # Messages
    path('messages/', views.message_list_create, name='message-list-create'),
    path('messages/<int:pk>/read/', views.message_mark_read, name='message-mark-read'),
]
