from django.urls import path
from . import views

urlpatterns = [
    path('programs/', views.program_list_create, name='program-list-create'),
    path('programs/<int:pk>/', views.program_detail, name='program-detail'),
    path('programs/<int:pk>/mentor-registrations/', views.mentor_register, name='program-mentor-register'),
    path('programs/<int:pk>/mentee-registrations/', views.mentee_register, name='program-mentee-register'),
    path('registrations/mine/', views.my_registrations, name='registrations-mine'),

    # Approval workflow
    path('approvals/', views.approval_queue, name='approval-queue'),
    path('approvals/mentors/', views.mentor_approvals, name='approval-mentors'),
    path('approvals/mentees/', views.mentee_approvals, name='approval-mentees'),
    path('approvals/statistics/', views.approval_statistics, name='approval-statistics'),
    path('approvals/<str:kind>/<int:pk>/history/', views.registration_history, name='registration-history'),
    path('approvals/<str:kind>/<int:pk>/<str:action>/', views.registration_action, name='registration-action'),

    # Matching
    path('programs/<int:pk>/mentors/', views.program_mentors, name='program-mentors'),
    path('programs/<int:pk>/preferences/', views.mentee_preferences, name='program-preferences'),
    path('programs/<int:pk>/matching/run/', views.matching_run, name='matching-run'),
    path('programs/<int:pk>/matching/manual/', views.matching_manual, name='matching-manual'),
    path('programs/<int:pk>/matching/matches/', views.program_matches, name='matching-matches'),
    path('programs/<int:pk>/matching/unmatched/', views.unmatched_mentees, name='matching-unmatched'),
    path('programs/<int:pk>/matching/statistics/', views.matching_statistics, name='matching-statistics'),
    path('matches/mine/', views.my_matches, name='matches-mine'),
    path('matches/requests/', views.match_requests, name='match-requests'),
    path('matches/<int:pk>/<str:action>/', views.match_respond, name='match-respond'),

    path('mentoring/communications/', views.communication_list_create, name='mentorship-communications'),
]
