from django.urls import path
from . import views

urlpatterns = [
    path('events/', views.event_list_create, name='event-list-create'),
    path('events/upcoming/', views.upcoming_events, name='event-upcoming'),
    path('events/mine/', views.my_events, name='event-mine'),
    path('events/stats/', views.event_stats, name='event-stats'),
    path('events/<int:pk>/', views.event_detail, name='event-detail'),
    path('events/<int:pk>/register/', views.event_register, name='event-register'),
    path('events/<int:pk>/confirm-payment/', views.event_confirm_payment, name='event-confirm-payment'),
    path('events/<int:pk>/unregister/', views.event_unregister, name='event-unregister'),
    path('events/<int:pk>/participants/', views.event_participants, name='event-participants'),
    path('events/<int:pk>/attendance/', views.event_attendance, name='event-attendance'),
    path('events/<int:pk>/feedback/', views.event_feedback, name='event-feedback'),
]
