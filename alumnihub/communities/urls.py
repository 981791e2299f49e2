from django.urls import path
from . import views

urlpatterns = [
    path('communities/', views.community_list_create, name='community-list-create'),
    path('communities/mine/', views.my_communities, name='community-mine'),
    path('communities/<int:pk>/', views.community_detail, name='community-detail'),
    path('communities/<int:pk>/join/', views.community_join, name='community-join'),
    path('communities/<int:pk>/leave/', views.community_leave, name='community-leave'),
    path('communities/<int:pk>/invite/', views.community_invite, name='community-invite'),
    path('communities/<int:pk>/members/', views.community_members, name='community-members'),
    path('communities/<int:pk>/moderators/', views.community_moderators, name='community-moderators'),
    path('communities/<int:pk>/requests/', views.community_requests, name='community-requests'),
    path('communities/<int:pk>/posts/', views.community_posts, name='community-posts'),

    # Membership moderation
    path('memberships/<int:pk>/', views.membership_remove, name='membership-remove'),
    path('memberships/<int:pk>/<str:action>/', views.membership_action, name='membership-action'),

    # Posts
    path('posts/<int:pk>/', views.post_detail, name='post-detail'),
    path('posts/<int:pk>/like/', views.post_like, name='post-like'),
    path('posts/<int:pk>/unlike/', views.post_unlike, name='post-unlike'),
    path('posts/<int:pk>/<str:action>/', views.post_moderate, name='post-moderate'),
]
