import logging
from datetime import datetime

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from .models import College, AuditLog
from .pagination import paginated_response_data
from .permissions import (
    IsAdminRole, is_super_admin, is_admin, can_manage_alumni,
    can_review_registrations, is_college_staff, scope_to_college,
)
from .serializers import (
    UserSerializer, UserCreateSerializer, RegisterSerializer,
    CollegeSerializer, AuditLogSerializer
)

User = get_user_model()
logger = logging.getLogger(__name__)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        token['college'] = user.college_id
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    serializer = RegisterSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        token = CustomTokenObtainPairSerializer.get_token(user)
        logger.info(f"New account registered: {user.username} (role={user.role})")
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _college_admin_violation(request, data):
    """College admins may only manage non-super-admin users of their own college"""
    if is_super_admin(request.user):
        return None
    if data.get('role') == User.ROLE_SUPER_ADMIN:
        return Response({'error': 'Cannot assign the super admin role'}, status=status.HTTP_403_FORBIDDEN)
    if 'college' in data and str(data.get('college')) != str(request.user.college_id):
        return Response({'error': 'Cannot manage users of another college'}, status=status.HTTP_403_FORBIDDEN)
    return None


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_list_create(request):
    """List users or create a new user"""
    if request.method == 'GET':
        users = scope_to_college(request.user, User.objects.select_related('college'))
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        serializer = UserSerializer(users.order_by('username'), many=True)
        return Response(serializer.data)
    else:
        violation = _college_admin_violation(request, request.data)
        if violation:
            return violation
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            extra = {}
            if not is_super_admin(request.user):
                extra['college'] = request.user.college
            user = serializer.save(**extra)
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(scope_to_college(request.user, User.objects.all()), pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        violation = _college_admin_violation(request, request.data)
        if violation:
            return violation
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user == request.user:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with derived capability flags"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['is_admin'] = is_admin(user)
    user_data['is_super_admin'] = is_super_admin(user)
    user_data['can_manage_alumni'] = can_manage_alumni(user)
    user_data['can_review_registrations'] = can_review_registrations(user)
    user_data['can_create_communities'] = is_college_staff(user)
    return Response(user_data)


# College views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def college_list_create(request):
    """List colleges or create a new college (super admin)"""
    if request.method == 'GET':
        colleges = College.objects.filter(is_active=True)
        serializer = CollegeSerializer(colleges, many=True)
        return Response(serializer.data)
    if not is_super_admin(request.user):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    serializer = CollegeSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def college_detail(request, pk):
    """Retrieve or update a college"""
    college = get_object_or_404(College, pk=pk)
    if request.method == 'GET':
        return Response(CollegeSerializer(college).data)
    if not is_super_admin(request.user):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    serializer = CollegeSerializer(college, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    if is_super_admin(request.user):
        pass
    elif is_admin(request.user):
        queryset = queryset.filter(college_id=request.user.college_id)
    else:
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    try:
        if date_from:
            queryset = queryset.filter(created_at__date__gte=datetime.strptime(date_from, '%Y-%m-%d').date())
        if date_to:
            queryset = queryset.filter(created_at__date__lte=datetime.strptime(date_to, '%Y-%m-%d').date())
    except ValueError:
        return Response({'error': 'Dates must use the YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)

    queryset = queryset.order_by('-created_at')
    return Response(paginated_response_data(request, queryset, AuditLogSerializer))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if is_super_admin(request.user):
        allowed = True
    elif is_admin(request.user):
        allowed = audit_log.college_id == request.user.college_id
    else:
        allowed = audit_log.user_id == request.user.id
    if not allowed:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)
