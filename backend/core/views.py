import logging

from django.contrib.auth import get_user_model, logout
from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Q
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .exceptions import ApiError
from .models import AuditLog
from .pagination import paginated_response
from .rbac import IsManager, MANAGER, SALESPERSON, WAREHOUSE
from .serializers import (
    UserSerializer, UserCreateSerializer, UserUpdateSerializer, UserQuerySerializer,
    RegisterSerializer, AuditLogSerializer, PageQuerySerializer
)
from .utils import create_audit_log, get_alive_or_404

logger = logging.getLogger(__name__)

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active or self.user.deleted_at is not None:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that treats deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
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
        logger.info(f"Registered new salesperson account {user.username}")
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([AllowAny])
def signout(request):
    """End the cookie session (bearer tokens simply expire client-side)"""
    logout(request)
    return Response({'message': 'Signed out successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with role capabilities"""
    user = request.user
    user_data = UserSerializer(user).data

    role = user.role
    user_data['is_manager'] = role == MANAGER
    user_data['can_create_orders'] = role in (SALESPERSON, MANAGER)
    user_data['can_approve_orders'] = role == MANAGER
    user_data['can_fulfill_orders'] = role == WAREHOUSE
    user_data['can_access_customers'] = role in (SALESPERSON, MANAGER)
    user_data['can_manage_products'] = role == MANAGER
    user_data['can_manage_users'] = role == MANAGER

    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsManager])
def user_list_create(request):
    """List users or create a new user (managers only)"""
    if request.method == 'GET':
        query = UserQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        queryset = User.objects.all()
        if not params['include_deleted']:
            queryset = queryset.filter(deleted_at__isnull=True)
        if params.get('role'):
            queryset = queryset.filter(role=params['role'])
        search = params.get('search')
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(username__icontains=search)
            )
        queryset = queryset.order_by('-created_at', '-id')
        return paginated_response(queryset, UserSerializer, params['page'], params['limit'])
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='User',
                object_id=user.id,
                object_name=user.display_name,
                object_reference=user.email,
                changes={'role': user.role, 'email': user.email},
            )
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    is_own_profile = request.user.pk == pk
    is_manager = request.user.role == MANAGER

    if request.method == 'DELETE':
        if not is_manager:
            raise ApiError(403, 'Access denied. Required roles: manager')
        if is_own_profile:
            raise ApiError(403, 'You cannot delete your own account')
    elif not is_own_profile and not is_manager:
        raise ApiError(403, 'Access denied')

    user = get_alive_or_404(User.objects.all(), pk, 'User not found')

    if request.method == 'GET':
        return Response(UserSerializer(user).data)
    elif request.method in ('PUT', 'PATCH'):
        if 'role' in request.data and not is_manager:
            raise ApiError(403, 'Only managers can change user roles')
        serializer = UserUpdateSerializer(user, data=request.data, partial=True)
        if serializer.is_valid():
            old_role = user.role
            user = serializer.save()
            changes = dict(serializer.validated_data)
            if old_role != user.role:
                changes['previous_role'] = old_role
            create_audit_log(
                request=request,
                action='update',
                model_name='User',
                object_id=user.id,
                object_name=user.display_name,
                object_reference=user.email,
                changes=changes,
            )
            return Response(UserSerializer(user).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        user.soft_delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='User',
            object_id=user.id,
            object_name=user.display_name,
            object_reference=user.email,
            changes={'soft_deleted': True},
        )
        return Response({'message': 'User deleted successfully'})


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsManager])
def audit_log_list(request):
    """List audit logs with filtering (managers only)"""
    query = PageQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)

    queryset = AuditLog.objects.select_related('user').all()

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    reference = request.query_params.get('reference', None)
    if reference:
        queryset = queryset.filter(object_reference=reference)

    queryset = queryset.order_by('-created_at', '-id')
    return paginated_response(queryset, AuditLogSerializer, query.validated_data['page'], query.validated_data['limit'])
