import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.models import update_last_login
from django.db import IntegrityError, transaction
from rest_framework import permissions, status
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import DUPLICATE_VALUE_MESSAGE
from .filters import UserFilter
from .permissions import IsAdmin, IsSelfOrAdmin, PolicyMixin
from .serializers import LoginSerializer, UserRegistrationSerializer, UserSerializer, UserUpdateSerializer
from .utils import ensure_department_exists, issue_tokens_for_user, user_payload

logger = logging.getLogger(__name__)
User = get_user_model()


def _deleted_user_snapshot(user):
    return {
        'userId': user.user_id,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'email': user.email,
        'role': user.role,
        'department': user.department,
    }


# Удаляет пользователя от имени администратора. Удалить собственную учетную запись нельзя.
def _delete_user(request, user):
    if user.pk == request.user.pk:
        raise ValidationError('You cannot delete your own account')
    snapshot = _deleted_user_snapshot(user)
    user.delete()
    logger.info(f"User {snapshot['userId']} deleted by admin {request.user.user_id}")
    return Response({
        'success': True,
        'message': 'User deleted successfully',
        'deletedUser': snapshot,
    }, status=status.HTTP_200_OK)


# Класс UserListCreateView обслуживает корень /api/users/:
# - GET: список всех пользователей (только администратор);
# - POST: публичная регистрация. Учетную запись администратора может создать только
#   администратор, кафедра для остальных ролей должна существовать.
class UserListCreateView(PolicyMixin, APIView):
    permission_policy = {
        'GET': [IsAdmin],
        'POST': [permissions.AllowAny],
    }
    permission_messages = {'GET': 'Unauthorized. Only admins can view all users.'}

    def get(self, request):
        users = User.objects.all()
        return Response(UserSerializer(users, many=True).data)

    def post(self, request):
        serializer = UserRegistrationSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data['role'] == User.Role.ADMIN and not (request.user.is_authenticated and request.user.is_admin):
            logger.warning(f"Attempt to self-register admin account {data['userId']}")
            raise PermissionDenied('Unauthorized. Only admins can register admin accounts.')
        if data['department']:
            ensure_department_exists(data['department'])

        try:
            with transaction.atomic():
                user = serializer.save()
        except IntegrityError:
            raise ValidationError(DUPLICATE_VALUE_MESSAGE)

        logger.info(f"User {user.user_id} registered with role {user.role}")
        return Response({
            'message': 'User registered successfully',
            'user': UserSerializer(user).data,
        }, status=status.HTTP_201_CREATED)


# Класс LoginView выдает JWT по email и паролю. Ответ содержит access-токен (token),
# refresh-токен и сводку пользователя. Вход разрешен и в режиме обслуживания,
# чтобы администраторы могли авторизоваться.
class LoginView(PolicyMixin, APIView):
    authentication_classes = []
    permission_policy = {'*': [permissions.AllowAny]}
    maintenance_exempt = True

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data['email'].strip().lower()

        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            raise ValidationError('User not found')
        if not user.check_password(serializer.validated_data['password']):
            logger.warning(f"Failed login attempt for {email}: invalid password")
            raise ValidationError('Invalid password')
        if not user.is_active:
            raise PermissionDenied('User account is disabled')

        update_last_login(None, user)
        logger.info(f"User {user.user_id} logged in")
        return Response({
            'message': 'Login successful',
            **issue_tokens_for_user(user),
            'user': user_payload(user),
        })


# Списки пользователей по роли (admins/lecturers/students) в конверте {success, count, data}.
class RoleListView(PolicyMixin, APIView):
    role = None
    permission_policy = {'GET': [IsAdmin]}

    def get(self, request):
        users = User.objects.filter(role=self.role)
        return Response({
            'success': True,
            'count': users.count(),
            'data': UserSerializer(users, many=True).data,
        })


class UserSearchView(PolicyMixin, APIView):
    permission_policy = {'GET': [IsAdmin]}
    permission_messages = {'GET': 'Unauthorized. Only admins can search users.'}

    def get(self, request):
        filterset = UserFilter(request.query_params, queryset=User.objects.all())
        if not filterset.is_valid():
            raise ValidationError({field: list(errors) for field, errors in filterset.errors.items()})
        return Response(UserSerializer(filterset.qs, many=True).data)


class UserStatsView(PolicyMixin, APIView):
    permission_policy = {'GET': [IsAdmin]}

    def get(self, request):
        departments = (
            User.objects.exclude(department='')
            .order_by('department')
            .values_list('department', flat=True)
            .distinct()
        )
        return Response({
            'totalUsers': User.objects.count(),
            'roles': {
                role: User.objects.filter(role=role).count()
                for role in (User.Role.ADMIN, User.Role.STUDENT, User.Role.LECTURER)
            },
            'departments': list(departments),
        })


# Пользователи кафедры. Код кафедры должен существовать.
class UsersByDepartmentView(PolicyMixin, APIView):
    permission_policy = {'GET': [IsAdmin]}

    def get(self, request, department):
        from edu_core.models import Department
        if not Department.objects.filter(department_id__iexact=department).exists():
            raise ValidationError('Invalid department specified')
        users = User.objects.filter(department__iexact=department)
        return Response(UserSerializer(users, many=True).data)


class UsersByRoleAndDepartmentView(PolicyMixin, APIView):
    permission_policy = {'GET': [IsAdmin]}

    def get(self, request, role, department):
        from edu_core.models import Department
        if role not in (User.Role.LECTURER, User.Role.STUDENT):
            raise ValidationError("Invalid role specified. Must be 'lecturer' or 'student'.")
        if not Department.objects.filter(department_id__iexact=department).exists():
            raise ValidationError('Invalid department specified')
        users = User.objects.filter(role=role, department__iexact=department)
        return Response(UserSerializer(users, many=True).data)


# Класс UserDetailView: GET доступен самому пользователю или администратору,
# DELETE только администратору. Права проверяются до поиска пользователя.
class UserDetailView(PolicyMixin, APIView):
    self_lookup_url_kwarg = 'user_id'
    permission_policy = {
        'GET': [IsSelfOrAdmin],
        'DELETE': [IsAdmin],
    }
    permission_messages = {'DELETE': 'Unauthorized. Only admins can delete users.'}

    def _get_user(self, user_id):
        user = User.objects.filter(user_id=user_id.strip()).first()
        if user is None:
            raise NotFound('User not found')
        return user

    def get(self, request, user_id):
        return Response(UserSerializer(self._get_user(user_id)).data)

    def delete(self, request, user_id):
        return _delete_user(request, self._get_user(user_id))


class DeleteUserByEmailView(PolicyMixin, APIView):
    permission_policy = {'DELETE': [IsAdmin]}
    permission_messages = {'DELETE': 'Unauthorized. Only admins can delete users.'}

    def delete(self, request):
        email = (request.data.get('email') or request.query_params.get('email') or '').strip().lower()
        if not email:
            raise ValidationError('Email is required')
        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            raise NotFound('User not found')
        return _delete_user(request, user)


# Класс UserUpdateView обновляет учетную запись, указанную в currentEmail
# (по умолчанию сам запрашивающий). Обычный пользователь может менять только себя
# и не может менять роль.
class UserUpdateView(PolicyMixin, APIView):
    permission_policy = {'PUT': [permissions.IsAuthenticated]}

    def put(self, request):
        serializer = UserUpdateSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        target_email = (data.get('currentEmail') or request.user.email).lower()
        if not request.user.is_admin and target_email != request.user.email.lower():
            raise PermissionDenied(
                'Unauthorized. You can only update your own account or be an admin to update others.'
            )

        user = User.objects.filter(email__iexact=target_email).first()
        if user is None:
            raise NotFound('User not found')

        if data.get('role') and not request.user.is_admin:
            raise PermissionDenied('Unauthorized. Only admins can update roles.')
        if data.get('department'):
            ensure_department_exists(data['department'])
        # Кафедра обязательна для всех ролей, кроме администратора.
        resulting_role = data.get('role') or user.role
        if resulting_role != User.Role.ADMIN and not (data.get('department') or user.department):
            raise ValidationError('Department is required for students and lecturers')
        if data.get('userId') and User.objects.filter(user_id=data['userId']).exclude(pk=user.pk).exists():
            raise ValidationError('User with this ID already exists')
        if data.get('email') and User.objects.filter(email__iexact=data['email']).exclude(pk=user.pk).exists():
            raise ValidationError('User with this email already exists')

        try:
            with transaction.atomic():
                user = serializer.update(user, data)
        except IntegrityError:
            raise ValidationError(DUPLICATE_VALUE_MESSAGE)

        logger.info(f"User {user.user_id} updated by {request.user.user_id}")
        return Response({
            'message': 'User updated successfully',
            'user': user_payload(user),
        })
