from rest_framework.exceptions import NotFound

from .serializers import LmsTokenObtainPairSerializer


# Выпускает пару токенов для пользователя. Access-токен наследует все
# пользовательские claims refresh-токена (userId, имя, кафедра, роль).
def issue_tokens_for_user(user):
    refresh = LmsTokenObtainPairSerializer.get_token(user)
    return {
        'token': str(refresh.access_token),
        'refresh': str(refresh),
    }


# Сводка пользователя в формате ответа на вход и обновление.
def user_payload(user):
    return {
        'userId': user.user_id,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'department': user.department,
        'email': user.email,
        'role': user.role,
    }


def ensure_department_exists(department_code):
    from edu_core.models import Department
    if not Department.objects.filter(department_id__iexact=department_code).exists():
        raise NotFound('Department not found')
