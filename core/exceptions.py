import logging

from django.db import IntegrityError
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.exceptions import APIException, AuthenticationFailed, NotAuthenticated
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

logger = logging.getLogger(__name__)

NO_TOKEN_MESSAGE = 'No token, authorization denied'
INVALID_TOKEN_MESSAGE = 'Token is not valid'
DUPLICATE_VALUE_MESSAGE = 'Duplicate value detected'


class MaintenanceModeActive(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'System is under maintenance. Please try again later.'
    default_code = 'maintenance_mode'


# Сводит детали ошибки DRF (строка, список или словарь по полям) к плоскому списку
# сообщений. Ошибки полей получают префикс с именем поля, non_field_errors нет.
def _flatten_detail(detail, prefix=None):
    messages = []
    if isinstance(detail, dict):
        for field, value in detail.items():
            field_prefix = None if field in ('non_field_errors', 'detail') else field
            messages.extend(_flatten_detail(value, field_prefix))
    elif isinstance(detail, (list, tuple)):
        for item in detail:
            messages.extend(_flatten_detail(item, prefix))
    else:
        text = str(detail)
        messages.append(f"{prefix}: {text}" if prefix else text)
    return messages


def custom_exception_handler(exc, context):
    """
    Единый формат ошибок API: {"error": "<сообщение>"}.

    Ошибки аутентификации получают фиксированные тексты, нарушение уникальности
    в БД превращается в 400, любое необработанное исключение логируется и
    возвращается как 500.
    """
    if isinstance(exc, NotAuthenticated):
        response = exception_handler(exc, context)
        response.data = {'error': NO_TOKEN_MESSAGE}
        return response

    if isinstance(exc, AuthenticationFailed):
        response = exception_handler(exc, context)
        response.data = {'error': INVALID_TOKEN_MESSAGE}
        return response

    response = exception_handler(exc, context)
    if response is not None:
        messages = _flatten_detail(response.data)
        response.data = {'error': ', '.join(messages) if messages else str(exc)}
        return response

    view = context.get('view')
    view_name = view.__class__.__name__ if view else 'unknown view'

    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error in {view_name}: {exc}")
        set_rollback()
        return Response({'error': DUPLICATE_VALUE_MESSAGE}, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, ProtectedError):
        logger.warning(f"Protected delete attempted in {view_name}: {exc}")
        set_rollback()
        return Response(
            {'error': 'Cannot delete this record while other records depend on it'},
            status=status.HTTP_400_BAD_REQUEST
        )

    logger.error(f"Unhandled exception in {view_name}: {exc}", exc_info=True)
    set_rollback()
    return Response({'error': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
