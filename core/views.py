import logging
import time

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from edu_core import services as edu_services
from edu_core.models import Department, Lesson, Subject
from edu_core.serializers import DepartmentSerializer, LessonSerializer, SubjectSerializer
from news.models import News
from news.serializers import NewsSerializer
from stats.services import PlatformStatsService
from users.permissions import IsAdmin, PolicyMixin
from users.serializers import UserSerializer
from .models import SystemSettings
from .serializers import MaintenanceSerializer, ResetSerializer, SystemSettingsSerializer

logger = logging.getLogger(__name__)
User = get_user_model()


# Базовый класс для эндпоинтов /api/settings/: доступ только администратору.
# Режим обслуживания на эти эндпоинты не действует, иначе его нельзя было бы выключить.
class AdminSettingsView(PolicyMixin, APIView):
    permission_classes = [IsAdmin]
    maintenance_exempt = True


class SystemSettingsView(AdminSettingsView):
    permission_messages = {
        'GET': 'Unauthorized. Only admins can access settings.',
        'PUT': 'Unauthorized. Only admins can update settings.',
    }

    def get(self, request):
        system_settings = SystemSettings.load(updated_by=request.user.user_id)
        return Response({'success': True, 'data': SystemSettingsSerializer(system_settings).data})

    def put(self, request):
        system_settings = SystemSettings.load(updated_by=request.user.user_id)
        serializer = SystemSettingsSerializer(system_settings, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        system_settings = serializer.save(last_updated_by=request.user.user_id)
        logger.info(f"System settings updated by {request.user.user_id}: {sorted(request.data.keys())}")
        return Response({
            'success': True,
            'message': 'Settings updated successfully',
            'data': SystemSettingsSerializer(system_settings).data,
        })


class SystemStatsView(AdminSettingsView):
    permission_messages = {'GET': 'Unauthorized. Only admins can access system statistics.'}

    def get(self, request):
        service = PlatformStatsService()
        return Response({
            'success': True,
            'data': {
                'overview': service.get_overview(),
                'departmentStats': service.get_department_stats(),
                'monthlyRegistrations': service.get_monthly_registrations(),
                'recentActivity': {
                    'recentUsers': UserSerializer(service.get_recent_users(), many=True).data,
                    'recentLessons': LessonSerializer(service.get_recent_lessons(), many=True).data,
                },
            },
        })


# Операции обслуживания имитируются: выполняется только пауза заданной длительности
# (settings.MAINTENANCE_OPERATION_DELAYS, в секундах).
class MaintenanceView(AdminSettingsView):
    permission_messages = {'POST': 'Unauthorized. Only admins can perform maintenance operations.'}

    def post(self, request):
        serializer = MaintenanceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        operation = serializer.validated_data.get('operation', '')

        delays = settings.MAINTENANCE_OPERATION_DELAYS
        if operation not in delays:
            raise ValidationError('Invalid maintenance operation')

        logger.info(f"Maintenance operation '{operation}' started by {request.user.user_id}")
        time.sleep(delays[operation])
        return Response({
            'success': True,
            'message': f"{operation.replace('_', ' ', 1)} completed successfully",
        })


class ResetDataView(AdminSettingsView):
    permission_messages = {'POST': 'Unauthorized. Only admins can reset system data.'}

    def _reset_students(self):
        students = User.objects.filter(role=User.Role.STUDENT)
        count = students.count()
        students.delete()
        return count

    def post(self, request):
        serializer = ResetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data.get('confirmationCode') != settings.SYSTEM_RESET_CONFIRMATION_CODE:
            logger.warning(f"Reset attempted by {request.user.user_id} with an invalid confirmation code")
            raise ValidationError('Invalid confirmation code')

        handlers = {
            'lessons': edu_services.delete_all_lessons,
            'news': lambda: News.objects.all().delete()[0],
            'students': self._reset_students,
        }
        data_type = data.get('dataType')
        if data_type not in handlers:
            raise ValidationError('Invalid data type for reset')

        deleted_count = handlers[data_type]()
        logger.warning(f"{data_type} data reset by {request.user.user_id}: {deleted_count} records deleted")
        return Response({
            'success': True,
            'message': f"{data_type} data reset completed",
            'deletedCount': deleted_count,
        })


class ExportDataView(AdminSettingsView):
    permission_messages = {'GET': 'Unauthorized. Only admins can export system data.'}

    exporters = {
        'users': lambda: UserSerializer(User.objects.all(), many=True).data,
        'departments': lambda: DepartmentSerializer(Department.objects.all(), many=True).data,
        'subjects': lambda: SubjectSerializer(Subject.objects.select_related('department'), many=True).data,
        'lessons': lambda: LessonSerializer(Lesson.objects.select_related('department', 'subject'), many=True).data,
        'news': lambda: NewsSerializer(News.objects.all(), many=True).data,
    }

    def get(self, request):
        data_type = request.query_params.get('dataType')
        if data_type == 'all':
            sections = list(self.exporters)
        elif data_type in self.exporters:
            sections = [data_type]
        else:
            raise ValidationError('Invalid data type for export')

        data = {section: self.exporters[section]() for section in sections}
        logger.info(f"Data export '{data_type}' by {request.user.user_id}")
        return Response({
            'success': True,
            'data': data,
            'exportedAt': timezone.now().isoformat(),
            'exportedBy': request.user.user_id,
        })
