from rest_framework.response import Response
from rest_framework.views import APIView

from edu_core.serializers import LessonSerializer, MaterialSerializer, SubjectSerializer
from news.serializers import NewsSerializer
from notifications.models import NotificationReadReceipt
from notifications.serializers import NotificationSerializer
from notifications.utils import inbox_for
from users.permissions import IsLecturerOrAdmin, IsSelfOrAdmin, IsStudentOrAdmin, PolicyMixin
from users.serializers import UserSerializer
from .services import LecturerDashboardService, StudentDashboardService


# --- Личный кабинет студента ---
# Все эндпоинты /api/students/<ресурс>/<userId>/ доступны самому студенту
# и администратору: нужны одновременно роль студента (или администратора)
# и совпадение userId. Ответы отдаются без конверта.

class StudentDashboardView(PolicyMixin, APIView):
    permission_classes = [IsStudentOrAdmin, IsSelfOrAdmin]
    permission_messages = {'GET': 'Unauthorized'}
    self_lookup_url_kwarg = 'user_id'

    def get_service(self):
        return StudentDashboardService(self.kwargs['user_id'])


class StudentProfileView(StudentDashboardView):
    permission_messages = {'GET': 'Unauthorized. You can only access your own profile.'}

    def get(self, request, user_id):
        return Response(UserSerializer(self.get_service().student).data)


class StudentSubjectsView(StudentDashboardView):
    def get(self, request, user_id):
        return Response(SubjectSerializer(self.get_service().get_subjects(), many=True).data)


class StudentLessonsView(StudentDashboardView):
    def get(self, request, user_id):
        return Response(LessonSerializer(self.get_service().get_lessons(), many=True).data)


class StudentMaterialsView(StudentDashboardView):
    def get(self, request, user_id):
        return Response(MaterialSerializer(self.get_service().get_materials(), many=True).data)


class StudentStatsView(StudentDashboardView):
    def get(self, request, user_id):
        return Response(self.get_service().get_stats())


# Новости не зависят от студента, но доступ проверяется так же, как для остальных ресурсов кабинета.
class StudentNewsView(StudentDashboardView):
    def get(self, request, user_id):
        return Response(NewsSerializer(self.get_service().get_news(), many=True).data)


# --- Кабинет преподавателя ---

class LecturerDashboardView(PolicyMixin, APIView):
    permission_classes = [IsLecturerOrAdmin, IsSelfOrAdmin]
    permission_messages = {'GET': 'Unauthorized'}
    self_lookup_url_kwarg = 'lecturer_id'

    def get_service(self):
        return LecturerDashboardService(self.kwargs['lecturer_id'])


class LecturerProfileView(LecturerDashboardView):
    permission_messages = {'GET': 'Unauthorized. You can only access your own profile.'}

    def get(self, request, lecturer_id):
        return Response(UserSerializer(self.get_service().lecturer).data)


class LecturerSubjectsView(LecturerDashboardView):
    def get(self, request, lecturer_id):
        return Response(SubjectSerializer(self.get_service().get_subjects(), many=True).data)


class LecturerStudentsView(LecturerDashboardView):
    def get(self, request, lecturer_id):
        return Response(UserSerializer(self.get_service().get_students(), many=True).data)


class LecturerMaterialsView(LecturerDashboardView):
    def get(self, request, lecturer_id):
        return Response(MaterialSerializer(self.get_service().get_materials(), many=True).data)


class LecturerLessonsView(LecturerDashboardView):
    def get(self, request, lecturer_id):
        return Response(LessonSerializer(self.get_service().get_lessons(), many=True).data)


class LecturerStatsView(LecturerDashboardView):
    def get(self, request, lecturer_id):
        return Response(self.get_service().get_stats())


# Последние входящие уведомления преподавателя с отметкой о прочтении.
class LecturerNotificationsView(LecturerDashboardView):
    notifications_limit = 20

    def get(self, request, lecturer_id):
        lecturer = self.get_service().lecturer
        notifications = list(
            inbox_for(lecturer).select_related('parent').order_by('-created_at', '-id')[:self.notifications_limit]
        )
        read_ids = set(
            NotificationReadReceipt.objects.filter(user_id=lecturer.user_id, notification__in=notifications)
            .values_list('notification_id', flat=True)
        )
        serializer = NotificationSerializer(notifications, many=True, context={'read_ids': read_ids})
        return Response(serializer.data)
