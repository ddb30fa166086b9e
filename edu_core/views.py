import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response

from core.pagination import EnvelopePagination
from stats.services import MarksStatsService
from users.permissions import (
    IsAdmin, IsLecturerOrAdmin, IsSelfOrAdmin, IsUploaderOrAdmin, OrPermissions, PolicyMixin
)
from . import services
from .filters import LessonFilter, MarkFilter, MaterialFilter, SubjectFilter
from .models import Department, Lesson, LessonPart, Mark, Material, Subject
from .serializers import (
    DepartmentSerializer, LessonPartSerializer, LessonSerializer, MarkInputSerializer, MarkSerializer,
    MaterialSerializer, MaterialUpdateSerializer, SubjectBriefSerializer, SubjectSerializer
)

logger = logging.getLogger(__name__)
User = get_user_model()


def _get_or_404(queryset, message, **lookup):
    obj = queryset.filter(**lookup).first()
    if obj is None:
        raise NotFound(message)
    return obj


# Сохраняет объект сериализатора в отдельной транзакции. Нарушение уникального
# индекса (гонка двух одинаковых запросов) превращается в 400 с понятным текстом.
def _save_or_conflict(serializer, conflict_message, **kwargs):
    try:
        with transaction.atomic():
            return serializer.save(**kwargs)
    except IntegrityError:
        logger.warning(f"Integrity conflict on save: {conflict_message}")
        raise ValidationError(conflict_message)


def _students_by_id(student_ids):
    students = User.objects.filter(user_id__in=set(student_ids))
    return {student.user_id: student for student in students}


# --- Кафедры ---

# Класс DepartmentViewSet: чтение доступно любому аутентифицированному пользователю,
# изменения только администратору. Поиск по коду кафедры без учета регистра.
# Удаление каскадно затрагивает предметы, уроки и оценки кафедры.
class DepartmentViewSet(PolicyMixin, viewsets.ModelViewSet):
    queryset = Department.objects.all()
    serializer_class = DepartmentSerializer
    pagination_class = None
    lookup_field = 'department_id'
    lookup_value_regex = '[^/]+'
    http_method_names = ['get', 'post', 'put', 'delete', 'head', 'options']
    permission_policy = {
        'GET': [permissions.IsAuthenticated],
        '*': [IsAdmin],
    }
    permission_messages = {
        'POST': 'Unauthorized. Only admins can create departments.',
        'PUT': 'Unauthorized. Only admins can update departments.',
        'DELETE': 'Unauthorized. Only admins can delete departments.',
    }

    def get_object(self):
        return _get_or_404(
            self.get_queryset(), 'Department not found',
            department_id__iexact=self.kwargs['department_id'].strip()
        )

    def perform_create(self, serializer):
        department = _save_or_conflict(serializer, 'Department ID already exists')
        logger.info(f"Department {department.department_id} created by {self.request.user.user_id}")

    def update(self, request, *args, **kwargs):
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)

    def perform_update(self, serializer):
        department = _save_or_conflict(serializer, 'Department name already exists')
        logger.info(f"Department {department.department_id} updated by {self.request.user.user_id}")

    def destroy(self, request, *args, **kwargs):
        department = self.get_object()
        snapshot = self.get_serializer(department).data
        deleted_subjects = services.delete_department(department)
        return Response({
            'message': 'Department deleted successfully',
            'deletedDepartment': snapshot,
            'deletedSubjects': deleted_subjects,
        })


# --- Предметы ---

# Класс SubjectViewSet. Предмет адресуется кодом; удаление принимает и первичный
# ключ, и код. Создание и изменение доступны преподавателям и администраторам.
class SubjectViewSet(PolicyMixin, viewsets.ModelViewSet):
    queryset = Subject.objects.select_related('department')
    serializer_class = SubjectSerializer
    pagination_class = None
    filter_backends = [DjangoFilterBackend]
    filterset_class = SubjectFilter
    lookup_field = 'subject_code'
    lookup_value_regex = '[^/]+'
    http_method_names = ['get', 'post', 'put', 'delete', 'head', 'options']
    permission_policy = {
        'GET': [permissions.IsAuthenticated],
        '*': [IsLecturerOrAdmin],
    }
    permission_messages = {
        'POST': 'Unauthorized. Only admins and lecturers can create subjects.',
        'PUT': 'Unauthorized. Only admins and lecturers can update subjects.',
        'DELETE': 'Unauthorized. Only admins and lecturers can delete subjects.',
    }

    def get_object(self):
        value = self.kwargs['subject_code'].strip()
        queryset = self.get_queryset()
        if self.request.method == 'DELETE' and value.isdigit():
            subject = queryset.filter(pk=int(value)).first()
            if subject is not None:
                return subject
        return _get_or_404(queryset, 'Subject not found', subject_code__iexact=value)

    def perform_create(self, serializer):
        subject = _save_or_conflict(serializer, 'Subject code already exists')
        logger.info(f"Subject {subject.subject_code} created by {self.request.user.user_id}")

    def update(self, request, *args, **kwargs):
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)

    def perform_update(self, serializer):
        _save_or_conflict(serializer, 'Subject code already exists')

    def destroy(self, request, *args, **kwargs):
        subject = self.get_object()
        snapshot = self.get_serializer(subject).data
        services.delete_subject(subject)
        return Response({
            'message': 'Subject deleted successfully',
            'deletedSubject': snapshot,
        })

    def _department_subjects(self, department_id, **filters):
        department = _get_or_404(Department.objects.all(), 'Department not found',
                                 department_id__iexact=department_id.strip())
        subjects = self.get_queryset().filter(department=department, **filters)
        return Response(self.get_serializer(subjects, many=True).data)

    @action(detail=False, methods=['get'], url_path=r'department/(?P<department_id>[^/]+)')
    def by_department(self, request, department_id=None):
        return self._department_subjects(department_id)

    @action(
        detail=False, methods=['get'],
        url_path=r'department/(?P<department_id>[^/]+)/year/(?P<year>[0-9]+)/semester/(?P<semester>[0-9]+)'
    )
    def by_term(self, request, department_id=None, year=None, semester=None):
        return self._department_subjects(department_id, year=int(year), semester=int(semester))


# --- Уроки ---

# Класс LessonViewSet. Список возвращается целиком в конверте {success, data};
# создание, изменение и удаление только для администратора. Статус урока
# вычисляется моделью по счетчику загруженных частей.
class LessonViewSet(PolicyMixin, viewsets.ModelViewSet):
    queryset = Lesson.objects.select_related('department', 'subject')
    serializer_class = LessonSerializer
    pagination_class = None
    filter_backends = [DjangoFilterBackend]
    filterset_class = LessonFilter
    lookup_value_regex = r'\d+'
    http_method_names = ['get', 'post', 'put', 'delete', 'head', 'options']
    permission_policy = {
        'GET': [permissions.IsAuthenticated],
        '*': [IsAdmin],
    }
    permission_messages = {
        'POST': 'Unauthorized. Only admins can create lessons.',
        'PUT': 'Unauthorized. Only admins can update lessons.',
        'DELETE': 'Unauthorized. Only admins can delete lessons.',
    }

    def get_object(self):
        return _get_or_404(self.get_queryset(), 'Lesson not found', pk=self.kwargs['pk'])

    def list(self, request, *args, **kwargs):
        lessons = self.filter_queryset(self.get_queryset()).order_by('-created_at')
        return Response({'success': True, 'data': self.get_serializer(lessons, many=True).data})

    def retrieve(self, request, *args, **kwargs):
        return Response({'success': True, 'data': self.get_serializer(self.get_object()).data})

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        author = request.user.get_full_name() or 'Admin'
        lesson = _save_or_conflict(serializer, 'Lesson could not be created', author=author)
        logger.info(f"Lesson {lesson.pk} '{lesson.title}' created by {request.user.user_id}")
        return Response({
            'success': True,
            'message': 'Lesson created successfully',
            'data': self.get_serializer(lesson).data,
        }, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        lesson = _save_or_conflict(serializer, 'Lesson could not be updated')
        return Response({
            'success': True,
            'message': 'Lesson updated successfully',
            'data': self.get_serializer(lesson).data,
        })

    def destroy(self, request, *args, **kwargs):
        services.delete_lesson(self.get_object())
        return Response({
            'success': True,
            'message': 'Lesson and all its parts deleted successfully',
        })

    @action(detail=True, methods=['put'], url_path='increment-parts')
    def increment_parts(self, request, pk=None):
        lesson = services.increment_uploaded_parts(self.get_object())
        return Response({
            'success': True,
            'message': 'Parts count updated successfully',
            'data': self.get_serializer(lesson).data,
        })


# --- Части уроков ---

# Класс LessonPartViewSet обслуживает /api/lesson-parts/. GET по идентификатору
# возвращает все части урока с этим идентификатором (lessonId), а PUT и DELETE
# работают с самой частью.
class LessonPartViewSet(PolicyMixin,
                        mixins.CreateModelMixin,
                        mixins.RetrieveModelMixin,
                        mixins.UpdateModelMixin,
                        mixins.DestroyModelMixin,
                        viewsets.GenericViewSet):
    queryset = LessonPart.objects.select_related('lesson')
    serializer_class = LessonPartSerializer
    pagination_class = None
    lookup_value_regex = r'\d+'
    http_method_names = ['get', 'post', 'put', 'delete', 'head', 'options']
    permission_policy = {
        'GET': [permissions.IsAuthenticated],
        '*': [IsAdmin],
    }
    permission_messages = {
        'POST': 'Unauthorized. Only admins can create lesson parts.',
        'PUT': 'Unauthorized. Only admins can update lesson parts.',
        'DELETE': 'Unauthorized. Only admins can delete lesson parts.',
    }

    def get_object(self):
        return _get_or_404(self.get_queryset(), 'Lesson part not found', pk=self.kwargs['pk'])

    def retrieve(self, request, *args, **kwargs):
        parts = self.get_queryset().filter(lesson_id=self.kwargs['pk']).order_by('part_number')
        return Response({'success': True, 'data': self.get_serializer(parts, many=True).data})

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        part = _save_or_conflict(serializer, 'Part number already exists for this lesson')
        logger.info(f"Lesson part {part.part_number} created for lesson {part.lesson_id}")
        return Response({
            'success': True,
            'message': 'Lesson part created successfully',
            'data': self.get_serializer(part).data,
        }, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        part = _save_or_conflict(serializer, 'Part number already exists for this lesson')
        return Response({
            'success': True,
            'message': 'Lesson part updated successfully',
            'data': self.get_serializer(part).data,
        })

    def destroy(self, request, *args, **kwargs):
        part = self.get_object()
        part.delete()
        return Response({'success': True, 'message': 'Lesson part deleted successfully'})


# Вложенный список частей: /api/lessons/<lesson_pk>/parts/.
class LessonPartsOfLessonViewSet(PolicyMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = LessonPartSerializer
    pagination_class = None
    lookup_value_regex = r'\d+'
    permission_policy = {'GET': [permissions.IsAuthenticated]}

    def get_queryset(self):
        return LessonPart.objects.filter(lesson_id=self.kwargs['lesson_pk']).order_by('part_number')

    def get_object(self):
        return _get_or_404(self.get_queryset(), 'Lesson part not found', pk=self.kwargs['pk'])

    def list(self, request, *args, **kwargs):
        _get_or_404(Lesson.objects.all(), 'Lesson not found', pk=self.kwargs['lesson_pk'])
        return Response({'success': True, 'data': self.get_serializer(self.get_queryset(), many=True).data})


# --- Материалы ---

# Класс MaterialViewSet. Загружать материалы могут преподаватели и администраторы,
# изменять (только название) и удалять загрузивший пользователь или администратор.
class MaterialViewSet(PolicyMixin, viewsets.ModelViewSet):
    queryset = Material.objects.select_related('subject', 'uploaded_by')
    serializer_class = MaterialSerializer
    pagination_class = None
    filter_backends = [DjangoFilterBackend]
    filterset_class = MaterialFilter
    lookup_value_regex = r'\d+'
    http_method_names = ['get', 'post', 'put', 'delete', 'head', 'options']
    permission_policy = {
        'GET': [permissions.IsAuthenticated],
        'POST': [IsLecturerOrAdmin],
        'PUT': [IsUploaderOrAdmin],
        'DELETE': [IsUploaderOrAdmin],
    }
    permission_messages = {
        'POST': 'Unauthorized. Only admins and lecturers can upload materials.',
        'PUT': 'Unauthorized. Only admins or the original uploader can update materials.',
        'DELETE': 'Unauthorized. Only admins or the original uploader can delete materials.',
    }

    def get_object(self):
        material = _get_or_404(self.get_queryset(), 'Material not found', pk=self.kwargs['pk'])
        self.check_object_permissions(self.request, material)
        return material

    def perform_create(self, serializer):
        material = _save_or_conflict(
            serializer, 'Material with this path already exists', uploaded_by=self.request.user
        )
        logger.info(f"Material {material.pk} '{material.name}' uploaded by {self.request.user.user_id}")

    def update(self, request, *args, **kwargs):
        material = self.get_object()
        serializer = MaterialUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        material.name = serializer.validated_data['name'].strip()
        material.save(update_fields=['name', 'updated_at'])
        return Response(self.get_serializer(material).data)

    def destroy(self, request, *args, **kwargs):
        material = self.get_object()
        logger.info(f"Material {material.pk} deleted by {request.user.user_id}")
        material.delete()
        return Response({'message': 'Material deleted successfully'})

    @action(detail=False, methods=['get'], url_path=r'subject/(?P<subject_id>\d+)')
    def by_subject(self, request, subject_id=None):
        materials = self.get_queryset().filter(subject_id=subject_id)
        if not materials.exists():
            raise NotFound('No materials found for this subject')
        return Response(self.get_serializer(materials, many=True).data)


# --- Оценки ---

class MarkPagination(EnvelopePagination):
    page_size = 50


# Класс MarkViewSet. Выставление оценки работает как upsert по ключу
# (студент, предмет, семестр, курс, учебный год). Студенты в любой выборке
# видят только свои оценки; оценки конкретного студента доступны ему самому,
# преподавателям и администраторам.
class MarkViewSet(PolicyMixin,
                  mixins.ListModelMixin,
                  mixins.CreateModelMixin,
                  mixins.DestroyModelMixin,
                  viewsets.GenericViewSet):
    queryset = Mark.objects.select_related('department', 'subject')
    serializer_class = MarkSerializer
    pagination_class = MarkPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = MarkFilter
    lookup_value_regex = r'\d+'
    self_lookup_url_kwarg = 'student_id'
    permission_policy = {
        'student': [OrPermissions(IsSelfOrAdmin, IsLecturerOrAdmin)],
        'GET': [permissions.IsAuthenticated],
        '*': [IsLecturerOrAdmin],
    }
    permission_messages = {
        'POST': 'Unauthorized. Only admins and lecturers can manage marks.',
        'DELETE': 'Unauthorized. Only admins and lecturers can delete marks.',
    }

    def get_stats_service(self):
        return MarksStatsService(self.request.system_settings.passing_percentage)

    def get_queryset(self):
        queryset = super().get_queryset()
        if getattr(self.request.user, 'is_student', False):
            queryset = queryset.filter(student_id=self.request.user.user_id)
        return queryset

    def get_object(self):
        return _get_or_404(self.get_queryset(), 'Marks not found', pk=self.kwargs['pk'])

    def list(self, request, *args, **kwargs):
        marks = self.filter_queryset(self.get_queryset()).order_by('-created_at')
        page = self.paginate_queryset(marks)
        context = self.get_serializer_context()
        context['students'] = _students_by_id(mark.student_id for mark in page)
        serializer = MarkSerializer(page, many=True, context=context)
        return self.get_paginated_response(serializer.data)

    def create(self, request, *args, **kwargs):
        serializer = MarkInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        student = _get_or_404(User.objects.all(), 'Student not found',
                              user_id=data['studentId'], role=User.Role.STUDENT)
        department = _get_or_404(Department.objects.all(), 'Department not found',
                                 department_id__iexact=data['departmentId'])
        subject = _get_or_404(Subject.objects.all(), 'Subject not found', pk=data['subjectId'])
        if student.department.upper() != department.department_id:
            raise ValidationError('Student does not belong to the selected department')

        academic_year = data.get('academicYear') or request.system_settings.current_academic_year
        try:
            mark, created = services.upsert_mark(
                student_id=student.user_id,
                department=department,
                subject=subject,
                semester=data['semester'],
                year=data['year'],
                academic_year=academic_year,
                assignment_marks=data['assignmentMarks'],
                exam_marks=data['examMarks'],
                added_by=request.user.user_id,
                remarks=data.get('remarks', ''),
            )
        except IntegrityError:
            raise ValidationError('Marks already exist for this student-subject combination')

        context = self.get_serializer_context()
        context['students'] = {student.user_id: student}
        return Response({
            'success': True,
            'message': 'Marks added successfully' if created else 'Marks updated successfully',
            'data': MarkSerializer(mark, context=context).data,
        }, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        mark = self.get_object()
        deleted = {'id': mark.pk, 'studentId': mark.student_id, 'subject': mark.subject_id}
        mark.delete()
        logger.info(f"Marks {deleted['id']} of student {deleted['studentId']} deleted by {request.user.user_id}")
        return Response({
            'success': True,
            'message': 'Marks deleted successfully',
            'deletedMark': deleted,
        })

    @action(detail=False, methods=['get'])
    def statistics(self, request):
        marks = self.filter_queryset(self.get_queryset())
        return Response({'success': True, 'data': self.get_stats_service().overview(marks)})

    @action(detail=False, methods=['get'], url_path=r'student/(?P<student_id>[^/]+)')
    def student(self, request, student_id=None):
        student = _get_or_404(User.objects.all(), 'Student not found', user_id=student_id, role=User.Role.STUDENT)
        marks = (
            self.filter_queryset(self.get_queryset().filter(student_id=student.user_id))
            .order_by('year', 'semester', '-created_at')
        )
        return Response({
            'success': True,
            'data': {
                'student': {
                    'userId': student.user_id,
                    'firstName': student.first_name,
                    'lastName': student.last_name,
                    'email': student.email,
                    'department': student.department,
                },
                'marks': self.get_serializer(marks, many=True).data,
                'statistics': self.get_stats_service().student_summary(marks),
            },
        })

    @action(detail=False, methods=['get'], url_path=r'subject/(?P<subject_id>\d+)')
    def subject(self, request, subject_id=None):
        subject = _get_or_404(Subject.objects.all(), 'Subject not found', pk=subject_id)
        marks = self.filter_queryset(self.get_queryset().filter(subject=subject)).order_by('-total_marks')
        context = self.get_serializer_context()
        context['students'] = _students_by_id(marks.values_list('student_id', flat=True))
        return Response({
            'success': True,
            'data': {
                'subject': SubjectBriefSerializer(subject).data,
                'marks': MarkSerializer(marks, many=True, context=context).data,
                'statistics': self.get_stats_service().subject_summary(marks),
            },
        })
