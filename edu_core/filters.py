import django_filters

from .models import Lesson, Mark, Material, Subject


# Класс SubjectFilter фильтрует предметы по коду кафедры (без учета регистра),
# курсу и семестру: `?department=CS&year=2&semester=1`.
class SubjectFilter(django_filters.FilterSet):
    department = django_filters.CharFilter(field_name='department_code', lookup_expr='iexact')
    year = django_filters.NumberFilter()
    semester = django_filters.NumberFilter()

    class Meta:
        model = Subject
        fields = ['department', 'year', 'semester']


# Класс LessonFilter: `department` и `subject` принимают первичные ключи,
# `status` ограничен значениями draft/published.
class LessonFilter(django_filters.FilterSet):
    department = django_filters.NumberFilter(field_name='department_id')
    subject = django_filters.NumberFilter(field_name='subject_id')
    status = django_filters.ChoiceFilter(choices=Lesson.Status.choices)

    class Meta:
        model = Lesson
        fields = ['department', 'subject', 'status']


class MaterialFilter(django_filters.FilterSet):
    subject = django_filters.NumberFilter(field_name='subject_id')
    type = django_filters.ChoiceFilter(choices=Material.MaterialType.choices)

    class Meta:
        model = Material
        fields = ['subject', 'type']


# Класс MarkFilter повторяет параметры списка оценок:
# - `studentId`: userId студента;
# - `departmentId`: код кафедры без учета регистра;
# - `subjectId`: первичный ключ предмета;
# - `semester`, `year`, `academicYear`: точное совпадение.
class MarkFilter(django_filters.FilterSet):
    studentId = django_filters.CharFilter(field_name='student_id')
    departmentId = django_filters.CharFilter(field_name='department_code', lookup_expr='iexact')
    subjectId = django_filters.NumberFilter(field_name='subject_id')
    semester = django_filters.NumberFilter()
    year = django_filters.NumberFilter()
    academicYear = django_filters.CharFilter(field_name='academic_year')

    class Meta:
        model = Mark
        fields = ['studentId', 'departmentId', 'subjectId', 'semester', 'year', 'academicYear']
