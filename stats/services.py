import logging
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db.models import Avg, Count, Max, Min
from django.db.models.functions import ExtractMonth, ExtractYear
from django.utils import timezone
from rest_framework.exceptions import NotFound

from edu_core.grading import GRADE_ORDER, pass_threshold
from edu_core.models import Department, Lesson, Mark, Material, Subject
from news.models import News

logger = logging.getLogger(__name__)
User = get_user_model()


def format_decimal(value):
    return f"{value or 0:.2f}"


def grade_distribution(marks):
    """Количество оценок по буквам, от лучшей к худшей; пустые буквы не включаются."""
    counts = dict(marks.order_by().values_list('grade').annotate(count=Count('id')))
    return {grade: counts[grade] for grade in GRADE_ORDER if counts.get(grade)}


# Функция summarize_marks считает описательную статистику по набору оценок
# одним агрегирующим запросом. Средний балл и процент сдавших возвращаются
# строками с двумя знаками после запятой.
def summarize_marks(marks, passing_percentage=50):
    marks = marks.order_by()
    totals = marks.aggregate(
        count=Count('id'),
        average=Avg('total_marks'),
        highest=Max('total_marks'),
        lowest=Min('total_marks'),
    )
    count = totals['count']
    passed = marks.filter(total_marks__gte=pass_threshold(passing_percentage)).count() if count else 0
    return {
        'count': count,
        'averageMarks': format_decimal(totals['average']),
        'highestMarks': totals['highest'] or 0,
        'lowestMarks': totals['lowest'] or 0,
        'passRate': format_decimal(passed * 100 / count if count else 0),
        'gradeDistribution': grade_distribution(marks),
    }


# Класс MarksStatsService собирает сводки для эндпоинтов оценок.
# Проходной порог берется из академических настроек системы.
class MarksStatsService:
    def __init__(self, passing_percentage=50):
        self.passing_percentage = passing_percentage

    def student_summary(self, marks):
        summary = summarize_marks(marks, self.passing_percentage)
        return {
            'totalSubjects': summary['count'],
            'averageMarks': summary['averageMarks'],
            'highestMarks': summary['highestMarks'],
            'lowestMarks': summary['lowestMarks'],
            'gradeDistribution': summary['gradeDistribution'],
        }

    def subject_summary(self, marks):
        summary = summarize_marks(marks, self.passing_percentage)
        return {
            'totalStudents': marks.order_by().values('student_id').distinct().count(),
            'averageMarks': summary['averageMarks'],
            'highestMarks': summary['highestMarks'],
            'lowestMarks': summary['lowestMarks'],
            'passRate': summary['passRate'],
            'gradeDistribution': summary['gradeDistribution'],
        }

    # Общая статистика по набору оценок с разбивкой по кафедрам и предметам.
    def overview(self, marks):
        summary = summarize_marks(marks, self.passing_percentage)
        stats = {
            'totalMarksRecords': summary['count'],
            'totalStudents': marks.order_by().values('student_id').distinct().count(),
            'totalSubjects': marks.order_by().values('subject_id').distinct().count(),
            'averageMarks': summary['averageMarks'],
            'passRate': summary['passRate'],
            'gradeDistribution': summary['gradeDistribution'],
            'departmentWiseStats': {},
            'subjectWiseStats': {},
        }

        department_codes = marks.order_by('department_code').values_list('department_code', flat=True).distinct()
        for code in department_codes:
            department_summary = summarize_marks(marks.filter(department_code=code), self.passing_percentage)
            stats['departmentWiseStats'][code] = {
                'totalRecords': department_summary['count'],
                'averageMarks': department_summary['averageMarks'],
                'passRate': department_summary['passRate'],
            }

        subjects = Subject.objects.filter(pk__in=marks.order_by().values('subject_id')).order_by('subject_code')
        for subject in subjects:
            subject_summary = summarize_marks(marks.filter(subject=subject), self.passing_percentage)
            stats['subjectWiseStats'][subject.subject_code] = {
                'subjectName': subject.subject_name,
                'totalRecords': subject_summary['count'],
                'averageMarks': subject_summary['averageMarks'],
                'passRate': subject_summary['passRate'],
            }
        return stats


def _department_for(user):
    department = Department.objects.filter(department_id__iexact=user.department).first()
    if department is None:
        logger.warning(f"Department {user.department!r} of user {user.user_id} not found")
        raise NotFound('Department not found')
    return department


# Класс StudentDashboardService отдает данные личного кабинета студента.
# Все выборки ограничены кафедрой студента.
class StudentDashboardService:
    recent_limit = 10
    news_limit = 5

    def __init__(self, user_id):
        self.student = User.objects.filter(user_id=user_id, role=User.Role.STUDENT).first()
        if self.student is None:
            raise NotFound('Student not found')

    def get_subjects(self):
        return Subject.objects.filter(department=_department_for(self.student)).select_related('department')

    def get_lessons(self):
        return (
            Lesson.objects.filter(department=_department_for(self.student), status=Lesson.Status.PUBLISHED)
            .select_related('department', 'subject')
            .order_by('-created_at')[:self.recent_limit]
        )

    def get_materials(self):
        department = _department_for(self.student)
        return (
            Material.objects.filter(subject__department=department)
            .select_related('subject', 'uploaded_by')
            .order_by('-created_at')[:self.recent_limit]
        )

    def get_stats(self):
        department = _department_for(self.student)
        average = Mark.objects.filter(student_id=self.student.user_id).aggregate(avg=Avg('total_marks'))['avg']
        return {
            'enrolledSubjects': Subject.objects.filter(department=department).count(),
            'availableLessons': Lesson.objects.filter(department=department, status=Lesson.Status.PUBLISHED).count(),
            'totalMaterials': Material.objects.filter(subject__department=department).count(),
            'averageGrade': format_decimal(average),
        }

    def get_news(self):
        return News.objects.filter(status=News.Status.PUBLISHED).order_by('-created_at')[:self.news_limit]


# Класс LecturerDashboardService: предметы преподавателя определяются полем
# Subject.lecturer, уроки и материалы берутся по этим предметам, студенты по кафедре.
class LecturerDashboardService:
    def __init__(self, user_id):
        self.lecturer = User.objects.filter(user_id=user_id, role=User.Role.LECTURER).first()
        if self.lecturer is None:
            raise NotFound('Lecturer not found')

    def get_subjects(self):
        return (
            Subject.objects.filter(lecturer=self.lecturer.user_id)
            .select_related('department')
            .order_by('year', 'semester')
        )

    def get_students(self):
        return User.objects.filter(role=User.Role.STUDENT, department__iexact=self.lecturer.department)

    def get_lessons(self):
        return (
            Lesson.objects.filter(subject__lecturer=self.lecturer.user_id)
            .select_related('department', 'subject')
            .order_by('-created_at')
        )

    def get_materials(self):
        return (
            Material.objects.filter(subject__lecturer=self.lecturer.user_id)
            .select_related('subject', 'uploaded_by')
            .order_by('-created_at')
        )

    def get_stats(self):
        return {
            'totalSubjects': self.get_subjects().count(),
            'totalStudents': self.get_students().count(),
            'totalMaterials': self.get_materials().count(),
            'totalLessons': self.get_lessons().count(),
        }


# Класс PlatformStatsService собирает сводку по системе для панели администратора.
class PlatformStatsService:
    registration_months = 6
    recent_limit = 5

    def get_overview(self):
        return {
            'totalUsers': User.objects.count(),
            'totalStudents': User.objects.filter(role=User.Role.STUDENT).count(),
            'totalLecturers': User.objects.filter(role=User.Role.LECTURER).count(),
            'totalAdmins': User.objects.filter(role=User.Role.ADMIN).count(),
            'totalDepartments': Department.objects.count(),
            'totalSubjects': Subject.objects.count(),
            'totalLessons': Lesson.objects.count(),
            'totalNews': News.objects.count(),
        }

    def get_department_stats(self):
        department_stats = []
        for department in Department.objects.annotate(subject_count=Count('subjects')):
            members = User.objects.filter(department__iexact=department.department_id)
            department_stats.append({
                'department': department.name,
                'departmentId': department.department_id,
                'students': members.filter(role=User.Role.STUDENT).count(),
                'lecturers': members.filter(role=User.Role.LECTURER).count(),
                'subjects': department.subject_count,
            })
        return department_stats

    # Регистрации по месяцам за последние полгода, по возрастанию даты.
    def get_monthly_registrations(self):
        since = timezone.now() - timedelta(days=self.registration_months * 30)
        rows = (
            User.objects.filter(date_joined__gte=since)
            .annotate(year=ExtractYear('date_joined'), month=ExtractMonth('date_joined'))
            .values('year', 'month')
            .annotate(count=Count('id'))
            .order_by('year', 'month')
        )
        return [{'year': row['year'], 'month': row['month'], 'count': row['count']} for row in rows]

    def get_recent_users(self):
        return User.objects.order_by('-date_joined')[:self.recent_limit]

    def get_recent_lessons(self):
        return Lesson.objects.select_related('department', 'subject').order_by('-created_at')[:self.recent_limit]
