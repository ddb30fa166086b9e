import logging

from django.db import transaction
from django.db.models import Case, F, Value, When

from .models import Lesson, LessonPart, Mark, Material, Subject

logger = logging.getLogger(__name__)


# Каскадные удаления выполняются явно: сначала зависимые записи, затем родитель,
# все в одной транзакции. Внешние ключи объявлены с on_delete=PROTECT, поэтому
# удалить родителя в обход этих функций нельзя.

def delete_lesson(lesson):
    """Удаляет урок вместе со всеми его частями. Возвращает число удаленных частей."""
    with transaction.atomic():
        parts_deleted, _ = LessonPart.objects.filter(lesson=lesson).delete()
        lesson_id = lesson.pk
        lesson.delete()
    logger.info(f"Lesson {lesson_id} deleted with {parts_deleted} parts")
    return parts_deleted


def _delete_lessons(queryset):
    with transaction.atomic():
        LessonPart.objects.filter(lesson__in=queryset).delete()
        deleted, _ = queryset.delete()
    return deleted


def delete_all_lessons():
    return _delete_lessons(Lesson.objects.all())


# Удаление предмета затрагивает его уроки (с частями), материалы и оценки.
def delete_subject(subject):
    with transaction.atomic():
        lessons_deleted = _delete_lessons(Lesson.objects.filter(subject=subject))
        materials_deleted, _ = Material.objects.filter(subject=subject).delete()
        marks_deleted, _ = Mark.objects.filter(subject=subject).delete()
        subject_code = subject.subject_code
        subject.delete()
    logger.info(
        f"Subject {subject_code} deleted with {lessons_deleted} lessons, "
        f"{materials_deleted} materials and {marks_deleted} marks"
    )
    return {'lessons': lessons_deleted, 'materials': materials_deleted, 'marks': marks_deleted}


# Удаление кафедры каскадно удаляет ее предметы, уроки и оценки.
def delete_department(department):
    with transaction.atomic():
        _delete_lessons(Lesson.objects.filter(department=department))
        Mark.objects.filter(department=department).delete()
        subjects = list(Subject.objects.filter(department=department))
        for subject in subjects:
            delete_subject(subject)
        department_code = department.department_id
        department.delete()
    logger.info(f"Department {department_code} deleted with {len(subjects)} subjects")
    return len(subjects)


# Атомарно увеличивает счетчик загруженных частей одним UPDATE и в том же запросе
# пересчитывает статус, чтобы параллельные загрузки не теряли инкременты.
def increment_uploaded_parts(lesson):
    Lesson.objects.filter(pk=lesson.pk).update(
        uploaded_parts=F('uploaded_parts') + 1,
        status=Case(
            When(total_parts__lte=F('uploaded_parts') + 1, then=Value(Lesson.Status.PUBLISHED)),
            default=Value(Lesson.Status.DRAFT),
        ),
    )
    lesson.refresh_from_db()
    if lesson.status == Lesson.Status.PUBLISHED:
        logger.info(f"Lesson {lesson.pk} published: {lesson.uploaded_parts}/{lesson.total_parts} parts uploaded")
    return lesson


# Вставка или обновление оценки по естественному ключу
# (student_id, subject, semester, year, academic_year). Возвращает (mark, created).
def upsert_mark(*, student_id, department, subject, semester, year, academic_year,
                assignment_marks, exam_marks, added_by, remarks=''):
    with transaction.atomic():
        mark = Mark.objects.select_for_update().filter(
            student_id=student_id,
            subject=subject,
            semester=semester,
            year=year,
            academic_year=academic_year,
        ).first()
        created = mark is None
        if created:
            mark = Mark(
                student_id=student_id,
                department=department,
                subject=subject,
                semester=semester,
                year=year,
                academic_year=academic_year,
            )
        mark.assignment_marks = assignment_marks
        mark.exam_marks = exam_marks
        mark.added_by = added_by
        mark.remarks = remarks or ''
        mark.save()
    logger.info(
        f"Marks {'added' if created else 'updated'} for student {student_id}, "
        f"subject {subject.subject_code}: {mark.total_marks} ({mark.grade})"
    )
    return mark, created
