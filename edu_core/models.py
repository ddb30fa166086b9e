from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from .grading import grade_marks


# Модель Department представляет кафедру. Код кафедры (department_id) хранится
# в верхнем регистре; код и название уникальны (регистронезависимая проверка
# выполняется в сериализаторе, уникальный индекс страхует от гонок).
class Department(models.Model):
    department_id = models.CharField(_('код кафедры'), max_length=20, unique=True)
    name = models.CharField(_('название'), max_length=255, unique=True)
    description = models.TextField(_('описание'), blank=True, default='')
    image_url = models.CharField(_('изображение'), max_length=500, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('кафедра')
        verbose_name_plural = _('кафедры')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.department_id} - {self.name}"

    def save(self, *args, **kwargs):
        self.department_id = self.department_id.strip().upper()
        self.name = self.name.strip()
        super().save(*args, **kwargs)


# Модель Subject представляет учебный предмет кафедры. Помимо внешнего ключа
# хранится денормализованный код кафедры (department_code), который синхронизируется
# при каждом сохранении. Преподаватель задается его user_id.
class Subject(models.Model):
    subject_code = models.CharField(_('код предмета'), max_length=20, unique=True)
    subject_name = models.CharField(_('название предмета'), max_length=255)
    department = models.ForeignKey(
        Department,
        on_delete=models.PROTECT,
        related_name='subjects',
        verbose_name=_('кафедра')
    )
    department_code = models.CharField(_('код кафедры'), max_length=20, db_index=True, editable=False)
    year = models.PositiveSmallIntegerField(
        _('курс'), validators=[MinValueValidator(1), MaxValueValidator(4)]
    )
    semester = models.PositiveSmallIntegerField(
        _('семестр'), validators=[MinValueValidator(1), MaxValueValidator(2)]
    )
    credits = models.PositiveSmallIntegerField(
        _('кредиты'), validators=[MinValueValidator(1), MaxValueValidator(10)]
    )
    lecturer = models.CharField(_('преподаватель (userId)'), max_length=50, blank=True, default='', db_index=True)
    description = models.TextField(_('описание'), blank=True, default='')
    learning_outcomes = models.JSONField(_('результаты обучения'), default=list, blank=True)
    syllabus = models.TextField(_('программа'), blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('предмет')
        verbose_name_plural = _('предметы')
        ordering = ['year', 'semester', 'subject_code']

    def __str__(self):
        return f"{self.subject_code} - {self.subject_name}"

    def save(self, *args, **kwargs):
        self.subject_code = self.subject_code.strip().upper()
        self.department_code = self.department.department_id
        super().save(*args, **kwargs)


# Модель Lesson описывает урок из нескольких частей. Статус не задается клиентом:
# урок опубликован ровно тогда, когда загружены все объявленные части
# (uploaded_parts >= total_parts). Статус пересчитывается при каждом сохранении.
class Lesson(models.Model):
    class LessonType(models.TextChoices):
        VIDEO = 'video', _('Видео')
        PDF = 'pdf', _('PDF')

    class Status(models.TextChoices):
        DRAFT = 'draft', _('Черновик')
        PUBLISHED = 'published', _('Опубликован')

    title = models.CharField(_('название'), max_length=255)
    description = models.TextField(_('описание'), blank=True, default='')
    department = models.ForeignKey(
        Department,
        on_delete=models.PROTECT,
        related_name='lessons',
        verbose_name=_('кафедра')
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.PROTECT,
        related_name='lessons',
        verbose_name=_('предмет')
    )
    total_parts = models.PositiveSmallIntegerField(
        _('всего частей'), validators=[MinValueValidator(1), MaxValueValidator(20)]
    )
    uploaded_parts = models.PositiveSmallIntegerField(_('загружено частей'), default=0)
    type = models.CharField(_('тип'), max_length=10, choices=LessonType.choices)
    status = models.CharField(_('статус'), max_length=10, choices=Status.choices, default=Status.DRAFT)
    author = models.CharField(_('автор'), max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('урок')
        verbose_name_plural = _('уроки')
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    @property
    def is_complete(self):
        return self.uploaded_parts >= self.total_parts

    def save(self, *args, **kwargs):
        self.status = self.Status.PUBLISHED if self.is_complete else self.Status.DRAFT
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'status' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['status']
        super().save(*args, **kwargs)


# Модель LessonPart: часть урока с файлом и необязательными вопросами теста.
# Пара (lesson, part_number) уникальна. Вопросы хранятся списком словарей
# {question, options, correctAnswer, explanation} и валидируются в сериализаторе.
class LessonPart(models.Model):
    lesson = models.ForeignKey(
        Lesson,
        on_delete=models.PROTECT,
        related_name='parts',
        verbose_name=_('урок')
    )
    part_number = models.PositiveSmallIntegerField(_('номер части'), validators=[MinValueValidator(1)])
    title = models.CharField(_('название'), max_length=255)
    file_path = models.CharField(_('путь к файлу'), max_length=500)
    file_url = models.CharField(_('URL файла'), max_length=1000)
    file_type = models.CharField(_('тип файла'), max_length=100)
    file_size = models.PositiveBigIntegerField(_('размер файла'))
    questions = models.JSONField(_('вопросы'), default=list, blank=True)
    is_locked = models.BooleanField(_('заблокирована'), default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('часть урока')
        verbose_name_plural = _('части уроков')
        ordering = ['lesson', 'part_number']
        constraints = [
            models.UniqueConstraint(fields=['lesson', 'part_number'], name='unique_lesson_part_number'),
        ]

    def __str__(self):
        return f"{self.lesson.title} - часть {self.part_number}"


# Модель Material хранит метаданные загруженного материала по предмету.
# Сам файл находится во внешнем хранилище, здесь только путь, URL и размер.
class Material(models.Model):
    class MaterialType(models.TextChoices):
        PDF = 'pdf', 'PDF'
        VIDEO = 'video', _('Видео')
        IMAGE = 'image', _('Изображение')
        DOCUMENT = 'document', _('Документ')
        OTHER = 'other', _('Другое')
        JPG = 'jpg', 'JPG'
        PNG = 'png', 'PNG'

    name = models.CharField(_('название'), max_length=255)
    path = models.CharField(_('путь'), max_length=500, unique=True)
    url = models.CharField(_('URL'), max_length=1000)
    type = models.CharField(_('тип'), max_length=20, choices=MaterialType.choices)
    subject = models.ForeignKey(
        Subject,
        on_delete=models.PROTECT,
        related_name='materials',
        verbose_name=_('предмет')
    )
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='uploaded_materials',
        verbose_name=_('загрузил')
    )
    size = models.PositiveBigIntegerField(_('размер (байт)'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('материал')
        verbose_name_plural = _('материалы')
        ordering = ['-created_at']

    def __str__(self):
        return self.name


# Модель Mark: оценка студента по предмету. Итоговый балл и буквенная оценка
# всегда пересчитываются в save() из баллов за задания и экзамен; значения клиента
# игнорируются. Одна запись на (студент, предмет, семестр, курс, учебный год).
class Mark(models.Model):
    student_id = models.CharField(_('студент (userId)'), max_length=50, db_index=True)
    department = models.ForeignKey(
        Department,
        on_delete=models.PROTECT,
        related_name='marks',
        verbose_name=_('кафедра')
    )
    department_code = models.CharField(_('код кафедры'), max_length=20, db_index=True, editable=False)
    subject = models.ForeignKey(
        Subject,
        on_delete=models.PROTECT,
        related_name='marks',
        verbose_name=_('предмет')
    )
    assignment_marks = models.FloatField(
        _('баллы за задания'), validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    exam_marks = models.FloatField(
        _('баллы за экзамен'), validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    total_marks = models.FloatField(_('итоговый балл'), editable=False)
    grade = models.CharField(_('оценка'), max_length=2, editable=False)
    semester = models.PositiveSmallIntegerField(
        _('семестр'), validators=[MinValueValidator(1), MaxValueValidator(2)]
    )
    year = models.PositiveSmallIntegerField(
        _('курс'), validators=[MinValueValidator(1), MaxValueValidator(4)]
    )
    academic_year = models.CharField(_('учебный год'), max_length=20)
    added_by = models.CharField(_('кем выставлено'), max_length=50)
    remarks = models.TextField(_('примечание'), blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('оценка')
        verbose_name_plural = _('оценки')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['student_id', 'subject', 'semester', 'year', 'academic_year'],
                name='unique_mark_per_student_subject_term'
            ),
        ]
        indexes = [
            models.Index(fields=['department', 'academic_year']),
        ]

    def __str__(self):
        return f"{self.student_id} - {self.subject_id}: {self.grade}"

    def save(self, *args, **kwargs):
        self.total_marks, self.grade = grade_marks(self.assignment_marks, self.exam_marks)
        self.department_code = self.department.department_id
        super().save(*args, **kwargs)
