from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from . import services
from .models import Department, Lesson, LessonPart, Mark, Material, Subject


# --- Кафедры и предметы ---

# Класс DepartmentAdmin. Внешние ключи объявлены с PROTECT, поэтому удаление
# из админки идет через сервисный слой с явным каскадом.
@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ('department_id', 'name', 'created_at')
    search_fields = ('department_id', 'name')
    ordering = ('department_id',)
    readonly_fields = ('created_at', 'updated_at')

    def delete_model(self, request, obj):
        services.delete_department(obj)

    def delete_queryset(self, request, queryset):
        for department in queryset:
            services.delete_department(department)


# Класс SubjectAdmin настраивает отображение предметов.
# - list_filter: кафедра, курс и семестр.
# - list_select_related: оптимизация для поля 'department'.
@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ('subject_code', 'subject_name', 'department', 'year', 'semester', 'credits', 'lecturer')
    list_filter = ('department', 'year', 'semester')
    search_fields = ('subject_code', 'subject_name', 'lecturer')
    list_select_related = ('department',)
    readonly_fields = ('department_code', 'created_at', 'updated_at')

    def delete_model(self, request, obj):
        services.delete_subject(obj)

    def delete_queryset(self, request, queryset):
        for subject in queryset:
            services.delete_subject(subject)


# --- Уроки ---

class LessonPartInline(admin.TabularInline):
    model = LessonPart
    fields = ('part_number', 'title', 'file_url', 'is_locked')
    extra = 0


@admin.register(Lesson)
class LessonAdmin(admin.ModelAdmin):
    list_display = ('title', 'subject', 'department', 'type', 'status', 'get_progress', 'created_at')
    list_filter = ('status', 'type', 'department')
    search_fields = ('title', 'subject__subject_code', 'author')
    list_select_related = ('subject', 'department')
    readonly_fields = ('status', 'created_at', 'updated_at')
    inlines = [LessonPartInline]

    @admin.display(description=_('Загружено частей'))
    def get_progress(self, obj):
        return f"{obj.uploaded_parts}/{obj.total_parts}"

    def delete_model(self, request, obj):
        services.delete_lesson(obj)

    def delete_queryset(self, request, queryset):
        for lesson in queryset:
            services.delete_lesson(lesson)


@admin.register(Material)
class MaterialAdmin(admin.ModelAdmin):
    list_display = ('name', 'type', 'subject', 'uploaded_by', 'size', 'created_at')
    list_filter = ('type',)
    search_fields = ('name', 'path')
    list_select_related = ('subject', 'uploaded_by')


# Класс MarkAdmin: итоговый балл и оценка вычисляются моделью и доступны только для чтения.
@admin.register(Mark)
class MarkAdmin(admin.ModelAdmin):
    list_display = ('student_id', 'subject', 'assignment_marks', 'exam_marks', 'total_marks', 'grade',
                    'semester', 'year', 'academic_year')
    list_filter = ('grade', 'academic_year', 'semester', 'department')
    search_fields = ('student_id', 'subject__subject_code')
    list_select_related = ('subject',)
    readonly_fields = ('total_marks', 'grade', 'department_code', 'created_at', 'updated_at')
