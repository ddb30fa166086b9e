from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework.exceptions import NotFound

from users.serializers import UserBriefSerializer
from .grading import InvalidScoreError, validate_score
from .models import Department, Lesson, LessonPart, Mark, Material, Subject

User = get_user_model()


# --- Кафедры ---

class DepartmentBriefSerializer(serializers.ModelSerializer):
    departmentId = serializers.CharField(source='department_id', read_only=True)

    class Meta:
        model = Department
        fields = ('id', 'departmentId', 'name')
        read_only_fields = fields


# Класс DepartmentSerializer сериализует кафедру. Код и название обязательны при
# создании и уникальны без учета регистра; код кафедры после создания не меняется.
class DepartmentSerializer(serializers.ModelSerializer):
    departmentId = serializers.CharField(source='department_id', max_length=20, required=False)
    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    imageUrl = serializers.CharField(source='image_url', max_length=500, required=False, allow_blank=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Department
        fields = ('id', 'departmentId', 'name', 'description', 'imageUrl', 'createdAt', 'updatedAt')

    def validate(self, attrs):
        for field in ('department_id', 'name', 'description', 'image_url'):
            if isinstance(attrs.get(field), str):
                attrs[field] = attrs[field].strip()
        if attrs.get('department_id'):
            attrs['department_id'] = attrs['department_id'].upper()

        department_id = attrs.get('department_id')
        name = attrs.get('name')

        if self.instance is None:
            if not department_id or not name:
                raise serializers.ValidationError('Department ID and Name are required')
            if Department.objects.filter(department_id__iexact=department_id).exists():
                raise serializers.ValidationError('Department ID already exists')
            if Department.objects.filter(name__iexact=name).exists():
                raise serializers.ValidationError('Department name already exists')
        else:
            if department_id and department_id != self.instance.department_id:
                raise serializers.ValidationError('Department ID cannot be changed')
            attrs.pop('department_id', None)
            if 'name' in attrs and not name:
                raise serializers.ValidationError('Department name cannot be empty')
            if name and Department.objects.filter(name__iexact=name).exclude(pk=self.instance.pk).exists():
                raise serializers.ValidationError('Department name already exists')
        return attrs


# --- Предметы ---

class SubjectBriefSerializer(serializers.ModelSerializer):
    subjectCode = serializers.CharField(source='subject_code', read_only=True)
    subjectName = serializers.CharField(source='subject_name', read_only=True)

    class Meta:
        model = Subject
        fields = ('id', 'subjectCode', 'subjectName', 'credits')
        read_only_fields = fields


# Класс SubjectSerializer: кафедра передается кодом (departmentId) и в ответе
# раскрывается в {id, departmentId, name}. Назначенный преподаватель задается
# его userId и должен существовать с ролью lecturer.
class SubjectSerializer(serializers.ModelSerializer):
    subjectCode = serializers.CharField(source='subject_code', max_length=20)
    subjectName = serializers.CharField(source='subject_name', max_length=255)
    department = DepartmentBriefSerializer(read_only=True)
    departmentId = serializers.CharField(source='department_code', max_length=20)
    year = serializers.IntegerField(min_value=1, max_value=4)
    semester = serializers.IntegerField(min_value=1, max_value=2)
    credits = serializers.IntegerField(min_value=1, max_value=10)
    lecturer = serializers.CharField(max_length=50, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    learningOutcomes = serializers.ListField(
        source='learning_outcomes', child=serializers.CharField(), required=False
    )
    syllabus = serializers.CharField(required=False, allow_blank=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Subject
        fields = (
            'id', 'subjectCode', 'subjectName', 'department', 'departmentId', 'year', 'semester',
            'credits', 'lecturer', 'description', 'learningOutcomes', 'syllabus', 'createdAt', 'updatedAt'
        )

    def validate(self, attrs):
        department_code = attrs.pop('department_code', None)
        if department_code:
            department = Department.objects.filter(department_id__iexact=department_code.strip()).first()
            if department is None:
                raise NotFound('Department not found')
            attrs['department'] = department

        subject_code = attrs.get('subject_code')
        if subject_code:
            attrs['subject_code'] = subject_code.strip().upper()
            duplicates = Subject.objects.filter(subject_code__iexact=attrs['subject_code'])
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError('Subject code already exists')

        lecturer = attrs.get('lecturer')
        if lecturer:
            attrs['lecturer'] = lecturer.strip()
            if not User.objects.filter(user_id=attrs['lecturer'], role=User.Role.LECTURER).exists():
                raise NotFound('Lecturer not found')
        return attrs


# --- Уроки ---

# Класс LessonSerializer: кафедра и предмет передаются идентификаторами и в ответе
# раскрываются. Статус, счетчик загруженных частей и автор только для чтения.
class LessonSerializer(serializers.ModelSerializer):
    department = serializers.IntegerField(source='department_id', required=False)
    subject = serializers.IntegerField(source='subject_id', required=False)
    totalParts = serializers.IntegerField(source='total_parts', min_value=1, max_value=20, required=False)
    uploadedParts = serializers.IntegerField(source='uploaded_parts', read_only=True)
    type = serializers.ChoiceField(choices=Lesson.LessonType.choices, required=False)
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Lesson
        fields = (
            'id', 'title', 'description', 'department', 'subject', 'totalParts', 'uploadedParts',
            'type', 'status', 'author', 'createdAt', 'updatedAt'
        )
        read_only_fields = ('status', 'author')

    def validate(self, attrs):
        if self.instance is None:
            required = ('title', 'department_id', 'subject_id', 'total_parts', 'type')
            if any(attrs.get(field) in (None, '') for field in required):
                raise serializers.ValidationError('Title, department, subject, totalParts, and type are required')

        department = self.instance.department if self.instance else None
        if 'department_id' in attrs:
            department = Department.objects.filter(pk=attrs['department_id']).first()
            if department is None:
                raise NotFound('Department not found')

        subject = self.instance.subject if self.instance else None
        if 'subject_id' in attrs:
            subject = Subject.objects.filter(pk=attrs['subject_id']).first()
            if subject is None:
                raise NotFound('Subject not found')

        if subject is not None and department is not None and subject.department_id != department.pk:
            raise serializers.ValidationError('Subject does not belong to the selected department')
        return attrs

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['department'] = DepartmentBriefSerializer(instance.department).data
        data['subject'] = SubjectBriefSerializer(instance.subject).data
        return data


# --- Части уроков ---

class QuestionSerializer(serializers.Serializer):
    question = serializers.CharField()
    options = serializers.ListField(child=serializers.CharField(), min_length=2, max_length=4)
    correctAnswer = serializers.IntegerField(min_value=0, max_value=3)
    explanation = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['correctAnswer'] >= len(attrs['options']):
            raise serializers.ValidationError('correctAnswer must reference one of the options')
        return attrs


# Класс LessonPartSerializer. Вопросы теста хранятся в JSON-поле, поэтому
# create/update переопределены: вложенный QuestionSerializer используется только
# для валидации. Если isLocked не передан, заблокированы все части кроме первой.
class LessonPartSerializer(serializers.ModelSerializer):
    lessonId = serializers.IntegerField(source='lesson_id', required=False)
    partNumber = serializers.IntegerField(source='part_number', min_value=1, required=False)
    title = serializers.CharField(max_length=255, required=False)
    filePath = serializers.CharField(source='file_path', max_length=500, required=False)
    fileUrl = serializers.CharField(source='file_url', max_length=1000, required=False)
    fileType = serializers.CharField(source='file_type', max_length=100, required=False, allow_blank=True)
    fileSize = serializers.IntegerField(source='file_size', min_value=0, required=False)
    questions = QuestionSerializer(many=True, required=False)
    isLocked = serializers.BooleanField(source='is_locked', required=False)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = LessonPart
        fields = (
            'id', 'lessonId', 'partNumber', 'title', 'filePath', 'fileUrl', 'fileType', 'fileSize',
            'questions', 'isLocked', 'createdAt', 'updatedAt'
        )

    def validate(self, attrs):
        if self.instance is None:
            required = ('lesson_id', 'part_number', 'title', 'file_path', 'file_url')
            if any(attrs.get(field) in (None, '') for field in required):
                raise serializers.ValidationError(
                    'LessonId, partNumber, title, filePath, and fileUrl are required'
                )

        lesson = self.instance.lesson if self.instance else None
        if 'lesson_id' in attrs:
            lesson = Lesson.objects.filter(pk=attrs['lesson_id']).first()
            if lesson is None:
                raise NotFound('Lesson not found')

        part_number = attrs.get('part_number', self.instance.part_number if self.instance else None)
        if lesson is not None and part_number is not None:
            if part_number > lesson.total_parts:
                raise serializers.ValidationError("Part number cannot exceed the lesson's total parts")
            duplicates = LessonPart.objects.filter(lesson=lesson, part_number=part_number)
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError('Part number already exists for this lesson')

        if 'questions' in attrs:
            attrs['questions'] = [dict(question) for question in attrs['questions']]
        return attrs

    def create(self, validated_data):
        validated_data.setdefault('is_locked', validated_data['part_number'] > 1)
        validated_data.setdefault('file_type', '')
        validated_data.setdefault('file_size', 0)
        return LessonPart.objects.create(**validated_data)

    def update(self, instance, validated_data):
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        return instance


# --- Материалы ---

# Класс MaterialSerializer: при загрузке обязательны все поля, предмет должен
# существовать, путь уникален, размер ограничен fileSettings.maxFileSize.
class MaterialSerializer(serializers.ModelSerializer):
    name = serializers.CharField(max_length=255, required=False)
    path = serializers.CharField(max_length=500, required=False)
    url = serializers.CharField(max_length=1000, required=False)
    type = serializers.ChoiceField(choices=Material.MaterialType.choices, required=False)
    subject = serializers.IntegerField(source='subject_id', required=False)
    size = serializers.IntegerField(min_value=0, required=False)
    uploadedBy = UserBriefSerializer(source='uploaded_by', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Material
        fields = ('id', 'name', 'path', 'url', 'type', 'subject', 'uploadedBy', 'size', 'createdAt', 'updatedAt')

    def validate(self, attrs):
        required = ('name', 'subject_id', 'path', 'url', 'type', 'size')
        if any(attrs.get(field) in (None, '') for field in required):
            raise serializers.ValidationError('All fields are required')

        if not Subject.objects.filter(pk=attrs['subject_id']).exists():
            raise NotFound('Subject not found')
        if Material.objects.filter(path=attrs['path']).exists():
            raise serializers.ValidationError('Material with this path already exists')

        request = self.context.get('request')
        system_settings = getattr(request, 'system_settings', None) if request else None
        if system_settings is not None and attrs['size'] > system_settings.max_file_size_bytes:
            raise serializers.ValidationError(
                f"File size exceeds the maximum allowed size of {system_settings.file_settings.get('maxFileSize')} MB"
            )
        return attrs

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['subject'] = SubjectBriefSerializer(instance.subject).data
        return data


class MaterialUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)


# --- Оценки ---

# Входные данные для выставления оценки. Отсутствие обязательных полей и выход
# баллов за диапазон дают фиксированные сообщения.
class MarkInputSerializer(serializers.Serializer):
    studentId = serializers.CharField(max_length=50, required=False)
    departmentId = serializers.CharField(max_length=20, required=False)
    subjectId = serializers.IntegerField(required=False)
    assignmentMarks = serializers.FloatField(required=False)
    examMarks = serializers.FloatField(required=False)
    semester = serializers.IntegerField(required=False)
    year = serializers.IntegerField(required=False)
    academicYear = serializers.CharField(max_length=20, required=False, allow_blank=True)
    remarks = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        required = ('studentId', 'departmentId', 'subjectId', 'assignmentMarks', 'examMarks', 'semester', 'year')
        if any(attrs.get(field) in (None, '') for field in required):
            raise serializers.ValidationError('All required fields must be provided')
        try:
            validate_score(attrs['assignmentMarks'])
            validate_score(attrs['examMarks'])
        except InvalidScoreError as exc:
            raise serializers.ValidationError(str(exc))
        if attrs['semester'] not in (1, 2):
            raise serializers.ValidationError('Semester must be 1 or 2')
        if not 1 <= attrs['year'] <= 4:
            raise serializers.ValidationError('Year must be between 1 and 4')
        attrs['studentId'] = attrs['studentId'].strip()
        attrs['departmentId'] = attrs['departmentId'].strip().upper()
        return attrs


# Класс MarkSerializer сериализует оценку для ответа. Сведения о студенте
# (studentInfo) берутся из словаря context['students'] {user_id: User}, который
# представление заполняет одним запросом.
class MarkSerializer(serializers.ModelSerializer):
    studentId = serializers.CharField(source='student_id', read_only=True)
    department = DepartmentBriefSerializer(read_only=True)
    departmentId = serializers.CharField(source='department_code', read_only=True)
    subject = SubjectBriefSerializer(read_only=True)
    assignmentMarks = serializers.FloatField(source='assignment_marks', read_only=True)
    examMarks = serializers.FloatField(source='exam_marks', read_only=True)
    totalMarks = serializers.FloatField(source='total_marks', read_only=True)
    academicYear = serializers.CharField(source='academic_year', read_only=True)
    addedBy = serializers.CharField(source='added_by', read_only=True)
    studentInfo = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Mark
        fields = (
            'id', 'studentId', 'department', 'departmentId', 'subject', 'assignmentMarks', 'examMarks',
            'totalMarks', 'grade', 'semester', 'year', 'academicYear', 'addedBy', 'remarks',
            'studentInfo', 'createdAt', 'updatedAt'
        )
        read_only_fields = fields

    def get_studentInfo(self, obj):
        students = self.context.get('students')
        if students is None:
            return None
        student = students.get(obj.student_id)
        if student is None:
            return None
        return {
            'userId': student.user_id,
            'firstName': student.first_name,
            'lastName': student.last_name,
            'email': student.email,
            'department': student.department,
        }
