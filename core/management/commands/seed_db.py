import logging
import random

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from faker import Faker

from core.models import SystemSettings
from edu_core import services
from edu_core.models import Department, Material, Subject
from news.models import News
from notifications.models import Notification

User = get_user_model()
fake = Faker('en_US')
logger = logging.getLogger(__name__)

# Кафедры и предметы, создаваемые по умолчанию: (код, название, [(код предмета, название, курс, семестр, кредиты)])
SAMPLE_DEPARTMENTS = [
    ('CS', 'Computer Science', [
        ('CS101', 'Introduction to Programming', 1, 1, 4),
        ('CS102', 'Data Structures', 1, 2, 4),
        ('CS201', 'Algorithms', 2, 1, 3),
        ('CS202', 'Databases', 2, 2, 3),
    ]),
    ('MATH', 'Mathematics', [
        ('MA101', 'Calculus I', 1, 1, 4),
        ('MA102', 'Linear Algebra', 1, 2, 3),
        ('MA201', 'Probability and Statistics', 2, 1, 3),
    ]),
    ('PHYS', 'Physics', [
        ('PH101', 'Mechanics', 1, 1, 4),
        ('PH102', 'Electricity and Magnetism', 1, 2, 4),
    ]),
]


class Command(BaseCommand):
    help = 'Заполняет базу данных начальными данными: администратор, настройки, кафедры, предметы и тестовые пользователи.'

    def add_arguments(self, parser):
        parser.add_argument('--clear', action='store_true',
                            help='Удалить кафедры (с зависимыми данными), новости, уведомления и пользователей, кроме администраторов.')
        parser.add_argument('--password', type=str, default='testpass123', help='Пароль для всех созданных пользователей.')
        parser.add_argument('--num-students', type=int, default=10, help='Количество студентов на кафедру.')
        parser.add_argument('--num-lecturers', type=int, default=2, help='Количество преподавателей на кафедру.')
        parser.add_argument('--num-news', type=int, default=5, help='Количество новостей.')
        parser.add_argument('--with-marks', action='store_true', help='Выставить студентам оценки по предметам первого курса.')

    @transaction.atomic
    def handle(self, *args, **options):
        s = self.style.SUCCESS

        if options['clear']:
            self.clear_database()

        self.stdout.write(s('--- 1. Администратор и системные настройки ---'))
        admin = self.create_admin()
        system_settings = SystemSettings.load(updated_by=admin.user_id)

        self.stdout.write(s('--- 2. Кафедры и предметы ---'))
        departments = self.create_departments()

        self.stdout.write(s('--- 3. Пользователи ---'))
        for department in departments:
            lecturers = self.create_users(
                department, User.Role.LECTURER, 'LEC', options['num_lecturers'], options['password']
            )
            students = self.create_users(
                department, User.Role.STUDENT, 'STU', options['num_students'], options['password']
            )
            self.assign_lecturers(department, lecturers)
            self.create_materials(department, lecturers)
            if options['with_marks']:
                self.create_marks(department, students, system_settings.current_academic_year, admin)

        self.stdout.write(s('--- 4. Новости ---'))
        self.create_news(options['num_news'])

        self.stdout.write(s('Готово.'))

    def clear_database(self):
        self.stdout.write(self.style.WARNING('Очистка существующих данных (кроме администраторов)...'))
        for department in Department.objects.all():
            services.delete_department(department)
        News.objects.all().delete()
        Notification.objects.all().delete()
        User.objects.exclude(role=User.Role.ADMIN).delete()

    def create_admin(self):
        admin = User.objects.filter(user_id=settings.SEED_ADMIN_USER_ID).first()
        if admin:
            self.stdout.write(f'  * Найден администратор: {admin.email}')
            return admin
        admin = User.objects.create_superuser(
            email=settings.SEED_ADMIN_EMAIL,
            password=settings.SEED_ADMIN_PASSWORD,
            user_id=settings.SEED_ADMIN_USER_ID,
            first_name='System',
            last_name='Administrator',
        )
        self.stdout.write(f'  + Администратор: {admin.email}')
        logger.info(f"Seed admin {admin.user_id} created")
        return admin

    def create_departments(self):
        departments = []
        for code, name, subjects in SAMPLE_DEPARTMENTS:
            department, created = Department.objects.get_or_create(
                department_id=code,
                defaults={'name': name, 'description': fake.sentence(nb_words=10)}
            )
            departments.append(department)
            self.stdout.write(f"  {'+' if created else '*'} Кафедра: {code}")

            for subject_code, subject_name, year, semester, credits in subjects:
                Subject.objects.get_or_create(
                    subject_code=subject_code,
                    defaults={
                        'subject_name': subject_name,
                        'department': department,
                        'year': year,
                        'semester': semester,
                        'credits': credits,
                        'description': fake.paragraph(nb_sentences=2),
                        'learning_outcomes': [fake.sentence(nb_words=6) for _ in range(3)],
                    }
                )
        return departments

    # Идентификаторы пользователей строятся как <префикс><код кафедры><номер>, например STUCS001.
    def create_users(self, department, role, prefix, count, password):
        users = []
        for i in range(count):
            user_id = f'{prefix}{department.department_id}{i + 1:03d}'
            user = User.objects.filter(user_id=user_id).first()
            if user is None:
                user = User.objects.create_user(
                    email=f'{user_id.lower()}@lms.test',
                    password=password,
                    user_id=user_id,
                    first_name=fake.first_name(),
                    last_name=fake.last_name(),
                    role=role,
                    department=department.department_id,
                )
                self.stdout.write(f'  + {role.label}: {user_id}')
            users.append(user)
        return users

    def assign_lecturers(self, department, lecturers):
        if not lecturers:
            return
        for subject in Subject.objects.filter(department=department, lecturer=''):
            subject.lecturer = random.choice(lecturers).user_id
            subject.save(update_fields=['lecturer', 'updated_at'])

    def create_materials(self, department, lecturers):
        for subject in Subject.objects.filter(department=department):
            path = f'materials/{subject.subject_code.lower()}/syllabus.pdf'
            Material.objects.get_or_create(
                path=path,
                defaults={
                    'name': f'{subject.subject_name} syllabus',
                    'url': f'https://storage.lms.test/{path}',
                    'type': Material.MaterialType.PDF,
                    'subject': subject,
                    'uploaded_by': random.choice(lecturers) if lecturers else None,
                    'size': random.randint(50, 5000) * 1024,
                }
            )

    def create_marks(self, department, students, academic_year, admin):
        subjects = list(Subject.objects.filter(department=department, year=1))
        for student in students:
            for subject in subjects:
                services.upsert_mark(
                    student_id=student.user_id,
                    department=department,
                    subject=subject,
                    semester=subject.semester,
                    year=subject.year,
                    academic_year=academic_year,
                    assignment_marks=random.randint(30, 100),
                    exam_marks=random.randint(20, 100),
                    added_by=admin.user_id,
                )
        self.stdout.write(f'  + Оценки кафедры {department.department_id}: {len(students) * len(subjects)}')

    def create_news(self, count):
        for _ in range(count):
            title = fake.unique.sentence(nb_words=5).rstrip('.')
            News.objects.get_or_create(
                title=title,
                defaults={'description': fake.paragraph(nb_sentences=4), 'author': 'Admin'}
            )
