# stats/tests.py

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from edu_core.models import Department, Lesson, Mark, Material, Subject
from news.models import News
from notifications.models import Notification, NotificationReadReceipt
from .services import MarksStatsService, format_decimal

User = get_user_model()


class DashboardTestCase(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_superuser(
            email='admin@lms.test', password='TestPassword123!', user_id='ADM001',
            first_name='Ada', last_name='Admin'
        )
        cls.lecturer = User.objects.create_user(
            email='lecturer@lms.test', password='TestPassword123!', user_id='LEC001',
            first_name='Lena', last_name='Lecturer', role=User.Role.LECTURER, department='CS'
        )
        cls.student = User.objects.create_user(
            email='student@lms.test', password='TestPassword123!', user_id='STU001',
            first_name='Sam', last_name='Student', role=User.Role.STUDENT, department='CS'
        )
        cls.other_student = User.objects.create_user(
            email='student2@lms.test', password='TestPassword123!', user_id='STU002',
            first_name='Tom', last_name='Tester', role=User.Role.STUDENT, department='MATH'
        )
        cls.cs = Department.objects.create(department_id='CS', name='Computer Science')
        cls.math = Department.objects.create(department_id='MATH', name='Mathematics')
        cls.programming = Subject.objects.create(
            subject_code='CS101', subject_name='Programming', department=cls.cs,
            year=1, semester=1, credits=3, lecturer='LEC001'
        )
        cls.algorithms = Subject.objects.create(
            subject_code='CS201', subject_name='Algorithms', department=cls.cs,
            year=2, semester=1, credits=4
        )
        cls.calculus = Subject.objects.create(
            subject_code='MA101', subject_name='Calculus', department=cls.math,
            year=1, semester=1, credits=3
        )
        cls.published = Lesson.objects.create(
            title='Variables', department=cls.cs, subject=cls.programming,
            total_parts=1, uploaded_parts=1, type='video'
        )
        cls.draft = Lesson.objects.create(
            title='Loops', department=cls.cs, subject=cls.programming, total_parts=3, type='pdf'
        )
        Lesson.objects.create(
            title='Limits', department=cls.math, subject=cls.calculus,
            total_parts=1, uploaded_parts=1, type='pdf'
        )
        Material.objects.create(
            name='Slides', path='materials/cs101-slides.pdf', url='https://cdn.lms.test/cs101-slides.pdf',
            type='pdf', subject=cls.programming, uploaded_by=cls.lecturer, size=2048
        )
        Material.objects.create(
            name='Notes', path='materials/ma101-notes.pdf', url='https://cdn.lms.test/ma101-notes.pdf',
            type='pdf', subject=cls.calculus, size=1024
        )


class StudentDashboardAPITests(DashboardTestCase):
    def test_student_can_only_see_own_dashboard(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('student-profile', kwargs={'user_id': 'STU002'}))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. You can only access your own profile.')

        response = self.client.get(reverse('student-profile', kwargs={'user_id': 'STU001'}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['userId'], 'STU001')
        self.assertNotIn('password', response.data)

    def test_student_dashboard_requires_student_role(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.get(reverse('student-stats', kwargs={'user_id': 'LEC001'}))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized')

        for user in (self.student, self.admin):
            with self.subTest(user=user.user_id):
                self.client.force_authenticate(user=user)
                response = self.client.get(reverse('student-stats', kwargs={'user_id': 'STU001'}))
                self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('lecturer-stats', kwargs={'lecturer_id': 'STU001'}))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_gets_404_for_non_student(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('student-subjects', kwargs={'user_id': 'LEC001'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Student not found')

    def test_subjects_lessons_and_materials_follow_department(self):
        self.client.force_authenticate(user=self.student)

        response = self.client.get(reverse('student-subjects', kwargs={'user_id': 'STU001'}))
        self.assertEqual({s['subjectCode'] for s in response.data}, {'CS101', 'CS201'})

        response = self.client.get(reverse('student-lessons', kwargs={'user_id': 'STU001'}))
        self.assertEqual([lesson['title'] for lesson in response.data], ['Variables'])

        response = self.client.get(reverse('student-materials', kwargs={'user_id': 'STU001'}))
        self.assertEqual([m['name'] for m in response.data], ['Slides'])

    def test_stats_include_real_average(self):
        Mark.objects.create(
            student_id='STU001', department=self.cs, subject=self.programming,
            assignment_marks=80, exam_marks=75, semester=1, year=1, academic_year='2024'
        )
        Mark.objects.create(
            student_id='STU001', department=self.cs, subject=self.algorithms,
            assignment_marks=60, exam_marks=50, semester=1, year=2, academic_year='2024'
        )
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('student-stats', kwargs={'user_id': 'STU001'}))
        self.assertEqual(response.data, {
            'enrolledSubjects': 2,
            'availableLessons': 1,
            'totalMaterials': 1,
            'averageGrade': '132.50',
        })

    def test_news_only_published(self):
        News.objects.create(title='Public', description='Visible')
        News.objects.create(title='Secret', description='Hidden', status=News.Status.DRAFT)
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('student-news', kwargs={'user_id': 'STU001'}))
        self.assertEqual([n['title'] for n in response.data], ['Public'])

    def test_missing_department_is_404(self):
        orphan = User.objects.create_user(
            email='orphan@lms.test', password='TestPassword123!', user_id='STU404',
            first_name='Olly', last_name='Orphan', role=User.Role.STUDENT, department='BIO'
        )
        self.client.force_authenticate(user=orphan)
        response = self.client.get(reverse('student-subjects', kwargs={'user_id': 'STU404'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Department not found')


class LecturerDashboardAPITests(DashboardTestCase):
    def test_lecturer_dashboard(self):
        self.client.force_authenticate(user=self.lecturer)

        response = self.client.get(reverse('lecturer-subjects', kwargs={'lecturer_id': 'LEC001'}))
        self.assertEqual([s['subjectCode'] for s in response.data], ['CS101'])

        response = self.client.get(reverse('lecturer-students', kwargs={'lecturer_id': 'LEC001'}))
        self.assertEqual([s['userId'] for s in response.data], ['STU001'])

        response = self.client.get(reverse('lecturer-lessons', kwargs={'lecturer_id': 'LEC001'}))
        self.assertEqual({lesson['title'] for lesson in response.data}, {'Variables', 'Loops'})

        response = self.client.get(reverse('lecturer-materials', kwargs={'lecturer_id': 'LEC001'}))
        self.assertEqual([m['name'] for m in response.data], ['Slides'])

        response = self.client.get(reverse('lecturer-stats', kwargs={'lecturer_id': 'LEC001'}))
        self.assertEqual(response.data, {
            'totalSubjects': 1, 'totalStudents': 1, 'totalMaterials': 1, 'totalLessons': 2,
        })

    def test_lecturer_profile_access(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('lecturer-profile', kwargs={'lecturer_id': 'LEC001'}))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('lecturer-profile', kwargs={'lecturer_id': 'LEC001'}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'lecturer')

        response = self.client.get(reverse('lecturer-profile', kwargs={'lecturer_id': 'STU001'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Lecturer not found')

    def test_lecturer_notifications(self):
        seen = Notification.objects.create(
            title='Staff meeting', message='Monday', sender='ADM001', sender_name='Ada Admin',
            recipient='lecturer', recipient_type=Notification.RecipientType.ROLE
        )
        Notification.objects.create(
            title='Exam hall', message='Room 4', sender='ADM001', sender_name='Ada Admin',
            recipient='student', recipient_type=Notification.RecipientType.ROLE
        )
        NotificationReadReceipt.objects.create(notification=seen, user_id='LEC001')

        self.client.force_authenticate(user=self.lecturer)
        response = self.client.get(reverse('lecturer-notifications', kwargs={'lecturer_id': 'LEC001'}))
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['title'], 'Staff meeting')
        self.assertTrue(response.data[0]['isRead'])


class MarksStatsServiceTests(DashboardTestCase):
    def test_subject_summary_uses_passing_percentage(self):
        for student_id, assignment, exam in [('STU001', 60, 50), ('STU002', 40, 45), ('STU003', 90, 95)]:
            Mark.objects.create(
                student_id=student_id, department=self.cs, subject=self.programming,
                assignment_marks=assignment, exam_marks=exam, semester=1, year=1, academic_year='2024'
            )
        marks = Mark.objects.filter(subject=self.programming)

        summary = MarksStatsService(passing_percentage=50).subject_summary(marks)
        self.assertEqual(summary['totalStudents'], 3)
        self.assertEqual(summary['averageMarks'], '126.67')
        self.assertEqual(summary['highestMarks'], 185)
        self.assertEqual(summary['lowestMarks'], 85)
        self.assertEqual(summary['passRate'], '66.67')
        self.assertEqual(summary['gradeDistribution'], {'A+': 1, 'C+': 1, 'D+': 1})

        strict = MarksStatsService(passing_percentage=60).subject_summary(marks)
        self.assertEqual(strict['passRate'], '33.33')

    def test_format_decimal(self):
        self.assertEqual(format_decimal(None), '0.00')
        self.assertEqual(format_decimal(12.5), '12.50')
        self.assertEqual(format_decimal(2 / 3), '0.67')
