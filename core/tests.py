# core/tests.py

from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APITestCase

from edu_core.models import Department, Lesson, LessonPart, Subject
from news.models import News
from .exceptions import custom_exception_handler
from .models import SystemSettings

User = get_user_model()


class ExceptionHandlerTests(APITestCase):
    def test_validation_errors_are_flattened(self):
        exc = ValidationError({'email': ['Enter a valid email address.'], 'non_field_errors': ['Broken']})
        response = custom_exception_handler(exc, {})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'email: Enter a valid email address., Broken'})

    def test_missing_and_invalid_token_messages(self):
        response = self.client.get(reverse('settings'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'No token, authorization denied')

        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = self.client.get(reverse('settings'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'Token is not valid')


class SettingsTestCase(APITestCase):
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
        cls.department = Department.objects.create(department_id='CS', name='Computer Science')
        cls.subject = Subject.objects.create(
            subject_code='CS101', subject_name='Programming', department=cls.department,
            year=1, semester=1, credits=3, lecturer='LEC001'
        )


class SystemSettingsAPITests(SettingsTestCase):
    def test_singleton_created_on_first_read(self):
        self.assertFalse(SystemSettings.objects.exists())
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse('settings'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['securitySettings']['passwordMinLength'], 8)
        self.assertEqual(response.data['data']['lastUpdatedBy'], 'ADM001')

        self.client.get(reverse('settings'))
        self.assertEqual(SystemSettings.objects.count(), 1)

    def test_non_admin_denied(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.get(reverse('settings'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. Only admins can access settings.')

    def test_update_merges_sections(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.put(reverse('settings'), {
            'systemName': 'Campus LMS',
            'securitySettings': {'passwordMinLength': 10},
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Settings updated successfully')

        system_settings = SystemSettings.load()
        self.assertEqual(system_settings.system_name, 'Campus LMS')
        self.assertEqual(system_settings.password_min_length, 10)
        self.assertEqual(system_settings.security_settings['maxLoginAttempts'], 5)
        self.assertEqual(system_settings.last_updated_by, 'ADM001')

    def test_update_rejects_invalid_passing_grade(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.put(reverse('settings'), {'academicSettings': {'passingGrade': 150}})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_maintenance_mode_blocks_other_roles(self):
        system_settings = SystemSettings.load()
        system_settings.merge_section('maintenanceMode', {'enabled': True, 'message': 'Back soon'})
        system_settings.save()

        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('department-list'))
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['error'], 'Back soon')

        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('department-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class SystemOperationsAPITests(SettingsTestCase):
    def test_system_stats(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('settings-stats'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['overview']['totalUsers'], 3)
        self.assertEqual(data['overview']['totalStudents'], 1)
        self.assertEqual(data['overview']['totalSubjects'], 1)
        self.assertEqual(data['departmentStats'], [{
            'department': 'Computer Science', 'departmentId': 'CS',
            'students': 1, 'lecturers': 1, 'subjects': 1,
        }])
        self.assertEqual(sum(row['count'] for row in data['monthlyRegistrations']), 3)
        self.assertEqual(len(data['recentActivity']['recentUsers']), 3)

    @patch('core.views.time.sleep')
    def test_maintenance_operations(self, mock_sleep):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('settings-maintenance'), {'operation': 'optimize_database'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'optimize database completed successfully')
        mock_sleep.assert_called_once_with(3)

        response = self.client.post(reverse('settings-maintenance'), {'operation': 'format_disk'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid maintenance operation')

    @override_settings(SYSTEM_RESET_CONFIRMATION_CODE='CONFIRM')
    def test_reset_requires_confirmation_code(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('settings-reset'), {'confirmationCode': 'nope', 'dataType': 'news'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid confirmation code')

        response = self.client.post(reverse('settings-reset'), {'confirmationCode': 'CONFIRM', 'dataType': 'users'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid data type for reset')

    @override_settings(SYSTEM_RESET_CONFIRMATION_CODE='CONFIRM')
    def test_reset_lessons_and_students(self):
        lesson = Lesson.objects.create(
            title='Intro', department=self.department, subject=self.subject, total_parts=2, type='video'
        )
        LessonPart.objects.create(
            lesson=lesson, part_number=1, title='Part 1', file_path='lessons/intro-1.mp4',
            file_url='https://cdn.lms.test/intro-1.mp4', file_type='video/mp4', file_size=1024
        )
        News.objects.create(title='Kept', description='Stays')
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(reverse('settings-reset'), {'confirmationCode': 'CONFIRM', 'dataType': 'lessons'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'lessons data reset completed')
        self.assertEqual(response.data['deletedCount'], 1)
        self.assertFalse(LessonPart.objects.exists())
        self.assertTrue(News.objects.exists())

        response = self.client.post(reverse('settings-reset'), {'confirmationCode': 'CONFIRM', 'dataType': 'students'})
        self.assertEqual(response.data['deletedCount'], 1)
        self.assertFalse(User.objects.filter(role=User.Role.STUDENT).exists())
        self.assertTrue(User.objects.filter(user_id='LEC001').exists())

    def test_export(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('settings-export'), {'dataType': 'subjects'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(list(response.data['data']), ['subjects'])
        self.assertEqual(response.data['data']['subjects'][0]['subjectCode'], 'CS101')
        self.assertEqual(response.data['exportedBy'], 'ADM001')
        self.assertIn('exportedAt', response.data)

        response = self.client.get(reverse('settings-export'), {'dataType': 'all'})
        self.assertEqual(
            set(response.data['data']), {'users', 'departments', 'subjects', 'lessons', 'news'}
        )
        self.assertNotIn('password', response.data['data']['users'][0])

        response = self.client.get(reverse('settings-export'), {'dataType': 'news'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(list(response.data['data']), ['news'])

        response = self.client.get(reverse('settings-export'), {'dataType': 'marks'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid data type for export')
