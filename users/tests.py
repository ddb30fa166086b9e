# users/tests.py

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import AccessToken

from core.models import SystemSettings
from edu_core.models import Department

User = get_user_model()


class UserModelTests(APITestCase):
    def test_create_user(self):
        user = User.objects.create_user(
            email='Normal.User@Example.com', password='UserStrongPassword123!', user_id='STU100',
            first_name='Normal', last_name='User', department='CS'
        )
        self.assertEqual(user.email, 'normal.user@example.com')
        self.assertTrue(user.check_password('UserStrongPassword123!'))
        self.assertEqual(user.role, User.Role.STUDENT)
        self.assertTrue(user.is_student)
        self.assertFalse(user.is_staff)

    def test_create_user_requires_email_and_user_id(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='password123', user_id='X1')
        with self.assertRaises(ValueError):
            User.objects.create_user(email='nouserid@example.com', password='password123')

    def test_create_superuser(self):
        admin_user = User.objects.create_superuser(
            email='super@example.com', password='SuperStrongPassword123!', user_id='ADM100',
            first_name='Super', last_name='User'
        )
        self.assertTrue(admin_user.is_staff)
        self.assertTrue(admin_user.is_superuser)
        self.assertEqual(admin_user.role, User.Role.ADMIN)
        self.assertTrue(admin_user.is_admin)


class UserAPITestCase(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.department = Department.objects.create(department_id='CS', name='Computer Science')
        cls.admin = User.objects.create_superuser(
            email='admin@lms.test', password='AdminPassword123!', user_id='ADM001',
            first_name='Ada', last_name='Admin'
        )
        cls.student = User.objects.create_user(
            email='student@lms.test', password='StudentPassword123!', user_id='STU001',
            first_name='Sam', last_name='Student', role=User.Role.STUDENT, department='CS'
        )
        cls.other_student = User.objects.create_user(
            email='other@lms.test', password='StudentPassword123!', user_id='STU002',
            first_name='Tom', last_name='Tester', role=User.Role.STUDENT, department='CS'
        )
        cls.lecturer = User.objects.create_user(
            email='lecturer@lms.test', password='LecturerPassword123!', user_id='LEC001',
            first_name='Lena', last_name='Lecturer', role=User.Role.LECTURER, department='CS'
        )

    def registration_payload(self, **overrides):
        payload = {
            'userId': 'STU500',
            'firstName': 'New',
            'lastName': 'Student',
            'department': 'cs',
            'email': 'New.Student@lms.test',
            'password': 'NewPassword123',
            'role': 'student',
        }
        payload.update(overrides)
        return payload


class RegistrationTests(UserAPITestCase):
    def test_register_student(self):
        response = self.client.post(reverse('user-list'), self.registration_payload())
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'User registered successfully')
        self.assertEqual(response.data['user']['userId'], 'STU500')
        self.assertEqual(response.data['user']['department'], 'CS')
        self.assertNotIn('password', response.data['user'])

        user = User.objects.get(user_id='STU500')
        self.assertEqual(user.email, 'new.student@lms.test')
        self.assertTrue(user.check_password('NewPassword123'))

    def test_duplicate_user_id_and_email(self):
        response = self.client.post(reverse('user-list'), self.registration_payload(userId='STU001'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User with this ID already exists')

        response = self.client.post(reverse('user-list'), self.registration_payload(email='STUDENT@lms.test'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User with this email already exists')

    def test_unknown_department(self):
        response = self.client.post(reverse('user-list'), self.registration_payload(department='BIO'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Department not found')

    def test_password_length_follows_settings(self):
        system_settings = SystemSettings.load()
        system_settings.merge_section('securitySettings', {'passwordMinLength': 12})
        system_settings.save()

        response = self.client.post(reverse('user-list'), self.registration_payload(password='Short12345'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Password must be at least 12 characters long')

    def test_admin_registration_requires_admin(self):
        payload = self.registration_payload(userId='ADM500', role='admin', department='')
        response = self.client.post(reverse('user-list'), payload)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('user-list'), payload)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'admin')


class LoginTests(UserAPITestCase):
    def test_login_returns_token_with_identity_claims(self):
        response = self.client.post(reverse('login'), {'email': 'STUDENT@lms.test', 'password': 'StudentPassword123!'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['userId'], 'STU001')

        token = AccessToken(response.data['token'])
        self.assertEqual(token['userId'], 'STU001')
        self.assertEqual(token['role'], 'student')
        self.assertEqual(token['department'], 'CS')

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['token']}")
        response = self.client.get(reverse('user-detail', kwargs={'user_id': 'STU001'}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_login_failures(self):
        response = self.client.post(reverse('login'), {'email': 'ghost@lms.test', 'password': 'whatever'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User not found')

        response = self.client.post(reverse('login'), {'email': 'student@lms.test', 'password': 'wrong'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid password')

    def test_login_allowed_during_maintenance(self):
        system_settings = SystemSettings.load()
        system_settings.merge_section('maintenanceMode', {'enabled': True})
        system_settings.save()
        response = self.client.post(reverse('login'), {'email': 'admin@lms.test', 'password': 'AdminPassword123!'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class UserAccessTests(UserAPITestCase):
    def test_profile_self_or_admin(self):
        url = reverse('user-detail', kwargs={'user_id': 'STU002'})

        self.client.force_authenticate(user=self.student)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. You can only view your own data or be an admin.')

        self.client.force_authenticate(user=self.other_student)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)

        self.client.force_authenticate(user=self.admin)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)

        response = self.client.get(reverse('user-detail', kwargs={'user_id': 'NOPE'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_users_admin_only(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.get(reverse('user-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. Only admins can view all users.')

        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('user-list'))
        self.assertEqual(len(response.data), 4)

    def test_role_lists_and_search(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('user-students'))
        self.assertEqual(response.data['count'], 2)

        response = self.client.get(reverse('user-search'), {'query': 'lena'})
        self.assertEqual([u['userId'] for u in response.data], ['LEC001'])

        response = self.client.get(reverse('users-by-role-department', kwargs={'role': 'student', 'department': 'cs'}))
        self.assertEqual(len(response.data), 2)

        response = self.client.get(reverse('users-by-role-department', kwargs={'role': 'admin', 'department': 'CS'}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_stats(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('user-stats'))
        self.assertEqual(response.data['totalUsers'], 4)
        self.assertEqual(response.data['roles'], {'admin': 1, 'student': 2, 'lecturer': 1})
        self.assertEqual(response.data['departments'], ['CS'])

    def test_missing_token(self):
        response = self.client.get(reverse('user-detail', kwargs={'user_id': 'STU001'}))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'No token, authorization denied')


class UserUpdateTests(UserAPITestCase):
    def test_update_self(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.put(reverse('user-update'), {'firstName': 'Samuel'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['firstName'], 'Samuel')

    def test_non_admin_cannot_change_role_or_others(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.put(reverse('user-update'), {'role': 'admin'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. Only admins can update roles.')

        response = self.client.put(reverse('user-update'), {'currentEmail': 'other@lms.test', 'firstName': 'X'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.student.refresh_from_db()
        self.assertEqual(self.student.role, User.Role.STUDENT)

    def test_admin_updates_other_user(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.put(
            reverse('user-update'), {'currentEmail': 'other@lms.test', 'role': 'lecturer', 'password': 'Changed123!'}
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.other_student.refresh_from_db()
        self.assertEqual(self.other_student.role, User.Role.LECTURER)
        self.assertTrue(self.other_student.check_password('Changed123!'))

    def test_password_change_follows_settings(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.put(reverse('user-update'), {'password': 'x'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Password must be at least 8 characters long')

        system_settings = SystemSettings.load()
        system_settings.merge_section('securitySettings', {'passwordMinLength': 12})
        system_settings.save()
        response = self.client.put(reverse('user-update'), {'password': 'Eleven12345'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Password must be at least 12 characters long')

        self.student.refresh_from_db()
        self.assertTrue(self.student.check_password('StudentPassword123!'))

    def test_role_change_requires_department(self):
        User.objects.create_superuser(
            email='a2@lms.test', password='AdminPassword123!', user_id='ADM002',
            first_name='Second', last_name='Admin'
        )
        self.client.force_authenticate(user=self.admin)
        response = self.client.put(reverse('user-update'), {'currentEmail': 'a2@lms.test', 'role': 'student'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Department is required for students and lecturers')
        self.assertEqual(User.objects.get(user_id='ADM002').role, User.Role.ADMIN)

        response = self.client.put(
            reverse('user-update'), {'currentEmail': 'a2@lms.test', 'role': 'student', 'department': 'cs'}
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        promoted = User.objects.get(user_id='ADM002')
        self.assertEqual(promoted.role, User.Role.STUDENT)
        self.assertEqual(promoted.department, 'CS')


class UserDeleteTests(UserAPITestCase):
    def test_admin_deletes_user(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('user-detail', kwargs={'user_id': 'STU002'}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deletedUser']['userId'], 'STU002')
        self.assertFalse(User.objects.filter(user_id='STU002').exists())

    def test_admin_cannot_delete_self(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('user-delete-by-email'), {'email': 'admin@lms.test'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'You cannot delete your own account')

    def test_non_admin_cannot_delete(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.delete(reverse('user-detail', kwargs={'user_id': 'STU001'}))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. Only admins can delete users.')
