# notifications/tests.py

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from edu_core.models import Department
from .models import Notification, NotificationReadReceipt
from .utils import inbox_for, resolve_recipient

User = get_user_model()


def make_notification(**kwargs):
    defaults = {
        'title': 'Hello',
        'message': 'Body',
        'sender': 'ADM001',
        'sender_name': 'Ada Admin',
        'recipient': 'all',
        'recipient_type': Notification.RecipientType.ALL,
    }
    defaults.update(kwargs)
    return Notification.objects.create(**defaults)


class NotificationTestCase(APITestCase):
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
        cls.math_student = User.objects.create_user(
            email='math@lms.test', password='TestPassword123!', user_id='STU002',
            first_name='Mia', last_name='Maths', role=User.Role.STUDENT, department='MATH'
        )
        Department.objects.create(department_id='CS', name='Computer Science')
        Department.objects.create(department_id='MATH', name='Mathematics')


class RecipientResolutionTests(NotificationTestCase):
    def test_resolves_broadcast_roles_departments_and_users(self):
        self.assertEqual(resolve_recipient('all'), ('all', Notification.RecipientType.ALL))
        self.assertEqual(resolve_recipient('students'), ('student', Notification.RecipientType.ROLE))
        self.assertEqual(resolve_recipient('lecturer'), ('lecturer', Notification.RecipientType.ROLE))
        self.assertEqual(resolve_recipient('cs'), ('CS', Notification.RecipientType.ROLE))
        self.assertEqual(resolve_recipient('STU001'), ('STU001', Notification.RecipientType.SPECIFIC))

    def test_inbox_includes_only_matching_items(self):
        broadcast = make_notification(title='Broadcast')
        for_students = make_notification(title='Students', recipient='student',
                                         recipient_type=Notification.RecipientType.ROLE)
        for_cs = make_notification(title='CS dept', recipient='CS', recipient_type=Notification.RecipientType.ROLE)
        direct = make_notification(title='Direct', recipient='STU001',
                                   recipient_type=Notification.RecipientType.SPECIFIC)
        make_notification(title='Lecturers', recipient='lecturer', recipient_type=Notification.RecipientType.ROLE)
        make_notification(title='Math dept', recipient='MATH', recipient_type=Notification.RecipientType.ROLE)
        make_notification(title='Other user', recipient='STU002', recipient_type=Notification.RecipientType.SPECIFIC)
        # Совпадение с кодом кафедры учитывается только при адресации по роли.
        make_notification(title='Not a dept', recipient='CS', recipient_type=Notification.RecipientType.SPECIFIC)

        inbox = set(inbox_for(self.student))
        self.assertEqual(inbox, {broadcast, for_students, for_cs, direct})


class NotificationAPITests(NotificationTestCase):
    def test_send_requires_lecturer_or_admin(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.post(reverse('notification-send'),
                                    {'title': 'Hi', 'message': 'Hi', 'recipient': 'all'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. Only admins and lecturers can send notifications.')

    def test_send_validates_required_fields(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('notification-send'), {'title': 'Hi', 'recipient': 'all'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Title, message, and recipient are required')

    def test_send_to_role_and_unknown_user(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('notification-send'),
                                    {'title': 'Quiz', 'message': 'Quiz on Friday', 'recipient': 'students'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Notification sent successfully')
        self.assertEqual(response.data['data']['recipient'], 'student')
        self.assertEqual(response.data['data']['recipientType'], 'role')
        self.assertEqual(response.data['data']['senderName'], 'Lena Lecturer')
        self.assertEqual(response.data['data']['department'], 'CS')
        self.assertEqual(response.data['data']['priority'], 'medium')

        response = self.client.post(reverse('notification-send'),
                                    {'title': 'Hi', 'message': 'Hi', 'recipient': 'NOBODY'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_inbox_marks_delivered_and_reports_read_state(self):
        read_item = make_notification(title='Seen')
        make_notification(title='Unseen', recipient='STU001', recipient_type=Notification.RecipientType.SPECIFIC)
        make_notification(title='Hidden', recipient='lecturer', recipient_type=Notification.RecipientType.ROLE)
        NotificationReadReceipt.objects.create(notification=read_item, user_id='STU001')

        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('notification-inbox'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['totalItems'], 2)
        read_flags = {item['title']: item['isRead'] for item in response.data['data']}
        self.assertEqual(read_flags, {'Seen': True, 'Unseen': False})

        self.assertEqual(
            Notification.objects.filter(status=Notification.Status.DELIVERED).count(), 2
        )
        self.assertEqual(Notification.objects.get(title='Hidden').status, Notification.Status.SENT)

    def test_reply_goes_back_to_sender(self):
        original = make_notification(title='Deadline', sender='LEC001', sender_name='Lena Lecturer',
                                     recipient='student', recipient_type=Notification.RecipientType.ROLE)
        self.client.force_authenticate(user=self.student)

        response = self.client.post(reverse('notification-reply', kwargs={'notification_id': original.pk}), {})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Reply message is required')

        response = self.client.post(reverse('notification-reply', kwargs={'notification_id': original.pk}),
                                    {'message': 'Can I get an extension?'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['title'], 'Re: Deadline')
        self.assertEqual(data['recipient'], 'LEC001')
        self.assertEqual(data['type'], 'reply')
        self.assertTrue(data['isReply'])
        self.assertEqual(data['parentNotification']['id'], original.pk)

        response = self.client.post(reverse('notification-reply', kwargs={'notification_id': 9999}),
                                    {'message': 'Hello?'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Original notification not found')

    def test_mark_read_updates_status_only_for_direct_recipient(self):
        broadcast = make_notification(title='Broadcast')
        direct = make_notification(title='Direct', recipient='STU001',
                                   recipient_type=Notification.RecipientType.SPECIFIC)
        self.client.force_authenticate(user=self.student)

        for notification in (broadcast, direct, direct):
            response = self.client.put(reverse('notification-read', kwargs={'notification_id': notification.pk}))
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['message'], 'Notification marked as read')

        broadcast.refresh_from_db()
        direct.refresh_from_db()
        self.assertEqual(broadcast.status, Notification.Status.SENT)
        self.assertFalse(broadcast.is_read)
        self.assertEqual(direct.status, Notification.Status.READ)
        self.assertTrue(direct.is_read)
        self.assertEqual(NotificationReadReceipt.objects.filter(user_id='STU001').count(), 2)

    def test_stats(self):
        read_item = make_notification(title='One')
        make_notification(title='Two', recipient='CS', recipient_type=Notification.RecipientType.ROLE)
        make_notification(title='Mine', sender='STU001', recipient='LEC001',
                          recipient_type=Notification.RecipientType.SPECIFIC)
        NotificationReadReceipt.objects.create(notification=read_item, user_id='STU001')

        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('notification-stats'))
        self.assertEqual(response.data['data'], {'total': 2, 'unread': 1, 'sent': 1})

    def test_sent_lists_own_notifications(self):
        make_notification(title='From lecturer', sender='LEC001')
        make_notification(title='From admin')
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.get(reverse('notification-sent'))
        self.assertEqual([item['title'] for item in response.data['data']], ['From lecturer'])

    def test_delete_permissions(self):
        notification = make_notification(title='Private', sender='LEC001', recipient='STU001',
                                         recipient_type=Notification.RecipientType.SPECIFIC)
        url = reverse('notification-detail', kwargs={'pk': notification.pk})

        self.client.force_authenticate(user=self.math_student)
        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized to delete this notification')

        self.client.force_authenticate(user=self.student)
        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Notification deleted successfully')

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_recipient_users_listing(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('notification-users'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized to view users')

        self.client.force_authenticate(user=self.lecturer)
        response = self.client.get(reverse('notification-users'), {'role': 'student', 'department': 'all'})
        self.assertEqual([u['userId'] for u in response.data['data']], ['STU002', 'STU001'])

        response = self.client.get(reverse('notification-users'), {'role': 'all', 'department': 'MATH'})
        self.assertEqual([u['userId'] for u in response.data['data']], ['STU002'])
