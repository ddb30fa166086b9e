from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .models import News

User = get_user_model()


class NewsAPITests(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_superuser(
            email='admin_news@lms.test', password='TestPassword123!', user_id='ADM100',
            first_name='Nina', last_name='Editor'
        )
        cls.student = User.objects.create_user(
            email='student_news@lms.test', password='TestPassword123!', user_id='STU100',
            first_name='Sasha', last_name='Reader', role=User.Role.STUDENT, department='CS'
        )
        cls.published = News.objects.create(title='Exam schedule', description='Exams start in June')
        cls.draft = News.objects.create(title='Hidden plans', description='Draft', status=News.Status.DRAFT)
        cls.list_url = reverse('news-list')

    def test_admin_creates_news(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, {'title': 'New library', 'description': 'Opening soon'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'News created successfully')
        self.assertEqual(response.data['data']['author'], 'Nina Editor')
        self.assertEqual(response.data['data']['status'], 'published')

    def test_title_and_description_required(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, {'title': 'Only title'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Title and description are required')

    def test_duplicate_title_case_insensitive(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, {'title': 'EXAM SCHEDULE', 'description': 'Copy'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'News with this title already exists')

    def test_student_cannot_create(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.post(self.list_url, {'title': 'Spam', 'description': 'Spam'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. Only admins can create news.')

    def test_student_sees_only_published(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get(self.list_url, {'status': 'draft'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([n['title'] for n in response.data['data']], ['Exam schedule'])

        response = self.client.get(reverse('news-detail', kwargs={'title': 'Hidden plans'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_filters_by_status(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(self.list_url, {'status': 'draft'})
        self.assertEqual([n['title'] for n in response.data['data']], ['Hidden plans'])

    def test_list_pagination_and_sorting(self):
        for number in range(23):
            News.objects.create(title=f'Bulletin {number:02d}', description='Weekly bulletin')
        self.client.force_authenticate(user=self.student)

        response = self.client.get(self.list_url)
        self.assertEqual(len(response.data['data']), 10)
        self.assertEqual(response.data['pagination']['totalItems'], 24)
        self.assertEqual(response.data['pagination']['totalPages'], 3)

        response = self.client.get(self.list_url, {'sortBy': 'title', 'page': 3})
        self.assertEqual(response.data['pagination']['currentPage'], 3)
        self.assertEqual(response.data['data'][-1]['title'], 'Exam schedule')

        response = self.client.get(self.list_url, {'page': 9})
        self.assertEqual(response.data['data'], [])

    def test_get_by_title_ignores_case(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('news-detail', kwargs={'title': 'exam schedule'}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['id'], self.published.pk)

    def test_update_news(self):
        self.client.force_authenticate(user=self.admin)
        url = reverse('news-detail', kwargs={'title': 'Exam Schedule'})
        response = self.client.put(url, {'description': 'Exams moved to July'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'News updated successfully')
        self.published.refresh_from_db()
        self.assertEqual(self.published.description, 'Exams moved to July')

        response = self.client.put(url, {'title': 'hidden PLANS'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_news(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('news-detail', kwargs={'title': 'exam schedule'}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deletedNews']['title'], 'Exam schedule')
        self.assertFalse(News.objects.filter(pk=self.published.pk).exists())

        response = self.client.delete(reverse('news-detail', kwargs={'title': 'exam schedule'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'News not found')
