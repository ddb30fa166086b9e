# edu_core/tests.py

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .grading import InvalidScoreError, calculate_grade, grade_marks, is_passing, pass_threshold
from .models import Department, Lesson, LessonPart, Mark, Material, Subject
from . import services

User = get_user_model()


class GradingRuleTests(SimpleTestCase):
    def test_grade_bands(self):
        cases = [
            (200, 'A+'), (180, 'A+'), (179.5, 'A'), (160, 'A'), (150, 'A-'), (140, 'B+'),
            (130, 'B'), (120, 'B-'), (110, 'C+'), (100, 'C'), (99.9, 'C-'), (90, 'C-'),
            (80, 'D+'), (70, 'D'), (69, 'F'), (0, 'F'),
        ]
        for total, expected in cases:
            with self.subTest(total=total):
                self.assertEqual(calculate_grade(total), expected)

    def test_grade_marks_sums_scores(self):
        self.assertEqual(grade_marks(90, 90), (180, 'A+'))
        self.assertEqual(grade_marks(35, 30), (65, 'F'))

    def test_scores_out_of_range_rejected(self):
        for assignment, exam in [(-1, 50), (50, 101), (None, 10)]:
            with self.subTest(assignment=assignment, exam=exam):
                with self.assertRaises(InvalidScoreError):
                    grade_marks(assignment, exam)

    def test_pass_threshold_follows_percentage(self):
        self.assertEqual(pass_threshold(), 100)
        self.assertEqual(pass_threshold(60), 120)
        self.assertTrue(is_passing(100))
        self.assertFalse(is_passing(99.5))


# Общие данные для API-тестов: кафедра CS с предметом и пользователи всех ролей.
class EduCoreAPITestCase(APITestCase):
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
        cls.other_lecturer = User.objects.create_user(
            email='lecturer2@lms.test', password='TestPassword123!', user_id='LEC002',
            first_name='Oleg', last_name='Other', role=User.Role.LECTURER, department='CS'
        )
        cls.student = User.objects.create_user(
            email='student@lms.test', password='TestPassword123!', user_id='STU001',
            first_name='Sam', last_name='Student', role=User.Role.STUDENT, department='CS'
        )
        cls.other_student = User.objects.create_user(
            email='student2@lms.test', password='TestPassword123!', user_id='STU002',
            first_name='Tom', last_name='Tester', role=User.Role.STUDENT, department='CS'
        )
        cls.department = Department.objects.create(department_id='CS', name='Computer Science')
        cls.subject = Subject.objects.create(
            subject_code='CS101', subject_name='Programming', department=cls.department,
            year=1, semester=1, credits=3, lecturer='LEC001'
        )


class DepartmentAPITests(EduCoreAPITestCase):
    def setUp(self):
        self.list_url = reverse('department-list')

    def test_create_department_admin(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, {'departmentId': 'ee', 'name': 'Electrical Engineering'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['departmentId'], 'EE')
        self.assertTrue(Department.objects.filter(department_id='EE').exists())

    def test_create_department_requires_code_and_name(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, {'name': 'No Code'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Department ID and Name are required')

    def test_duplicate_code_is_case_insensitive(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, {'departmentId': 'cs', 'name': 'Another'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Department ID already exists')

    def test_duplicate_name_is_case_insensitive(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, {'departmentId': 'CSE', 'name': 'computer science'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Department name already exists')

    def test_create_department_forbidden_for_lecturer(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(self.list_url, {'departmentId': 'ME', 'name': 'Mechanical'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. Only admins can create departments.')

    def test_list_requires_token(self):
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'No token, authorization denied')

    def test_retrieve_by_lowercase_code(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('department-detail', kwargs={'department_id': 'cs'}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Computer Science')

    def test_retrieve_unknown_department(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('department-detail', kwargs={'department_id': 'XX'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Department not found')

    def test_update_keeps_code(self):
        self.client.force_authenticate(user=self.admin)
        url = reverse('department-detail', kwargs={'department_id': 'CS'})
        response = self.client.put(url, {'description': 'Software and theory'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.department.refresh_from_db()
        self.assertEqual(self.department.description, 'Software and theory')

        response = self.client.put(url, {'departmentId': 'NEW'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_department_cascades(self):
        lesson = Lesson.objects.create(
            title='Intro', department=self.department, subject=self.subject, total_parts=1, type='video'
        )
        LessonPart.objects.create(lesson=lesson, part_number=1, title='Part 1', file_path='p1', file_url='u1',
                                  file_type='video/mp4', file_size=10)
        Mark.objects.create(student_id='STU001', department=self.department, subject=self.subject,
                            assignment_marks=50, exam_marks=50, semester=1, year=1, academic_year='2024',
                            added_by='LEC001')

        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('department-detail', kwargs={'department_id': 'CS'}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Department deleted successfully')
        self.assertEqual(response.data['deletedDepartment']['departmentId'], 'CS')
        self.assertEqual(response.data['deletedSubjects'], 1)
        self.assertFalse(Department.objects.exists())
        self.assertFalse(Subject.objects.exists())
        self.assertFalse(Lesson.objects.exists())
        self.assertFalse(LessonPart.objects.exists())
        self.assertFalse(Mark.objects.exists())


class SubjectAPITests(EduCoreAPITestCase):
    def setUp(self):
        self.list_url = reverse('subject-list')

    def _payload(self, **overrides):
        payload = {
            'subjectCode': 'cs201', 'subjectName': 'Algorithms', 'departmentId': 'cs',
            'year': 2, 'semester': 1, 'credits': 4, 'lecturer': 'LEC001',
        }
        payload.update(overrides)
        return payload

    def test_lecturer_creates_subject(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(self.list_url, self._payload())
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['subjectCode'], 'CS201')
        self.assertEqual(response.data['department']['departmentId'], 'CS')
        self.assertEqual(Subject.objects.get(subject_code='CS201').department_code, 'CS')

    def test_student_cannot_create_subject(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.post(self.list_url, self._payload())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. Only admins and lecturers can create subjects.')

    def test_duplicate_subject_code(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, self._payload(subjectCode='cs101'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Subject code already exists')

    def test_unknown_department(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, self._payload(departmentId='ZZ'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Department not found')

    def test_out_of_range_year_rejected(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, self._payload(year=5))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_by_department_and_term(self):
        Subject.objects.create(subject_code='CS202', subject_name='Databases', department=self.department,
                               year=2, semester=2, credits=3)
        self.client.force_authenticate(user=self.student)

        response = self.client.get(reverse('subject-by-department', kwargs={'department_id': 'cs'}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        url = reverse('subject-by-term', kwargs={'department_id': 'CS', 'year': 2, 'semester': 2})
        response = self.client.get(url)
        self.assertEqual([s['subjectCode'] for s in response.data], ['CS202'])

        response = self.client.get(self.list_url, {'year': 1})
        self.assertEqual([s['subjectCode'] for s in response.data], ['CS101'])

    def test_subjects_of_unknown_department(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('subject-by-department', kwargs={'department_id': 'XX'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_subject_by_code(self):
        self.client.force_authenticate(user=self.lecturer)
        url = reverse('subject-detail', kwargs={'subject_code': 'cs101'})
        response = self.client.put(url, {'subjectName': 'Programming I', 'credits': 5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.subject.refresh_from_db()
        self.assertEqual(self.subject.subject_name, 'Programming I')
        self.assertEqual(self.subject.credits, 5)

    def test_delete_subject_by_primary_key(self):
        Material.objects.create(name='Slides', path='m/slides.pdf', url='u', type='pdf', subject=self.subject,
                                uploaded_by=self.lecturer, size=100)
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('subject-detail', kwargs={'subject_code': str(self.subject.pk)}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deletedSubject']['subjectCode'], 'CS101')
        self.assertFalse(Subject.objects.exists())
        self.assertFalse(Material.objects.exists())


class LessonAPITests(EduCoreAPITestCase):
    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.lesson = Lesson.objects.create(
            title='Variables', department=cls.department, subject=cls.subject, total_parts=2, type='video'
        )

    def test_lesson_status_follows_uploaded_parts(self):
        lesson = Lesson.objects.create(
            title='Loops', department=self.department, subject=self.subject, total_parts=1, type='pdf'
        )
        self.assertEqual(lesson.status, Lesson.Status.DRAFT)
        lesson.uploaded_parts = 1
        lesson.save(update_fields=['uploaded_parts'])
        lesson.refresh_from_db()
        self.assertEqual(lesson.status, Lesson.Status.PUBLISHED)

        lesson.total_parts = 3
        lesson.save()
        self.assertEqual(lesson.status, Lesson.Status.DRAFT)

    def test_create_lesson_admin(self):
        self.client.force_authenticate(user=self.admin)
        payload = {
            'title': 'Functions', 'department': self.department.pk, 'subject': self.subject.pk,
            'totalParts': 3, 'type': 'video', 'status': 'published',
        }
        response = self.client.post(reverse('lesson-list'), payload)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Lesson created successfully')
        self.assertEqual(response.data['data']['status'], 'draft')
        self.assertEqual(response.data['data']['author'], 'Ada Admin')
        self.assertEqual(response.data['data']['subject']['subjectCode'], 'CS101')

    def test_create_lesson_missing_fields(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('lesson-list'), {'title': 'Incomplete'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Title, department, subject, totalParts, and type are required')

    def test_create_lesson_forbidden_for_lecturer(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('lesson-list'), {'title': 'X'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. Only admins can create lessons.')

    def test_list_lessons_filtered_by_status(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('lesson-list'), {'status': 'draft'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(len(response.data['data']), 1)

        response = self.client.get(reverse('lesson-list'), {'status': 'published'})
        self.assertEqual(response.data['data'], [])

    def test_increment_parts_publishes_lesson(self):
        self.client.force_authenticate(user=self.admin)
        url = reverse('lesson-increment-parts', kwargs={'pk': self.lesson.pk})

        response = self.client.put(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['uploadedParts'], 1)
        self.assertEqual(response.data['data']['status'], 'draft')

        response = self.client.put(url)
        self.assertEqual(response.data['message'], 'Parts count updated successfully')
        self.assertEqual(response.data['data']['status'], 'published')

    def test_increment_parts_unknown_lesson(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.put(reverse('lesson-increment-parts', kwargs={'pk': 9999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Lesson not found')

    def test_delete_lesson_removes_parts(self):
        for number in (1, 2):
            LessonPart.objects.create(lesson=self.lesson, part_number=number, title=f'Part {number}',
                                      file_path=f'p{number}', file_url=f'u{number}', file_type='video/mp4',
                                      file_size=1)
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('lesson-detail', kwargs={'pk': self.lesson.pk}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Lesson and all its parts deleted successfully')
        self.assertFalse(Lesson.objects.filter(pk=self.lesson.pk).exists())
        self.assertFalse(LessonPart.objects.exists())

    def test_subject_must_belong_to_department(self):
        other = Department.objects.create(department_id='EE', name='Electrical')
        self.client.force_authenticate(user=self.admin)
        payload = {'title': 'Mixed', 'department': other.pk, 'subject': self.subject.pk,
                   'totalParts': 1, 'type': 'pdf'}
        response = self.client.post(reverse('lesson-list'), payload)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class LessonPartAPITests(EduCoreAPITestCase):
    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.lesson = Lesson.objects.create(
            title='Variables', department=cls.department, subject=cls.subject, total_parts=2, type='video'
        )

    def _payload(self, **overrides):
        payload = {
            'lessonId': self.lesson.pk, 'partNumber': 1, 'title': 'Intro',
            'filePath': 'lessons/1/intro.mp4', 'fileUrl': 'https://cdn.test/intro.mp4',
            'fileType': 'video/mp4', 'fileSize': 2048,
        }
        payload.update(overrides)
        return payload

    def test_create_part_defaults_lock_state(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('lesson-part-list'), self._payload())
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['data']['isLocked'])

        response = self.client.post(reverse('lesson-part-list'), self._payload(partNumber=2, title='Next'))
        self.assertTrue(response.data['data']['isLocked'])

    def test_missing_fields(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('lesson-part-list'), {'lessonId': self.lesson.pk})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'LessonId, partNumber, title, filePath, and fileUrl are required')

    def test_duplicate_part_number(self):
        LessonPart.objects.create(lesson=self.lesson, part_number=1, title='Existing', file_path='p',
                                  file_url='u', file_type='', file_size=0)
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('lesson-part-list'), self._payload())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(LessonPart.objects.count(), 1)

    def test_part_number_cannot_exceed_total_parts(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('lesson-part-list'), self._payload(partNumber=3))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_question_answer_must_reference_option(self):
        self.client.force_authenticate(user=self.admin)
        questions = [{'question': 'What is 2+2?', 'options': ['3', '4'], 'correctAnswer': 2}]
        response = self.client.post(reverse('lesson-part-list'), self._payload(questions=questions))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        questions[0]['correctAnswer'] = 1
        response = self.client.post(reverse('lesson-part-list'), self._payload(questions=questions))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['questions'][0]['correctAnswer'], 1)

    def test_parts_of_lesson_ordered(self):
        for number in (2, 1):
            LessonPart.objects.create(lesson=self.lesson, part_number=number, title=f'Part {number}',
                                      file_path=f'p{number}', file_url=f'u{number}', file_type='', file_size=0)
        self.client.force_authenticate(user=self.student)

        response = self.client.get(reverse('lesson-part-detail', kwargs={'pk': self.lesson.pk}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['partNumber'] for p in response.data['data']], [1, 2])

        response = self.client.get(reverse('lesson-parts-nested-list', kwargs={'lesson_pk': self.lesson.pk}))
        self.assertEqual([p['partNumber'] for p in response.data['data']], [1, 2])

    def test_update_and_delete_part(self):
        part = LessonPart.objects.create(lesson=self.lesson, part_number=1, title='Old', file_path='p',
                                         file_url='u', file_type='', file_size=0)
        self.client.force_authenticate(user=self.admin)
        url = reverse('lesson-part-detail', kwargs={'pk': part.pk})

        response = self.client.put(url, {'title': 'New'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['title'], 'New')

        response = self.client.delete(url)
        self.assertEqual(response.data['message'], 'Lesson part deleted successfully')
        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Lesson part not found')


class MaterialAPITests(EduCoreAPITestCase):
    def _payload(self, **overrides):
        payload = {
            'name': 'Lecture notes', 'path': 'materials/cs101/notes.pdf', 'url': 'https://cdn.test/notes.pdf',
            'type': 'pdf', 'subject': self.subject.pk, 'size': 1024,
        }
        payload.update(overrides)
        return payload

    def test_lecturer_uploads_material(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('material-list'), self._payload())
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['uploadedBy']['userId'], 'LEC001')
        self.assertEqual(Material.objects.get().uploaded_by, self.lecturer)

    def test_student_cannot_upload(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.post(reverse('material-list'), self._payload())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_fields(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('material-list'), {'name': 'Only name'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'All fields are required')

    def test_file_size_limit_from_settings(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('material-list'), self._payload(size=101 * 1024 * 1024))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_uploader_or_admin_may_modify(self):
        material = Material.objects.create(name='Notes', path='m/notes.pdf', url='u', type='pdf',
                                           subject=self.subject, uploaded_by=self.lecturer, size=10)
        url = reverse('material-detail', kwargs={'pk': material.pk})

        self.client.force_authenticate(user=self.other_lecturer)
        response = self.client.put(url, {'name': 'Hijacked'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            response.data['error'], 'Unauthorized. Only admins or the original uploader can update materials.'
        )

        self.client.force_authenticate(user=self.lecturer)
        response = self.client.put(url, {'name': 'Renamed'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Renamed')

        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(url)
        self.assertEqual(response.data['message'], 'Material deleted successfully')

    def test_materials_by_subject(self):
        self.client.force_authenticate(user=self.student)
        url = reverse('material-by-subject', kwargs={'subject_id': self.subject.pk})
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'No materials found for this subject')

        Material.objects.create(name='Notes', path='m/notes.pdf', url='u', type='pdf',
                                subject=self.subject, uploaded_by=self.lecturer, size=10)
        response = self.client.get(url)
        self.assertEqual(len(response.data), 1)


class MarkAPITests(EduCoreAPITestCase):
    def _payload(self, **overrides):
        payload = {
            'studentId': 'STU001', 'departmentId': 'CS', 'subjectId': self.subject.pk,
            'assignmentMarks': 90, 'examMarks': 90, 'semester': 1, 'year': 1, 'academicYear': '2024',
        }
        payload.update(overrides)
        return payload

    def _mark(self, student_id='STU001', assignment=50, exam=50, academic_year='2024'):
        return Mark.objects.create(
            student_id=student_id, department=self.department, subject=self.subject,
            assignment_marks=assignment, exam_marks=exam, semester=1, year=1,
            academic_year=academic_year, added_by='LEC001'
        )

    def test_submit_marks_twice_updates(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('mark-list'), self._payload())
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Marks added successfully')
        self.assertEqual(response.data['data']['totalMarks'], 180)
        self.assertEqual(response.data['data']['grade'], 'A+')
        self.assertEqual(response.data['data']['studentInfo']['userId'], 'STU001')

        response = self.client.post(reverse('mark-list'), self._payload(assignmentMarks=40, examMarks=30))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Marks updated successfully')
        self.assertEqual(Mark.objects.count(), 1)
        mark = Mark.objects.get()
        self.assertEqual(mark.total_marks, 70)
        self.assertEqual(mark.grade, 'D')

    def test_client_grade_is_ignored(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('mark-list'), self._payload(grade='A+', totalMarks=200, examMarks=10))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['totalMarks'], 100)
        self.assertEqual(response.data['data']['grade'], 'C')

    def test_marks_out_of_range(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('mark-list'), self._payload(examMarks=120))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Marks must be between 0 and 100')

    def test_missing_required_fields(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('mark-list'), {'studentId': 'STU001'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'All required fields must be provided')

    def test_student_must_belong_to_department(self):
        Department.objects.create(department_id='EE', name='Electrical')
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('mark-list'), self._payload(departmentId='EE'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Student does not belong to the selected department')

    def test_unknown_student(self):
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('mark-list'), self._payload(studentId='NOPE'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Student not found')

    def test_student_cannot_submit_marks(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.post(reverse('mark-list'), self._payload())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Unauthorized. Only admins and lecturers can manage marks.')

    def test_academic_year_defaults_to_settings(self):
        payload = self._payload()
        del payload['academicYear']
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.post(reverse('mark-list'), payload)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        from core.models import SystemSettings
        self.assertEqual(response.data['data']['academicYear'], SystemSettings.load().current_academic_year)

    def test_list_pagination(self):
        for offset in range(25):
            self._mark(academic_year=str(2000 + offset))
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('mark-list'), {'page': 2, 'limit': 10})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 10)
        self.assertEqual(response.data['pagination'], {
            'currentPage': 2, 'totalPages': 3, 'totalItems': 25, 'itemsPerPage': 10,
        })

    def test_student_lists_only_own_marks(self):
        self._mark(student_id='STU001')
        self._mark(student_id='STU002')
        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('mark-list'))
        self.assertEqual([m['studentId'] for m in response.data['data']], ['STU001'])

    def test_marks_by_student_self_or_staff(self):
        self._mark(student_id='STU001', assignment=90, exam=80)
        url = reverse('mark-student', kwargs={'student_id': 'STU001'})

        self.client.force_authenticate(user=self.other_student)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        for user in (self.student, self.lecturer, self.admin):
            with self.subTest(user=user.user_id):
                self.client.force_authenticate(user=user)
                response = self.client.get(url)
                self.assertEqual(response.status_code, status.HTTP_200_OK)
                statistics = response.data['data']['statistics']
                self.assertEqual(statistics['totalSubjects'], 1)
                self.assertEqual(statistics['averageMarks'], '170.00')
                self.assertEqual(statistics['gradeDistribution'], {'A': 1})

    def test_marks_by_subject_sorted_by_total(self):
        self._mark(student_id='STU001', assignment=40, exam=40)
        self._mark(student_id='STU002', assignment=90, exam=90)
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.get(reverse('mark-subject', kwargs={'subject_id': self.subject.pk}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['subject']['subjectCode'], 'CS101')
        self.assertEqual([m['studentId'] for m in data['marks']], ['STU002', 'STU001'])
        self.assertEqual(data['marks'][0]['studentInfo']['firstName'], 'Tom')
        self.assertEqual(data['statistics']['passRate'], '50.00')
        self.assertEqual(data['statistics']['highestMarks'], 180)
        self.assertEqual(data['statistics']['lowestMarks'], 80)

    def test_student_sees_only_own_marks_by_subject(self):
        self._mark(student_id='STU001', assignment=40, exam=40)
        self._mark(student_id='STU002', assignment=90, exam=90)
        self.client.force_authenticate(user=self.student)

        response = self.client.get(reverse('mark-subject', kwargs={'subject_id': self.subject.pk}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual([m['studentId'] for m in data['marks']], ['STU001'])
        self.assertEqual(data['statistics']['totalStudents'], 1)
        self.assertEqual(data['statistics']['highestMarks'], 80)

        response = self.client.get(reverse('mark-statistics'))
        self.assertEqual(response.data['data']['totalMarksRecords'], 1)

    def test_statistics(self):
        self._mark(student_id='STU001', assignment=90, exam=90)
        self._mark(student_id='STU002', assignment=35, exam=35)
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('mark-statistics'))
        data = response.data['data']
        self.assertEqual(data['totalMarksRecords'], 2)
        self.assertEqual(data['totalStudents'], 2)
        self.assertEqual(data['averageMarks'], '125.00')
        self.assertEqual(data['passRate'], '50.00')
        self.assertEqual(data['gradeDistribution'], {'A+': 1, 'D': 1})
        self.assertEqual(data['departmentWiseStats']['CS']['totalRecords'], 2)
        self.assertEqual(data['subjectWiseStats']['CS101']['passRate'], '50.00')

    def test_delete_marks(self):
        mark = self._mark()
        self.client.force_authenticate(user=self.lecturer)
        response = self.client.delete(reverse('mark-detail', kwargs={'pk': mark.pk}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deletedMark'], {'id': mark.pk, 'studentId': 'STU001',
                                                       'subject': self.subject.pk})
        response = self.client.delete(reverse('mark-detail', kwargs={'pk': mark.pk}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Marks not found')


class ServiceTests(EduCoreAPITestCase):
    def test_upsert_mark_is_idempotent_on_key(self):
        kwargs = dict(student_id='STU001', department=self.department, subject=self.subject, semester=1,
                      year=1, academic_year='2024', added_by='LEC001')
        first, created = services.upsert_mark(assignment_marks=10, exam_marks=10, **kwargs)
        self.assertTrue(created)
        second, created = services.upsert_mark(assignment_marks=60, exam_marks=50, **kwargs)
        self.assertFalse(created)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(second.grade, 'C+')

    def test_delete_subject_reports_counts(self):
        Mark.objects.create(student_id='STU001', department=self.department, subject=self.subject,
                            assignment_marks=50, exam_marks=50, semester=1, year=1, academic_year='2024',
                            added_by='LEC001')
        counts = services.delete_subject(self.subject)
        self.assertEqual(counts, {'lessons': 0, 'materials': 0, 'marks': 1})
