from django.urls import path

from . import views

# --- URL-маршруты кабинета студента ---
# Префикс /api/students/ задается в корневом urls.py.
student_urlpatterns = [
    path('profile/<str:user_id>/', views.StudentProfileView.as_view(), name='student-profile'),
    path('subjects/<str:user_id>/', views.StudentSubjectsView.as_view(), name='student-subjects'),
    path('lessons/<str:user_id>/', views.StudentLessonsView.as_view(), name='student-lessons'),
    path('materials/<str:user_id>/', views.StudentMaterialsView.as_view(), name='student-materials'),
    path('stats/<str:user_id>/', views.StudentStatsView.as_view(), name='student-stats'),
    path('news/<str:user_id>/', views.StudentNewsView.as_view(), name='student-news'),
]

# --- URL-маршруты кабинета преподавателя ---
# Префикс /api/lecturers/ задается в корневом urls.py.
lecturer_urlpatterns = [
    path('profile/<str:lecturer_id>/', views.LecturerProfileView.as_view(), name='lecturer-profile'),
    path('subjects/<str:lecturer_id>/', views.LecturerSubjectsView.as_view(), name='lecturer-subjects'),
    path('students/<str:lecturer_id>/', views.LecturerStudentsView.as_view(), name='lecturer-students'),
    path('materials/<str:lecturer_id>/', views.LecturerMaterialsView.as_view(), name='lecturer-materials'),
    path('lessons/<str:lecturer_id>/', views.LecturerLessonsView.as_view(), name='lecturer-lessons'),
    path('stats/<str:lecturer_id>/', views.LecturerStatsView.as_view(), name='lecturer-stats'),
    path('notifications/<str:lecturer_id>/', views.LecturerNotificationsView.as_view(),
         name='lecturer-notifications'),
]
