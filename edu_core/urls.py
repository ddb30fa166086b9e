from django.urls import include, path
from rest_framework.routers import SimpleRouter
from rest_framework_nested import routers as nested_routers

from . import views

# Основной роутер учебных ресурсов. Префикс /api/ задается в корневом urls.py,
# поэтому здесь регистрируются только имена коллекций.
# Например, DepartmentViewSet будет доступен по URL /api/departments/<departmentId>/.
router = SimpleRouter()
router.register(r'departments', views.DepartmentViewSet, basename='department')
router.register(r'subjects', views.SubjectViewSet, basename='subject')
router.register(r'lessons', views.LessonViewSet, basename='lesson')
router.register(r'lesson-parts', views.LessonPartViewSet, basename='lesson-part')
router.register(r'materials', views.MaterialViewSet, basename='material')
router.register(r'marks', views.MarkViewSet, basename='mark')

# Вложенный роутер: части конкретного урока, /api/lessons/<lesson_pk>/parts/.
lessons_router = nested_routers.NestedSimpleRouter(router, r'lessons', lookup='lesson')
lessons_router.register(r'parts', views.LessonPartsOfLessonViewSet, basename='lesson-parts-nested')

urlpatterns = [
    path('', include(router.urls)),
    path('', include(lessons_router.urls)),
]
