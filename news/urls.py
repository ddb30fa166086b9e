from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import NewsViewSet

router = SimpleRouter()
router.register(r'', NewsViewSet, basename='news')

urlpatterns = [
    path('', include(router.urls)),
]
