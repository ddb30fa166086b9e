import logging

from django.db import IntegrityError, transaction
from rest_framework import permissions, status, viewsets
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response

from core.pagination import EnvelopePagination
from users.permissions import IsAdmin, PolicyMixin
from .models import News
from .serializers import NewsSerializer

logger = logging.getLogger(__name__)


class NewsPagination(EnvelopePagination):
    page_size = 10


class NewsViewSet(PolicyMixin, viewsets.ModelViewSet):
    """
    Новости платформы. Адресуются заголовком без учета регистра.

    Читать могут все аутентифицированные пользователи, но не-администраторы видят
    только опубликованные новости. Создание, изменение и удаление только для администратора.
    """
    queryset = News.objects.all()
    serializer_class = NewsSerializer
    pagination_class = NewsPagination
    filter_backends = []
    lookup_field = 'title'
    lookup_value_regex = '[^/]+'
    http_method_names = ['get', 'post', 'put', 'delete', 'head', 'options']
    permission_policy = {
        'GET': [permissions.IsAuthenticated],
        '*': [IsAdmin],
    }
    permission_messages = {
        'POST': 'Unauthorized. Only admins can create news.',
        'PUT': 'Unauthorized. Only admins can update news.',
        'DELETE': 'Unauthorized. Only admins can delete news.',
    }
    sort_options = {
        'title': ('title',),
        'oldest': ('created_at',),
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        if not getattr(self.request.user, 'is_admin', False):
            return queryset.filter(status=News.Status.PUBLISHED)
        status_filter = self.request.query_params.get('status')
        if self.action == 'list' and status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    def get_object(self):
        news = self.get_queryset().filter(title__iexact=self.kwargs['title'].strip()).first()
        if news is None:
            raise NotFound('News not found')
        return news

    def _save(self, serializer, **kwargs):
        try:
            with transaction.atomic():
                return serializer.save(**kwargs)
        except IntegrityError:
            raise ValidationError('News with this title already exists')

    def list(self, request, *args, **kwargs):
        ordering = self.sort_options.get(request.query_params.get('sortBy'), ('-created_at',))
        page = self.paginate_queryset(self.get_queryset().order_by(*ordering))
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    def retrieve(self, request, *args, **kwargs):
        return Response({'success': True, 'data': self.get_serializer(self.get_object()).data})

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        news = self._save(serializer, author=request.user.get_full_name() or 'Admin')
        logger.info(f"News '{news.title}' created by {request.user.user_id}")
        return Response({
            'success': True,
            'message': 'News created successfully',
            'data': self.get_serializer(news).data,
        }, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        news = self._save(serializer)
        return Response({
            'success': True,
            'message': 'News updated successfully',
            'data': self.get_serializer(news).data,
        })

    def destroy(self, request, *args, **kwargs):
        news = self.get_object()
        deleted = {'id': news.pk, 'title': news.title, 'imagePath': news.image_path}
        news.delete()
        logger.info(f"News '{deleted['title']}' deleted by {request.user.user_id}")
        return Response({
            'success': True,
            'message': 'News deleted successfully',
            'deletedNews': deleted,
        })
