import math

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


# Пагинация с конвертом {success, data, pagination}. Параметры запроса: page и limit.
# Номер страницы за пределами диапазона не вызывает 404, а возвращает пустой список
# с корректными метаданными.
class EnvelopePagination(PageNumberPagination):
    page_size = 20
    page_query_param = 'page'
    page_size_query_param = 'limit'
    max_page_size = 100

    def paginate_queryset(self, queryset, request, view=None):
        self.request = request
        self.page_size_value = self.get_page_size(request)
        try:
            page_number = int(request.query_params.get(self.page_query_param, 1))
        except (TypeError, ValueError):
            page_number = 1
        self.page_number = max(page_number, 1)

        self.total_items = queryset.count()
        start = (self.page_number - 1) * self.page_size_value
        return list(queryset[start:start + self.page_size_value])

    def get_pagination_meta(self):
        return {
            'currentPage': self.page_number,
            'totalPages': math.ceil(self.total_items / self.page_size_value) if self.page_size_value else 0,
            'totalItems': self.total_items,
            'itemsPerPage': self.page_size_value,
        }

    def get_paginated_response(self, data):
        return Response({
            'success': True,
            'data': data,
            'pagination': self.get_pagination_meta(),
        })

    def get_paginated_response_schema(self, schema):
        return {
            'type': 'object',
            'properties': {
                'success': {'type': 'boolean'},
                'data': schema,
                'pagination': {
                    'type': 'object',
                    'properties': {
                        'currentPage': {'type': 'integer'},
                        'totalPages': {'type': 'integer'},
                        'totalItems': {'type': 'integer'},
                        'itemsPerPage': {'type': 'integer'},
                    },
                },
            },
        }
