import django_filters
from django.db.models import Q

from .models import User


# Класс UserFilter описывает фильтры поиска пользователей:
# - `query`: регистронезависимый поиск по userId, имени, фамилии и email;
# - `role`: точное совпадение роли;
# - `department`: код кафедры без учета регистра.
class UserFilter(django_filters.FilterSet):
    query = django_filters.CharFilter(method='filter_by_query', label='Search')
    role = django_filters.ChoiceFilter(choices=User.Role.choices)
    department = django_filters.CharFilter(field_name='department', lookup_expr='iexact')

    class Meta:
        model = User
        fields = ['role', 'department']

    def filter_by_query(self, queryset, name, value):
        if value:
            return queryset.filter(
                Q(user_id__icontains=value) |
                Q(first_name__icontains=value) |
                Q(last_name__icontains=value) |
                Q(email__icontains=value)
            )
        return queryset
