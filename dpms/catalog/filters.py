import django_filters
from django.db.models import Q
from .models import Item, ItemProcessState


class ItemFilter(django_filters.FilterSet):
    """Filter items by search term, masters and process state"""
    search = django_filters.CharFilter(method='filter_search')
    item_type = django_filters.NumberFilter(field_name='item_type_id')
    material = django_filters.NumberFilter(field_name='material_id')
    owner_type = django_filters.NumberFilter(field_name='owner_type_id')
    status = django_filters.NumberFilter(field_name='status_id')
    current_process = django_filters.ChoiceFilter(choices=ItemProcessState.choices)
    is_active = django_filters.BooleanFilter()

    class Meta:
        model = Item
        fields = ['search', 'item_type', 'material', 'owner_type', 'status', 'current_process', 'is_active']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(main_part_name__icontains=value) |
            Q(current_name__icontains=value) |
            Q(drawing_no__icontains=value)
        )
