from django.core.paginator import Paginator
from rest_framework.response import Response

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def paginated_response(queryset, serializer_class, page, limit, context=None):
    """
    Paginate a queryset and wrap it in the list envelope used by every
    list endpoint.
    """
    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj.object_list, many=True, context=context or {})
    response = Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })
    response['Cache-Control'] = 'private, max-age=10, must-revalidate'
    return response
