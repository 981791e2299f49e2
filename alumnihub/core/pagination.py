from django.core.paginator import Paginator

from .conf import get_setting


def get_page_params(request):
    """Read page/limit query params, falling back to defaults on bad input"""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(request.query_params.get('limit', get_setting('PAGE_SIZE')))
    except (TypeError, ValueError):
        limit = get_setting('PAGE_SIZE')
    limit = min(max(limit, 1), get_setting('MAX_PAGE_SIZE'))
    return page, limit


def paginate(request, items):
    """
    Paginate a queryset or list.

    Returns the items of the requested page and the pagination metadata.
    """
    page, limit = get_page_params(request)
    paginator = Paginator(items, limit)
    page_obj = paginator.get_page(page)
    meta = {
        'count': paginator.count,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
    }
    return list(page_obj.object_list), meta


def paginated_response_data(request, items, serializer_class, context=None):
    page_items, meta = paginate(request, items)
    serializer = serializer_class(page_items, many=True, context=context or {'request': request})
    return {'results': serializer.data, **meta}
