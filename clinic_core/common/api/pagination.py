# clinic_core/common/api/pagination.py
from __future__ import annotations

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    """?page=N&page_size=M, capped at 100 rows per page."""

    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100


def paginate(request, queryset, serializer_class, *, paginator: PageNumberPagination | None = None) -> Response:
    """
    Serialize one page of `queryset` as { count, next, previous, results }.
    Lab request and medical file lists all go through here.
    """
    pager = paginator or DefaultPagination()
    rows = pager.paginate_queryset(queryset, request)
    if rows is None:
        return Response(serializer_class(queryset, many=True).data)
    return pager.get_paginated_response(serializer_class(rows, many=True).data)
