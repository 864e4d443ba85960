from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


def paginated_response(request, queryset, serializer_class, **extra):
    """Page through ``queryset`` and wrap the page in the API envelope."""
    paginator = PageNumberPagination()
    page = paginator.paginate_queryset(queryset, request)
    return Response(
        {
            "status": "success",
            **extra,
            "count": paginator.page.paginator.count,
            "next": paginator.get_next_link(),
            "previous": paginator.get_previous_link(),
            "results": serializer_class(page, many=True).data,
        }
    )
