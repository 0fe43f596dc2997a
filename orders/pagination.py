# orders/pagination.py
import math

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class EnvelopePagination(PageNumberPagination):
    page_size = 20
    page_query_param = "page"
    page_size_query_param = "limit"
    max_page_size = 100

    def pagination_meta(self):
        total = self.page.paginator.count
        size = self.page.paginator.per_page
        return {
            "current_page": self.page.number,
            "total_pages": math.ceil(total / size) if size else 0,
            "total_items": total,
            "items_per_page": size,
        }

    def get_paginated_response(self, data):
        return Response({
            "status": "success",
            "data": {"orders": data, "pagination": self.pagination_meta()},
        })
