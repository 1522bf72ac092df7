import math

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class EvaluationPagination(PageNumberPagination):
    """``page`` + ``limit`` pagination with a ``meta`` block."""

    page_size = 10
    page_size_query_param = "limit"
    max_page_size = 100

    def get_paginated_response(self, data):
        total = self.page.paginator.count
        limit = self.page.paginator.per_page
        return Response(
            {
                "results": data,
                "meta": {
                    "currentPage": self.page.number,
                    "totalPages": max(1, math.ceil(total / limit)) if limit else 1,
                    "total": total,
                    "limit": limit,
                },
            }
        )

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "required": ["results", "meta"],
            "properties": {
                "results": schema,
                "meta": {
                    "type": "object",
                    "properties": {
                        "currentPage": {"type": "integer"},
                        "totalPages": {"type": "integer"},
                        "total": {"type": "integer"},
                        "limit": {"type": "integer"},
                    },
                },
            },
        }
