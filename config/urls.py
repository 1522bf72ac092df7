from django.conf import settings
from django.contrib import admin
from django.urls import include
from django.urls import path
from django.views import defaults as default_views
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from drf_spectacular.views import SpectacularAPIView
from drf_spectacular.views import SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.views import TokenRefreshView
from rest_framework_simplejwt.views import TokenVerifyView

from .health import health as health_view

urlpatterns = [
    # Django Admin, use {% url 'admin:index' %}
    path(settings.ADMIN_URL, admin.site.urls),
    path("health/", health_view, name="health"),
]

# API URLS (only version v1)
urlpatterns += [
    path("api/v1/", include(("config.api_router", "api"), namespace="api_v1")),
    path("api/v1/schema/", SpectacularAPIView.as_view(), name="api-schema-v1"),
    path(
        "api/v1/docs/",
        SpectacularSwaggerView.as_view(url_name="api-schema-v1"),
        name="api-docs-v1",
    ),
]


# Annotated JWT views for proper schema tag grouping
@extend_schema_view(post=extend_schema(tags=["Authentication"]))
class JWTCreateView(TokenObtainPairView):
    pass


@extend_schema_view(post=extend_schema(tags=["Authentication"]))
class JWTRefreshView(TokenRefreshView):
    pass


@extend_schema_view(post=extend_schema(tags=["Authentication"]))
class JWTVerifyView(TokenVerifyView):
    pass


urlpatterns += [
    path("api/v1/auth/jwt/create/", JWTCreateView.as_view(), name="jwt-create"),
    path("api/v1/auth/jwt/refresh/", JWTRefreshView.as_view(), name="jwt-refresh"),
    path("api/v1/auth/jwt/verify/", JWTVerifyView.as_view(), name="jwt-verify"),
]

if settings.DEBUG:
    # This allows the error pages to be debugged during development, just visit
    # these url in browser to see how these error pages look like.
    urlpatterns += [
        path(
            "400/",
            default_views.bad_request,
            kwargs={"exception": Exception("Bad Request!")},
        ),
        path(
            "403/",
            default_views.permission_denied,
            kwargs={"exception": Exception("Permission Denied")},
        ),
        path(
            "404/",
            default_views.page_not_found,
            kwargs={"exception": Exception("Page not Found")},
        ),
        path("500/", default_views.server_error),
    ]
