from django.contrib import admin
from django.urls import path, include

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi


# Swagger Configuration
schema_view = get_schema_view(
    openapi.Info(
        title="Solar Projects API",
        default_version='v1',
        description="""
        # Solar Project Lifecycle & BNPL Payment API

        Drives a solar installation project from an approved contractor quote
        through payment, installation and review.

        ## Features
        - Project creation from admin-approved quotes
        - Single payment or Buy-Now-Pay-Later with monthly installments
        - Late fees computed at the moment an installment is paid
        - Installation scheduling with OTP-confirmed completion
        - Quality checks and fund release to contractors
        - Reviews with one-time contractor responses

        ## Authentication
        Requests carry a JWT issued by the identity service:
        `Authorization: Bearer <token>`. The token must contain `user_id`
        and `role` claims (`user`, `contractor`, `admin`, `super_admin`).

        Internal endpoints under `/api/v1/internal/` expect the
        `X-Internal-Token` header instead.
        """,
        contact=openapi.Contact(email="support@solar-projects.local"),
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API Documentation
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
    path('swagger.json', schema_view.without_ui(cache_timeout=0), name='schema-json'),

    # API v1
    path('api/v1/projects/', include('projects.urls')),
    path('api/v1/projects/', include('payments.urls')),
    path('api/v1/projects/', include('installations.urls')),
    path('api/v1/contractor/', include('projects.urls_contractor')),
    path('api/v1/admin/', include('projects.urls_admin')),
    path('api/v1/internal/', include('projects.urls_internal')),
]
