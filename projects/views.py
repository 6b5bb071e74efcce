# ============================================================
# Standard Library Imports
# ============================================================
import logging

# ============================================================
# Third-Party Imports
# ============================================================
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

# ============================================================
# Local Application Imports
# ============================================================
from .models import Project
from .permissions import IsAdminTier, IsAuthenticatedUser, IsContractor, get_actor_id
from .reviews import ReviewService
from .serializers import (
    AdminProjectFilterSerializer,
    AdminReviewFilterSerializer,
    ProjectCreateSerializer,
    ProjectReviewSerializer,
    ProjectSerializer,
    ProjectTimelineSerializer,
    ProjectUpdateSerializer,
    ReasonSerializer,
    ReviewCreateSerializer,
    ReviewModerationSerializer,
    ReviewResponseSerializer,
)
from .services import ProjectService

logger = logging.getLogger(__name__)


# ============================================================
# Pagination
# ============================================================
class ProjectPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = 'page_size'
    max_page_size = 100


STATUS_PARAM = openapi.Parameter(
    'status', openapi.IN_QUERY, type=openapi.TYPE_STRING,
    enum=[choice for choice, _ in Project.STATUS_CHOICES], description="Filter by project status",
)


def success(message, data, status_code=status.HTTP_200_OK):
    return Response({"status": "success", "message": message, "data": data}, status=status_code)


def paginated(request, queryset, serializer_class, message):
    paginator = ProjectPagination()
    page = paginator.paginate_queryset(queryset, request)
    serializer = serializer_class(page, many=True)
    return paginator.get_paginated_response({
        "status": "success",
        "message": message,
        "data": serializer.data,
    })


class ProjectServiceMixin:
    def get_service(self):
        return ProjectService()


# ============================================================
# User projects
# ============================================================
class ProjectListCreateView(ProjectServiceMixin, APIView):
    """
    GET  → the caller's own projects (paginated)
    POST → create a project from an approved quote
    """
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="List my projects",
        manual_parameters=[STATUS_PARAM],
        responses={200: ProjectSerializer(many=True)},
        tags=["Projects"]
    )
    def get(self, request):
        projects = self.get_service().list_user_projects(request.user, status=request.query_params.get('status'))
        return paginated(request, projects, ProjectSerializer, "Projects retrieved successfully.")

    @swagger_auto_schema(
        operation_summary="Create project from quote",
        operation_description="""
        Converts an admin-approved contractor quote into a project.
        One project per quote; the project starts in `payment_pending`.
        """,
        request_body=ProjectCreateSerializer,
        responses={
            201: ProjectSerializer(),
            400: "Validation Error",
            409: "Project already exists for this quote",
            422: "Quote not approved / quotes service unavailable",
        },
        tags=["Projects"]
    )
    def post(self, request):
        serializer = ProjectCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = self.get_service().create_project(
            request.user,
            serializer.validated_data,
            auth_token=request.META.get('HTTP_AUTHORIZATION'),
        )
        return success("Project created successfully.", ProjectSerializer(project).data, status.HTTP_201_CREATED)


class ProjectDetailView(ProjectServiceMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Project details",
        responses={200: ProjectSerializer(), 404: "Not found"},
        tags=["Projects"]
    )
    def get(self, request, project_id):
        project = self.get_service().get_project(project_id, request.user)
        return success("Project retrieved successfully.", ProjectSerializer(project).data)

    @swagger_auto_schema(
        operation_summary="Update project details",
        request_body=ProjectUpdateSerializer,
        responses={200: ProjectSerializer(), 403: "Not the owner", 422: "Project closed"},
        tags=["Projects"]
    )
    def patch(self, request, project_id):
        serializer = ProjectUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        project = self.get_service().update_project(project_id, request.user, serializer.validated_data)
        return success("Project updated successfully.", ProjectSerializer(project).data)


class ProjectCancelView(ProjectServiceMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Cancel project",
        operation_description="Allowed until installation starts.",
        request_body=ReasonSerializer,
        responses={200: ProjectSerializer(), 422: "Cannot cancel at this stage"},
        tags=["Projects"]
    )
    def post(self, request, project_id):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = self.get_service().cancel_project(project_id, request.user, serializer.validated_data['reason'])
        return success("Project cancelled successfully.", ProjectSerializer(project).data)


class ProjectTimelineView(ProjectServiceMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Project timeline",
        manual_parameters=[
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, description="Newest N events"),
        ],
        responses={200: ProjectTimelineSerializer(many=True)},
        tags=["Projects"]
    )
    def get(self, request, project_id):
        limit = request.query_params.get('limit')
        limit = int(limit) if limit and limit.isdigit() else None
        events = self.get_service().get_timeline(project_id, request.user, limit=limit)
        return success("Timeline retrieved successfully.", ProjectTimelineSerializer(events, many=True).data)


# ============================================================
# Reviews
# ============================================================
class ProjectReviewView(APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Get project review",
        responses={200: ProjectReviewSerializer(), 404: "No review"},
        tags=["Reviews"]
    )
    def get(self, request, project_id):
        review = ReviewService().get_review(project_id, request.user)
        return success("Review retrieved successfully.", ProjectReviewSerializer(review).data)

    @swagger_auto_schema(
        operation_summary="Submit project review",
        operation_description="Closes the project once installation is completed. One review per project.",
        request_body=ReviewCreateSerializer,
        responses={201: ProjectReviewSerializer(), 409: "Already reviewed", 422: "Installation not completed"},
        tags=["Reviews"]
    )
    def post(self, request, project_id):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = ReviewService().create_review(project_id, request.user, serializer.validated_data)
        return success("Review submitted successfully.", ProjectReviewSerializer(review).data, status.HTTP_201_CREATED)


class ReviewRespondView(APIView):
    permission_classes = [IsContractor]

    @swagger_auto_schema(
        operation_summary="Respond to review",
        request_body=ReviewResponseSerializer,
        responses={200: ProjectReviewSerializer(), 409: "Already responded"},
        tags=["Reviews"]
    )
    def post(self, request, project_id):
        serializer = ReviewResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = ReviewService().respond_to_review(project_id, request.user, serializer.validated_data['response'])
        return success("Response submitted successfully.", ProjectReviewSerializer(review).data)


# ============================================================
# Contractor
# ============================================================
class ContractorProjectListView(ProjectServiceMixin, APIView):
    permission_classes = [IsContractor]

    @swagger_auto_schema(
        operation_summary="List assigned projects",
        manual_parameters=[STATUS_PARAM],
        responses={200: ProjectSerializer(many=True)},
        tags=["Contractor"]
    )
    def get(self, request):
        projects = self.get_service().list_contractor_projects(request.user, status=request.query_params.get('status'))
        return paginated(request, projects, ProjectSerializer, "Projects retrieved successfully.")


class ContractorReviewListView(APIView):
    permission_classes = [IsContractor]

    @swagger_auto_schema(
        operation_summary="My reviews with rating summary",
        responses={200: ProjectReviewSerializer(many=True)},
        tags=["Contractor"]
    )
    def get(self, request):
        reviews, summary = ReviewService().list_contractor_reviews(get_actor_id(request.user), request.user)
        return success("Reviews retrieved successfully.", {
            "summary": summary,
            "reviews": ProjectReviewSerializer(reviews, many=True).data,
        })


# ============================================================
# Admin
# ============================================================
class AdminProjectListView(ProjectServiceMixin, APIView):
    permission_classes = [IsAdminTier]

    @swagger_auto_schema(
        operation_summary="List all projects",
        query_serializer=AdminProjectFilterSerializer,
        responses={200: ProjectSerializer(many=True)},
        tags=["Admin"]
    )
    def get(self, request):
        filters = AdminProjectFilterSerializer(data=request.query_params.dict())
        filters.is_valid(raise_exception=True)
        projects = self.get_service().list_all_projects(request.user, filters.validated_data)
        return paginated(request, projects, ProjectSerializer, "Projects retrieved successfully.")


class AdminProjectHoldView(ProjectServiceMixin, APIView):
    permission_classes = [IsAdminTier]

    @swagger_auto_schema(
        operation_summary="Put project on hold",
        request_body=ReasonSerializer,
        responses={200: ProjectSerializer(), 422: "Already on hold / closed"},
        tags=["Admin"]
    )
    def post(self, request, project_id):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = self.get_service().put_on_hold(project_id, request.user, serializer.validated_data['reason'])
        return success("Project put on hold.", ProjectSerializer(project).data)


class AdminProjectResumeView(ProjectServiceMixin, APIView):
    permission_classes = [IsAdminTier]

    @swagger_auto_schema(
        operation_summary="Resume project",
        responses={200: ProjectSerializer(), 422: "Not on hold"},
        tags=["Admin"]
    )
    def post(self, request, project_id):
        project = self.get_service().resume_project(project_id, request.user)
        return success("Project resumed.", ProjectSerializer(project).data)


class AdminReviewListView(APIView):
    permission_classes = [IsAdminTier]

    @swagger_auto_schema(
        operation_summary="List reviews",
        query_serializer=AdminReviewFilterSerializer,
        responses={200: ProjectReviewSerializer(many=True)},
        tags=["Admin"]
    )
    def get(self, request):
        filters = AdminReviewFilterSerializer(data=request.query_params.dict())
        filters.is_valid(raise_exception=True)
        reviews = ReviewService().list_all_reviews(request.user, filters.validated_data)
        return paginated(request, reviews, ProjectReviewSerializer, "Reviews retrieved successfully.")


class AdminContractorReviewsView(APIView):
    permission_classes = [IsAdminTier]

    @swagger_auto_schema(
        operation_summary="Reviews for a contractor",
        responses={200: ProjectReviewSerializer(many=True)},
        tags=["Admin"]
    )
    def get(self, request, contractor_id):
        reviews, summary = ReviewService().list_contractor_reviews(contractor_id, request.user)
        return success("Reviews retrieved successfully.", {
            "summary": summary,
            "reviews": ProjectReviewSerializer(reviews, many=True).data,
        })


class AdminModerateReviewView(APIView):
    permission_classes = [IsAdminTier]

    @swagger_auto_schema(
        operation_summary="Moderate review",
        request_body=ReviewModerationSerializer,
        responses={200: ProjectReviewSerializer(), 404: "Review not found"},
        tags=["Admin"]
    )
    def patch(self, request, review_id):
        serializer = ReviewModerationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = ReviewService().moderate_review(review_id, request.user, **serializer.validated_data)
        return success("Review moderated successfully.", ProjectReviewSerializer(review).data)
