# ============================================================
# Internal service-to-service endpoints
# ============================================================
import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.views import APIView

from .permissions import IsInternalService
from .serializers import (
    InternalStatusSerializer,
    InternalTimelineSerializer,
    ProjectSerializer,
    ProjectTimelineSerializer,
)
from .services import ProjectService
from .views import success

logger = logging.getLogger(__name__)

INTERNAL_TOKEN_HEADER = openapi.Parameter(
    'X-Internal-Token', openapi.IN_HEADER, type=openapi.TYPE_STRING, required=True,
)


class InternalAPIView(APIView):
    authentication_classes = []
    permission_classes = [IsInternalService]

    def get_service(self):
        return ProjectService()


class InternalProjectInfoView(InternalAPIView):

    @swagger_auto_schema(
        operation_summary="Project info for other services",
        manual_parameters=[INTERNAL_TOKEN_HEADER],
        tags=["Internal"]
    )
    def get(self, request, project_id):
        return success("Project info retrieved.", self.get_service().get_internal_info(project_id))


class InternalProjectStatusView(InternalAPIView):

    @swagger_auto_schema(
        operation_summary="Change project status",
        operation_description="Validated against the same transition table as every other status change.",
        manual_parameters=[INTERNAL_TOKEN_HEADER],
        request_body=InternalStatusSerializer,
        responses={200: ProjectSerializer(), 422: "Transition not allowed"},
        tags=["Internal"]
    )
    def patch(self, request, project_id):
        serializer = InternalStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        project = self.get_service().update_status_internal(
            project_id, data['status'], reason=data['reason'], service=data['service'],
        )
        return success("Project status updated.", ProjectSerializer(project).data)


class InternalTimelineView(InternalAPIView):

    @swagger_auto_schema(
        operation_summary="Append timeline event",
        manual_parameters=[INTERNAL_TOKEN_HEADER],
        request_body=InternalTimelineSerializer,
        responses={201: ProjectTimelineSerializer()},
        tags=["Internal"]
    )
    def post(self, request, project_id):
        serializer = InternalTimelineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        event = self.get_service().add_timeline_event_internal(
            project_id,
            data['event_type'],
            data['title'],
            description=data['description'],
            metadata=data['metadata'],
            service=data['service'],
        )
        return success("Timeline event recorded.", ProjectTimelineSerializer(event).data, status.HTTP_201_CREATED)
