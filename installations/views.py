# ============================================================
# Standard Library Imports
# ============================================================
import logging

# ============================================================
# Third-Party Imports
# ============================================================
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.views import APIView

# ============================================================
# Local Application Imports
# ============================================================
from projects.permissions import IsAdminTier, IsAuthenticatedUser, IsContractor, IsContractorOrAdmin
from projects.views import success
from .serializers import (
    CompleteInstallationSerializer,
    DocumentFilterSerializer,
    ProjectDocumentSerializer,
    ProjectInstallationSerializer,
    QualityCheckSerializer,
    ScheduleInstallationSerializer,
    StartInstallationSerializer,
    UploadDocumentSerializer,
    VerifyCompletionSerializer,
)
from .services import InstallationService

logger = logging.getLogger(__name__)


class InstallationServiceMixin:
    def get_service(self):
        return InstallationService()


# --------------------------------------------------------
# Contractor
# --------------------------------------------------------
class ScheduleInstallationView(InstallationServiceMixin, APIView):
    permission_classes = [IsContractorOrAdmin]

    @swagger_auto_schema(
        operation_summary="Schedule installation",
        operation_description="""
        Single payment: the project must be fully paid.
        BNPL: the downpayment (if any) must be paid.
        Calling again before work starts reschedules.
        """,
        request_body=ScheduleInstallationSerializer,
        responses={200: ProjectInstallationSerializer(), 422: "Payment not ready / already started"},
        tags=["Installation"]
    )
    def post(self, request, project_id):
        serializer = ScheduleInstallationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        installation = self.get_service().schedule_installation(project_id, request.user, serializer.validated_data)
        return success("Installation scheduled successfully.", ProjectInstallationSerializer(installation).data)


class StartInstallationView(InstallationServiceMixin, APIView):
    permission_classes = [IsContractor]

    @swagger_auto_schema(
        operation_summary="Start installation",
        request_body=StartInstallationSerializer,
        responses={200: ProjectInstallationSerializer(), 422: "Not scheduled / already started"},
        tags=["Installation"]
    )
    def post(self, request, project_id):
        serializer = StartInstallationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        installation = self.get_service().start_installation(
            project_id, request.user, notes=serializer.validated_data['notes']
        )
        return success("Installation started.", ProjectInstallationSerializer(installation).data)


class CompleteInstallationView(InstallationServiceMixin, APIView):
    permission_classes = [IsContractor]

    @swagger_auto_schema(
        operation_summary="Complete installation",
        operation_description="Marks the work done and texts a verification code to the owner.",
        request_body=CompleteInstallationSerializer,
        responses={200: ProjectInstallationSerializer(), 422: "Not in progress / SMS failed"},
        tags=["Installation"]
    )
    def post(self, request, project_id):
        serializer = CompleteInstallationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        installation = self.get_service().complete_installation(
            project_id,
            request.user,
            serializer.validated_data,
            auth_token=request.META.get('HTTP_AUTHORIZATION'),
        )
        return success(
            "Installation marked as complete. Verification code sent to the project owner.",
            ProjectInstallationSerializer(installation).data,
        )


class ResendCompletionCodeView(InstallationServiceMixin, APIView):
    permission_classes = [IsContractor]

    @swagger_auto_schema(
        operation_summary="Resend verification code",
        responses={200: ProjectInstallationSerializer(), 422: "Not awaiting verification"},
        tags=["Installation"]
    )
    def post(self, request, project_id):
        installation = self.get_service().resend_completion_code(
            project_id, request.user, auth_token=request.META.get('HTTP_AUTHORIZATION')
        )
        return success("Verification code sent to the project owner.", ProjectInstallationSerializer(installation).data)


# --------------------------------------------------------
# Owner
# --------------------------------------------------------
class VerifyCompletionView(InstallationServiceMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Verify installation completion",
        request_body=VerifyCompletionSerializer,
        responses={200: ProjectInstallationSerializer(), 400: "Wrong code", 422: "Expired / locked out"},
        tags=["Installation"]
    )
    def post(self, request, project_id):
        serializer = VerifyCompletionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        installation = self.get_service().verify_completion(project_id, request.user, serializer.validated_data['otp'])
        return success("Installation verified successfully.", ProjectInstallationSerializer(installation).data)


class InstallationDetailView(InstallationServiceMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Installation details",
        responses={200: ProjectInstallationSerializer(), 404: "Not scheduled"},
        tags=["Installation"]
    )
    def get(self, request, project_id):
        installation = self.get_service().get_installation(project_id, request.user)
        return success("Installation retrieved successfully.", ProjectInstallationSerializer(installation).data)


class ProjectDocumentsView(InstallationServiceMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="List installation documents",
        query_serializer=DocumentFilterSerializer,
        responses={200: ProjectDocumentSerializer(many=True), 404: "Project not found"},
        tags=["Installation"]
    )
    def get(self, request, project_id):
        filters = DocumentFilterSerializer(data=request.query_params.dict())
        filters.is_valid(raise_exception=True)
        documents = self.get_service().list_documents(
            project_id, request.user, document_type=filters.validated_data.get('document_type')
        )
        return success("Documents retrieved successfully.", ProjectDocumentSerializer(documents, many=True).data)

    @swagger_auto_schema(
        operation_summary="Upload installation document",
        operation_description="""
        Records a document already stored externally (photo, certificate, warranty, invoice, contract).
        Open to the project owner, the assigned contractor and admins.
        """,
        request_body=UploadDocumentSerializer,
        responses={201: ProjectDocumentSerializer(), 400: "Validation error", 404: "Project not found"},
        tags=["Installation"]
    )
    def post(self, request, project_id):
        serializer = UploadDocumentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        document = self.get_service().upload_document(project_id, request.user, serializer.validated_data)
        return success(
            "Document uploaded successfully.", ProjectDocumentSerializer(document).data, status.HTTP_201_CREATED
        )


# --------------------------------------------------------
# Admin
# --------------------------------------------------------
class QualityCheckView(InstallationServiceMixin, APIView):
    permission_classes = [IsAdminTier]

    @swagger_auto_schema(
        operation_summary="Record quality check",
        request_body=QualityCheckSerializer,
        responses={200: ProjectInstallationSerializer()},
        tags=["Admin"]
    )
    def post(self, request, project_id):
        serializer = QualityCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        installation = self.get_service().perform_quality_check(
            project_id,
            request.user,
            serializer.validated_data['passed'],
            serializer.validated_data['notes'],
        )
        return success("Quality check recorded.", ProjectInstallationSerializer(installation).data)
