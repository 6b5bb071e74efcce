# ============================================================
# Standard Library Imports
# ============================================================
import logging

# ============================================================
# Third-Party Imports
# ============================================================
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

# ============================================================
# Local Application Imports
# ============================================================
from projects.permissions import IsAdminTier, IsAuthenticatedUser
from .engine import build_payment_engine
from .serializers import (
    AmountSerializer,
    InstallmentScheduleSerializer,
    PayInstallmentSerializer,
    ProjectPaymentSerializer,
    ReleasePaymentSerializer,
    SelectPaymentMethodSerializer,
)

logger = logging.getLogger(__name__)


class PaymentEngineMixin:
    """Views build their engine per request from settings."""

    def get_engine(self):
        return build_payment_engine()


def success(message, data, status_code=status.HTTP_200_OK):
    return Response({"status": "success", "message": message, "data": data}, status=status_code)


# --------------------------------------------------------
# API: Select payment method
# --------------------------------------------------------
class SelectPaymentMethodView(PaymentEngineMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Select payment method",
        operation_description="""
        Choose single payment or BNPL for a project awaiting payment.
        BNPL requires a GREEN credit flag and enough SAMA credit (or a downpayment
        covering the shortfall). The choice cannot be changed afterwards.
        """,
        request_body=SelectPaymentMethodSerializer,
        responses={
            201: ProjectPaymentSerializer(),
            400: "Validation Error",
            409: "Payment method already selected",
            422: "Not eligible / wrong project stage",
        },
        tags=["Payments"]
    )
    def post(self, request, project_id):
        serializer = SelectPaymentMethodSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payment = self.get_engine().select_payment_method(
            project_id,
            request.user,
            data["payment_method"],
            downpayment_amount=data.get("downpayment_amount"),
            number_of_installments=data.get("number_of_installments"),
            auth_token=request.META.get("HTTP_AUTHORIZATION"),
        )
        return success("Payment method selected successfully.", payment, status.HTTP_201_CREATED)


# --------------------------------------------------------
# API: Collections
# --------------------------------------------------------
class FullPaymentView(PaymentEngineMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Pay project in full",
        responses={200: ProjectPaymentSerializer(), 402: "Payment declined", 422: "Not a single payment project"},
        tags=["Payments"]
    )
    def post(self, request, project_id):
        payment = self.get_engine().process_full_payment(project_id, request.user)
        return success("Payment processed successfully.", payment)


class DownpaymentView(PaymentEngineMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Pay BNPL downpayment",
        request_body=AmountSerializer,
        responses={200: ProjectPaymentSerializer(), 400: "Wrong amount", 402: "Payment declined"},
        tags=["Payments"]
    )
    def post(self, request, project_id):
        serializer = AmountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = self.get_engine().process_downpayment(
            project_id, request.user, serializer.validated_data["amount"]
        )
        return success("Downpayment processed successfully.", payment)


class PayInstallmentView(PaymentEngineMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Pay a BNPL installment",
        operation_description="Overdue installments carry a late fee of 1% per started week, capped at 10%.",
        request_body=PayInstallmentSerializer,
        responses={200: InstallmentScheduleSerializer(), 400: "Amount below installment plus late fee", 402: "Payment declined"},
        tags=["Payments"]
    )
    def post(self, request, project_id):
        serializer = PayInstallmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_engine().pay_installment(
            project_id,
            request.user,
            serializer.validated_data["installment_id"],
            serializer.validated_data["amount"],
        )
        return success("Installment paid successfully.", result)


# --------------------------------------------------------
# API: Reads
# --------------------------------------------------------
class InstallmentScheduleView(PaymentEngineMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Installment schedule",
        responses={200: InstallmentScheduleSerializer(many=True), 404: "Project or payment not found"},
        tags=["Payments"]
    )
    def get(self, request, project_id):
        schedule = self.get_engine().get_installment_schedule(project_id, request.user)
        return success("Installment schedule retrieved successfully.", schedule)


class ProjectPaymentView(PaymentEngineMixin, APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Payment details",
        responses={200: ProjectPaymentSerializer(), 404: "Project or payment not found"},
        tags=["Payments"]
    )
    def get(self, request, project_id):
        payment = self.get_engine().get_payment(project_id, request.user)
        return success("Payment retrieved successfully.", payment)


# --------------------------------------------------------
# API: Admin release
# --------------------------------------------------------
class ReleasePaymentView(PaymentEngineMixin, APIView):
    """
    Admin records the transfer of project funds to the contractor.
    """
    permission_classes = [IsAdminTier]

    @swagger_auto_schema(
        operation_summary="Release payment to contractor",
        request_body=ReleasePaymentSerializer,
        responses={200: ProjectPaymentSerializer(), 422: "Already released"},
        tags=["Admin"]
    )
    def post(self, request, project_id):
        serializer = ReleasePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payment = self.get_engine().release_payment_to_contractor(
            project_id,
            request.user,
            data["amount"],
            {
                "bank_name": data["bank_name"],
                "iban": data["iban"],
                "account_holder": data["account_holder"],
            },
            notes=data.get("notes", ""),
        )
        logger.info(f"[ReleasePaymentView] Project {project_id} released by {request.user.id}")
        return success("Payment released to contractor successfully.", payment)
