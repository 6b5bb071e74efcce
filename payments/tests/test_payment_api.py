import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from payments.models import ProjectPayment
from projects.models import Project


def client_for(principal):
    client = APIClient()
    client.force_authenticate(user=principal)
    return client


@pytest.mark.django_db
class TestPaymentAPI:

    @pytest.fixture
    def setup_data(self, fake_gateways, owner, contractor, admin, project):
        return {
            "gateways": fake_gateways,
            "owner": owner,
            "contractor": contractor,
            "admin": admin,
            "project": project,
        }

    # ------------------------------------------------------------------
    # SELECT
    # ------------------------------------------------------------------
    def test_select_bnpl_success(self, setup_data):
        client = client_for(setup_data["owner"])
        url = reverse("project-payment-method", args=[setup_data["project"].id])
        payload = {"payment_method": "bnpl", "downpayment_amount": "0.00", "number_of_installments": 6}

        response = client.post(url, payload, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == "success"
        assert response.data["data"]["monthly_emi"] == "2000.00"
        assert len(response.data["data"]["installments"]) == 6

    def test_bnpl_requires_installment_count(self, setup_data):
        client = client_for(setup_data["owner"])
        url = reverse("project-payment-method", args=[setup_data["project"].id])

        response = client.post(url, {"payment_method": "bnpl"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["code"] == "validation_error"
        assert "number_of_installments" in response.data["details"]

    def test_select_twice_is_conflict(self, setup_data):
        client = client_for(setup_data["owner"])
        url = reverse("project-payment-method", args=[setup_data["project"].id])
        client.post(url, {"payment_method": "single_pay"}, format="json")

        response = client.post(url, {"payment_method": "single_pay"}, format="json")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["status"] == "error"
        assert response.data["code"] == "conflict"

    def test_red_flag_is_business_rule_violation(self, setup_data):
        setup_data["gateways"].user.set_profile(setup_data["owner"].id, flag_status="RED", credit="20000")
        client = client_for(setup_data["owner"])
        url = reverse("project-payment-method", args=[setup_data["project"].id])
        payload = {"payment_method": "bnpl", "number_of_installments": 6}

        response = client.post(url, payload, format="json")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["code"] == "business_rule_violation"
        assert "GREEN" in response.data["message"]

    def test_contractor_cannot_select(self, setup_data):
        client = client_for(setup_data["contractor"])
        url = reverse("project-payment-method", args=[setup_data["project"].id])

        response = client.post(url, {"payment_method": "single_pay"}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unauthenticated(self, setup_data):
        url = reverse("project-payment-method", args=[setup_data["project"].id])
        response = APIClient().post(url, {"payment_method": "single_pay"}, format="json")

        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    # ------------------------------------------------------------------
    # COLLECT
    # ------------------------------------------------------------------
    def test_full_payment_success(self, setup_data):
        client = client_for(setup_data["owner"])
        project = setup_data["project"]
        client.post(reverse("project-payment-method", args=[project.id]), {"payment_method": "single_pay"}, format="json")

        response = client.post(reverse("project-pay-full", args=[project.id]), format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["payment_status"] == ProjectPayment.COMPLETED
        project.refresh_from_db()
        assert project.status == Project.PAYMENT_COMPLETED

    def test_declined_payment_is_402(self, setup_data):
        client = client_for(setup_data["owner"])
        project = setup_data["project"]
        client.post(reverse("project-payment-method", args=[project.id]), {"payment_method": "single_pay"}, format="json")
        setup_data["gateways"].payment.succeed = False

        response = client.post(reverse("project-pay-full", args=[project.id]), format="json")

        assert response.status_code == status.HTTP_402_PAYMENT_REQUIRED
        assert response.data["code"] == "payment_failed"

    def test_downpayment_wrong_amount(self, setup_data):
        client = client_for(setup_data["owner"])
        project = setup_data["project"]
        client.post(
            reverse("project-payment-method", args=[project.id]),
            {"payment_method": "bnpl", "downpayment_amount": "2000.00", "number_of_installments": 5},
            format="json",
        )

        response = client.post(reverse("project-pay-downpayment", args=[project.id]), {"amount": "100.00"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["message"] == "Downpayment amount must be 2000.00 SAR"

    def test_pay_installment_flow(self, setup_data):
        client = client_for(setup_data["owner"])
        project = setup_data["project"]
        client.post(
            reverse("project-payment-method", args=[project.id]),
            {"payment_method": "bnpl", "downpayment_amount": "2000.00", "number_of_installments": 5},
            format="json",
        )
        client.post(reverse("project-pay-downpayment", args=[project.id]), {"amount": "2000.00"}, format="json")

        schedule = client.get(reverse("project-installments", args=[project.id]))
        first = schedule.data["data"]["installments"][0]
        response = client.post(
            reverse("project-pay-installment", args=[project.id]),
            {"installment_id": first["id"], "amount": first["amount"]},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["installment"]["status"] == "paid"
        assert response.data["data"]["payment"]["paid_amount"] == "4000.00"
        assert response.data["data"]["payment"]["remaining_amount"] == "8000.00"

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    def test_schedule_hidden_from_stranger(self, setup_data, stranger):
        client_for(setup_data["owner"]).post(
            reverse("project-payment-method", args=[setup_data["project"].id]),
            {"payment_method": "bnpl", "number_of_installments": 6},
            format="json",
        )

        response = client_for(stranger).get(reverse("project-installments", args=[setup_data["project"].id]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["code"] == "not_found"

    def test_payment_details(self, setup_data):
        client = client_for(setup_data["owner"])
        project = setup_data["project"]
        client.post(reverse("project-payment-method", args=[project.id]), {"payment_method": "single_pay"}, format="json")

        response = client_for(setup_data["contractor"]).get(reverse("project-payment", args=[project.id]))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["total_amount"] == "12000.00"

    # ------------------------------------------------------------------
    # RELEASE
    # ------------------------------------------------------------------
    def test_admin_releases_payment(self, setup_data):
        project = setup_data["project"]
        client_for(setup_data["owner"]).post(
            reverse("project-payment-method", args=[project.id]), {"payment_method": "single_pay"}, format="json"
        )
        url = reverse("admin-release-payment", args=[project.id])
        payload = {
            "amount": "11500.00",
            "bank_name": "Al Rajhi",
            "iban": "sa03 8000 0000 6080 1016 7519",
            "account_holder": "Sun Co",
        }

        response = client_for(setup_data["admin"]).post(url, payload, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["admin_paid_contractor"] is True
        assert ProjectPayment.objects.get(project=project).contractor_iban == "SA0380000000608010167519"

        again = client_for(setup_data["admin"]).post(url, payload, format="json")
        assert again.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_release_forbidden_for_owner(self, setup_data):
        url = reverse("admin-release-payment", args=[setup_data["project"].id])
        payload = {"amount": "100.00", "bank_name": "X", "iban": "SA0380000000608010167519", "account_holder": "Y"}

        response = client_for(setup_data["owner"]).post(url, payload, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert not ProjectPayment.objects.filter(project=setup_data["project"]).exists()
