import pytest
from django.conf import settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from projects.models import Project, ProjectTimeline


@pytest.mark.django_db
class TestInternalAPI:

    @pytest.fixture
    def setup_data(self, project):
        client = APIClient()
        client.credentials(HTTP_X_INTERNAL_TOKEN=settings.INTERNAL_API_TOKEN)
        return {"client": client, "project": project}

    def test_token_required(self, setup_data):
        url = reverse("internal-project-info", args=[setup_data["project"].id])

        response = APIClient().get(url)
        wrong = APIClient().get(url, HTTP_X_INTERNAL_TOKEN="not-the-token")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert wrong.status_code == status.HTTP_403_FORBIDDEN

    def test_project_info(self, setup_data):
        project = setup_data["project"]

        response = setup_data["client"].get(reverse("internal-project-info", args=[project.id]))

        assert response.status_code == status.HTTP_200_OK
        data = response.data["data"]
        assert data["user_id"] == str(project.user_id)
        assert data["total_amount"] == "12000.00"
        assert data["payment_method"] is None

    def test_status_change_follows_transition_rules(self, setup_data):
        project = setup_data["project"]
        url = reverse("internal-project-status", args=[project.id])

        response = setup_data["client"].patch(
            url, {"status": Project.PAYMENT_PROCESSING, "service": "payment-service"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        project.refresh_from_db()
        assert project.status == Project.PAYMENT_PROCESSING
        event = ProjectTimeline.objects.get(project=project, event_type="status_changed")
        assert event.created_by_id == "payment-service"
        assert event.created_by_role == "system"
        assert event.metadata["previous_status"] == Project.PAYMENT_PENDING

    def test_illegal_status_change_rejected(self, setup_data):
        project = setup_data["project"]
        url = reverse("internal-project-status", args=[project.id])

        response = setup_data["client"].patch(url, {"status": Project.COMPLETED}, format="json")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        project.refresh_from_db()
        assert project.status == Project.PAYMENT_PENDING
        assert not ProjectTimeline.objects.filter(project=project).exists()

    def test_internal_cancel_records_reason(self, setup_data):
        project = setup_data["project"]
        url = reverse("internal-project-status", args=[project.id])

        response = setup_data["client"].patch(
            url, {"status": Project.CANCELLED, "reason": "Fraud check failed"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        project.refresh_from_db()
        assert project.cancellation_reason == "Fraud check failed"
        assert project.cancelled_at is not None

    def test_append_timeline_event(self, setup_data):
        project = setup_data["project"]
        url = reverse("internal-project-timeline", args=[project.id])
        payload = {
            "event_type": "service_event",
            "title": "Invoice issued",
            "metadata": {"invoice": "INV-7"},
            "service": "billing",
        }

        response = setup_data["client"].post(url, payload, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["data"]["title"] == "Invoice issued"
        assert ProjectTimeline.objects.get(project=project).metadata == {"invoice": "INV-7"}

    def test_unknown_event_type(self, setup_data):
        url = reverse("internal-project-timeline", args=[setup_data["project"].id])

        response = setup_data["client"].post(url, {"event_type": "party", "title": "x"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_project(self, setup_data):
        url = reverse("internal-project-info", args=["00000000-0000-0000-0000-000000000000"])

        response = setup_data["client"].get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND
