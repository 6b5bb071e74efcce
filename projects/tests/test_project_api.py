import pytest
import uuid
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.models import TokenUser

from projects.models import Project, ProjectTimeline


def client_for(principal):
    client = APIClient()
    client.force_authenticate(user=principal)
    return client


@pytest.mark.django_db
class TestCreateProject:

    @pytest.fixture
    def setup_data(self, fake_gateways, owner, contractor):
        quote = fake_gateways.quote.add_quote("req-100", contractor.id, id="quote-100", base_price="15500.50")
        return {"gateways": fake_gateways, "owner": owner, "contractor": contractor, "quote": quote}

    def payload(self, setup_data, **extra):
        data = {
            "request_id": "req-100",
            "contractor_id": str(setup_data["contractor"].id),
            "project_name": "Villa rooftop",
            "property_address": "Riyadh, Al Olaya",
        }
        data.update(extra)
        return data

    # ------------------------------------------------------------------
    # SUCCESS TEST
    # ------------------------------------------------------------------
    def test_create_project_success(self, setup_data):
        client = client_for(setup_data["owner"])
        url = reverse("project-list-create")

        response = client.post(url, self.payload(setup_data), format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == "success"

        result = response.data["data"]
        assert result["status"] == Project.PAYMENT_PENDING
        assert result["quote_id"] == "quote-100"
        assert result["total_amount"] == "15500.50"
        assert result["system_size_kwp"] == "5.40"
        assert result["user_id"] == str(setup_data["owner"].id)
        assert result["payment_method"] is None

        project = Project.objects.get(id=result["id"])
        events = list(ProjectTimeline.objects.filter(project=project).values_list("event_type", flat=True))
        assert events == ["project_created"]

    def test_system_size_falls_back_to_line_items(self, setup_data):
        setup_data["gateways"].quote.add_quote(
            "req-100",
            setup_data["contractor"].id,
            id="quote-100",
            system_specs={},
            line_items=[{"item_name": "Solar panel", "description": "Mono PERC 550W", "quantity": 10}],
        )
        client = client_for(setup_data["owner"])

        response = client.post(reverse("project-list-create"), self.payload(setup_data), format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["data"]["system_size_kwp"] == "5.50"

    # ------------------------------------------------------------------
    # FAILURE TESTS
    # ------------------------------------------------------------------
    def test_duplicate_project_is_conflict(self, setup_data):
        client = client_for(setup_data["owner"])
        url = reverse("project-list-create")
        client.post(url, self.payload(setup_data), format="json")

        response = client.post(url, self.payload(setup_data), format="json")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["message"] == "A project already exists for this quote"
        assert Project.objects.filter(quote_id="quote-100").count() == 1

    def test_unapproved_quote_rejected(self, setup_data):
        setup_data["gateways"].quote.add_quote(
            "req-100", setup_data["contractor"].id, id="quote-100", admin_status="pending_review"
        )
        client = client_for(setup_data["owner"])

        response = client.post(reverse("project-list-create"), self.payload(setup_data), format="json")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["code"] == "business_rule_violation"
        assert not Project.objects.exists()

    def test_converted_quote_is_conflict(self, setup_data):
        setup_data["gateways"].quote.add_quote(
            "req-100", setup_data["contractor"].id, id="quote-100", status="converted"
        )
        client = client_for(setup_data["owner"])

        response = client.post(reverse("project-list-create"), self.payload(setup_data), format="json")

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_someone_elses_quote_forbidden(self, setup_data):
        setup_data["gateways"].quote.add_quote(
            "req-100", setup_data["contractor"].id, id="quote-100", user_id=str(uuid.uuid4())
        )
        client = client_for(setup_data["owner"])

        response = client.post(reverse("project-list-create"), self.payload(setup_data), format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_missing_quote(self, setup_data):
        client = client_for(setup_data["owner"])

        response = client.post(
            reverse("project-list-create"), self.payload(setup_data, request_id="req-404"), format="json"
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_invalid_payload(self, setup_data):
        client = client_for(setup_data["owner"])

        response = client.post(reverse("project-list-create"), {"request_id": "req-100"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "contractor_id" in response.data["details"]


@pytest.mark.django_db
class TestProjectAccess:

    def test_owner_lists_only_own_projects(self, owner, stranger, project_factory):
        project_factory()
        project_factory()
        project_factory(user=stranger)

        response = client_for(owner).get(reverse("project-list-create"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 2
        assert response.data["results"]["status"] == "success"

    def test_list_filtered_by_status(self, owner, project_factory):
        project_factory()
        project_factory(status=Project.CANCELLED)

        response = client_for(owner).get(reverse("project-list-create"), {"status": Project.CANCELLED})

        assert response.data["count"] == 1
        assert response.data["results"]["data"][0]["status"] == Project.CANCELLED

    def test_owner_and_contractor_see_project(self, owner, contractor, project):
        owner_view = client_for(owner).get(reverse("project-detail", args=[project.id]))
        contractor_view = client_for(contractor).get(reverse("contractor-project-detail", args=[project.id]))

        assert owner_view.status_code == status.HTTP_200_OK
        assert contractor_view.status_code == status.HTTP_200_OK
        assert contractor_view.data["data"]["id"] == str(project.id)

    def test_stranger_gets_not_found(self, stranger, project):
        response = client_for(stranger).get(reverse("project-detail", args=[project.id]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["message"] == "Project not found"

    def test_other_contractor_gets_not_found(self, project):
        other = TokenUser({"user_id": str(uuid.uuid4()), "role": "contractor"})
        response = client_for(other).get(reverse("contractor-project-detail", args=[project.id]))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_unknown_project(self, owner):
        response = client_for(owner).get(reverse("project-detail", args=[uuid.uuid4()]))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_contractor_lists_assigned_projects(self, contractor, project_factory):
        project_factory()
        project_factory(status=Project.INSTALLATION_SCHEDULED)

        response = client_for(contractor).get(
            reverse("contractor-project-list"), {"status": Project.INSTALLATION_SCHEDULED}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 1

    def test_user_cannot_use_contractor_list(self, owner):
        response = client_for(owner).get(reverse("contractor-project-list"))

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestUpdateProject:

    def test_owner_updates_details(self, owner, project):
        url = reverse("project-detail", args=[project.id])

        response = client_for(owner).patch(url, {"project_name": "New name"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["project_name"] == "New name"
        event = ProjectTimeline.objects.get(project=project, event_type="project_updated")
        assert event.metadata == {"changes": {"project_name": "New name"}}

    def test_contractor_cannot_update(self, contractor, project):
        url = reverse("contractor-project-detail", args=[project.id])

        response = client_for(contractor).patch(url, {"project_name": "Hijack"}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_empty_update_rejected(self, owner, project):
        response = client_for(owner).patch(reverse("project-detail", args=[project.id]), {}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_closed_project_cannot_be_updated(self, owner, project_factory):
        project = project_factory(status=Project.COMPLETED)

        response = client_for(owner).patch(
            reverse("project-detail", args=[project.id]), {"description": "late edit"}, format="json"
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.django_db
class TestCancelProject:

    def test_owner_cancels(self, owner, project):
        url = reverse("project-cancel", args=[project.id])

        response = client_for(owner).post(url, {"reason": "Moving house"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        project.refresh_from_db()
        assert project.status == Project.CANCELLED
        assert project.cancellation_reason == "Moving house"
        assert project.cancelled_at is not None
        assert ProjectTimeline.objects.filter(project=project, event_type="project_cancelled").exists()

    def test_admin_cancels(self, admin, project_factory):
        project = project_factory(status=Project.INSTALLATION_SCHEDULED)

        response = client_for(admin).post(reverse("project-cancel", args=[project.id]), {}, format="json")

        assert response.status_code == status.HTTP_200_OK

    def test_cannot_cancel_once_installation_started(self, owner, project_factory):
        project = project_factory(status=Project.INSTALLATION_IN_PROGRESS)

        response = client_for(owner).post(reverse("project-cancel", args=[project.id]), {}, format="json")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        project.refresh_from_db()
        assert project.status == Project.INSTALLATION_IN_PROGRESS

    def test_cannot_cancel_twice(self, owner, project_factory):
        project = project_factory(status=Project.CANCELLED)

        response = client_for(owner).post(reverse("project-cancel", args=[project.id]), {}, format="json")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_held_project_cancellable_when_held_early(self, owner, project_factory):
        project = project_factory(status=Project.ON_HOLD, held_from_status=Project.PAYMENT_COMPLETED)

        response = client_for(owner).post(reverse("project-cancel", args=[project.id]), {}, format="json")

        assert response.status_code == status.HTTP_200_OK

    def test_contractor_cannot_cancel(self, contractor, project):
        response = client_for(contractor).post(reverse("project-cancel", args=[project.id]), {}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestTimeline:

    def test_timeline_newest_first_with_limit(self, owner, project):
        client = client_for(owner)
        client.patch(reverse("project-detail", args=[project.id]), {"project_name": "One"}, format="json")
        client.patch(reverse("project-detail", args=[project.id]), {"project_name": "Two"}, format="json")
        client.post(reverse("project-cancel", args=[project.id]), {}, format="json")

        response = client.get(reverse("project-timeline", args=[project.id]), {"limit": 2})

        assert response.status_code == status.HTTP_200_OK
        events = [event["event_type"] for event in response.data["data"]]
        assert events == ["project_cancelled", "project_updated"]

    def test_entries_cannot_be_changed(self, owner, project):
        client_for(owner).patch(reverse("project-detail", args=[project.id]), {"project_name": "One"}, format="json")
        entry = ProjectTimeline.objects.get(project=project)

        entry.title = "Rewritten"
        with pytest.raises(ValueError):
            entry.save()
        with pytest.raises(ValueError):
            entry.delete()

    def test_stranger_cannot_read_timeline(self, stranger, project):
        response = client_for(stranger).get(reverse("project-timeline", args=[project.id]))

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestAdminProjects:

    def test_admin_lists_all_with_filters(self, admin, stranger, project_factory):
        project_factory()
        project_factory(user=stranger)
        project_factory(status=Project.ON_HOLD, held_from_status=Project.PAYMENT_PENDING)

        response = client_for(admin).get(
            reverse("admin-project-list"), {"status": Project.PAYMENT_PENDING, "ordering": "total_amount"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 2

    def test_unsupported_ordering(self, admin, project):
        response = client_for(admin).get(reverse("admin-project-list"), {"ordering": "user_id"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["code"] == "validation_error"

    def test_owner_cannot_list_all(self, owner):
        response = client_for(owner).get(reverse("admin-project-list"))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_hold_and_resume(self, admin, project_factory):
        project = project_factory(status=Project.PAYMENT_COMPLETED)
        client = client_for(admin)

        held = client.post(reverse("admin-project-hold", args=[project.id]), {"reason": "Permit"}, format="json")
        assert held.status_code == status.HTTP_200_OK
        assert held.data["data"]["status"] == Project.ON_HOLD
        assert held.data["data"]["held_from_status"] == Project.PAYMENT_COMPLETED

        again = client.post(reverse("admin-project-hold", args=[project.id]), {}, format="json")
        assert again.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        resumed = client.post(reverse("admin-project-resume", args=[project.id]), format="json")
        assert resumed.status_code == status.HTTP_200_OK
        assert resumed.data["data"]["status"] == Project.PAYMENT_COMPLETED

        event_types = set(ProjectTimeline.objects.filter(project=project).values_list("event_type", flat=True))
        assert event_types == {"project_on_hold", "project_resumed"}

    def test_resume_requires_hold(self, admin, project):
        response = client_for(admin).post(reverse("admin-project-resume", args=[project.id]), format="json")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
