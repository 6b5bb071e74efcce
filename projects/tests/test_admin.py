import pytest
from django.contrib import admin
from django.test import RequestFactory

from projects.models import Project


@pytest.mark.django_db
class TestProjectAdmin:

    @pytest.fixture
    def setup_data(self, project):
        return {
            "model_admin": admin.site._registry[Project],
            "request": RequestFactory().get("/admin/projects/project/"),
            "project": project,
        }

    def test_lifecycle_fields_are_read_only(self, setup_data):
        model_admin, request = setup_data["model_admin"], setup_data["request"]

        readonly = model_admin.get_readonly_fields(request, setup_data["project"])
        form = model_admin.get_form(request, setup_data["project"], change=True)

        for field in ("status", "held_from_status", "cancelled_at", "completed_at"):
            assert field in readonly
            assert field not in form.base_fields

    def test_projects_cannot_be_deleted(self, setup_data):
        model_admin, request = setup_data["model_admin"], setup_data["request"]

        assert model_admin.has_delete_permission(request) is False
        assert model_admin.has_delete_permission(request, setup_data["project"]) is False
        assert "delete_selected" not in model_admin.get_actions(request)
