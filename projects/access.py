# projects/access.py

from rest_framework.exceptions import PermissionDenied

from common.exceptions import NotFoundError
from .models import Project
from .permissions import CONTRACTOR, get_actor_id, get_role, is_admin_tier


def _same_id(left, right):
    return str(left).lower() == str(right).lower()


def is_owner(project, actor):
    return _same_id(project.user_id, get_actor_id(actor))


def is_assigned_contractor(project, actor):
    return get_role(actor) == CONTRACTOR and _same_id(project.contractor_id, get_actor_id(actor))


def can_view(project, actor):
    return is_owner(project, actor) or is_assigned_contractor(project, actor) or is_admin_tier(actor)


def get_project(project_id, for_update=False):
    queryset = Project.objects.select_for_update() if for_update else Project.objects.all()
    try:
        return queryset.get(id=project_id)
    except (Project.DoesNotExist, ValueError):
        raise NotFoundError('Project not found')


def get_visible_project(project_id, actor, for_update=False):
    """
    Load a project the actor is allowed to see.

    Projects outside the actor's reach are reported as missing so their
    existence is not leaked.
    """
    project = get_project(project_id, for_update=for_update)
    if not can_view(project, actor):
        raise NotFoundError('Project not found')
    return project


def require_owner(project, actor, message='Only the project owner can perform this action'):
    if not is_owner(project, actor):
        raise PermissionDenied(message)


def require_contractor(project, actor, allow_admin=False, message='Only the assigned contractor can perform this action'):
    if is_assigned_contractor(project, actor):
        return
    if allow_admin and is_admin_tier(actor):
        return
    raise PermissionDenied(message)


def require_admin(actor, message='Admin access required'):
    if not is_admin_tier(actor):
        raise PermissionDenied(message)
