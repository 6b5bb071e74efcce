"""
Role checks for callers authenticated by the identity service.

``request.user`` is a simplejwt ``TokenUser``; its ``role`` comes straight
from the token claims.
"""
from django.conf import settings
from django.utils.crypto import constant_time_compare
from rest_framework import permissions


USER = 'user'
CONTRACTOR = 'contractor'
ADMIN = 'admin'
SUPER_ADMIN = 'super_admin'

ADMIN_ROLES = {ADMIN, SUPER_ADMIN}


def get_role(user):
    role = getattr(user, 'role', None) or USER
    return str(role).lower()


def get_actor_id(user):
    return str(getattr(user, 'id', '') or '')


def is_admin_tier(user):
    return get_role(user) in ADMIN_ROLES


class IsAuthenticatedUser(permissions.BasePermission):
    """
    Permission for any authenticated caller.
    """
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)


class IsContractor(permissions.BasePermission):
    """
    Permission check for contractor role.
    """
    def has_permission(self, request, view):
        return (
            request.user and
            request.user.is_authenticated and
            get_role(request.user) == CONTRACTOR
        )


class IsContractorOrAdmin(permissions.BasePermission):
    def has_permission(self, request, view):
        return (
            request.user and
            request.user.is_authenticated and
            (get_role(request.user) == CONTRACTOR or is_admin_tier(request.user))
        )


class IsAdminTier(permissions.BasePermission):
    """
    Permission check for admin and super admin roles.
    """
    def has_permission(self, request, view):
        return (
            request.user and
            request.user.is_authenticated and
            is_admin_tier(request.user)
        )


class IsInternalService(permissions.BasePermission):
    """
    Service-to-service calls present the shared INTERNAL_API_TOKEN.
    """
    def has_permission(self, request, view):
        expected = getattr(settings, 'INTERNAL_API_TOKEN', '')
        provided = request.headers.get('X-Internal-Token', '')
        return bool(expected) and constant_time_compare(provided, expected)
