"""
Project lifecycle operations: creation from a quote, owner edits,
cancellation, holds, listings and the internal service API.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from common.exceptions import BusinessRuleError, ConflictError, ValidationError
from gateways import build_gateway
from gateways.quotes import calculate_system_size
from . import state_machine
from .access import get_project, get_visible_project, is_owner, require_admin, require_owner
from .models import Project, ProjectTimeline
from .permissions import get_actor_id, get_role, is_admin_tier
from .timeline import get_project_timeline, record_event

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('project_name', 'description', 'property_address', 'preferred_installation_date')

ADMIN_ORDERING = {
    'created_at', '-created_at',
    'updated_at', '-updated_at',
    'total_amount', '-total_amount',
    'status', '-status',
}


def _system_size_from_quote(quote):
    specs = quote.get('system_specs') or {}
    size = specs.get('system_size_kwp')
    if size not in (None, ''):
        try:
            return Decimal(str(size)).quantize(Decimal('0.01'))
        except InvalidOperation:
            logger.warning(f"[ProjectService] Unparseable system size {size!r} on quote {quote.get('id')}")
    return calculate_system_size(quote.get('line_items'))


class ProjectService:

    def __init__(self, quote_gateway=None):
        self.quote_gateway = quote_gateway or build_gateway('quote')

    # ========================================
    # Creation
    # ========================================

    def create_project(self, actor, data, auth_token=None):
        """
        Convert an admin-approved quote into a project awaiting payment.

        Args:
            data: validated input with ``request_id``, ``contractor_id`` and
                optional descriptive fields.
        """
        request_id = str(data['request_id'])
        contractor_id = data['contractor_id']
        quote = self.quote_gateway.fetch_quote(request_id, contractor_id, auth_token)

        if quote.get('admin_status') != 'approved':
            raise BusinessRuleError('Quote must be approved by admin before creating a project')
        quote_user = quote.get('user_id')
        if quote_user and str(quote_user).lower() != get_actor_id(actor).lower():
            raise PermissionDenied('You can only create projects from your own quotes')
        if quote.get('status') == 'converted':
            raise ConflictError('Quote has already been converted to a project')

        quote_id = str(quote.get('id') or '')
        if not quote_id:
            raise BusinessRuleError('Quote is missing an id')
        if Project.objects.filter(quote_id=quote_id).exists():
            raise ConflictError('A project already exists for this quote')

        try:
            total_amount = Decimal(str(quote.get('base_price'))).quantize(Decimal('0.01'))
        except InvalidOperation:
            raise BusinessRuleError('Quote has no valid price')
        if total_amount <= 0:
            raise BusinessRuleError('Quote has no valid price')

        try:
            with transaction.atomic():
                project = Project.objects.create(
                    user_id=get_actor_id(actor),
                    contractor_id=contractor_id,
                    quote_id=quote_id,
                    request_id=request_id,
                    total_amount=total_amount,
                    system_size_kwp=_system_size_from_quote(quote),
                    project_name=data.get('project_name') or '',
                    description=data.get('description') or '',
                    property_address=data.get('property_address') or '',
                    preferred_installation_date=data.get('preferred_installation_date'),
                    status=Project.PAYMENT_PENDING,
                )
                record_event(
                    project,
                    'project_created',
                    'Project created',
                    description=f"Project created from quote {quote_id}",
                    actor_id=get_actor_id(actor),
                    actor_role=get_role(actor),
                    metadata={
                        'quote_id': quote_id,
                        'total_amount': total_amount,
                        'system_size_kwp': project.system_size_kwp,
                    },
                )
        except IntegrityError:
            raise ConflictError('A project already exists for this quote')

        logger.info(f"[ProjectService] Project {project.id} created from quote {quote_id} for user {project.user_id}")
        return project

    # ========================================
    # Reads
    # ========================================

    def get_project(self, project_id, actor):
        return get_visible_project(project_id, actor)

    def list_user_projects(self, actor, status=None):
        queryset = Project.objects.filter(user_id=get_actor_id(actor))
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by('-created_at')

    def list_contractor_projects(self, actor, status=None):
        queryset = Project.objects.filter(contractor_id=get_actor_id(actor))
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by('-created_at')

    def list_all_projects(self, actor, filters=None):
        require_admin(actor)
        filters = filters or {}
        queryset = Project.objects.all()

        if filters.get('status'):
            queryset = queryset.filter(status=filters['status'])
        if filters.get('contractor_id'):
            queryset = queryset.filter(contractor_id=filters['contractor_id'])
        if filters.get('user_id'):
            queryset = queryset.filter(user_id=filters['user_id'])
        if filters.get('date_from'):
            queryset = queryset.filter(created_at__date__gte=filters['date_from'])
        if filters.get('date_to'):
            queryset = queryset.filter(created_at__date__lte=filters['date_to'])

        ordering = filters.get('ordering') or '-created_at'
        if ordering not in ADMIN_ORDERING:
            raise ValidationError(f"Unsupported ordering: {ordering}")
        return queryset.order_by(ordering)

    def get_timeline(self, project_id, actor, limit=None):
        project = get_visible_project(project_id, actor)
        return get_project_timeline(project, limit=limit)

    # ========================================
    # Owner and admin changes
    # ========================================

    def update_project(self, project_id, actor, data):
        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            require_owner(project, actor, 'Only the project owner can update the project')
            if project.is_terminal:
                raise BusinessRuleError(f"Cannot update a {project.status} project")

            changed = {}
            for field in UPDATABLE_FIELDS:
                if field in data and getattr(project, field) != data[field]:
                    value = data[field]
                    if value is None and field != 'preferred_installation_date':
                        value = ''
                    setattr(project, field, value)
                    changed[field] = data[field]

            if not changed:
                return project

            project.save(update_fields=list(changed) + ['updated_at'])
            record_event(
                project,
                'project_updated',
                'Project details updated',
                description=', '.join(sorted(changed)),
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={'changes': changed},
            )

        logger.info(f"[ProjectService] Project {project.id} updated: {sorted(changed)}")
        return project

    def cancel_project(self, project_id, actor, reason=''):
        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            if not (is_owner(project, actor) or is_admin_tier(actor)):
                raise PermissionDenied('Only the project owner or an admin can cancel the project')
            if project.is_terminal:
                raise BusinessRuleError(f"Project is already {project.status}")

            previous = project.status
            state_machine.transition(project, Project.CANCELLED, save=False)
            project.cancelled_at = timezone.now()
            project.cancellation_reason = reason or ''
            project.save(update_fields=['status', 'cancelled_at', 'cancellation_reason', 'updated_at'])

            record_event(
                project,
                'project_cancelled',
                'Project cancelled',
                description=reason or '',
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={'previous_status': previous, 'reason': reason or ''},
            )

        logger.info(f"[ProjectService] Project {project.id} cancelled from {previous} by {get_role(actor)}")
        return project

    def put_on_hold(self, project_id, actor, reason=''):
        require_admin(actor)
        with transaction.atomic():
            project = get_project(project_id, for_update=True)
            state_machine.hold(project, reason)
            record_event(
                project,
                'project_on_hold',
                'Project put on hold',
                description=reason or '',
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={'held_from_status': project.held_from_status},
            )
        return project

    def resume_project(self, project_id, actor):
        require_admin(actor)
        with transaction.atomic():
            project = get_project(project_id, for_update=True)
            state_machine.resume(project)
            record_event(
                project,
                'project_resumed',
                'Project resumed',
                description=f"Resumed at {project.status}",
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={'restored_status': project.status},
            )
        return project

    # ========================================
    # Internal service API
    # ========================================

    def get_internal_info(self, project_id):
        project = get_project(project_id)
        payment = getattr(project, 'payment', None)
        return {
            'id': str(project.id),
            'user_id': str(project.user_id),
            'contractor_id': str(project.contractor_id),
            'quote_id': project.quote_id,
            'status': project.status,
            'total_amount': f"{project.total_amount:.2f}",
            'payment_method': payment.payment_method if payment else None,
            'payment_status': payment.payment_status if payment else None,
        }

    def update_status_internal(self, project_id, new_status, reason='', service=''):
        """Status change requested by another service; same transition rules apply."""
        with transaction.atomic():
            project = get_project(project_id, for_update=True)
            previous = project.status
            state_machine.transition(project, new_status, save=False)

            update_fields = ['status', 'updated_at']
            now = timezone.now()
            if new_status == Project.COMPLETED:
                project.completed_at = now
                update_fields.append('completed_at')
            elif new_status == Project.CANCELLED:
                project.cancelled_at = now
                project.cancellation_reason = reason or ''
                update_fields += ['cancelled_at', 'cancellation_reason']
            project.save(update_fields=update_fields)

            record_event(
                project,
                'status_changed',
                f"Status changed to {new_status}",
                description=reason or '',
                actor_id=service,
                actor_role='system',
                metadata={'previous_status': previous, 'new_status': new_status, 'service': service},
            )

        logger.info(f"[ProjectService] Internal status change for {project.id}: {previous} -> {new_status} ({service})")
        return project

    def add_timeline_event_internal(self, project_id, event_type, title, description='', metadata=None, service=''):
        valid_types = {choice for choice, _ in ProjectTimeline.EVENT_TYPE_CHOICES}
        if event_type not in valid_types:
            raise ValidationError(f"Unknown event type: {event_type}")
        project = get_project(project_id)
        return record_event(
            project,
            event_type,
            title,
            description=description,
            actor_id=service,
            actor_role='system',
            metadata=metadata,
        )
