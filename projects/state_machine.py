"""
Project status transitions.

All status changes go through ``transition`` so the allowed moves live in one
table. ``on_hold`` is reachable from every non-terminal state and is left
only through ``resume`` (back to the held-from state) or ``cancel``.
"""
import logging

from common.exceptions import BusinessRuleError
from .models import Project

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS = {
    Project.PAYMENT_PENDING: {
        Project.PAYMENT_PROCESSING,
        Project.CANCELLED,
        Project.ON_HOLD,
    },
    Project.PAYMENT_PROCESSING: {
        Project.PAYMENT_COMPLETED,
        # BNPL installs once the downpayment is in, before the schedule is repaid
        Project.INSTALLATION_SCHEDULED,
        Project.CANCELLED,
        Project.ON_HOLD,
    },
    Project.PAYMENT_COMPLETED: {
        Project.INSTALLATION_SCHEDULED,
        Project.CANCELLED,
        Project.ON_HOLD,
    },
    Project.INSTALLATION_SCHEDULED: {
        Project.INSTALLATION_SCHEDULED,
        Project.INSTALLATION_IN_PROGRESS,
        Project.CANCELLED,
        Project.ON_HOLD,
    },
    Project.INSTALLATION_IN_PROGRESS: {
        Project.INSTALLATION_COMPLETED,
        Project.ON_HOLD,
    },
    Project.INSTALLATION_COMPLETED: {
        Project.COMPLETED,
        Project.ON_HOLD,
    },
    Project.ON_HOLD: {
        Project.CANCELLED,
    },
    Project.COMPLETED: set(),
    Project.CANCELLED: set(),
}

# Once work has started on site nothing can be unwound.
CANCELLABLE_STATUSES = {
    Project.PAYMENT_PENDING,
    Project.PAYMENT_PROCESSING,
    Project.PAYMENT_COMPLETED,
    Project.INSTALLATION_SCHEDULED,
}

PAYMENT_STAGE_STATUSES = {
    Project.PAYMENT_PENDING,
    Project.PAYMENT_PROCESSING,
}


def can_transition(current, target):
    return target in ALLOWED_TRANSITIONS.get(current, set())


def is_cancellable(project):
    if project.status == Project.ON_HOLD:
        return project.held_from_status in CANCELLABLE_STATUSES
    return project.status in CANCELLABLE_STATUSES


def transition(project, target, save=True):
    """
    Move ``project`` to ``target`` or raise BusinessRuleError.

    Only mutates the instance (and saves it when ``save`` is True); callers
    own the surrounding transaction.
    """
    current = project.status
    if not can_transition(current, target):
        raise BusinessRuleError(f"Cannot move project from {current} to {target}")
    if target == Project.CANCELLED and not is_cancellable(project):
        raise BusinessRuleError('Cannot cancel project at this stage')

    project.status = target
    if save:
        project.save(update_fields=['status', 'updated_at'])
    logger.info(f"[ProjectStateMachine] Project {project.id}: {current} -> {target}")
    return project


def hold(project, reason=''):
    if project.status == Project.ON_HOLD:
        raise BusinessRuleError('Project is already on hold')
    held_from = project.status
    transition(project, Project.ON_HOLD, save=False)
    project.held_from_status = held_from
    project.hold_reason = reason or ''
    project.save(update_fields=['status', 'held_from_status', 'hold_reason', 'updated_at'])
    return project


def resume(project):
    if project.status != Project.ON_HOLD:
        raise BusinessRuleError('Project is not on hold')
    restored = project.held_from_status or Project.PAYMENT_PENDING
    project.status = restored
    project.held_from_status = ''
    project.hold_reason = ''
    project.save(update_fields=['status', 'held_from_status', 'hold_reason', 'updated_at'])
    logger.info(f"[ProjectStateMachine] Project {project.id}: on_hold -> {restored}")
    return project
