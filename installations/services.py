"""
Installation lifecycle: scheduling, on-site execution and owner
verification with a one-time code.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from common.exceptions import BusinessRuleError, NotFoundError, ValidationError
from gateways import build_gateway
from payments.calculator import BNPL
from payments.engine import build_payment_engine
from payments.models import ProjectPayment
from projects import state_machine
from projects.access import get_visible_project, require_admin, require_contractor, require_owner
from projects.models import Project
from projects.permissions import get_actor_id, get_role
from projects.timeline import record_event
from . import otp as otp_codes
from .models import ProjectDocument, ProjectInstallation

logger = logging.getLogger(__name__)

SCHEDULING_FIELDS = (
    'scheduled_time_slot',
    'estimated_duration_hours',
    'team_lead_name',
    'team_lead_phone',
    'installation_team',
    'installation_notes',
)

COMPLETION_FIELDS = (
    'equipment_installed',
    'warranty_info',
    'contractor_notes',
    'issues_encountered',
)


class InstallationService:

    def __init__(self, user_gateway=None, notification_gateway=None, payment_engine=None):
        self.user_gateway = user_gateway or build_gateway('user')
        self.notification_gateway = notification_gateway or build_gateway('notification')
        self._payment_engine = payment_engine

    @property
    def payment_engine(self):
        if self._payment_engine is None:
            self._payment_engine = build_payment_engine()
        return self._payment_engine

    # ---------------- helpers ----------------

    @staticmethod
    def _lock_installation(project):
        installation = ProjectInstallation.objects.select_for_update().filter(project=project).first()
        if installation is None:
            raise BusinessRuleError('Installation has not been scheduled for this project')
        return installation

    def _ensure_paid_enough(self, project, actor):
        try:
            payment = self.payment_engine.get_payment(project.id, actor)
        except NotFoundError:
            raise BusinessRuleError('Payment method must be selected before scheduling installation')

        already_scheduled = project.status == Project.INSTALLATION_SCHEDULED
        if payment['payment_method'] == BNPL:
            ready = payment['payment_status'] in (ProjectPayment.PARTIALLY_PAID, ProjectPayment.COMPLETED)
            if not (ready or already_scheduled):
                raise BusinessRuleError('BNPL downpayment must be paid before scheduling installation')
        elif project.status not in (Project.PAYMENT_COMPLETED, Project.INSTALLATION_SCHEDULED):
            raise BusinessRuleError('Full payment must be completed before scheduling installation')

    def _send_code(self, installation, project, auth_token=None):
        """Issue a fresh code, store it and text it to the owner."""
        profile = self.user_gateway.fetch_user(project.user_id, auth_token)
        if not profile.phone:
            raise BusinessRuleError('Project owner has no phone number for verification')

        code = otp_codes.generate_otp()
        installation.otp_code = code
        installation.otp_expires_at = otp_codes.otp_expiry()
        installation.otp_attempts = 0
        installation.max_otp_attempts = otp_codes.max_attempts()
        installation.otp_verified = False

        if not self.notification_gateway.send_otp(profile.phone, code, project.id):
            raise BusinessRuleError('Failed to send verification code to the project owner')

    # ---------------- scheduling ----------------

    def schedule_installation(self, project_id, actor, data):
        """
        Create or reschedule the installation. Rescheduling is only possible
        until work starts.
        """
        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            require_contractor(project, actor, allow_admin=True)

            if project.is_terminal or project.status == Project.ON_HOLD:
                raise BusinessRuleError(f"Cannot schedule installation for a project that is {project.status}")
            self._ensure_paid_enough(project, actor)

            installation = ProjectInstallation.objects.select_for_update().filter(project=project).first()
            rescheduled = installation is not None
            if rescheduled and installation.status != ProjectInstallation.SCHEDULED:
                raise BusinessRuleError('Installation can only be rescheduled before it starts')
            if installation is None:
                installation = ProjectInstallation(project=project)

            installation.scheduled_date = data['scheduled_date']
            for field in SCHEDULING_FIELDS:
                if field in data and data[field] is not None:
                    setattr(installation, field, data[field])
            installation.save()

            state_machine.transition(project, Project.INSTALLATION_SCHEDULED, save=False)
            project.actual_installation_date = installation.scheduled_date
            project.save(update_fields=['status', 'actual_installation_date', 'updated_at'])

            record_event(
                project,
                'installation_scheduled',
                'Installation rescheduled' if rescheduled else 'Installation scheduled',
                description=f"Scheduled for {installation.scheduled_date:%Y-%m-%d}",
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={
                    'scheduled_date': installation.scheduled_date,
                    'time_slot': installation.scheduled_time_slot,
                    'rescheduled': rescheduled,
                },
            )

        logger.info(f"[InstallationService] Installation for project {project.id} scheduled on {installation.scheduled_date}")
        return installation

    # ---------------- execution ----------------

    def start_installation(self, project_id, actor, notes=''):
        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            require_contractor(project, actor)
            installation = self._lock_installation(project)

            if installation.status != ProjectInstallation.SCHEDULED:
                raise BusinessRuleError('Installation has already been started')

            state_machine.transition(project, Project.INSTALLATION_IN_PROGRESS)
            installation.status = ProjectInstallation.IN_PROGRESS
            installation.started_at = timezone.now()
            if notes:
                installation.contractor_notes = notes
            installation.save()

            record_event(
                project,
                'installation_started',
                'Installation started',
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
            )

        logger.info(f"[InstallationService] Installation started for project {project.id}")
        return installation

    def complete_installation(self, project_id, actor, data=None, auth_token=None):
        """
        Contractor finishes the work. The owner is texted a code that they
        must enter to confirm; the code itself is never returned here.
        """
        data = data or {}
        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            require_contractor(project, actor)
            installation = self._lock_installation(project)

            if installation.status != ProjectInstallation.IN_PROGRESS:
                raise BusinessRuleError('Installation must be in progress to be completed')

            now = timezone.now()
            installation.status = ProjectInstallation.AWAITING_VERIFICATION
            installation.completed_at = now
            duration = data.get('actual_duration_hours')
            if duration is None and installation.started_at:
                seconds = (now - installation.started_at).total_seconds()
                duration = Decimal(str(round(seconds / 3600, 2)))
            installation.actual_duration_hours = duration
            for field in COMPLETION_FIELDS:
                if field in data and data[field] is not None:
                    setattr(installation, field, data[field])

            self._send_code(installation, project, auth_token)
            installation.save()

            record_event(
                project,
                'installation_completed',
                'Installation work completed',
                description='Awaiting owner verification',
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={'actual_duration_hours': installation.actual_duration_hours},
            )

        logger.info(f"[InstallationService] Installation completed for project {project.id}; verification code sent")
        return installation

    def resend_completion_code(self, project_id, actor, auth_token=None):
        """Issue a new code after the previous one expired or was locked out."""
        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            require_contractor(project, actor)
            installation = self._lock_installation(project)

            if installation.status != ProjectInstallation.AWAITING_VERIFICATION:
                raise BusinessRuleError('Installation is not awaiting verification')

            self._send_code(installation, project, auth_token)
            installation.save()

        logger.info(f"[InstallationService] Verification code re-sent for project {project.id}")
        return installation

    # ---------------- verification ----------------

    def verify_completion(self, project_id, actor, code):
        """
        Owner confirms the installation with the texted code.

        A wrong code costs one attempt; the counter is committed before the
        error is raised so retries cannot reset it.
        """
        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            require_owner(project, actor, 'Only the project owner can verify the installation')
            installation = self._lock_installation(project)

            if installation.status != ProjectInstallation.AWAITING_VERIFICATION:
                raise BusinessRuleError('Installation is not awaiting verification')
            if installation.otp_attempts >= installation.max_otp_attempts:
                raise BusinessRuleError('Maximum verification attempts exceeded. Ask the contractor for a new code.')
            if otp_codes.is_expired(installation.otp_expires_at):
                raise BusinessRuleError('Verification code has expired. Ask the contractor for a new code.')

            matched = otp_codes.codes_match(installation.otp_code, code)
            if not matched:
                installation.otp_attempts += 1
                installation.save(update_fields=['otp_attempts', 'updated_at'])
            else:
                now = timezone.now()
                installation.status = ProjectInstallation.VERIFIED
                installation.otp_verified = True
                installation.otp_code = ''
                installation.otp_expires_at = None
                installation.verified_at = now
                installation.save()

                state_machine.transition(project, Project.INSTALLATION_COMPLETED)
                record_event(
                    project,
                    'installation_verified',
                    'Installation verified by owner',
                    actor_id=get_actor_id(actor),
                    actor_role=get_role(actor),
                )

        if not matched:
            remaining = installation.attempts_remaining
            logger.warning(f"[InstallationService] Invalid code for project {project.id}; {remaining} attempts remaining")
            raise ValidationError(f"Invalid OTP. {remaining} attempts remaining.")

        logger.info(f"[InstallationService] Installation verified for project {project.id}")
        return installation

    # ---------------- documents ----------------

    def upload_document(self, project_id, actor, data):
        """Record an uploaded installation document against the project."""
        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            document = ProjectDocument.objects.create(
                project=project,
                document_type=data['document_type'],
                title=data['title'],
                description=data.get('description') or '',
                file_name=data['file_name'],
                file_url=data['file_url'],
                file_size=data.get('file_size'),
                file_mime_type=data.get('file_mime_type') or '',
                uploaded_by_id=get_actor_id(actor),
                uploaded_by_role=get_role(actor),
            )

            record_event(
                project,
                'document_uploaded',
                f"{document.get_document_type_display()} uploaded",
                description=document.title,
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={'document_id': document.id, 'document_type': document.document_type},
            )

        logger.info(f"[InstallationService] Document {document.id} ({document.document_type}) uploaded for project {project.id} by {get_role(actor)}")
        return document

    def list_documents(self, project_id, actor, document_type=None):
        project = get_visible_project(project_id, actor)
        documents = ProjectDocument.objects.filter(project=project)
        if document_type:
            documents = documents.filter(document_type=document_type)
        return list(documents)

    # ---------------- admin ----------------

    def perform_quality_check(self, project_id, actor, passed, notes=''):
        require_admin(actor)
        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            installation = self._lock_installation(project)

            installation.quality_check_passed = passed
            installation.quality_check_notes = notes or ''
            installation.quality_checked_by = get_actor_id(actor)
            installation.quality_checked_at = timezone.now()
            installation.save()

            record_event(
                project,
                'quality_check',
                'Quality check passed' if passed else 'Quality check failed',
                description=notes or '',
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={'passed': passed},
            )

        return installation

    def get_installation(self, project_id, actor):
        project = get_visible_project(project_id, actor)
        installation = ProjectInstallation.objects.filter(project=project).first()
        if installation is None:
            raise NotFoundError('Installation has not been scheduled for this project')
        return installation
