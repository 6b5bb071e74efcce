"""
Payment and installment engine.

``LocalPaymentEngine`` keeps the payment ledger in this database.
``RemotePaymentEngine`` forwards the same calls to a split-out payment
service. ``build_payment_engine`` picks one from ``settings.PAYMENT_ENGINE``.

Every mutating call runs in one transaction with the project and payment rows
locked, so concurrent requests for the same project are applied one at a time.
"""
import logging
from decimal import Decimal

import requests
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.module_loading import import_string

from common.exceptions import (
    BusinessRuleError,
    ConflictError,
    ErrorKind,
    NotFoundError,
    PaymentError,
    ServiceUnavailableError,
    ValidationError,
)
from gateways import build_gateway
from projects import state_machine
from projects.access import get_visible_project, require_admin, require_owner
from projects.models import Project
from projects.permissions import get_actor_id, get_role
from projects.timeline import record_event
from .calculator import (
    BNPL,
    SINGLE_PAY,
    calculate_bnpl_schedule,
    generate_reference,
    round2,
    to_decimal,
    validate_payment_selection,
)
from .models import InstallmentSchedule, PaymentTransaction, ProjectPayment
from .serializers import InstallmentScheduleSerializer, ProjectPaymentSerializer

logger = logging.getLogger(__name__)


class PaymentEngine:
    """
    Operations on a project's payment. Every method returns the
    JSON-ready representation that the API sends back.
    """

    def select_payment_method(self, project_id, actor, payment_method, downpayment_amount=None,
                              number_of_installments=None, auth_token=None):
        raise NotImplementedError

    def process_full_payment(self, project_id, actor):
        raise NotImplementedError

    def process_downpayment(self, project_id, actor, amount):
        raise NotImplementedError

    def pay_installment(self, project_id, actor, installment_id, amount):
        raise NotImplementedError

    def release_payment_to_contractor(self, project_id, actor, amount, bank_details, notes=''):
        raise NotImplementedError

    def get_installment_schedule(self, project_id, actor):
        raise NotImplementedError

    def get_payment(self, project_id, actor):
        raise NotImplementedError


# ============================================================
# Local (ORM-backed) engine
# ============================================================

class LocalPaymentEngine(PaymentEngine):

    def __init__(self, user_gateway=None, payment_gateway=None):
        self.user_gateway = user_gateway or build_gateway('user')
        self.payment_gateway = payment_gateway or build_gateway('payment')

    # ---------------- helpers ----------------

    @staticmethod
    def _ensure_collectable(project):
        if project.is_terminal or project.status == Project.ON_HOLD:
            raise BusinessRuleError(f"Cannot collect payment for a project that is {project.status}")

    @staticmethod
    def _lock_payment(project):
        try:
            return ProjectPayment.objects.select_for_update().get(project=project)
        except ProjectPayment.DoesNotExist:
            raise BusinessRuleError('Payment method has not been selected for this project')

    def _charge(self, amount, purpose, project):
        result = self.payment_gateway.charge(amount, purpose, project.user_id)
        if not result.success:
            logger.warning(f"[PaymentEngine] {purpose} of {amount} declined for project={project.id}: {result.message}")
            raise PaymentError(result.message or 'Payment processing failed')
        return result

    @staticmethod
    def _complete_payment(payment, project, actor):
        """Mark the payment settled and advance the project if it is still waiting on payment."""
        payment.payment_status = ProjectPayment.COMPLETED
        payment.completed_at = timezone.now()
        if project.status in state_machine.PAYMENT_STAGE_STATUSES:
            if project.status == Project.PAYMENT_PENDING:
                state_machine.transition(project, Project.PAYMENT_PROCESSING)
            state_machine.transition(project, Project.PAYMENT_COMPLETED)
        record_event(
            project,
            'payment_completed',
            'Payment completed',
            description=f"All {payment.total_amount:.2f} SAR received",
            actor_id=get_actor_id(actor),
            actor_role=get_role(actor),
            metadata={'payment_method': payment.payment_method, 'late_fees_paid': payment.late_fees_paid},
        )

    # ---------------- selection ----------------

    def select_payment_method(self, project_id, actor, payment_method, downpayment_amount=None,
                              number_of_installments=None, auth_token=None):
        downpayment = round2(downpayment_amount or 0)

        try:
            with transaction.atomic():
                project = get_visible_project(project_id, actor, for_update=True)
                require_owner(project, actor)

                if ProjectPayment.objects.filter(project=project).exists():
                    raise ConflictError('Payment method has already been selected for this project')
                if project.status != Project.PAYMENT_PENDING:
                    raise BusinessRuleError('Payment method can only be selected while the project is awaiting payment')

                errors = validate_payment_selection(
                    project.total_amount, payment_method, downpayment, number_of_installments
                )
                if errors:
                    raise ValidationError('; '.join(errors))

                if payment_method == BNPL:
                    payment, calculation = self._create_bnpl_payment(
                        project, downpayment, number_of_installments, auth_token
                    )
                    metadata = {
                        'payment_method': BNPL,
                        'downpayment_amount': downpayment,
                        'number_of_installments': calculation.number_of_installments,
                        'monthly_emi': calculation.monthly_emi,
                        'credit_deducted': payment.credit_deducted,
                    }
                    description = (
                        f"BNPL with {calculation.number_of_installments} installments of "
                        f"{calculation.monthly_emi:.2f} SAR"
                    )
                else:
                    payment = ProjectPayment.objects.create(
                        project=project,
                        payment_method=SINGLE_PAY,
                        payment_status=ProjectPayment.PENDING,
                        total_amount=project.total_amount,
                        paid_amount=Decimal('0.00'),
                        remaining_amount=project.total_amount,
                        payment_reference=generate_reference('SPY'),
                    )
                    metadata = {'payment_method': SINGLE_PAY, 'total_amount': project.total_amount}
                    description = f"Single payment of {project.total_amount:.2f} SAR"

                state_machine.transition(project, Project.PAYMENT_PROCESSING)
                record_event(
                    project,
                    'payment_method_selected',
                    'Payment method selected',
                    description=description,
                    actor_id=get_actor_id(actor),
                    actor_role=get_role(actor),
                    metadata=metadata,
                )
        except IntegrityError:
            raise ConflictError('Payment method has already been selected for this project')

        logger.info(f"[PaymentEngine] {payment_method} selected for project={project_id} ref={payment.payment_reference}")
        return ProjectPaymentSerializer(payment).data

    def _create_bnpl_payment(self, project, downpayment, number_of_installments, auth_token=None):
        total = project.total_amount

        profile = self.user_gateway.fetch_user(project.user_id, auth_token)
        if not profile.is_bnpl_eligible:
            raise BusinessRuleError(
                f"BNPL is only available for users with GREEN credit status. "
                f"Your current status is {profile.flag_status or 'UNKNOWN'}."
            )

        credit = round2(profile.sama_credit_amount)
        if credit <= 0:
            raise BusinessRuleError(
                'You have no SAMA credit available for BNPL. Please choose the single payment option.'
            )

        shortfall = round2(total - credit)
        if shortfall > 0 and downpayment < shortfall:
            raise BusinessRuleError(
                f"Insufficient SAMA credit. You have {credit:.2f} SAR but the project costs {total:.2f} SAR. "
                f"You need to provide a downpayment of at least {shortfall:.2f} SAR to use BNPL, "
                f"or choose the single payment option."
            )

        calculation = calculate_bnpl_schedule(total, downpayment, number_of_installments)
        credit_to_deduct = min(credit, total)

        payment = ProjectPayment.objects.create(
            project=project,
            payment_method=BNPL,
            payment_status=ProjectPayment.PENDING if downpayment > 0 else ProjectPayment.PARTIALLY_PAID,
            total_amount=total,
            downpayment_amount=downpayment,
            paid_amount=Decimal('0.00'),
            remaining_amount=total,
            number_of_installments=calculation.number_of_installments,
            monthly_emi=calculation.monthly_emi,
            credit_deducted=credit_to_deduct,
            payment_reference=generate_reference('BNPL'),
        )
        InstallmentSchedule.objects.bulk_create([
            InstallmentSchedule(
                payment=payment,
                installment_number=item.installment_number,
                amount=item.amount,
                due_date=item.due_date,
            )
            for item in calculation.installment_schedule
        ])

        # Last step: if the credit ledger refuses, the rows above roll back with it.
        self.user_gateway.update_credit(
            project.user_id,
            credit_to_deduct,
            'deduct',
            project.id,
            f"BNPL purchase for project {project.id}",
            auth_token,
        )
        logger.info(
            f"[PaymentEngine] BNPL schedule created for project={project.id}: "
            f"{calculation.number_of_installments} x {calculation.monthly_emi}, credit deducted {credit_to_deduct}"
        )
        return payment, calculation

    # ---------------- collection ----------------

    def process_full_payment(self, project_id, actor):
        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            require_owner(project, actor)
            self._ensure_collectable(project)
            payment = self._lock_payment(project)

            if payment.payment_method != SINGLE_PAY:
                raise BusinessRuleError('Full payment is only available for single payment projects')
            if payment.payment_status == ProjectPayment.COMPLETED:
                raise BusinessRuleError('Payment has already been completed')

            amount = payment.remaining_amount
            charge = self._charge(amount, PaymentTransaction.FULL_PAYMENT, project)

            PaymentTransaction.objects.create(
                payment=payment,
                transaction_type=PaymentTransaction.FULL_PAYMENT,
                amount=amount,
                transaction_reference=charge.reference,
            )
            payment.paid_amount = payment.total_amount
            payment.remaining_amount = Decimal('0.00')
            self._complete_payment(payment, project, actor)
            payment.save()

        logger.info(f"[PaymentEngine] Full payment of {amount} received for project={project_id}")
        return ProjectPaymentSerializer(payment).data

    def process_downpayment(self, project_id, actor, amount):
        amount = round2(amount)

        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            require_owner(project, actor)
            self._ensure_collectable(project)
            payment = self._lock_payment(project)

            if payment.payment_method != BNPL:
                raise BusinessRuleError('Downpayment only applies to BNPL payments')
            if payment.downpayment_amount <= 0:
                raise BusinessRuleError('This payment plan has no downpayment')
            if payment.downpayment_settled:
                raise BusinessRuleError('Downpayment has already been paid')
            if amount != payment.downpayment_amount:
                raise ValidationError(f"Downpayment amount must be {payment.downpayment_amount:.2f} SAR")

            charge = self._charge(amount, PaymentTransaction.DOWNPAYMENT, project)

            PaymentTransaction.objects.create(
                payment=payment,
                transaction_type=PaymentTransaction.DOWNPAYMENT,
                amount=amount,
                transaction_reference=charge.reference,
            )
            payment.paid_amount += amount
            payment.remaining_amount -= amount
            payment.payment_status = ProjectPayment.PARTIALLY_PAID
            payment.save()

            record_event(
                project,
                'downpayment_received',
                'Downpayment received',
                description=f"Downpayment of {amount:.2f} SAR received",
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={'amount': amount, 'reference': charge.reference},
            )

        logger.info(f"[PaymentEngine] Downpayment of {amount} received for project={project_id}")
        return ProjectPaymentSerializer(payment).data

    def pay_installment(self, project_id, actor, installment_id, amount):
        offered = round2(amount)

        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            require_owner(project, actor)
            self._ensure_collectable(project)
            payment = self._lock_payment(project)

            if payment.payment_method != BNPL:
                raise BusinessRuleError('Installments only apply to BNPL payments')
            if not payment.downpayment_settled:
                raise BusinessRuleError('Downpayment must be paid before installments')

            try:
                installment = InstallmentSchedule.objects.select_for_update().get(id=installment_id, payment=payment)
            except (InstallmentSchedule.DoesNotExist, ValueError):
                raise NotFoundError('Installment not found')

            if installment.status == InstallmentSchedule.PAID:
                raise BusinessRuleError('Installment has already been paid')

            installment.refresh_overdue(save=False)
            late_fee = installment.late_fee
            required = installment.amount + late_fee
            if offered < required:
                raise ValidationError(
                    f"Payment amount must be at least {required:.2f} SAR (including late fee of {late_fee:.2f} SAR)"
                )

            charge = self._charge(required, PaymentTransaction.INSTALLMENT, project)

            now = timezone.now()
            installment.status = InstallmentSchedule.PAID
            installment.paid_amount = required
            installment.paid_at = now
            installment.payment_reference = charge.reference
            installment.save()

            PaymentTransaction.objects.create(
                payment=payment,
                installment=installment,
                transaction_type=PaymentTransaction.INSTALLMENT,
                amount=required,
                transaction_reference=charge.reference,
                metadata={
                    'installment_number': installment.installment_number,
                    'principal': f"{installment.amount:.2f}",
                    'late_fee': f"{late_fee:.2f}",
                    'overdue_days': installment.overdue_days,
                },
            )

            payment.paid_amount += installment.amount
            payment.remaining_amount -= installment.amount
            payment.late_fees_paid += late_fee
            payment.payment_status = ProjectPayment.PARTIALLY_PAID

            record_event(
                project,
                'installment_paid',
                f"Installment {installment.installment_number} paid",
                description=f"Paid {required:.2f} SAR (late fee {late_fee:.2f} SAR)",
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={
                    'installment_number': installment.installment_number,
                    'amount': installment.amount,
                    'late_fee': late_fee,
                    'overdue_days': installment.overdue_days,
                    'reference': charge.reference,
                },
            )

            outstanding = payment.installments.exclude(status=InstallmentSchedule.PAID).exists()
            if not outstanding and payment.remaining_amount <= 0:
                self._complete_payment(payment, project, actor)
            payment.save()

        logger.info(
            f"[PaymentEngine] Installment {installment.installment_number} paid for project={project_id}: "
            f"{required} (late fee {late_fee})"
        )
        return {
            'installment': InstallmentScheduleSerializer(installment).data,
            'payment': ProjectPaymentSerializer(payment).data,
        }

    # ---------------- release ----------------

    def release_payment_to_contractor(self, project_id, actor, amount, bank_details, notes=''):
        """
        Record the admin's transfer of funds to the contractor. A payment can
        be released once; the owner's own repayment progress is not checked.
        """
        require_admin(actor)
        amount = round2(amount)

        with transaction.atomic():
            project = get_visible_project(project_id, actor, for_update=True)
            payment = self._lock_payment(project)

            if payment.admin_paid_contractor:
                raise BusinessRuleError('Payment has already been released to the contractor')
            if amount > payment.total_amount:
                raise ValidationError(
                    f"Release amount cannot exceed the project total of {payment.total_amount:.2f} SAR"
                )

            payment.admin_paid_contractor = True
            payment.admin_payment_amount = amount
            payment.admin_paid_at = timezone.now()
            payment.admin_payment_reference = generate_reference('REL')
            payment.admin_payment_notes = notes or ''
            payment.contractor_bank_name = bank_details.get('bank_name', '')
            payment.contractor_iban = bank_details.get('iban', '')
            payment.contractor_account_holder = bank_details.get('account_holder', '')
            payment.released_by_id = get_actor_id(actor)
            payment.save()

            record_event(
                project,
                'admin_action',
                'Payment released to contractor',
                description=f"{amount:.2f} SAR released to contractor",
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={
                    'action': 'release_payment',
                    'amount': amount,
                    'reference': payment.admin_payment_reference,
                    'user_payment_status': payment.payment_status,
                },
            )

        logger.info(f"[PaymentEngine] Released {amount} to contractor for project={project_id}")
        return ProjectPaymentSerializer(payment).data

    # ---------------- reads ----------------

    def get_installment_schedule(self, project_id, actor):
        project = get_visible_project(project_id, actor)
        payment = ProjectPayment.objects.filter(project=project).first()
        if payment is None:
            raise NotFoundError('Payment method has not been selected for this project')

        installments = list(payment.installments.order_by('installment_number'))
        for installment in installments:
            installment.refresh_overdue(save=False)

        unpaid = [i for i in installments if i.status != InstallmentSchedule.PAID]
        next_due = unpaid[0] if unpaid else None
        return {
            'payment_id': str(payment.id),
            'payment_method': payment.payment_method,
            'installments': InstallmentScheduleSerializer(installments, many=True).data,
            'summary': {
                'total_installments': len(installments),
                'paid_installments': len(installments) - len(unpaid),
                'overdue_installments': sum(1 for i in unpaid if i.status == InstallmentSchedule.OVERDUE),
                'outstanding_late_fees': f"{sum((i.late_fee for i in unpaid), Decimal('0.00')):.2f}",
                'next_due_date': next_due.due_date.isoformat() if next_due else None,
                'next_due_amount': f"{next_due.amount:.2f}" if next_due else None,
            },
        }

    def get_payment(self, project_id, actor):
        project = get_visible_project(project_id, actor)
        payment = ProjectPayment.objects.filter(project=project).prefetch_related('installments').first()
        if payment is None:
            raise NotFoundError('Payment method has not been selected for this project')
        return ProjectPaymentSerializer(payment).data


# ============================================================
# Remote engine (payment service split out)
# ============================================================

class RemotePaymentEngine(PaymentEngine):
    """
    Forwards payment calls to ``PAYMENT_SERVICE_URL``. The remote service
    owns the ledger and reports project status changes back through the
    internal API.
    """

    _ERROR_CLASSES = {
        ErrorKind.VALIDATION.code: ValidationError,
        ErrorKind.NOT_FOUND.code: NotFoundError,
        ErrorKind.CONFLICT.code: ConflictError,
        ErrorKind.BUSINESS_RULE.code: BusinessRuleError,
        ErrorKind.PAYMENT.code: PaymentError,
    }

    def __init__(self, base_url=None, timeout=None, session=None):
        self.base_url = (base_url or getattr(settings, 'PAYMENT_SERVICE_URL', '')).rstrip('/')
        self.timeout = timeout or getattr(settings, 'GATEWAY_TIMEOUT_SECONDS', 10)
        self.session = session or requests.Session()

    def _headers(self, actor):
        return {
            'Content-Type': 'application/json',
            'X-Internal-Token': getattr(settings, 'INTERNAL_API_TOKEN', ''),
            'X-User-Id': get_actor_id(actor),
            'X-User-Role': get_role(actor),
        }

    def _call(self, method, path, actor, payload=None):
        url = f"{self.base_url}/api/payments/projects/{path}"
        try:
            response = self.session.request(
                method, url, json=payload, headers=self._headers(actor), timeout=self.timeout
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.error(f"[RemotePaymentEngine] {method} {url} unreachable: {str(e)}")
            raise ServiceUnavailableError('Payment service is unavailable')
        except requests.exceptions.RequestException as e:
            logger.error(f"[RemotePaymentEngine] {method} {url} failed: {str(e)}")
            raise ServiceUnavailableError('Payment service is unavailable')

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            error_class = self._ERROR_CLASSES.get(body.get('code'), BusinessRuleError)
            if response.status_code == 404 and not body.get('code'):
                error_class = NotFoundError
            raise error_class(body.get('message') or 'Payment service rejected the request')
        return body.get('data', body)

    @staticmethod
    def _money(value):
        return f"{round2(value):.2f}" if value is not None else None

    def select_payment_method(self, project_id, actor, payment_method, downpayment_amount=None,
                              number_of_installments=None, auth_token=None):
        return self._call('POST', f"{project_id}/payment-method", actor, {
            'payment_method': payment_method,
            'downpayment_amount': self._money(downpayment_amount or 0),
            'number_of_installments': number_of_installments,
        })

    def process_full_payment(self, project_id, actor):
        return self._call('POST', f"{project_id}/pay-full", actor)

    def process_downpayment(self, project_id, actor, amount):
        return self._call('POST', f"{project_id}/pay-downpayment", actor, {'amount': self._money(amount)})

    def pay_installment(self, project_id, actor, installment_id, amount):
        return self._call('POST', f"{project_id}/pay-installment", actor, {
            'installment_id': str(installment_id),
            'amount': self._money(amount),
        })

    def release_payment_to_contractor(self, project_id, actor, amount, bank_details, notes=''):
        payload = {'amount': self._money(to_decimal(amount)), 'notes': notes}
        payload.update(bank_details)
        return self._call('POST', f"{project_id}/release-payment", actor, payload)

    def get_installment_schedule(self, project_id, actor):
        return self._call('GET', f"{project_id}/installments", actor)

    def get_payment(self, project_id, actor):
        return self._call('GET', f"{project_id}/payment", actor)


def build_payment_engine(**kwargs):
    """Instantiate the engine named by ``settings.PAYMENT_ENGINE``."""
    dotted_path = getattr(settings, 'PAYMENT_ENGINE', 'payments.engine.LocalPaymentEngine')
    return import_string(dotted_path)(**kwargs)
