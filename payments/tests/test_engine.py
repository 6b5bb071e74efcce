import pytest
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from common.exceptions import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from gateways.users import FlagStatus
from payments.engine import LocalPaymentEngine
from payments.models import InstallmentSchedule, PaymentTransaction, ProjectPayment
from projects.models import Project, ProjectTimeline


@pytest.fixture
def engine(fake_gateways):
    return LocalPaymentEngine(user_gateway=fake_gateways.user, payment_gateway=fake_gateways.payment)


def assert_ledger_balanced(payment):
    payment.refresh_from_db()
    assert payment.paid_amount + payment.remaining_amount == payment.total_amount


@pytest.mark.django_db
class TestSelectPaymentMethod:

    def test_bnpl_creates_schedule_and_deducts_credit(self, engine, fake_gateways, owner, project):
        data = engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 12)

        assert data["payment_method"] == "bnpl"
        assert data["payment_status"] == ProjectPayment.PARTIALLY_PAID
        assert data["monthly_emi"] == "1000.00"
        assert data["credit_deducted"] == "12000.00"
        assert len(data["installments"]) == 12

        project.refresh_from_db()
        assert project.status == Project.PAYMENT_PROCESSING
        assert fake_gateways.user.credit_updates == [(str(owner.id), Decimal("12000.00"), "deduct", str(project.id))]
        assert ProjectTimeline.objects.filter(project=project, event_type="payment_method_selected").count() == 1

    def test_bnpl_with_downpayment_starts_pending(self, engine, owner, project):
        data = engine.select_payment_method(project.id, owner, "bnpl", Decimal("3000.00"), 3)

        assert data["payment_status"] == ProjectPayment.PENDING
        assert data["paid_amount"] == "0.00"
        assert data["remaining_amount"] == "12000.00"
        assert [i["amount"] for i in data["installments"]] == ["3000.00"] * 3

    def test_single_pay(self, engine, fake_gateways, owner, project):
        data = engine.select_payment_method(project.id, owner, "single_pay")

        assert data["payment_method"] == "single_pay"
        assert data["payment_status"] == ProjectPayment.PENDING
        assert data["remaining_amount"] == "12000.00"
        assert data["payment_reference"].startswith("SPY-")
        assert data["installments"] == []
        assert fake_gateways.user.credit_updates == []

    def test_bnpl_rejected_for_red_flag(self, engine, fake_gateways, owner, project):
        fake_gateways.user.set_profile(owner.id, flag_status=FlagStatus.RED, credit="20000")

        with pytest.raises(BusinessRuleError) as exc:
            engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 12)

        assert "Your current status is RED" in exc.value.message
        assert not ProjectPayment.objects.filter(project=project).exists()

    def test_bnpl_rejected_without_credit(self, engine, fake_gateways, owner, project):
        fake_gateways.user.set_profile(owner.id, credit="0")

        with pytest.raises(BusinessRuleError) as exc:
            engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 12)
        assert "no SAMA credit available" in exc.value.message

    def test_credit_shortfall_needs_downpayment(self, engine, fake_gateways, owner, project):
        fake_gateways.user.set_profile(owner.id, credit="10000")

        with pytest.raises(BusinessRuleError) as exc:
            engine.select_payment_method(project.id, owner, "bnpl", Decimal("1000.00"), 12)

        assert "at least 2000.00 SAR" in exc.value.message
        assert "You have 10000.00 SAR" in exc.value.message

    def test_credit_shortfall_covered_by_downpayment(self, engine, fake_gateways, owner, project):
        fake_gateways.user.set_profile(owner.id, credit="10000")

        data = engine.select_payment_method(project.id, owner, "bnpl", Decimal("2000.00"), 10)

        assert data["credit_deducted"] == "10000.00"
        assert data["monthly_emi"] == "1000.00"

    def test_failed_credit_update_rolls_back(self, engine, fake_gateways, owner, project):
        fake_gateways.user.fail_credit_update = True

        with pytest.raises(BusinessRuleError):
            engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 12)

        project.refresh_from_db()
        assert project.status == Project.PAYMENT_PENDING
        assert not ProjectPayment.objects.filter(project=project).exists()
        assert not InstallmentSchedule.objects.exists()
        assert not ProjectTimeline.objects.filter(project=project).exists()

    def test_cannot_select_twice(self, engine, owner, project):
        engine.select_payment_method(project.id, owner, "single_pay")

        with pytest.raises(ConflictError):
            engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 12)

    def test_installment_count_validated(self, engine, owner, project):
        with pytest.raises(ValidationError) as exc:
            engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 30)
        assert "between 3 and 24" in exc.value.message

    def test_only_owner_may_select(self, engine, contractor, project):
        with pytest.raises(PermissionDenied):
            engine.select_payment_method(project.id, contractor, "single_pay")

    def test_stranger_sees_nothing(self, engine, stranger, project):
        with pytest.raises(NotFoundError):
            engine.select_payment_method(project.id, stranger, "single_pay")

    def test_only_while_awaiting_payment(self, engine, owner, project_factory):
        project = project_factory(status=Project.ON_HOLD, held_from_status=Project.PAYMENT_PENDING)

        with pytest.raises(BusinessRuleError):
            engine.select_payment_method(project.id, owner, "single_pay")


@pytest.mark.django_db
class TestFullPayment:

    def test_full_payment_completes_project_payment(self, engine, fake_gateways, owner, project):
        engine.select_payment_method(project.id, owner, "single_pay")

        data = engine.process_full_payment(project.id, owner)

        assert data["payment_status"] == ProjectPayment.COMPLETED
        assert data["paid_amount"] == "12000.00"
        assert data["remaining_amount"] == "0.00"
        assert fake_gateways.payment.charges == [(Decimal("12000.00"), "full_payment", str(owner.id))]

        project.refresh_from_db()
        assert project.status == Project.PAYMENT_COMPLETED
        assert PaymentTransaction.objects.get(payment__project=project).transaction_reference == "FAKE-0001"
        assert ProjectTimeline.objects.filter(project=project, event_type="payment_completed").exists()

    def test_declined_charge_leaves_ledger_untouched(self, engine, fake_gateways, owner, project):
        engine.select_payment_method(project.id, owner, "single_pay")
        fake_gateways.payment.succeed = False

        with pytest.raises(PaymentError):
            engine.process_full_payment(project.id, owner)

        payment = ProjectPayment.objects.get(project=project)
        assert payment.payment_status == ProjectPayment.PENDING
        assert payment.paid_amount == Decimal("0.00")
        assert not payment.transactions.exists()
        project.refresh_from_db()
        assert project.status == Project.PAYMENT_PROCESSING

    def test_cannot_pay_twice(self, engine, owner, project):
        engine.select_payment_method(project.id, owner, "single_pay")
        engine.process_full_payment(project.id, owner)

        with pytest.raises(BusinessRuleError):
            engine.process_full_payment(project.id, owner)

    def test_requires_selected_method(self, engine, owner, project):
        with pytest.raises(BusinessRuleError):
            engine.process_full_payment(project.id, owner)

    def test_not_for_bnpl(self, engine, owner, project):
        engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 12)

        with pytest.raises(BusinessRuleError):
            engine.process_full_payment(project.id, owner)


@pytest.mark.django_db
class TestBNPLCollection:

    @pytest.fixture
    def bnpl_with_downpayment(self, engine, owner, project):
        engine.select_payment_method(project.id, owner, "bnpl", Decimal("3000.00"), 3)
        return ProjectPayment.objects.get(project=project)

    @pytest.fixture
    def bnpl_without_downpayment(self, engine, owner, project_factory):
        project = project_factory(total_amount="3000.00")
        engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 3)
        return ProjectPayment.objects.get(project=project)

    def test_downpayment_must_match_exactly(self, engine, owner, bnpl_with_downpayment):
        with pytest.raises(ValidationError) as exc:
            engine.process_downpayment(bnpl_with_downpayment.project_id, owner, Decimal("2999.99"))
        assert exc.value.message == "Downpayment amount must be 3000.00 SAR"

    def test_downpayment_received(self, engine, owner, bnpl_with_downpayment):
        data = engine.process_downpayment(bnpl_with_downpayment.project_id, owner, Decimal("3000.00"))

        assert data["payment_status"] == ProjectPayment.PARTIALLY_PAID
        assert data["paid_amount"] == "3000.00"
        assert data["remaining_amount"] == "9000.00"
        assert_ledger_balanced(bnpl_with_downpayment)

    def test_downpayment_only_once(self, engine, owner, bnpl_with_downpayment):
        engine.process_downpayment(bnpl_with_downpayment.project_id, owner, Decimal("3000.00"))

        with pytest.raises(BusinessRuleError):
            engine.process_downpayment(bnpl_with_downpayment.project_id, owner, Decimal("3000.00"))

    def test_installment_before_downpayment_rejected(self, engine, owner, bnpl_with_downpayment):
        first = bnpl_with_downpayment.installments.get(installment_number=1)

        with pytest.raises(BusinessRuleError) as exc:
            engine.pay_installment(bnpl_with_downpayment.project_id, owner, first.id, Decimal("3000.00"))
        assert exc.value.message == "Downpayment must be paid before installments"

    def test_pay_installment_on_time(self, engine, fake_gateways, owner, bnpl_without_downpayment):
        first = bnpl_without_downpayment.installments.get(installment_number=1)

        result = engine.pay_installment(bnpl_without_downpayment.project_id, owner, first.id, Decimal("1000.00"))

        assert result["installment"]["status"] == InstallmentSchedule.PAID
        assert result["installment"]["paid_amount"] == "1000.00"
        assert result["payment"]["paid_amount"] == "1000.00"
        assert result["payment"]["remaining_amount"] == "2000.00"
        assert fake_gateways.payment.charges[-1][0] == Decimal("1000.00")
        assert_ledger_balanced(bnpl_without_downpayment)

    def test_overdue_installment_charges_late_fee(self, engine, fake_gateways, owner, bnpl_without_downpayment):
        first = bnpl_without_downpayment.installments.get(installment_number=1)
        first.due_date = timezone.now() - timedelta(days=10)
        first.save()

        with pytest.raises(ValidationError) as exc:
            engine.pay_installment(bnpl_without_downpayment.project_id, owner, first.id, Decimal("1000.00"))
        assert exc.value.message == "Payment amount must be at least 1020.00 SAR (including late fee of 20.00 SAR)"

        result = engine.pay_installment(bnpl_without_downpayment.project_id, owner, first.id, Decimal("1020.00"))

        assert result["installment"]["late_fee"] == "20.00"
        assert result["installment"]["overdue_days"] == 10
        assert result["installment"]["paid_amount"] == "1020.00"
        assert result["payment"]["late_fees_paid"] == "20.00"
        assert result["payment"]["paid_amount"] == "1000.00"
        assert fake_gateways.payment.charges[-1][0] == Decimal("1020.00")
        assert_ledger_balanced(bnpl_without_downpayment)

    def test_overpayment_charges_only_what_is_due(self, engine, fake_gateways, owner, bnpl_without_downpayment):
        first = bnpl_without_downpayment.installments.get(installment_number=1)

        engine.pay_installment(bnpl_without_downpayment.project_id, owner, first.id, Decimal("5000.00"))

        assert fake_gateways.payment.charges[-1][0] == Decimal("1000.00")
        assert_ledger_balanced(bnpl_without_downpayment)

    def test_paid_installment_cannot_be_paid_again(self, engine, owner, bnpl_without_downpayment):
        first = bnpl_without_downpayment.installments.get(installment_number=1)
        engine.pay_installment(bnpl_without_downpayment.project_id, owner, first.id, Decimal("1000.00"))

        with pytest.raises(BusinessRuleError):
            engine.pay_installment(bnpl_without_downpayment.project_id, owner, first.id, Decimal("1000.00"))

    def test_unknown_installment(self, engine, owner, bnpl_without_downpayment):
        with pytest.raises(NotFoundError):
            engine.pay_installment(
                bnpl_without_downpayment.project_id, owner, "00000000-0000-0000-0000-000000000000", Decimal("1000.00")
            )

    def test_declined_installment_rolls_back(self, engine, fake_gateways, owner, bnpl_without_downpayment):
        first = bnpl_without_downpayment.installments.get(installment_number=1)
        fake_gateways.payment.succeed = False

        with pytest.raises(PaymentError):
            engine.pay_installment(bnpl_without_downpayment.project_id, owner, first.id, Decimal("1000.00"))

        first.refresh_from_db()
        assert first.status != InstallmentSchedule.PAID
        assert not bnpl_without_downpayment.transactions.exists()
        assert_ledger_balanced(bnpl_without_downpayment)

    def test_last_installment_completes_payment(self, engine, owner, bnpl_without_downpayment):
        project_id = bnpl_without_downpayment.project_id
        for installment in bnpl_without_downpayment.installments.order_by("installment_number"):
            result = engine.pay_installment(project_id, owner, installment.id, installment.amount)

        assert result["payment"]["payment_status"] == ProjectPayment.COMPLETED
        assert result["payment"]["remaining_amount"] == "0.00"
        assert result["payment"]["completed_at"] is not None
        assert Project.objects.get(id=project_id).status == Project.PAYMENT_COMPLETED

    def test_completion_after_installation_keeps_project_status(self, engine, owner, bnpl_without_downpayment):
        project = bnpl_without_downpayment.project
        project.status = Project.INSTALLATION_SCHEDULED
        project.save()

        for installment in bnpl_without_downpayment.installments.order_by("installment_number"):
            result = engine.pay_installment(project.id, owner, installment.id, installment.amount)

        assert result["payment"]["payment_status"] == ProjectPayment.COMPLETED
        project.refresh_from_db()
        assert project.status == Project.INSTALLATION_SCHEDULED


@pytest.mark.django_db
class TestCollectionOnInactiveProjects:

    @staticmethod
    def set_status(project, status, held_from=""):
        Project.objects.filter(id=project.id).update(status=status, held_from_status=held_from)

    def test_full_payment_rejected_after_cancellation(self, engine, fake_gateways, owner, project):
        engine.select_payment_method(project.id, owner, "single_pay")
        self.set_status(project, Project.CANCELLED)

        with pytest.raises(BusinessRuleError) as exc:
            engine.process_full_payment(project.id, owner)

        assert exc.value.message == "Cannot collect payment for a project that is cancelled"
        assert fake_gateways.payment.charges == []
        assert ProjectPayment.objects.get(project=project).payment_status == ProjectPayment.PENDING

    def test_downpayment_rejected_while_on_hold(self, engine, fake_gateways, owner, project):
        engine.select_payment_method(project.id, owner, "bnpl", Decimal("3000.00"), 3)
        self.set_status(project, Project.ON_HOLD, held_from=Project.PAYMENT_PROCESSING)

        with pytest.raises(BusinessRuleError):
            engine.process_downpayment(project.id, owner, Decimal("3000.00"))

        assert fake_gateways.payment.charges == []
        assert not PaymentTransaction.objects.filter(payment__project=project).exists()

    def test_installment_rejected_after_cancellation(self, engine, fake_gateways, owner, project_factory):
        project = project_factory(total_amount="3000.00")
        engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 3)
        first = InstallmentSchedule.objects.get(payment__project=project, installment_number=1)
        self.set_status(project, Project.CANCELLED)

        with pytest.raises(BusinessRuleError):
            engine.pay_installment(project.id, owner, first.id, Decimal("1000.00"))

        assert fake_gateways.payment.charges == []
        first.refresh_from_db()
        assert first.status == InstallmentSchedule.UPCOMING


@pytest.mark.django_db
class TestReleaseAndReads:

    BANK = {"bank_name": "Al Rajhi", "iban": "SA0380000000608010167519", "account_holder": "Sun Co"}

    def test_release_is_recorded_once(self, engine, owner, admin, project):
        engine.select_payment_method(project.id, owner, "single_pay")

        data = engine.release_payment_to_contractor(project.id, admin, Decimal("11000.00"), self.BANK, "First batch")

        assert data["admin_paid_contractor"] is True
        assert data["admin_payment_amount"] == "11000.00"
        assert data["admin_payment_reference"].startswith("REL-")
        payment = ProjectPayment.objects.get(project=project)
        assert payment.contractor_iban == self.BANK["iban"]
        assert payment.released_by_id == str(admin.id)

        with pytest.raises(BusinessRuleError) as exc:
            engine.release_payment_to_contractor(project.id, admin, Decimal("11000.00"), self.BANK)
        assert exc.value.message == "Payment has already been released to the contractor"

    def test_release_cannot_exceed_total(self, engine, owner, admin, project):
        engine.select_payment_method(project.id, owner, "single_pay")

        with pytest.raises(ValidationError):
            engine.release_payment_to_contractor(project.id, admin, Decimal("12000.01"), self.BANK)

    def test_release_requires_admin(self, engine, owner, project):
        engine.select_payment_method(project.id, owner, "single_pay")

        with pytest.raises(PermissionDenied):
            engine.release_payment_to_contractor(project.id, owner, Decimal("100.00"), self.BANK)

    def test_schedule_reports_overdue_without_saving(self, engine, owner, project):
        engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 12)
        first = InstallmentSchedule.objects.get(payment__project=project, installment_number=1)
        first.due_date = timezone.now() - timedelta(days=8)
        first.save()

        schedule = engine.get_installment_schedule(project.id, owner)

        assert schedule["installments"][0]["status"] == InstallmentSchedule.OVERDUE
        assert schedule["installments"][0]["late_fee"] == "20.00"
        assert schedule["summary"]["total_installments"] == 12
        assert schedule["summary"]["overdue_installments"] == 1
        assert schedule["summary"]["outstanding_late_fees"] == "20.00"
        first.refresh_from_db()
        assert first.status == InstallmentSchedule.UPCOMING
        assert first.late_fee == Decimal("0.00")

    def test_contractor_can_read_payment(self, engine, owner, contractor, project):
        engine.select_payment_method(project.id, owner, "single_pay")

        assert engine.get_payment(project.id, contractor)["payment_method"] == "single_pay"

    def test_stranger_cannot_read_schedule(self, engine, owner, stranger, project):
        engine.select_payment_method(project.id, owner, "bnpl", Decimal("0"), 12)

        with pytest.raises(NotFoundError):
            engine.get_installment_schedule(project.id, stranger)

    def test_no_payment_yet(self, engine, owner, project):
        with pytest.raises(NotFoundError):
            engine.get_payment(project.id, owner)
