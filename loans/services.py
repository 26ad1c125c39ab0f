import logging
from typing import Dict, List, Optional, Tuple

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from . import ledger
from .exceptions import ConflictError, InternalError, NotFoundError, ValidationError
from .ledger import LedgerPolicy
from .models import DailyLoan, MonthlyLoan, WeeklyLoan
from .numbering import next_loan_number

logger = logging.getLogger(__name__)

LOAN_ID_LENGTH = 24


def check_loan_id(loan_id: str) -> str:
    if not loan_id or len(loan_id) != LOAN_ID_LENGTH:
        raise ValidationError("Invalid loan ID format")
    return loan_id


class LoanLedger:
    """Read, recompute and write loans of one plan.

    Every write is a compare-and-swap on ``version``; a loan changed by someone
    else between our read and our write is reported as a conflict instead of
    being overwritten.
    """

    def __init__(self, policy: LedgerPolicy, model):
        self.policy = policy
        self.model = model

    def __repr__(self) -> str:
        return f"LoanLedger({self.policy.plan})"

    def create(self, data: dict):
        fields = dict(data)
        fields["phone_number"] = fields.get("phone_number") or None
        fields.update(self.policy.opening(fields))
        try:
            with transaction.atomic():
                if self.policy.numbered:
                    fields["loan_number"] = next_loan_number(self.policy.plan, self.model)
                loan = self.model.objects.create(**fields)
        except IntegrityError as exc:
            logger.warning("Duplicate %s loan rejected: %s", self.policy.plan, exc)
            raise ConflictError(f"A {self.policy.plan} loan with this loan number already exists") from exc
        except DatabaseError as exc:
            raise InternalError(f"Failed to create {self.policy.plan} loan: {exc}") from exc
        logger.info("Created %s loan %s for %s", self.policy.plan, loan.pk, loan.customer_name)
        return loan

    def list(self) -> List:
        try:
            return list(self.model.objects.all())
        except DatabaseError as exc:
            raise InternalError(f"Failed to fetch {self.policy.plan} loans: {exc}") from exc

    def get(self, loan_id: str):
        check_loan_id(loan_id)
        try:
            loan = self.model.objects.filter(pk=loan_id).first()
        except DatabaseError as exc:
            raise InternalError(f"Failed to fetch {self.policy.plan} loan: {exc}") from exc
        if loan is None:
            raise NotFoundError(f"{self.policy.label} loan not found")
        return loan

    def reconcile(self, loan_id: str, entries: List[dict], expected_version: Optional[int] = None) -> Tuple[object, str]:
        loan = self.get(loan_id)
        self._check_version(loan, expected_version)
        changes, appended, updated = ledger.reconcile(self.policy, loan, entries, timezone.now())
        loan = self._commit(loan, changes, "update installments")
        logger.info(
            "Reconciled %s loan %s: %s added, %s updated, status=%s",
            self.policy.plan, loan.pk, appended, updated, loan.status,
        )
        return loan, ledger.reconcile_message(self.policy, appended, updated)

    def mark_paid(self, loan_id: str, expected_version: Optional[int] = None):
        loan = self.get(loan_id)
        self._check_version(loan, expected_version)
        changes = ledger.settle(self.policy, loan)
        loan = self._commit(loan, changes, "mark loan as paid")
        logger.info("Marked %s loan %s as paid, status=%s", self.policy.plan, loan.pk, loan.status)
        return loan

    def remove_installment(self, loan_id: str, period: int, expected_version: Optional[int] = None):
        loan = self.get(loan_id)
        self._check_version(loan, expected_version)
        changes = ledger.remove_installment(self.policy, loan, period)
        if changes is None:
            raise NotFoundError(f"Installment with period {period} not found")
        loan = self._commit(loan, changes, "delete installment")
        logger.info("Removed period %s from %s loan %s", period, self.policy.plan, loan.pk)
        return loan

    def delete(self, loan_id: str):
        loan = self.get(loan_id)
        try:
            deleted, _ = self.model.objects.filter(pk=loan.pk).delete()
        except DatabaseError as exc:
            raise InternalError(f"Failed to delete {self.policy.plan} loan: {exc}") from exc
        if not deleted:
            raise NotFoundError(f"{self.policy.label} loan not found")
        logger.info("Deleted %s loan %s", self.policy.plan, loan_id)
        return loan

    def _check_version(self, loan, expected_version: Optional[int]):
        if expected_version is not None and expected_version != loan.version:
            raise ConflictError(
                f"Loan has changed (version {loan.version}, expected {expected_version}); reload and retry"
            )

    def _commit(self, loan, changes: dict, operation: str):
        values = dict(changes, version=F("version") + 1, updated_at=timezone.now())
        try:
            written = self.model.objects.filter(pk=loan.pk, version=loan.version).update(**values)
            if written:
                return self.model.objects.get(pk=loan.pk)
        except DatabaseError as exc:
            raise InternalError(f"Failed to {operation}: {exc}") from exc
        logger.warning("Stale write rejected for %s loan %s at version %s", self.policy.plan, loan.pk, loan.version)
        raise ConflictError("Loan was modified by another request; reload and retry")


LEDGERS: Dict[str, LoanLedger] = {
    "daily": LoanLedger(ledger.DAILY, DailyLoan),
    "weekly": LoanLedger(ledger.WEEKLY, WeeklyLoan),
    "monthly": LoanLedger(ledger.MONTHLY, MonthlyLoan),
}


def get_ledger(plan: str) -> LoanLedger:
    try:
        return LEDGERS[plan]
    except KeyError:
        raise ValueError(f"Invalid loan type: {plan}") from None


def dashboard_totals() -> Dict[str, int]:
    """Grand totals over every loan of every plan."""
    totals = {
        "totalAmountGiven": 0,
        "totalAmountCollected": 0,
        "totalAmountRemaining": 0,
        "totalProfitAmount": 0,
        "totalLoanAmount": 0,
    }
    try:
        for loan_ledger in LEDGERS.values():
            sums = loan_ledger.model.objects.aggregate(
                given=Coalesce(Sum("amount_given"), 0),
                collected=Coalesce(Sum("collected_amount"), 0),
                remaining=Coalesce(Sum("remaining_amount"), 0),
                profit=Coalesce(Sum(loan_ledger.policy.profit_field), 0),
                loan=Coalesce(Sum("loan_amount"), 0),
            )
            totals["totalAmountGiven"] += sums["given"]
            totals["totalAmountCollected"] += sums["collected"]
            totals["totalAmountRemaining"] += sums["remaining"]
            totals["totalProfitAmount"] += sums["profit"]
            totals["totalLoanAmount"] += sums["loan"]
    except DatabaseError as exc:
        raise InternalError(f"Failed to fetch dashboard data: {exc}") from exc
    return totals
