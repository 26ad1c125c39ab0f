"""Installment bookkeeping rules shared by the daily, weekly and monthly ledgers.

Everything here is pure: functions receive a loan (any object exposing the model
attributes), plain installment dicts, and return new values. Persistence lives in
``loans.services``.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .exceptions import InvalidStateError

PAID = "paid"
PENDING = "pending"
MISSED = "missed"

ACTIVE = "active"
COMPLETED = "completed"


def paid_total(installments: Iterable[dict]) -> int:
    return sum(inst["amount"] for inst in installments if inst["status"] == PAID)


def all_paid(installments: Iterable[dict]) -> bool:
    return all(inst["status"] == PAID for inst in installments)


def _paid_on(status: str, paid_on: Optional[datetime], now: datetime) -> Optional[str]:
    if status != PAID:
        return None
    return (paid_on or now).isoformat()


def build_daily_schedule(issuing_date: date, number_of_days: int, amount_per_day: int) -> List[dict]:
    # Every day starts pending, even when the due date is already behind us.
    return [
        {
            "period": period,
            "date": (issuing_date + timedelta(days=period)).isoformat(),
            "amount": amount_per_day,
            "status": PENDING,
            "paidOn": None,
        }
        for period in range(1, number_of_days + 1)
    ]


def daily_opening(data: dict) -> dict:
    return {
        "installments": build_daily_schedule(data["issuing_date"], data["number_of_days"], data["amount_per_day"]),
        "total_profit": 0,
        "collected_amount": 0,
        "remaining_amount": data["loan_amount"],
        "status": ACTIVE,
    }


def interest_opening(data: dict) -> dict:
    return {
        "installments": [],
        "profit_amount": data["interest_amount"],
        "collected_amount": 0,
        "remaining_amount": data["loan_amount"],
        "status": ACTIVE,
    }


def update_fixed_schedule(stored: List[dict], entries: List[dict], now: datetime) -> Tuple[List[dict], int, int]:
    """Apply status changes to a pre-generated schedule.

    Periods that are not part of the schedule are ignored, periods that are not
    mentioned keep their current state.
    """
    updates = {entry["period"]: entry for entry in entries}
    installments = []
    updated = 0
    for inst in stored:
        inst = dict(inst)
        entry = updates.get(inst["period"])
        if entry is not None:
            inst["status"] = entry["status"]
            inst["paidOn"] = _paid_on(entry["status"], entry.get("paid_on"), now)
            updated += 1
        installments.append(inst)
    return installments, 0, updated


def replace_open_schedule(stored: List[dict], entries: List[dict], now: datetime) -> Tuple[List[dict], int, int]:
    """Rebuild a variable schedule from the submitted entries.

    The submitted list is the whole schedule afterwards: stored periods that are
    missing from it are dropped, unknown periods are appended.
    """
    known = {inst["period"] for inst in stored}
    installments = []
    appended = updated = 0
    for entry in entries:
        if entry["period"] in known:
            updated += 1
        else:
            appended += 1
        installments.append(
            {
                "period": entry["period"],
                "date": entry["date"].isoformat(),
                "amount": entry["amount"],
                "status": entry["status"],
                "paidOn": _paid_on(entry["status"], entry.get("paid_on"), now),
            }
        )
    return installments, appended, updated


def daily_totals(loan, installments: List[dict], appended: int) -> dict:
    collected = paid_total(installments)
    remaining = loan.loan_amount - collected
    return {
        "collected_amount": collected,
        "remaining_amount": remaining,
        "total_profit": max(0, collected - loan.amount_given),
        "status": COMPLETED if remaining <= 0 else ACTIVE,
    }


def weekly_totals(loan, installments: List[dict], appended: int) -> dict:
    marked_paid = loan.collected_amount == loan.loan_amount
    if appended:
        # A new period reopens a completed loan.
        status = ACTIVE
    else:
        status = COMPLETED if marked_paid and all_paid(installments) else ACTIVE
    return {
        "profit_amount": loan.interest_amount + paid_total(installments),
        "status": status,
    }


def monthly_totals(loan, installments: List[dict], appended: int) -> dict:
    # Only mark-paid clears the remaining amount.
    marked_paid = loan.remaining_amount <= 0
    collected = paid_total(installments)
    if marked_paid:
        collected += loan.loan_amount
    return {
        "profit_amount": loan.interest_amount + paid_total(installments),
        "collected_amount": collected,
        "status": COMPLETED if marked_paid and all_paid(installments) else ACTIVE,
    }


def weekly_settlement(loan) -> dict:
    return {
        "collected_amount": loan.loan_amount,
        "remaining_amount": 0,
        "status": COMPLETED if all_paid(loan.installments) else ACTIVE,
    }


def monthly_settlement(loan) -> dict:
    return {
        "collected_amount": loan.collected_amount + loan.loan_amount,
        "remaining_amount": 0,
        "status": COMPLETED if all_paid(loan.installments) else ACTIVE,
    }


Schedule = Callable[[List[dict], List[dict], datetime], Tuple[List[dict], int, int]]
Totals = Callable[[object, List[dict], int], dict]


@dataclass(frozen=True)
class LedgerPolicy:
    """The knobs on which the three repayment plans differ."""

    plan: str
    allowed_statuses: Tuple[str, ...]
    schedule_growth: bool
    numbered: bool
    exact_phone_digits: bool
    profit_field: str
    opening: Callable[[dict], dict]
    merge: Schedule
    totals: Totals
    settlement: Optional[Callable[[object], dict]] = None
    installment_removal: bool = False

    @property
    def label(self) -> str:
        return self.plan.capitalize()


DAILY = LedgerPolicy(
    plan="daily",
    allowed_statuses=(PAID, PENDING),
    schedule_growth=False,
    numbered=True,
    exact_phone_digits=True,
    profit_field="total_profit",
    opening=daily_opening,
    merge=update_fixed_schedule,
    totals=daily_totals,
)

WEEKLY = LedgerPolicy(
    plan="weekly",
    allowed_statuses=(PAID, MISSED, PENDING),
    schedule_growth=True,
    numbered=False,
    exact_phone_digits=False,
    profit_field="profit_amount",
    opening=interest_opening,
    merge=replace_open_schedule,
    totals=weekly_totals,
    settlement=weekly_settlement,
)

MONTHLY = LedgerPolicy(
    plan="monthly",
    allowed_statuses=(PAID, MISSED, PENDING),
    schedule_growth=True,
    numbered=True,
    exact_phone_digits=False,
    profit_field="profit_amount",
    opening=interest_opening,
    merge=replace_open_schedule,
    totals=monthly_totals,
    settlement=monthly_settlement,
    installment_removal=True,
)

POLICIES: Dict[str, LedgerPolicy] = {policy.plan: policy for policy in (DAILY, WEEKLY, MONTHLY)}


def reconcile(policy: LedgerPolicy, loan, entries: List[dict], now: datetime) -> Tuple[dict, int, int]:
    """Merge ``entries`` into the loan's schedule and derive the new aggregates.

    Returns the field changes (installments included) plus the appended and
    updated counts.
    """
    installments, appended, updated = policy.merge(loan.installments, entries, now)
    changes = policy.totals(loan, installments, appended)
    changes["installments"] = installments
    return changes, appended, updated


def remove_installment(policy: LedgerPolicy, loan, period: int) -> Optional[dict]:
    """Drop one period and re-derive aggregates; None when the period is unknown."""
    installments = [inst for inst in loan.installments if inst["period"] != period]
    if len(installments) == len(loan.installments):
        return None
    changes = policy.totals(loan, installments, 0)
    changes["installments"] = installments
    return changes


def settle(policy: LedgerPolicy, loan) -> dict:
    if loan.status == COMPLETED:
        raise InvalidStateError("Loan is already marked as completed")
    return policy.settlement(loan)


def reconcile_message(policy: LedgerPolicy, appended: int, updated: int) -> str:
    if not policy.schedule_growth:
        return "Installments updated successfully"
    if appended and updated:
        return f"{appended} installments added, {updated} installments updated successfully"
    if appended:
        return f"{appended} installments added successfully"
    return f"{updated} installments updated successfully"
