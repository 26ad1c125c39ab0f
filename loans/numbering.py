from django.db import transaction

from .models import LoanSequence


def next_loan_number(plan: str, model) -> int:
    """Return 1 + the highest loan number issued for ``plan`` (1 for an empty ledger).

    The plan's sequence row is locked for the rest of the surrounding
    transaction, so two creations for the same plan cannot read the same maximum.
    Call it inside the transaction that persists the loan.
    """
    with transaction.atomic():
        LoanSequence.objects.select_for_update().get_or_create(plan=plan)
        last = model.objects.order_by("-loan_number").values_list("loan_number", flat=True).first()
    return (last + 1) if last is not None else 1
