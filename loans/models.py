import secrets

from django.db import models


def new_document_id() -> str:
    return secrets.token_hex(12)


class Loan(models.Model):
    STATUS_CHOICES = [("active", "Active"), ("completed", "Completed")]

    id = models.CharField(primary_key=True, max_length=24, default=new_document_id, editable=False)
    customer_name = models.CharField(max_length=200)
    phone_number = models.CharField(max_length=30, null=True, blank=True)
    loan_amount = models.IntegerField()
    amount_given = models.IntegerField()
    issuing_date = models.DateField()
    collected_amount = models.IntegerField(default=0)
    remaining_amount = models.IntegerField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="active")
    installments = models.JSONField(default=list, blank=True)
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.id} - {self.customer_name}"


class DailyLoan(Loan):
    loan_number = models.PositiveIntegerField(unique=True)
    expected_profit = models.IntegerField()
    profit_percentage = models.DecimalField(max_digits=7, decimal_places=2)
    number_of_days = models.PositiveIntegerField()
    amount_per_day = models.IntegerField()
    total_profit = models.IntegerField(default=0)

    def __str__(self) -> str:
        return f"daily #{self.loan_number} - {self.customer_name}"


class WeeklyLoan(Loan):
    interest_amount = models.IntegerField()
    interest_percentage = models.DecimalField(max_digits=7, decimal_places=2)
    installment_period_in_days = models.PositiveSmallIntegerField(default=7, help_text="Nominal days between installments")
    profit_amount = models.IntegerField()


class MonthlyLoan(Loan):
    loan_number = models.PositiveIntegerField(unique=True)
    interest_amount = models.IntegerField()
    interest_percentage = models.DecimalField(max_digits=7, decimal_places=2)
    profit_amount = models.IntegerField()

    def __str__(self) -> str:
        return f"monthly #{self.loan_number} - {self.customer_name}"


class LoanSequence(models.Model):
    # Lock row only: numbers come from the highest stored loan number.
    plan = models.CharField(max_length=10, unique=True)

    def __str__(self) -> str:
        return self.plan
