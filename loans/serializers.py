import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from rest_framework import ISO_8601, serializers

from .ledger import DAILY, MONTHLY, WEEKLY
from .models import DailyLoan, MonthlyLoan, WeeklyLoan

# Clients built on JavaScript dates send midnight timestamps for calendar dates.
DATE_INPUT_FORMATS = [ISO_8601, "%Y-%m-%dT%H:%M:%S.%fZ", "%Y-%m-%dT%H:%M:%SZ"]


def camelize(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class PercentageField(serializers.DecimalField):
    """Accepts any precision and rounds to the two places a loan stores."""

    def __init__(self, **kwargs):
        kwargs.setdefault("max_value", Decimal("99999.99"))
        super().__init__(max_digits=None, decimal_places=None, **kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        except InvalidOperation:
            self.fail("invalid")


class LoanSerializer(serializers.ModelSerializer):
    """Renders a loan document with the camelCase keys the API speaks."""

    def to_representation(self, instance):
        data = super().to_representation(instance)
        return {camelize(key): value for key, value in data.items()}


COMMON_FIELDS = [
    "id", "customer_name", "phone_number", "loan_amount", "amount_given", "issuing_date",
    "collected_amount", "remaining_amount", "status", "installments", "version", "created_at", "updated_at",
]


class DailyLoanSerializer(LoanSerializer):
    class Meta:
        model = DailyLoan
        fields = ["loan_number"] + COMMON_FIELDS + [
            "expected_profit", "profit_percentage", "number_of_days", "amount_per_day", "total_profit",
        ]


class WeeklyLoanSerializer(LoanSerializer):
    class Meta:
        model = WeeklyLoan
        fields = COMMON_FIELDS + ["interest_amount", "interest_percentage", "installment_period_in_days", "profit_amount"]


class MonthlyLoanSerializer(LoanSerializer):
    class Meta:
        model = MonthlyLoan
        fields = ["loan_number"] + COMMON_FIELDS + ["interest_amount", "interest_percentage", "profit_amount"]


class CreateLoanSerializer(serializers.Serializer):
    exact_phone_digits = False

    customerName = serializers.CharField(source="customer_name", max_length=200)
    phoneNumber = serializers.CharField(source="phone_number", max_length=30, required=False, allow_blank=True, allow_null=True)
    amountGiven = serializers.IntegerField(source="amount_given", min_value=1)
    totalLoanAmount = serializers.IntegerField(source="loan_amount", min_value=1)
    issuingDate = serializers.DateField(source="issuing_date", input_formats=DATE_INPUT_FORMATS)

    def validate_phoneNumber(self, value):
        if not value or not value.strip():
            return None
        if self.exact_phone_digits:
            if len(re.sub(r"\D", "", value)) != 10:
                raise serializers.ValidationError("Phone number must be exactly 10 digits")
        elif len(value) < 10:
            raise serializers.ValidationError("Phone number must be at least 10 digits")
        return value


class CreateDailyLoanSerializer(CreateLoanSerializer):
    exact_phone_digits = True

    expectedProfit = serializers.IntegerField(source="expected_profit", min_value=1)
    profitPercentage = PercentageField(source="profit_percentage")
    numberOfDays = serializers.IntegerField(source="number_of_days", min_value=1, max_value=3650)
    amountPerDay = serializers.IntegerField(source="amount_per_day", min_value=1)

    def validate_profitPercentage(self, value):
        if value <= 0:
            raise serializers.ValidationError("Ensure this value is greater than 0.")
        return value


class CreateInterestLoanSerializer(CreateLoanSerializer):
    interestAmount = serializers.IntegerField(source="interest_amount", min_value=0)
    interestPercentage = PercentageField(source="interest_percentage", min_value=Decimal("0"))


class CreateWeeklyLoanSerializer(CreateInterestLoanSerializer):
    installmentPeriodInDays = serializers.IntegerField(
        source="installment_period_in_days", min_value=1, max_value=365, default=7
    )


class CreateMonthlyLoanSerializer(CreateInterestLoanSerializer):
    pass


class InstallmentEntrySerializer(serializers.Serializer):
    period = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=DAILY.allowed_statuses)
    paidOn = serializers.DateTimeField(source="paid_on", required=False, allow_null=True)


class ScheduleEntrySerializer(InstallmentEntrySerializer):
    status = serializers.ChoiceField(choices=WEEKLY.allowed_statuses)
    date = serializers.DateField(input_formats=DATE_INPUT_FORMATS)
    amount = serializers.IntegerField(min_value=1)


class ReconcileSerializer(serializers.Serializer):
    def validate_installments(self, value):
        periods = [entry["period"] for entry in value]
        duplicates = sorted({period for period in periods if periods.count(period) > 1})
        if duplicates:
            raise serializers.ValidationError(f"Duplicate installment period {duplicates[0]}")
        return value


class DailyReconcileSerializer(ReconcileSerializer):
    installments = InstallmentEntrySerializer(many=True, allow_empty=True)


class ScheduleReconcileSerializer(ReconcileSerializer):
    installments = ScheduleEntrySerializer(many=True, allow_empty=False)


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(trim_whitespace=False)


SERIALIZERS = {
    DAILY.plan: (CreateDailyLoanSerializer, DailyLoanSerializer, DailyReconcileSerializer),
    WEEKLY.plan: (CreateWeeklyLoanSerializer, WeeklyLoanSerializer, ScheduleReconcileSerializer),
    MONTHLY.plan: (CreateMonthlyLoanSerializer, MonthlyLoanSerializer, ScheduleReconcileSerializer),
}
