import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.views import APIView

from .authentication import ACCESS_TOKEN_COOKIE, AuthError, JWTAuthentication, issue_access_token
from .exceptions import NotFoundError, ValidationError
from .responses import api_response
from .serializers import SERIALIZERS, LoginSerializer
from .services import dashboard_totals, get_ledger

logger = logging.getLogger(__name__)


def _expected_version(request):
    """Version named by an ``If-Match`` header, or None when the client sent none."""
    value = request.headers.get("If-Match")
    if not value:
        return None
    value = value.strip()
    if value.startswith("W/"):
        value = value[2:]
    try:
        return int(value.strip('"'))
    except ValueError:
        raise ValidationError("If-Match must carry a loan version")


class LedgerView(APIView):
    plan = None

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.ledger = get_ledger(self.plan)
        self.create_serializer_class, self.loan_serializer_class, self.reconcile_serializer_class = SERIALIZERS[self.plan]

    def render_loan(self, loan, message, status_code=status.HTTP_200_OK):
        return api_response(self.loan_serializer_class(loan).data, message, status_code, etag=loan.version)


class LoanListView(LedgerView):
    def get(self, request):
        loans = self.ledger.list()
        if not loans:
            return api_response([], f"No {self.plan} loans found")
        data = self.loan_serializer_class(loans, many=True).data
        return api_response(data, f"{len(loans)} {self.plan} loans retrieved successfully")

    def post(self, request):
        serializer = self.create_serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        loan = self.ledger.create(serializer.validated_data)
        return self.render_loan(loan, f"{self.ledger.policy.label} loan created successfully", status.HTTP_201_CREATED)


class LoanDetailView(LedgerView):
    def get(self, request, loan_id: str):
        loan = self.ledger.get(loan_id)
        return self.render_loan(loan, f"{self.ledger.policy.label} loan retrieved successfully")

    def delete(self, request, loan_id: str):
        loan = self.ledger.delete(loan_id)
        return api_response(
            {"deletedLoan": self.loan_serializer_class(loan).data},
            f"{self.ledger.policy.label} loan deleted successfully",
        )


class InstallmentsView(LedgerView):
    def patch(self, request, loan_id: str):
        serializer = self.reconcile_serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        loan, message = self.ledger.reconcile(
            loan_id, serializer.validated_data["installments"], _expected_version(request)
        )
        return self.render_loan(loan, message)


class InstallmentDetailView(LedgerView):
    def delete(self, request, loan_id: str, period: int):
        loan = self.ledger.remove_installment(loan_id, period, _expected_version(request))
        return self.render_loan(loan, f"Installment period {period} deleted successfully")


class MarkPaidView(LedgerView):
    def patch(self, request, loan_id: str):
        loan = self.ledger.mark_paid(loan_id, _expected_version(request))
        return self.render_loan(loan, f"{self.ledger.policy.label} loan marked as paid successfully")


class LoginView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    def get_authenticate_header(self, request):
        return JWTAuthentication.keyword

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            raise ValidationError("Username and password are required")
        data = serializer.validated_data

        user = get_user_model().objects.filter(username=data["username"]).first()
        if user is None:
            raise NotFoundError("User not found")
        if not user.is_active or not user.check_password(data["password"]):
            logger.warning("Failed login for %s", data["username"])
            raise AuthError("Invalid credentials")

        access_token = issue_access_token(user)
        logger.info("Operator %s logged in", user.username)
        response = api_response(
            {"user": {"id": user.pk, "username": user.username}, "accessToken": access_token},
            "User logged in successfully",
        )
        response.set_cookie(
            ACCESS_TOKEN_COOKIE,
            access_token,
            max_age=settings.JWT_EXPIRY_HOURS * 3600,
            httponly=True,
            secure=True,
            samesite="Strict",
        )
        return response


class DashboardView(APIView):
    def get(self, request):
        return api_response(dashboard_totals(), "Dashboard data retrieved successfully")
