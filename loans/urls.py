from django.urls import path

from .ledger import POLICIES
from .views import (
    DashboardView,
    InstallmentDetailView,
    InstallmentsView,
    LoanDetailView,
    LoanListView,
    LoginView,
    MarkPaidView,
)


def ledger_urlpatterns(policy):
    plan = policy.plan
    patterns = [
        path(f"{plan}", LoanListView.as_view(plan=plan), name=f"{plan}-list"),
        path(f"{plan}/<str:loan_id>", LoanDetailView.as_view(plan=plan), name=f"{plan}-detail"),
        path(f"{plan}/<str:loan_id>/installments", InstallmentsView.as_view(plan=plan), name=f"{plan}-installments"),
    ]
    if policy.settlement is not None:
        patterns.append(path(f"{plan}/<str:loan_id>/mark-paid", MarkPaidView.as_view(plan=plan), name=f"{plan}-mark-paid"))
    if policy.installment_removal:
        patterns.append(
            path(
                f"{plan}/<str:loan_id>/installments/<int:period>",
                InstallmentDetailView.as_view(plan=plan),
                name=f"{plan}-installment-detail",
            )
        )
    return patterns


urlpatterns = [
    path("users/login", LoginView.as_view(), name="login"),
    path("users/dashboard", DashboardView.as_view(), name="dashboard"),
]
for _policy in POLICIES.values():
    urlpatterns += ledger_urlpatterns(_policy)
