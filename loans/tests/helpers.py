from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from loans.authentication import issue_access_token


class LedgerApiTestCase(TestCase):
    """Authenticated client plus shortcuts for creating loans of each plan."""

    def setUp(self):
        self.operator = get_user_model().objects.create_user(username="operator", password="s3cret-pass")
        self.client = APIClient()
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_access_token(self.operator)}")

    def create_loan(self, plan, payload, expected_status=201):
        resp = self.client.post(reverse(f"{plan}-list"), payload, format="json")
        self.assertEqual(resp.status_code, expected_status, resp.content)
        return resp.json()

    def create_daily_loan(self, **kwargs):
        payload = {
            "customerName": "Ravi Kumar",
            "phoneNumber": "9876543210",
            "amountGiven": 900,
            "expectedProfit": 100,
            "profitPercentage": 11.11,
            "totalLoanAmount": 1000,
            "numberOfDays": 10,
            "amountPerDay": 100,
            "issuingDate": "2024-01-01",
        }
        payload.update(kwargs)
        return self.create_loan("daily", payload)["data"]

    def create_monthly_loan(self, **kwargs):
        payload = {
            "customerName": "Asha Verma",
            "phoneNumber": "9123456780",
            "amountGiven": 11000,
            "totalLoanAmount": 12000,
            "interestAmount": 1000,
            "interestPercentage": 10,
            "issuingDate": "2024-01-01",
        }
        payload.update(kwargs)
        return self.create_loan("monthly", payload)["data"]

    def create_weekly_loan(self, **kwargs):
        payload = {
            "customerName": "Imran Shaikh",
            "phoneNumber": "9000011111",
            "amountGiven": 4500,
            "totalLoanAmount": 5000,
            "interestAmount": 500,
            "interestPercentage": 10,
            "issuingDate": "2024-01-01",
        }
        payload.update(kwargs)
        return self.create_loan("weekly", payload)["data"]

    def reconcile(self, plan, loan_id, installments, **extra):
        return self.client.patch(
            reverse(f"{plan}-installments", args=[loan_id]), {"installments": installments}, format="json", **extra
        )

    def fetch(self, plan, loan_id):
        resp = self.client.get(reverse(f"{plan}-detail", args=[loan_id]))
        self.assertEqual(resp.status_code, 200)
        return resp.json()["data"]
