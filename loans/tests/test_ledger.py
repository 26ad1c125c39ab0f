from datetime import date, datetime, timezone
from types import SimpleNamespace

from django.test import SimpleTestCase

from loans import ledger
from loans.exceptions import InvalidStateError

NOW = datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc)


def installment(period, status="pending", amount=100):
    return {
        "period": period,
        "date": f"2024-01-{period + 1:02d}",
        "amount": amount,
        "status": status,
        "paidOn": "2024-01-15T00:00:00+00:00" if status == "paid" else None,
    }


def interest_loan(**kwargs):
    fields = {
        "loan_amount": 12000,
        "amount_given": 11000,
        "interest_amount": 1000,
        "collected_amount": 0,
        "remaining_amount": 12000,
        "status": "active",
        "installments": [],
    }
    fields.update(kwargs)
    return SimpleNamespace(**fields)


class ScheduleTests(SimpleTestCase):
    def test_daily_schedule(self):
        schedule = ledger.build_daily_schedule(date(2024, 2, 28), 3, 250)
        self.assertEqual([i["date"] for i in schedule], ["2024-02-29", "2024-03-01", "2024-03-02"])
        self.assertEqual({i["amount"] for i in schedule}, {250})
        self.assertEqual({i["status"] for i in schedule}, {"pending"})

    def test_daily_opening(self):
        opening = ledger.daily_opening(
            {"issuing_date": date(2024, 1, 1), "number_of_days": 4, "amount_per_day": 250, "loan_amount": 1000}
        )
        self.assertEqual(len(opening["installments"]), 4)
        self.assertEqual(opening["remaining_amount"], 1000)
        self.assertEqual(opening["status"], "active")

    def test_interest_opening(self):
        opening = ledger.interest_opening({"interest_amount": 700, "loan_amount": 5000})
        self.assertEqual(opening["installments"], [])
        self.assertEqual(opening["profit_amount"], 700)
        self.assertEqual(opening["remaining_amount"], 5000)

    def test_fixed_schedule_update_does_not_touch_the_stored_list(self):
        stored = [installment(1), installment(2, "paid")]
        result, appended, updated = ledger.update_fixed_schedule(
            stored, [{"period": 1, "status": "paid"}, {"period": 2, "status": "pending"}, {"period": 7, "status": "paid"}], NOW
        )
        self.assertEqual((appended, updated), (0, 2))
        self.assertEqual(result[0]["paidOn"], NOW.isoformat())
        self.assertIsNone(result[1]["paidOn"])
        self.assertEqual(stored[0]["status"], "pending")
        self.assertEqual(len(result), 2)

    def test_open_schedule_counts_new_and_existing_periods(self):
        paid_on = datetime(2024, 1, 20, tzinfo=timezone.utc)
        result, appended, updated = ledger.replace_open_schedule(
            [installment(1), installment(2)],
            [
                {"period": 2, "status": "paid", "date": date(2024, 2, 1), "amount": 300, "paid_on": paid_on},
                {"period": 3, "status": "missed", "date": date(2024, 3, 1), "amount": 300},
            ],
            NOW,
        )
        self.assertEqual((appended, updated), (1, 1))
        self.assertEqual([i["period"] for i in result], [2, 3])
        self.assertEqual(result[0]["paidOn"], paid_on.isoformat())
        self.assertEqual(result[0]["date"], "2024-02-01")
        self.assertIsNone(result[1]["paidOn"])


class TotalsTests(SimpleTestCase):
    def test_daily_totals(self):
        loan = SimpleNamespace(loan_amount=1000, amount_given=900)
        totals = ledger.daily_totals(loan, [installment(1, "paid", 600), installment(2, "paid", 500)], 0)
        self.assertEqual(
            totals,
            {"collected_amount": 1100, "remaining_amount": -100, "total_profit": 200, "status": "completed"},
        )
        totals = ledger.daily_totals(loan, [installment(1, "paid", 600), installment(2)], 0)
        self.assertEqual(totals["total_profit"], 0)
        self.assertEqual(totals["status"], "active")

    def test_monthly_totals_before_and_after_settlement(self):
        schedule = [installment(1, "paid", 1000)]
        totals = ledger.monthly_totals(interest_loan(), schedule, 1)
        self.assertEqual(totals, {"profit_amount": 2000, "collected_amount": 1000, "status": "active"})

        settled = interest_loan(collected_amount=13000, remaining_amount=0)
        totals = ledger.monthly_totals(settled, schedule, 0)
        self.assertEqual(totals, {"profit_amount": 2000, "collected_amount": 13000, "status": "completed"})
        self.assertNotIn("remaining_amount", totals)

    def test_monthly_collections_alone_never_settle(self):
        schedule = [installment(1, "paid", 12000)]
        loan = interest_loan(collected_amount=12000, installments=schedule)
        totals = ledger.monthly_totals(loan, schedule, 0)
        self.assertEqual(totals["collected_amount"], 12000)
        self.assertEqual(totals["status"], "active")

    def test_weekly_new_period_keeps_loan_active(self):
        settled = interest_loan(collected_amount=12000, remaining_amount=0)
        schedule = [installment(1, "paid", 500)]
        self.assertEqual(ledger.weekly_totals(settled, schedule, 1)["status"], "active")
        self.assertEqual(ledger.weekly_totals(settled, schedule, 0)["status"], "completed")
        self.assertEqual(ledger.weekly_totals(interest_loan(), schedule, 0)["status"], "active")
        self.assertEqual(ledger.weekly_totals(settled, schedule, 0)["profit_amount"], 1500)

    def test_settlement(self):
        loan = interest_loan(collected_amount=1000, installments=[installment(1, "paid", 1000)])
        self.assertEqual(
            ledger.settle(ledger.MONTHLY, loan),
            {"collected_amount": 13000, "remaining_amount": 0, "status": "completed"},
        )
        self.assertEqual(
            ledger.settle(ledger.WEEKLY, loan),
            {"collected_amount": 12000, "remaining_amount": 0, "status": "completed"},
        )
        open_loan = interest_loan(installments=[installment(1)])
        self.assertEqual(ledger.settle(ledger.WEEKLY, open_loan)["status"], "active")

    def test_settling_a_completed_loan(self):
        with self.assertRaises(InvalidStateError):
            ledger.settle(ledger.WEEKLY, interest_loan(status="completed"))


class ReconcileTests(SimpleTestCase):
    def test_reconcile_returns_installments_with_totals(self):
        loan = SimpleNamespace(
            loan_amount=300, amount_given=250, installments=[installment(1), installment(2), installment(3)]
        )
        changes, appended, updated = ledger.reconcile(
            ledger.DAILY, loan, [{"period": p, "status": "paid"} for p in (1, 2, 3)], NOW
        )
        self.assertEqual((appended, updated), (0, 3))
        self.assertEqual(changes["collected_amount"], 300)
        self.assertEqual(changes["status"], "completed")
        self.assertEqual(len(changes["installments"]), 3)

    def test_remove_installment(self):
        loan = interest_loan(installments=[installment(1, "paid", 1000), installment(2, amount=1000)])
        changes = ledger.remove_installment(ledger.MONTHLY, loan, 2)
        self.assertEqual([i["period"] for i in changes["installments"]], [1])
        self.assertEqual(changes["profit_amount"], 2000)
        self.assertIsNone(ledger.remove_installment(ledger.MONTHLY, loan, 9))

    def test_messages(self):
        self.assertEqual(ledger.reconcile_message(ledger.DAILY, 0, 4), "Installments updated successfully")
        self.assertEqual(
            ledger.reconcile_message(ledger.MONTHLY, 2, 1), "2 installments added, 1 installments updated successfully"
        )
        self.assertEqual(ledger.reconcile_message(ledger.WEEKLY, 1, 0), "1 installments added successfully")
        self.assertEqual(ledger.reconcile_message(ledger.WEEKLY, 0, 3), "3 installments updated successfully")

    def test_policies(self):
        self.assertEqual(set(ledger.POLICIES), {"daily", "weekly", "monthly"})
        self.assertNotIn("missed", ledger.DAILY.allowed_statuses)
        self.assertFalse(ledger.WEEKLY.numbered)
        self.assertIsNone(ledger.DAILY.settlement)
        self.assertTrue(ledger.MONTHLY.installment_removal)
