# agency/finance.py
from datetime import datetime, timedelta
from decimal import Decimal

from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from .models import (
    BankAccount,
    CashAccount,
    ExpenseDetail,
    IncomeDetail,
    PaymentDetail,
    PurchaseDetail,
    ReceiptDetail,
    SaleDetail,
)


def safe_sum(queryset, field_name):
    """Sum a decimal column, 0.00 when the queryset is empty."""
    return queryset.aggregate(
        total=Coalesce(
            Sum(field_name), Value(Decimal("0.00")), output_field=DecimalField()
        )
    )["total"]


def resolve_period(period, date_from_str=None, date_to_str=None, today=None):
    """
    Turns a dashboard period keyword into a (date_from, date_to) pair.
    Unknown periods and unparsable custom dates fall back to this month.
    """
    today = today or timezone.localdate()
    start_of_month = today.replace(day=1)

    if period == "today":
        return today, today
    if period == "yesterday":
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if period == "this_week":
        return today - timedelta(days=today.weekday()), today  # Monday
    if period == "last_month":
        last_month_end = start_of_month - timedelta(days=1)
        return last_month_end.replace(day=1), last_month_end
    if period == "custom" and date_from_str and date_to_str:
        try:
            return (
                datetime.strptime(date_from_str, "%Y-%m-%d").date(),
                datetime.strptime(date_to_str, "%Y-%m-%d").date(),
            )
        except ValueError:
            pass
    return start_of_month, today


class FinanceStats:
    _safe_sum = staticmethod(safe_sum)

    # --- 1. CASH IN (Green Card) ---
    @staticmethod
    def get_cash_in(start_date=None, end_date=None):
        """Receipts from customers plus other incomes."""
        receipts = ReceiptDetail.objects.all()
        incomes = IncomeDetail.objects.all()

        if start_date and end_date:
            receipts = receipts.filter(receipt_date__range=[start_date, end_date])
            incomes = incomes.filter(income_date__range=[start_date, end_date])

        return FinanceStats._safe_sum(receipts, "amount") + FinanceStats._safe_sum(
            incomes, "amount"
        )

    # --- 2. CASH OUT (Red Card) ---
    @staticmethod
    def get_cash_out(start_date=None, end_date=None):
        """Supplier payments plus paid expenses."""
        payments = PaymentDetail.objects.all()
        expenses = ExpenseDetail.objects.filter(is_accrued=False)

        if start_date and end_date:
            payments = payments.filter(payment_date__range=[start_date, end_date])
            expenses = expenses.filter(expense_date__range=[start_date, end_date])

        return FinanceStats._safe_sum(payments, "amount") + FinanceStats._safe_sum(
            expenses, "amount"
        )

    # --- 3. NET CASH FLOW (White Card) ---
    @staticmethod
    def get_net_cash_flow(start_date=None, end_date=None):
        return FinanceStats.get_cash_in(start_date, end_date) - FinanceStats.get_cash_out(
            start_date, end_date
        )

    # --- 4. UNPAID LIABILITIES (Yellow Card) ---
    @staticmethod
    def get_unpaid_expenses():
        """Accrued expenses not yet paid out of any account (snapshot)."""
        return FinanceStats._safe_sum(
            ExpenseDetail.objects.filter(is_accrued=True), "amount"
        )

    # --- 5. ACCOUNTS ---
    @staticmethod
    def get_account_totals():
        bank = FinanceStats._safe_sum(
            BankAccount.objects.filter(is_active=True), "current_balance"
        )
        cash = FinanceStats._safe_sum(
            CashAccount.objects.filter(is_active=True), "current_balance"
        )
        return {"bank": bank, "cash": cash, "total": bank + cash}

    # --- EXTRA: Invoiced figures (For Profit Reports) ---
    @staticmethod
    def get_total_sales(start_date=None, end_date=None):
        qs = SaleDetail.objects.all()
        if start_date and end_date:
            qs = qs.filter(sale_date__range=[start_date, end_date])
        return FinanceStats._safe_sum(qs, "sale_price") + FinanceStats._safe_sum(
            qs, "gst_amount"
        )

    @staticmethod
    def get_total_purchases(start_date=None, end_date=None):
        qs = PurchaseDetail.objects.all()
        if start_date and end_date:
            qs = qs.filter(purchase_date__range=[start_date, end_date])
        return FinanceStats._safe_sum(qs, "price") + FinanceStats._safe_sum(
            qs, "gst_amount"
        )
