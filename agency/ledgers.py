# agency/ledgers.py
"""
Ledger pages: party summaries, statements and per-kind transaction lists.

Filters arrive as plain dicts (usually ``request.GET``) and every function
returns plain Python data so the same result feeds the HTML page, the JSON
API and the PDF / Excel exports.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal

from django.db.models import Q

from .finance import safe_sum
from .models import (
    Customer,
    ExpenseDetail,
    IncomeDetail,
    PaymentDetail,
    PurchaseDetail,
    PurchaseReturn,
    ReceiptDetail,
    SaleDetail,
    SaleReturn,
    Supplier,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


# --- FILTER HELPERS ---
def parse_date(value):
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_id(value):
    """Primary key from a query string value; None when blank or not a number."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _truthy(value):
    return str(value).lower() in ("1", "true", "yes", "on")


def payment_status(outstanding):
    if outstanding > 0:
        return "outstanding"
    if outstanding < 0:
        return "overpaid"
    return "paid"


def _party_queryset(model, filters, search_fields):
    qs = model.objects.all().order_by("name")

    name = filters.get("name")
    if name:
        qs = qs.filter(name__iexact=name)

    search = (filters.get("search") or "").strip()
    if search:
        condition = Q()
        for field in search_fields:
            condition |= Q(**{f"{field}__icontains": search})
        qs = qs.filter(condition)

    date_from = parse_date(filters.get("date_from"))
    date_to = parse_date(filters.get("date_to"))
    if date_from:
        qs = qs.filter(created_at__date__gte=date_from)
    if date_to:
        qs = qs.filter(created_at__date__lte=date_to)
    return qs


def _filter_summaries(rows, filters):
    status = filters.get("status")
    if status:
        rows = [row for row in rows if row["status"] == status]
    if _truthy(filters.get("outstanding_only", "")):
        rows = [row for row in rows if row["outstanding"] > 0]
    return rows


def _totals(rows, keys):
    return {key: sum((row[key] for row in rows), ZERO) for key in keys}


# --- SUPPLIERS ---
def supplier_balance(supplier):
    purchases = PurchaseDetail.objects.filter(supplier=supplier)
    total_purchases = safe_sum(purchases, "price") + safe_sum(purchases, "gst_amount")
    returns = PurchaseReturn.objects.filter(purchase__supplier=supplier)
    total_returns = safe_sum(returns, "amount") + safe_sum(returns, "gst_amount")
    total_payments = safe_sum(PaymentDetail.objects.filter(supplier=supplier), "amount")
    outstanding = total_purchases - total_returns - total_payments
    return {
        "id": supplier.pk,
        "name": supplier.name,
        "contact": supplier.contact,
        "email": supplier.email,
        "total_purchases": total_purchases,
        "total_returns": total_returns,
        "total_payments": total_payments,
        "outstanding": outstanding,
        "status": payment_status(outstanding),
    }


def supplier_summaries(filters=None):
    """Per-supplier purchases, returns, payments and outstanding, plus totals."""
    filters = filters or {}
    suppliers = _party_queryset(Supplier, filters, ["name", "contact", "email"])
    rows = _filter_summaries([supplier_balance(s) for s in suppliers], filters)
    totals = _totals(
        rows, ["total_purchases", "total_returns", "total_payments", "outstanding"]
    )
    return rows, totals


def supplier_statement(supplier):
    """Dated purchase / return / payment rows; balance is what we owe."""
    rows = []
    for purchase in supplier.purchases.all():
        rows.append(
            {
                "date": purchase.purchase_date,
                "kind": "Purchase",
                "description": purchase.description
                or f"Bill {purchase.bill_number or purchase.pk}",
                "reference": purchase.bill_number,
                "debit": purchase.total_amount,
                "credit": ZERO,
            }
        )
    for purchase_return in PurchaseReturn.objects.filter(purchase__supplier=supplier):
        rows.append(
            {
                "date": purchase_return.return_date,
                "kind": "Purchase Return",
                "description": purchase_return.reason or "Purchase return",
                "reference": purchase_return.reference,
                "debit": ZERO,
                "credit": purchase_return.total_amount,
            }
        )
    for payment in supplier.payments.all():
        rows.append(
            {
                "date": payment.payment_date,
                "kind": "Payment",
                "description": payment.note or f"Payment to {supplier.name}",
                "reference": payment.transaction_id or payment.method,
                "debit": ZERO,
                "credit": payment.amount,
            }
        )
    return _with_running_balance(rows)


# --- CUSTOMERS ---
def customer_balance(customer):
    sales = SaleDetail.objects.filter(customer=customer)
    total_sales = safe_sum(sales, "sale_price") + safe_sum(sales, "gst_amount")
    returns = SaleReturn.objects.filter(sale__customer=customer)
    total_returns = safe_sum(returns, "amount") + safe_sum(returns, "gst_amount")
    total_receipts = safe_sum(ReceiptDetail.objects.filter(customer=customer), "amount")
    outstanding = total_sales - total_returns - total_receipts
    return {
        "id": customer.pk,
        "name": customer.name,
        "contact": customer.contact,
        "email": customer.email,
        "total_sales": total_sales,
        "total_returns": total_returns,
        "total_receipts": total_receipts,
        "outstanding": outstanding,
        "status": payment_status(outstanding),
    }


def customer_summaries(filters=None):
    filters = filters or {}
    customers = _party_queryset(Customer, filters, ["name", "contact", "email"])
    rows = _filter_summaries([customer_balance(c) for c in customers], filters)
    totals = _totals(
        rows, ["total_sales", "total_returns", "total_receipts", "outstanding"]
    )
    return rows, totals


def customer_statement(customer):
    """Dated sale / return / receipt rows; balance is what the customer owes."""
    rows = []
    for sale in customer.sales.all():
        rows.append(
            {
                "date": sale.sale_date,
                "kind": "Sale",
                "description": sale.description
                or f"Invoice {sale.invoice_number or sale.pk}",
                "reference": sale.invoice_number,
                "debit": sale.total_amount,
                "credit": ZERO,
            }
        )
    for sale_return in SaleReturn.objects.filter(sale__customer=customer):
        rows.append(
            {
                "date": sale_return.return_date,
                "kind": "Sale Return",
                "description": sale_return.reason or "Sale return",
                "reference": sale_return.reference,
                "debit": ZERO,
                "credit": sale_return.total_amount,
            }
        )
    for receipt in customer.receipts.all():
        rows.append(
            {
                "date": receipt.receipt_date,
                "kind": "Receipt",
                "description": receipt.note or f"Receipt from {customer.name}",
                "reference": receipt.reference,
                "debit": ZERO,
                "credit": receipt.amount,
            }
        )
    return _with_running_balance(rows)


def _with_running_balance(rows):
    rows.sort(key=lambda row: row["date"])
    balance = ZERO
    for row in rows:
        balance += row["debit"] - row["credit"]
        row["balance"] = balance
    return rows


# --- TRANSACTION LEDGERS ---
def _account_label(record):
    account = record.account
    return account.account_name if account else ""


def _query_label(record):
    query = record.tour_package_query
    return str(query) if query else ""


def _sale_row(sale):
    return {
        "id": sale.pk,
        "date": sale.sale_date,
        "party": sale.customer.name if sale.customer else "",
        "category": sale.customer.name if sale.customer else "",
        "account": "",
        "query": _query_label(sale),
        "description": sale.description,
        "reference": sale.invoice_number,
        "amount": sale.total_amount,
    }


def _purchase_row(purchase):
    return {
        "id": purchase.pk,
        "date": purchase.purchase_date,
        "party": purchase.supplier.name if purchase.supplier else "",
        "category": purchase.supplier.name if purchase.supplier else "",
        "account": "",
        "query": _query_label(purchase),
        "description": purchase.description,
        "reference": purchase.bill_number,
        "amount": purchase.total_amount,
    }


def _receipt_row(receipt):
    return {
        "id": receipt.pk,
        "date": receipt.receipt_date,
        "party": receipt.customer.name if receipt.customer else "",
        "category": receipt.customer.name if receipt.customer else "",
        "account": _account_label(receipt),
        "query": _query_label(receipt),
        "description": receipt.note,
        "reference": receipt.reference,
        "amount": receipt.amount,
    }


def _payment_row(payment):
    return {
        "id": payment.pk,
        "date": payment.payment_date,
        "party": payment.supplier.name if payment.supplier else "",
        "category": payment.supplier.name if payment.supplier else "",
        "account": _account_label(payment),
        "query": _query_label(payment),
        "description": payment.note,
        "reference": payment.transaction_id or payment.method,
        "amount": payment.amount,
    }


def _expense_row(expense):
    return {
        "id": expense.pk,
        "date": expense.expense_date,
        "party": "",
        "category": expense.expense_category.name if expense.expense_category else "",
        "account": _account_label(expense) or ("Accrued" if expense.is_accrued else ""),
        "query": _query_label(expense),
        "description": expense.description,
        "reference": "",
        "amount": expense.amount,
    }


def _income_row(income):
    return {
        "id": income.pk,
        "date": income.income_date,
        "party": "",
        "category": income.income_category.name if income.income_category else "",
        "account": _account_label(income),
        "query": _query_label(income),
        "description": income.description,
        "reference": "",
        "amount": income.amount,
    }


LEDGERS = {
    "sales": {
        "model": SaleDetail,
        "date_field": "sale_date",
        "party_field": "customer",
        "category_field": None,
        "amount_fields": ("sale_price", "gst_amount"),
        "search_fields": ("description", "invoice_number", "customer__name"),
        "related": ("customer", "tour_package_query"),
        "row": _sale_row,
    },
    "purchases": {
        "model": PurchaseDetail,
        "date_field": "purchase_date",
        "party_field": "supplier",
        "category_field": None,
        "amount_fields": ("price", "gst_amount"),
        "search_fields": ("description", "bill_number", "supplier__name"),
        "related": ("supplier", "tour_package_query"),
        "row": _purchase_row,
    },
    "receipts": {
        "model": ReceiptDetail,
        "date_field": "receipt_date",
        "party_field": "customer",
        "category_field": None,
        "amount_fields": ("amount",),
        "search_fields": ("note", "reference", "customer__name"),
        "related": ("customer", "tour_package_query", "bank_account", "cash_account"),
        "row": _receipt_row,
    },
    "payments": {
        "model": PaymentDetail,
        "date_field": "payment_date",
        "party_field": "supplier",
        "category_field": None,
        "amount_fields": ("amount",),
        "search_fields": ("note", "transaction_id", "supplier__name"),
        "related": ("supplier", "tour_package_query", "bank_account", "cash_account"),
        "row": _payment_row,
    },
    "expenses": {
        "model": ExpenseDetail,
        "date_field": "expense_date",
        "party_field": None,
        "category_field": "expense_category",
        "amount_fields": ("amount",),
        "search_fields": ("description", "expense_category__name"),
        "related": (
            "expense_category",
            "tour_package_query",
            "bank_account",
            "cash_account",
        ),
        "row": _expense_row,
    },
    "incomes": {
        "model": IncomeDetail,
        "date_field": "income_date",
        "party_field": None,
        "category_field": "income_category",
        "amount_fields": ("amount",),
        "search_fields": ("description", "income_category__name"),
        "related": (
            "income_category",
            "tour_package_query",
            "bank_account",
            "cash_account",
        ),
        "row": _income_row,
    },
}

LEDGER_COLUMNS = [
    ("date", "Date"),
    ("party", "Party"),
    ("category", "Category"),
    ("account", "Account"),
    ("query", "Tour Package Query"),
    ("description", "Description"),
    ("reference", "Reference"),
    ("amount", "Amount"),
]


def ledger_queryset(kind, filters=None):
    """Filtered queryset for one ledger kind. Raises KeyError on unknown kind."""
    config = LEDGERS[kind]
    filters = filters or {}
    date_field = config["date_field"]

    qs = config["model"].objects.select_related(*config["related"]).order_by(
        f"-{date_field}", "-id"
    )

    date_from = parse_date(filters.get("date_from"))
    date_to = parse_date(filters.get("date_to"))
    if date_from:
        qs = qs.filter(**{f"{date_field}__gte": date_from})
    if date_to:
        qs = qs.filter(**{f"{date_field}__lte": date_to})

    category = parse_id(filters.get("category"))
    if category is not None and config["category_field"]:
        qs = qs.filter(**{f"{config['category_field']}_id": category})

    party = parse_id(filters.get("party"))
    if party is not None and config["party_field"]:
        qs = qs.filter(**{f"{config['party_field']}_id": party})

    query = parse_id(filters.get("query"))
    if query is not None:
        qs = qs.filter(tour_package_query_id=query)

    account = filters.get("account")
    if account and hasattr(config["model"], "bank_account"):
        # "bank:3" / "cash:1"
        account_kind, _sep, account_id = str(account).partition(":")
        account_id = parse_id(account_id)
        if account_kind in ("bank", "cash") and account_id is not None:
            qs = qs.filter(**{f"{account_kind}_account_id": account_id})

    search = (filters.get("search") or "").strip()
    if search:
        condition = Q()
        for field in config["search_fields"]:
            condition |= Q(**{f"{field}__icontains": search})
        qs = qs.filter(condition)

    return qs


def transaction_ledger(kind, filters=None):
    """
    Rows, total and per-category totals for a ledger kind.
    Kinds without categories group their totals by party.
    """
    config = LEDGERS[kind]
    qs = ledger_queryset(kind, filters)

    total = sum((safe_sum(qs, field) for field in config["amount_fields"]), ZERO)
    rows = [config["row"](record) for record in qs]

    category_totals = OrderedDict()
    for row in rows:
        key = row["category"] or "Uncategorized"
        category_totals[key] = category_totals.get(key, ZERO) + row["amount"]

    logger.debug("Ledger %s: %s rows, total %s", kind, len(rows), total)
    return {
        "kind": kind,
        "rows": rows,
        "total": total,
        "category_totals": category_totals,
    }


# --- PER QUERY ---
def query_financial_summary(query):
    """Money picture of a single tour package query."""
    sales = query.sales.all()
    purchases = query.purchases.all()
    sale_returns = SaleReturn.objects.filter(sale__tour_package_query=query)
    purchase_returns = PurchaseReturn.objects.filter(
        purchase__tour_package_query=query
    )

    total_sales = safe_sum(sales, "sale_price") + safe_sum(sales, "gst_amount")
    total_sale_returns = safe_sum(sale_returns, "amount") + safe_sum(
        sale_returns, "gst_amount"
    )
    total_purchases = safe_sum(purchases, "price") + safe_sum(purchases, "gst_amount")
    total_purchase_returns = safe_sum(purchase_returns, "amount") + safe_sum(
        purchase_returns, "gst_amount"
    )
    total_receipts = safe_sum(query.receipts.all(), "amount")
    total_payments = safe_sum(query.payments.all(), "amount")
    total_expenses = safe_sum(query.expenses.all(), "amount")
    total_incomes = safe_sum(query.incomes.all(), "amount")

    net_sales = total_sales - total_sale_returns
    net_purchases = total_purchases - total_purchase_returns
    gross_profit = net_sales - net_purchases

    return {
        "total_sales": total_sales,
        "total_sale_returns": total_sale_returns,
        "total_purchases": total_purchases,
        "total_purchase_returns": total_purchase_returns,
        "total_receipts": total_receipts,
        "total_payments": total_payments,
        "total_expenses": total_expenses,
        "total_incomes": total_incomes,
        "gross_profit": gross_profit,
        "net_profit": gross_profit - total_expenses + total_incomes,
        "customer_balance": net_sales - total_receipts,
        "supplier_balance": net_purchases - total_payments,
    }


# --- REPORTS (HTML / PDF / EXCEL) ---
SUPPLIER_COLUMNS = [
    ("name", "Supplier"),
    ("contact", "Contact"),
    ("total_purchases", "Purchases"),
    ("total_returns", "Returns"),
    ("total_payments", "Payments"),
    ("outstanding", "Outstanding"),
    ("status", "Status"),
]

CUSTOMER_COLUMNS = [
    ("name", "Customer"),
    ("contact", "Contact"),
    ("total_sales", "Sales"),
    ("total_returns", "Returns"),
    ("total_receipts", "Receipts"),
    ("outstanding", "Outstanding"),
    ("status", "Status"),
]

PARTY_LEDGERS = {
    "suppliers": ("Supplier Ledger", SUPPLIER_COLUMNS, supplier_summaries),
    "customers": ("Customer Ledger", CUSTOMER_COLUMNS, customer_summaries),
}

REPORT_KINDS = list(LEDGERS) + list(PARTY_LEDGERS)


def ledger_report(kind, filters=None):
    """
    Same shape for every ledger kind: title, columns, rows, totals.
    Raises KeyError on unknown kind.
    """
    if kind in PARTY_LEDGERS:
        title, columns, summarize = PARTY_LEDGERS[kind]
        rows, totals = summarize(filters)
        return {
            "kind": kind,
            "title": title,
            "columns": columns,
            "rows": rows,
            "totals": totals,
            "category_totals": OrderedDict(),
        }

    ledger = transaction_ledger(kind, filters)
    return {
        "kind": kind,
        "title": f"{kind.title()} Ledger",
        "columns": LEDGER_COLUMNS,
        "rows": ledger["rows"],
        "totals": {"amount": ledger["total"]},
        "category_totals": ledger["category_totals"],
    }


STATEMENT_COLUMNS = [
    ("date", "Date"),
    ("kind", "Type"),
    ("description", "Description"),
    ("reference", "Reference"),
    ("debit", "Debit"),
    ("credit", "Credit"),
    ("balance", "Balance"),
]

PARTY_STATEMENTS = {
    "suppliers": (Supplier, supplier_statement),
    "customers": (Customer, customer_statement),
}


def statement_report(kind, party):
    """One supplier's or customer's statement, shaped like ledger_report."""
    _model, build = PARTY_STATEMENTS[kind]
    rows = build(party)
    totals = _totals(rows, ("debit", "credit"))
    totals["balance"] = rows[-1]["balance"] if rows else ZERO
    return {
        "kind": kind,
        "title": f"{party.name} Statement",
        "columns": STATEMENT_COLUMNS,
        "rows": rows,
        "totals": totals,
        "category_totals": OrderedDict(),
    }
