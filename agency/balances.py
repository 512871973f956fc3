# agency/balances.py
"""
Account balances.

A bank or cash account's current balance is always derived from its opening
balance and the money records pointing at it:

    opening + receipts + incomes + transfers in
            - payments - paid expenses - transfers out

Nothing is updated incrementally; every change triggers a full recalculation.
"""

import logging
from collections import namedtuple
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction

from .exceptions import AccountNotFound
from .finance import safe_sum
from .models import (
    BankAccount,
    CashAccount,
    ExpenseDetail,
    IncomeDetail,
    PaymentDetail,
    ReceiptDetail,
    Transfer,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
PRICE_PLACES = Decimal("0.0001")

BookEntry = namedtuple(
    "BookEntry",
    ["id", "date", "kind", "description", "inflow", "outflow", "balance", "reference"],
)

LineTotals = namedtuple("LineTotals", ["items", "subtotal", "total_tax", "grand_total"])


# --- ACCOUNT LOOKUP ---
def _account_field(account):
    """FK name used by money records for this kind of account."""
    if isinstance(account, BankAccount):
        return "bank_account"
    if isinstance(account, CashAccount):
        return "cash_account"
    raise TypeError(f"Not a money account: {account!r}")


def get_account(kind, account_id):
    model = {"bank": BankAccount, "cash": CashAccount}[kind]
    try:
        return model.objects.get(pk=account_id)
    except (model.DoesNotExist, ValueError):
        raise AccountNotFound(kind, account_id) from None


# --- RECALCULATION ---
def compute_balance(account):
    """Derived balance without saving it."""
    field = _account_field(account)
    lookup = {field: account}

    receipts = safe_sum(ReceiptDetail.objects.filter(**lookup), "amount")
    incomes = safe_sum(IncomeDetail.objects.filter(**lookup), "amount")
    transfers_in = safe_sum(Transfer.objects.filter(**{f"to_{field}": account}), "amount")
    payments = safe_sum(PaymentDetail.objects.filter(**lookup), "amount")
    expenses = safe_sum(
        ExpenseDetail.objects.filter(is_accrued=False, **lookup), "amount"
    )
    transfers_out = safe_sum(
        Transfer.objects.filter(**{f"from_{field}": account}), "amount"
    )

    logger.debug(
        "[%s] opening=%s receipts=+%s incomes=+%s transfers_in=+%s "
        "payments=-%s expenses=-%s transfers_out=-%s",
        account,
        account.opening_balance,
        receipts,
        incomes,
        transfers_in,
        payments,
        expenses,
        transfers_out,
    )

    return (
        (account.opening_balance or ZERO)
        + receipts
        + incomes
        + transfers_in
        - payments
        - expenses
        - transfers_out
    )


def recalculate_account_balance(account):
    """Recomputes, stores and returns ``account.current_balance``."""
    previous = account.current_balance
    new_balance = compute_balance(account)

    # update() keeps HistoricalRecords quiet for derived values.
    type(account).objects.filter(pk=account.pk).update(current_balance=new_balance)
    account.current_balance = new_balance

    logger.info(
        "Recalculated %s balance for %s (#%s): %s -> %s",
        _account_field(account).replace("_", " "),
        account,
        account.pk,
        previous,
        new_balance,
    )
    return new_balance


def recalculate_bank_balance(bank_account_id):
    return recalculate_account_balance(get_account("bank", bank_account_id))


def recalculate_cash_balance(cash_account_id):
    return recalculate_account_balance(get_account("cash", cash_account_id))


def recalculate_accounts(accounts):
    """Recalculates each distinct account once."""
    seen = set()
    for account in accounts:
        if account is None:
            continue
        key = (type(account), account.pk)
        if key in seen:
            continue
        seen.add(key)
        recalculate_account_balance(account)


def recalculate_all_balances():
    """Returns how many accounts were recalculated."""
    count = 0
    with transaction.atomic():
        for model in (BankAccount, CashAccount):
            for account in model.objects.all():
                recalculate_account_balance(account)
                count += 1
    return count


# --- ACCOUNT BOOK ---
def _for_query(query):
    if not query:
        return ""
    return f" for {query.name or 'tour package'}"


def _book_rows(account):
    field = _account_field(account)
    lookup = {field: account}

    for payment in PaymentDetail.objects.filter(**lookup).select_related(
        "supplier", "tour_package_query"
    ):
        supplier = payment.supplier.name if payment.supplier else "supplier"
        yield BookEntry(
            id=payment.pk,
            date=payment.payment_date,
            kind="Payment",
            description=payment.note
            or f"Payment to {supplier}{_for_query(payment.tour_package_query)}",
            inflow=ZERO,
            outflow=payment.amount,
            balance=ZERO,
            reference=payment.transaction_id or payment.method or None,
        )

    for receipt in ReceiptDetail.objects.filter(**lookup).select_related(
        "customer", "tour_package_query"
    ):
        customer = receipt.customer.name if receipt.customer else "customer"
        yield BookEntry(
            id=receipt.pk,
            date=receipt.receipt_date,
            kind="Receipt",
            description=receipt.note
            or f"Receipt from {customer}{_for_query(receipt.tour_package_query)}",
            inflow=receipt.amount,
            outflow=ZERO,
            balance=ZERO,
            reference=receipt.reference or None,
        )

    for expense in ExpenseDetail.objects.filter(is_accrued=False, **lookup).select_related(
        "expense_category", "tour_package_query"
    ):
        category = expense.expense_category.name if expense.expense_category else "Expense"
        yield BookEntry(
            id=expense.pk,
            date=expense.paid_date or expense.expense_date,
            kind="Expense",
            description=expense.description
            or f"{category}{_for_query(expense.tour_package_query)}",
            inflow=ZERO,
            outflow=expense.amount,
            balance=ZERO,
            reference=None,
        )

    for income in IncomeDetail.objects.filter(**lookup).select_related(
        "income_category", "tour_package_query"
    ):
        category = income.income_category.name if income.income_category else "Income"
        yield BookEntry(
            id=income.pk,
            date=income.income_date,
            kind="Income",
            description=income.description
            or f"{category}{_for_query(income.tour_package_query)}",
            inflow=income.amount,
            outflow=ZERO,
            balance=ZERO,
            reference=None,
        )

    for transfer in Transfer.objects.filter(**{f"from_{field}": account}).select_related(
        "to_bank_account", "to_cash_account"
    ):
        target = transfer.destination
        yield BookEntry(
            id=transfer.pk,
            date=transfer.transfer_date,
            kind="Transfer Out",
            description=transfer.description
            or f"Transfer to {target.account_name if target else 'account'}",
            inflow=ZERO,
            outflow=transfer.amount,
            balance=ZERO,
            reference=transfer.reference or None,
        )

    for transfer in Transfer.objects.filter(**{f"to_{field}": account}).select_related(
        "from_bank_account", "from_cash_account"
    ):
        origin = transfer.source
        yield BookEntry(
            id=transfer.pk,
            date=transfer.transfer_date,
            kind="Transfer In",
            description=transfer.description
            or f"Transfer from {origin.account_name if origin else 'account'}",
            inflow=transfer.amount,
            outflow=ZERO,
            balance=ZERO,
            reference=transfer.reference or None,
        )


def running_balance(entries, opening_balance):
    """Fills ``balance`` on already sorted entries, starting from the opening balance."""
    balance = opening_balance or ZERO
    result = []
    for entry in entries:
        balance = balance + entry.inflow - entry.outflow
        result.append(entry._replace(balance=balance))
    return result


def account_book(account, date_from=None, date_to=None):
    """
    Every transaction touching ``account`` sorted by date, with running balance.

    Rows before ``date_from`` are folded into the opening balance so the
    running balance stays true when a range is requested.
    """
    rows = sorted(_book_rows(account), key=lambda entry: entry.date)
    opening = account.opening_balance or ZERO

    if date_from:
        earlier = [row for row in rows if row.date < date_from]
        opening += sum((row.inflow - row.outflow for row in earlier), ZERO)
        rows = [row for row in rows if row.date >= date_from]
    if date_to:
        rows = [row for row in rows if row.date <= date_to]

    return opening, running_balance(rows, opening)


# --- LINE ITEMS ---
def _dec(value, default="0"):
    if value in (None, ""):
        value = default
    return Decimal(str(value))


def recalculate_line_items(items, tax_rates, changed_index=None):
    """
    Recomputes invoice lines.

    ``items`` are dicts with ``quantity``, ``price_per_unit``, ``total_amount``
    and ``tax_slab`` (id or None); ``tax_rates`` maps tax slab id to percentage.
    The line at ``changed_index`` is solved backwards from its total; the
    others are computed forward from their unit price.
    """
    subtotal = ZERO
    total_tax = ZERO
    updated = []

    for index, item in enumerate(items):
        item = dict(item)
        rate = ZERO
        if item.get("tax_slab"):
            rate = _dec(tax_rates.get(item["tax_slab"]), "0") / 100

        if index == changed_index:
            total = _dec(item.get("total_amount")).quantize(CENT, ROUND_HALF_UP)
            qty = _dec(item.get("quantity"), "1").quantize(CENT, ROUND_HALF_UP)
            if qty <= 0:
                qty = Decimal("1.00")

            price = (total / (1 + rate) / qty).quantize(PRICE_PLACES, ROUND_HALF_UP)
            line_subtotal = (price * qty).quantize(CENT, ROUND_HALF_UP)
            tax = (total - line_subtotal).quantize(CENT, ROUND_HALF_UP) if rate else ZERO

            item.update(price_per_unit=price, tax_amount=tax, total_amount=total)
        else:
            price = _dec(item.get("price_per_unit")).quantize(PRICE_PLACES, ROUND_HALF_UP)
            qty = _dec(item.get("quantity")).quantize(CENT, ROUND_HALF_UP)
            line_subtotal = (price * qty).quantize(CENT, ROUND_HALF_UP)

            tax = ZERO
            if rate and price > 0 and qty > 0:
                tax = (line_subtotal * rate).quantize(CENT, ROUND_HALF_UP)

            item.update(
                tax_amount=tax,
                total_amount=(line_subtotal + tax).quantize(CENT, ROUND_HALF_UP),
            )

        subtotal += line_subtotal
        total_tax += tax
        updated.append(item)

    return LineTotals(
        items=updated,
        subtotal=subtotal.quantize(CENT),
        total_tax=total_tax.quantize(CENT),
        grand_total=(subtotal + total_tax).quantize(CENT),
    )


def tax_rates_map(tax_slabs):
    return {slab.pk: slab.percentage for slab in tax_slabs}
