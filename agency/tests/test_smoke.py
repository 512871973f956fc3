from datetime import date
from decimal import Decimal
from io import BytesIO

import pytest
from django.contrib import admin
from django.contrib.auth.models import Permission
from django.core.management import CommandError, call_command
from django.urls import reverse
from openpyxl import load_workbook

from agency.models import (
    BankAccount,
    Location,
    PaymentDetail,
    PurchaseDetail,
    ReceiptDetail,
    SaleDetail,
    TaxSlab,
    TourPackageQuery,
)

D = Decimal


class FakeHTML:
    """Stands in for weasyprint.HTML; keeps the rendered markup."""

    rendered = []

    def __init__(self, string, base_url=None):
        FakeHTML.rendered.append(string)

    def write_pdf(self):
        return b"%PDF-1.7 fake"


@pytest.fixture
def fake_weasyprint(monkeypatch):
    FakeHTML.rendered = []
    monkeypatch.setattr("agency.exports.weasyprint.HTML", FakeHTML)
    return FakeHTML


@pytest.mark.django_db
def test_every_admin_changelist_loads(admin_client):
    for model in admin.site._registry:
        opts = model._meta
        url = reverse(f"admin:{opts.app_label}_{opts.model_name}_changelist")
        response = admin_client.get(url)
        assert response.status_code == 200, url


@pytest.mark.django_db
def test_receipt_added_in_admin_moves_bank_balance(admin_client, bank, customer):
    data = {
        "customer": customer.pk,
        "receipt_date": "2025-01-10",
        "amount": "2500.00",
        "reference": "UPI-1",
        "note": "",
        "bank_account": bank.pk,
        "cash_account": "",
        "tour_package_query": "",
        "_save": "Save",
    }
    response = admin_client.post("/admin/agency/receiptdetail/add/", data)

    assert response.status_code == 302
    bank.refresh_from_db()
    assert bank.current_balance == D("3500.00")


@pytest.mark.django_db
def test_admin_rejects_two_accounts_on_one_receipt(admin_client, bank, cash, customer):
    data = {
        "customer": customer.pk,
        "receipt_date": "2025-01-10",
        "amount": "100",
        "bank_account": bank.pk,
        "cash_account": cash.pk,
        "_save": "Save",
    }
    response = admin_client.post("/admin/agency/receiptdetail/add/", data)

    assert response.status_code == 200
    assert not ReceiptDetail.objects.exists()


@pytest.mark.django_db
def test_sale_admin_derives_totals_from_items(admin_client, customer):
    gst = TaxSlab.objects.create(name="GST 5%", percentage=D("5"))
    data = {
        "customer": customer.pk,
        "sale_date": "2025-01-10",
        "invoice_number": "INV-21",
        "sale_price": "1",
        "gst_amount": "1",
        "status": "pending",
        "items-TOTAL_FORMS": "2",
        "items-INITIAL_FORMS": "0",
        "items-MIN_NUM_FORMS": "0",
        "items-MAX_NUM_FORMS": "1000",
        "items-0-product_name": "Deluxe room",
        "items-0-quantity": "2",
        "items-0-price_per_unit": "1000",
        "items-0-tax_slab": gst.pk,
        "items-1-product_name": "Airport pickup",
        "items-1-quantity": "1",
        "items-1-price_per_unit": "500",
        "returns-TOTAL_FORMS": "0",
        "returns-INITIAL_FORMS": "0",
        "returns-MIN_NUM_FORMS": "0",
        "returns-MAX_NUM_FORMS": "1000",
        "_save": "Save",
    }
    response = admin_client.post("/admin/agency/saledetail/add/", data)

    assert response.status_code == 302
    sale = SaleDetail.objects.get()
    assert sale.sale_price == D("2500.00")
    assert sale.gst_amount == D("100.00")
    room = sale.items.get(product_name="Deluxe room")
    assert room.tax_amount == D("100.00")
    assert room.total_amount == D("2100.00")



@pytest.mark.django_db
def test_money_screens_hidden_from_agents(agent_client, agent):
    agent.user_permissions.add(Permission.objects.get(codename="view_receiptdetail"))
    response = agent_client.get("/admin/agency/receiptdetail/")
    assert response.status_code == 403


@pytest.mark.django_db
def test_recalculate_action(admin_client, bank):
    BankAccount.objects.filter(pk=bank.pk).update(current_balance=D("5"))
    response = admin_client.post(
        "/admin/agency/bankaccount/",
        {"action": "recalculate_selected_balances", "_selected_action": [bank.pk]},
    )
    assert response.status_code == 302
    bank.refresh_from_db()
    assert bank.current_balance == D("1000.00")


@pytest.mark.django_db
def test_financial_dashboard(admin_client, customer):
    SaleDetail.objects.create(
        customer=customer, sale_date=date(2025, 1, 10), sale_price=D("900"), gst_amount=D("45")
    )
    response = admin_client.get(
        reverse("financial_dashboard"),
        {"period": "custom", "date_from": "2025-01-01", "date_to": "2025-01-31"},
    )
    assert response.status_code == 200
    assert response.context["total_sales"] == D("945.00")
    assert response.context["date_from"] == "2025-01-01"


@pytest.mark.django_db
def test_dashboard_redirects_without_permission(agent_client):
    response = agent_client.get(reverse("financial_dashboard"))
    assert response.status_code == 302
    assert response["Location"] == "/admin/"


@pytest.mark.django_db
def test_ledger_page_and_unknown_kind(admin_client, supplier):
    PurchaseDetail.objects.create(
        supplier=supplier, purchase_date=date(2025, 1, 3), price=D("1200")
    )
    response = admin_client.get(reverse("ledger", args=["suppliers"]))
    assert response.status_code == 200
    assert b"Sea Breeze Resort" in response.content

    assert admin_client.get(reverse("ledger", args=["purchases"])).status_code == 200
    assert admin_client.get(reverse("ledger", args=["bribes"])).status_code == 404


@pytest.mark.django_db
def test_ledger_excel_export(admin_client, customer):
    SaleDetail.objects.create(
        customer=customer, sale_date=date(2025, 1, 10), sale_price=D("900"), gst_amount=D("45")
    )

    response = admin_client.get(reverse("ledger_export_xlsx", args=["customers"]))

    assert response.status_code == 200
    assert response["Content-Disposition"].startswith('attachment; filename="customers_ledger_')
    sheet = load_workbook(BytesIO(response.content)).active
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0][:3] == ("Customer", "Contact", "Sales")
    assert rows[1][0] == "Rohan Mehta"
    assert rows[1][2] == 945.0
    assert rows[-1][0] == "Total"


@pytest.mark.django_db
def test_ledger_pdf_export(admin_client, supplier, fake_weasyprint):
    response = admin_client.get(reverse("ledger_export_pdf", args=["suppliers"]))

    assert response.status_code == 200
    assert response["Content-Type"] == "application/pdf"
    assert response.content == b"%PDF-1.7 fake"
    assert "Sea Breeze Resort" in fake_weasyprint.rendered[0]


@pytest.mark.django_db
def test_party_statement_pages(admin_client, agent_client, supplier, bank, fake_weasyprint):
    PurchaseDetail.objects.create(
        supplier=supplier,
        purchase_date=date(2025, 1, 3),
        bill_number="B-1",
        price=D("1200"),
        gst_amount=D("60"),
    )
    PaymentDetail.objects.create(
        supplier=supplier, payment_date=date(2025, 1, 5), amount=D("1000"), bank_account=bank
    )
    statement_url = reverse("statement", args=["suppliers", supplier.pk])

    changelist = admin_client.get(reverse("admin:agency_supplier_changelist"))
    assert statement_url.encode() in changelist.content

    response = admin_client.get(statement_url)
    assert response.status_code == 200
    assert b"Sea Breeze Resort Statement" in response.content
    assert b"Bill B-1" in response.content

    response = admin_client.get(reverse("statement_export_xlsx", args=["suppliers", supplier.pk]))
    rows = list(load_workbook(BytesIO(response.content)).active.iter_rows(values_only=True))
    assert rows[0] == ("Date", "Type", "Description", "Reference", "Debit", "Credit", "Balance")
    assert [row[1] for row in rows[1:3]] == ["Purchase", "Payment"]
    assert rows[-1][0] == "Total"
    assert rows[-1][-1] == 260.0

    response = admin_client.get(reverse("statement_export_pdf", args=["suppliers", supplier.pk]))
    assert response["Content-Type"] == "application/pdf"
    assert "Bill B-1" in fake_weasyprint.rendered[0]

    assert admin_client.get(reverse("statement", args=["suppliers", 999])).status_code == 404
    assert admin_client.get(reverse("statement", args=["sales", supplier.pk])).status_code == 404
    assert agent_client.get(statement_url).status_code == 302



@pytest.mark.django_db
def test_query_documents(admin_client, agent_client, goa, fake_weasyprint):
    query = TourPackageQuery.objects.create(name="Goa Honeymoon", location=goa)

    for name in ("query_pdf", "query_voucher"):
        response = admin_client.get(reverse(name, args=[query.pk]))
        assert response.status_code == 200
        assert query.query_number in response["Content-Disposition"]
    assert "Goa Honeymoon" in fake_weasyprint.rendered[0]

    # someone else's quotation
    assert agent_client.get(reverse("query_pdf", args=[query.pk])).status_code == 404


@pytest.mark.django_db
def test_transaction_voucher(admin_client, bank, customer, fake_weasyprint):
    receipt = ReceiptDetail.objects.create(
        customer=customer, receipt_date=date(2025, 1, 5), amount=D("250"), bank_account=bank
    )
    response = admin_client.get(reverse("transaction_voucher", args=["receipts", receipt.pk]))
    assert response.status_code == 200
    assert "Rohan Mehta" in fake_weasyprint.rendered[0]

    missing = admin_client.get(reverse("transaction_voucher", args=["bribes", receipt.pk]))
    assert missing.status_code == 404


# --- MANAGEMENT COMMANDS ---
@pytest.mark.django_db
def test_seed_command(capsys):
    call_command("seed")

    assert "Database seeding complete" in capsys.readouterr().out
    bank = BankAccount.objects.get(account_name="HDFC Current")
    # 100000 + 15000 receipt - 10000 payment; the accrued expense is not paid yet
    assert bank.current_balance == D("105000.00")
    query = TourPackageQuery.objects.get()
    assert query.itineraries.count() == 3
    assert Location.objects.get(label="Goa").seasonal_periods.exists()


@pytest.mark.django_db
def test_seed_seasonal_periods_command(capsys):
    Location.objects.create(label="Jaisalmer")
    call_command("seed_seasonal_periods")
    out = capsys.readouterr().out
    assert "Seeded 1 locations" in out

    call_command("seed_seasonal_periods")
    assert "already has periods" in capsys.readouterr().out


@pytest.mark.django_db
def test_recalculate_balances_command(bank, capsys):
    BankAccount.objects.filter(pk=bank.pk).update(current_balance=D("0"))

    call_command("recalculate_balances", "--bank", str(bank.pk))
    assert "Bank balance: 1000.00" in capsys.readouterr().out

    call_command("recalculate_balances")
    assert "Recalculated 1 account balances." in capsys.readouterr().out

    with pytest.raises(CommandError, match="Cash account 999 not found"):
        call_command("recalculate_balances", "--cash", "999")
