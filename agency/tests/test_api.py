import json
from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth.models import Permission
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse

from agency.models import (
    AssociatePartner,
    ExpenseDetail,
    LocationSeasonalPeriod,
    ReceiptDetail,
    TourPackage,
    TourPackageQuery,
    WhatsAppCampaign,
    WhatsAppCustomer,
    WhatsAppSettings,
)

D = Decimal


def patch_json(client, url, data):
    return client.patch(url, data=json.dumps(data), content_type="application/json")


def post_json(client, url, data):
    return client.post(url, data=json.dumps(data), content_type="application/json")


# --- ACCESS ---
@pytest.mark.django_db
def test_api_requires_staff(client):
    response = client.get(reverse("api_tour_packages"))
    assert response.status_code == 302
    assert "/admin/login/" in response["Location"]


@pytest.mark.django_db
def test_healthz(client):
    response = client.get(reverse("healthz"))
    assert response.status_code == 200
    assert response.content == b"OK"


@pytest.mark.django_db
def test_method_not_allowed(admin_client):
    response = admin_client.put(reverse("api_tour_packages"))
    assert response.status_code == 405


# --- CATALOG ---
@pytest.mark.django_db
def test_patch_tour_package_is_partial(admin_client, goa):
    package = TourPackage.objects.create(
        name="Goa Getaway", location=goa, price=D("20000"), inclusions="Breakfast"
    )

    response = patch_json(
        admin_client,
        reverse("api_tour_package_detail", args=[package.pk]),
        {"price": "22000", "policies": {"cancellation": "50% within 7 days"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert D(body["price"]) == D("22000")
    assert body["inclusions"] == "Breakfast"
    package.refresh_from_db()
    assert package.price == D("22000.00")
    assert package.policies == {"cancellation": "50% within 7 days"}
    assert package.name == "Goa Getaway"


@pytest.mark.django_db
def test_tour_package_list_filters(admin_client, goa):
    TourPackage.objects.create(name="Live", location=goa)
    TourPackage.objects.create(name="Old", location=goa, is_archived=True)

    response = admin_client.get(reverse("api_tour_packages"), {"archived": "false"})
    assert [p["name"] for p in response.json()["results"]] == ["Live"]


@pytest.mark.django_db
def test_list_endpoints_reject_non_numeric_ids(admin_client):
    response = admin_client.get(reverse("api_tour_packages"), {"location": "goa"})
    assert response.status_code == 400
    assert response.json()["errors"] == {"location": ["Expected a numeric id."]}

    response = admin_client.get(reverse("api_queries"), {"inquiry": "x"})
    assert response.status_code == 400
    response = admin_client.get(reverse("api_expenses"), {"query": "1;drop"})
    assert response.status_code == 400


@pytest.mark.django_db
def test_itinerary_master_hotel_must_match_location(admin_client, goa):
    from agency.models import Hotel, Location

    manali = Location.objects.create(label="Manali")
    hotel = Hotel.objects.create(name="Snow Valley", location=manali)

    response = post_json(
        admin_client,
        reverse("api_itinerary_masters"),
        {"location": goa.pk, "title": "Beach day", "hotel": hotel.pk},
    )
    assert response.status_code == 400
    assert "hotel" in response.json()["errors"]

    response = post_json(
        admin_client,
        reverse("api_itinerary_masters"),
        {"location": manali.pk, "title": "Solang valley", "hotel": hotel.pk},
    )
    assert response.status_code == 201
    assert response.json()["day_number"] == 1


# --- QUOTATIONS ---
@pytest.mark.django_db
def test_create_query_sets_owner(agent_client, agent, goa):
    response = post_json(
        agent_client,
        reverse("api_queries"),
        {"name": "Goa family trip", "location": goa.pk, "pricing_section": []},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["query_number"].startswith("TPQ-")
    assert body["adults"] == 1
    assert TourPackageQuery.objects.get().created_by == agent


@pytest.mark.django_db
def test_agents_only_see_their_own_queries(agent_client, agent, admin_user, goa):
    mine = TourPackageQuery.objects.create(name="Mine", location=goa, created_by=agent)
    theirs = TourPackageQuery.objects.create(name="Theirs", location=goa, created_by=admin_user)

    listing = agent_client.get(reverse("api_queries")).json()["results"]
    assert [q["id"] for q in listing] == [mine.pk]

    assert agent_client.get(reverse("api_query_detail", args=[theirs.pk])).status_code == 404
    detail = agent_client.get(reverse("api_query_detail", args=[mine.pk])).json()
    assert D(detail["summary"]["net_profit"]) == 0


@pytest.mark.django_db
def test_query_accounting_patch(admin_client, goa, customer, bank):
    query = TourPackageQuery.objects.create(name="Goa trip", location=goa)

    response = patch_json(
        admin_client,
        reverse("api_query_accounting", args=[query.pk]),
        {
            "receipts": [
                {
                    "customer": customer.pk,
                    "receipt_date": "2025-01-11",
                    "amount": "700",
                    "bank_account": bank.pk,
                }
            ]
        },
    )

    assert response.status_code == 200
    assert response.json()["saved"] == {"receipts": 1}
    assert D(response.json()["summary"]["total_receipts"]) == D("700")
    bank.refresh_from_db()
    assert bank.current_balance == D("1700.00")


@pytest.mark.django_db
def test_query_accounting_rejects_bad_rows(admin_client, goa):
    query = TourPackageQuery.objects.create(name="Goa trip", location=goa)

    response = patch_json(
        admin_client,
        reverse("api_query_accounting", args=[query.pk]),
        {"receipts": [{"amount": "10"}], "refunds": []},
    )
    assert response.status_code == 400
    assert response.json()["errors"] == {"refunds": ["Unknown section."]}

    response = patch_json(
        admin_client,
        reverse("api_query_accounting", args=[query.pk]),
        {"receipts": [{"amount": "10"}]},
    )
    assert response.status_code == 400
    assert "receipt_date" in response.json()["errors"]["receipts"][0]["errors"]


@pytest.mark.django_db
def test_query_accounting_rejects_malformed_line_items(admin_client, goa, customer):
    query = TourPackageQuery.objects.create(name="Goa trip", location=goa)

    response = patch_json(
        admin_client,
        reverse("api_query_accounting", args=[query.pk]),
        {
            "sales": [
                {
                    "customer": customer.pk,
                    "sale_date": "2025-01-10",
                    "items": [
                        {"product_name": "Deluxe room", "quantity": "two", "price_per_unit": "1000"},
                        7,
                    ],
                }
            ]
        },
    )

    assert response.status_code == 400
    item_errors = response.json()["errors"]["sales"][0]["errors"]
    assert item_errors["items.0"] == ["quantity must be a number."]
    assert item_errors["items.1"] == ["Expected an object."]
    assert query.sales.count() == 0


@pytest.mark.django_db
def test_query_accounting_needs_financial_permission(agent_client, agent, goa):
    query = TourPackageQuery.objects.create(name="Goa trip", location=goa, created_by=agent)
    response = patch_json(
        agent_client, reverse("api_query_accounting", args=[query.pk]), {"receipts": []}
    )
    assert response.status_code == 403

    agent.user_permissions.add(Permission.objects.get(codename="manage_financials"))
    response = patch_json(
        agent_client, reverse("api_query_accounting", args=[query.pk]), {"receipts": []}
    )
    assert response.status_code == 200


@pytest.mark.django_db
def test_invalid_json_body(admin_client, goa):
    query = TourPackageQuery.objects.create(name="Goa trip", location=goa)
    response = admin_client.patch(
        reverse("api_query_detail", args=[query.pk]),
        data="{not json",
        content_type="application/json",
    )
    assert response.status_code == 400
    assert response.json()["errors"] == {"body": ["Invalid JSON."]}


# --- SEASONS ---
@pytest.mark.django_db
def test_seasonal_period_crud(admin_client, goa):
    url = reverse("api_seasonal_periods", args=[goa.pk])

    response = post_json(
        admin_client,
        url,
        {
            "season_type": "PEAK_SEASON",
            "name": "Winter",
            "start_month": 11,
            "start_day": 1,
            "end_month": 2,
            "end_day": 28,
        },
    )
    assert response.status_code == 201
    period = response.json()
    assert period["location"] == goa.pk
    assert period["display"] == "Nov 1 - Feb 28"

    listing = admin_client.get(url).json()
    assert listing["coverage"]["is_complete"] is True
    assert listing["coverage"]["gaps"] == [{"start": [3, 1], "end": [10, 31]}]

    detail_url = reverse("api_seasonal_period_detail", args=[goa.pk, period["id"]])
    response = patch_json(admin_client, detail_url, {"name": "Peak winter"})
    assert response.status_code == 200
    assert response.json()["start_month"] == 11

    assert admin_client.delete(detail_url).status_code == 204
    assert not LocationSeasonalPeriod.objects.exists()


@pytest.mark.django_db
def test_invalid_seasonal_period(admin_client, goa):
    response = post_json(
        admin_client,
        reverse("api_seasonal_periods", args=[goa.pk]),
        {
            "season_type": "PEAK_SEASON",
            "name": "Broken",
            "start_month": 13,
            "start_day": 1,
            "end_month": 2,
            "end_day": 28,
        },
    )
    assert response.status_code == 400
    assert "Start month must be between 1 and 12" in response.json()["errors"]["__all__"]


@pytest.mark.django_db
def test_seasonal_period_of_other_location_is_not_found(admin_client, goa):
    from agency.models import Location

    manali = Location.objects.create(label="Manali")
    period = LocationSeasonalPeriod.objects.create(
        location=manali,
        season_type="OFF_SEASON",
        name="Monsoon",
        start_month=7,
        start_day=1,
        end_month=9,
        end_day=30,
    )
    response = admin_client.get(
        reverse("api_seasonal_period_detail", args=[goa.pk, period.pk])
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Seasonal period not found"}


# --- FINANCE ---
@pytest.mark.django_db
def test_account_transactions(admin_client, bank, customer):
    ReceiptDetail.objects.create(
        customer=customer, receipt_date=date(2025, 1, 5), amount=D("250"), bank_account=bank
    )

    response = admin_client.get(reverse("api_bank_account_transactions", args=[bank.pk]))

    assert response.status_code == 200
    body = response.json()
    assert body["account"]["name"] == "HDFC Current"
    assert D(body["opening_balance"]) == D("1000")
    assert D(body["closing_balance"]) == D("1250")
    assert body["transactions"][0]["kind"] == "Receipt"


@pytest.mark.django_db
def test_missing_account_is_404(admin_client):
    response = admin_client.get(reverse("api_cash_account_transactions", args=[404]))
    assert response.status_code == 404
    assert response.json() == {"error": "Cash account 404 not found"}


@pytest.mark.django_db
def test_finance_endpoints_forbid_agents(agent_client, bank):
    assert agent_client.get(reverse("api_expenses")).status_code == 403
    response = agent_client.get(reverse("api_bank_account_transactions", args=[bank.pk]))
    assert response.status_code == 403


@pytest.mark.django_db
def test_accrued_expense_lifecycle(admin_client, bank):
    response = post_json(
        admin_client,
        reverse("api_expenses"),
        {"expense_date": "2025-02-01", "amount": "300", "is_accrued": True},
    )
    assert response.status_code == 201
    expense_id = response.json()["id"]

    accrued = admin_client.get(reverse("api_expenses"), {"accrued": "true"}).json()
    assert [e["id"] for e in accrued["results"]] == [expense_id]

    pay_url = reverse("api_expense_pay", args=[expense_id])
    response = post_json(admin_client, pay_url, {"account": "nowhere:1", "paid_date": "2025-02-05"})
    assert response.status_code == 400
    assert "account" in response.json()["errors"]

    response = post_json(
        admin_client, pay_url, {"account": f"bank:{bank.pk}", "paid_date": "2025-02-05"}
    )
    assert response.status_code == 200
    assert response.json()["is_accrued"] is False
    bank.refresh_from_db()
    assert bank.current_balance == D("700.00")

    response = post_json(
        admin_client, pay_url, {"account": f"bank:{bank.pk}", "paid_date": "2025-02-05"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Expense is already paid."


@pytest.mark.django_db
def test_expense_amount_must_be_positive(admin_client):
    response = post_json(
        admin_client, reverse("api_expenses"), {"expense_date": "2025-02-01", "amount": "0"}
    )
    assert response.status_code == 400
    assert ExpenseDetail.objects.count() == 0


@pytest.mark.django_db
def test_ledger_api(admin_client, supplier):
    response = admin_client.get(reverse("api_ledger", args=["suppliers"]))
    assert response.status_code == 200
    assert response.json()["rows"][0]["name"] == "Sea Breeze Resort"

    assert admin_client.get(reverse("api_ledger", args=["bribes"])).status_code == 404


@pytest.mark.django_db
def test_customer_statement_api(admin_client, customer, bank):
    ReceiptDetail.objects.create(
        customer=customer, receipt_date=date(2025, 2, 1), amount=D("500"), bank_account=bank
    )

    response = admin_client.get(reverse("api_statement", args=["customers", customer.pk]))
    assert response.status_code == 200
    data = response.json()
    assert [row["kind"] for row in data["rows"]] == ["Receipt"]
    assert D(data["totals"]["balance"]) == D("-500")

    response = admin_client.get(reverse("api_statement", args=["customers", 999]))
    assert response.status_code == 404
    assert response.json() == {"error": "Customer not found"}


@pytest.mark.django_db
def test_ledger_filters_ignore_non_numeric_ids(admin_client, bank):
    ExpenseDetail.objects.create(expense_date=date(2025, 3, 1), amount=D("40"), bank_account=bank)

    url = reverse("api_ledger", args=["expenses"])
    response = admin_client.get(url, {"category": "abc", "party": "x", "account": "bank:abc"})
    assert response.status_code == 200
    assert len(response.json()["rows"]) == 1

    assert admin_client.get(reverse("ledger", args=["expenses"]), {"category": "abc"}).status_code == 200


# --- WHATSAPP ---
@pytest.mark.django_db
def test_create_whatsapp_customer_normalizes_phone(admin_client, settings):
    settings.AGENCY_DEFAULT_COUNTRY_CODE = "91"
    response = post_json(
        admin_client,
        reverse("api_whatsapp_customers"),
        {"first_name": "Asha", "phone_number": "098765 43210", "tags": [" vip ", "vip"]},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["phone_number"] == "+919876543210"
    assert body["tags"] == ["vip"]

    listing = admin_client.get(reverse("api_whatsapp_customers"), {"tags": "vip"}).json()
    assert listing["total"] == 1
    assert listing["tag_counts"] == {"vip": 1}


@pytest.mark.django_db
def test_whatsapp_customer_list_rejects_bad_paging(admin_client):
    response = admin_client.get(reverse("api_whatsapp_customers"), {"limit": "lots"})
    assert response.status_code == 400


@pytest.mark.django_db
def test_customer_csv_import(admin_client, settings):
    settings.AGENCY_DEFAULT_COUNTRY_CODE = "91"
    upload = SimpleUploadedFile(
        "leads.csv",
        "First Name,Mobile Number,Tags\nAsha,9876543210,vip\nRavi,,\n".encode("utf-8-sig"),
        content_type="text/csv",
    )

    response = admin_client.post(
        reverse("api_whatsapp_customer_import"),
        {"file": upload, "default_tags": "monsoon, leads"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["valid_rows"] == 1
    assert body["created"] == 1
    assert body["errors"][0]["row_number"] == 3
    customer = WhatsAppCustomer.objects.get()
    assert customer.tags == ["monsoon", "leads", "vip"]
    assert customer.imported_from == "leads.csv"


@pytest.mark.django_db
def test_customer_csv_import_links_associate_partners(admin_client):
    partner = AssociatePartner.objects.create(name="Coastal Holidays")
    AssociatePartner.objects.create(name="Retired Agent", is_active=False)
    upload = SimpleUploadedFile(
        "partners.csv",
        (
            "First Name,Mobile Number,Associate Partner\n"
            "Asha,+919876543210,coastal holidays\n"
            "Ravi,+919812345678,Retired Agent\n"
        ).encode(),
        content_type="text/csv",
    )

    response = admin_client.post(reverse("api_whatsapp_customer_import"), {"file": upload})

    assert response.status_code == 200
    body = response.json()
    assert body["created"] == 2
    assert [e["row_number"] for e in body["errors"]] == [3]
    assert "Retired Agent" in body["errors"][0]["message"]
    asha = WhatsAppCustomer.objects.get(first_name="Asha")
    assert asha.metadata == {"associate_partner_id": partner.pk}
    assert WhatsAppCustomer.objects.get(first_name="Ravi").metadata == {}


@pytest.mark.django_db
def test_customer_csv_import_dry_run_and_bad_file(admin_client):
    upload = SimpleUploadedFile("leads.csv", b"First Name,Mobile Number\nAsha,+441234\n")
    response = admin_client.post(
        reverse("api_whatsapp_customer_import"), {"file": upload, "dry_run": "on"}
    )
    assert response.json()["valid_rows"] == 1
    assert response.json()["created"] == 0
    assert not WhatsAppCustomer.objects.exists()

    upload = SimpleUploadedFile("leads.csv", b"Name,Phone\nAsha,1\n")
    response = admin_client.post(reverse("api_whatsapp_customer_import"), {"file": upload})
    assert response.status_code == 400
    assert "Missing required columns" in response.json()["error"]


@pytest.mark.django_db
def test_campaign_send(admin_client, monkeypatch):
    WhatsAppSettings.objects.create(api_url="https://wa.example.com/messages", api_token="t")
    customer = WhatsAppCustomer.objects.create(first_name="Asha", phone_number="+919000000001")
    campaign = WhatsAppCampaign.objects.create(
        name="Diwali", message_template="Hi {first_name}", send_window_start=0, send_window_end=24
    )
    campaign.recipients.create(customer=customer, phone_number=customer.phone_number)

    class Sent:
        status_code = 200
        text = ""

        def json(self):
            return {"messages": [{"id": "wamid.9"}]}

    monkeypatch.setattr("agency.whatsapp.requests.post", lambda *args, **kwargs: Sent())

    response = admin_client.post(reverse("api_whatsapp_campaign_send", args=[campaign.pk]))

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["result"] == {"sent": 1, "failed": 0, "paused": False}
    assert body["recipients_by_status"] == {"sent": 1}

    response = admin_client.post(reverse("api_whatsapp_campaign_send", args=[campaign.pk]))
    assert response.status_code == 400
    assert response.json()["error"] == "Campaign is not sending"
