from datetime import date
from decimal import Decimal

import pytest
from django.utils import timezone

from agency.exceptions import InvalidPayload
from agency.models import (
    Activity,
    Hotel,
    Inquiry,
    Itinerary,
    ReceiptDetail,
    SaleDetail,
    TaxSlab,
    TourPackage,
    TourPackageQuery,
)
from agency.quotations import (
    create_query_from_inquiry,
    create_query_from_package,
    replace_query_accounting,
    reprice_from_items,
)

D = Decimal


@pytest.fixture
def package(goa):
    hotel = Hotel.objects.create(name="Sea Breeze", location=goa)
    cruise = Activity.objects.create(title="Sunset Cruise", location=goa)
    package = TourPackage.objects.create(
        name="Goa Getaway",
        location=goa,
        price=D("25000"),
        price_per_adult=D("12000"),
        price_per_child=D("6000"),
    )
    day_one = Itinerary.objects.create(
        tour_package=package, day_number=1, title="Arrival", hotel=hotel, meal_plan="CP"
    )
    day_one.activities.add(cruise)
    Itinerary.objects.create(tour_package=package, day_number=2, title="North Goa beaches")
    return package


@pytest.mark.django_db
def test_query_numbers_are_sequential_per_day(goa):
    prefix = f"TPQ-{timezone.localdate():%Y%m%d}"
    first = TourPackageQuery.objects.create(name="A", location=goa)
    second = TourPackageQuery.objects.create(name="B", location=goa)

    assert first.query_number == f"{prefix}-001"
    assert second.query_number == f"{prefix}-002"

    second.name = "B renamed"
    second.save()
    assert second.query_number == f"{prefix}-002"


@pytest.mark.django_db
def test_query_number_skips_taken_numbers(goa):
    prefix = f"TPQ-{timezone.localdate():%Y%m%d}"
    TourPackageQuery.objects.create(name="Manual", location=goa, query_number=f"{prefix}-002")

    query = TourPackageQuery.objects.create(name="Auto", location=goa)
    assert query.query_number == f"{prefix}-003"


@pytest.mark.django_db
def test_create_query_from_package_copies_days(package):
    query = create_query_from_package(package, adults=2)

    assert query.name == "Goa Getaway"
    assert query.tour_package == package
    assert query.total_price == D("25000")
    assert query.adults == 2
    per_adult = query.pricing_section[0]
    assert per_adult["name"] == "Per Adult"
    assert D(per_adult["price"]) == D("12000")

    days = list(query.itineraries.all())
    assert [day.title for day in days] == ["Arrival", "North Goa beaches"]
    assert days[0].meal_plan == "CP"
    assert [a.title for a in days[0].activities.all()] == ["Sunset Cruise"]
    # the package keeps its own days
    assert package.itineraries.count() == 2


@pytest.mark.django_db
def test_create_query_from_inquiry_marks_inquiry_sent(goa, package, agent):
    inquiry = Inquiry.objects.create(
        customer_name="Asha",
        customer_mobile="9876543210",
        location=goa,
        journey_date=date(2025, 12, 20),
        adults=2,
        children=1,
    )

    query = create_query_from_inquiry(inquiry, package=package, created_by=agent)
    inquiry.refresh_from_db()

    assert inquiry.status == "QUERY_SENT"
    assert query.inquiry == inquiry
    assert query.customer_number == "9876543210"
    assert query.children == 1
    assert query.created_by == agent
    assert query.itineraries.count() == 2

    bare = create_query_from_inquiry(inquiry)
    assert bare.name == "Asha - Goa"
    assert bare.itineraries.count() == 0


@pytest.mark.django_db
def test_replace_query_accounting(goa, customer, bank):
    gst = TaxSlab.objects.create(name="GST 5", percentage=D("5.00"))
    query = TourPackageQuery.objects.create(name="Goa trip", location=goa)
    SaleDetail.objects.create(
        tour_package_query=query, sale_date=date(2025, 1, 1), sale_price=D("1")
    )

    saved = replace_query_accounting(
        query,
        {
            "sales": [
                {
                    "customer": customer.pk,
                    "sale_date": "2025-01-10",
                    "invoice_number": "INV-9",
                    "items": [
                        {
                            "product_name": "Deluxe room",
                            "quantity": "2",
                            "price_per_unit": "1000",
                            "tax_slab": gst.pk,
                        }
                    ],
                }
            ],
            "receipts": [
                {
                    "customer": customer.pk,
                    "receipt_date": "2025-01-11",
                    "amount": "1500",
                    "bank_account": bank.pk,
                }
            ],
        },
    )

    assert saved == {"sales": 1, "receipts": 1}
    sale = query.sales.get()
    assert sale.invoice_number == "INV-9"
    assert sale.sale_price == D("2000.00")
    assert sale.gst_amount == D("100.00")
    assert sale.status == "pending"
    item = sale.items.get()
    assert item.total_amount == D("2100.00")

    bank.refresh_from_db()
    assert bank.current_balance == D("2500.00")

    # a second replace drops the old receipt and its effect on the bank
    replace_query_accounting(query, {"receipts": []})
    bank.refresh_from_db()
    assert bank.current_balance == D("1000.00")
    assert query.sales.count() == 1


@pytest.mark.django_db
def test_invalid_accounting_payload_writes_nothing(goa, customer, bank):
    query = TourPackageQuery.objects.create(name="Goa trip", location=goa)
    ReceiptDetail.objects.create(
        tour_package_query=query, receipt_date=date(2025, 1, 1), amount=D("10"), bank_account=bank
    )

    with pytest.raises(InvalidPayload) as excinfo:
        replace_query_accounting(
            query,
            {
                "receipts": [
                    {"receipt_date": "2025-01-02", "amount": "5"},
                    {"receipt_date": "not a date", "amount": "5"},
                ],
                "sales": [{"sale_date": "2025-01-02", "items": [{"quantity": "1"}]}],
            },
        )

    errors = excinfo.value.errors
    assert errors["receipts"][0]["index"] == 1
    assert "receipt_date" in errors["receipts"][0]["errors"]
    assert "items.0" in errors["sales"][0]["errors"]
    assert query.receipts.count() == 1


@pytest.mark.django_db
def test_unknown_accounting_section_is_rejected(goa):
    query = TourPackageQuery.objects.create(name="Goa trip", location=goa)
    with pytest.raises(InvalidPayload) as excinfo:
        replace_query_accounting(query, {"bribes": []})
    assert excinfo.value.errors == {"bribes": ["Unknown section."]}


@pytest.mark.django_db
def test_line_item_ids_are_checked_and_normalized(goa, customer):
    query = TourPackageQuery.objects.create(name="Goa trip", location=goa)
    gst = TaxSlab.objects.create(name="GST 5%", percentage=D("5"))

    with pytest.raises(InvalidPayload) as excinfo:
        replace_query_accounting(
            query,
            {
                "sales": [
                    {
                        "customer": customer.pk,
                        "sale_date": "2025-01-10",
                        "items": [
                            {"product_name": "Cab", "price_per_unit": "NaN", "tax_slab": "gst"},
                        ],
                    }
                ]
            },
        )
    assert excinfo.value.errors["sales"][0]["errors"] == {
        "items.0": ["price_per_unit must be a number.", "Unknown tax slab."]
    }

    replace_query_accounting(
        query,
        {
            "sales": [
                {
                    "customer": customer.pk,
                    "sale_date": "2025-01-10",
                    "items": [
                        {"product_name": "Cab", "quantity": "1", "price_per_unit": "400", "tax_slab": str(gst.pk)},
                    ],
                }
            ]
        },
    )
    sale = query.sales.get()
    assert sale.gst_amount == D("20.00")
    assert sale.items.get().tax_slab == gst


@pytest.mark.django_db
def test_reprice_from_items(customer):
    sale = SaleDetail.objects.create(
        customer=customer, sale_date=date(2025, 1, 10), sale_price=D("750"), gst_amount=D("0")
    )
    assert reprice_from_items(sale, "sales") is None
    sale.refresh_from_db()
    assert sale.sale_price == D("750.00")

    gst = TaxSlab.objects.create(name="GST 18%", percentage=D("18"))
    sale.items.create(product_name="Cab", quantity=D("3"), price_per_unit=D("100"), tax_slab=gst)

    totals = reprice_from_items(sale, "sales")
    assert totals.grand_total == D("354.00")
    sale.refresh_from_db()
    assert (sale.sale_price, sale.gst_amount) == (D("300.00"), D("54.00"))
