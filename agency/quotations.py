# agency/quotations.py
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction

from .balances import recalculate_line_items, tax_rates_map
from .exceptions import InvalidPayload
from .forms import ACCOUNTING_SECTIONS
from .ledgers import parse_id
from .models import (
    Itinerary,
    PurchaseItem,
    SaleItem,
    TaxSlab,
    TourPackageQuery,
    UnitOfMeasure,
)

logger = logging.getLogger(__name__)


def copy_itineraries(source_itineraries, query):
    """Clones itinerary days (with their activities) onto ``query``."""
    created = []
    for itinerary in source_itineraries:
        activities = list(itinerary.activities.all())
        clone = Itinerary.objects.create(
            tour_package_query=query,
            day_number=itinerary.day_number,
            title=itinerary.title,
            description=itinerary.description,
            hotel=itinerary.hotel,
            meal_plan=itinerary.meal_plan,
        )
        if activities:
            clone.activities.set(activities)
        created.append(clone)
    return created


@transaction.atomic
def create_query_from_package(package, **overrides):
    """
    New quotation prefilled from a tour package, itinerary days included.
    Keyword arguments override any TourPackageQuery field.
    """
    fields = {
        "name": package.name,
        "location": package.location,
        "tour_package": package,
        "total_price": package.price,
        "pricing_section": [
            {"name": "Per Adult", "price": str(package.price_per_adult), "description": ""},
            {"name": "Per Child", "price": str(package.price_per_child), "description": ""},
        ],
    }
    fields.update(overrides)

    query = TourPackageQuery.objects.create(**fields)
    days = copy_itineraries(package.itineraries.all(), query)

    logger.info(
        "Created query %s from package #%s (%s days)",
        query.query_number,
        package.pk,
        len(days),
    )
    return query


@transaction.atomic
def create_query_from_inquiry(inquiry, package=None, created_by=None):
    """Quotation for an inquiry; the inquiry moves to QUERY_SENT."""
    fields = {
        "inquiry": inquiry,
        "customer_name": inquiry.customer_name,
        "customer_number": inquiry.customer_mobile,
        "location": inquiry.location,
        "journey_date": inquiry.journey_date,
        "adults": inquiry.adults,
        "children": inquiry.children,
        "created_by": created_by,
    }

    if package is not None:
        query = create_query_from_package(package, **fields)
    else:
        query = TourPackageQuery.objects.create(
            name=f"{inquiry.customer_name} - {inquiry.location}", **fields
        )

    inquiry.status = "QUERY_SENT"
    inquiry.save(update_fields=["status"])
    return query


# --- ACCOUNTING ---
# section -> (line item model, FK to parent, price field on parent)
LINE_ITEM_SECTIONS = {
    "sales": (SaleItem, "sale", "sale_price"),
    "purchases": (PurchaseItem, "purchase", "price"),
}


ITEM_NUMBER_FIELDS = ("quantity", "price_per_unit", "total_amount")


def _is_number(value):
    try:
        return Decimal(str(value)).is_finite()
    except InvalidOperation:
        return False


def _item_errors(item, tax_rates, unit_ids):
    if not isinstance(item, dict):
        return ["Expected an object."]

    errors = []
    if not str(item.get("product_name") or "").strip():
        errors.append("Product name is required.")
    for field in ITEM_NUMBER_FIELDS:
        if item.get(field) not in (None, "") and not _is_number(item[field]):
            errors.append(f"{field} must be a number.")
    if item.get("tax_slab") not in (None, "") and parse_id(item["tax_slab"]) not in tax_rates:
        errors.append("Unknown tax slab.")
    if (
        item.get("unit_of_measure") not in (None, "")
        and parse_id(item["unit_of_measure"]) not in unit_ids
    ):
        errors.append("Unknown unit of measure.")
    return errors


def _priced_items(section, row, tax_rates, unit_ids, errors, index):
    """Recomputes the line items of one sale/purchase row in place."""
    items = row.pop("items", None) or []
    if not items or section not in LINE_ITEM_SECTIONS:
        return []
    if not isinstance(items, list):
        errors.append({"index": index, "errors": {"items": ["Expected a list of items."]}})
        return []

    item_errors = {}
    for position, item in enumerate(items):
        problems = _item_errors(item, tax_rates, unit_ids)
        if problems:
            item_errors[f"items.{position}"] = problems
    if item_errors:
        errors.append({"index": index, "errors": item_errors})
        return []

    items = [
        dict(
            item,
            tax_slab=parse_id(item.get("tax_slab")),
            unit_of_measure=parse_id(item.get("unit_of_measure")),
        )
        for item in items
    ]

    totals = recalculate_line_items(items, tax_rates)
    _model, _parent, price_field = LINE_ITEM_SECTIONS[section]
    row[price_field] = totals.subtotal
    row["gst_amount"] = totals.total_tax
    return totals.items


@transaction.atomic
def reprice_from_items(record, section):
    """
    Derives a saved sale's (or purchase's) price and GST from its line items,
    computing every line forward from its unit price. Returns None when the
    record has no items; hand-entered totals are then left alone.
    """
    item_model, _parent, price_field = LINE_ITEM_SECTIONS[section]
    lines = list(record.items.all())
    if not lines:
        return None

    totals = recalculate_line_items(
        [
            {
                "quantity": line.quantity,
                "price_per_unit": line.price_per_unit,
                "tax_slab": line.tax_slab_id,
            }
            for line in lines
        ],
        tax_rates_map(TaxSlab.objects.all()),
    )
    for line, item in zip(lines, totals.items):
        item_model.objects.filter(pk=line.pk).update(
            tax_amount=item["tax_amount"], total_amount=item["total_amount"]
        )

    fields = {price_field: totals.subtotal, "gst_amount": totals.total_tax}
    type(record).objects.filter(pk=record.pk).update(**fields)
    for name, value in fields.items():
        setattr(record, name, value)
    return totals


@transaction.atomic
def replace_query_accounting(query, payload):
    """
    Replaces the sales, purchases, receipts, payments, expenses and incomes
    of ``query``. Only sections present in ``payload`` are touched; nothing
    is written when any row is invalid. Returns the saved count per section.
    """
    unknown = sorted(set(payload) - set(ACCOUNTING_SECTIONS))
    if unknown:
        raise InvalidPayload({name: ["Unknown section."] for name in unknown})

    tax_rates = tax_rates_map(TaxSlab.objects.all())
    unit_ids = set(UnitOfMeasure.objects.values_list("pk", flat=True))
    validated = {}
    errors = {}

    for section, rows in payload.items():
        if not isinstance(rows, list):
            errors[section] = ["Expected a list of rows."]
            continue

        section_errors = []
        bound = []
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                section_errors.append({"index": index, "errors": ["Expected an object."]})
                continue
            row = dict(row)
            items = _priced_items(
                section, row, tax_rates, unit_ids, section_errors, index
            )
            form = ACCOUNTING_SECTIONS[section](data=row)
            if not form.is_valid():
                section_errors.append(
                    {"index": index, "errors": form.errors.get_json_data()}
                )
            bound.append((form, items))

        if section_errors:
            errors[section] = section_errors
        validated[section] = bound

    if errors:
        raise InvalidPayload(errors)

    saved = {}
    for section, bound in validated.items():
        # Deleting through the queryset fires post_delete, so balances follow.
        getattr(query, section).all().delete()
        for form, items in bound:
            record = form.save(commit=False)
            record.tour_package_query = query
            record.save()
            if items:
                item_model, parent_field, _price = LINE_ITEM_SECTIONS[section]
                item_model.objects.bulk_create(
                    [
                        item_model(
                            **{parent_field: record},
                            product_name=item["product_name"],
                            description=item.get("description") or "",
                            quantity=item.get("quantity") or 1,
                            unit_of_measure_id=item.get("unit_of_measure"),
                            price_per_unit=item.get("price_per_unit") or 0,
                            tax_slab_id=item.get("tax_slab"),
                            tax_amount=item["tax_amount"],
                            total_amount=item["total_amount"],
                        )
                        for item in items
                    ]
                )
        saved[section] = len(bound)

    logger.info("Replaced accounting of %s: %s", query.query_number, saved)
    return saved
