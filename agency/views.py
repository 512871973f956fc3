# agency/views.py
import json
import logging
from functools import wraps

from django.contrib import admin, messages
from django.contrib.admin.views.decorators import staff_member_required
from django.core.exceptions import ValidationError
from django.db.models import ProtectedError
from django.http import Http404, HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from . import whatsapp
from .balances import account_book, get_account
from .exceptions import (
    AccountNotFound,
    CampaignStateError,
    CsvImportError,
    InvalidPayload,
)
from .exports import pdf_response, rows_to_workbook, xlsx_response
from .finance import FinanceStats, resolve_period
from .forms import (
    CustomerImportForm,
    ExpenseForm,
    ExpensePaymentForm,
    ItineraryMasterForm,
    SeasonalPeriodForm,
    TourPackageForm,
    TourPackageQueryForm,
    WhatsAppCustomerForm,
    bind_form,
    errors_as_dict,
)
from .ledgers import (
    LEDGERS,
    PARTY_STATEMENTS,
    REPORT_KINDS,
    ledger_report,
    parse_date,
    parse_id,
    query_financial_summary,
    statement_report,
)
from .models import (
    AssociatePartner,
    ExpenseDetail,
    ItineraryMaster,
    Location,
    LocationSeasonalPeriod,
    TourPackage,
    TourPackageQuery,
    WhatsAppCampaign,
    WhatsAppCustomer,
)
from .permissions import (
    can_access_query,
    can_manage_financials,
    can_view_financial_dashboard,
    get_accessible_queries_queryset,
)
from .quotations import replace_query_accounting
from .seasons import check_year_coverage, format_period

logger = logging.getLogger(__name__)


# healthcheck for load balancers
def healthz(request):
    """Simple healthcheck for load balancers."""
    from django.db import connection

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        return HttpResponse("OK", status=200)
    except Exception:
        logger.exception("Healthcheck failed")
        return HttpResponse("DB Error", status=503)


# --- JSON API PLUMBING ---
def json_error(message, status=400, **extra):
    return JsonResponse({"error": message, **extra}, status=status)


def json_api(*methods, financial=False):
    """
    Staff-only JSON endpoint. Domain errors become 4xx JSON responses.
    ``financial`` endpoints additionally require can_manage_financials.
    """

    def decorator(view):
        @staff_member_required
        @require_http_methods(list(methods))
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            if financial and not can_manage_financials(request.user):
                return json_error("You don't have permission to manage financials.", 403)
            try:
                return view(request, *args, **kwargs)
            except AccountNotFound as e:
                return json_error(str(e), 404)
            except InvalidPayload as e:
                return json_error("Validation failed", 400, errors=e.errors)
            except (CampaignStateError, CsvImportError) as e:
                return json_error(str(e), 400)
            except ProtectedError:
                return json_error("Record is still referenced and cannot be deleted.", 409)

        return wrapper

    return decorator


def read_json(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except ValueError:
        raise InvalidPayload({"body": ["Invalid JSON."]}) from None
    if not isinstance(data, dict):
        raise InvalidPayload({"body": ["Expected a JSON object."]})
    return data


def save_form(form, status=200, serializer=None):
    if not form.is_valid():
        return json_error("Validation failed", 400, errors=errors_as_dict(form))
    obj = form.save()
    return JsonResponse(serializer(obj), status=status)


def _bool_param(value):
    if value is None or value == "":
        return None
    return str(value).lower() in ("1", "true", "yes", "on")


def _id_param(request, name):
    """Optional numeric id filter; a malformed value is a 400, not a 500."""
    value = request.GET.get(name)
    if not value:
        return None
    pk = parse_id(value)
    if pk is None:
        raise InvalidPayload({name: ["Expected a numeric id."]})
    return pk


# --- SERIALIZERS ---
def package_dict(package):
    return {
        "id": package.pk,
        "name": package.name,
        "location": package.location_id,
        "location_label": package.location.label,
        "tour_category": package.tour_category,
        "package_type": package.package_type,
        "duration": package.duration,
        "price": package.price,
        "price_per_adult": package.price_per_adult,
        "price_per_child": package.price_per_child,
        "inclusions": package.inclusions,
        "exclusions": package.exclusions,
        "policies": package.policies,
        "is_archived": package.is_archived,
        "website_sort_order": package.website_sort_order,
        "itineraries": [itinerary_dict(day) for day in package.itineraries.all()],
    }


def itinerary_dict(itinerary):
    return {
        "id": itinerary.pk,
        "day_number": itinerary.day_number,
        "title": itinerary.title,
        "description": itinerary.description,
        "hotel": itinerary.hotel_id,
        "meal_plan": itinerary.meal_plan,
        "activities": [a.pk for a in itinerary.activities.all()],
    }


def itinerary_master_dict(master):
    data = itinerary_dict(master)
    data["location"] = master.location_id
    return data


def query_dict(query):
    return {
        "id": query.pk,
        "query_number": query.query_number,
        "name": query.name,
        "customer_name": query.customer_name,
        "customer_number": query.customer_number,
        "customer": query.customer_id,
        "location": query.location_id,
        "inquiry": query.inquiry_id,
        "tour_package": query.tour_package_id,
        "journey_date": query.journey_date,
        "adults": query.adults,
        "children": query.children,
        "total_price": query.total_price,
        "pricing_section": query.pricing_section,
        "remarks": query.remarks,
        "is_confirmed": query.is_confirmed,
        "is_archived": query.is_archived,
        "itineraries": [itinerary_dict(day) for day in query.itineraries.all()],
    }


def period_dict(period):
    return {
        "id": period.pk,
        "location": period.location_id,
        "season_type": period.season_type,
        "name": period.name,
        "start_month": period.start_month,
        "start_day": period.start_day,
        "end_month": period.end_month,
        "end_day": period.end_day,
        "description": period.description,
        "is_active": period.is_active,
        "display": format_period(period),
    }


def expense_dict(expense):
    return {
        "id": expense.pk,
        "tour_package_query": expense.tour_package_query_id,
        "expense_category": expense.expense_category_id,
        "expense_date": expense.expense_date,
        "amount": expense.amount,
        "description": expense.description,
        "is_accrued": expense.is_accrued,
        "paid_date": expense.paid_date,
        "bank_account": expense.bank_account_id,
        "cash_account": expense.cash_account_id,
    }


def customer_dict(customer):
    return {
        "id": customer.pk,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "full_name": customer.full_name,
        "phone_number": customer.phone_number,
        "email": customer.email,
        "tags": customer.tags,
        "notes": customer.notes,
        "is_opted_in": customer.is_opted_in,
        "metadata": customer.metadata,
        "imported_from": customer.imported_from,
        "imported_at": customer.imported_at,
        "last_contacted_at": customer.last_contacted_at,
    }


# --- FINANCIAL DASHBOARD VIEW ---
@staff_member_required
def financial_dashboard(request):
    if not can_view_financial_dashboard(request.user):
        messages.error(
            request, "You don't have permission to view the financial dashboard."
        )
        return redirect("/admin/")

    context = admin.site.each_context(request)

    period = request.GET.get("period", "this_month")
    date_from, date_to = resolve_period(
        period, request.GET.get("date_from"), request.GET.get("date_to")
    )

    cash_in = FinanceStats.get_cash_in(date_from, date_to)
    cash_out = FinanceStats.get_cash_out(date_from, date_to)

    context.update(
        {
            "title": "Financial Dashboard",
            "cash_in": cash_in,
            "cash_out": cash_out,
            "net_cash_flow": cash_in - cash_out,
            "total_sales": FinanceStats.get_total_sales(date_from, date_to),
            "total_purchases": FinanceStats.get_total_purchases(date_from, date_to),
            # Snapshot values, not filtered by period
            "unpaid_expenses": FinanceStats.get_unpaid_expenses(),
            "account_totals": FinanceStats.get_account_totals(),
            "period": period,
            "date_from": date_from.strftime("%Y-%m-%d"),
            "date_to": date_to.strftime("%Y-%m-%d"),
            "ledger_kinds": REPORT_KINDS,
        }
    )
    return render(request, "agency/dashboard.html", context)


# --- LEDGERS ---
def _tabulate(report, pdf_url, xlsx_url):
    keys = [key for key, _header in report["columns"]]
    report["table"] = [[row.get(key) for key in keys] for row in report["rows"]]
    report["total_line"] = [report["totals"].get(key, "") for key in keys]
    report["pdf_url"] = pdf_url
    report["xlsx_url"] = xlsx_url
    return report


def _report_or_404(kind, request):
    if kind not in REPORT_KINDS:
        raise Http404(f"Unknown ledger: {kind}")
    querystring = request.GET.urlencode()
    return _tabulate(
        ledger_report(kind, request.GET.dict()),
        f"{reverse('ledger_export_pdf', args=[kind])}?{querystring}",
        f"{reverse('ledger_export_xlsx', args=[kind])}?{querystring}",
    )


def _party_or_404(kind, pk):
    if kind not in PARTY_STATEMENTS:
        raise Http404(f"No statements for: {kind}")
    model, _build = PARTY_STATEMENTS[kind]
    return get_object_or_404(model, pk=pk)


def _statement_or_404(kind, pk):
    party = _party_or_404(kind, pk)
    return _tabulate(
        statement_report(kind, party),
        reverse("statement_export_pdf", args=[kind, pk]),
        reverse("statement_export_xlsx", args=[kind, pk]),
    )


def _ledger_permission_denied(request):
    messages.error(request, "You don't have permission to view ledgers.")
    return redirect("/admin/")


def _render_report(request, report, statement=False):
    context = admin.site.each_context(request)
    context.update(
        {
            "title": report["title"],
            "report": report,
            "statement": statement,
            "filters": request.GET.dict(),
            "ledger_kinds": REPORT_KINDS,
        }
    )
    return render(request, "agency/ledger.html", context)


def _report_pdf(request, report, filename):
    context = {
        "report": report,
        "filters": request.GET.dict(),
        "generated_at": timezone.localtime(),
        "user": request.user,
    }
    return pdf_response(request, "agency/ledger_pdf.html", context, filename)


def _report_xlsx(report, filename):
    content = rows_to_workbook(
        report["title"], report["columns"], report["rows"], report["totals"]
    )
    return xlsx_response(content, filename)


def _report_json(report):
    return JsonResponse(
        {
            "kind": report["kind"],
            "rows": report["rows"],
            "totals": report["totals"],
            "category_totals": report["category_totals"],
        }
    )


@staff_member_required
def ledger_view(request, kind):
    if not can_view_financial_dashboard(request.user):
        return _ledger_permission_denied(request)
    return _render_report(request, _report_or_404(kind, request))


@staff_member_required
def ledger_export_pdf(request, kind):
    if not can_view_financial_dashboard(request.user):
        return _ledger_permission_denied(request)
    report = _report_or_404(kind, request)
    return _report_pdf(request, report, f"{kind}_ledger_{timezone.localdate():%Y%m%d}.pdf")


@staff_member_required
def ledger_export_xlsx(request, kind):
    if not can_view_financial_dashboard(request.user):
        return _ledger_permission_denied(request)
    report = _report_or_404(kind, request)
    return _report_xlsx(report, f"{kind}_ledger_{timezone.localdate():%Y%m%d}.xlsx")


@json_api("GET")
def api_ledger(request, kind):
    if not can_view_financial_dashboard(request.user):
        return json_error("You don't have permission to view ledgers.", 403)
    if kind not in REPORT_KINDS:
        return json_error(f"Unknown ledger: {kind}", 404)
    return _report_json(ledger_report(kind, request.GET.dict()))


# --- PARTY STATEMENTS ---
@staff_member_required
def statement_view(request, kind, pk):
    if not can_view_financial_dashboard(request.user):
        return _ledger_permission_denied(request)
    return _render_report(request, _statement_or_404(kind, pk), statement=True)


@staff_member_required
def statement_export_pdf(request, kind, pk):
    if not can_view_financial_dashboard(request.user):
        return _ledger_permission_denied(request)
    report = _statement_or_404(kind, pk)
    return _report_pdf(request, report, f"{kind}_{pk}_statement.pdf")


@staff_member_required
def statement_export_xlsx(request, kind, pk):
    if not can_view_financial_dashboard(request.user):
        return _ledger_permission_denied(request)
    report = _statement_or_404(kind, pk)
    return _report_xlsx(report, f"{kind}_{pk}_statement.xlsx")


@json_api("GET")
def api_statement(request, kind, pk):
    if not can_view_financial_dashboard(request.user):
        return json_error("You don't have permission to view ledgers.", 403)
    if kind not in PARTY_STATEMENTS:
        return json_error(f"No statements for: {kind}", 404)
    model, _build = PARTY_STATEMENTS[kind]
    party = model.objects.filter(pk=pk).first()
    if party is None:
        return json_error(f"{model._meta.verbose_name.title()} not found", 404)
    return _report_json(statement_report(kind, party))


# --- PDF DOCUMENTS ---
@staff_member_required
def transaction_voucher(request, kind, pk):
    """Printable voucher for a single sale, purchase, receipt, payment..."""
    if kind not in LEDGERS:
        raise Http404(f"Unknown voucher type: {kind}")
    if not can_view_financial_dashboard(request.user):
        return _ledger_permission_denied(request)

    config = LEDGERS[kind]
    record = get_object_or_404(
        config["model"].objects.select_related(*config["related"]), pk=pk
    )
    context = {
        "kind": kind,
        "record": record,
        "row": config["row"](record),
        "items": list(record.items.all()) if hasattr(record, "items") else [],
        "user": request.user,
    }
    return pdf_response(
        request, "agency/transaction_voucher.html", context, f"{kind}_{record.pk}.pdf"
    )


def _query_document(request, pk, template_name, prefix):
    query = get_object_or_404(
        TourPackageQuery.objects.select_related("location", "customer", "tour_package"),
        pk=pk,
    )
    if not can_access_query(request.user, query):
        raise Http404("Query not found")

    itineraries = query.itineraries.select_related("hotel").prefetch_related(
        "activities"
    )
    context = {
        "query": query,
        "itineraries": itineraries,
        "summary": query_financial_summary(query),
        "user": request.user,
        "base_url": request.build_absolute_uri("/")[:-1],
    }
    return pdf_response(
        request, template_name, context, f"{prefix}_{query.query_number}.pdf"
    )


@staff_member_required
def query_pdf(request, pk):
    return _query_document(request, pk, "agency/query_pdf.html", "quotation")


@staff_member_required
def query_voucher(request, pk):
    return _query_document(request, pk, "agency/voucher.html", "voucher")


# --- CATALOG API ---
@json_api("GET")
def api_tour_packages(request):
    packages = TourPackage.objects.select_related("location").prefetch_related(
        "itineraries__activities"
    )
    location = _id_param(request, "location")
    if location is not None:
        packages = packages.filter(location_id=location)
    archived = _bool_param(request.GET.get("archived"))
    if archived is not None:
        packages = packages.filter(is_archived=archived)
    return JsonResponse({"results": [package_dict(p) for p in packages]})


@json_api("GET", "PATCH", "DELETE")
def api_tour_package_detail(request, pk):
    package = get_object_or_404(TourPackage, pk=pk)
    if request.method == "DELETE":
        package.delete()
        return HttpResponse(status=204)
    if request.method == "PATCH":
        form = bind_form(TourPackageForm, read_json(request), package, partial=True)
        return save_form(form, serializer=package_dict)
    return JsonResponse(package_dict(package))


@json_api("GET", "POST")
def api_itinerary_masters(request):
    if request.method == "POST":
        form = bind_form(ItineraryMasterForm, read_json(request))
        return save_form(form, status=201, serializer=itinerary_master_dict)

    masters = ItineraryMaster.objects.prefetch_related("activities")
    location = _id_param(request, "location")
    if location is not None:
        masters = masters.filter(location_id=location)
    return JsonResponse({"results": [itinerary_master_dict(m) for m in masters]})


@json_api("GET", "PATCH", "DELETE")
def api_itinerary_master_detail(request, pk):
    master = get_object_or_404(ItineraryMaster, pk=pk)
    if request.method == "DELETE":
        master.delete()
        return HttpResponse(status=204)
    if request.method == "PATCH":
        form = bind_form(ItineraryMasterForm, read_json(request), master, partial=True)
        return save_form(form, serializer=itinerary_master_dict)
    return JsonResponse(itinerary_master_dict(master))


# --- QUOTATIONS API ---
@json_api("GET", "POST")
def api_queries(request):
    if request.method == "POST":
        form = bind_form(TourPackageQueryForm, read_json(request))
        if not form.is_valid():
            return json_error("Validation failed", 400, errors=errors_as_dict(form))
        query = form.save(commit=False)
        query.created_by = request.user
        query.save()
        return JsonResponse(query_dict(query), status=201)

    queries = get_accessible_queries_queryset(
        request.user, TourPackageQuery.objects.prefetch_related("itineraries")
    )
    for param, field in (("confirmed", "is_confirmed"), ("archived", "is_archived")):
        value = _bool_param(request.GET.get(param))
        if value is not None:
            queries = queries.filter(**{field: value})
    inquiry = _id_param(request, "inquiry")
    if inquiry is not None:
        queries = queries.filter(inquiry_id=inquiry)
    return JsonResponse({"results": [query_dict(q) for q in queries]})


def _accessible_query(request, pk):
    query = get_object_or_404(TourPackageQuery, pk=pk)
    if not can_access_query(request.user, query):
        raise Http404("Query not found")
    return query


@json_api("GET", "PATCH", "DELETE")
def api_query_detail(request, pk):
    query = _accessible_query(request, pk)
    if request.method == "DELETE":
        query.delete()
        return HttpResponse(status=204)
    if request.method == "PATCH":
        form = bind_form(TourPackageQueryForm, read_json(request), query, partial=True)
        return save_form(form, serializer=query_dict)
    data = query_dict(query)
    data["summary"] = query_financial_summary(query)
    return JsonResponse(data)


@json_api("PATCH", financial=True)
def api_query_accounting(request, pk):
    query = _accessible_query(request, pk)
    saved = replace_query_accounting(query, read_json(request))
    return JsonResponse({"saved": saved, "summary": query_financial_summary(query)})


# --- SEASONAL PERIODS API ---
@json_api("GET", "POST")
def api_seasonal_periods(request, location_id):
    location = get_object_or_404(Location, pk=location_id)

    if request.method == "POST":
        form = bind_form(SeasonalPeriodForm, read_json(request), location=location)
        return save_form(form, status=201, serializer=period_dict)

    periods = list(location.seasonal_periods.all())
    is_complete, gaps, overlaps = check_year_coverage(periods)
    return JsonResponse(
        {
            "location": location.pk,
            "results": [period_dict(p) for p in periods],
            "coverage": {
                "is_complete": is_complete,
                "gaps": [{"start": list(g.start), "end": list(g.end)} for g in gaps],
                "overlaps": [[a.pk, b.pk] for a, b in overlaps],
            },
        }
    )


@json_api("GET", "PATCH", "DELETE")
def api_seasonal_period_detail(request, location_id, period_id):
    period = LocationSeasonalPeriod.objects.filter(
        location_id=location_id, pk=period_id
    ).first()
    if period is None:
        return json_error("Seasonal period not found", 404)

    if request.method == "DELETE":
        period.delete()
        return HttpResponse(status=204)
    if request.method == "PATCH":
        form = bind_form(SeasonalPeriodForm, read_json(request), period, partial=True)
        return save_form(form, serializer=period_dict)
    return JsonResponse(period_dict(period))


# --- FINANCE API ---
@json_api("GET", financial=True)
def api_account_transactions(request, kind, pk):
    account = get_account(kind, pk)
    opening, entries = account_book(
        account,
        date_from=parse_date(request.GET.get("date_from")),
        date_to=parse_date(request.GET.get("date_to")),
    )
    closing = entries[-1].balance if entries else opening
    return JsonResponse(
        {
            "account": {
                "id": account.pk,
                "kind": kind,
                "name": account.account_name,
                "current_balance": account.current_balance,
            },
            "opening_balance": opening,
            "closing_balance": closing,
            "transactions": [entry._asdict() for entry in entries],
        }
    )


@json_api("GET", "POST", financial=True)
def api_expenses(request):
    if request.method == "POST":
        form = bind_form(ExpenseForm, read_json(request))
        return save_form(form, status=201, serializer=expense_dict)

    expenses = ExpenseDetail.objects.all()
    accrued = _bool_param(request.GET.get("accrued"))
    if accrued is not None:
        expenses = expenses.filter(is_accrued=accrued)
    query = _id_param(request, "query")
    if query is not None:
        expenses = expenses.filter(tour_package_query_id=query)
    return JsonResponse({"results": [expense_dict(e) for e in expenses]})


@json_api("GET", "PATCH", "DELETE", financial=True)
def api_expense_detail(request, pk):
    expense = get_object_or_404(ExpenseDetail, pk=pk)
    if request.method == "DELETE":
        expense.delete()
        return HttpResponse(status=204)
    if request.method == "PATCH":
        form = bind_form(ExpenseForm, read_json(request), expense, partial=True)
        return save_form(form, serializer=expense_dict)
    return JsonResponse(expense_dict(expense))


@json_api("POST", financial=True)
def api_expense_pay(request, pk):
    expense = get_object_or_404(ExpenseDetail, pk=pk)
    if not expense.is_accrued:
        return json_error("Expense is already paid.", 400)

    form = ExpensePaymentForm(data=read_json(request))
    if not form.is_valid():
        return json_error("Validation failed", 400, errors=errors_as_dict(form))

    expense.bank_account, expense.cash_account = form.cleaned_data["account"]
    expense.paid_date = form.cleaned_data["paid_date"]
    expense.is_accrued = False
    try:
        expense.full_clean()
    except ValidationError as e:
        return json_error("Validation failed", 400, errors=e.message_dict)
    expense.save()

    logger.info("Expense #%s paid from %s", expense.pk, expense.account)
    return JsonResponse(expense_dict(expense))


# --- WHATSAPP API ---
@json_api("GET", "POST")
def api_whatsapp_customers(request):
    if request.method == "POST":
        form = bind_form(WhatsAppCustomerForm, read_json(request))
        return save_form(form, status=201, serializer=customer_dict)

    tags = [t for t in request.GET.get("tags", "").split(",") if t]
    try:
        page = whatsapp.list_customers(
            search=request.GET.get("search"),
            tags=tags,
            opted_in=_bool_param(request.GET.get("opted_in")),
            offset=request.GET.get("offset", 0),
            limit=request.GET.get("limit", 50),
        )
    except ValueError:
        return json_error("offset and limit must be integers", 400)
    return JsonResponse(
        {
            "results": [customer_dict(c) for c in page["items"]],
            "total": page["total"],
            "tag_counts": page["tag_counts"],
        }
    )


@json_api("GET", "PATCH", "DELETE")
def api_whatsapp_customer_detail(request, pk):
    customer = get_object_or_404(WhatsAppCustomer, pk=pk)
    if request.method == "DELETE":
        customer.delete()
        return HttpResponse(status=204)
    if request.method == "PATCH":
        form = bind_form(WhatsAppCustomerForm, read_json(request), customer, partial=True)
        return save_form(form, serializer=customer_dict)
    return JsonResponse(customer_dict(customer))


@json_api("POST")
def api_whatsapp_customer_import(request):
    form = CustomerImportForm(request.POST, request.FILES)
    if not form.is_valid():
        return json_error("Validation failed", 400, errors=errors_as_dict(form))

    upload = form.cleaned_data["file"]
    try:
        text = upload.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        return json_error("File must be UTF-8 encoded CSV", 400)

    parsed = whatsapp.parse_customer_csv(
        text,
        source_name=upload.name,
        default_tags=form.cleaned_data["default_tags"],
        partner_map=dict(
            AssociatePartner.objects.filter(is_active=True).values_list("name", "pk")
        ),
    )
    created = updated = 0
    if not form.cleaned_data["dry_run"]:
        created, updated = whatsapp.upsert_customers(
            parsed["customers"], imported_from=upload.name
        )

    return JsonResponse(
        {
            "total_rows": parsed["total_rows"],
            "valid_rows": parsed["valid_rows"],
            "skipped_rows": parsed["skipped_rows"],
            "unique_phones": parsed["unique_phones"],
            "duplicates": parsed["duplicates"],
            "errors": parsed["errors"],
            "created": created,
            "updated": updated,
        }
    )


@json_api("GET")
def api_whatsapp_campaign(request, pk):
    campaign = get_object_or_404(WhatsAppCampaign, pk=pk)
    return JsonResponse(whatsapp.campaign_stats(campaign))


@json_api("POST")
def api_whatsapp_campaign_send(request, pk):
    campaign = get_object_or_404(WhatsAppCampaign, pk=pk)
    if campaign.status in ("draft", "scheduled"):
        whatsapp.start_campaign(campaign)
    result = whatsapp.process_campaign(campaign)
    stats = whatsapp.campaign_stats(campaign)
    stats["result"] = result
    return JsonResponse(stats)
