# agency/admin.py
import logging

from django.contrib import admin, messages
from django.db import transaction
from django.urls import reverse
from django.utils.html import format_html
from unfold.admin import ModelAdmin
from unfold.contrib.filters.admin import RangeDateFilter

from . import whatsapp
from .balances import recalculate_accounts, recalculate_all_balances
from .catalog import recategorize_packages
from .exceptions import CampaignStateError
from .models import (
    Activity,
    AssociatePartner,
    BankAccount,
    CashAccount,
    Customer,
    ExpenseCategory,
    ExpenseDetail,
    Hotel,
    IncomeCategory,
    IncomeDetail,
    Inquiry,
    Itinerary,
    ItineraryMaster,
    Location,
    LocationSeasonalPeriod,
    PaymentDetail,
    PurchaseDetail,
    PurchaseItem,
    PurchaseReturn,
    ReceiptDetail,
    SaleDetail,
    SaleItem,
    SaleReturn,
    Supplier,
    TaxSlab,
    TourPackage,
    TourPackageQuery,
    Transfer,
    UnitOfMeasure,
    WhatsAppCampaign,
    WhatsAppCampaignRecipient,
    WhatsAppCustomer,
    WhatsAppMessage,
    WhatsAppSettings,
)
from .permissions import (
    can_access_query,
    can_manage_financials,
    get_accessible_queries_queryset,
    is_manager,
)
from .quotations import (
    create_query_from_inquiry,
    create_query_from_package,
    reprice_from_items,
)
from .seasons import check_year_coverage, format_period, seed_location_periods

logger = logging.getLogger(__name__)


class FinancialAdmin(ModelAdmin):
    """Money screens: only users who can manage financials see them."""

    def has_module_permission(self, request):
        return super().has_module_permission(request) and can_manage_financials(
            request.user
        )

    def has_view_permission(self, request, obj=None):
        return super().has_view_permission(request, obj) and can_manage_financials(
            request.user
        )

    def has_add_permission(self, request):
        return super().has_add_permission(request) and can_manage_financials(
            request.user
        )

    def has_change_permission(self, request, obj=None):
        return super().has_change_permission(request, obj) and can_manage_financials(
            request.user
        )

    def has_delete_permission(self, request, obj=None):
        return super().has_delete_permission(request, obj) and can_manage_financials(
            request.user
        )


# --- 1. CATALOG ---
class SeasonalPeriodInline(admin.TabularInline):
    model = LocationSeasonalPeriod
    fields = (
        "season_type",
        "name",
        ("start_month", "start_day"),
        ("end_month", "end_day"),
        "is_active",
    )
    extra = 0
    verbose_name_plural = "📅 Seasonal Periods"


@admin.action(description="📅 Seed seasonal periods from templates")
def seed_seasonal_periods(modeladmin, request, queryset):
    created = skipped = 0
    for location in queryset:
        count = seed_location_periods(location)
        if count:
            created += count
        else:
            skipped += 1
    messages.success(
        request, f"✅ Created {created} seasonal periods ({skipped} locations skipped)."
    )


@admin.register(Location)
class LocationAdmin(ModelAdmin):
    list_display = ("label", "tags", "season_coverage")
    search_fields = ("label", "tags")
    inlines = [SeasonalPeriodInline]
    actions = [seed_seasonal_periods]

    @admin.display(description="Season coverage")
    def season_coverage(self, obj):
        is_complete, gaps, overlaps = check_year_coverage(obj.seasonal_periods.all())
        if overlaps:
            return format_html(
                '<span style="color:red;">⚠️ {} overlaps</span>', len(overlaps)
            )
        if not is_complete:
            return "—"
        if gaps:
            return format_html('<span style="color:orange;">{} gaps</span>', len(gaps))
        return "✅ Full year"


@admin.register(Hotel)
class HotelAdmin(ModelAdmin):
    list_display = ("name", "location")
    list_filter = ("location",)
    search_fields = ("name", "location__label")


@admin.register(Activity)
class ActivityAdmin(ModelAdmin):
    list_display = ("title", "location")
    list_filter = ("location",)
    search_fields = ("title",)


@admin.register(ItineraryMaster)
class ItineraryMasterAdmin(ModelAdmin):
    list_display = ("title", "location", "day_number", "hotel", "meal_plan")
    list_filter = ("location", "meal_plan")
    search_fields = ("title", "description")
    filter_horizontal = ("activities",)


class ItineraryInline(admin.StackedInline):
    model = Itinerary
    fields = (
        ("day_number", "title"),
        "description",
        ("hotel", "meal_plan"),
        "activities",
    )
    filter_horizontal = ("activities",)
    extra = 0
    verbose_name_plural = "🗺️ Itinerary"


@admin.action(description="🏷️ Re-categorize (Domestic / International)")
def categorize_packages(modeladmin, request, queryset):
    changes = recategorize_packages(queryset)
    messages.success(request, f"✅ {len(changes)} packages re-categorized.")


@admin.action(description="📝 Create quotation from package")
def create_queries_from_packages(modeladmin, request, queryset):
    for package in queryset:
        query = create_query_from_package(package, created_by=request.user)
        messages.success(request, f"✅ Created {query.query_number}")


@admin.register(TourPackage)
class TourPackageAdmin(ModelAdmin):
    list_display = (
        "name",
        "location",
        "tour_category",
        "package_type",
        "price",
        "is_archived",
        "website_sort_order",
    )
    list_filter = ("tour_category", "package_type", "is_archived", "location")
    search_fields = ("name", "location__label")
    list_editable = ("website_sort_order",)
    inlines = [ItineraryInline]
    actions = [categorize_packages, create_queries_from_packages]


# --- 2. QUOTATIONS ---
@admin.action(description="📝 Create quotation")
def create_queries_from_inquiries(modeladmin, request, queryset):
    for inquiry in queryset:
        query = create_query_from_inquiry(inquiry, created_by=request.user)
        messages.success(request, f"✅ Created {query.query_number} for {inquiry}")


@admin.register(Inquiry)
class InquiryAdmin(ModelAdmin):
    list_display = ("customer_name", "customer_mobile", "location", "journey_date", "status")
    list_filter = ("status", "location", ("created_at", RangeDateFilter))
    search_fields = ("customer_name", "customer_mobile")
    actions = [create_queries_from_inquiries]


def statement_button(kind, obj):
    return format_html(
        '<a href="{}" class="button">📒 Statement</a>',
        reverse("statement", args=[kind, obj.pk]),
    )


@admin.register(Customer)
class CustomerAdmin(ModelAdmin):
    list_display = ("name", "contact", "email", "created_at", "statement")
    search_fields = ("name", "contact", "email")

    @admin.display(description="Statement")
    def statement(self, obj):
        return statement_button("customers", obj)


@admin.register(Supplier)
class SupplierAdmin(ModelAdmin):
    list_display = ("name", "contact", "gst_number", "statement")
    search_fields = ("name", "contact", "email")

    @admin.display(description="Statement")
    def statement(self, obj):
        return statement_button("suppliers", obj)


@admin.register(AssociatePartner)
class AssociatePartnerAdmin(ModelAdmin):
    list_display = ("name", "mobile", "email", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "mobile", "email")


@admin.register(TourPackageQuery)
class TourPackageQueryAdmin(ModelAdmin):
    list_display = (
        "query_number",
        "name",
        "customer_name",
        "location",
        "journey_date",
        "total_price",
        "is_confirmed",
        "documents",
    )
    list_filter = (
        "is_confirmed",
        "is_archived",
        "location",
        ("created_at", RangeDateFilter),
    )
    search_fields = ("query_number", "name", "customer_name", "customer_number")
    readonly_fields = ("query_number", "created_by", "created_at", "documents")
    autocomplete_fields = ["customer"]
    inlines = [ItineraryInline]

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return get_accessible_queries_queryset(request.user, qs)

    def has_change_permission(self, request, obj=None):
        base = super().has_change_permission(request, obj)
        if not base or obj is None:
            return base
        return can_access_query(request.user, obj)

    def has_delete_permission(self, request, obj=None):
        """Only managers can delete quotations."""
        base = super().has_delete_permission(request, obj)
        return base and is_manager(request.user)

    def save_model(self, request, obj, form, change):
        if not change and not obj.created_by:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)

    @admin.display(description="Documents")
    def documents(self, obj):
        if not obj.pk:
            return "-"
        return format_html(
            '<a href="{}" target="_blank" class="button">🖨️ Quotation</a> '
            '<a href="{}" target="_blank" class="button">🎫 Voucher</a>',
            reverse("query_pdf", args=[obj.pk]),
            reverse("query_voucher", args=[obj.pk]),
        )


@admin.register(LocationSeasonalPeriod)
class LocationSeasonalPeriodAdmin(ModelAdmin):
    list_display = ("location", "name", "season_type", "dates", "is_active")
    list_filter = ("season_type", "is_active", "location")

    @admin.display(description="Dates")
    def dates(self, obj):
        return format_period(obj)


# --- 3. ACCOUNTS ---
@admin.action(description="🔄 Recalculate balances")
def recalculate_selected_balances(modeladmin, request, queryset):
    with transaction.atomic():
        recalculate_accounts(queryset)
        messages.success(request, f"✅ Recalculated {queryset.count()} account balances.")


@admin.action(description="🔄 Recalculate ALL bank & cash balances")
def recalculate_every_balance(modeladmin, request, queryset):
    count = recalculate_all_balances()
    messages.success(request, f"✅ Recalculated {count} account balances.")


@admin.register(BankAccount)
class BankAccountAdmin(FinancialAdmin):
    list_display = (
        "account_name",
        "bank_name",
        "account_number",
        "opening_balance",
        "current_balance",
        "is_active",
    )
    readonly_fields = ("current_balance",)
    actions = [recalculate_selected_balances, recalculate_every_balance]


@admin.register(CashAccount)
class CashAccountAdmin(FinancialAdmin):
    list_display = ("account_name", "opening_balance", "current_balance", "is_active")
    readonly_fields = ("current_balance",)
    actions = [recalculate_selected_balances, recalculate_every_balance]


@admin.register(TaxSlab)
class TaxSlabAdmin(ModelAdmin):
    list_display = ("name", "percentage", "is_active")


@admin.register(UnitOfMeasure)
class UnitOfMeasureAdmin(ModelAdmin):
    list_display = ("name", "abbreviation")


@admin.register(ExpenseCategory)
class ExpenseCategoryAdmin(ModelAdmin):
    list_display = ("name", "is_active")


@admin.register(IncomeCategory)
class IncomeCategoryAdmin(ModelAdmin):
    list_display = ("name", "is_active")


# --- 4. SALES & PURCHASES ---
class SaleItemInline(admin.TabularInline):
    model = SaleItem
    fields = (
        "product_name",
        "quantity",
        "unit_of_measure",
        "price_per_unit",
        "tax_slab",
        "tax_amount",
        "total_amount",
    )
    readonly_fields = ("tax_amount", "total_amount")
    extra = 0


class SaleReturnInline(admin.TabularInline):
    model = SaleReturn
    fields = ("return_date", "amount", "gst_amount", "reason", "reference")
    extra = 0
    verbose_name_plural = "↩️ Returns"


class PurchaseItemInline(SaleItemInline):
    model = PurchaseItem


class PurchaseReturnInline(SaleReturnInline):
    model = PurchaseReturn


def voucher_button(kind, obj):
    return format_html(
        '<a href="{}" target="_blank" class="button">🖨️ Voucher</a>',
        reverse("transaction_voucher", args=[kind, obj.pk]),
    )


@admin.register(SaleDetail)
class SaleDetailAdmin(FinancialAdmin):
    list_display = (
        "sale_date",
        "invoice_number",
        "customer",
        "tour_package_query",
        "sale_price",
        "gst_amount",
        "status",
        "voucher",
    )
    list_filter = ("status", ("sale_date", RangeDateFilter))
    search_fields = ("invoice_number", "customer__name", "description")
    inlines = [SaleItemInline, SaleReturnInline]

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        reprice_from_items(form.instance, "sales")

    @admin.display(description="Voucher")
    def voucher(self, obj):
        return voucher_button("sales", obj)


@admin.register(PurchaseDetail)
class PurchaseDetailAdmin(FinancialAdmin):
    list_display = (
        "purchase_date",
        "bill_number",
        "supplier",
        "tour_package_query",
        "price",
        "gst_amount",
        "status",
        "voucher",
    )
    list_filter = ("status", ("purchase_date", RangeDateFilter))
    search_fields = ("bill_number", "supplier__name", "description")
    inlines = [PurchaseItemInline, PurchaseReturnInline]

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        reprice_from_items(form.instance, "purchases")

    @admin.display(description="Voucher")
    def voucher(self, obj):
        return voucher_button("purchases", obj)


# --- 5. CASH MOVEMENTS ---
@admin.register(ReceiptDetail)
class ReceiptDetailAdmin(FinancialAdmin):
    list_display = ("receipt_date", "customer", "amount", "account", "voucher")
    list_filter = (("receipt_date", RangeDateFilter), "bank_account", "cash_account")
    search_fields = ("customer__name", "reference", "note")

    @admin.display(description="Voucher")
    def voucher(self, obj):
        return voucher_button("receipts", obj)


@admin.register(PaymentDetail)
class PaymentDetailAdmin(FinancialAdmin):
    list_display = ("payment_date", "supplier", "amount", "method", "account", "voucher")
    list_filter = (
        "method",
        ("payment_date", RangeDateFilter),
        "bank_account",
        "cash_account",
    )
    search_fields = ("supplier__name", "transaction_id", "note")

    @admin.display(description="Voucher")
    def voucher(self, obj):
        return voucher_button("payments", obj)


@admin.register(ExpenseDetail)
class ExpenseDetailAdmin(FinancialAdmin):
    list_display = (
        "expense_date",
        "expense_category",
        "amount",
        "is_accrued",
        "paid_date",
        "account",
        "voucher",
    )
    list_filter = ("is_accrued", "expense_category", ("expense_date", RangeDateFilter))
    search_fields = ("description",)

    @admin.display(description="Voucher")
    def voucher(self, obj):
        return voucher_button("expenses", obj)


@admin.register(IncomeDetail)
class IncomeDetailAdmin(FinancialAdmin):
    list_display = ("income_date", "income_category", "amount", "account", "voucher")
    list_filter = ("income_category", ("income_date", RangeDateFilter))
    search_fields = ("description",)

    @admin.display(description="Voucher")
    def voucher(self, obj):
        return voucher_button("incomes", obj)


@admin.register(Transfer)
class TransferAdmin(FinancialAdmin):
    list_display = ("transfer_date", "amount", "source", "destination", "reference")
    list_filter = (("transfer_date", RangeDateFilter),)


# --- 6. WHATSAPP ---
@admin.register(WhatsAppSettings)
class WhatsAppSettingsAdmin(ModelAdmin):
    list_display = ("name", "api_url")


@admin.register(WhatsAppCustomer)
class WhatsAppCustomerAdmin(ModelAdmin):
    list_display = (
        "first_name",
        "last_name",
        "phone_number",
        "is_opted_in",
        "imported_from",
        "last_contacted_at",
    )
    list_filter = ("is_opted_in", ("created_at", RangeDateFilter))
    search_fields = ("first_name", "last_name", "phone_number", "email")
    readonly_fields = ("imported_from", "imported_at", "last_contacted_at")


class RecipientInline(admin.TabularInline):
    """Read-only delivery log."""

    model = WhatsAppCampaignRecipient
    fields = ("phone_number", "status", "error_code", "retry_count", "sent_at")
    readonly_fields = fields
    extra = 0
    can_delete = False


@admin.action(description="👥 Add all opted-in customers")
def add_all_customers(modeladmin, request, queryset):
    customers = WhatsAppCustomer.objects.filter(is_opted_in=True)
    for campaign in queryset:
        added = whatsapp.add_recipients(campaign, customers)
        messages.success(request, f"✅ {campaign.name}: {added} recipients added.")


@admin.action(description="📤 Send campaign now")
def send_campaigns(modeladmin, request, queryset):
    for campaign in queryset:
        try:
            if campaign.status in ("draft", "scheduled"):
                whatsapp.start_campaign(campaign)
            result = whatsapp.process_campaign(campaign)
        except CampaignStateError as e:
            messages.error(request, f"❌ {campaign.name}: {e}")
            continue

        if result["paused"]:
            messages.warning(request, f"⏸️ {campaign.name}: outside the send window.")
        else:
            messages.success(
                request,
                f"✅ {campaign.name}: {result['sent']} sent, {result['failed']} failed.",
            )


@admin.register(WhatsAppCampaign)
class WhatsAppCampaignAdmin(ModelAdmin):
    list_display = (
        "name",
        "status",
        "total_recipients",
        "sent_count",
        "failed_count",
        "scheduled_for",
    )
    list_filter = ("status",)
    readonly_fields = (
        "total_recipients",
        "sent_count",
        "failed_count",
        "started_at",
        "completed_at",
    )
    inlines = [RecipientInline]
    actions = [add_all_customers, send_campaigns]

    def save_model(self, request, obj, form, change):
        if not change and not obj.created_by:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(WhatsAppMessage)
class WhatsAppMessageAdmin(ModelAdmin):
    list_display = ("to", "direction", "status", "sent_at", "created_at")
    list_filter = ("status", "direction")
    search_fields = ("to", "body", "message_id")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
