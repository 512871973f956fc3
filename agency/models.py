# agency/models.py
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.urls import reverse
from django.utils import timezone
from simple_history.models import HistoricalRecords

from .constants import CAMPAIGN_STATUSES  # Campaign lifecycle
from .constants import INQUIRY_STATUSES, INVOICE_STATUSES, MEAL_PLANS
from .constants import MESSAGE_DIRECTIONS, PAYMENT_METHODS, RECIPIENT_STATUSES
from .constants import SEASON_TYPES, TOUR_CATEGORIES, TOUR_PACKAGE_TYPES

ZERO = Decimal("0.00")


def money_field(verbose_name=None, **kwargs):
    kwargs.setdefault("default", ZERO)
    return models.DecimalField(
        verbose_name, max_digits=12, decimal_places=2, **kwargs
    )


# --- CATALOG ---
class Location(models.Model):
    label = models.CharField(max_length=200, unique=True)
    tags = models.CharField(max_length=200, blank=True)
    image_url = models.URLField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["label"]

    def __str__(self):
        return self.label


class Hotel(models.Model):
    name = models.CharField(max_length=200)
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="hotels"
    )
    link = models.URLField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.location})"


class Activity(models.Model):
    """Master activity, reused across itineraries."""

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    location = models.ForeignKey(
        Location, on_delete=models.CASCADE, related_name="activities"
    )

    class Meta:
        verbose_name_plural = "Activities"

    def __str__(self):
        return self.title


class ItineraryMaster(models.Model):
    """Reusable day template that agents copy into packages and queries."""

    location = models.ForeignKey(
        Location, on_delete=models.CASCADE, related_name="itinerary_masters"
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    day_number = models.PositiveSmallIntegerField(default=1)
    hotel = models.ForeignKey(Hotel, on_delete=models.SET_NULL, null=True, blank=True)
    meal_plan = models.CharField(max_length=10, choices=MEAL_PLANS, blank=True)
    activities = models.ManyToManyField(Activity, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Itinerary Master"
        ordering = ["location__label", "day_number"]

    def __str__(self):
        return f"{self.location} - Day {self.day_number}: {self.title}"


class TourPackage(models.Model):
    name = models.CharField("Package Name", max_length=255)
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="tour_packages"
    )
    tour_category = models.CharField(
        max_length=20, choices=TOUR_CATEGORIES, default="Domestic"
    )
    package_type = models.CharField(
        max_length=20, choices=TOUR_PACKAGE_TYPES, default="general"
    )
    duration = models.CharField(
        "Days / Nights", max_length=50, blank=True, help_text="e.g. 5 Nights 6 Days"
    )
    price = money_field("Base Price")
    price_per_adult = money_field()
    price_per_child = money_field()
    inclusions = models.TextField(blank=True)
    exclusions = models.TextField(blank=True)
    policies = models.JSONField(default=dict, blank=True)
    is_archived = models.BooleanField(default=False)
    website_sort_order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["website_sort_order", "-created_at"]

    def __str__(self):
        return self.name


# --- QUOTATIONS ---
class Inquiry(models.Model):
    customer_name = models.CharField(max_length=200)
    customer_mobile = models.CharField(max_length=40)
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="inquiries"
    )
    journey_date = models.DateField(null=True, blank=True)
    adults = models.PositiveSmallIntegerField(default=1)
    children = models.PositiveSmallIntegerField(default=0)
    status = models.CharField(max_length=20, choices=INQUIRY_STATUSES, default="PENDING")
    remarks = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "Inquiries"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.customer_name} → {self.location}"


class Customer(models.Model):
    name = models.CharField(max_length=200)
    contact = models.CharField(max_length=40, blank=True)
    email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Supplier(models.Model):
    name = models.CharField(max_length=200)
    contact = models.CharField(max_length=200, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    gst_number = models.CharField("GSTIN", max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class AssociatePartner(models.Model):
    """Agent or reseller who brings in customers."""

    name = models.CharField(max_length=200, unique=True)
    mobile = models.CharField(max_length=40, blank=True)
    email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class TourPackageQuery(models.Model):
    query_number = models.CharField(max_length=30, unique=True, blank=True, db_index=True)
    name = models.CharField("Query Name", max_length=255)
    customer_name = models.CharField(max_length=200, blank=True)
    customer_number = models.CharField(max_length=40, blank=True)
    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="queries",
    )
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="queries"
    )
    inquiry = models.ForeignKey(
        Inquiry, on_delete=models.SET_NULL, null=True, blank=True, related_name="queries"
    )
    tour_package = models.ForeignKey(
        TourPackage,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="queries",
        help_text="Package this quotation was copied from",
    )
    journey_date = models.DateField(null=True, blank=True)
    adults = models.PositiveSmallIntegerField(default=1)
    children = models.PositiveSmallIntegerField(default=0)
    total_price = money_field()
    # [{"name": "Per Adult", "price": "12000", "description": ""}, ...]
    pricing_section = models.JSONField(default=list, blank=True)
    remarks = models.TextField(blank=True)
    is_confirmed = models.BooleanField(default=False)
    is_archived = models.BooleanField(default=False)

    created_by = models.ForeignKey(
        "auth.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="queries_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = HistoricalRecords()

    class Meta:
        verbose_name = "Tour Package Query"
        verbose_name_plural = "Tour Package Queries"
        ordering = ["-created_at"]
        permissions = [
            ("view_financial_dashboard", "Can view financial dashboard and ledgers"),
            ("view_all_queries", "Can view all queries (not just own)"),
            ("manage_financials", "Can manage sales, payments, expenses and accounts"),
        ]

    def save(self, *args, **kwargs):
        if not self.query_number:
            today_str = timezone.localdate().strftime("%Y%m%d")
            prefix = f"TPQ-{today_str}"

            count = TourPackageQuery.objects.filter(
                query_number__startswith=prefix
            ).count()
            new_number = f"{prefix}-{count + 1:03d}"
            while TourPackageQuery.objects.filter(query_number=new_number).exists():
                count += 1
                new_number = f"{prefix}-{count + 1:03d}"
            self.query_number = new_number

        super().save(*args, **kwargs)

    def get_absolute_url(self):
        return reverse("query_pdf", args=[self.pk])

    def __str__(self):
        return f"{self.query_number} - {self.name}"


class Itinerary(models.Model):
    """One day of a package or of a quotation."""

    tour_package = models.ForeignKey(
        TourPackage,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="itineraries",
    )
    tour_package_query = models.ForeignKey(
        TourPackageQuery,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="itineraries",
    )
    day_number = models.PositiveSmallIntegerField(default=1)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    hotel = models.ForeignKey(Hotel, on_delete=models.SET_NULL, null=True, blank=True)
    meal_plan = models.CharField(max_length=10, choices=MEAL_PLANS, blank=True)
    activities = models.ManyToManyField(Activity, blank=True)

    class Meta:
        verbose_name_plural = "Itineraries"
        ordering = ["day_number", "id"]

    def clean(self):
        if bool(self.tour_package_id) == bool(self.tour_package_query_id):
            raise ValidationError(
                "An itinerary belongs to exactly one tour package or one query."
            )

    def __str__(self):
        return f"Day {self.day_number}: {self.title}"


# --- SEASONAL PRICING ---
class LocationSeasonalPeriod(models.Model):
    location = models.ForeignKey(
        Location, on_delete=models.CASCADE, related_name="seasonal_periods"
    )
    season_type = models.CharField(max_length=20, choices=SEASON_TYPES)
    name = models.CharField(max_length=100)
    start_month = models.PositiveSmallIntegerField()
    start_day = models.PositiveSmallIntegerField()
    end_month = models.PositiveSmallIntegerField()
    end_day = models.PositiveSmallIntegerField()
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Seasonal Period"
        ordering = ["location__label", "start_month", "start_day"]

    def clean(self):
        from .seasons import validate_period

        errors = validate_period(self)
        if errors:
            raise ValidationError(errors)

    def __str__(self):
        from .seasons import format_period

        return f"{self.location} - {self.name} ({format_period(self)})"


# --- ACCOUNTS ---
class MoneyAccount(models.Model):
    account_name = models.CharField(max_length=200)
    opening_balance = money_field()
    current_balance = money_field(editable=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True

    def __str__(self):
        return self.account_name


class BankAccount(MoneyAccount):
    bank_name = models.CharField(max_length=200, blank=True)
    account_number = models.CharField(max_length=50, blank=True)
    ifsc_code = models.CharField("IFSC", max_length=20, blank=True)
    branch = models.CharField(max_length=200, blank=True)

    history = HistoricalRecords()


class CashAccount(MoneyAccount):
    history = HistoricalRecords()


class TaxSlab(models.Model):
    name = models.CharField(max_length=50)
    percentage = models.DecimalField(max_digits=5, decimal_places=2)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.name} ({self.percentage}%)"


class UnitOfMeasure(models.Model):
    name = models.CharField(max_length=50)
    abbreviation = models.CharField(max_length=10)

    def __str__(self):
        return self.abbreviation


class ExpenseCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = "Expense Categories"

    def __str__(self):
        return self.name


class IncomeCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = "Income Categories"

    def __str__(self):
        return self.name


class AccountLinkedMixin(models.Model):
    """Money that moves through exactly one bank or cash account."""

    class Meta:
        abstract = True

    @property
    def account(self):
        return self.bank_account or self.cash_account

    def affected_accounts(self):
        return [acc for acc in (self.bank_account, self.cash_account) if acc]

    def clean(self):
        if self.bank_account_id and self.cash_account_id:
            raise ValidationError(
                "Choose either a bank account or a cash account, not both."
            )


# --- SALES & PURCHASES ---
class SaleDetail(models.Model):
    tour_package_query = models.ForeignKey(
        TourPackageQuery,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="sales",
    )
    customer = models.ForeignKey(
        Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name="sales"
    )
    sale_date = models.DateField()
    invoice_number = models.CharField(max_length=50, blank=True)
    due_date = models.DateField(null=True, blank=True)
    sale_price = money_field("Sale Price (excl. GST)")
    gst_amount = money_field("GST Amount")
    gst_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=INVOICE_STATUSES, default="pending")
    created_at = models.DateTimeField(auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["-sale_date", "-id"]

    @property
    def total_amount(self):
        return (self.sale_price or ZERO) + (self.gst_amount or ZERO)

    def __str__(self):
        return f"Sale {self.invoice_number or self.pk} - {self.total_amount}"


class PurchaseDetail(models.Model):
    tour_package_query = models.ForeignKey(
        TourPackageQuery,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="purchases",
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchases",
    )
    purchase_date = models.DateField()
    bill_number = models.CharField(max_length=50, blank=True)
    due_date = models.DateField(null=True, blank=True)
    price = money_field("Price (excl. GST)")
    gst_amount = money_field("GST Amount")
    gst_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=INVOICE_STATUSES, default="pending")
    created_at = models.DateTimeField(auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["-purchase_date", "-id"]

    @property
    def total_amount(self):
        return (self.price or ZERO) + (self.gst_amount or ZERO)

    def __str__(self):
        return f"Purchase {self.bill_number or self.pk} - {self.total_amount}"


class LineItem(models.Model):
    product_name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=1)
    unit_of_measure = models.ForeignKey(
        UnitOfMeasure, on_delete=models.SET_NULL, null=True, blank=True
    )
    price_per_unit = models.DecimalField(max_digits=14, decimal_places=4, default=0)
    tax_slab = models.ForeignKey(TaxSlab, on_delete=models.SET_NULL, null=True, blank=True)
    tax_amount = money_field()
    total_amount = money_field()

    class Meta:
        abstract = True

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"


class SaleItem(LineItem):
    sale = models.ForeignKey(SaleDetail, on_delete=models.CASCADE, related_name="items")


class PurchaseItem(LineItem):
    purchase = models.ForeignKey(
        PurchaseDetail, on_delete=models.CASCADE, related_name="items"
    )


class SaleReturn(models.Model):
    sale = models.ForeignKey(SaleDetail, on_delete=models.CASCADE, related_name="returns")
    return_date = models.DateField()
    amount = money_field("Amount (excl. GST)")
    gst_amount = money_field("GST Amount")
    reason = models.TextField(blank=True)
    reference = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def total_amount(self):
        return (self.amount or ZERO) + (self.gst_amount or ZERO)

    def __str__(self):
        return f"Return on {self.sale} - {self.total_amount}"


class PurchaseReturn(models.Model):
    purchase = models.ForeignKey(
        PurchaseDetail, on_delete=models.CASCADE, related_name="returns"
    )
    return_date = models.DateField()
    amount = money_field("Amount (excl. GST)")
    gst_amount = money_field("GST Amount")
    reason = models.TextField(blank=True)
    reference = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def total_amount(self):
        return (self.amount or ZERO) + (self.gst_amount or ZERO)

    def __str__(self):
        return f"Return on {self.purchase} - {self.total_amount}"


# --- CASH MOVEMENTS ---
class ReceiptDetail(AccountLinkedMixin):
    """Money received from a customer."""

    tour_package_query = models.ForeignKey(
        TourPackageQuery,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="receipts",
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="receipts",
    )
    receipt_date = models.DateField()
    amount = money_field()
    reference = models.CharField(max_length=100, blank=True)
    note = models.TextField(blank=True)
    bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="receipts",
    )
    cash_account = models.ForeignKey(
        CashAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="receipts",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["-receipt_date", "-id"]

    def __str__(self):
        return f"[IN] Receipt {self.amount} on {self.receipt_date}"


class PaymentDetail(AccountLinkedMixin):
    """Money paid to a supplier."""

    tour_package_query = models.ForeignKey(
        TourPackageQuery,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="payments",
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    payment_date = models.DateField()
    amount = money_field()
    method = models.CharField(max_length=20, choices=PAYMENT_METHODS, blank=True)
    transaction_id = models.CharField(max_length=100, blank=True)
    note = models.TextField(blank=True)
    bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )
    cash_account = models.ForeignKey(
        CashAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["-payment_date", "-id"]

    def __str__(self):
        return f"[OUT] Payment {self.amount} on {self.payment_date}"


class ExpenseDetail(AccountLinkedMixin):
    tour_package_query = models.ForeignKey(
        TourPackageQuery,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="expenses",
    )
    expense_category = models.ForeignKey(
        ExpenseCategory,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="expenses",
    )
    expense_date = models.DateField()
    amount = money_field()
    description = models.TextField(blank=True)
    # Accrued expenses are booked but not yet paid out of any account.
    is_accrued = models.BooleanField(default=False)
    paid_date = models.DateField(null=True, blank=True)
    bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="expenses",
    )
    cash_account = models.ForeignKey(
        CashAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="expenses",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["-expense_date", "-id"]

    @property
    def is_paid(self):
        return not self.is_accrued

    def clean(self):
        super().clean()
        if self.is_accrued and (self.bank_account_id or self.cash_account_id):
            raise ValidationError(
                "An accrued expense cannot be linked to an account until it is paid."
            )

    def __str__(self):
        category = self.expense_category or "Expense"
        return f"{category}: {self.amount} on {self.expense_date}"


class IncomeDetail(AccountLinkedMixin):
    tour_package_query = models.ForeignKey(
        TourPackageQuery,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="incomes",
    )
    income_category = models.ForeignKey(
        IncomeCategory,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="incomes",
    )
    income_date = models.DateField()
    amount = money_field()
    description = models.TextField(blank=True)
    bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="incomes",
    )
    cash_account = models.ForeignKey(
        CashAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="incomes",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["-income_date", "-id"]

    def __str__(self):
        category = self.income_category or "Income"
        return f"{category}: {self.amount} on {self.income_date}"


class Transfer(models.Model):
    transfer_date = models.DateField()
    amount = money_field()
    from_bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transfers_out",
    )
    from_cash_account = models.ForeignKey(
        CashAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transfers_out",
    )
    to_bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transfers_in",
    )
    to_cash_account = models.ForeignKey(
        CashAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transfers_in",
    )
    reference = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["-transfer_date", "-id"]

    @property
    def source(self):
        return self.from_bank_account or self.from_cash_account

    @property
    def destination(self):
        return self.to_bank_account or self.to_cash_account

    def affected_accounts(self):
        return [
            acc
            for acc in (
                self.from_bank_account,
                self.from_cash_account,
                self.to_bank_account,
                self.to_cash_account,
            )
            if acc
        ]

    def clean(self):
        if bool(self.from_bank_account_id) == bool(self.from_cash_account_id):
            raise ValidationError("Pick exactly one source account.")
        if bool(self.to_bank_account_id) == bool(self.to_cash_account_id):
            raise ValidationError("Pick exactly one destination account.")
        if self.source == self.destination:
            raise ValidationError("Source and destination must differ.")

    def __str__(self):
        return f"Transfer {self.amount}: {self.source} → {self.destination}"


# --- WHATSAPP ---
class WhatsAppSettings(models.Model):
    name = models.CharField(max_length=50, default="Configuration")
    api_url = models.URLField(
        help_text="Messages endpoint, e.g. https://graph.facebook.com/v22.0/<phone-id>/messages"
    )
    api_token = models.CharField(max_length=255)
    sender_id = models.CharField(max_length=50, blank=True)

    class Meta:
        verbose_name_plural = "WhatsApp Settings"

    def __str__(self):
        return self.name


class WhatsAppCustomer(models.Model):
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)
    phone_number = models.CharField(max_length=20, unique=True)
    email = models.EmailField(blank=True)
    tags = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    is_opted_in = models.BooleanField(default=True)
    metadata = models.JSONField(default=dict, blank=True)
    imported_from = models.CharField(max_length=200, blank=True)
    imported_at = models.DateTimeField(null=True, blank=True)
    last_contacted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "WhatsApp Customer"
        ordering = ["-created_at"]

    @property
    def full_name(self):
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def __str__(self):
        return f"{self.full_name} ({self.phone_number})"


class WhatsAppCampaign(models.Model):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    message_template = models.TextField(
        help_text="Message body. Use {first_name}, {last_name} or campaign variables."
    )
    template_variables = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=20, choices=CAMPAIGN_STATUSES, default="draft")
    scheduled_for = models.DateTimeField(null=True, blank=True)
    send_window_start = models.PositiveSmallIntegerField(
        default=9, help_text="Hour (0-23) from which messages may go out"
    )
    send_window_end = models.PositiveSmallIntegerField(
        default=21, help_text="Hour (0-23) after which sending pauses"
    )
    rate_limit = models.PositiveSmallIntegerField(
        default=10, help_text="Messages per minute"
    )
    total_recipients = models.PositiveIntegerField(default=0)
    sent_count = models.PositiveIntegerField(default=0)
    failed_count = models.PositiveIntegerField(default=0)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        "auth.User", on_delete=models.SET_NULL, null=True, blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "WhatsApp Campaign"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.get_status_display()})"


class WhatsAppCampaignRecipient(models.Model):
    campaign = models.ForeignKey(
        WhatsAppCampaign, on_delete=models.CASCADE, related_name="recipients"
    )
    customer = models.ForeignKey(
        WhatsAppCustomer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="campaign_entries",
    )
    phone_number = models.CharField(max_length=20)
    variables = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=20, choices=RECIPIENT_STATUSES, default="pending")
    message_id = models.CharField(max_length=100, blank=True)
    error_code = models.CharField(max_length=20, blank=True)
    error_message = models.TextField(blank=True)
    retry_count = models.PositiveSmallIntegerField(default=0)
    sent_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    last_retry_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["campaign", "phone_number"], name="unique_campaign_phone"
            )
        ]

    def __str__(self):
        return f"{self.phone_number} [{self.status}]"


class WhatsAppMessage(models.Model):
    to = models.CharField(max_length=40)
    sender = models.CharField(max_length=40, blank=True)
    body = models.TextField()
    message_id = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, default="sent")
    direction = models.CharField(
        max_length=10, choices=MESSAGE_DIRECTIONS, default="outbound"
    )
    error_message = models.TextField(blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.direction} → {self.to} ({self.status})"
