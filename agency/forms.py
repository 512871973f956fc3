# agency/forms.py
from django import forms
from django.db import models
from django.forms.models import model_to_dict

from .models import (
    BankAccount,
    CashAccount,
    ExpenseDetail,
    IncomeDetail,
    ItineraryMaster,
    LocationSeasonalPeriod,
    PaymentDetail,
    PurchaseDetail,
    ReceiptDetail,
    SaleDetail,
    TourPackage,
    TourPackageQuery,
    WhatsAppCustomer,
)
from .whatsapp import normalize_phone, sanitize_tags


# --- 1. PARTIAL UPDATES ---
def _plain(value):
    if isinstance(value, models.Model):
        return value.pk
    if isinstance(value, (list, tuple)) and value and isinstance(value[0], models.Model):
        return [obj.pk for obj in value]
    return value


def bind_form(form_class, data, instance=None, partial=False, **kwargs):
    """
    Binds a ModelForm to decoded JSON. With ``partial`` (PATCH) the fields
    missing from ``data`` keep the instance's current values.
    """
    if partial and instance is not None:
        fields = form_class._meta.fields
        current = {
            key: _plain(value)
            for key, value in model_to_dict(instance, fields=fields).items()
        }
        current.update(data)
        data = current
    return form_class(data=data, instance=instance, **kwargs)


def errors_as_dict(form):
    return {field: [str(e) for e in errors] for field, errors in form.errors.items()}


class DefaultedFieldsMixin:
    """
    Listed fields may be left out of the payload; the instance value (the
    model default on create) is kept. Checkboxes included.
    """

    defaulted_fields = ()

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name in self.defaulted_fields:
            if name in self.fields:
                self.fields[name].required = False

    def clean(self):
        cleaned_data = super().clean()
        for name in self.defaulted_fields:
            if name in self.fields and name not in self.data:
                cleaned_data[name] = getattr(self.instance, name)
        return cleaned_data


class JSONListMixin:
    """Empty JSON lists come back from forms.JSONField as None."""

    json_list_fields = ()

    def clean(self):
        cleaned_data = super().clean()
        for name in self.json_list_fields:
            if name in cleaned_data and cleaned_data[name] is None:
                cleaned_data[name] = []
        return cleaned_data


# --- 2. CATALOG ---
class TourPackageForm(DefaultedFieldsMixin, forms.ModelForm):
    defaulted_fields = (
        "tour_category",
        "package_type",
        "price",
        "price_per_adult",
        "price_per_child",
        "website_sort_order",
    )

    class Meta:
        model = TourPackage
        fields = [
            "name",
            "location",
            "tour_category",
            "package_type",
            "duration",
            "price",
            "price_per_adult",
            "price_per_child",
            "inclusions",
            "exclusions",
            "policies",
            "is_archived",
            "website_sort_order",
        ]

    def clean_policies(self):
        return self.cleaned_data.get("policies") or {}


class ItineraryMasterForm(DefaultedFieldsMixin, forms.ModelForm):
    defaulted_fields = ("day_number",)

    class Meta:
        model = ItineraryMaster
        fields = [
            "location",
            "title",
            "description",
            "day_number",
            "hotel",
            "meal_plan",
            "activities",
        ]

    def clean(self):
        cleaned_data = super().clean()
        location = cleaned_data.get("location")
        hotel = cleaned_data.get("hotel")
        if location and hotel and hotel.location_id != location.pk:
            self.add_error("hotel", "Hotel must be in the itinerary's location.")
        return cleaned_data


# --- 3. QUOTATIONS ---
class TourPackageQueryForm(DefaultedFieldsMixin, JSONListMixin, forms.ModelForm):
    json_list_fields = ("pricing_section",)
    defaulted_fields = ("adults", "children", "total_price")

    class Meta:
        model = TourPackageQuery
        fields = [
            "name",
            "customer_name",
            "customer_number",
            "customer",
            "location",
            "inquiry",
            "tour_package",
            "journey_date",
            "adults",
            "children",
            "total_price",
            "pricing_section",
            "remarks",
            "is_confirmed",
            "is_archived",
        ]

    def clean_pricing_section(self):
        section = self.cleaned_data.get("pricing_section")
        if section and not isinstance(section, list):
            raise forms.ValidationError("Pricing section must be a list of rows.")
        return section


# --- 4. SEASONS ---
class SeasonalPeriodForm(DefaultedFieldsMixin, forms.ModelForm):
    """Location comes from the URL, never from the payload."""

    defaulted_fields = ("is_active",)

    class Meta:
        model = LocationSeasonalPeriod
        fields = [
            "season_type",
            "name",
            "start_month",
            "start_day",
            "end_month",
            "end_day",
            "description",
            "is_active",
        ]

    def __init__(self, *args, location=None, **kwargs):
        super().__init__(*args, **kwargs)
        if location is not None:
            self.instance.location = location


# --- 5. MONEY RECORDS ---
def split_account(value):
    """'bank:3' -> (BankAccount, None); 'cash:1' -> (None, CashAccount)."""
    kind, _sep, account_id = str(value or "").partition(":")
    if kind == "bank":
        return BankAccount.objects.filter(pk=account_id or None).first(), None
    if kind == "cash":
        return None, CashAccount.objects.filter(pk=account_id or None).first()
    return None, None


class ExpenseForm(forms.ModelForm):
    class Meta:
        model = ExpenseDetail
        fields = [
            "tour_package_query",
            "expense_category",
            "expense_date",
            "amount",
            "description",
            "is_accrued",
            "paid_date",
            "bank_account",
            "cash_account",
        ]

    def clean_amount(self):
        amount = self.cleaned_data["amount"]
        if amount is not None and amount <= 0:
            raise forms.ValidationError("Amount must be greater than zero.")
        return amount


class ExpensePaymentForm(forms.Form):
    """Settles an accrued expense out of one account."""

    account = forms.CharField(help_text="bank:<id> or cash:<id>")
    paid_date = forms.DateField()

    def clean_account(self):
        bank_account, cash_account = split_account(self.cleaned_data["account"])
        if not bank_account and not cash_account:
            raise forms.ValidationError("Unknown account.")
        return bank_account, cash_account


class SaleForm(DefaultedFieldsMixin, forms.ModelForm):
    defaulted_fields = ("sale_price", "gst_amount", "status")

    class Meta:
        model = SaleDetail
        fields = [
            "customer",
            "sale_date",
            "invoice_number",
            "due_date",
            "sale_price",
            "gst_amount",
            "gst_percentage",
            "description",
            "status",
        ]


class PurchaseForm(DefaultedFieldsMixin, forms.ModelForm):
    defaulted_fields = ("price", "gst_amount", "status")

    class Meta:
        model = PurchaseDetail
        fields = [
            "supplier",
            "purchase_date",
            "bill_number",
            "due_date",
            "price",
            "gst_amount",
            "gst_percentage",
            "description",
            "status",
        ]


class ReceiptForm(forms.ModelForm):
    class Meta:
        model = ReceiptDetail
        fields = [
            "customer",
            "receipt_date",
            "amount",
            "reference",
            "note",
            "bank_account",
            "cash_account",
        ]


class PaymentForm(forms.ModelForm):
    class Meta:
        model = PaymentDetail
        fields = [
            "supplier",
            "payment_date",
            "amount",
            "method",
            "transaction_id",
            "note",
            "bank_account",
            "cash_account",
        ]


class QueryExpenseForm(ExpenseForm):
    class Meta(ExpenseForm.Meta):
        fields = [f for f in ExpenseForm.Meta.fields if f != "tour_package_query"]


class IncomeForm(forms.ModelForm):
    class Meta:
        model = IncomeDetail
        fields = [
            "income_category",
            "income_date",
            "amount",
            "description",
            "bank_account",
            "cash_account",
        ]


# Sections of PATCH /api/tour-package-queries/<id>/accounting/
ACCOUNTING_SECTIONS = {
    "sales": SaleForm,
    "purchases": PurchaseForm,
    "receipts": ReceiptForm,
    "payments": PaymentForm,
    "expenses": QueryExpenseForm,
    "incomes": IncomeForm,
}


# --- 6. WHATSAPP ---
class WhatsAppCustomerForm(DefaultedFieldsMixin, JSONListMixin, forms.ModelForm):
    json_list_fields = ("tags",)
    defaulted_fields = ("is_opted_in",)

    class Meta:
        model = WhatsAppCustomer
        fields = [
            "first_name",
            "last_name",
            "phone_number",
            "email",
            "tags",
            "notes",
            "is_opted_in",
        ]

    def clean_phone_number(self):
        try:
            return normalize_phone(self.cleaned_data.get("phone_number"))
        except ValueError as e:
            raise forms.ValidationError(str(e))

    def clean_tags(self):
        tags = self.cleaned_data.get("tags")
        if tags and not isinstance(tags, list):
            raise forms.ValidationError("Tags must be a list.")
        return sanitize_tags(tags)


class CustomerImportForm(forms.Form):
    file = forms.FileField()
    default_tags = forms.CharField(required=False, help_text="Comma separated")
    dry_run = forms.BooleanField(required=False)

    def clean_default_tags(self):
        raw = self.cleaned_data.get("default_tags") or ""
        return sanitize_tags(raw.split(","))
