"""
Django settings for the tourdesk project.
"""

import os
from pathlib import Path

import dj_database_url
import sentry_sdk
from django.urls import reverse_lazy
from sentry_sdk.integrations.django import DjangoIntegration

# Initialize Sentry
SENTRY_DSN = os.environ.get("SENTRY_DSN")
if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration()],
        traces_sample_rate=1.0,
        send_default_pii=True,
    )

# Build paths
BASE_DIR = Path(__file__).resolve().parent.parent

# Security
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-fallback-key")
DEBUG = os.environ.get("DEBUG") == "True"
ALLOWED_HOSTS = [
    "*",
]


# Application definition
INSTALLED_APPS = [
    "unfold",
    "unfold.contrib.filters",
    "simple_history",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django.contrib.humanize",
    "rangefilter",
    "agency.apps.AgencyConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "simple_history.middleware.HistoryRequestMiddleware",
]

ROOT_URLCONF = "tourdesk.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "tourdesk.wsgi.application"


# Database
DATABASES = {
    "default": dj_database_url.config(
        default=os.environ.get("DATABASE_URL", "sqlite:///db.sqlite3"), conn_max_age=600
    )
}


# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"
    },
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]


# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("TIME_ZONE", "Asia/Kolkata")
USE_I18N = True
USE_TZ = True


# Static files
STATIC_URL = "/static/"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"
    },
}
MEDIA_URL = "/media/"
MEDIA_ROOT = os.path.join(BASE_DIR, "media")

STATIC_ROOT = BASE_DIR / "staticfiles"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# --- AGENCY ---
# Prepended to local phone numbers (no "+" / "00" prefix) on import.
AGENCY_DEFAULT_COUNTRY_CODE = os.environ.get("AGENCY_DEFAULT_COUNTRY_CODE", "91")

# Used when no WhatsAppSettings row exists.
WHATSAPP_API_URL = os.environ.get("WHATSAPP_API_URL", "")
WHATSAPP_API_TOKEN = os.environ.get("WHATSAPP_API_TOKEN", "")


# --- LOGGING ---
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "{asctime} {levelname} {name}: {message}", "style": "{"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "agency": {
            "handlers": ["console"],
            "level": os.environ.get("AGENCY_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}


# --- UNFOLD CONFIGURATION ---
UNFOLD = {
    "SITE_TITLE": "Tourdesk",
    "SITE_HEADER": "Tourdesk Admin",
    "SITE_URL": "/",
    "SIDEBAR": {
        "show_search": True,
        "show_all_applications": False,
        "navigation": [
            {
                "title": "Sales Desk",
                "separator": True,
                "items": [
                    {
                        "title": "Inquiries",
                        "icon": "contact_phone",
                        "link": "/admin/agency/inquiry/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_inquiry"
                        ),
                    },
                    {
                        "title": "Tour Package Queries",
                        "icon": "request_quote",
                        "link": "/admin/agency/tourpackagequery/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_tourpackagequery"
                        ),
                    },
                    {
                        "title": "Customers",
                        "icon": "group",
                        "link": "/admin/agency/customer/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_customer"
                        ),
                    },
                    {
                        "title": "Suppliers",
                        "icon": "store",
                        "link": "/admin/agency/supplier/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_supplier"
                        ),
                    },
                    {
                        "title": "Associate Partners",
                        "icon": "handshake",
                        "link": "/admin/agency/associatepartner/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_associatepartner"
                        ),
                    },
                ],
            },
            {
                "title": "Catalog",
                "separator": True,
                "items": [
                    {
                        "title": "Tour Packages",
                        "icon": "luggage",
                        "link": "/admin/agency/tourpackage/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_tourpackage"
                        ),
                    },
                    {
                        "title": "Itinerary Masters",
                        "icon": "map",
                        "link": "/admin/agency/itinerarymaster/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_itinerarymaster"
                        ),
                    },
                    {
                        "title": "Locations & Seasons",
                        "icon": "location_on",
                        "link": "/admin/agency/location/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_location"
                        ),
                    },
                    {
                        "title": "Hotels",
                        "icon": "hotel",
                        "link": "/admin/agency/hotel/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_hotel"
                        ),
                    },
                ],
            },
            {
                "title": "Finance",
                "separator": True,
                "items": [
                    {
                        "title": "📊 Financial Dashboard",
                        "icon": "analytics",
                        "link": reverse_lazy("financial_dashboard"),
                    },
                    {
                        "title": "Supplier Ledger",
                        "icon": "account_balance_wallet",
                        "link": reverse_lazy("ledger", args=["suppliers"]),
                    },
                    {
                        "title": "Customer Ledger",
                        "icon": "people",
                        "link": reverse_lazy("ledger", args=["customers"]),
                    },
                    {
                        "title": "Sales",
                        "icon": "point_of_sale",
                        "link": "/admin/agency/saledetail/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_saledetail"
                        ),
                    },
                    {
                        "title": "Purchases",
                        "icon": "shopping_cart",
                        "link": "/admin/agency/purchasedetail/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_purchasedetail"
                        ),
                    },
                    {
                        "title": "Receipts",
                        "icon": "payments",
                        "link": "/admin/agency/receiptdetail/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_receiptdetail"
                        ),
                    },
                    {
                        "title": "Payments",
                        "icon": "outbound",
                        "link": "/admin/agency/paymentdetail/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_paymentdetail"
                        ),
                    },
                    {
                        "title": "Expenses",
                        "icon": "receipt_long",
                        "link": "/admin/agency/expensedetail/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_expensedetail"
                        ),
                    },
                    {
                        "title": "Bank Accounts",
                        "icon": "account_balance",
                        "link": "/admin/agency/bankaccount/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_bankaccount"
                        ),
                    },
                    {
                        "title": "Cash Accounts",
                        "icon": "savings",
                        "link": "/admin/agency/cashaccount/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_cashaccount"
                        ),
                    },
                ],
            },
            {
                "title": "WhatsApp",
                "separator": True,
                "items": [
                    {
                        "title": "Campaigns",
                        "icon": "campaign",
                        "link": "/admin/agency/whatsappcampaign/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_whatsappcampaign"
                        ),
                    },
                    {
                        "title": "Customers",
                        "icon": "contacts",
                        "link": "/admin/agency/whatsappcustomer/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_whatsappcustomer"
                        ),
                    },
                    {
                        "title": "Message Log",
                        "icon": "chat",
                        "link": "/admin/agency/whatsappmessage/",
                        "permission": lambda request: request.user.has_perm(
                            "agency.view_whatsappmessage"
                        ),
                    },
                ],
            },
        ],
    },
}

# --- SECURITY HARDENING ---
if not DEBUG:
    SECURE_SSL_REDIRECT = False
    SESSION_COOKIE_SECURE = False
    CSRF_COOKIE_SECURE = False
    SECURE_CONTENT_TYPE_NOSNIFF = True
    SECURE_BROWSER_XSS_FILTER = True
    X_FRAME_OPTIONS = "DENY"
