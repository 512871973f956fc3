# agency/urls.py
from django.urls import path

from . import views

urlpatterns = [
    # --- Healthcheck ---
    path("healthz/", views.healthz, name="healthz"),
    # --- Dashboards & Ledgers ---
    path("dashboard/", views.financial_dashboard, name="financial_dashboard"),
    path("ledgers/<str:kind>/", views.ledger_view, name="ledger"),
    path(
        "ledgers/<str:kind>/export.pdf",
        views.ledger_export_pdf,
        name="ledger_export_pdf",
    ),
    path(
        "ledgers/<str:kind>/export.xlsx",
        views.ledger_export_xlsx,
        name="ledger_export_xlsx",
    ),
    path("ledgers/<str:kind>/<int:pk>/", views.statement_view, name="statement"),
    path(
        "ledgers/<str:kind>/<int:pk>/export.pdf",
        views.statement_export_pdf,
        name="statement_export_pdf",
    ),
    path(
        "ledgers/<str:kind>/<int:pk>/export.xlsx",
        views.statement_export_xlsx,
        name="statement_export_xlsx",
    ),
    # --- PDF Documents ---
    path("queries/<int:pk>/pdf/", views.query_pdf, name="query_pdf"),
    path("queries/<int:pk>/voucher/", views.query_voucher, name="query_voucher"),
    path(
        "vouchers/<str:kind>/<int:pk>/",
        views.transaction_voucher,
        name="transaction_voucher",
    ),
    # --- Catalog API ---
    path("api/tour-packages/", views.api_tour_packages, name="api_tour_packages"),
    path(
        "api/tour-packages/<int:pk>/",
        views.api_tour_package_detail,
        name="api_tour_package_detail",
    ),
    path(
        "api/itineraries-master/",
        views.api_itinerary_masters,
        name="api_itinerary_masters",
    ),
    path(
        "api/itineraries-master/<int:pk>/",
        views.api_itinerary_master_detail,
        name="api_itinerary_master_detail",
    ),
    # --- Quotations API ---
    path("api/tour-package-queries/", views.api_queries, name="api_queries"),
    path(
        "api/tour-package-queries/<int:pk>/",
        views.api_query_detail,
        name="api_query_detail",
    ),
    path(
        "api/tour-package-queries/<int:pk>/accounting/",
        views.api_query_accounting,
        name="api_query_accounting",
    ),
    # --- Seasons API ---
    path(
        "api/locations/<int:location_id>/seasonal-periods/",
        views.api_seasonal_periods,
        name="api_seasonal_periods",
    ),
    path(
        "api/locations/<int:location_id>/seasonal-periods/<int:period_id>/",
        views.api_seasonal_period_detail,
        name="api_seasonal_period_detail",
    ),
    # --- Finance API ---
    path(
        "api/bank-accounts/<int:pk>/transactions/",
        views.api_account_transactions,
        {"kind": "bank"},
        name="api_bank_account_transactions",
    ),
    path(
        "api/cash-accounts/<int:pk>/transactions/",
        views.api_account_transactions,
        {"kind": "cash"},
        name="api_cash_account_transactions",
    ),
    path("api/expenses/", views.api_expenses, name="api_expenses"),
    path("api/expenses/<int:pk>/", views.api_expense_detail, name="api_expense_detail"),
    path("api/expenses/<int:pk>/pay/", views.api_expense_pay, name="api_expense_pay"),
    path("api/ledgers/<str:kind>/", views.api_ledger, name="api_ledger"),
    path(
        "api/ledgers/<str:kind>/<int:pk>/",
        views.api_statement,
        name="api_statement",
    ),
    # --- WhatsApp API ---
    path(
        "api/whatsapp/customers/",
        views.api_whatsapp_customers,
        name="api_whatsapp_customers",
    ),
    path(
        "api/whatsapp/customers/import/",
        views.api_whatsapp_customer_import,
        name="api_whatsapp_customer_import",
    ),
    path(
        "api/whatsapp/customers/<int:pk>/",
        views.api_whatsapp_customer_detail,
        name="api_whatsapp_customer_detail",
    ),
    path(
        "api/whatsapp/campaigns/<int:pk>/",
        views.api_whatsapp_campaign,
        name="api_whatsapp_campaign",
    ),
    path(
        "api/whatsapp/campaigns/<int:pk>/send/",
        views.api_whatsapp_campaign_send,
        name="api_whatsapp_campaign_send",
    ),
]
