# agency/management/commands/seed.py
import logging
import os
import secrets
from datetime import date, timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand

from agency.models import (
    Activity,
    BankAccount,
    CashAccount,
    Customer,
    ExpenseCategory,
    ExpenseDetail,
    Hotel,
    Inquiry,
    Itinerary,
    Location,
    PaymentDetail,
    PurchaseDetail,
    ReceiptDetail,
    SaleDetail,
    Supplier,
    TaxSlab,
    TourPackage,
)
from agency.quotations import create_query_from_inquiry
from agency.seasons import seed_location_periods

logger = logging.getLogger(__name__)


def get_user():
    from django.contrib.auth import get_user_model

    return get_user_model()


class Command(BaseCommand):
    help = "Seeds the database with initial testing data."

    def handle(self, *args, **options):
        self.stdout.write("Starting database seeding...")

        # 1. Create Superuser (Admin)
        User = get_user()
        u, created = User.objects.get_or_create(
            username="admin",
            defaults={
                "email": "admin@example.com",
                "is_staff": True,
                "is_superuser": True,
            },
        )
        if created:
            password = os.environ.get("SEED_ADMIN_PASSWORD", secrets.token_urlsafe(16))
            u.set_password(password)
            u.save()
            self.stdout.write(
                self.style.SUCCESS(f'Superuser "admin" created. Password: {password}')
            )
            self.stdout.write(
                self.style.WARNING("⚠️  Save this password now! It won't be shown again.")
            )
        else:
            self.stdout.write('Superuser "admin" already exists.')

        # 2. Catalog
        goa, _ = Location.objects.get_or_create(label="Goa")
        manali, _ = Location.objects.get_or_create(label="Manali")
        for location in (goa, manali):
            seed_location_periods(location)

        resort = Hotel.objects.create(name="Sea Breeze Resort", location=goa)
        cruise = Activity.objects.create(title="Sunset River Cruise", location=goa)
        package = TourPackage.objects.create(
            name="Goa Beach Escape",
            location=goa,
            duration="3 Nights 4 Days",
            price=Decimal("32000.00"),
            price_per_adult=Decimal("14000.00"),
            price_per_child=Decimal("4000.00"),
            inclusions="Hotel stay\nBreakfast\nAirport transfers",
        )
        for day, title in enumerate(["Arrival in Goa", "North Goa Beaches", "Departure"], 1):
            itinerary = Itinerary.objects.create(
                tour_package=package,
                day_number=day,
                title=title,
                hotel=resort if day < 3 else None,
                meal_plan="CP",
            )
            if day == 2:
                itinerary.activities.add(cruise)

        # 3. Quotation from an inquiry
        inquiry = Inquiry.objects.create(
            customer_name="Rohan Mehta",
            customer_mobile="+919876543210",
            location=goa,
            journey_date=date.today() + timedelta(days=30),
            adults=2,
            children=1,
        )
        query = create_query_from_inquiry(inquiry, package=package, created_by=u)

        # 4. Parties & Accounts
        customer = Customer.objects.create(name="Rohan Mehta", contact="+919876543210")
        hotel_supplier = Supplier.objects.create(
            name="Sea Breeze Resort", contact="reservations@seabreeze.example"
        )
        bank = BankAccount.objects.create(
            account_name="HDFC Current",
            bank_name="HDFC Bank",
            opening_balance=Decimal("100000.00"),
        )
        CashAccount.objects.create(
            account_name="Office Cash", opening_balance=Decimal("5000.00")
        )
        TaxSlab.objects.get_or_create(name="GST 5%", defaults={"percentage": Decimal("5")})
        office, _ = ExpenseCategory.objects.get_or_create(name="Office Rent")

        # 5. Money records (balances follow through signals)
        SaleDetail.objects.create(
            tour_package_query=query,
            customer=customer,
            sale_date=date.today(),
            invoice_number="INV-0001",
            sale_price=Decimal("32000.00"),
            gst_amount=Decimal("1600.00"),
        )
        PurchaseDetail.objects.create(
            tour_package_query=query,
            supplier=hotel_supplier,
            purchase_date=date.today(),
            bill_number="SB-778",
            price=Decimal("21000.00"),
            gst_amount=Decimal("1050.00"),
        )
        ReceiptDetail.objects.create(
            tour_package_query=query,
            customer=customer,
            receipt_date=date.today(),
            amount=Decimal("15000.00"),
            reference="UPI-5521",
            bank_account=bank,
        )
        PaymentDetail.objects.create(
            tour_package_query=query,
            supplier=hotel_supplier,
            payment_date=date.today(),
            amount=Decimal("10000.00"),
            method="bank_transfer",
            bank_account=bank,
        )
        ExpenseDetail.objects.create(
            expense_category=office,
            expense_date=date.today() + timedelta(days=5),
            amount=Decimal("25000.00"),
            is_accrued=True,
        )

        self.stdout.write(
            self.style.SUCCESS(
                "Database seeding complete. Go to http://localhost:8000/admin"
            )
        )
