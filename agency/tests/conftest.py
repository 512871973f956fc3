from decimal import Decimal

import pytest
from django.contrib.auth.models import Group, User

from agency.models import (
    BankAccount,
    CashAccount,
    Customer,
    Location,
    Supplier,
)


@pytest.fixture(autouse=True)
def plain_static_storage(settings):
    # Manifest storage needs collectstatic; tests render admin pages without it.
    settings.STORAGES = {
        "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
        "staticfiles": {
            "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"
        },
    }


@pytest.fixture
def goa(db):
    return Location.objects.create(label="Goa")


@pytest.fixture
def bank(db):
    return BankAccount.objects.create(
        account_name="HDFC Current", opening_balance=Decimal("1000.00")
    )


@pytest.fixture
def cash(db):
    return CashAccount.objects.create(
        account_name="Office Cash", opening_balance=Decimal("200.00")
    )


@pytest.fixture
def supplier(db):
    return Supplier.objects.create(name="Sea Breeze Resort", contact="resort@example.com")


@pytest.fixture
def customer(db):
    return Customer.objects.create(name="Rohan Mehta", contact="+919876543210")


@pytest.fixture
def agent(db):
    return User.objects.create_user("agent", password="pw", is_staff=True)


@pytest.fixture
def agent_client(client, agent):
    client.force_login(agent)
    return client


@pytest.fixture
def manager(db):
    user = User.objects.create_user("manager", password="pw", is_staff=True)
    group, _ = Group.objects.get_or_create(name="Managers")
    user.groups.add(group)
    return user
