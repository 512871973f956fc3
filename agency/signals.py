# agency/signals.py
import logging

from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from .balances import recalculate_account_balance, recalculate_accounts
from .models import (
    BankAccount,
    CashAccount,
    ExpenseDetail,
    IncomeDetail,
    PaymentDetail,
    ReceiptDetail,
    Transfer,
)

logger = logging.getLogger(__name__)


# --- 1. REMEMBER WHERE THE MONEY WAS ---
@receiver(pre_save, sender=ReceiptDetail)
@receiver(pre_save, sender=PaymentDetail)
@receiver(pre_save, sender=ExpenseDetail)
@receiver(pre_save, sender=IncomeDetail)
@receiver(pre_save, sender=Transfer)
def money_record_pre_save(sender, instance, **kwargs):
    """
    Stashes the accounts an existing record pointed at before this save,
    so an edit that moves it still refreshes the old account.
    """
    if not instance.pk:
        return
    previous = sender.objects.filter(pk=instance.pk).first()
    instance._previous_accounts = previous.affected_accounts() if previous else []


# --- 2. RECALCULATE ON SAVE ---
@receiver(post_save, sender=ReceiptDetail)
@receiver(post_save, sender=PaymentDetail)
@receiver(post_save, sender=ExpenseDetail)
@receiver(post_save, sender=IncomeDetail)
@receiver(post_save, sender=Transfer)
def money_record_post_save(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    previous = getattr(instance, "_previous_accounts", [])
    recalculate_accounts(list(previous) + instance.affected_accounts())
    instance._previous_accounts = []


# --- 3. RECALCULATE ON DELETE ---
@receiver(post_delete, sender=ReceiptDetail)
@receiver(post_delete, sender=PaymentDetail)
@receiver(post_delete, sender=ExpenseDetail)
@receiver(post_delete, sender=IncomeDetail)
@receiver(post_delete, sender=Transfer)
def money_record_post_delete(sender, instance, **kwargs):
    logger.info("%s #%s deleted, refreshing balances", sender.__name__, instance.pk)
    recalculate_accounts(instance.affected_accounts())


# --- 4. ACCOUNT OPENED OR OPENING BALANCE EDITED ---
@receiver(post_save, sender=BankAccount)
@receiver(post_save, sender=CashAccount)
def money_account_post_save(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    # Writes through update(), so this does not fire again.
    recalculate_account_balance(instance)
