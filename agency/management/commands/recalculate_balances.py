# agency/management/commands/recalculate_balances.py
from django.core.management.base import BaseCommand, CommandError

from agency.balances import (
    recalculate_all_balances,
    recalculate_bank_balance,
    recalculate_cash_balance,
)
from agency.exceptions import AccountNotFound


class Command(BaseCommand):
    help = "Recomputes current balances of bank and cash accounts from their records."

    def add_arguments(self, parser):
        parser.add_argument("--bank", type=int, help="Only this bank account id.")
        parser.add_argument("--cash", type=int, help="Only this cash account id.")

    def handle(self, *args, **options):
        try:
            if options["bank"]:
                balance = recalculate_bank_balance(options["bank"])
                self.stdout.write(self.style.SUCCESS(f"Bank balance: {balance}"))
                return
            if options["cash"]:
                balance = recalculate_cash_balance(options["cash"])
                self.stdout.write(self.style.SUCCESS(f"Cash balance: {balance}"))
                return
        except AccountNotFound as e:
            raise CommandError(str(e))

        count = recalculate_all_balances()
        self.stdout.write(self.style.SUCCESS(f"Recalculated {count} account balances."))
