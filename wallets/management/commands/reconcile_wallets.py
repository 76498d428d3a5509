from django.core.management.base import BaseCommand

from wallets.models import Wallet
from wallets.services import WalletService


class Command(BaseCommand):
    help = "Recomputes wallet balances from their ledgers and repairs any drift"

    def add_arguments(self, parser):
        parser.add_argument(
            "--user",
            type=int,
            dest="user_id",
            help="Only reconcile the wallet of this user id.",
        )

    def handle(self, *args, **options):
        wallets = Wallet.objects.select_related("user").order_by("pk")
        if options["user_id"]:
            wallets = wallets.filter(user_id=options["user_id"])

        repaired = 0
        for wallet in wallets:
            reconciled, _, fixed = WalletService.reconcile(wallet.pk)
            if not fixed:
                continue
            repaired += 1
            self.stdout.write(
                self.style.WARNING(
                    f"{wallet.user}: balance {wallet.balance} -> {reconciled.balance}, "
                    f"deposited {wallet.total_deposited} -> {reconciled.total_deposited}, "
                    f"withdrawn {wallet.total_withdrawn} -> {reconciled.total_withdrawn}"
                )
            )

        if repaired:
            self.stdout.write(self.style.SUCCESS(f"Repaired {repaired} wallet(s)."))
        else:
            self.stdout.write(self.style.SUCCESS("All wallets match their ledgers."))
