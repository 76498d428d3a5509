import secrets

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from predictions.models import Profile
from wallets.services import WalletService


class Command(BaseCommand):
    help = "Creates the first admin account; requires the configured setup secret"

    def add_arguments(self, parser):
        parser.add_argument("--username", required=True)
        parser.add_argument("--password", required=True)
        parser.add_argument("--email", default="")
        parser.add_argument(
            "--setup-secret",
            required=True,
            help="Must match the ADMIN_SETUP_SECRET setting.",
        )

    def handle(self, *args, **options):
        expected = getattr(settings, "ADMIN_SETUP_SECRET", "")
        if not expected:
            raise CommandError("ADMIN_SETUP_SECRET is not configured.")
        if not secrets.compare_digest(options["setup_secret"], expected):
            raise CommandError("Invalid setup secret.")

        User = get_user_model()
        if User.objects.filter(is_staff=True).exists():
            raise CommandError("An admin account already exists.")

        with transaction.atomic():
            user = User.objects.create_superuser(
                username=options["username"],
                email=options["email"],
                password=options["password"],
            )
            Profile.objects.create(user=user, prediction_notifications_enabled=False)
            WalletService.get_wallet(user)

        self.stdout.write(self.style.SUCCESS(f"Admin {user.username} created."))
