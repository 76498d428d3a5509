from django.core.management.base import BaseCommand
from django.db import transaction

from predictions.derivation import legacy_to_non_viable
from predictions.models import Prediction


class Command(BaseCommand):
    help = (
        "Converts legacy viable numbers into non-viable numbers and clears "
        "the legacy fields"
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report what would change without writing.",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        predictions = Prediction.objects.order_by("pk")

        converted = cleared = skipped = 0
        with transaction.atomic():
            for prediction in predictions:
                if not (
                    prediction.legacy_viable_primary or prediction.legacy_viable_secondary
                ):
                    continue
                if prediction.non_viable_primary or prediction.non_viable_secondary:
                    # Non-viable numbers already win; the legacy copy is dead data.
                    cleared += 1
                else:
                    primary, secondary = legacy_to_non_viable(
                        prediction.lottery_code,
                        prediction.legacy_viable_primary,
                        prediction.legacy_viable_secondary,
                    )
                    if not (primary or secondary):
                        # Every number was viable; there is nothing to exclude
                        # and clearing would lose the recommendation.
                        skipped += 1
                        self.stdout.write(
                            self.style.WARNING(
                                f"Prediction {prediction.pk}: all numbers viable, left as is."
                            )
                        )
                        continue
                    prediction.non_viable_primary = primary
                    prediction.non_viable_secondary = secondary
                    converted += 1

                prediction.legacy_viable_primary = []
                prediction.legacy_viable_secondary = []
                if not dry_run:
                    prediction.save(
                        update_fields=[
                            "non_viable_primary",
                            "non_viable_secondary",
                            "legacy_viable_primary",
                            "legacy_viable_secondary",
                            "updated_at",
                        ]
                    )

        prefix = "Would migrate" if dry_run else "Migrated"
        self.stdout.write(
            self.style.SUCCESS(
                f"{prefix} {converted} prediction(s); cleared {cleared}; skipped {skipped}."
            )
        )
