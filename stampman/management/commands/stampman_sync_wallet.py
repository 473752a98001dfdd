"""Management command to push ledger state to customers' wallet passes."""

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.management.base import BaseCommand, CommandError

from stampman.models import CustomerLedger
from stampman.wallet.sync import WalletSync, update_from_ledger


class Command(BaseCommand):
    help = "Push current points and stamps (and an optional promotion) to wallet passes"

    def add_arguments(self, parser):
        target = parser.add_mutually_exclusive_group(required=True)
        target.add_argument("--customer", help="Profile id of a single customer")
        target.add_argument("--all", action="store_true", help="Every customer with a ledger")
        parser.add_argument("--title", default="", help="Promotion title")
        parser.add_argument("--message", default="", help="Promotion message")
        parser.add_argument("--birthday", action="store_true", help="Show the birthday banner")

    def handle(self, *args, **options):
        ledgers = CustomerLedger.objects.select_related("customer")
        if options["customer"]:
            ledgers = ledgers.filter(customer_id=options["customer"])
            try:
                found = ledgers.exists()
            except DjangoValidationError:
                found = False
            if not found:
                raise CommandError(f"No ledger for customer {options['customer']}")

        updated = skipped = failed = 0
        for ledger in ledgers.iterator():
            update = update_from_ledger(
                ledger,
                promotion_title=options["title"],
                promotion_message=options["message"],
                is_birthday=options["birthday"],
            )
            for result in WalletSync.run(update):
                if result.outcome == "updated":
                    updated += 1
                elif result.outcome == "skipped":
                    skipped += 1
                else:
                    failed += 1
                    self.stderr.write(
                        f"{result.mirror} failed for {ledger.customer_id}: {result.detail}"
                    )

        self.stdout.write(
            self.style.SUCCESS(
                f"Wallet sync done: {updated} updated, {skipped} skipped, {failed} failed."
            )
        )
