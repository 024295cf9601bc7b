from django.core.management.base import BaseCommand
from inventory.reaper import ExpiryReaper


class Command(BaseCommand):
    help = "Expire pending stock reservations that have passed their expires_at timestamp."

    def add_arguments(self, parser):
        parser.add_argument("--loop", action="store_true", help="Keep sweeping every --interval seconds.")
        parser.add_argument("--interval", type=float, default=None, help="Seconds between sweeps when looping.")
        parser.add_argument("--batch-size", type=int, default=None, help="Reservations fetched per page.")
        parser.add_argument("--max-sweeps", type=int, default=None, help="Stop looping after this many sweeps.")

    def handle(self, *args, **options):
        reaper = ExpiryReaper(
            batch_size=options["batch_size"],
            interval=options["interval"],
            use_lease=options["loop"],
        )
        if options["loop"]:
            sweeps = reaper.run_forever(max_sweeps=options["max_sweeps"])
            self.stdout.write(self.style.SUCCESS(f"Reaper stopped after {sweeps} sweeps."))
            return
        result = reaper.sweep()
        self.stdout.write(
            self.style.SUCCESS(
                f"Expired reservations: {result.expired} (skipped {result.skipped}, failed {result.failed})"
            )
        )
