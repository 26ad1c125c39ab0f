from django.core.management.base import BaseCommand

from loans.ingestion import ingest_loans
from loans.ledger import POLICIES


class Command(BaseCommand):
    help = "Import loans of one plan from an Excel or CSV spreadsheet."

    def add_arguments(self, parser):
        parser.add_argument("plan", choices=sorted(POLICIES))
        parser.add_argument("--file", dest="path", help="Spreadsheet to read (default: DATA_DIR/<plan>_loans.xlsx)")

    def handle(self, *args, **options):
        result = ingest_loans(options["plan"], options["path"])
        self.stdout.write(
            self.style.SUCCESS(f"Ingested {options['plan']} loans: created={result['created']} skipped={result['skipped']}")
        )
