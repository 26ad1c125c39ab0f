import logging
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from django.conf import settings

from .exceptions import LedgerError
from .serializers import SERIALIZERS, camelize
from .services import get_ledger

logger = logging.getLogger(__name__)


def default_path(plan: str) -> Path:
    return Path(settings.DATA_DIR) / f"{plan}_loans.xlsx"


def load_sheet(path: Path) -> pd.DataFrame:
    if not path.exists():
        logger.error("File not found: %s", path)
        return pd.DataFrame()
    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype=str)
    else:
        df = pd.read_excel(path)
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    return df


def _cell(value):
    if isinstance(value, pd.Timestamp):
        return value.date().isoformat()
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def ingest_loans(plan: str, path: Optional[Path] = None) -> Dict[str, int]:
    """Create loans of ``plan`` from a spreadsheet, one row per loan.

    Rows go through the same validation and derivation as the HTTP API; rows
    that fail are logged and counted as skipped.
    """
    loan_ledger = get_ledger(plan)
    create_serializer_class = SERIALIZERS[plan][0]
    path = Path(path) if path else default_path(plan)

    df = load_sheet(path)
    df.columns = [camelize(c) for c in df.columns]
    required = {name for name, field in create_serializer_class().fields.items() if field.required}
    missing = required - set(df.columns)
    if missing:
        logger.error("Missing columns in %s: %s", path, sorted(missing))
        return {"created": 0, "skipped": len(df)}

    created = skipped = 0
    for index, row in df.iterrows():
        payload = {column: _cell(value) for column, value in row.items() if not pd.isna(value)}
        serializer = create_serializer_class(data=payload)
        if not serializer.is_valid():
            skipped += 1
            logger.warning("Skipping %s loan row %s: %s", plan, index, serializer.errors)
            continue
        try:
            loan_ledger.create(serializer.validated_data)
        except LedgerError as exc:
            skipped += 1
            logger.warning("Skipping %s loan row %s: %s", plan, index, exc.detail)
            continue
        created += 1

    logger.info("%s loans ingested from %s: created=%s skipped=%s", plan.capitalize(), path, created, skipped)
    return {"created": created, "skipped": skipped}
