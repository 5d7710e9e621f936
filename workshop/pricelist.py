# ortoist/workshop/pricelist.py

from decimal import Decimal, InvalidOperation
import io
import logging

import pandas as pd

from workshop.errors import ValidationError
from workshop.models import PriceListEntry

logger = logging.getLogger(__name__)

TYPE_COLUMN = "JOB TYPE (SINGLE JAW)"
PRICE_COLUMN = "PRICE"
NOTES_COLUMN = "PRICE NOTES"
SHEET_NAME = "Price List"

# Headers of the workshop's original Turkish template, still accepted on import.
LEGACY_COLUMNS = {
    "YAPILACAK İŞİN CİNSİ (TEK ÇENE)": TYPE_COLUMN,
    "FİYAT": PRICE_COLUMN,
    "FİYATA EKLENECEK BİLGİLER": NOTES_COLUMN,
}

TEMPLATE_ROWS = [
    {TYPE_COLUMN: "Standard Treatment", PRICE_COLUMN: 5000, NOTES_COLUMN: "Sample note"},
    {TYPE_COLUMN: "Premium Treatment", PRICE_COLUMN: 7500, NOTES_COLUMN: "Includes premium service"},
]


def price_list_key(technician_email):
    return f"{technician_email}_priceList"


def _cell_text(value):
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _cell_price(value):
    text = _cell_text(value)
    try:
        price = Decimal(text) if text else Decimal(0)
    except InvalidOperation:
        return Decimal(0)
    return price if price.is_finite() else Decimal(0)


def read_price_list(file, filename=None):
    """Reads price list entries from an uploaded .xlsx or .csv file.

    Rows without a job type or with a price that is not positive are skipped.
    """
    name = filename or getattr(file, 'name', '') or str(file)
    try:
        if name.lower().endswith('.csv'):
            frame = pd.read_csv(file)
        else:
            frame = pd.read_excel(file, sheet_name=0, engine="openpyxl")
    except Exception as e:
        logger.warning("Could not read price list file %s: %s", name, e)
        raise ValidationError("The file could not be read. Please upload a file based on the template.") from e

    frame = frame.rename(columns=lambda c: LEGACY_COLUMNS.get(str(c).strip(), str(c).strip()))
    if TYPE_COLUMN not in frame.columns or PRICE_COLUMN not in frame.columns:
        raise ValidationError("The file does not contain the job type and price columns of the template.")

    entries = []
    for row in frame.to_dict(orient='records'):
        job_type = _cell_text(row.get(TYPE_COLUMN))
        price = _cell_price(row.get(PRICE_COLUMN))
        if not job_type or price <= 0:
            continue
        entries.append(PriceListEntry(job_type, price, _cell_text(row.get(NOTES_COLUMN))))

    if not entries:
        raise ValidationError("No valid rows were found in the file. Please upload a file based on the template.")
    return entries


def _to_excel(rows):
    buffer = io.BytesIO()
    frame = pd.DataFrame(rows, columns=[TYPE_COLUMN, PRICE_COLUMN, NOTES_COLUMN])
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name=SHEET_NAME)
        sheet = writer.sheets[SHEET_NAME]
        sheet.column_dimensions['A'].width = 40
        sheet.column_dimensions['B'].width = 15
        sheet.column_dimensions['C'].width = 40
    return buffer.getvalue()


def price_list_template():
    """An .xlsx template with two sample rows."""
    return _to_excel(TEMPLATE_ROWS)


def export_price_list(entries):
    return _to_excel([
        {TYPE_COLUMN: e.type, PRICE_COLUMN: float(e.price), NOTES_COLUMN: e.notes} for e in entries
    ])


class PriceListService:
    """Each technician's price list, replaced as a whole."""

    def __init__(self, store):
        self._store = store

    def get(self, technician_email):
        return [PriceListEntry.from_dict(item) for item in self._store.get(price_list_key(technician_email), [])]

    def replace(self, technician_email, entries):
        entries = list(entries)
        for entry in entries:
            if not entry.type:
                raise ValidationError("Every price list entry needs a job type.")
            if entry.price < 0:
                raise ValidationError(f"Price of '{entry.type}' must not be negative.")
        self._store.set(price_list_key(technician_email), [e.to_dict() for e in entries])
        logger.info("Stored %s price list entries for %s", len(entries), technician_email)
        return entries

    def clear(self, technician_email):
        self._store.remove(price_list_key(technician_email))

    def search(self, technician_email, term):
        entries = self.get(technician_email)
        if not term:
            return entries
        term = term.lower()
        return [e for e in entries if term in e.type.lower()]

    def rename(self, old_email, new_email):
        with self._store.lock:
            if old_email == new_email or price_list_key(old_email) not in self._store:
                return
            self._store.write(
                {price_list_key(new_email): self._store.get(price_list_key(old_email))},
                removals=[price_list_key(old_email)],
            )
