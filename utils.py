# utils.py
import logging
from decimal import Decimal, ROUND_HALF_UP

import pandas as pd

from database import Database
from models import CatalogEntry, Client, to_decimal

logger = logging.getLogger("counter_sale.utils")

CATALOG_COLUMNS = ["designation", "price", "stock", "category", "barcode"]
CLIENT_COLUMNS = ["id", "name", "phone", "email", "address", "balance", "loyalty_points", "discount"]


def _format_number(amount, thousands: str, decimal: str) -> str:
    """Up to two fraction digits, trailing zeros dropped."""
    value = to_decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    whole, frac = f"{abs(value):,.2f}".split(".")
    frac = frac.rstrip("0")
    text = whole.replace(",", thousands)
    if frac:
        text += decimal + frac
    return ("-" if value < 0 else "") + text


def format_currency(amount, currency: str = "DZD") -> str:
    """Display formatting only; no conversion between currencies."""
    if currency == "DZD":
        return f"{_format_number(amount, ' ', ',')} DA"
    if currency == "EUR":
        return f"{_format_number(amount, ' ', ',')} €"
    if currency == "USD":
        text = _format_number(amount, ",", ".")
        if text.startswith("-"):
            return f"-${text[1:]}"
        return f"${text}"
    return f"{_format_number(amount, ',', '.')} {currency}"


def _text(value, default=""):
    return str(value).strip() if pd.notna(value) else default


def _number(value, default=0):
    return value if pd.notna(value) else default


def _upsert_catalog(db: Database, df: pd.DataFrame) -> int:
    missing = [c for c in ("designation", "price") if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns: {', '.join(missing)}")
    count = 0
    for line, row in df.iterrows():
        barcode = _text(row.get("barcode"))
        designation = _text(row["designation"])
        try:
            if not designation:
                raise ValueError("Missing designation.")
            entry = CatalogEntry(None, designation, row["price"],
                                 _number(row.get("stock")), _text(row.get("category")), barcode)
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping catalog row {line + 2}: {e}")
            continue
        if barcode:
            existing = db.get_product_by_barcode(barcode)
        else:
            existing = db.get_product_by_designation(designation)
        if existing:
            db.update_product(existing['id'], entry.designation, entry.unit_price,
                              entry.stock_quantity, entry.category)
        else:
            db.add_product(entry.designation, entry.unit_price, entry.stock_quantity,
                           entry.category, entry.barcode or None)
        count += 1
    return count


def import_catalog_csv(db: Database, file_path: str) -> int:
    """
    Read CSV with columns designation,price,stock,category,barcode
    and upsert into products table by barcode, or by designation for
    rows without one. Invalid rows are skipped; returns the rows stored.
    """
    df = pd.read_csv(file_path, dtype={"barcode": str, "category": str})
    return _upsert_catalog(db, df)


def import_catalog_excel(db: Database, file_path: str) -> int:
    """Same as import_catalog_csv for an Excel sheet."""
    try:
        df = pd.read_excel(file_path, dtype={"barcode": str, "category": str})
    except Exception as e:
        raise ValueError(f"Failed to import from Excel: {str(e)}") from e
    return _upsert_catalog(db, df)


def import_catalog(db: Database, file_path: str) -> int:
    if str(file_path).lower().endswith((".xlsx", ".xls")):
        return import_catalog_excel(db, file_path)
    return import_catalog_csv(db, file_path)


def import_clients_csv(db: Database, file_path: str) -> int:
    """Read CSV with CLIENT_COLUMNS; rows with an existing id are replaced."""
    df = pd.read_csv(file_path, dtype={"id": str, "phone": str})
    if "id" not in df.columns or "name" not in df.columns:
        raise ValueError("Missing columns: id, name")
    count = 0
    for line, row in df.iterrows():
        try:
            client = Client(
                _text(row["id"]),
                _text(row["name"]),
                phone=_text(row.get("phone")),
                email=_text(row.get("email")),
                address=_text(row.get("address")),
                balance=_number(row.get("balance")),
                loyalty_points=int(_number(row.get("loyalty_points"))),
                discount_percent=_number(row.get("discount")),
            )
            if not client.id or not client.name:
                raise ValueError("Missing id or name.")
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping client row {line + 2}: {e}")
            continue
        db.add_client(client.id, client.name, phone=client.phone, email=client.email,
                      address=client.address, balance=client.balance,
                      loyalty_points=client.loyalty_points, discount=client.discount_percent)
        count += 1
    return count


def export_catalog_csv(db: Database, file_path: str):
    """Dump catalog to CSV."""
    df = pd.DataFrame(db.list_products(), columns=["id"] + CATALOG_COLUMNS)
    df.to_csv(file_path, index=False)
    return file_path
