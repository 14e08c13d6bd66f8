# models.py
import logging
from decimal import Decimal, InvalidOperation

logger = logging.getLogger("counter_sale.models")


def to_decimal(value) -> Decimal:
    """Convert int/float/str to Decimal without binary float noise."""
    try:
        value = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}") from None
    if not value.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return value


def to_quantity(value) -> int:
    """Whole number of units; floats and bools are refused rather than truncated."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Quantity must be a whole number, got {value!r}.")
    if value < 1:
        raise ValueError("Quantity must be at least 1.")
    return value


# --- Errors ---

class SaleError(Exception):
    """Recoverable, session-local condition reported to the cashier."""
    code = "SALE_ERROR"
    default_message = "Opération impossible"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateProduct(SaleError):
    code = "DUPLICATE_PRODUCT"
    default_message = "Ce produit est déjà dans la liste"

    def __init__(self, designation, message=None):
        self.designation = designation
        super().__init__(message)


class EmptyCart(SaleError):
    code = "EMPTY_CART"
    default_message = "Aucun produit dans la liste"


class NoClient(SaleError):
    code = "NO_CLIENT"
    default_message = "Veuillez sélectionner un client"


class NoSelection(SaleError):
    code = "NO_SELECTION"
    default_message = "Veuillez sélectionner une ligne"


class LookupFailure(SaleError):
    """Exact barcode resolution failed; triggers the manual search fallback."""
    code = "LOOKUP_FAILURE"
    default_message = "Produit introuvable"

    def __init__(self, code_value, reason=None):
        self.code_value = code_value
        self.reason = reason
        super().__init__(reason)


# --- Catalog ---

class CatalogEntry:
    """Represents a product supplied by the catalog provider (read-only)."""
    __slots__ = ("id", "designation", "unit_price", "stock_quantity", "category", "barcode")

    def __init__(self, id, designation: str, unit_price, stock_quantity: int = 0,
                 category: str = "", barcode: str = ""):
        unit_price = to_decimal(unit_price)
        if unit_price < 0:
            raise ValueError(f"Negative price for {designation!r}.")
        stock_quantity = int(stock_quantity or 0)
        if stock_quantity < 0:
            raise ValueError(f"Negative stock for {designation!r}.")
        self.id = id
        self.designation = designation
        self.unit_price = unit_price
        self.stock_quantity = stock_quantity
        self.category = category or ""
        self.barcode = barcode or ""

    @classmethod
    def from_row(cls, row):
        """Build from a provider dict or sqlite3.Row."""
        return cls(
            id=row["id"],
            designation=row["designation"],
            unit_price=row["price"],
            stock_quantity=row["stock"],
            category=row["category"],
            barcode=row["barcode"],
        )

    def to_dict(self):
        return {
            "id": self.id,
            "designation": self.designation,
            "price": self.unit_price,
            "stock": self.stock_quantity,
            "category": self.category,
            "barcode": self.barcode,
        }

    def __eq__(self, other):
        if not isinstance(other, CatalogEntry):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash((self.id, self.designation, self.barcode))

    def __repr__(self):
        return f"CatalogEntry({self.id!r}, {self.designation!r}, {self.unit_price})"


class LineItem:
    """One line in the current cart."""

    def __init__(self, id, designation: str, unit_price, quantity: int = 1):
        quantity = to_quantity(quantity)
        unit_price = to_decimal(unit_price)
        if unit_price < 0:
            raise ValueError("Unit price cannot be negative.")
        self.id = id
        self.designation = designation
        self._unit_price = unit_price
        self._quantity = quantity
        self._recompute()

    def _recompute(self):
        self.line_total = self._unit_price * self._quantity

    @property
    def unit_price(self) -> Decimal:
        return self._unit_price

    @unit_price.setter
    def unit_price(self, value):
        value = to_decimal(value)
        if value < 0:
            raise ValueError("Unit price cannot be negative.")
        self._unit_price = value
        self._recompute()

    @property
    def quantity(self) -> int:
        return self._quantity

    @quantity.setter
    def quantity(self, value):
        self._quantity = to_quantity(value)
        self._recompute()

    def __repr__(self):
        return (f"LineItem({self.designation!r}, {self.unit_price} x "
                f"{self.quantity} = {self.line_total})")


class Cart:
    """
    Ordered line items of the sale in progress plus the selected row.
    Designations are unique; the check happens on insertion.
    """

    def __init__(self):
        self.items = []
        self.selected_index = None
        self._next_id = 1

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def contains(self, designation: str) -> bool:
        return any(li.designation == designation for li in self.items)

    def add_item(self, entry: CatalogEntry) -> LineItem:
        """
        Append a new line with quantity 1.
        Raises DuplicateProduct, leaving the cart untouched, if the
        designation is already present.
        """
        if self.contains(entry.designation):
            raise DuplicateProduct(entry.designation)
        item = LineItem(self._next_id, entry.designation, entry.unit_price, 1)
        self._next_id += 1
        self.items.append(item)
        return item

    def select(self, index):
        """Select a row; None clears the selection."""
        if index is None:
            self.selected_index = None
            return
        if not 0 <= index < len(self.items):
            raise NoSelection(f"Ligne invalide: {index}")
        self.selected_index = index

    def remove_at(self, index) -> LineItem:
        """Remove the selected row. Only the currently selected row can be removed."""
        if self.selected_index is None:
            raise NoSelection()
        if index != self.selected_index:
            raise NoSelection(f"La ligne {index} n'est pas sélectionnée")
        item = self.items.pop(index)
        self.selected_index = None
        return item

    def set_quantity(self, index, quantity: int) -> LineItem:
        if not 0 <= index < len(self.items):
            raise NoSelection(f"Ligne invalide: {index}")
        item = self.items[index]
        item.quantity = quantity
        return item

    def clear(self):
        self.items = []
        self.selected_index = None

    @property
    def subtotal(self) -> Decimal:
        return sum((li.line_total for li in self.items), Decimal(0))

    def total(self, discount_percent=0) -> Decimal:
        """Grand total after the client's percentage discount. Pure."""
        d = to_decimal(discount_percent)
        if d < 0 or d > 100:
            raise ValueError("Discount percent must be between 0 and 100.")
        return self.subtotal * (1 - d / 100)


# --- Clients ---

class Client:
    """Customer record as supplied by the client provider."""

    def __init__(self, id, name: str, phone: str = "", email: str = "", address: str = "",
                 balance=0, loyalty_points: int = 0, discount_percent=0):
        discount_percent = to_decimal(discount_percent)
        if discount_percent < 0 or discount_percent > 100:
            raise ValueError("Discount percent must be between 0 and 100.")
        if int(loyalty_points) < 0:
            raise ValueError("Loyalty points cannot be negative.")
        self.id = id
        self.name = name
        self.phone = phone or ""
        self.email = email or ""
        self.address = address or ""
        self.balance = to_decimal(balance)
        self.loyalty_points = int(loyalty_points)
        self.discount_percent = discount_percent

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row["id"],
            name=row["name"],
            phone=row["phone"],
            email=row["email"],
            address=row["address"],
            balance=row["balance"],
            loyalty_points=row["loyalty_points"],
            discount_percent=row["discount"],
        )

    @property
    def is_divers(self) -> bool:
        return self.id == DIVERS_ID

    def __eq__(self, other):
        if not isinstance(other, Client):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Client({self.id!r}, {self.name!r}, discount={self.discount_percent}%)"


DIVERS_ID = "divers"

# Generic walk-in customer; a valid selection, unlike no client at all.
DIVERS = Client(DIVERS_ID, "Divers", balance=0, loyalty_points=0, discount_percent=0)


class ClientContext:
    """
    Holds the selected customer, or nothing before the first selection.
    on_change is called after every selection change so the owner can
    drop its memoized total.
    """

    def __init__(self, on_change=None):
        self.client = None
        self._on_change = on_change

    def _changed(self):
        if self._on_change:
            self._on_change()

    def select(self, client: Client):
        if client is None:
            raise ValueError("Use clear() to deselect the client.")
        self.client = client
        logger.debug(f"Client selected: {client.name}")
        self._changed()

    def clear(self):
        self.client = None
        self._changed()

    @property
    def is_selected(self) -> bool:
        return self.client is not None

    @property
    def discount_percent(self) -> Decimal:
        return self.client.discount_percent if self.client else Decimal(0)

    @property
    def balance(self) -> Decimal:
        return self.client.balance if self.client else Decimal(0)

    @property
    def loyalty_points(self) -> int:
        return self.client.loyalty_points if self.client else 0
