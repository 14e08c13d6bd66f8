import pytest

from catalog import failure, success
from database import Database
from models import CatalogEntry, Client, DIVERS


class FakeCatalogProvider:
    """In-memory catalog answering with provider envelopes."""

    def __init__(self, entries, fail=False, raise_error=False):
        self.entries = list(entries)
        self.fail = fail
        self.raise_error = raise_error
        self.lookups = []

    def get_by_barcode(self, code):
        self.lookups.append(code)
        if self.raise_error:
            raise ConnectionError("provider offline")
        if self.fail:
            return failure("database locked")
        for entry in self.entries:
            if entry.barcode == code:
                return success(entry.to_dict())
        return failure("Product not found")

    def get_all(self):
        if self.raise_error:
            raise ConnectionError("provider offline")
        if self.fail:
            return failure("database locked")
        return success([e.to_dict() for e in self.entries])


@pytest.fixture
def laptop():
    return CatalogEntry("P001", "Laptop Dell XPS 13", 125000, 5, "Informatique", "123456789012")


@pytest.fixture
def phone():
    return CatalogEntry("P002", "Smartphone Samsung Galaxy S24", 89000, 12, "Téléphonie", "123456789013")


@pytest.fixture
def tablet():
    return CatalogEntry("P003", "Tablette iPad Air", 67000, 8, "Informatique", "123456789014")


@pytest.fixture
def catalog_entries(laptop, phone, tablet):
    return [laptop, phone, tablet]


@pytest.fixture
def provider(catalog_entries):
    return FakeCatalogProvider(catalog_entries)


@pytest.fixture
def ahmed():
    return Client("1", "Ahmed Benali", "0555123456", "ahmed.benali@email.com", "Alger Centre",
                  balance=1500.00, loyalty_points=120, discount_percent=5)


@pytest.fixture
def divers():
    return DIVERS


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "test.db"))
    yield database
    database.close()


@pytest.fixture
def demo_db(tmp_path):
    database = Database(str(tmp_path / "demo.db"), seed_demo_data=True)
    yield database
    database.close()
