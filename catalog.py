# catalog.py
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from database import Database
from models import CatalogEntry, Client, LookupFailure

logger = logging.getLogger("counter_sale.catalog")


def success(data):
    return {"success": True, "data": data, "error": None}


def failure(error):
    return {"success": False, "data": None, "error": error}


def entry_matches(entry, term: str) -> bool:
    """Case-insensitive substring match on designation, category and barcode."""
    term = term.lower()
    return (term in entry["designation"].lower()
            or term in (entry["category"] or "").lower()
            or term in (entry["barcode"] or "").lower())


def client_matches(client, term: str) -> bool:
    term_lower = term.lower()
    return (term_lower in client["name"].lower()
            or (bool(client["phone"]) and term in client["phone"])
            or (bool(client["email"]) and term_lower in client["email"].lower()))


class CatalogProvider:
    """
    Product lookups over the database, answering with
    {success, data, error} envelopes. Never raises.
    """
    def __init__(self, db: Database):
        self.db = db

    def get_by_barcode(self, code: str):
        try:
            row = self.db.get_product_by_barcode(code)
            if not row:
                return failure("Product not found")
            return success(row)
        except Exception as e:
            logger.error(f"Error in CatalogProvider.get_by_barcode: {e}", exc_info=True)
            return failure(str(e))

    def get_all(self):
        try:
            return success(self.db.list_products())
        except Exception as e:
            logger.error(f"Error in CatalogProvider.get_all: {e}", exc_info=True)
            return failure(str(e))

    def search(self, term: str):
        result = self.get_all()
        if not result["success"] or not term:
            return result
        return success([row for row in result["data"] if entry_matches(row, term)])


class ClientProvider:
    """Client records over the database, same envelope convention."""
    def __init__(self, db: Database):
        self.db = db

    def get_all(self):
        try:
            return success(self.db.list_clients())
        except Exception as e:
            logger.error(f"Error in ClientProvider.get_all: {e}", exc_info=True)
            return failure(str(e))

    def search(self, term: str):
        result = self.get_all()
        if not result["success"] or not term:
            return result
        return success([row for row in result["data"] if client_matches(row, term)])


def load_clients(provider, term: str = ""):
    """Client objects matching term; an empty list when the provider fails."""
    result = provider.search(term) if term else provider.get_all()
    if not result.get("success"):
        logger.warning(f"Client list unavailable: {result.get('error')}")
        return []
    clients = []
    for row in result["data"] or []:
        try:
            clients.append(row if isinstance(row, Client) else Client.from_row(row))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping invalid client record: {e}")
    return clients


def _to_entry(data):
    return data if isinstance(data, CatalogEntry) else CatalogEntry.from_row(data)


# --- Commit outcomes ---

@dataclass(frozen=True)
class AddToCart:
    entry: CatalogEntry


@dataclass(frozen=True)
class OpenSearch:
    term: str = ""


@dataclass(frozen=True)
class Superseded:
    """A newer lookup was started before this one finished."""
    code: str


class CatalogResolver:
    """
    Resolves typed or scanned codes to catalog entries.

    On commit, an exact barcode hit becomes AddToCart; an empty input,
    a miss or a provider failure opens the manual search instead.
    Asynchronous lookups follow a latest-wins policy: submitting a new
    code supersedes the one still in flight.
    """

    def __init__(self, provider, max_workers: int = 1):
        self.provider = provider
        self._max_workers = max_workers
        self._executor = None
        self._lock = threading.Lock()
        self._generation = 0
        self._pending = None

    def resolve_exact(self, code: str) -> CatalogEntry:
        """Exact barcode match. Raises LookupFailure on miss or provider error."""
        if not code:
            raise ValueError("Code must be non-empty.")
        try:
            result = self.provider.get_by_barcode(code)
        except Exception as e:
            logger.error(f"Barcode lookup failed for {code}: {e}", exc_info=True)
            raise LookupFailure(code, str(e)) from e
        if not result or not result.get("success") or not result.get("data"):
            raise LookupFailure(code, (result or {}).get("error"))
        try:
            return _to_entry(result["data"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed catalog entry for {code}: {e!r}")
            raise LookupFailure(code, f"Malformed catalog entry: {e!r}") from e

    def search(self, term: str = ""):
        """All catalog entries matching term, in catalog order; all of them if term is empty."""
        try:
            result = self.provider.get_all()
        except Exception as e:
            logger.error(f"Catalog listing failed: {e}", exc_info=True)
            return []
        if not result or not result.get("success"):
            logger.warning(f"Catalog listing unavailable: {(result or {}).get('error')}")
            return []
        entries = []
        for row in result["data"] or []:
            try:
                entries.append(_to_entry(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed catalog entry: {e!r}")
        if not term:
            return entries
        return [e for e in entries if entry_matches(e.to_dict(), term)]

    def commit(self, text: str):
        term = (text or "").strip()
        if not term:
            return OpenSearch("")
        try:
            entry = self.resolve_exact(term)
        except LookupFailure as e:
            logger.info(f"No exact match for '{term}' ({e.message}), opening search")
            return OpenSearch(term)
        return AddToCart(entry)

    def _get_executor(self):
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self._max_workers,
                                                thread_name_prefix="catalog-lookup")
        return self._executor

    def submit(self, text: str):
        """Run commit() in the background; returns a Future of the outcome."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._pending is not None and not self._pending.done():
                if self._pending.cancel():
                    logger.debug("Cancelled queued lookup")
            future = self._get_executor().submit(self._run, text, generation)
            self._pending = future
        return future

    def _run(self, text, generation):
        outcome = self.commit(text)
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Discarding superseded lookup for '{text}'")
                return Superseded((text or "").strip())
        return outcome

    def shutdown(self):
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
