from decimal import Decimal

import pytest

from catalog import (
    AddToCart,
    CatalogProvider,
    CatalogResolver,
    ClientProvider,
    OpenSearch,
    Superseded,
    success,
)
from models import Cart, ClientContext, DuplicateProduct, EmptyCart, NoClient
from session import (
    AddProduct,
    ChangeQuantity,
    Clear,
    CommandResult,
    CompletedSale,
    CounterSaleSession,
    RemoveSelected,
    SelectClient,
    SelectRow,
    TransactionValidator,
    Validate,
)
from utils import import_catalog_csv

from conftest import FakeCatalogProvider


@pytest.fixture
def session(provider):
    return CounterSaleSession(resolver=CatalogResolver(provider))


def test_discounted_total_scenario(session, laptop, phone, ahmed):
    assert session.dispatch(AddProduct(laptop)).ok
    assert session.dispatch(AddProduct(phone)).ok
    assert session.dispatch(SelectClient(ahmed)).ok
    assert session.total == Decimal("203300")


def test_fresh_session_validate_fails_with_empty_cart(session):
    result = session.dispatch(Validate())
    assert not result.ok
    assert isinstance(result.error, EmptyCart)
    assert result.code == "EMPTY_CART"


def test_validate_without_client_keeps_cart(session, laptop):
    session.add_product(laptop)
    result = session.validate()
    assert not result.ok
    assert isinstance(result.error, NoClient)
    assert [li.designation for li in session.items] == [laptop.designation]


def test_empty_cart_wins_over_missing_client(session):
    assert session.validate().code == "EMPTY_CART"
    session.select_client(None)
    assert session.validate().code == "EMPTY_CART"


def test_successful_validation_clears_cart(session, laptop, phone, ahmed):
    session.add_product(laptop)
    session.add_product(phone)
    session.select_row(1)
    session.select_client(ahmed)

    result = session.validate()

    assert result.ok
    sale = result.value
    assert isinstance(sale, CompletedSale)
    assert [line.designation for line in sale.lines] == [laptop.designation, phone.designation]
    assert sale.subtotal == Decimal(214000)
    assert sale.total == Decimal(203300)
    assert sale.client == ahmed
    assert session.items == []
    assert session.selected_index is None
    assert session.total == 0
    # client stays selected for the next sale
    assert session.client == ahmed


def test_divers_is_a_valid_client(session, laptop, divers):
    session.add_product(laptop)
    session.select_client(divers)
    result = session.validate()
    assert result.ok
    assert result.value.total == Decimal(125000)


def test_validate_calls_on_completed(provider, laptop, divers):
    sales = []
    session = CounterSaleSession(resolver=CatalogResolver(provider), on_completed=sales.append)
    session.add_product(laptop)
    session.validate()
    assert sales == []
    session.select_client(divers)
    session.validate()
    assert len(sales) == 1
    assert sales[0].total == Decimal(125000)


def test_duplicate_add_reports_error(session, laptop):
    session.add_product(laptop)
    result = session.add_product(laptop)
    assert not result.ok
    assert isinstance(result.error, DuplicateProduct)
    assert result.message == "Ce produit est déjà dans la liste"
    assert len(session.items) == 1


def test_total_follows_client_changes(session, laptop, phone, ahmed, divers):
    session.add_product(laptop)
    session.add_product(phone)
    assert session.total == Decimal(214000)
    session.select_client(ahmed)
    assert session.total == Decimal(203300)
    session.select_client(divers)
    assert session.total == Decimal(214000)
    session.select_client(ahmed)
    session.select_client(None)
    assert session.total == Decimal(214000)


def test_total_follows_cart_changes(session, laptop, phone, tablet, ahmed):
    session.select_client(ahmed)
    session.add_product(laptop)
    assert session.total == Decimal("118750")
    session.add_product(tablet)
    assert session.total == Decimal("182400")
    session.select_row(0)
    session.remove_selected()
    assert session.total == Decimal("63650")
    session.change_quantity(0, 2)
    assert session.total == Decimal("127300")
    session.clear()
    assert session.total == 0


def test_remove_selected_requires_selection(session, laptop):
    session.add_product(laptop)
    result = session.dispatch(RemoveSelected())
    assert result.code == "NO_SELECTION"
    assert len(session.items) == 1


def test_remove_selected_keeps_order(session, catalog_entries):
    for entry in catalog_entries:
        session.add_product(entry)
    session.dispatch(SelectRow(0))
    result = session.dispatch(RemoveSelected())
    assert result.ok
    assert result.value.designation == catalog_entries[0].designation
    assert [li.designation for li in session.items] == [e.designation for e in catalog_entries[1:]]
    assert session.selected_index is None


def test_select_row_out_of_range(session):
    result = session.dispatch(SelectRow(3))
    assert result.code == "NO_SELECTION"
    assert session.selected_index is None


def test_clear_command(session, laptop, phone):
    session.add_product(laptop)
    session.add_product(phone)
    session.select_row(0)
    assert session.dispatch(Clear()).ok
    assert session.items == []
    assert session.selected_index is None


def test_change_quantity_command(session, phone):
    session.add_product(phone)
    result = session.dispatch(ChangeQuantity(0, 4))
    assert result.ok
    assert result.value.line_total == Decimal(356000)
    with pytest.raises(ValueError):
        session.dispatch(ChangeQuantity(0, 0))


def test_unknown_command_is_a_programming_error(session):
    with pytest.raises(TypeError):
        session.dispatch("validate")


def test_add_by_code_hit(session, tablet):
    result = session.add_by_code("123456789014")
    assert result.ok
    assert result.value == AddToCart(tablet)
    assert [li.designation for li in session.items] == [tablet.designation]


def test_add_by_code_miss_opens_search(session):
    result = session.add_by_code("ipad")
    assert result.ok
    assert result.value == OpenSearch("ipad")
    assert session.items == []
    assert [e.designation for e in session.search(result.value.term)] == ["Tablette iPad Air"]


def test_add_by_code_empty_opens_full_list(session, catalog_entries):
    result = session.add_by_code("")
    assert result.value == OpenSearch("")
    assert session.search("") == catalog_entries


def test_add_by_code_duplicate(session, laptop):
    session.add_by_code("123456789012")
    result = session.add_by_code("123456789012")
    assert result.code == "DUPLICATE_PRODUCT"
    assert len(session.items) == 1


def test_add_by_code_provider_failure_is_silent(catalog_entries):
    session = CounterSaleSession(resolver=CatalogResolver(FakeCatalogProvider(catalog_entries, raise_error=True)))
    result = session.add_by_code("123456789012")
    assert result.ok
    assert result.value == OpenSearch("123456789012")


class IncompleteEntryProvider(FakeCatalogProvider):
    def get_by_barcode(self, code):
        self.lookups.append(code)
        return success({"designation": "X"})


def test_add_by_code_incomplete_entry_opens_search(catalog_entries):
    session = CounterSaleSession(resolver=CatalogResolver(IncompleteEntryProvider(catalog_entries)))
    result = session.add_by_code("123")
    assert result.ok
    assert result.value == OpenSearch("123")
    assert session.items == []


def test_negative_price_import_never_reaches_the_cart(db, tmp_path):
    path = tmp_path / "catalog.csv"
    path.write_text("designation,price,stock,category,barcode\nX,-5,1,,77\n", encoding="utf-8")
    assert import_catalog_csv(db, str(path)) == 0

    session = CounterSaleSession(resolver=CatalogResolver(CatalogProvider(db)))
    result = session.add_by_code("77")
    assert result.ok
    assert result.value == OpenSearch("77")
    assert session.items == []


def test_superseded_outcome_is_ignored(session):
    result = session.handle_outcome(Superseded("123"))
    assert result.ok
    assert session.items == []


def test_add_by_code_without_resolver():
    with pytest.raises(RuntimeError):
        CounterSaleSession().add_by_code("123")


def test_find_clients(demo_db):
    session = CounterSaleSession(client_provider=ClientProvider(demo_db))
    assert [c.name for c in session.find_clients("oran")] == []
    assert [c.name for c in session.find_clients("khelifa")] == ["Mohamed Khelifa"]
    assert len(session.find_clients()) == 4


def test_client_accessors(session, ahmed):
    assert session.client is None
    assert session.loyalty_points == 0
    session.select_client(ahmed)
    assert session.balance == Decimal(1500)
    assert session.loyalty_points == 120
    assert session.discount_percent == 5


def test_validator_leaves_state_on_failure(laptop):
    cart = Cart()
    cart.add_item(laptop)
    cart.select(0)
    context = ClientContext()
    with pytest.raises(NoClient):
        TransactionValidator().validate(cart, context)
    assert len(cart) == 1
    assert cart.selected_index == 0


def test_command_result_shortcuts():
    ok = CommandResult.success(1)
    assert ok.code == "OK"
    assert ok.message == ""
    failed = CommandResult.failed(EmptyCart())
    assert failed.code == "EMPTY_CART"
    assert failed.message == "Aucun produit dans la liste"
