from metal_erp.models.transaction import ReferenceKind
from metal_erp.schemas.records import ClientRecord
from metal_erp.services.matcher import (
    LEGACY_OBLIGATION_REF,
    debt_order_ids,
    extract_legacy_order_id,
    is_client_repayment,
    is_debt_order,
    matches,
    order_matches_client,
    resolve_reference,
)


def test_order_matches_by_client_id_before_name(client_record, make_order):
    order = make_order(100, "2024-01-01", client_id="CLI-1", customer_name="Somebody Else")
    assert order_matches_client(order, client_record)


def test_order_matches_by_trimmed_case_insensitive_name_or_company(client_record, make_order):
    by_name = make_order(100, "2024-01-01", client_id=None, customer_name="  rustam ALIEV ")
    by_company = make_order(100, "2024-01-01", client_id=None, customer_name="steel trade llc")
    assert order_matches_client(by_name, client_record)
    assert order_matches_client(by_company, client_record)


def test_order_name_match_is_exact_not_partial(client_record, make_order):
    partial = make_order(100, "2024-01-01", client_id=None, customer_name="Rustam")
    other_id = make_order(100, "2024-01-01", client_id="CLI-2", customer_name="")
    assert not order_matches_client(partial, client_record)
    assert not order_matches_client(other_id, client_record)


def test_blank_names_never_match(make_order):
    nameless = ClientRecord(id="CLI-9", name="", company_name=None)
    order = make_order(100, "2024-01-01", client_id=None, customer_name="")
    assert not order_matches_client(order, nameless)


def test_debt_order_classification(make_order):
    assert is_debt_order(make_order(100, "2024-01-01", method="debt", status="paid", paid=100))
    assert is_debt_order(make_order(100, "2024-01-01", method="cash", status="partial", paid=100))
    assert is_debt_order(make_order(100, "2024-01-01", method="cash", status="paid", paid=50))
    assert not is_debt_order(make_order(100, "2024-01-01", method="cash", status="paid", paid=100))
    assert not is_debt_order(make_order(100, "2024-01-01", method="card", status="paid", paid=99.995))


def test_paid_usd_field_wins_over_amount_paid(make_order):
    order = make_order(100, "2024-01-01", method="cash", status="paid", paid=100, amount_paid_usd=40)
    assert is_debt_order(order)


def test_extract_legacy_order_id_strips_note():
    assert extract_legacy_order_id("Погашение долга заказа ORD-123 (нал)") == "ORD-123"
    assert extract_legacy_order_id("Погашение долга заказа ORD-55(нал)") == "ORD-55"
    assert extract_legacy_order_id("Долг по заказу ORD-7", LEGACY_OBLIGATION_REF) == "ORD-7"
    assert extract_legacy_order_id("Debt repayment: Rustam") is None
    assert extract_legacy_order_id(None) is None


def test_resolve_reference_by_known_ids(make_tx):
    to_client = make_tx(10, "2024-01-01", related_id="CLI-1")
    to_order = make_tx(10, "2024-01-01", related_id="ORD-1")
    dangling = make_tx(10, "2024-01-01", related_id="ORD-404")

    assert resolve_reference(to_client, {"ORD-1"}, {"CLI-1"}).kind == ReferenceKind.client
    assert resolve_reference(to_order, {"ORD-1"}, {"CLI-1"}).kind == ReferenceKind.order
    assert resolve_reference(dangling, {"ORD-1"}, {"CLI-1"}).kind == ReferenceKind.none


def test_explicit_kind_wins_over_lookup(make_tx):
    tx = make_tx(10, "2024-01-01", related_id="CLI-1", kind="order")
    ref = resolve_reference(tx, order_ids=set(), client_ids={"CLI-1"})
    assert ref.kind == ReferenceKind.order
    assert ref.order_id == "CLI-1"


def test_legacy_description_parsing_can_be_switched_off(make_tx):
    tx = make_tx(10, "2024-01-01", related_id="CLI-1", kind="client",
                 description="Погашение долга заказа ORD-3 (карта)")
    assert resolve_reference(tx, legacy_refs=True).mentioned_order_id == "ORD-3"
    assert resolve_reference(tx, legacy_refs=False).mentioned_order_id is None


def test_stored_mention_is_used_without_parsing(make_tx):
    tx = make_tx(10, "2024-01-01", related_id="CLI-1", kind="client", mentioned_order_id="ORD-8")
    ref = resolve_reference(tx, legacy_refs=False)
    assert ref.order_id == "ORD-8"


def test_transaction_matches_client_directly_or_through_debt_order(client_record, make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-1")]
    ids = debt_order_ids(client_record, orders)

    assert matches(make_tx(5, "2024-01-02", related_id="CLI-1"), client_record, ids)
    assert matches(make_tx(5, "2024-01-02", related_id="ORD-1"), client_record, ids)
    assert not matches(make_tx(5, "2024-01-02", related_id="ORD-2"), client_record, ids)
    assert matches(orders[0], client_record)


def test_client_payment_tied_to_non_debt_order_is_not_a_repayment(client_record, make_tx):
    debt_ids = {"ORD-1"}
    tied_to_paid = make_tx(5, "2024-01-02", related_id="CLI-1", kind="client", mentioned_order_id="ORD-PAID")
    tied_to_debt = make_tx(5, "2024-01-02", related_id="CLI-1", kind="client", mentioned_order_id="ORD-1")
    supplier = make_tx(5, "2024-01-02", type="supplier_payment", related_id="CLI-1", kind="client")

    assert not is_client_repayment(tied_to_paid, client_record, debt_ids)
    assert is_client_repayment(tied_to_debt, client_record, debt_ids)
    assert not is_client_repayment(supplier, client_record, debt_ids)


class _LookupOnly(set):
    def __iter__(self):
        raise AssertionError("known ids must be looked up, not copied")


def test_known_ids_are_looked_up_without_being_copied(make_tx):
    tx = make_tx(10, "2024-01-01", related_id="ORD-1")
    ref = resolve_reference(tx, order_ids=_LookupOnly({"ORD-1"}), client_ids=_LookupOnly({"CLI-1"}))
    assert ref.kind == ReferenceKind.order


def test_known_ids_can_be_given_as_mappings(make_tx):
    tx = make_tx(10, "2024-01-01", related_id="CLI-1")
    ref = resolve_reference(tx, order_ids={"ORD-1": object()}, client_ids={"CLI-1": object()})
    assert ref.kind == ReferenceKind.client
