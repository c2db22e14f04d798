from datetime import datetime
from decimal import Decimal

from billbook.extensions import db
from billbook.models import Product, PurchaseOrder, PurchaseStatus
from billbook.services import mapping_service, order_service, purchase_service

NOW = datetime(2025, 4, 10, 15, 30)


def _stock(product_id):
    return db.session.get(Product, product_id).stock


def _intake(items, **overrides):
    data = {
        "supplier_name": "Shenzhen Solar Co",
        "country": "China",
        "nature": "Stock",
        "currency": "USD",
        "exchange_rate": "83",
        "items": items,
    }
    data.update(overrides)
    result = purchase_service.intake(data, now=NOW)
    assert result.ok, result.message
    return result.value


def test_stock_intake_lands_in_pending_queue(products):
    po = _intake([{"linked_sku": "P1", "quantity": 5, "unit_cost": "10.50"}], extra_fee="20", deposit_amount="30")

    assert po.status == PurchaseStatus.LOGGED
    assert po.is_pending_review
    assert [p.id for p in purchase_service.list_pending()] == [po.id]
    assert purchase_service.list_purchases() == []
    assert _stock("P1") == 10

    # 5 * 10.50 + 20 fee, less 30 deposit
    assert po.total_foreign_amount == Decimal("72.50")
    assert po.remaining_balance == Decimal("42.50")
    assert po.investment_inr == Decimal("6017.50")
    assert po.total_quantity == 5


def test_other_nature_is_confirmed_without_stock_effect(products):
    po = _intake([{"name": "Freight", "quantity": 1, "unit_cost": "250"}], nature="Other", currency="INR", exchange_rate="1")

    assert po.status == PurchaseStatus.CONFIRMED
    assert po.confirmed_at == NOW
    assert purchase_service.list_pending() == []
    assert [p.id for p in purchase_service.list_purchases()] == [po.id]
    assert _stock("P1") == 10


def test_intake_validation(products):
    cases = [
        {"supplier_name": "", "items": [{"linked_sku": "P1", "quantity": 1, "unit_cost": 1}]},
        {"supplier_name": "X", "items": []},
        {"supplier_name": "X", "currency": "EUR", "items": [{"linked_sku": "P1", "quantity": 1, "unit_cost": 1}]},
        {"supplier_name": "X", "nature": "Gift", "items": [{"linked_sku": "P1", "quantity": 1, "unit_cost": 1}]},
        {"supplier_name": "X", "exchange_rate": 0, "items": [{"linked_sku": "P1", "quantity": 1, "unit_cost": 1}]},
        {"supplier_name": "X", "items": [{"linked_sku": "P1", "quantity": 0, "unit_cost": 1}]},
        {"supplier_name": "X", "items": [{"linked_sku": "P1", "quantity": 1, "unit_cost": "-2"}]},
    ]
    for data in cases:
        result = purchase_service.intake(data, now=NOW)
        assert result.error == "InvalidPurchaseInput", data

    assert db.session.query(PurchaseOrder).count() == 0


def test_duplicate_purchase_id_is_rejected(products):
    _intake([{"linked_sku": "P1", "quantity": 1, "unit_cost": 1}], id="PO-FIXED")
    result = purchase_service.intake(
        {"id": "PO-FIXED", "supplier_name": "Other", "items": [{"linked_sku": "P1", "quantity": 1, "unit_cost": 1}]},
        now=NOW,
    )
    assert result.error == "InvalidPurchaseInput"


def test_supplier_mapping_auto_links_lines(products):
    assert mapping_service.add_supplier_mapping(
        {"supplier_sku": "SZ-50W", "supplier_name": "Shenzhen Solar Co", "internal_sku": "P1"}
    ).ok
    assert mapping_service.set_watt_mapping("P1", "50").ok

    po = _intake([{"supplier_sku": "SZ-50W", "quantity": 4, "unit_cost": "9"}])

    item = po.items[0]
    assert item.linked_sku == "P1"
    assert item.name == "50W Panel"
    assert item.watts == "50"


def test_mapping_to_unknown_product_is_rejected(products):
    result = mapping_service.add_supplier_mapping({"supplier_sku": "SZ-1", "internal_sku": "NOPE"})
    assert result.error == "UnknownProduct"


def test_finalize_applies_stock_and_last_landed_cost(products):
    po = _intake([
        {"linked_sku": "P1", "quantity": 5, "unit_cost": "10"},
        {"linked_sku": "P3", "quantity": 20, "unit_cost": "4.25"},
    ])

    result = purchase_service.finalize_review(po.id, now=NOW)

    assert result.ok
    assert result.value.status == PurchaseStatus.CONFIRMED
    assert _stock("P1") == 15
    assert _stock("P3") == 20
    assert db.session.get(Product, "P1").cost_price == Decimal("830.00")
    assert db.session.get(Product, "P3").cost_price == Decimal("352.75")
    assert purchase_service.list_pending() == []


def test_finalize_blocks_on_unresolved_lines(products):
    po = _intake([
        {"linked_sku": "P1", "quantity": 5, "unit_cost": "10"},
        {"supplier_sku": "UNMAPPED-9", "quantity": 3, "unit_cost": "2"},
        {"linked_sku": "GHOST", "quantity": 1, "unit_cost": "2"},
    ])

    result = purchase_service.finalize_review(po.id)

    assert result.error == "UnresolvedSku"
    unresolved = result.details["items"]
    assert [u["supplier_sku"] for u in unresolved] == ["UNMAPPED-9", ""]
    assert [u["linked_sku"] for u in unresolved] == [None, "GHOST"]
    assert _stock("P1") == 10
    assert db.session.get(PurchaseOrder, po.id).status == PurchaseStatus.LOGGED


def test_linking_a_pending_line_unblocks_finalize(products):
    po = _intake([{"supplier_sku": "UNMAPPED-9", "quantity": 3, "unit_cost": "2"}])
    item_id = po.items[0].id

    result = purchase_service.update_pending_item(po.id, item_id, {"linked_sku": "P2", "quantity": 6})
    assert result.ok
    assert result.value.total_quantity == 6
    assert result.value.total_foreign_amount == Decimal("12.00")

    assert purchase_service.finalize_review(po.id).ok
    assert _stock("P2") == 106


def test_confirmed_purchase_cannot_be_finalized_or_edited_again(products):
    po = _intake([{"linked_sku": "P1", "quantity": 1, "unit_cost": "1"}])
    assert purchase_service.finalize_review(po.id).ok

    assert purchase_service.finalize_review(po.id).error == "InvalidTransition"
    item_id = db.session.get(PurchaseOrder, po.id).items[0].id
    assert purchase_service.update_pending_item(po.id, item_id, {"quantity": 9}).error == "InvalidTransition"
    assert purchase_service.reject_pending(po.id).error == "InvalidTransition"
    assert _stock("P1") == 11


def test_reject_pending_item_and_whole_record(products):
    po = _intake([
        {"linked_sku": "P1", "quantity": 1, "unit_cost": "1"},
        {"linked_sku": "P2", "quantity": 2, "unit_cost": "1"},
    ])
    first, second = [i.id for i in po.items]

    result = purchase_service.reject_pending_item(po.id, first)
    assert result.ok
    assert result.value["purchase_removed"] is False
    assert result.value["purchase"]["total_quantity"] == 2

    result = purchase_service.reject_pending_item(po.id, second)
    assert result.value["purchase_removed"] is True
    assert db.session.get(PurchaseOrder, po.id) is None

    other = _intake([{"linked_sku": "P1", "quantity": 1, "unit_cost": "1"}])
    assert purchase_service.reject_pending(other.id).ok
    assert purchase_service.list_pending() == []
    assert _stock("P1") == 10


def test_revert_under_depletion_clamps_and_reports_shortfall(products):
    """100 in, 80 sold, revert: stock floors at 0 and 80 units are reported."""
    po = _intake([{"linked_sku": "P3", "quantity": 100, "unit_cost": "3"}])
    assert purchase_service.finalize_review(po.id).ok
    assert order_service.create_order([{"product_id": "P3", "quantity": 80}], now=NOW).ok
    assert _stock("P3") == 20

    result = purchase_service.revert(po.id, "admin")

    assert result.ok
    outcome = result.value
    assert outcome.previous_status == "Confirmed"
    assert outcome.shortfalls == [{"product_id": "P3", "shortfall": 80}]
    assert _stock("P3") == 0
    assert db.session.get(PurchaseOrder, po.id) is None


def test_revert_is_elevated_and_happens_once(products):
    po = _intake([{"linked_sku": "P1", "quantity": 5, "unit_cost": "3"}])
    assert purchase_service.finalize_review(po.id).ok

    assert purchase_service.revert(po.id, "employee").error == "PermissionDenied"
    assert _stock("P1") == 15

    result = purchase_service.revert(po.id, "admin")
    assert result.ok
    assert result.value.shortfalls == []
    assert _stock("P1") == 10

    assert purchase_service.revert(po.id, "admin").error == "PurchaseNotFound"
    assert _stock("P1") == 10


def test_revert_of_pending_purchase_has_no_stock_effect(products):
    po = _intake([{"linked_sku": "P1", "quantity": 5, "unit_cost": "3"}])
    result = purchase_service.revert(po.id, "admin")
    assert result.ok
    assert result.value.changes == []
    assert _stock("P1") == 10


def test_stock_is_conserved_across_purchases_sales_and_reversals(products):
    """on hand == opening + confirmed purchases - issued invoices, after every step."""
    opening = _stock("P1")

    po = _intake([{"linked_sku": "P1", "quantity": 5, "unit_cost": "3"}])
    purchase_service.finalize_review(po.id)
    assert _stock("P1") == opening + 5

    order = order_service.create_order([{"product_id": "P1", "quantity": 4}], now=NOW).value
    assert _stock("P1") == opening + 5 - 4

    order_service.delete_order(order.id, "admin")
    assert _stock("P1") == opening + 5

    purchase_service.revert(po.id, "admin")
    assert _stock("P1") == opening
