import pytest

from billbook.extensions import db
from billbook.models import Product
from billbook.services import stock_service
from billbook.services.stock_service import aggregate_deltas, split_known


def _stock(product_id):
    return db.session.get(Product, product_id).stock


def test_apply_delta_increments_and_decrements(products):
    result = stock_service.apply_delta("P1", 5)
    assert result.ok
    assert _stock("P1") == 15

    result = stock_service.apply_delta("P1", -15)
    assert result.ok
    change = result.value[0]
    assert (change.before, change.after, change.applied_delta) == (15, 0, -15)
    assert _stock("P1") == 0


def test_decrement_below_zero_fails_without_writing(products):
    result = stock_service.apply_delta("P1", -11)

    assert not result.ok
    assert result.error == "InsufficientStock"
    assert result.details["items"] == [{"product_id": "P1", "requested_quantity": 11, "on_hand": 10}]
    assert _stock("P1") == 10


def test_batch_is_all_or_nothing(products):
    # P1 alone would succeed; P2 cannot cover 500
    result = stock_service.apply_batch({"P1": -5, "P2": -500})

    assert not result.ok
    assert result.error == "InsufficientStock"
    assert [i["product_id"] for i in result.details["items"]] == ["P2"]
    assert _stock("P1") == 10
    assert _stock("P2") == 100


def test_unknown_product_names_every_missing_id(products):
    result = stock_service.apply_batch({"P1": -1, "NOPE-2": 1, "NOPE-1": 1})

    assert not result.ok
    assert result.error == "UnknownProduct"
    assert result.details["product_ids"] == ["NOPE-1", "NOPE-2"]
    assert _stock("P1") == 10


def test_non_integer_delta_is_rejected(products):
    result = stock_service.apply_batch({"P1": 1.5})
    assert not result.ok
    assert result.error == "InvalidOrderInput"
    assert _stock("P1") == 10


def test_successful_batch_marks_sync_dirty(products, cloud_linked, timers):
    result = stock_service.apply_batch({"P1": -1, "P2": 3})

    assert result.ok
    assert [c.product_id for c in result.value] == ["P1", "P2"]
    assert len(timers) == 1
    assert timers[0].started


def test_failed_batch_does_not_schedule_a_push(products, cloud_linked, timers):
    stock_service.apply_batch({"P1": -50})
    assert timers == []


def test_clamped_decrement_reports_shortfall(products):
    changes = stock_service._apply_batch_locked({"P1": -25, "P2": -40}, clamp_at_zero=True)
    db.session.commit()

    by_id = {c.product_id: c for c in changes}
    assert by_id["P1"].after == 0
    assert by_id["P1"].shortfall == 15
    assert by_id["P2"].after == 60
    assert by_id["P2"].shortfall == 0
    assert _stock("P1") == 0


def test_aggregate_deltas_sums_repeated_products():
    pairs = [("P1", 2), ("P2", 1), ("P1", 3)]
    assert aggregate_deltas(pairs, sign=-1) == {"P1": -5, "P2": -1}
    assert aggregate_deltas(pairs, sign=1) == {"P1": 5, "P2": 1}


def test_repeated_lines_are_checked_on_their_total(products):
    # 6 + 6 > 10 even though each line alone fits
    result = stock_service.apply_batch(aggregate_deltas([("P1", 6), ("P1", 6)], sign=-1))
    assert not result.ok
    assert result.details["items"][0]["requested_quantity"] == 12


def test_split_known(products):
    known, missing = split_known({"P1": 2, "GONE": 4})
    assert known == {"P1": 2}
    assert missing == ["GONE"]


@pytest.mark.parametrize("deltas", [{}, {"P1": 0}])
def test_empty_or_zero_batches_are_noops(products, deltas):
    result = stock_service.apply_batch(deltas)
    assert result.ok
    assert _stock("P1") == 10
