from datetime import datetime

import pytest

from billbook.errors import InvalidInput
from billbook.services import catalog_service, order_service, report_service, settings_service


@pytest.fixture
def sales(products):
    """Three invoices: two in Q1 2025 (one inter-state), one in April."""
    order_service.create_order([{"product_id": "P1", "quantity": 3}], now=datetime(2025, 1, 15, 10, 0))
    order_service.create_order(
        [{"product_id": "P2", "quantity": 2}], is_inter_state=True, now=datetime(2025, 3, 31, 23, 59)
    )
    order_service.create_order([{"product_id": "P1", "quantity": 1}], now=datetime(2025, 4, 1, 0, 5))


def test_gst_summary_for_a_month(sales):
    summary = report_service.gst_summary(2025, month=1)

    assert summary["period"] == "2025-01"
    assert summary["invoice_count"] == 1
    assert summary["taxable_value"] == "3000.00"
    assert summary["cgst"] == "270.00"
    assert summary["sgst"] == "270.00"
    assert summary["igst"] == "0.00"
    assert summary["total_amount"] == "3540.00"
    assert summary["invoices"][0]["serial_number"] == "TE/2025/1001"


def test_gst_summary_for_a_quarter_splits_igst(sales):
    summary = report_service.gst_summary(2025, quarter=1)

    assert summary["period"] == "2025-Q1"
    assert summary["invoice_count"] == 2
    assert summary["taxable_value"] == "8000.00"
    assert summary["igst"] == "600.00"
    assert summary["total_tax"] == "1140.00"


def test_gst_summary_for_the_year(sales):
    summary = report_service.gst_summary(2025)
    assert summary["period"] == "2025"
    assert summary["invoice_count"] == 3
    assert report_service.gst_summary(2024)["invoice_count"] == 0


def test_gst_summary_rejects_month_and_quarter_together(db_session):
    with pytest.raises(InvalidInput):
        report_service.gst_summary(2025, month=1, quarter=1)
    with pytest.raises(InvalidInput):
        report_service.gst_summary(2025, month=13)


def test_sales_margin_uses_snapshot_costs(sales):
    # later cost changes do not rewrite history
    catalog_service.update_product("P1", {"cost_price": "999"})

    margin = report_service.sales_margin()

    # P1: 4 x (1000 - 700); P2: 2 x (2500 - 1800)
    assert margin["revenue"] == "9000.00"
    assert margin["cost"] == "6400.00"
    assert margin["margin"] == "2600.00"
    assert margin["margin_percent"] == "28.89"
    assert [p["product_id"] for p in margin["products"]] == ["P2", "P1"]


def test_sales_margin_date_window(sales):
    margin = report_service.sales_margin(datetime(2025, 4, 1), datetime(2025, 5, 1))
    assert margin["revenue"] == "1000.00"
    assert margin["margin"] == "300.00"


def test_dashboard(sales):
    settings_service.set_low_stock_threshold(50)

    data = report_service.dashboard(now=datetime(2025, 4, 2, 12, 0))

    assert data["order_count"] == 3
    assert data["revenue"] == "10320.00"
    assert data["low_stock_count"] == 2
    assert data["low_stock_threshold"] == 50
    days = {d["date"]: d["revenue"] for d in data["daily_revenue"]}
    assert len(days) == 7
    assert days["2025-04-01"] == "1180.00"
    assert days["2025-03-31"] == "5600.00"
    assert days["2025-04-02"] == "0.00"


def test_low_stock_products(products):
    assert [p.id for p in catalog_service.low_stock_products(11)] == ["P3", "P1"]
    settings_service.set_low_stock_threshold(5)
    assert [p.id for p in catalog_service.low_stock_products()] == ["P3"]
