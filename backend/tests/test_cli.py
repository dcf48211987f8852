import json

from stocktrack.extensions import db
from stocktrack.models import Product


def test_reconcile_passes_on_consistent_ledger(app, product):
    result = app.test_cli_runner().invoke(args=["stock", "reconcile"])

    assert result.exit_code == 0
    assert "PASS" in result.output


def test_reconcile_fails_on_divergence(app, product):
    db.session.query(Product).filter(Product.id == product.id).update(
        {Product.qty_in_stock: 3}, synchronize_session=False
    )
    db.session.commit()

    result = app.test_cli_runner().invoke(args=["stock", "reconcile"])

    assert result.exit_code == 1
    assert "ledger=10" in result.output


def test_inventory_value_report_command(app, product):
    result = app.test_cli_runner().invoke(args=["reports", "inventory-value"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["total_inventory_value"] == "60.00"


def test_daily_report_command(app, db_session):
    result = app.test_cli_runner().invoke(args=["reports", "daily", "--as-of", "2024-03-05T12:00:00Z"])

    assert result.exit_code == 0
    assert json.loads(result.output)["date"] == "2024-03-05"
