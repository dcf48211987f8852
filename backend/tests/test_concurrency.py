# Overview: Thread-based concurrency tests against a file-backed SQLite database.

"""
The in-memory database used by the rest of the suite is a single shared
connection, so real write contention needs a temp file.
"""
import os
import tempfile
import threading
import unittest
from decimal import Decimal

from stocktrack import create_app
from stocktrack.actors import Actor, ROLE_ADMIN
from stocktrack.config import Config
from stocktrack.errors import AlreadyFinalizedError, InsufficientStockError
from stocktrack.extensions import db
from stocktrack.models import Product, Sale
from stocktrack.services import catalog_service, sales_service, stock_service


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app(
            Config,
            TESTING=True,
            SQLALCHEMY_DATABASE_URI=f"sqlite:///{db_path}",
            REPORT_TIMEZONE="UTC",
        )
        self.admin = Actor(id=1, role=ROLE_ADMIN)

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            product_type = catalog_service.create_product_type("Shirts")
            product = catalog_service.create_product(
                patch={
                    "name": "Concurrent Shirt",
                    "sku": "CONCUR-1",
                    "price": Decimal("100.00"),
                    "cost_price": Decimal("60.00"),
                    "qty_in_stock": 10,
                },
                product_type_id=product_type.id,
                actor=self.admin,
            )
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_threads(self, targets):
        threads = [threading.Thread(target=t) for t in targets]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    def test_concurrent_sells_never_oversell(self):
        """Two sells of 6 against 10 in stock: exactly one wins."""
        results = []
        lock = threading.Lock()

        def worker(actor_id):
            with self.app.app_context():
                try:
                    sale = sales_service.sell(self.product_id, 6, Actor(id=actor_id))
                    with lock:
                        results.append(("sold", sale.id))
                except Exception as exc:
                    with lock:
                        results.append(("error", exc))
                finally:
                    db.session.remove()

        self._run_threads([lambda: worker(2), lambda: worker(3)])

        sold = [r for r in results if r[0] == "sold"]
        errors = [r[1] for r in results if r[0] == "error"]
        self.assertEqual(len(sold), 1)
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], InsufficientStockError)
        self.assertEqual(errors[0].available, 4)
        self.assertEqual(errors[0].requested, 6)

        with self.app.app_context():
            self.assertEqual(db.session.get(Product, self.product_id).qty_in_stock, 4)
            self.assertEqual(db.session.query(Sale).count(), 1)
            self.assertEqual(stock_service.reconcile_stock(), [])

    def test_many_single_unit_sells_stop_at_zero(self):
        results = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    sales_service.sell(self.product_id, 1, Actor(id=2))
                    with lock:
                        results.append("sold")
                except InsufficientStockError:
                    with lock:
                        results.append("insufficient")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        self._run_threads([worker for _ in range(14)])

        self.assertEqual(results.count("sold"), 10)
        self.assertEqual(results.count("insufficient"), 4)
        with self.app.app_context():
            self.assertEqual(db.session.get(Product, self.product_id).qty_in_stock, 0)
            self.assertEqual(stock_service.ledger_quantity(self.product_id), 0)

    def test_concurrent_approvals_finalize_once(self):
        with self.app.app_context():
            sale_id = sales_service.sell(self.product_id, 1, Actor(id=2)).id

        results = []
        lock = threading.Lock()

        def worker(approver_id):
            with self.app.app_context():
                try:
                    sales_service.approve_sale(sale_id, Actor(id=approver_id, role=ROLE_ADMIN))
                    with lock:
                        results.append(approver_id)
                except AlreadyFinalizedError:
                    with lock:
                        results.append("already")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        self._run_threads([lambda i=i: worker(100 + i) for i in range(5)])

        winners = [r for r in results if isinstance(r, int)]
        self.assertEqual(len(winners), 1)
        self.assertEqual(results.count("already"), 4)

        with self.app.app_context():
            sale = db.session.get(Sale, sale_id)
            self.assertEqual(sale.status, "approved")
            self.assertEqual(sale.approved_by_id, winners[0])


if __name__ == "__main__":
    unittest.main()
