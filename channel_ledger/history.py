"""
Per-product transaction ledger, built on demand from purchase bills and
sales invoices.

Every call scans both collections in full, so cost grows with the number of
bills and invoices rather than with the product's own history.
"""

import logging
from datetime import datetime

from . import settings
from .repository import Repository
from .schemas import Invoice, Product, ProductHistory, PurchaseBill, Transaction
from .utils import parse_date

logger = logging.getLogger(__name__)


def _sort_key(transaction: Transaction) -> tuple[bool, float]:
    """Newest first; entries with unreadable dates go last."""
    parsed = parse_date(transaction.date)
    if parsed is None:
        return (True, 0.0)
    return (False, -(parsed - datetime(1970, 1, 1)).total_seconds())


class HistoryProjector:
    def __init__(self, repository: Repository):
        self.repository = repository

    def project(self, product_id: str) -> ProductHistory:
        bills = [PurchaseBill.model_validate(r) for r in self.repository.list_all(settings.PURCHASE_BILLS)]
        invoices = [Invoice.model_validate(r) for r in self.repository.list_all(settings.INVOICES)]

        transactions: list[Transaction] = []

        for bill in bills:
            for item in bill.items:
                if item.product_id != product_id:
                    continue
                transactions.append(
                    Transaction(
                        id=f"pur-{bill.id}",
                        type="Purchase",
                        date=bill.date,
                        entity_name=bill.vendor_name,
                        reference=bill.id or "",
                        quantity=item.quantity,
                        unit_price=item.price,
                        total_amount=item.total,
                    )
                )

        for invoice in invoices:
            for item in invoice.items:
                if item.product_id != product_id:
                    continue
                transactions.append(
                    Transaction(
                        id=f"sale-{invoice.id}",
                        type="Sale",
                        date=invoice.date,
                        entity_name=invoice.customer_name,
                        reference=invoice.id or "",
                        quantity=item.quantity,
                        unit_price=item.price,
                        total_amount=item.total,
                    )
                )

        # sorted() is stable, so same-date entries keep purchases before sales.
        transactions = sorted(transactions, key=_sort_key)

        history = ProductHistory(product_id=product_id, transactions=transactions)
        for tx in transactions:
            if tx.type == "Purchase":
                history.total_purchased += tx.quantity
                history.total_spent += tx.total_amount
            else:
                history.total_sold += tx.quantity
                history.total_revenue += tx.total_amount

        product = self._find_product(product_id)
        if product is not None:
            history.current_stock = product.quantity
            history.stock_value = product.sale_price * product.quantity

        logger.info(
            f"History for {product_id}: {len(transactions)} transaction(s), "
            f"{history.total_purchased} purchased, {history.total_sold} sold."
        )
        return history

    def _find_product(self, product_id: str) -> Product | None:
        for record in self.repository.list_all(settings.PRODUCTS):
            if record.get("id") == product_id:
                return Product.model_validate(record)
        return None
