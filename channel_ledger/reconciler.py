"""
Marketplace order -> sales invoice reconciliation.

One run:
1. Snapshots products, invoices and every channel's orders once.
2. Picks the orders whose channel order id is not on any invoice yet.
3. For each order (Flipkart first, then Meesho, in store order) creates one
   sales invoice and decrements the product's stock.

Stock is tracked in a run-local shadow map seeded from the product snapshot,
because the store may not reflect our own writes before the run ends.

Invoice creation and the stock write are two separate store calls. If the
stock write fails, the invoice is removed again so the next run retries the
order; an invoice that cannot be removed is reported as unbalanced.
"""

import logging
from enum import Enum
from typing import Callable, Optional
from pydantic import ValidationError

from . import settings
from .repository import Repository
from .schemas import (
    ORDER_MODELS,
    Invoice,
    InvoiceItem,
    MarketplaceOrder,
    Product,
    SyncProgress,
    SyncReport,
)
from .utils import now_iso

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SyncProgress], None]


class Outcome(Enum):
    """What happened to a single order."""

    ADDED = "added"
    SKIPPED = "skipped"  # No catalog product for the order's SKU
    ERROR = "error"  # Store write failed or the order record is unusable


def quantity_to_deduct(order: MarketplaceOrder) -> int:
    """Missing or zero quantities count as a single unit."""
    return order.quantity or 1


def build_invoice(order: MarketplaceOrder, product: Product, qty: int, fallback_date: str) -> Invoice:
    amount = order.amount
    item = InvoiceItem(
        product_id=product.id,
        product_name=product.title,
        quantity=qty,
        mrp=product.mrp,
        price=amount / qty,
        discount=0,
        tax=product.gst_rate,
        total=amount,
    )
    return Invoice(
        date=order.order_date or fallback_date,
        customer_id=order.CUSTOMER_ID,
        customer_name=order.CUSTOMER_NAME,
        items=[item],
        sub_total=amount,
        tax=0,
        total_amount=amount,
        channel=order.channel,
        channel_order_id=order.channel_order_id,
        invoice_type=settings.INVOICE_TYPE_SALES,
        status=settings.INVOICE_STATUS_PAID,
    )


class SyncReconciler:
    """
    Turns unsynced marketplace orders into invoices and stock decrements.

    Usage:
        reconciler = SyncReconciler(repository)
        report = reconciler.run(progress=lambda p: print(p.current, p.total))
        print(report.summary)
    """

    def __init__(
        self,
        repository: Repository,
        channels: Optional[list[str]] = None,
        dry_run: bool = False,
    ):
        self.repository = repository
        self.channels = channels if channels is not None else settings.CHANNEL_ORDER
        self.dry_run = dry_run

    # ---------------------------------------------------------------------
    # Run
    # ---------------------------------------------------------------------
    def run(self, progress: Optional[ProgressCallback] = None) -> SyncReport:
        """
        Reconciles every channel once and returns the final tally.

        Store failures while taking the initial snapshots propagate; failures
        on individual orders are counted and never stop the run.
        """
        report = SyncReport(dry_run=self.dry_run)
        logger.info(f"🚀 STEP: ORDER SYNC{' (DRY RUN)' if self.dry_run else ''}")
        logger.info("-" * 30)

        # --- 1. SNAPSHOT ---
        products = self._load_products()
        synced_ids = self._load_synced_order_ids()
        candidates = {ch: self._select_candidates(ch, synced_ids) for ch in self.channels}

        # First product wins when the catalog holds the same SKU twice.
        products_by_sku: dict[str, Product] = {}
        for product in products:
            products_by_sku.setdefault(product.sku, product)
        shadow_qty = {p.id: p.quantity for p in products}

        report.total = sum(len(orders) for orders in candidates.values())
        logger.info(f"Found {report.total} order(s) to sync.")

        # --- 2. RECONCILE ---
        for channel in self.channels:
            logger.info(f"\n-- Processing Channel: {channel} ({len(candidates[channel])} orders) --")
            for raw_order in candidates[channel]:
                report.current += 1
                outcome = self._process_order(channel, raw_order, products_by_sku, shadow_qty, report)
                if outcome is Outcome.ADDED:
                    report.added += 1
                elif outcome is Outcome.SKIPPED:
                    report.skipped += 1
                else:
                    report.errors += 1
                if progress is not None:
                    progress(report.progress())

        # --- 3. SUMMARY ---
        logger.info(f"\n✅ {report.summary}")
        if report.unbalanced_invoice_ids:
            logger.error(
                f"❌ Invoices without a stock decrement: {', '.join(report.unbalanced_invoice_ids)}"
            )
        logger.info("=" * 60)
        return report

    # ---------------------------------------------------------------------
    # Snapshots
    # ---------------------------------------------------------------------
    def _load_products(self) -> list[Product]:
        return [Product.model_validate(r) for r in self.repository.list_all(settings.PRODUCTS)]

    def _load_synced_order_ids(self) -> set[str]:
        """Every channel order id that already has an invoice."""
        return {
            str(record["channelOrderId"])
            for record in self.repository.list_all(settings.INVOICES)
            if record.get("channelOrderId")
        }

    def _select_candidates(self, channel: str, synced_ids: set[str]) -> list[dict]:
        collection = settings.ORDER_COLLECTIONS[channel]
        key_field = ORDER_MODELS[channel].KEY_FIELD
        selected = []
        for record in self.repository.list_all(collection):
            order_id = record.get(key_field)
            if order_id in (None, "") or str(order_id) in synced_ids:
                continue
            selected.append(record)
        return selected

    # ---------------------------------------------------------------------
    # Per-order processing
    # ---------------------------------------------------------------------
    def _process_order(
        self,
        channel: str,
        raw_order: dict,
        products_by_sku: dict[str, Product],
        shadow_qty: dict[str, int],
        report: SyncReport,
    ) -> Outcome:
        try:
            order = ORDER_MODELS[channel].model_validate(raw_order)
        except ValidationError as e:
            logger.warning(f"  > ⚠️  Unreadable {channel} order {raw_order.get('id')}: {e}")
            return Outcome.ERROR

        product = products_by_sku.get(order.sku) if order.sku else None
        if product is None:
            logger.info(f"  > SKU '{order.sku}' not in catalog. Skipping order {order.channel_order_id}.")
            return Outcome.SKIPPED

        qty = quantity_to_deduct(order)
        current_qty = shadow_qty.get(product.id, 0)
        new_qty = current_qty - qty
        invoice = build_invoice(order, product, qty, fallback_date=now_iso())

        if self.dry_run:
            logger.info(
                f"  > [Dry Run] Would invoice {order.channel_order_id}: {product.sku} {current_qty} -> {new_qty}"
            )
            shadow_qty[product.id] = new_qty
            return Outcome.ADDED

        try:
            invoice_id = self.repository.add(settings.INVOICES, invoice.to_record())
        except Exception as e:
            logger.error(f"  > ❌ Error syncing {channel} order {order.channel_order_id}: {e}")
            return Outcome.ERROR

        try:
            self.repository.update(settings.PRODUCTS, product.id, {"quantity": new_qty})
        except Exception as e:
            logger.error(
                f"  > ❌ Stock update failed for {product.sku} (order {order.channel_order_id}): {e}"
            )
            self._compensate(invoice_id, order, report)
            return Outcome.ERROR

        shadow_qty[product.id] = new_qty
        logger.info(f"  > 🆕 Invoiced {order.channel_order_id}: {product.sku} {current_qty} -> {new_qty}")
        return Outcome.ADDED

    def _compensate(self, invoice_id: str, order: MarketplaceOrder, report: SyncReport) -> None:
        """Removes an invoice whose stock decrement did not happen."""
        try:
            self.repository.remove(settings.INVOICES, invoice_id)
            logger.warning(
                f"  > ⚠️  Removed invoice {invoice_id}; order {order.channel_order_id} will retry next run."
            )
        except Exception as e:
            logger.error(f"  > ❌ Could not remove invoice {invoice_id}: {e}")
            report.unbalanced_invoice_ids.append(invoice_id)
