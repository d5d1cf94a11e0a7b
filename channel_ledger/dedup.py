import logging
from dataclasses import dataclass, field

from . import settings
from .repository import Repository
from .schemas import ImportStats, Product

logger = logging.getLogger(__name__)


def sku_key(sku: str | None) -> str:
    """Case-insensitive comparison key for a SKU."""
    return (sku or "").strip().lower()


@dataclass
class ImportPlan:
    """Classification of one batch of candidates against the catalog."""

    to_insert: list[Product] = field(default_factory=list)
    duplicates: list[Product] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.to_insert) + len(self.duplicates)

    def stats(self, parsed: int | None = None) -> ImportStats:
        return ImportStats(
            parsed=self.total if parsed is None else parsed,
            total=self.total,
            new_count=len(self.to_insert),
            duplicate_count=len(self.duplicates),
        )


class ImportDeduplicator:
    """
    Splits normalized candidates into new products and duplicates by SKU.

    Existing products are never overwritten. The known-SKU set grows as new
    candidates are accepted, so a SKU repeated inside the same file is only
    inserted once. Candidates without a SKU (title-only rows) have nothing to
    compare on and are always new.
    """

    def __init__(self, purchase_price_ratio: float | None = None):
        self.purchase_price_ratio = (
            settings.PURCHASE_PRICE_RATIO if purchase_price_ratio is None else purchase_price_ratio
        )

    def classify(self, candidates: list[Product], catalog: list[Product]) -> ImportPlan:
        known_skus = {sku_key(p.sku) for p in catalog if sku_key(p.sku)}
        plan = ImportPlan()

        for candidate in candidates:
            key = sku_key(candidate.sku)
            if key in known_skus:
                plan.duplicates.append(candidate)
                continue
            plan.to_insert.append(candidate)
            if key:
                known_skus.add(key)

        logger.info(
            f"  > {plan.total} candidates: {len(plan.to_insert)} new, {len(plan.duplicates)} duplicate."
        )
        return plan

    def prepare(self, product: Product) -> Product:
        """Applies commit-time defaults: estimated purchase price when missing."""
        if product.purchase_price:
            return product
        return product.model_copy(
            update={"purchase_price": product.sale_price * self.purchase_price_ratio}
        )

    def commit(self, plan: ImportPlan, repository: Repository) -> list[str]:
        """
        Writes new products one at a time, in order.
        A StoreError on any record aborts the import and is raised to the caller.
        """
        created_ids = []
        for product in plan.to_insert:
            record = self.prepare(product).to_record()
            try:
                created_ids.append(repository.add(settings.PRODUCTS, record))
            except Exception:
                logger.error(
                    f"❌ Import aborted at SKU '{product.sku}' after {len(created_ids)} product(s)."
                )
                raise
        logger.info(f"✅ Successfully imported {len(created_ids)} products!")
        return created_ids
