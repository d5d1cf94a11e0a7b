import logging
from pathlib import Path
from typing import Any

from channel_ledger import settings
from channel_ledger.dedup import ImportDeduplicator, ImportPlan
from channel_ledger.normalizer import normalize_products
from channel_ledger.pipeline import DataPipeline
from channel_ledger.repository import Repository
from channel_ledger.schemas import Product

logger = logging.getLogger(__name__)


class ProductImportPipeline(DataPipeline):
    """Imports a seller's product listing export into the catalog."""

    def __init__(self, file_path: Path | str, repository: Repository, dry_run: bool = False):
        super().__init__("catalog", file_path, repository, dry_run=dry_run)
        self.deduplicator = ImportDeduplicator()
        self.plan = ImportPlan()

    def transform(self, rows: list[dict[str, Any]]) -> None:
        candidates = normalize_products(rows)
        catalog = [Product.model_validate(r) for r in self.repository.list_all(settings.PRODUCTS)]

        self.plan = self.deduplicator.classify(candidates, catalog)
        self.stats = self.plan.stats(parsed=self.stats.parsed)

    def load(self) -> None:
        self.deduplicator.commit(self.plan, self.repository)
