import logging
from pathlib import Path
from typing import Any

from channel_ledger import settings
from channel_ledger.normalizer import normalize_orders
from channel_ledger.pipeline import DataPipeline
from channel_ledger.repository import Repository
from channel_ledger.schemas import ORDER_MODELS, MarketplaceOrder

logger = logging.getLogger(__name__)


class OrderImportPipeline(DataPipeline):
    """
    Loads one channel's order export into that channel's order collection.

    Orders whose channel order id is already stored (or repeated earlier in
    the same file) are skipped, so uploading the same export twice is safe.
    Rows without an order id never become candidates.
    """

    def __init__(self, channel: str, file_path: Path | str, repository: Repository, dry_run: bool = False):
        channel = channel.upper()
        if channel not in ORDER_MODELS:
            raise ValueError(f"Unknown channel '{channel}'. Expected one of {settings.CHANNEL_ORDER}.")
        super().__init__(f"{channel.lower()} orders", file_path, repository, dry_run=dry_run)
        self.channel = channel
        self.collection = settings.ORDER_COLLECTIONS[channel]
        self.to_insert: list[MarketplaceOrder] = []

    def transform(self, rows: list[dict[str, Any]]) -> None:
        orders = normalize_orders(self.channel, rows)
        key_field = ORDER_MODELS[self.channel].KEY_FIELD
        known_ids = {
            str(record[key_field])
            for record in self.repository.list_all(self.collection)
            if record.get(key_field)
        }

        self.to_insert = []
        duplicates = 0
        for order in orders:
            if order.channel_order_id in known_ids:
                duplicates += 1
                continue
            self.to_insert.append(order)
            known_ids.add(order.channel_order_id)

        self.stats.total = len(orders)
        self.stats.new_count = len(self.to_insert)
        self.stats.duplicate_count = duplicates

    def load(self) -> None:
        for order in self.to_insert:
            self.repository.add(self.collection, order.to_record())
        logger.info(f"✅ Saved {len(self.to_insert)} {self.channel} orders.")
