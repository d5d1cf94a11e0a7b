import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .repository import Repository
from .schemas import ImportStats
from .utils import load_table

logger = logging.getLogger(__name__)


class DataPipeline(ABC):
    """
    Abstract base class for spreadsheet imports (catalog, channel orders).
    Follows an Extract -> Transform -> Load (ETL) pattern.
    """

    def __init__(self, report_type: str, file_path: Path | str, repository: Repository, dry_run: bool = False):
        self.report_type = report_type
        self.file_path = Path(file_path)
        self.repository = repository
        self.dry_run = dry_run
        self.stats = ImportStats()

    def run(self) -> ImportStats:
        """
        Orchestrates the pipeline execution.
        A ParseError from extract() propagates before anything is written.
        """
        logger.info(f"🚀 STEP: {self.report_type.upper()} IMPORT")
        logger.info("-" * 30)

        # --- 1. EXTRACT ---
        rows = self.extract()
        self.stats.parsed = len(rows)
        if not rows:
            logger.warning(f"⚠️ No rows found in {self.file_path.name}.")
            return self.stats

        # --- 2. TRANSFORM ---
        self.transform(rows)
        logger.info(
            f"  > 📊 Rows Analyzed: {self.stats.parsed} | Candidates: {self.stats.total} | "
            f"New: {self.stats.new_count} | Duplicates: {self.stats.duplicate_count}"
        )

        # --- 3. LOAD ---
        if self.dry_run:
            logger.info("🧪 Dry Run: Skipping store writes.")
        else:
            self.load()

        logger.info(f"✅ {self.report_type.capitalize()} Import Finished.\n")
        logger.info("=" * 60)
        return self.stats

    def extract(self) -> list[dict[str, Any]]:
        """Reads the file into raw rows."""
        return load_table(self.file_path)

    @abstractmethod
    def transform(self, rows: list[dict[str, Any]]) -> None:
        """
        Normalizes the rows, classifies them against the store and fills in
        self.stats (total, new_count, duplicate_count).
        """
        pass

    @abstractmethod
    def load(self) -> None:
        """Writes the new records to the store."""
        pass
