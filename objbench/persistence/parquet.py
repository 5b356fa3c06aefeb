"""
Parquet persistence for per-attempt transfer records.
"""

import os
import logging
from typing import Iterable, Optional
from datetime import datetime

from objbench.common.metrics_utils import records_to_dataframe
from objbench.persistence.record import TransferRecord

logger = logging.getLogger(__name__)


class ParquetPersistence:
    """Saves the transfer records of a run to a Parquet file.

    Attributes:
        output_dir: Directory where Parquet files will be saved
    """

    def __init__(self, output_dir: str = "results"):
        """Initialize Parquet persistence.

        Args:
            output_dir: Directory for saving Parquet files (default: 'results')
        """
        self.output_dir: str = output_dir

        # Ensure output directory exists
        os.makedirs(output_dir, exist_ok=True)

    def save_to_file(self, records: Iterable[TransferRecord],
                     filename_prefix: str = "benchmark") -> Optional[str]:
        """Save records to a Parquet file.

        Args:
            records: Transfer records to save
            filename_prefix: Prefix for the generated filename (default: 'benchmark')

        Returns:
            Path to the saved file, or None if there were no records
        """
        df = records_to_dataframe(records)
        if df.empty:
            return None

        logger.info(f"Saving {len(df)} records to file")

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"{filename_prefix}_{timestamp}.parquet"
        filepath = os.path.join(self.output_dir, filename)

        df.to_parquet(filepath, index=False)

        return filepath
