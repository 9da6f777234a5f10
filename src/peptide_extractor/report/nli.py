"""
NLIWriter - Neutral-loss intensity table (``<root>_NLI.txt``).
"""

import logging
from pathlib import Path
from typing import List

import pandas as pd

from peptide_extractor.config import NLI_COLUMNS
from peptide_extractor.scoring.neutral_loss import NeutralLosses

logger = logging.getLogger(__name__)


class NLIWriter:
    """Collects one neutral-loss row per spectrum; usable as a DiscriminantCalculator sink."""

    def __init__(self, output_path: Path):
        self.output_path = Path(output_path)
        self.rows: List[dict] = []

    def __call__(self, scan_number: int, losses: NeutralLosses) -> None:
        self.add_entry(scan_number, losses)

    def add_entry(self, scan_number: int, losses: NeutralLosses) -> None:
        self.rows.append(losses.as_row(scan_number))

    def to_dataframe(self) -> pd.DataFrame:
        df = pd.DataFrame(self.rows, columns=NLI_COLUMNS)
        return df.sort_values("Scannum", kind="stable").reset_index(drop=True)

    def write(self) -> Path:
        df = self.to_dataframe()
        df.to_csv(self.output_path, sep="\t", index=False)
        logger.info(f"Wrote {len(df)} neutral-loss entries to {self.output_path.name}")
        return self.output_path
