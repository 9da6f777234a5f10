"""
MScoreWriter - Per-hit M-Score table (``<root>_MScore.txt``).
"""

import logging
from pathlib import Path
from typing import List

import pandas as pd

from peptide_extractor.config import MSCORE_COLUMNS
from peptide_extractor.results.models import PeptideHit

logger = logging.getLogger(__name__)


class MScoreWriter:
    """Collects the M-Score of every scored hit, in arrival order."""

    def __init__(self, output_path: Path):
        self.output_path = Path(output_path)
        self.rows: List[tuple] = []

    def add_hit(self, hit: PeptideHit) -> None:
        if hit.m_score is None:
            return
        self.rows.append(
            (hit.start_scan, hit.end_scan, hit.charge_state, hit.rank_xc, hit.peptide, round(hit.m_score, 2))
        )

    def to_dataframe(self) -> pd.DataFrame:
        df = pd.DataFrame(self.rows, columns=MSCORE_COLUMNS)
        return df.sort_values(["Scannum", "ScanEnd", "CS", "RankXc"], kind="stable").reset_index(drop=True)

    def write(self) -> Path:
        """Write all M-Scores sorted by scan range, charge and rank."""
        df = self.to_dataframe()
        df.to_csv(self.output_path, sep="\t", index=False, float_format="%.2f")
        logger.info(f"Wrote {len(df)} M-Scores to {self.output_path.name}")
        return self.output_path
