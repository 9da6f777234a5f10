"""
IRRWriter - Observed / possible ion ratio table (``<root>_IRR.txt``).
"""

import logging
from pathlib import Path
from typing import List, NamedTuple, Optional

import pandas as pd

from peptide_extractor.config import IRR_COLUMNS

logger = logging.getLogger(__name__)


class IRREntry(NamedTuple):
    scan_number: int
    charge_state: int
    rank_xc: int
    obs_ions: int
    poss_ions: int


class IRRWriter:
    """
    Collects the ``obs/poss`` ion counts of each hit and writes them sorted.

    An entry is recorded only when the XCorr rank changes within a
    (scan, charge) pair, so repeated ranks are reported once.
    """

    def __init__(self, output_path: Path):
        self.output_path = Path(output_path)
        self.entries: List[IRREntry] = []
        self._cached_scan: Optional[int] = None
        self._cached_charge: Optional[int] = None
        self._cached_rank = 0

    def add_entry(self, scan_number: int, charge_state: int, rank_xc: int, obs_ions: int, poss_ions: int) -> bool:
        if charge_state != self._cached_charge or scan_number != self._cached_scan:
            self._cached_rank = 0

        if rank_xc == self._cached_rank:
            return False

        self.entries.append(IRREntry(scan_number, charge_state, rank_xc, obs_ions, poss_ions))
        self._cached_scan = scan_number
        self._cached_charge = charge_state
        self._cached_rank = rank_xc
        return True

    def to_dataframe(self) -> pd.DataFrame:
        df = pd.DataFrame(self.entries, columns=list(IRREntry._fields))
        df.columns = IRR_COLUMNS
        return df.sort_values(["Scannum", "CS", "RankXc"], kind="stable").reset_index(drop=True)

    def write(self) -> Path:
        """Write all entries sorted by scan, charge and rank."""
        df = self.to_dataframe()
        df.to_csv(self.output_path, sep="\t", index=False)
        logger.info(f"Wrote {len(df)} ion ratio entries to {self.output_path.name}")
        return self.output_path
