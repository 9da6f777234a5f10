"""
Data models for peptide hits, per-spectrum groups and output record indices.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from peptide_extractor.scoring.cleavage import count_tryptic_ends
from peptide_extractor.scoring.delm import compute_delm_ppm

logger = logging.getLogger(__name__)

DELIMITER = "\t"


class OutputType(Enum):
    """Which results file an export is destined for."""

    SYNOPSIS = "syn"
    FIRST_HITS = "fht"


def group_key(start_scan: int, end_scan: int, charge_state: int) -> str:
    """Key of a spectrum group, e.g. ``"001234.001236.02"``."""
    return f"{start_scan:06d}.{end_scan:06d}.{charge_state:02d}"


@dataclass
class PeptideHit:
    """
    One candidate peptide for one spectrum.

    The primary ``reference`` is always registered as multi-protein
    reference #1; further proteins sharing the sequence get #2, #3, ...
    """

    start_scan: int
    end_scan: int
    charge_state: int
    peptide: str = ""
    hit_num: int = 0
    mh: float = 0.0
    xcorr: float = 0.0
    del_cn: float = 0.0
    sp: float = 0.0
    reference: str = ""
    multi_protein_count: int = 0
    obs_ions: int = 0
    poss_ions: int = 0
    rank_sp: int = 0
    rank_xc: int = 0
    scan_count: int = 0

    # Derived
    num_tryptic_ends: int = 0
    del_m: float = 0.0
    del_m_ppm: float = 0.0
    del_cn2: float = 0.0
    xc_ratio: float = 1.0
    m_score: Optional[float] = None

    multi_protein_refs: Dict[int, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.scan_count:
            self.scan_count = self.end_scan - self.start_scan + 1
        if self.reference and not self.multi_protein_refs:
            self.multi_protein_refs[1] = self.reference

    def add_multi_protein_ref(self, name: str) -> int:
        """Register another protein for this peptide; returns its 1-based id."""
        ref_id = len(self.multi_protein_refs) + 1
        self.multi_protein_refs[ref_id] = name
        return ref_id

    def calculate_score_components(self) -> None:
        self.num_tryptic_ends = count_tryptic_ends(self.peptide)

    def _leading_columns(self) -> str:
        return DELIMITER.join(
            [
                str(self.hit_num),
                f"{self.start_scan:04d}",
                str(self.scan_count),
                str(self.charge_state),
                f"{self.mh:.5f}",
                f"{self.xcorr:.4f}",
                f"{self.del_cn:.4f}",
                f"{self.sp:.1f}",
            ]
        )

    def _trailing_columns(self) -> str:
        multi_protein = f"+{self.multi_protein_count}" if self.multi_protein_count > 0 else "0"
        return DELIMITER.join(
            [
                multi_protein,
                self.peptide,
                f"{self.del_cn2:.4f}",
                str(self.rank_sp),
                str(self.rank_xc),
                f"{self.del_m:.5f}",
                f"{self.xc_ratio:.3f}",
                str(self.obs_ions),
                str(self.poss_ions),
                str(self.num_tryptic_ends),
                f"{self.del_m_ppm:.4f}",
            ]
        )

    def export_lines(self, expand_multi_protein: bool = True) -> List[str]:
        """
        Format the hit as results-file lines (without line terminators).

        The first line carries the primary reference. With
        ``expand_multi_protein`` each additional protein whose name differs
        from the primary reference gets its own line, identical otherwise.
        """
        self.calculate_score_components()
        start = self._leading_columns()
        end = self._trailing_columns()

        lines = [DELIMITER.join([start, self.reference, end])]
        if expand_multi_protein:
            for ref_id in sorted(self.multi_protein_refs):
                name = self.multi_protein_refs[ref_id]
                if name != self.reference:
                    lines.append(DELIMITER.join([start, name, end]))
        return lines

    def protein_xref_lines(self) -> List[str]:
        """``RankXc ScanNum ChargeState MultiProteinID Reference`` per registered protein."""
        if self.multi_protein_count <= 0:
            return []
        return [
            DELIMITER.join([str(self.rank_xc), str(self.start_scan), str(self.charge_state), str(ref_id), name])
            for ref_id, name in sorted(self.multi_protein_refs.items())
        ]


@dataclass
class SpectrumGroup:
    """All hits for one (start scan, end scan, charge) triple, in rank order."""

    start_scan: int
    end_scan: int
    charge_state: int
    header_mass: float = 0.0
    hits: List[PeptideHit] = field(default_factory=list)
    highest_xcorr: float = 0.0
    previous_hit: Optional[PeptideHit] = None

    @property
    def key(self) -> str:
        return group_key(self.start_scan, self.end_scan, self.charge_state)

    def find_duplicate(self, hit: PeptideHit) -> Optional[int]:
        """Index of a stored hit with the same start scan, charge and peptide."""
        for i, stored in enumerate(self.hits):
            if (
                stored.start_scan == hit.start_scan
                and stored.charge_state == hit.charge_state
                and stored.peptide == hit.peptide
            ):
                return i
        return None

    def add_hit(self, hit: PeptideHit) -> bool:
        """
        Rank ``hit`` within the group and fill in its derived columns.

        A duplicate (same start scan, charge and peptide) only raises the
        stored XCorr if higher; other fields are left untouched.

        Returns:
            True if the hit was added as a new rank, False if merged
        """
        duplicate = self.find_duplicate(hit)
        if duplicate is not None:
            stored = self.hits[duplicate]
            if hit.xcorr > stored.xcorr:
                stored.xcorr = hit.xcorr
                if duplicate == 0:
                    self.highest_xcorr = stored.xcorr
            return False

        rank = len(self.hits) + 1
        if rank > 1:
            self.previous_hit = self.hits[-1]
            self.previous_hit.del_cn2 = (self.previous_hit.xcorr - hit.xcorr) / self.previous_hit.xcorr
        else:
            self.highest_xcorr = hit.xcorr

        hit.hit_num = rank
        hit.del_m = hit.mh - self.header_mass
        hit.del_m_ppm = compute_delm_ppm(self.header_mass, hit.mh)
        hit.xc_ratio = hit.xcorr / self.highest_xcorr
        self.hits.append(hit)
        return True


@dataclass(frozen=True)
class OutputRecordIndex:
    """Location of one line in a scratch results file plus its sort fields."""

    score: float
    start_scan: int
    end_scan: int
    charge_state: int
    hit_num: int
    multi_protein_id: int
    offset: int
    length: int

    @property
    def sort_key(self) -> Tuple[float, int, int, int, int, int]:
        """Score descending, then scan range, charge, rank and protein id ascending."""
        return (
            -self.score,
            self.start_scan,
            self.end_scan,
            self.charge_state,
            self.hit_num,
            self.multi_protein_id,
        )
