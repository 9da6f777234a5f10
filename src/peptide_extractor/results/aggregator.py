"""
ResultAggregator - In-memory staging of peptide hits with periodic flushes.

Hits are grouped per spectrum as they are parsed. Every few hundred spectra
the caller flushes the groups into a scratch results file with
``export_and_clear``, recording where each line landed so the scratch file
can later be re-read in sorted order. All groups are dropped at each flush,
which keeps memory proportional to the flush interval.
"""

import logging
from pathlib import Path
from typing import Dict, List

from peptide_extractor.config import PROTEIN_XREF_COLUMNS, XCORR_EPSILON, protein_xref_path
from peptide_extractor.results.models import (
    OutputRecordIndex,
    OutputType,
    PeptideHit,
    SpectrumGroup,
    group_key,
)

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\n"
ENCODING = "utf-8"


class ResultAggregator:
    """Collects hits per spectrum group and exports them to scratch files."""

    def __init__(self):
        self._groups: Dict[str, SpectrumGroup] = {}

    @property
    def count(self) -> int:
        """Number of spectrum groups currently held."""
        return len(self._groups)

    def __len__(self) -> int:
        return self.count

    def groups(self) -> List[SpectrumGroup]:
        return list(self._groups.values())

    def add_hit(self, header_mass: float, hit: PeptideHit) -> bool:
        """
        Add a hit to the group for its scan range and charge.

        Hits with an XCorr of (almost) zero are unscored placeholders and are
        ignored.

        Returns:
            True if the hit was stored as a new rank
        """
        if abs(hit.xcorr) < XCORR_EPSILON:
            return False

        key = group_key(hit.start_scan, hit.end_scan, hit.charge_state)
        group = self._groups.get(key)
        if group is None:
            group = SpectrumGroup(hit.start_scan, hit.end_scan, hit.charge_state, header_mass=header_mass)
            self._groups[key] = group

        return group.add_hit(hit)

    def clear(self) -> None:
        self._groups.clear()

    def export(
        self,
        output_type: OutputType,
        xcorr_cutoff: float,
        expand_multi_protein: bool,
        export_path: Path,
        index_list: List[OutputRecordIndex],
    ) -> int:
        """
        Append all staged hits above ``xcorr_cutoff`` to ``export_path``.

        In first-hits mode only rank 1 of each group is written, and the
        protein cross-reference lines of those hits are appended to the
        matching ``_prot`` scratch file. One OutputRecordIndex per written
        line is appended to ``index_list``.

        Returns:
            Number of lines written
        """
        export_path = Path(export_path)
        first_hits_only = output_type == OutputType.FIRST_HITS
        lines_written = 0

        xref_handle = None
        if first_hits_only:
            xref_path = protein_xref_path(export_path)
            xref_handle = open(xref_path, "ab")
            if xref_handle.tell() == 0:
                xref_handle.write(self._encode("\t".join(PROTEIN_XREF_COLUMNS)))

        try:
            with open(export_path, "ab") as out:
                position = out.tell()
                for group in self._groups.values():
                    for hit in group.hits:
                        if first_hits_only and hit.hit_num > 1:
                            break
                        if hit.xcorr <= xcorr_cutoff:
                            continue

                        for multi_protein_id, line in enumerate(hit.export_lines(expand_multi_protein)):
                            data = self._encode(line)
                            out.write(data)
                            index_list.append(
                                OutputRecordIndex(
                                    score=hit.xcorr,
                                    start_scan=hit.start_scan,
                                    end_scan=hit.end_scan,
                                    charge_state=hit.charge_state,
                                    hit_num=hit.hit_num,
                                    multi_protein_id=multi_protein_id,
                                    offset=position,
                                    length=len(data),
                                )
                            )
                            position += len(data)
                            lines_written += 1

                        if xref_handle is not None and hit.rank_xc == 1:
                            for xref_line in hit.protein_xref_lines():
                                xref_handle.write(self._encode(xref_line))
        finally:
            if xref_handle is not None:
                xref_handle.close()

        logger.debug(f"Exported {lines_written} {output_type.value} lines from {self.count} spectra to {export_path.name}")
        return lines_written

    def export_and_clear(
        self,
        output_type: OutputType,
        xcorr_cutoff: float,
        expand_multi_protein: bool,
        export_path: Path,
        index_list: List[OutputRecordIndex],
    ) -> int:
        """Export like :meth:`export`, then drop every staged group."""
        lines_written = self.export(output_type, xcorr_cutoff, expand_multi_protein, export_path, index_list)
        self.clear()
        return lines_written

    @staticmethod
    def _encode(line: str) -> bytes:
        return (line + LINE_TERMINATOR).encode(ENCODING)
