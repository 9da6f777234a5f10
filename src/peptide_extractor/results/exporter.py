"""
SortedExporter - Writes a scratch results file in score order.

The scratch file holds lines in arrival order. Instead of loading it, the
exporter sorts the OutputRecordIndex list and copies each line by seeking to
its recorded offset, renumbering the leading HitNum column with the row's
final position.
"""

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Dict, List

from peptide_extractor.config import RESULTS_HEADER, protein_xref_path
from peptide_extractor.results.models import OutputRecordIndex
from peptide_extractor.results.summary import build_score_summary

logger = logging.getLogger(__name__)

_LEADING_ROW_NUMBER = re.compile(rb"^\d+")


def sort_record_indices(index_list: List[OutputRecordIndex]) -> List[OutputRecordIndex]:
    """Score descending; ties by start scan, end scan, charge, rank and protein id."""
    return sorted(index_list, key=lambda entry: entry.sort_key)


class SortedExporter:
    """
    Sorts one scratch results file into its final location.

    Args:
        header: Header line written before the first row
        remove_scratch: Delete the scratch file (and its ``_prot`` file)
            after a successful export
    """

    def __init__(self, header: str = RESULTS_HEADER, remove_scratch: bool = True):
        self.header = header
        self.remove_scratch = remove_scratch

    def export(self, scratch_path: Path, index_list: List[OutputRecordIndex], final_path: Path) -> Dict[int, int]:
        """
        Write the sorted results to ``final_path``.

        The output and its ``_prot`` cross-reference are written to temporary
        siblings first and renamed into place only once both are complete, so
        a failed write leaves any previous files intact.
        An empty or missing scratch file produces an empty final file.

        Returns:
            Score summary (threshold -> count) of the exported lines
        """
        scratch_path = Path(scratch_path)
        final_path = Path(final_path)

        scratch_xref = protein_xref_path(scratch_path)
        final_xref = protein_xref_path(final_path)
        tmp_path = final_path.with_name(final_path.name + ".tmp")
        tmp_xref = final_xref.with_name(final_xref.name + ".tmp")
        try:
            if not scratch_path.exists() or scratch_path.stat().st_size == 0:
                logger.info(f"No results to sort for {final_path.name}")
                tmp_path.write_bytes(b"")
            else:
                rows = self._write_sorted(scratch_path, index_list, tmp_path)
                logger.info(f"Wrote {rows} rows to {final_path.name}")
            if scratch_xref.exists():
                shutil.copyfile(scratch_xref, tmp_xref)
                os.replace(tmp_xref, final_xref)
            os.replace(tmp_path, final_path)
        except OSError:
            for path in (tmp_path, tmp_xref):
                if path.exists():
                    path.unlink()
            raise

        summary = build_score_summary(index_list)

        if self.remove_scratch:
            for path in (scratch_path, scratch_xref):
                if path.exists():
                    path.unlink()

        return summary

    def _write_sorted(self, scratch_path: Path, index_list: List[OutputRecordIndex], output_path: Path) -> int:
        row_count = 0
        with open(scratch_path, "rb") as src, open(output_path, "wb") as dst:
            dst.write((self.header + "\n").encode("utf-8"))
            for entry in sort_record_indices(index_list):
                src.seek(entry.offset)
                record = src.read(entry.length).replace(b"\0", b"")
                row_count += 1
                dst.write(_LEADING_ROW_NUMBER.sub(str(row_count).encode("ascii"), record, count=1))
        return row_count
