"""
OutFileParser - Read hits from a concatenated SEQUEST ``_out.txt`` file.

A concatenated file is a series of ``.out`` reports, each introduced by a
delimiter line naming the source ``.out`` file::

    =================================== "Dataset.1234.1234.2.out" ==================================

followed by the report header (containing the measured precursor ``mass = ``)
and a hit table below a dashed line::

      #   Rank/Sp      Id#     (M+H)+    deltCn   XCorr    Sp    Ions   Reference    Peptide
     ---  --------  --------  --------   ------  ------   ------  ----  ---------    -------
      1.   1 /  1          0  1234.5678  0.0000  3.5000   800.5  12/ 20  Protein1  +1  K.PEPTIDER.A
          Protein2
      2.   2 /  5          0  1234.5678  0.1000  3.1500   500.5  10/ 20  Protein3      R.PEPTIDEK.A

Indented lines under a hit name further proteins containing the peptide.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Set, TextIO, Tuple

from peptide_extractor.results.models import PeptideHit

logger = logging.getLogger(__name__)

BLOCK_DELIMITER = re.compile(
    r'^\s*={5,}\s+"(?P<rootname>.+)\.(?P<start_scan>\d+)\.(?P<end_scan>\d+)\.'
    r"(?P<charge_block>(?P<charge_state>\d+)[^0-9]?(?P<charge_extra>\S*))\."
    r'(?P<file_type>.+)"\s+={5,}\s*$',
    re.IGNORECASE,
)

# Any line starting with '=' counts as a block when counting
BLOCK_CANDIDATE = re.compile(r"^===*")

HEADER_MASS = re.compile(r"mass\s+=\s+(?P<header_mass>\d+\.\d+)")

DATA_BLOCK_DELIMITER = re.compile(r"^\s+---\s+-{3,}")

# The Id# column is optional, as are Sf (Bioworks 3.3) and the +N multi-protein count
HIT_LINE = re.compile(
    r"^\s*(?P<hitnum>\d+)\.\s+"
    r"(?P<rankxc>\d+)\s*/\s*(?P<ranksp>\d+)\s+"
    r"(?:(?P<id>\d+)\s+)*"
    r"(?P<mhmass>\d+\.\d+)\s+"
    r"(?P<delcn>\d+\.\d+)\s+"
    r"(?P<xcorr>\d+\.\d+)\s+"
    r"(?P<sp>\d+\.\d+)\s+"
    r"(?:(?P<sf>[0-9.]+)\s+)*"
    r"(?P<obsions>\d+)\s*/\s*(?P<theoions>\d+)\s+"
    r"(?P<reference>\S+)\s+"
    r"(?:\+(?P<multiorf>\d+)\s+)*"
    r"(?P<sequence>\S+)",
    re.IGNORECASE | re.DOTALL,
)

HIT_LINE_NO_REFERENCE = re.compile(
    r"^\s*(?P<hitnum>\d+)\.\s+"
    r"(?P<rankxc>\d+)\s*/\s*(?P<ranksp>\d+)\s+"
    r"(?:(?P<id>\d+)\s+)*"
    r"(?P<mhmass>\d+\.\d+)\s+"
    r"(?P<delcn>\d+\.\d+)\s+"
    r"(?P<xcorr>\d+\.\d+)\s+"
    r"(?P<sp>\d+\.\d+)\s+"
    r"(?:(?P<sf>[0-9.]+)\s+)*"
    r"(?P<obsions>\d+)\s*/\s*(?P<theoions>\d+)\s+"
    r"(?P<sequence>\S+)",
    re.IGNORECASE | re.DOTALL,
)

EXTRA_PROTEIN_LINE = re.compile(r"^\s+\d*\s+(?P<reference>\S+)\s*(?P<description>.*)", re.IGNORECASE | re.DOTALL)

# Numbered protein summary lines printed below the hit table
TOP_PROTEINS_LINE = re.compile(r"^\s+\d+\.\s+\d*\s+(?P<reference>\S+)\s+(?P<description>.+)$", re.IGNORECASE | re.DOTALL)


@dataclass
class OutBlock:
    """Hits of one ``.out`` report."""

    start_scan: int
    end_scan: int
    charge_state: int
    header_mass: float = 0.0
    hits: List[PeptideHit] = field(default_factory=list)


class OutFileParser:
    """
    Iterates the ``.out`` blocks of a concatenated file.

    Blocks whose delimiter line was already seen are skipped with a warning.
    """

    def __init__(self, out_file: Path, remove_duplicated_multi_protein_refs: bool = False):
        """
        Initialize parser.

        Args:
            out_file: Path to the ``_out.txt`` file
            remove_duplicated_multi_protein_refs: Drop protein names already
                listed for the same hit
        """
        self.out_file = Path(out_file)
        self.remove_duplicated_multi_protein_refs = remove_duplicated_multi_protein_refs
        self._handle: Optional[TextIO] = None

    def count_blocks(self) -> int:
        """Number of delimiter-like lines, used for progress reporting."""
        count = 0
        with open(self.out_file, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                if BLOCK_CANDIDATE.match(line):
                    count += 1
        return count

    def _next_line(self) -> Optional[str]:
        line = self._handle.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def iter_blocks(self) -> Iterator[OutBlock]:
        """Yield each block in file order, with its hits parsed."""
        seen: Set[str] = set()
        with open(self.out_file, "r", encoding="utf-8", errors="replace") as handle:
            self._handle = handle
            line = self._next_line()
            while line is not None:
                m = BLOCK_DELIMITER.match(line)
                if not m:
                    line = self._next_line()
                    continue

                if line in seen:
                    logger.warning(f"Skipping duplicate .out file: {line.strip().strip('=').strip()}")
                    line = self._next_line()
                    continue
                seen.add(line)

                block = OutBlock(
                    start_scan=int(m.group("start_scan")),
                    end_scan=int(m.group("end_scan")),
                    charge_state=int(m.group("charge_state")),
                )
                line = self._read_block(block)
                yield block
        self._handle = None

    def _advance_until(self, pattern: re.Pattern) -> Tuple[Optional[re.Match], Optional[str]]:
        """
        Read forward to the first line matching ``pattern``.

        Stops early at the next block delimiter, which is returned unconsumed.
        """
        line = self._next_line()
        while line is not None:
            m = pattern.search(line)
            if m:
                return m, None
            if BLOCK_DELIMITER.match(line):
                return None, line
            line = self._next_line()
        return None, None

    def _read_block(self, block: OutBlock) -> Optional[str]:
        """Fill ``block`` and return the first line not belonging to it."""
        m, pending = self._advance_until(HEADER_MASS)
        if m is None:
            logger.debug(f"No header mass in block {block.start_scan}.{block.end_scan}.{block.charge_state}")
            return pending
        block.header_mass = float(m.group("header_mass"))

        m, pending = self._advance_until(DATA_BLOCK_DELIMITER)
        if m is None:
            return pending

        line = self._next_line()
        while line is not None:
            hit = self.parse_hit_line(line, block)
            if hit is None:
                break

            refs: List[str] = []
            line = self._next_line()
            while line is not None:
                em = EXTRA_PROTEIN_LINE.match(line)
                if not em or TOP_PROTEINS_LINE.match(line):
                    break
                ref = em.group("reference")
                if (
                    self.remove_duplicated_multi_protein_refs
                    and ref in refs
                    and ref.lower() != hit.reference.lower()
                ):
                    logger.debug(f"Dropping duplicated protein {ref} for {hit.peptide}")
                else:
                    hit.add_multi_protein_ref(ref)
                    refs.append(ref)
                line = self._next_line()

            hit.multi_protein_count = len(refs)
            block.hits.append(hit)

        return line

    @staticmethod
    def parse_hit_line(line: str, block: OutBlock) -> Optional[PeptideHit]:
        """Parse one hit table row, or return None if ``line`` is not a hit."""
        m = HIT_LINE.match(line)
        has_reference = m is not None
        if m is None:
            m = HIT_LINE_NO_REFERENCE.match(line)
            if m is None:
                return None

        return PeptideHit(
            start_scan=block.start_scan,
            end_scan=block.end_scan,
            charge_state=block.charge_state,
            peptide=m.group("sequence"),
            hit_num=int(m.group("hitnum")),
            mh=round(float(m.group("mhmass")), 5),
            xcorr=float(m.group("xcorr")),
            del_cn=float(m.group("delcn")),
            sp=float(m.group("sp")),
            reference=m.group("reference") if has_reference else "",
            rank_sp=int(m.group("ranksp")),
            rank_xc=int(m.group("rankxc")),
            obs_ions=int(m.group("obsions")),
            poss_ions=int(m.group("theoions")),
        )
