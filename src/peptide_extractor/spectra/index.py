"""
SpectrumIndex - Random-access offsets into a concatenated ``_dta.txt`` peak file.

Each spectrum block starts with a header line such as::

    =================================== "Dataset.1234.1236.2.dta" ==================================

The index maps ``"start.end.charge[_extra]"`` to the byte offset of that
header line so a block can be re-read with a single seek.
"""

import logging
import re
from pathlib import Path
from typing import Callable, Dict, Optional

from peptide_extractor.config import INDEX_PROGRESS_INTERVAL
from peptide_extractor.spectra.reader import iter_lines

logger = logging.getLogger(__name__)

# Full header grammar: root name, start scan, end scan, charge (+ optional
# variant suffix) and block type
BLOCK_HEADER = re.compile(
    r'^\s*={5,}\s+"(?P<rootname>.+)\.(?P<start_scan>\d+)\.(?P<end_scan>\d+)\.'
    r"(?P<charge_block>(?P<charge_state>\d+)[^0-9]?(?P<charge_extra>\S*))\."
    r'(?P<file_type>.+)"\s+={5,}\s*$'
)

# Cheap pre-filter for candidate header lines
_HEADER_CANDIDATE = re.compile(r"^===*")

ProgressCallback = Callable[[float], None]


class SpectrumNotFoundError(KeyError):
    """Raised when a (start, end, charge) key has no block in the peak file."""


def make_spectrum_key(start_scan: int, end_scan: int, charge_state: int, charge_extra: str = "") -> str:
    key = f"{start_scan}.{end_scan}.{charge_state}"
    if charge_extra:
        key += f"_{charge_extra}"
    return key


def detect_line_terminator_width(file_path: Path, chunk_size: int = 65536) -> int:
    """
    Return the byte width of the first line terminator in ``file_path``.

    A CR or LF immediately followed by another CR or LF counts as a two-byte
    terminator. Files without any terminator report 1.
    """
    with open(file_path, "rb") as f:
        pending_first = False
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                return 1
            for i, byte in enumerate(chunk):
                if pending_first:
                    return 2 if byte in (10, 13) else 1
                if byte in (10, 13):
                    if i + 1 < len(chunk):
                        return 2 if chunk[i + 1] in (10, 13) else 1
                    pending_first = True


class SpectrumIndex:
    """
    Byte-offset table over the spectrum blocks of a peak file.

    The file is scanned once, line by line, and never modified afterwards;
    readers holding their own file handles can share one index.
    """

    def __init__(self, dta_file: Path, progress: Optional[ProgressCallback] = None):
        """
        Initialize the index.

        Args:
            dta_file: Path to the concatenated peak file
            progress: Optional observer called with the fraction of the file
                scanned (0.0-1.0) every few thousand blocks
        """
        self.dta_file = Path(dta_file)
        self.progress = progress
        self._offsets: Dict[str, int] = {}
        self.line_terminator_width = 1

    def build(self) -> int:
        """
        Scan the peak file and record the offset of every block header.

        Returns:
            Number of blocks indexed
        """
        self._offsets.clear()
        if not self.dta_file.exists():
            logger.warning(f"Peak file not found, nothing to index: {self.dta_file}")
            return 0

        self.line_terminator_width = detect_line_terminator_width(self.dta_file)
        file_length = self.dta_file.stat().st_size
        logger.info(f"Indexing spectra in {self.dta_file.name} ({file_length:,} bytes)")

        current_pos = 0
        block_count = 0
        with open(self.dta_file, "rb") as f:
            for line_start, raw_line in iter_lines(f):
                line = raw_line.decode("latin-1")
                current_pos = line_start + len(raw_line)

                if not _HEADER_CANDIDATE.match(line):
                    continue

                m = BLOCK_HEADER.match(line)
                if not m:
                    logger.warning(f"Unrecognized block header at offset {line_start}: {line.strip()}")
                    continue

                key = make_spectrum_key(
                    int(m.group("start_scan")),
                    int(m.group("end_scan")),
                    int(m.group("charge_state")),
                    m.group("charge_extra"),
                )
                if key in self._offsets:
                    logger.warning(f"Duplicate spectrum block {key}; keeping the first occurrence")
                    continue

                self._offsets[key] = line_start
                block_count += 1
                if block_count % INDEX_PROGRESS_INTERVAL == 0:
                    logger.debug(f"Indexed {block_count} spectra")
                    if self.progress is not None and file_length:
                        self.progress(current_pos / file_length)

        if self.progress is not None:
            self.progress(1.0)
        logger.info(f"Indexed {block_count} spectra from {self.dta_file.name}")
        return block_count

    def offset_of(self, start_scan: int, end_scan: int, charge_state: int) -> int:
        """
        Byte offset of the block header for a scan range and charge.

        Raises:
            SpectrumNotFoundError: If the peak file has no such block
        """
        key = make_spectrum_key(start_scan, end_scan, charge_state)
        try:
            return self._offsets[key]
        except KeyError:
            raise SpectrumNotFoundError(f"Offsets dictionary does not have key {key}") from None

    def __contains__(self, key: str) -> bool:
        return key in self._offsets

    def __len__(self) -> int:
        return len(self._offsets)
