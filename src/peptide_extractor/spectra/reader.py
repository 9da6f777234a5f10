"""
Peak-block reader for concatenated ``_dta.txt`` files.

A block looks like::

    =========== "Dataset.1234.1234.2.dta" ===========
    1523.7421 2
    175.1190 1042.0
    262.1510 388.5
    ...

Header line, then ``parent MH`` and charge, then ``mass intensity`` pairs
until the next non-peak line or end of file.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterator, NamedTuple, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Intensities below this are treated as zero when normalizing
INTENSITY_EPSILON = 1.1920929e-07

_HEADER_SCAN = re.compile(r'^=+\s+"\S+\.(?P<scan_num>\d+)\.\d+\.\d+\.dta')
_PARENT_LINE = re.compile(r"^(?P<parent_mass>\d+\.*\d*)\s+(?P<charge_state>\d+)")
_PEAK_LINE = re.compile(r"^(?P<mass>\d+\.\d+)\s+(?P<intensity>\d+(?:\.\d*)?)")

# CRLF, lone CR and lone LF all end a line
_LINE_BREAK = re.compile(rb"\r\n|\r|\n")


class ObservedPeak(NamedTuple):
    mass: float
    intensity: float
    normalized_intensity: float


@dataclass(eq=False)
class Spectrum:
    """Fragment peaks of one spectrum block, ordered by ascending mass."""

    scan_number: int = 0
    parent_mh: float = 0.0
    parent_charge: int = 0
    masses: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=float))
    intensities: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=float))
    normalized: np.ndarray = field(init=False)

    def __post_init__(self):
        self.masses = np.asarray(self.masses, dtype=float)
        self.intensities = np.asarray(self.intensities, dtype=float)
        self.normalized = normalize_intensities(self.intensities)

    @property
    def parent_mz(self) -> float:
        """Parent m/z computed from the (M+H)+ mass and charge."""
        if self.parent_charge <= 0:
            return 0.0
        return (self.parent_mh - 1.0 + self.parent_charge) / self.parent_charge

    @property
    def max_intensity(self) -> float:
        return float(self.intensities.max()) if self.intensities.size else 0.0

    def is_mass_sorted(self) -> bool:
        return bool(np.all(np.diff(self.masses) >= 0))

    def peaks(self) -> Iterator[ObservedPeak]:
        for mass, intensity, norm in zip(self.masses, self.intensities, self.normalized):
            yield ObservedPeak(float(mass), float(intensity), float(norm))

    def __len__(self) -> int:
        return int(self.masses.size)


def iter_lines(handle: BinaryIO, start: int = 0, chunk_size: int = 65536) -> Iterator[Tuple[int, bytes]]:
    """
    Yield ``(offset, line)`` for each line read from ``handle``.

    Lines may end in CRLF, a lone CR or a lone LF, and the terminator is not
    part of ``line``. ``start`` is the byte position of the handle when
    iteration begins, so offsets stay absolute after a seek.
    """
    offset = start
    buffer = b""
    while True:
        chunk = handle.read(chunk_size)
        if not chunk:
            break
        buffer += chunk
        pos = 0
        for m in _LINE_BREAK.finditer(buffer):
            # A CR at the end of the buffer may be the first half of a CRLF
            if m.group() == b"\r" and m.end() == len(buffer):
                break
            yield offset + pos, buffer[pos : m.start()]
            pos = m.end()
        buffer = buffer[pos:]
        offset += pos

    if buffer:
        yield offset, buffer[:-1] if buffer.endswith(b"\r") else buffer


def normalize_intensities(intensities: np.ndarray) -> np.ndarray:
    """Scale intensities to the spectrum maximum; all zeros if the maximum is ~0."""
    intensities = np.asarray(intensities, dtype=float)
    if intensities.size == 0:
        return np.empty(0, dtype=float)
    max_intensity = intensities.max()
    if abs(max_intensity) < INTENSITY_EPSILON:
        return np.zeros_like(intensities)
    return intensities / max_intensity


class PeakFileReader:
    """
    Reads spectrum blocks by byte offset.

    Each reader owns its own file handle; use one reader per worker when
    scoring spectra in parallel.
    """

    def __init__(self, dta_file: Path):
        self.dta_file = Path(dta_file)
        self._handle = None

    def open(self) -> "PeakFileReader":
        if self._handle is None:
            self._handle = open(self.dta_file, "rb")
        return self

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def read_spectrum(self, offset: int) -> Spectrum:
        """
        Read the block whose header line starts at ``offset``.

        Returns:
            Spectrum with peaks sorted by ascending mass; an empty spectrum if
            the block has no parent line or no peak lines
        """
        self.open()
        self._handle.seek(offset)
        lines = (raw.decode("latin-1") for _, raw in iter_lines(self._handle, offset))

        scan_number = 0
        header = next(lines, None)
        if header is None:
            return Spectrum()
        m = _HEADER_SCAN.match(header)
        if m:
            scan_number = int(m.group("scan_num"))

        parent_line = next(lines, None)
        if parent_line is None:
            return Spectrum(scan_number=scan_number)
        m = _PARENT_LINE.match(parent_line)
        if not m:
            logger.debug(f"Block at offset {offset} has no parent mass line")
            return Spectrum(scan_number=scan_number)
        parent_mh = float(m.group("parent_mass"))
        parent_charge = int(m.group("charge_state"))

        masses = []
        intensities = []
        for line in lines:
            m = _PEAK_LINE.match(line)
            if not m:
                break
            masses.append(float(m.group("mass")))
            intensities.append(float(m.group("intensity")))

        masses = np.array(masses, dtype=float)
        intensities = np.array(intensities, dtype=float)
        if np.any(np.diff(masses) < 0):
            logger.debug(f"Sorting out-of-order peaks of the block at offset {offset}")
            order = np.argsort(masses, kind="stable")
            masses = masses[order]
            intensities = intensities[order]

        return Spectrum(
            scan_number=scan_number,
            parent_mh=parent_mh,
            parent_charge=parent_charge,
            masses=masses,
            intensities=intensities,
        )
