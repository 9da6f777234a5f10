"""
DiscriminantCalculator - M-Score lookup for hits against a ``_dta.txt`` peak file.

Hits arrive grouped by spectrum, so the last spectrum read is cached and
re-used for every hit of the same scan range and charge. Each time the scan
range changes, the neutral-loss intensities of the new spectrum are handed
to an optional sink (normally the NLI writer).
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Tuple

from peptide_extractor.config import DEFAULT_MASS_TOLERANCE, NEUTRAL_MSCORE
from peptide_extractor.scoring.fragments import FragmentMatchScorer
from peptide_extractor.scoring.neutral_loss import NeutralLosses, calculate_neutral_losses
from peptide_extractor.spectra.index import SpectrumIndex, SpectrumNotFoundError
from peptide_extractor.spectra.reader import PeakFileReader, Spectrum

logger = logging.getLogger(__name__)

NeutralLossSink = Callable[[int, NeutralLosses], None]


class DiscriminantCalculator:
    """
    Computes M-Scores for peptide hits, reading spectra on demand.

    If the peak file does not exist every hit scores the neutral 10.0.
    """

    def __init__(
        self,
        dta_file: Path,
        nli_sink: Optional[NeutralLossSink] = None,
        mass_tolerance: float = DEFAULT_MASS_TOLERANCE,
    ):
        self.dta_file = Path(dta_file)
        self.nli_sink = nli_sink
        self.scorer = FragmentMatchScorer(mass_tolerance)
        self.mass_tolerance = mass_tolerance

        self._index: Optional[SpectrumIndex] = None
        self._reader: Optional[PeakFileReader] = None
        self._no_dtas = not self.dta_file.exists()
        self._cached_scan_key: Optional[Tuple[int, int]] = None
        self._cached_charge: Optional[int] = None
        self._cached_spectrum: Optional[Spectrum] = None

        if self._no_dtas:
            logger.warning(f"Peak file not found, M-Scores will not be computed: {self.dta_file}")

    @property
    def has_spectra(self) -> bool:
        return not self._no_dtas

    def open(self) -> "DiscriminantCalculator":
        """Index the peak file and open a read handle (once)."""
        if self._no_dtas or self._index is not None:
            return self
        self._index = SpectrumIndex(self.dta_file)
        self._index.build()
        self._reader = PeakFileReader(self.dta_file).open()
        return self

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _load_spectrum(self, start_scan: int, end_scan: int, charge_state: int) -> Spectrum:
        try:
            offset = self._index.offset_of(start_scan, end_scan, charge_state)
        except SpectrumNotFoundError as e:
            logger.debug(str(e))
            return Spectrum(scan_number=start_scan)
        return self._reader.read_spectrum(offset)

    def m_score(self, peptide: str, start_scan: int, end_scan: int, charge_state: int) -> float:
        """
        M-Score of one hit.

        Returns:
            The score from FragmentMatchScorer, or 10.0 when there is no peak
            file or no usable spectrum for this scan range and charge
        """
        if self._no_dtas:
            return NEUTRAL_MSCORE
        self.open()

        scan_key = (start_scan, end_scan)
        if charge_state != self._cached_charge or scan_key != self._cached_scan_key:
            spectrum = self._load_spectrum(start_scan, end_scan, charge_state)
            if len(spectrum) == 0:
                return NEUTRAL_MSCORE

            if scan_key != self._cached_scan_key and self.nli_sink is not None:
                self.nli_sink(start_scan, calculate_neutral_losses(spectrum, self.mass_tolerance))

            self._cached_spectrum = spectrum
            self._cached_scan_key = scan_key
            self._cached_charge = charge_state

        try:
            return self.scorer.score(peptide, charge_state, self._cached_spectrum)
        except ValueError as e:
            logger.warning(f"Cannot score {peptide} against {start_scan}.{end_scan}.{charge_state}: {e}")
            return NEUTRAL_MSCORE
