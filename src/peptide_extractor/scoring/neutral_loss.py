"""
Neutral-loss peak intensities.

Phosphopeptides commonly lose H3PO4 (98 Da) from the precursor, seen at
parent m/z minus 98, 49 (2+) or 32.7 (3+). The strongest normalized peak
near each offset is reported per spectrum.
"""

from dataclasses import dataclass

from peptide_extractor.config import DEFAULT_MASS_TOLERANCE, NEUTRAL_LOSS_OFFSETS
from peptide_extractor.spectra.reader import Spectrum


@dataclass
class NeutralLosses:
    """Normalized intensities of the three neutral-loss peaks (0.0 if absent)."""

    nl1: float = 0.0
    nl2: float = 0.0
    nl3: float = 0.0

    def as_row(self, scan_number: int) -> dict:
        return {
            "Scannum": scan_number,
            "NL1_Intensity": self.nl1,
            "NL2_Intensity": self.nl2,
            "NL3_Intensity": self.nl3,
        }


def calculate_neutral_losses(spectrum: Spectrum, mass_tolerance: float = DEFAULT_MASS_TOLERANCE) -> NeutralLosses:
    """
    Find the strongest peak within ``mass_tolerance`` of each neutral-loss m/z.

    Peaks are checked against the offsets in order (32.7, 49, 98); a peak is
    only assigned to the first offset it qualifies for. A candidate must be
    strictly more intense than the best seen so far, starting from 0, so
    zero-intensity peaks are never recorded. Scanning stops at the first peak
    past the parent m/z plus tolerance.
    """
    losses = NeutralLosses()
    if len(spectrum) == 0:
        return losses

    parent_mz = spectrum.parent_mz
    targets = [parent_mz - offset for offset in NEUTRAL_LOSS_OFFSETS]
    best = [0.0, 0.0, 0.0]

    for peak in spectrum.peaks():
        for slot, target in enumerate(targets):
            if abs(peak.mass - target) <= mass_tolerance and peak.normalized_intensity > best[slot]:
                best[slot] = peak.normalized_intensity
                break
        else:
            if peak.mass > parent_mz + mass_tolerance:
                break

    losses.nl1, losses.nl2, losses.nl3 = (round(value, 2) for value in best)
    return losses
