"""
FragmentMatchScorer - M-Score from theoretical b/y ions matched to observed peaks.

The M-Score is an empirical discriminant that estimates how well a peptide
explains a fragment spectrum, independently of the search engine's own
score. Theoretical b and y ions are weighted by residue cleavage
propensities and matched against intensity-normalized peaks.

Score = 10.0 + sum of matched contributions, so 10.0 means "no evidence";
it is also returned for peptides that cannot be scored.
"""

import logging
import re
from enum import Enum
from typing import List, NamedTuple, Tuple

from peptide_extractor.config import (
    B_ION_OFFSET,
    DEFAULT_MASS_TOLERANCE,
    KNOWN_RESIDUES,
    MIN_SCORABLE_LENGTH,
    NEUTRAL_MSCORE,
    RESIDUE_TABLE,
    UNSCOREABLE_RESIDUES,
    Y_ION_OFFSET,
)
from peptide_extractor.scoring.cleavage import FlankedPeptide
from peptide_extractor.spectra.reader import Spectrum

logger = logging.getLogger(__name__)

_UNSCOREABLE = re.compile("[" + re.escape(UNSCOREABLE_RESIDUES) + "]")
_NOT_A_RESIDUE = re.compile(f"[^{KNOWN_RESIDUES}]")


class IonType(Enum):
    B = "b"
    Y = "y"


class TheoreticalIon(NamedTuple):
    mass: float
    intensity: float
    ion_type: IonType
    position: int


# =============================================================================
# Theoretical ions
# =============================================================================


def clean_sequence(peptide: str) -> str:
    """Strip flanking residues and keep only the 20 standard residues, uppercased."""
    core = FlankedPeptide.parse(peptide).core
    return _NOT_A_RESIDUE.sub("", core.upper())


def residue_mass(sequence: str, charge_state: int) -> float:
    """Summed residue mass of ``sequence`` divided by ``charge_state``."""
    total = 0.0
    for residue in sequence:
        entry = RESIDUE_TABLE.get(residue)
        if entry is not None:
            total += entry[0]
    return total / charge_state


def cleavage_weight(left_residue: str, right_residue: str) -> float:
    """Empirical intensity weight for backbone cleavage between two residues."""
    left = RESIDUE_TABLE.get(left_residue)
    right = RESIDUE_TABLE.get(right_residue)
    if left is None or right is None:
        return 0.0
    return round(left[1] + right[2], 2)


def generate_theoretical_ions(peptide: str, charge_state: int) -> Tuple[List[TheoreticalIon], List[TheoreticalIon]]:
    """
    Generate b and y ions for every internal cleavage of ``peptide``.

    Both lists are sorted by ascending mass, and the highest-mass ion of each
    type is dropped since it carries almost the whole peptide mass.

    Returns:
        Tuple of (b_ions, y_ions)
    """
    sequence = clean_sequence(peptide)
    length = len(sequence)
    peptide_mass = residue_mass(sequence, charge_state)

    b_ions: List[TheoreticalIon] = []
    y_ions: List[TheoreticalIon] = []
    b_mass = B_ION_OFFSET
    for position in range(1, length):
        left = sequence[position - 1]
        right = sequence[position]
        b_mass += residue_mass(left, charge_state)
        y_mass = peptide_mass - b_mass + Y_ION_OFFSET
        weight = cleavage_weight(left, right)
        b_ions.append(TheoreticalIon(round(b_mass, 4), weight, IonType.B, position))
        y_ions.append(TheoreticalIon(round(y_mass, 4), weight, IonType.Y, length - position))

    b_ions.sort(key=lambda ion: ion.mass)
    y_ions.sort(key=lambda ion: ion.mass)
    if b_ions:
        b_ions.pop()
    if y_ions:
        y_ions.pop()
    return b_ions, y_ions


# =============================================================================
# Matching
# =============================================================================


def hash_scanner(
    spectrum: Spectrum,
    ions: List[TheoreticalIon],
    mass_tolerance: float = DEFAULT_MASS_TOLERANCE,
    charge_to_check: int = 1,
) -> float:
    """
    Sum normalized intensities of observed peaks that match theoretical ions.

    A single cursor walks the observed peaks forward only; it is never reset
    between theoretical ions. Both the peaks and ``ions`` must therefore be
    sorted by ascending mass. Unsorted input would give order-dependent
    results, so it is rejected.

    For the +1 pass each match contributes ``normalized intensity * ion
    weight``; for +2 and higher passes the normalized intensity alone.

    Raises:
        ValueError: If the peaks or the ions are not sorted by mass
    """
    n_peaks = len(spectrum)
    if n_peaks == 0:
        return 0.0

    if not spectrum.is_mass_sorted():
        raise ValueError(f"Observed peaks of scan {spectrum.scan_number} are not sorted by ascending mass")
    if any(ions[i].mass > ions[i + 1].mass for i in range(len(ions) - 1)):
        raise ValueError("Theoretical ions are not sorted by ascending mass")

    masses = spectrum.masses
    normalized = spectrum.normalized
    last_index = n_peaks - 1

    match = 0.0
    cursor = 0
    observed_mass = masses[cursor]
    for ion in ions:
        theo_mass = ion.mass
        if observed_mass > theo_mass + mass_tolerance:
            continue

        while observed_mass < theo_mass - mass_tolerance and cursor < last_index:
            cursor += 1
            observed_mass = masses[cursor]

        if theo_mass - mass_tolerance <= observed_mass < theo_mass + mass_tolerance:
            if charge_to_check >= 2:
                match += normalized[cursor]
            else:
                match += normalized[cursor] * ion.intensity

    return float(match)


class FragmentMatchScorer:
    """Computes the M-Score of a peptide against an observed spectrum."""

    def __init__(self, mass_tolerance: float = DEFAULT_MASS_TOLERANCE):
        self.mass_tolerance = mass_tolerance

    @staticmethod
    def is_scoreable(peptide: str) -> bool:
        """False for ambiguous or modified residues and for very short peptides."""
        if _UNSCOREABLE.search(peptide.upper()):
            return False
        return len(clean_sequence(peptide)) > MIN_SCORABLE_LENGTH

    def score(self, peptide: str, charge_state: int, spectrum: Spectrum) -> float:
        """
        M-Score of ``peptide`` at ``charge_state`` against ``spectrum``.

        Returns:
            ``10.0 + matched intensity`` rounded to 2 decimals, or exactly
            10.0 when the spectrum is empty or the peptide is not scoreable
        """
        if len(spectrum) == 0:
            return NEUTRAL_MSCORE
        if not self.is_scoreable(peptide):
            return NEUTRAL_MSCORE

        b_ions, y_ions = generate_theoretical_ions(peptide, 1)
        match = hash_scanner(spectrum, b_ions, self.mass_tolerance, 1)
        match += hash_scanner(spectrum, y_ions, self.mass_tolerance, 1)

        if charge_state > 2:
            b_ions, y_ions = generate_theoretical_ions(peptide, 2)
            match += hash_scanner(spectrum, b_ions, self.mass_tolerance, 2)
            match += hash_scanner(spectrum, y_ions, self.mass_tolerance, 2)

        return round(NEUTRAL_MSCORE + match, 2)
