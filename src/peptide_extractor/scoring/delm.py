"""
Isotope-aware precursor mass error.

Instruments sometimes pick the C13 isotope peak instead of the monoisotopic
peak as the precursor. The observed mass difference is then close to a
multiple of the C13 spacing; this module removes that offset before
converting the remaining error to ppm.
"""

from typing import Tuple

from peptide_extractor.config import MASS_C13, MASS_PROTON

# Half-width of the window a corrected mass difference must fall into (Da)
ISOTOPE_WINDOW = 0.5


def mass_to_ppm(mass_difference: float, reference_mass: float) -> float:
    """
    Convert a mass difference (Da) to ppm relative to ``reference_mass``.

    Raises:
        ValueError: If ``reference_mass`` is zero
    """
    if reference_mass == 0:
        raise ValueError("Cannot convert mass difference to ppm: reference mass is zero")
    return mass_difference * 1e6 / reference_mass


def correct_isotope_delm(del_m: float) -> Tuple[float, int]:
    """
    Shift ``del_m`` by whole C13 spacings until it lies within +/-0.5 Da.

    The walk direction follows the sign of ``del_m``: positive offsets are
    reduced while above +0.5, offsets below -0.5 are raised while below -0.5.

    Returns:
        Tuple of (corrected delta mass, signed correction count)
    """
    correction_count = 0
    if del_m >= -ISOTOPE_WINDOW:
        while del_m > ISOTOPE_WINDOW:
            del_m -= MASS_C13
            correction_count += 1
    else:
        while del_m < -ISOTOPE_WINDOW:
            del_m += MASS_C13
            correction_count -= 1
    return del_m, correction_count


def compute_delm_ppm_from_mono(
    del_m: float,
    precursor_mono_mass: float,
    peptide_mono_mass: float,
    adjust_precursor_for_c13: bool = True,
) -> float:
    """Isotope-corrected ppm error from a delta mass and the two mono masses."""
    del_m, correction_count = correct_isotope_delm(del_m)

    if correction_count != 0:
        if adjust_precursor_for_c13:
            precursor_mono_mass -= correction_count * MASS_C13
        del_m = precursor_mono_mass - peptide_mono_mass

    return mass_to_ppm(del_m, peptide_mono_mass)


def compute_delm_ppm(precursor_mh: float, peptide_theoretical_mh: float) -> float:
    """
    Compute the isotope-corrected precursor mass error in ppm.

    Args:
        precursor_mh: Observed precursor mass as (M+H)+
        peptide_theoretical_mh: Theoretical peptide mass as (M+H)+

    Returns:
        Mass error in ppm relative to the theoretical monoisotopic mass

    Raises:
        ValueError: If the theoretical monoisotopic mass is zero

    Example:
        >>> round(compute_delm_ppm(1001.01, 1000.0), 2)
        6.65
    """
    del_m = precursor_mh - peptide_theoretical_mh
    precursor_mono_mass = precursor_mh - MASS_PROTON
    peptide_mono_mass = peptide_theoretical_mh - MASS_PROTON
    return compute_delm_ppm_from_mono(del_m, precursor_mono_mass, peptide_mono_mass)
