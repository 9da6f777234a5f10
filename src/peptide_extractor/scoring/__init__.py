"""Per-hit derived scores: tryptic ends, isotope-corrected DelM and M-Score."""

from peptide_extractor.scoring.cleavage import CleavageClassifier, count_tryptic_ends
from peptide_extractor.scoring.delm import compute_delm_ppm
from peptide_extractor.scoring.discriminant import DiscriminantCalculator
from peptide_extractor.scoring.fragments import FragmentMatchScorer, TheoreticalIon, hash_scanner
from peptide_extractor.scoring.neutral_loss import NeutralLosses, calculate_neutral_losses

__all__ = [
    "CleavageClassifier",
    "count_tryptic_ends",
    "compute_delm_ppm",
    "DiscriminantCalculator",
    "FragmentMatchScorer",
    "TheoreticalIon",
    "hash_scanner",
    "NeutralLosses",
    "calculate_neutral_losses",
]
