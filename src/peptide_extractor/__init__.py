"""
Peptide Extractor - Turn concatenated SEQUEST results into ranked peptide tables.

Reads a concatenated ``_out.txt`` file, derives per-hit scores (tryptic
ends, isotope-corrected mass error, fragment-match M-Score) and writes
score-sorted synopsis and first-hits files with bounded memory use.
"""

__version__ = "1.0.0"
__author__ = "PRIDE Team"

from peptide_extractor.core.extractor import ExtractionResult, PeptideExtractor

__all__ = ["PeptideExtractor", "ExtractionResult", "__version__"]
