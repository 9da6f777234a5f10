"""Spectrum peak-file indexing and reading."""

from peptide_extractor.spectra.index import SpectrumIndex, SpectrumNotFoundError
from peptide_extractor.spectra.reader import ObservedPeak, PeakFileReader, Spectrum

__all__ = ["SpectrumIndex", "SpectrumNotFoundError", "PeakFileReader", "Spectrum", "ObservedPeak"]
