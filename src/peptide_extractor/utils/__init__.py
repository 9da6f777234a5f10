"""Utility functions."""

from peptide_extractor.utils.logging import setup_logging
from peptide_extractor.utils.scratch import ScratchFiles

__all__ = ["setup_logging", "ScratchFiles"]
