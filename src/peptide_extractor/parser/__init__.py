"""Concatenated SEQUEST ``.out`` file parsing."""

from peptide_extractor.parser.out_file import OutBlock, OutFileParser

__all__ = ["OutBlock", "OutFileParser"]
