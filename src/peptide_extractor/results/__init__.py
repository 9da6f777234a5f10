"""Result staging, sorting and score summaries."""

from peptide_extractor.results.aggregator import ResultAggregator
from peptide_extractor.results.exporter import SortedExporter
from peptide_extractor.results.models import OutputRecordIndex, OutputType, PeptideHit, SpectrumGroup
from peptide_extractor.results.summary import build_score_summary, format_score_summary

__all__ = [
    "ResultAggregator",
    "SortedExporter",
    "OutputRecordIndex",
    "OutputType",
    "PeptideHit",
    "SpectrumGroup",
    "build_score_summary",
    "format_score_summary",
]
