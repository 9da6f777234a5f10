"""
PeptideExtractor - Main orchestration class for the extraction workflow.
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from peptide_extractor import __version__
from peptide_extractor.config import ExtractionSettings, RESULTS_HEADER
from peptide_extractor.parser.out_file import OutBlock, OutFileParser
from peptide_extractor.report.irr import IRRWriter
from peptide_extractor.report.mscore import MScoreWriter
from peptide_extractor.report.nli import NLIWriter
from peptide_extractor.results.aggregator import ResultAggregator
from peptide_extractor.results.exporter import SortedExporter
from peptide_extractor.results.models import OutputRecordIndex, OutputType
from peptide_extractor.results.summary import format_score_summary
from peptide_extractor.scoring.discriminant import DiscriminantCalculator
from peptide_extractor.utils.logging import PACKAGE_LOGGER, add_file_handler
from peptide_extractor.utils.scratch import ScratchFiles

logger = logging.getLogger(__name__)

# Progress is logged every N spectra
PROGRESS_LOG_INTERVAL = 1000


@dataclass
class ExtractionResult:
    """Result of the extraction process."""

    success: bool
    synopsis_file: Optional[Path] = None
    first_hits_file: Optional[Path] = None
    irr_file: Optional[Path] = None
    nli_file: Optional[Path] = None
    mscore_file: Optional[Path] = None
    error_message: Optional[str] = None
    blocks_processed: int = 0
    synopsis_count: int = 0
    first_hits_count: int = 0
    synopsis_summary: Dict[int, int] = field(default_factory=dict)
    first_hits_summary: Dict[int, int] = field(default_factory=dict)
    aborted: bool = False


class PeptideExtractor:
    """
    Orchestrates extraction of peptide hits from a concatenated ``_out.txt`` file.

    Workflow:
    1. Remove stale scratch files and count the input blocks
    2. Parse each block, score its hits and stage them in memory
    3. Flush staged hits to the scratch files every few hundred blocks
    4. Sort the scratch files into the synopsis and first-hits files
    5. Write the optional IRR, NLI and M-Score tables
    """

    def __init__(self, settings: ExtractionSettings):
        """
        Initialize extractor.

        Args:
            settings: Input/output locations and extraction options
        """
        self.settings = settings
        self.scratch = ScratchFiles(settings.input_file.parent, keep_files=settings.keep_files)
        self._stop_processing = False

    def abort(self) -> None:
        """Stop reading input after the current block; scratch data is kept."""
        self._stop_processing = True

    def run(self) -> ExtractionResult:
        """
        Execute the full extraction workflow.

        Returns:
            ExtractionResult with outcome and output paths
        """
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        log_handler = None
        try:
            self.settings.output_dir.mkdir(parents=True, exist_ok=True)
            log_handler = add_file_handler(package_logger, self.settings.log_file)
            return self._run_workflow()
        except Exception as e:
            import traceback
            logger.error(f"Extraction failed: {e}")
            logger.error(traceback.format_exc())
            return ExtractionResult(success=False, error_message=str(e))
        finally:
            if log_handler is not None:
                package_logger.removeHandler(log_handler)
                log_handler.close()

    def _run_workflow(self) -> ExtractionResult:
        settings = self.settings
        logger.info(f"------ Peptide File Extractor v{__version__}")

        # Step 1: Validate input
        self.scratch.remove_stale()

        if not settings.input_file.exists():
            message = f"'{settings.input_file}' apparently doesn't exist"
            logger.error(message)
            return ExtractionResult(success=False, error_message=message)

        parser = OutFileParser(
            settings.input_file,
            remove_duplicated_multi_protein_refs=settings.remove_duplicated_multi_protein_refs,
        )
        total_blocks = parser.count_blocks()
        if total_blocks == 0:
            message = f"'{settings.input_file.name}' contained no concatenated .out files"
            logger.error(message)
            return ExtractionResult(success=False, error_message=message)

        # Step 2: Set up collaborators
        irr_writer = IRRWriter(settings.irr_file) if settings.make_irr_file else None
        nli_writer = None
        mscore_writer = None
        calculator = None
        if settings.compute_mscore:
            calculator = DiscriminantCalculator(settings.dta_file)
            if calculator.has_spectra:
                nli_writer = NLIWriter(settings.nli_file)
                calculator.nli_sink = nli_writer
                if settings.make_mscore_file:
                    mscore_writer = MScoreWriter(settings.mscore_file)
            else:
                calculator = None
        if settings.make_mscore_file and mscore_writer is None:
            logger.warning("No M-Scores are computed for this run; the M-Score file will not be written")

        aggregator = ResultAggregator()
        fht_index: List[OutputRecordIndex] = []
        syn_index: List[OutputRecordIndex] = []

        # Step 3: Parse, score and stage
        logger.info(f"Processing '{settings.input_file.name}' ({total_blocks} blocks)")
        blocks_processed = 0
        with calculator if calculator is not None else nullcontext():
            for block in parser.iter_blocks():
                if self._stop_processing:
                    logger.warning(f"Extraction aborted after {blocks_processed} spectra")
                    break

                blocks_processed += 1
                if blocks_processed % PROGRESS_LOG_INTERVAL == 0:
                    logger.info(f" ... {blocks_processed:>5} spectra processed")

                self._stage_block(block, aggregator, calculator, irr_writer, mscore_writer)

                if blocks_processed % settings.dumping_interval == 0:
                    self._dump_cached_results(aggregator, fht_index, syn_index)

        if aggregator.count > 0:
            self._dump_cached_results(aggregator, fht_index, syn_index)

        logger.info(
            f"Scratch file '{self.scratch.synopsis.name}' contains {len(syn_index):>7} peptides "
            f"(XCorr threshold was {settings.syn_xcorr_cutoff})"
        )
        logger.info(
            f"Scratch file '{self.scratch.first_hits.name}' contains {len(fht_index):>7} peptides "
            f"(XCorr threshold was {settings.fht_xcorr_cutoff})"
        )

        if self._stop_processing:
            return ExtractionResult(
                success=False,
                error_message="Extraction aborted",
                blocks_processed=blocks_processed,
                aborted=True,
            )

        # Step 4: Sort into final files
        exporter = SortedExporter(header=RESULTS_HEADER, remove_scratch=not settings.keep_files)

        logger.info("Sorting peptides in Syn file")
        syn_summary = exporter.export(self.scratch.synopsis, syn_index, settings.synopsis_file)
        logger.info("Sorting peptides in Fht file")
        fht_summary = exporter.export(self.scratch.first_hits, fht_index, settings.first_hits_file)

        logger.info(format_score_summary(syn_summary, "all peptides"))
        logger.info(format_score_summary(fht_summary, "first hits only"))
        logger.info(f"Synopsis File   '{settings.synopsis_file.name}' was generated")
        logger.info(f"First Hits File '{settings.first_hits_file.name}' was generated")

        # Step 5: Side tables
        irr_file = irr_writer.write() if irr_writer is not None else None
        nli_file = nli_writer.write() if nli_writer is not None else None
        mscore_file = mscore_writer.write() if mscore_writer is not None else None

        self.scratch.cleanup()

        return ExtractionResult(
            success=True,
            synopsis_file=settings.synopsis_file,
            first_hits_file=settings.first_hits_file,
            irr_file=irr_file,
            nli_file=nli_file,
            mscore_file=mscore_file,
            blocks_processed=blocks_processed,
            synopsis_count=len(syn_index),
            first_hits_count=len(fht_index),
            synopsis_summary=syn_summary,
            first_hits_summary=fht_summary,
        )

    @staticmethod
    def _stage_block(
        block: OutBlock,
        aggregator: ResultAggregator,
        calculator: Optional[DiscriminantCalculator],
        irr_writer: Optional[IRRWriter],
        mscore_writer: Optional[MScoreWriter] = None,
    ) -> None:
        for hit in block.hits:
            if irr_writer is not None:
                irr_writer.add_entry(hit.start_scan, hit.charge_state, hit.rank_xc, hit.obs_ions, hit.poss_ions)
            if calculator is not None:
                hit.m_score = calculator.m_score(hit.peptide, hit.start_scan, hit.end_scan, hit.charge_state)
                logger.debug(
                    f"M-Score {hit.m_score:.2f} for {hit.peptide} "
                    f"({hit.start_scan}.{hit.end_scan}.{hit.charge_state}, rank {hit.rank_xc})"
                )
                if mscore_writer is not None:
                    mscore_writer.add_hit(hit)
            aggregator.add_hit(block.header_mass, hit)

    def _dump_cached_results(
        self,
        aggregator: ResultAggregator,
        fht_index: List[OutputRecordIndex],
        syn_index: List[OutputRecordIndex],
    ) -> None:
        """Flush staged hits: first hits without multi-protein expansion, then the synopsis."""
        settings = self.settings
        aggregator.export(
            OutputType.FIRST_HITS,
            settings.fht_xcorr_cutoff,
            False,
            self.scratch.first_hits,
            fht_index,
        )
        aggregator.export_and_clear(
            OutputType.SYNOPSIS,
            settings.syn_xcorr_cutoff,
            settings.expand_multi_protein,
            self.scratch.synopsis,
            syn_index,
        )
