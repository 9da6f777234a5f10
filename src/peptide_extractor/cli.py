#!/usr/bin/env python3
"""
Peptide Extractor CLI - Command-line interface for extracting ranked
peptide hits from concatenated SEQUEST results.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from peptide_extractor import __version__
from peptide_extractor.config import DEFAULT_FHT_XCORR_CUTOFF, DEFAULT_SYN_XCORR_CUTOFF
from peptide_extractor.utils.logging import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="pepextract")
def cli():
    """Peptide Extractor - Ranked synopsis and first-hits files from SEQUEST results."""
    pass


@cli.command("extract")
@click.option(
    "--input-file",
    "-i",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Concatenated SEQUEST results file (<root>_out.txt)",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for output files (default: folder of the input file)",
)
@click.option(
    "--dta-file",
    "-d",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Concatenated peak file used for M-Scores (default: <root>_dta.txt next to the input)",
)
@click.option(
    "--syn-cutoff",
    type=float,
    default=DEFAULT_SYN_XCORR_CUTOFF,
    show_default=True,
    help="Synopsis file keeps hits with XCorr above this value",
)
@click.option(
    "--fht-cutoff",
    type=float,
    default=DEFAULT_FHT_XCORR_CUTOFF,
    show_default=True,
    help="First-hits file keeps hits with XCorr above this value",
)
@click.option(
    "--no-expand",
    is_flag=True,
    help="Do not write one synopsis line per additional protein",
)
@click.option(
    "--irr",
    "make_irr",
    is_flag=True,
    help="Also write the observed/possible ion ratio file (<root>_IRR.txt)",
)
@click.option(
    "--dedupe-refs",
    is_flag=True,
    help="Drop protein names listed more than once for the same hit",
)
@click.option(
    "--no-mscore",
    is_flag=True,
    help="Skip M-Score and neutral-loss computation even if a peak file exists",
)
@click.option(
    "--mscore-file",
    "make_mscore",
    is_flag=True,
    help="Also write the M-Score of every hit (<root>_MScore.txt); needs a peak file",
)
@click.option(
    "--keep-files",
    is_flag=True,
    help="Keep scratch files after processing",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG)",
)
def extract(
    input_file: Path,
    output_dir: Optional[Path],
    dta_file: Optional[Path],
    syn_cutoff: float,
    fht_cutoff: float,
    no_expand: bool,
    make_irr: bool,
    dedupe_refs: bool,
    no_mscore: bool,
    make_mscore: bool,
    keep_files: bool,
    verbose: int,
):
    """
    Extract, score and sort the peptide hits of a concatenated results file.

    \b
    Examples:
      pepextract extract -i Dataset_out.txt
      pepextract extract -i Dataset_out.txt -o results --irr -v
      pepextract extract -i Dataset_out.txt --syn-cutoff 2.0 --no-expand
    """
    setup_logging(verbose)
    logger = logging.getLogger("peptide_extractor")

    try:
        from peptide_extractor.config import ExtractionSettings
        from peptide_extractor.core.extractor import PeptideExtractor

        settings = ExtractionSettings.from_input_file(
            input_file,
            destination_dir=output_dir,
            make_irr_file=make_irr,
            expand_multi_protein=not no_expand,
            fht_xcorr_cutoff=fht_cutoff,
            syn_xcorr_cutoff=syn_cutoff,
            remove_duplicated_multi_protein_refs=dedupe_refs,
            compute_mscore=not no_mscore,
            make_mscore_file=make_mscore,
            keep_files=keep_files,
            dta_file_name=str(dta_file.resolve()) if dta_file else None,
        )
        logger.debug(f"Using peak file: {settings.dta_file}")

        result = PeptideExtractor(settings).run()

        if result.success:
            click.echo()
            click.secho("Extraction complete!", fg="green", bold=True)
            click.echo(f"  Synopsis:   {result.synopsis_file} ({result.synopsis_count} lines)")
            click.echo(f"  First hits: {result.first_hits_file} ({result.first_hits_count} lines)")
            if result.irr_file:
                click.echo(f"  Ion ratios: {result.irr_file}")
            if result.nli_file:
                click.echo(f"  Neutral losses: {result.nli_file}")
            if result.mscore_file:
                click.echo(f"  M-Scores: {result.mscore_file}")
            sys.exit(0)
        else:
            click.secho(f"Extraction failed: {result.error_message}", fg="red")
            sys.exit(1)

    except Exception as e:
        click.secho(f"Error: {str(e)}", fg="red")
        if verbose >= 2:
            import traceback

            traceback.print_exc()
        sys.exit(1)


@cli.command("index")
@click.option(
    "--dta-file",
    "-d",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Concatenated peak file (<root>_dta.txt)",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity",
)
def index(dta_file: Path, verbose: int):
    """
    Index the spectrum blocks of a concatenated peak file.

    \b
    Example:
      pepextract index -d Dataset_dta.txt
    """
    setup_logging(verbose)

    from peptide_extractor.spectra.index import SpectrumIndex

    spectrum_index = SpectrumIndex(dta_file)
    count = spectrum_index.build()

    if count == 0:
        click.secho(f"No spectrum blocks found in {dta_file}", fg="yellow")
        sys.exit(1)

    click.secho(f"Indexed {count} spectra", fg="green")
    click.echo(f"Line terminator width: {spectrum_index.line_terminator_width} byte(s)")


@cli.command("summary")
@click.option(
    "--results-file",
    "-f",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Synopsis or first-hits file",
)
def summary(results_file: Path):
    """
    Display the XCorr threshold summary of a results file.

    \b
    Example:
      pepextract summary -f Dataset_syn.txt
    """
    import pandas as pd

    from peptide_extractor.results.summary import count_above_thresholds

    click.echo(f"Results File: {results_file}")

    if results_file.stat().st_size == 0:
        click.echo("  (no peptides)")
        return

    df = pd.read_csv(results_file, sep="\t")
    if "XCorr" not in df.columns:
        click.secho("Not a results file: no XCorr column", fg="red")
        sys.exit(1)

    click.echo(f"Rows: {len(df)}")
    click.echo(f"Spectra: {df[['ScanNum', 'ChargeState']].drop_duplicates().shape[0]}")
    click.echo()
    click.echo("XCorr thresholds:")
    click.echo("-" * 40)
    for threshold, count in count_above_thresholds(df["XCorr"]).items():
        click.echo(f"  > {threshold}: {count:>7} peptides")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
