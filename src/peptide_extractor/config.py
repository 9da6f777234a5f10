"""
Configuration constants and defaults for Peptide Extractor.

File conventions
~~~~~~~~~~~~~~~~
All files produced for a dataset share its *root name*:

* ``<root>_out.txt``  concatenated SEQUEST ``.out`` reports (input)
* ``<root>_dta.txt``  concatenated ``.dta`` peak lists (optional input)
* ``<root>_syn.txt``  synopsis: every hit above the synopsis XCorr cutoff
* ``<root>_fht.txt``  first hits: the top-ranked hit of each spectrum
* ``<root>_IRR.txt``  observed / possible ion ratios
* ``<root>_NLI.txt``  neutral-loss peak intensities
* ``<root>_MScore.txt``  per-hit M-Scores (opt-in)
* ``<root>_log.txt``  run log

Output tables are tab-delimited text with a single header line.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# =============================================================================
# General settings
# =============================================================================

# Number of .out blocks read between two flushes of the in-memory results
RESULTS_DUMPING_INTERVAL = 200

# Spectrum index progress is reported every N indexed blocks
INDEX_PROGRESS_INTERVAL = 3000

# Hits with |XCorr| below this are ignored (unscored placeholders)
XCORR_EPSILON = 1.1920929e-07

# Default XCorr cutoffs (hits must score strictly above the cutoff)
DEFAULT_SYN_XCORR_CUTOFF = 1.5
DEFAULT_FHT_XCORR_CUTOFF = 0.0

# Thresholds tabulated in the score summary
SCORE_SUMMARY_THRESHOLDS = (0, 1, 2, 3, 4, 5)

# Scratch files written next to the input during extraction
SCRATCH_FHT_NAME = "Tmp_FHT.txt"
SCRATCH_SYN_NAME = "Tmp_Syn.txt"

# Suffix appended to a results file stem for its protein cross-reference file
PROTEIN_XREF_SUFFIX = "_prot"

# =============================================================================
# Output columns
# =============================================================================

RESULTS_COLUMNS: List[str] = [
    "HitNum",
    "ScanNum",
    "ScanCount",
    "ChargeState",
    "MH",
    "XCorr",
    "DelCn",
    "Sp",
    "Reference",
    "MultiProtein",
    "Peptide",
    "DelCn2",
    "RankSp",
    "RankXc",
    "DelM",
    "XcRatio",
    "Ions_Observed",
    "Ions_Expected",
    "NumTrypticEnds",
    "DelM_PPM",
]

RESULTS_HEADER = "\t".join(RESULTS_COLUMNS)

PROTEIN_XREF_COLUMNS: List[str] = [
    "RankXc",
    "ScanNum",
    "ChargeState",
    "MultiProteinID",
    "Reference",
]

IRR_COLUMNS: List[str] = ["Scannum", "CS", "RankXc", "ObservedIons", "PossibleIons"]

NLI_COLUMNS: List[str] = ["Scannum", "NL1_Intensity", "NL2_Intensity", "NL3_Intensity"]

MSCORE_COLUMNS: List[str] = ["Scannum", "ScanEnd", "CS", "RankXc", "Peptide", "MScore"]

# =============================================================================
# Physical constants
# =============================================================================

# Mass difference between C13 and C12 (isotope peak spacing)
MASS_C13 = 1.00335483

# Mass of hydrogen minus the mass of one electron
MASS_PROTON = 1.00727649

# =============================================================================
# Fragment scoring (M-Score)
# =============================================================================

# Returned whenever a peptide cannot be scored against its spectrum
NEUTRAL_MSCORE = 10.0

# Fragment and neutral-loss matching tolerance (Da)
DEFAULT_MASS_TOLERANCE = 0.7

# Peptides with this many residues or fewer are not scored
MIN_SCORABLE_LENGTH = 5

# b-ion N-terminal adjustment and y-ion complement offset
B_ION_OFFSET = 1.01
Y_ION_OFFSET = 20.02

# Characters that mark a sequence as unscoreable (ambiguous residues, mods)
UNSCOREABLE_RESIDUES = "BZXOJU*@#!$%^&"

# Neutral-loss offsets below the parent m/z relevant to phosphopeptides
NEUTRAL_LOSS_OFFSETS: Tuple[float, float, float] = (32.7, 49.0, 98.0)

# Residue -> (monoisotopic mass, left cleavage weight, right cleavage weight)
RESIDUE_TABLE: Dict[str, Tuple[float, float, float]] = {
    "A": (71.037, -0.20, 0.35),
    "C": (103.009, -0.75, -0.20),
    "D": (115.027, 0.45, -0.45),
    "E": (129.043, -0.05, -0.15),
    "F": (147.068, 0.40, 0.45),
    "G": (57.022, -0.80, 0.50),
    "H": (137.059, 0.35, 0.25),
    "I": (113.084, -0.40, 0.35),
    "K": (128.095, -0.25, 0.30),
    "L": (113.084, -0.15, 0.05),
    "M": (131.040, -0.20, 0.10),
    "N": (114.043, -0.50, 0.10),
    "P": (97.053, -1.15, 1.15),
    "Q": (128.059, -0.35, -0.05),
    "R": (156.101, -0.75, -0.35),
    "S": (87.032, -0.60, 0.50),
    "T": (101.048, -0.65, 0.45),
    "V": (99.068, 0.00, 0.20),
    "W": (186.080, 0.25, 0.45),
    "Y": (163.063, -0.40, 0.40),
}

KNOWN_RESIDUES = "".join(RESIDUE_TABLE)


# =============================================================================
# Run settings
# =============================================================================


@dataclass
class ExtractionSettings:
    """
    Settings for one extraction run.

    File names default to ``<root_name>_<suffix>.txt`` inside
    ``destination_dir`` (which itself defaults to ``source_dir``).
    """

    source_dir: Path
    root_name: str
    destination_dir: Optional[Path] = None
    input_file_name: Optional[str] = None
    dta_file_name: Optional[str] = None
    synopsis_file_name: Optional[str] = None
    first_hits_file_name: Optional[str] = None
    log_file_name: Optional[str] = None
    make_irr_file: bool = False
    expand_multi_protein: bool = True
    fht_xcorr_cutoff: float = DEFAULT_FHT_XCORR_CUTOFF
    syn_xcorr_cutoff: float = DEFAULT_SYN_XCORR_CUTOFF
    remove_duplicated_multi_protein_refs: bool = False
    compute_mscore: bool = True
    make_mscore_file: bool = False
    keep_files: bool = False
    dumping_interval: int = RESULTS_DUMPING_INTERVAL

    @classmethod
    def from_input_file(cls, input_file: Path, **kwargs) -> "ExtractionSettings":
        """Derive source directory and root name from a ``<root>_out.txt`` path."""
        input_file = Path(input_file)
        name = input_file.name
        root = name[: -len("_out.txt")] if name.lower().endswith("_out.txt") else input_file.stem
        return cls(
            source_dir=input_file.parent,
            root_name=root,
            input_file_name=name,
            **kwargs,
        )

    @property
    def output_dir(self) -> Path:
        return Path(self.destination_dir) if self.destination_dir else Path(self.source_dir)

    @property
    def input_file(self) -> Path:
        return Path(self.source_dir) / (self.input_file_name or f"{self.root_name}_out.txt")

    @property
    def dta_file(self) -> Path:
        return Path(self.source_dir) / (self.dta_file_name or f"{self.root_name}_dta.txt")

    @property
    def synopsis_file(self) -> Path:
        return self.output_dir / (self.synopsis_file_name or f"{self.root_name}_syn.txt")

    @property
    def first_hits_file(self) -> Path:
        return self.output_dir / (self.first_hits_file_name or f"{self.root_name}_fht.txt")

    @property
    def log_file(self) -> Path:
        return self.output_dir / (self.log_file_name or f"{self.root_name}_log.txt")

    @property
    def irr_file(self) -> Path:
        return self.output_dir / f"{self.root_name}_IRR.txt"

    @property
    def nli_file(self) -> Path:
        return self.output_dir / f"{self.root_name}_NLI.txt"

    @property
    def mscore_file(self) -> Path:
        return self.output_dir / f"{self.root_name}_MScore.txt"


# =============================================================================
# Helpers
# =============================================================================

def protein_xref_path(results_path: Path) -> Path:
    """Return ``<stem>_prot<ext>`` next to a results or scratch file."""
    results_path = Path(results_path)
    return results_path.with_name(f"{results_path.stem}{PROTEIN_XREF_SUFFIX}{results_path.suffix}")
