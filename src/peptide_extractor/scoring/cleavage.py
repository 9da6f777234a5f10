"""
CleavageClassifier - Count tryptic ends of a peptide in flanking-residue notation.

Peptides are written ``X.SEQUENCE.Y`` where ``X`` and ``Y`` are the residues
flanking the match in the protein, ``-`` for a protein terminus, or missing.
Rules are evaluated in a fixed priority order; the broad partially-tryptic
patterns would otherwise also match fully tryptic peptides.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, NamedTuple

TRYPTIC_RESIDUES = "KR"
PROLINE = "P"
PROTEIN_TERMINUS = "-"

_NOTATION = re.compile(r"^(?P<prefix>[^.]*)\.(?P<core>.+)\.(?P<suffix>[^.]*)$")

# Modification markers are any non-letter characters following a residue
_MODIFIED_KR_END = re.compile(r"[KR][^A-Za-z]+$")


@dataclass(frozen=True)
class FlankedPeptide:
    """A peptide split into its preceding flank, core sequence and following flank."""

    prefix: str
    core: str
    suffix: str

    @classmethod
    def parse(cls, peptide: str) -> "FlankedPeptide":
        m = _NOTATION.match(peptide.strip())
        if not m:
            return cls(prefix="", core=peptide.strip(), suffix="")
        return cls(prefix=m.group("prefix"), core=m.group("core"), suffix=m.group("suffix"))

    @property
    def preceding(self) -> str:
        return self.prefix[-1:].upper()

    @property
    def following(self) -> str:
        return self.suffix[:1].upper()

    # -- terminus states -------------------------------------------------

    def tryptic_n_term(self) -> bool:
        """Cleavage after K/R on the N-terminal side."""
        return self.preceding != "" and self.preceding in TRYPTIC_RESIDUES

    def tryptic_c_term(self) -> bool:
        """
        Cleavage at the C-terminal side of the core.

        Counts when the core ends in an unmodified K/R, or when the following
        flank itself is K/R, so ``K.PEPTIDE.R`` is fully tryptic. A following
        proline or protein terminus never counts. As a consequence
        ``A.PEPTIDE.K`` has one tryptic end, ``K.PEPTIDEK.A`` two and
        ``K.PEPTIDEK.P`` one.
        """
        following = self.following
        if following == "" or following in (PROLINE, PROTEIN_TERMINUS):
            return False
        if following in TRYPTIC_RESIDUES:
            return True
        return self.core[-1:].upper() in TRYPTIC_RESIDUES

    def tryptic_c_term_modified(self) -> bool:
        """Cleavage after a K/R that carries a modification marker."""
        following = self.following
        if following == "" or following in (PROLINE, PROTEIN_TERMINUS):
            return False
        return bool(_MODIFIED_KR_END.search(self.core.upper()))

    def any_tryptic_c_term(self) -> bool:
        return self.tryptic_c_term() or self.tryptic_c_term_modified()

    def protein_n_term(self) -> bool:
        return self.prefix == PROTEIN_TERMINUS

    def protein_c_term(self) -> bool:
        return self.suffix == PROTEIN_TERMINUS


class CleavageRule(NamedTuple):
    name: str
    predicate: Callable[[FlankedPeptide], bool]
    tryptic_ends: int


# Ordered: the first rule that matches decides the count
CLEAVAGE_RULES: List[CleavageRule] = [
    CleavageRule(
        "fully_tryptic",
        lambda p: p.tryptic_n_term() and p.tryptic_c_term(),
        2,
    ),
    CleavageRule(
        "fully_tryptic_modified_kr",
        lambda p: p.tryptic_n_term() and p.tryptic_c_term_modified(),
        2,
    ),
    CleavageRule(
        "spans_protein",
        lambda p: p.protein_n_term() and p.protein_c_term(),
        2,
    ),
    CleavageRule(
        "protein_n_term_tryptic_c_term",
        lambda p: p.protein_n_term() and p.any_tryptic_c_term(),
        2,
    ),
    CleavageRule(
        "tryptic_n_term_protein_c_term",
        lambda p: p.tryptic_n_term() and p.protein_c_term(),
        2,
    ),
    CleavageRule(
        "partially_tryptic_n_term",
        lambda p: p.tryptic_n_term(),
        1,
    ),
    CleavageRule(
        "partially_tryptic_c_term",
        lambda p: p.tryptic_c_term(),
        1,
    ),
    CleavageRule(
        "partially_tryptic_modified_kr",
        lambda p: p.tryptic_c_term_modified(),
        1,
    ),
]


class CleavageClassifier:
    """Classify peptides by their number of tryptic ends (0, 1 or 2)."""

    def __init__(self, rules: List[CleavageRule] = CLEAVAGE_RULES):
        self.rules = list(rules)

    def matching_rule(self, peptide: str) -> str:
        """Name of the first rule matching ``peptide`` (``"non_tryptic"`` if none)."""
        flanked = FlankedPeptide.parse(peptide)
        for rule in self.rules:
            if rule.predicate(flanked):
                return rule.name
        return "non_tryptic"

    def count_tryptic_ends(self, peptide: str) -> int:
        flanked = FlankedPeptide.parse(peptide)
        for rule in self.rules:
            if rule.predicate(flanked):
                return rule.tryptic_ends
        return 0


_default_classifier = CleavageClassifier()


def count_tryptic_ends(peptide: str) -> int:
    """Count tryptic ends with the default rule set."""
    return _default_classifier.count_tryptic_ends(peptide)
