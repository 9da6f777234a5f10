"""
Tests for CleavageClassifier - tryptic end counting.
"""

import pytest

from peptide_extractor.scoring.cleavage import (
    CLEAVAGE_RULES,
    CleavageClassifier,
    FlankedPeptide,
    count_tryptic_ends,
)


class TestFlankedPeptide:
    """Tests for splitting flanking-residue notation."""

    def test_parse_basic(self):
        """Test prefix, core and suffix are split on the outer dots."""
        p = FlankedPeptide.parse("K.PEPTIDER.A")
        assert p.prefix == "K"
        assert p.core == "PEPTIDER"
        assert p.suffix == "A"

    def test_parse_keeps_internal_dots(self):
        """Test dots inside the core do not split the sequence."""
        p = FlankedPeptide.parse("K.PEP.TIDE.A")
        assert p.core == "PEP.TIDE"

    def test_parse_without_flanks(self):
        """Test a bare sequence has empty flanks."""
        p = FlankedPeptide.parse("PEPTIDE")
        assert p.prefix == ""
        assert p.core == "PEPTIDE"
        assert p.suffix == ""


class TestCountTrypticEnds:
    """Tests for the ordered rule evaluation."""

    def test_fully_tryptic(self):
        """Test K/R before and a K/R flank after counts two ends."""
        assert count_tryptic_ends("K.PEPTIDE.R") == 2

    def test_partially_tryptic(self):
        """Test a single qualifying terminus counts one end."""
        assert count_tryptic_ends("K.PEPTIDE.A") == 1

    def test_non_tryptic(self):
        """Test no qualifying terminus counts zero."""
        assert count_tryptic_ends("A.PEPTIDE.A") == 0

    @pytest.mark.parametrize("core", ["X", "PEPTIDE", "AAAAAAAAAAAAAAAAAAAA", "M*EK#"])
    def test_whole_protein_is_always_two(self, core):
        """Test a peptide spanning the whole protein counts two regardless of content."""
        assert count_tryptic_ends(f"-.{core}.-") == 2

    def test_core_ending_in_kr(self):
        """Test cleavage after the last core residue K/R."""
        assert count_tryptic_ends("R.PEPTIDEK.S") == 2
        assert count_tryptic_ends("A.PEPTIDEK.S") == 1

    def test_proline_blocks_c_term(self):
        """Test K/R followed by proline is not a tryptic C-terminus."""
        assert count_tryptic_ends("A.PEPTIDEK.P") == 0
        assert count_tryptic_ends("K.PEPTIDEK.P") == 1

    def test_following_kr_counts_as_c_term(self):
        """Test a K/R following flank is a tryptic C-terminus even when the core ends elsewhere."""
        assert count_tryptic_ends("K.PEPTIDE.R") == 2
        assert count_tryptic_ends("A.PEPTIDE.K") == 1
        assert count_tryptic_ends("K.PEPTIDEK.A") == 2
        assert count_tryptic_ends("K.PEPTIDEK.P") == 1

    def test_protein_n_term_with_tryptic_c_term(self):
        """Test a protein N-terminus combined with a tryptic C-terminus."""
        assert count_tryptic_ends("-.MPEPTIDEK.A") == 2

    def test_tryptic_n_term_with_protein_c_term(self):
        """Test a tryptic N-terminus combined with the protein C-terminus."""
        assert count_tryptic_ends("R.PEPTIDEK.-") == 2

    def test_modified_kr(self):
        """Test a modification marker after the final K/R still counts."""
        assert count_tryptic_ends("K.PEPTIDEK*.G") == 2
        assert count_tryptic_ends("A.PEPTIDEK*.G") == 1

    def test_lowercase_flanks(self):
        """Test flanks are compared case-insensitively."""
        assert count_tryptic_ends("k.PEPTIDE.r") == 2


class TestCleavageClassifier:
    """Tests for the classifier object."""

    def test_matching_rule_names(self):
        """Test the first matching rule is reported."""
        classifier = CleavageClassifier()
        assert classifier.matching_rule("K.PEPTIDE.R") == "fully_tryptic"
        assert classifier.matching_rule("-.PEPTIDE.-") == "spans_protein"
        assert classifier.matching_rule("K.PEPTIDE.A") == "partially_tryptic_n_term"
        assert classifier.matching_rule("A.PEPTIDE.A") == "non_tryptic"

    def test_rule_order(self):
        """Test fully tryptic rules come before partially tryptic ones."""
        counts = [rule.tryptic_ends for rule in CLEAVAGE_RULES]
        assert counts == sorted(counts, reverse=True)

    def test_custom_rules(self):
        """Test the classifier only applies the rules it is given."""
        classifier = CleavageClassifier(rules=CLEAVAGE_RULES[-3:])
        assert classifier.count_tryptic_ends("K.PEPTIDE.R") == 1
