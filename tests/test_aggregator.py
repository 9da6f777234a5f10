"""
Tests for peptide hit models and the ResultAggregator.
"""

import pytest

from peptide_extractor.config import PROTEIN_XREF_COLUMNS, protein_xref_path
from peptide_extractor.results.aggregator import ResultAggregator
from peptide_extractor.results.models import OutputRecordIndex, OutputType, SpectrumGroup, group_key


class TestPeptideHit:
    """Tests for PeptideHit formatting."""

    def test_defaults(self, make_hit):
        """Test scan count and the primary reference are set on creation."""
        hit = make_hit(3.5, start_scan=100, end_scan=102)
        assert hit.scan_count == 3
        assert hit.multi_protein_refs == {1: "Protein1"}

    def test_add_multi_protein_ref(self, make_hit):
        """Test extra proteins get consecutive ids after the primary."""
        hit = make_hit(3.5)
        assert hit.add_multi_protein_ref("Protein2") == 2
        assert hit.add_multi_protein_ref("Protein3") == 3

    def test_export_single_line(self, make_hit):
        """Test column formatting of a plain hit."""
        hit = make_hit(3.5, hit_num=1, del_cn=0.0, sp=800.5, rank_sp=1, rank_xc=1, obs_ions=12, poss_ions=20)
        (line,) = hit.export_lines()
        columns = line.split("\t")

        assert len(columns) == 20
        assert columns[:9] == ["1", "0100", "1", "2", "1000.01000", "3.5000", "0.0000", "800.5", "Protein1"]
        assert columns[9] == "0"
        assert columns[10] == "K.PEPTIDER.A"
        assert columns[18] == "2"

    def test_expand_multi_protein(self, make_hit):
        """Test each additional protein gets an otherwise identical line."""
        hit = make_hit(3.5, multi_protein_count=1)
        hit.add_multi_protein_ref("Protein2")

        lines = hit.export_lines(expand_multi_protein=True)
        assert len(lines) == 2
        assert lines[0].split("\t")[8] == "Protein1"
        assert lines[1].split("\t")[8] == "Protein2"
        assert lines[0].split("\t")[9] == "+1"
        assert lines[0].split("\t")[9:] == lines[1].split("\t")[9:]

    def test_no_expand(self, make_hit):
        """Test only the primary line is produced without expansion."""
        hit = make_hit(3.5, multi_protein_count=1)
        hit.add_multi_protein_ref("Protein2")
        assert len(hit.export_lines(expand_multi_protein=False)) == 1

    def test_repeated_primary_not_duplicated(self, make_hit):
        """Test an extra reference equal to the primary is not written twice."""
        hit = make_hit(3.5, multi_protein_count=1)
        hit.add_multi_protein_ref("Protein1")
        assert len(hit.export_lines()) == 1

    def test_protein_xref_lines(self, make_hit):
        """Test cross-reference lines list every registered protein."""
        hit = make_hit(3.5, rank_xc=1, multi_protein_count=1)
        hit.add_multi_protein_ref("Protein2")
        assert hit.protein_xref_lines() == ["1\t100\t2\t1\tProtein1", "1\t100\t2\t2\tProtein2"]

    def test_no_xref_for_single_protein(self, make_hit):
        """Test hits without extra proteins have no cross-reference lines."""
        assert make_hit(3.5).protein_xref_lines() == []


class TestSpectrumGroup:
    """Tests for ranking within one spectrum."""

    def test_group_key(self):
        """Test zero-padded group keys."""
        assert group_key(1234, 1236, 2) == "001234.001236.02"

    def test_derived_columns(self, make_hit):
        """Test DelCn2, XcRatio and DelM for three ranked hits."""
        group = SpectrumGroup(100, 100, 2, header_mass=1000.0)
        first, second, third = make_hit(5.0, "K.AAAAAAK.A"), make_hit(3.0, "K.CCCCCCK.A"), make_hit(1.0, "K.DDDDDDK.A")
        for hit in (first, second, third):
            assert group.add_hit(hit)

        assert [h.hit_num for h in group.hits] == [1, 2, 3]
        assert first.del_cn2 == pytest.approx(0.4)
        assert second.del_cn2 == pytest.approx(2.0 / 3.0)
        assert third.del_cn2 == 0.0
        assert first.xc_ratio == 1.0
        assert second.xc_ratio == pytest.approx(0.6)
        assert third.xc_ratio == pytest.approx(0.2)
        assert first.del_m == pytest.approx(0.01)

    def test_duplicate_raises_xcorr(self, make_hit):
        """Test a duplicate with a higher XCorr only updates the score."""
        group = SpectrumGroup(100, 100, 2, header_mass=1000.0)
        group.add_hit(make_hit(3.0, sp=500.0))

        assert not group.add_hit(make_hit(3.4, sp=900.0))
        assert len(group.hits) == 1
        assert group.hits[0].xcorr == 3.4
        assert group.hits[0].sp == 500.0
        assert group.highest_xcorr == 3.4

    def test_duplicate_lower_xcorr_ignored(self, make_hit):
        """Test a duplicate with a lower XCorr changes nothing."""
        group = SpectrumGroup(100, 100, 2, header_mass=1000.0)
        group.add_hit(make_hit(3.0))
        group.add_hit(make_hit(2.0))
        assert group.hits[0].xcorr == 3.0


class TestResultAggregator:
    """Tests for ResultAggregator class."""

    @pytest.fixture
    def aggregator(self, make_hit):
        """Two spectra: one with two ranked hits, one with a single hit."""
        agg = ResultAggregator()
        top = make_hit(3.5, rank_xc=1, multi_protein_count=1)
        top.add_multi_protein_ref("Protein2")
        agg.add_hit(1000.0, top)
        agg.add_hit(1000.0, make_hit(1.2, "R.AGLIDEK.S", reference="Protein3", rank_xc=2))
        agg.add_hit(1500.0, make_hit(4.2, "K.LLLLLLLK.A", start_scan=200, end_scan=201, charge_state=3, mh=1500.02))
        return agg

    def test_groups(self, aggregator):
        """Test hits are grouped by scan range and charge."""
        assert aggregator.count == 2
        assert len(aggregator) == 2
        assert [len(g.hits) for g in aggregator.groups()] == [2, 1]

    def test_zero_xcorr_ignored(self, make_hit):
        """Test a hit with XCorr of zero is not stored."""
        agg = ResultAggregator()
        assert not agg.add_hit(1000.0, make_hit(0.0))
        assert agg.count == 0

    def test_synopsis_export(self, aggregator, tmp_path):
        """Test expanded synopsis lines and their recorded offsets."""
        path = tmp_path / "Tmp_Syn.txt"
        index_list = []

        written = aggregator.export(OutputType.SYNOPSIS, 1.5, True, path, index_list)

        assert written == 3
        data = path.read_bytes()
        for record in index_list:
            line = data[record.offset : record.offset + record.length]
            assert line.endswith(b"\n")
            assert line.split(b"\t")[0] == str(record.hit_num).encode()
        assert [r.multi_protein_id for r in index_list] == [0, 1, 0]
        assert aggregator.count == 2

    def test_first_hits_export(self, aggregator, tmp_path):
        """Test only rank 1 hits are written and cross-references are recorded."""
        path = tmp_path / "Tmp_FHT.txt"
        index_list = []

        written = aggregator.export(OutputType.FIRST_HITS, 0.0, False, path, index_list)

        assert written == 2
        assert all(r.hit_num == 1 for r in index_list)
        xref_lines = protein_xref_path(path).read_text().splitlines()
        assert xref_lines == [
            "\t".join(PROTEIN_XREF_COLUMNS),
            "1\t100\t2\t1\tProtein1",
            "1\t100\t2\t2\tProtein2",
        ]

    def test_appends_across_flushes(self, aggregator, make_hit, tmp_path):
        """Test a second flush appends and offsets keep increasing."""
        path = tmp_path / "Tmp_Syn.txt"
        index_list = []
        aggregator.export_and_clear(OutputType.SYNOPSIS, 1.5, False, path, index_list)
        assert aggregator.count == 0

        aggregator.add_hit(800.0, make_hit(2.0, "-.ACDEFGHK.-", start_scan=300, end_scan=300, charge_state=1))
        aggregator.export_and_clear(OutputType.SYNOPSIS, 1.5, False, path, index_list)

        offsets = [r.offset for r in index_list]
        assert offsets == sorted(offsets)
        assert offsets[-1] + index_list[-1].length == path.stat().st_size


class TestOutputRecordIndex:
    """Tests for sort order of record indices."""

    def test_sort_key(self):
        """Test higher scores first, ties broken by scan and protein id."""
        records = [
            OutputRecordIndex(2.0, 300, 300, 1, 1, 0, 0, 10),
            OutputRecordIndex(3.5, 100, 100, 2, 1, 1, 10, 10),
            OutputRecordIndex(3.5, 100, 100, 2, 1, 0, 20, 10),
            OutputRecordIndex(4.2, 200, 201, 3, 1, 0, 30, 10),
        ]
        ordered = sorted(records, key=lambda r: r.sort_key)
        assert [r.offset for r in ordered] == [30, 20, 10, 0]
