"""
Tests for SpectrumIndex and PeakFileReader - peak file offsets and block reading.
"""

import io

import pytest

from peptide_extractor.spectra.index import (
    SpectrumIndex,
    SpectrumNotFoundError,
    detect_line_terminator_width,
    make_spectrum_key,
)
from peptide_extractor.spectra.reader import PeakFileReader, iter_lines, normalize_intensities


def _header(start, end, charge, root="Dataset"):
    return f'=================================== "{root}.{start}.{end}.{charge}.dta" =================================='


def _write_blocks(path, newline="\n"):
    lines = [
        _header(10, 10, 2),
        "1001.0000 2",
        "148.0800 20.0",
        "452.1000 100.0",
        "",
        _header(11, 12, 3),
        "1500.0000 3",
        "175.1190 1042.0",
        "",
        _header(13, 13, 1),
        "800.4000 1",
        "120.0000 5.0",
    ]
    path.write_bytes(newline.join(lines).encode("latin-1") + newline.encode("latin-1"))
    return path


class TestLineTerminator:
    """Tests for line terminator detection."""

    def test_lf(self, tmp_path):
        """Test LF-terminated files report one byte."""
        path = _write_blocks(tmp_path / "lf_dta.txt", "\n")
        assert detect_line_terminator_width(path) == 1

    def test_crlf(self, tmp_path):
        """Test CRLF-terminated files report two bytes."""
        path = _write_blocks(tmp_path / "crlf_dta.txt", "\r\n")
        assert detect_line_terminator_width(path) == 2

    def test_no_terminator(self, tmp_path):
        """Test a single unterminated line defaults to one byte."""
        path = tmp_path / "single.txt"
        path.write_bytes(b"no newline here")
        assert detect_line_terminator_width(path) == 1

    def test_cr(self, tmp_path):
        """Test bare-CR files report one byte."""
        path = _write_blocks(tmp_path / "cr_dta.txt", "\r")
        assert detect_line_terminator_width(path) == 1


class TestIterLines:
    """Tests for offset-tracking line iteration."""

    @pytest.mark.parametrize("newline", [b"\n", b"\r\n", b"\r"])
    def test_offsets(self, newline):
        """Test each line is yielded with the offset of its first byte."""
        data = newline.join([b"alpha", b"", b"gamma"]) + newline
        lines = list(iter_lines(io.BytesIO(data)))

        assert [line for _, line in lines] == [b"alpha", b"", b"gamma"]
        assert [offset for offset, _ in lines] == [0, 5 + len(newline), 5 + 2 * len(newline)]

    def test_crlf_split_across_chunks(self):
        """Test a CRLF broken over two reads is one terminator."""
        data = b"ab\r\ncd\r\n"
        lines = list(iter_lines(io.BytesIO(data), chunk_size=3))
        assert lines == [(0, b"ab"), (4, b"cd")]

    def test_mixed_terminators(self):
        """Test CR, LF and CRLF can be mixed within one file."""
        lines = list(iter_lines(io.BytesIO(b"a\rb\nc\r\nd")))
        assert lines == [(0, b"a"), (2, b"b"), (4, b"c"), (7, b"d")]

    def test_start_offset(self):
        """Test offsets are shifted by the starting position."""
        assert list(iter_lines(io.BytesIO(b"x\ny\n"), start=100)) == [(100, b"x"), (102, b"y")]


class TestSpectrumIndex:
    """Tests for SpectrumIndex class."""

    def test_make_key(self):
        """Test key format with and without a charge suffix."""
        assert make_spectrum_key(100, 102, 2) == "100.102.2"
        assert make_spectrum_key(100, 102, 2, "a") == "100.102.2_a"

    @pytest.mark.parametrize("newline", ["\n", "\r\n", "\r"])
    def test_offsets_point_at_headers(self, tmp_path, newline):
        """Test every recorded offset seeks to its own header line."""
        path = _write_blocks(tmp_path / "Dataset_dta.txt", newline)
        index = SpectrumIndex(path)

        assert index.build() == 3
        assert len(index) == 3
        assert "11.12.3" in index

        with open(path, "rb") as f:
            for start, end, charge in [(10, 10, 2), (11, 12, 3), (13, 13, 1)]:
                f.seek(index.offset_of(start, end, charge))
                header = _header(start, end, charge).encode("latin-1")
                assert f.read(len(header) + 1) == header + newline[:1].encode("latin-1")

    def test_first_block_at_zero(self, sample_dta_path):
        """Test the first block of the sample file starts at offset 0."""
        index = SpectrumIndex(sample_dta_path)
        index.build()
        assert index.offset_of(100, 100, 2) == 0

    def test_missing_key_raises(self, sample_dta_path):
        """Test looking up an absent spectrum raises SpectrumNotFoundError."""
        index = SpectrumIndex(sample_dta_path)
        index.build()

        with pytest.raises(SpectrumNotFoundError):
            index.offset_of(999, 999, 2)

    def test_not_found_is_key_error(self):
        """Test SpectrumNotFoundError can be handled as KeyError."""
        assert issubclass(SpectrumNotFoundError, KeyError)

    def test_duplicate_keeps_first(self, tmp_path):
        """Test a repeated header keeps the offset of its first occurrence."""
        path = tmp_path / "dup_dta.txt"
        path.write_text(f"{_header(5, 5, 2)}\n1000.0 2\n{_header(5, 5, 2)}\n1000.0 2\n")
        index = SpectrumIndex(path)

        assert index.build() == 1
        assert index.offset_of(5, 5, 2) == 0

    def test_unrecognized_header_skipped(self, tmp_path):
        """Test lines starting with '=' that are not headers are ignored."""
        path = tmp_path / "odd_dta.txt"
        path.write_text(f"=== not a header ===\n{_header(7, 7, 1)}\n900.0 1\n")
        index = SpectrumIndex(path)

        assert index.build() == 1
        assert "7.7.1" in index
        assert index.offset_of(7, 7, 1) == len("=== not a header ===\n")

    def test_missing_file(self, tmp_path):
        """Test indexing a missing file yields an empty index."""
        index = SpectrumIndex(tmp_path / "absent_dta.txt")
        assert index.build() == 0
        assert len(index) == 0

    def test_progress_reports_completion(self, sample_dta_path):
        """Test the progress observer is told when indexing finishes."""
        seen = []
        index = SpectrumIndex(sample_dta_path, progress=seen.append)
        index.build()
        assert seen[-1] == 1.0


class TestPeakFileReader:
    """Tests for reading spectrum blocks by offset."""

    def test_read_spectrum(self, sample_dta_path):
        """Test parent line and peaks are read up to the next block."""
        index = SpectrumIndex(sample_dta_path)
        index.build()

        with PeakFileReader(sample_dta_path) as reader:
            spectrum = reader.read_spectrum(index.offset_of(100, 100, 2))

        assert spectrum.scan_number == 100
        assert spectrum.parent_mh == 1001.0
        assert spectrum.parent_charge == 2
        assert len(spectrum) == 5
        assert spectrum.masses[0] == pytest.approx(148.08)
        assert spectrum.max_intensity == 100.0
        assert spectrum.normalized[2] == pytest.approx(1.0)
        assert spectrum.is_mass_sorted()

    def test_read_last_block(self, sample_dta_path):
        """Test the final block is read to end of file."""
        index = SpectrumIndex(sample_dta_path)
        index.build()

        with PeakFileReader(sample_dta_path) as reader:
            spectrum = reader.read_spectrum(index.offset_of(300, 300, 1))

        assert spectrum.scan_number == 300
        assert len(spectrum) == 1

    def test_parent_mz(self, sample_dta_path):
        """Test parent m/z from (M+H)+ and charge."""
        with PeakFileReader(sample_dta_path) as reader:
            spectrum = reader.read_spectrum(0)
        assert spectrum.parent_mz == pytest.approx(501.0)

    def test_block_without_peaks(self, tmp_path):
        """Test a header without a parent line gives an empty spectrum."""
        path = tmp_path / "empty_dta.txt"
        path.write_text(f"{_header(1, 1, 2)}\n\n")

        with PeakFileReader(path) as reader:
            spectrum = reader.read_spectrum(0)

        assert len(spectrum) == 0
        assert spectrum.scan_number == 1

    def test_normalize_zero_intensities(self):
        """Test all-zero intensities normalize to zeros without dividing."""
        normalized = normalize_intensities([0.0, 0.0])
        assert list(normalized) == [0.0, 0.0]

    def test_read_cr_terminated(self, tmp_path):
        """Test blocks of a bare-CR file are read in full."""
        path = _write_blocks(tmp_path / "cr_dta.txt", "\r")
        index = SpectrumIndex(path)
        index.build()

        with PeakFileReader(path) as reader:
            first = reader.read_spectrum(index.offset_of(10, 10, 2))
            last = reader.read_spectrum(index.offset_of(13, 13, 1))

        assert first.scan_number == 10
        assert first.parent_mh == 1001.0
        assert list(first.masses) == pytest.approx([148.08, 452.1])
        assert last.scan_number == 13
        assert len(last) == 1

    def test_out_of_order_peaks_sorted(self, tmp_path):
        """Test peaks listed out of mass order are sorted with their intensities."""
        path = tmp_path / "unsorted_dta.txt"
        path.write_text(f"{_header(1, 1, 2)}\n1000.0 2\n452.1000 100.0\n148.0800 20.0\n300.0000 50.0\n")

        with PeakFileReader(path) as reader:
            spectrum = reader.read_spectrum(0)

        assert spectrum.is_mass_sorted()
        assert list(spectrum.masses) == pytest.approx([148.08, 300.0, 452.1])
        assert list(spectrum.intensities) == pytest.approx([20.0, 50.0, 100.0])
        assert list(spectrum.normalized) == pytest.approx([0.2, 0.5, 1.0])
