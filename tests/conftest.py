"""
Pytest configuration and fixtures for Peptide Extractor tests.
"""

import shutil
from pathlib import Path

import numpy as np
import pytest

from peptide_extractor.config import ExtractionSettings
from peptide_extractor.results.models import PeptideHit
from peptide_extractor.spectra.reader import Spectrum


# Path to test fixtures
FIXTURES_DIR = Path(__file__).parent / "fixtures"

ROOT_NAME = "Dataset"


@pytest.fixture
def fixtures_dir():
    """Return path to test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def dataset_dir(tmp_path):
    """Copy the sample ``_out.txt`` into a scratch folder (no peak file)."""
    shutil.copyfile(FIXTURES_DIR / "sample_out.txt", tmp_path / f"{ROOT_NAME}_out.txt")
    return tmp_path


@pytest.fixture
def dataset_dir_with_dta(dataset_dir):
    """Sample dataset folder that also holds the concatenated peak file."""
    shutil.copyfile(FIXTURES_DIR / "sample_dta.txt", dataset_dir / f"{ROOT_NAME}_dta.txt")
    return dataset_dir


@pytest.fixture
def sample_dta_path(tmp_path):
    """Return a writable copy of the sample peak file."""
    path = tmp_path / f"{ROOT_NAME}_dta.txt"
    shutil.copyfile(FIXTURES_DIR / "sample_dta.txt", path)
    return path


@pytest.fixture
def settings(dataset_dir):
    """Default extraction settings for the sample dataset."""
    return ExtractionSettings(source_dir=dataset_dir, root_name=ROOT_NAME)


@pytest.fixture
def make_hit():
    """Factory for peptide hits on one spectrum."""

    def _make_hit(xcorr, peptide="K.PEPTIDER.A", start_scan=100, end_scan=100, charge_state=2, **kwargs):
        kwargs.setdefault("mh", 1000.01)
        kwargs.setdefault("reference", "Protein1")
        return PeptideHit(
            start_scan=start_scan,
            end_scan=end_scan,
            charge_state=charge_state,
            peptide=peptide,
            xcorr=xcorr,
            **kwargs,
        )

    return _make_hit


@pytest.fixture
def single_peak_spectrum():
    """A spectrum with one peak on the b1 ion of ``K.FFFFFF.A`` (+1)."""
    return Spectrum(
        scan_number=100,
        parent_mh=883.42,
        parent_charge=2,
        masses=np.array([148.08]),
        intensities=np.array([100.0]),
    )


# Add pytest mark for slow tests
def pytest_addoption(parser):
    """Add custom pytest options."""
    parser.addoption(
        "--runslow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --runslow is specified."""
    if config.getoption("--runslow"):
        return

    skip_slow = pytest.mark.skip(reason="need --runslow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
