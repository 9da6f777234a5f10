"""Scratch file management for the extraction run."""

import logging
from pathlib import Path
from typing import List

from peptide_extractor.config import SCRATCH_FHT_NAME, SCRATCH_SYN_NAME, protein_xref_path

logger = logging.getLogger(__name__)


class ScratchFiles:
    """
    Manages the unsorted scratch results files of one run.

    Scratch files live next to the input file. They are removed when the
    run finishes unless ``keep_files`` is set, which leaves them in place
    for inspection or for resuming an aborted run.
    """

    def __init__(self, work_dir: Path, keep_files: bool = False):
        """
        Initialize scratch file manager.

        Args:
            work_dir: Directory for the scratch files (normally the input's folder)
            keep_files: If True, keep scratch files after processing
        """
        self.work_dir = Path(work_dir)
        self.keep_files = keep_files

        self.first_hits = self.work_dir / SCRATCH_FHT_NAME
        self.synopsis = self.work_dir / SCRATCH_SYN_NAME
        self.first_hits_prot = protein_xref_path(self.first_hits)
        self.synopsis_prot = protein_xref_path(self.synopsis)

    @property
    def all_paths(self) -> List[Path]:
        return [self.first_hits, self.synopsis, self.first_hits_prot, self.synopsis_prot]

    def remove_stale(self) -> None:
        """Delete scratch files left over by a previous run, even with keep_files."""
        for path in self.all_paths:
            if path.exists():
                path.unlink()
                logger.debug(f"Removed stale scratch file: {path.name}")

    def remove_file(self, file_path: Path) -> None:
        """
        Remove a single scratch file.

        Args:
            file_path: Path to the file to remove
        """
        if self.keep_files:
            return
        try:
            file_path = Path(file_path)
            if file_path.exists():
                file_path.unlink()
                logger.debug(f"Removed file: {file_path.name}")
        except OSError as e:
            logger.warning(f"Could not remove {file_path}: {e}")

    def cleanup(self) -> None:
        if self.keep_files:
            logger.info(f"Keeping scratch files in: {self.work_dir}")
            return
        for path in self.all_paths:
            self.remove_file(path)
