"""Per-run scratch directory."""

import shutil
import tempfile
from pathlib import Path
from typing import Optional, TextIO


class ScratchDir:
    """Temporary directory holding the install log.

    The directory is created on enter and removed on exit, whether the run
    succeeded, failed or is exiting through SystemExit.
    """

    LOG_NAME = 'install.log'

    def __init__(self, prefix: str = 'kubeprep-'):
        self.prefix = prefix
        self.path: Optional[Path] = None

    def __enter__(self) -> 'ScratchDir':
        self.path = Path(tempfile.mkdtemp(prefix=self.prefix))
        self.log_file.touch()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.cleanup()
        return False

    @property
    def log_file(self) -> Path:
        if self.path is None:
            raise RuntimeError("Scratch directory is not active")
        return self.path / self.LOG_NAME

    def dump(self, stream: TextIO) -> None:
        """Copy the accumulated log to a stream."""
        if self.path is not None and self.log_file.exists():
            stream.write(self.log_file.read_text(encoding='utf-8', errors='replace'))
            stream.flush()

    def cleanup(self) -> None:
        if self.path is not None:
            shutil.rmtree(self.path, ignore_errors=True)
            self.path = None
