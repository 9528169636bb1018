"""Core node installation logic.

This module contains the NodeInstaller class which every installation step
uses to run external commands and write host files, plus the exception
types the steps raise.
"""

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from ..config import InstallerConfig
from ..models import CommandResult

logger = logging.getLogger("kubeprep.installer.core")
command_logger = logging.getLogger("kubeprep.command")

PathLike = Union[str, Path]


class InstallerError(Exception):
    """Base class for failures that abort the installation."""
    exit_code: int = 1

    def __init__(self, message: str, output: Optional[str] = None):
        super().__init__(message)
        self.output = output

    @property
    def command(self) -> Optional[str]:
        return None


class CommandError(InstallerError):
    """Raised when an external command exits non-zero or cannot be started."""

    def __init__(self, argv: Sequence[str], returncode: int, stdout: str = '', stderr: str = ''):
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        output = '\n'.join(part for part in (stdout.strip(), stderr.strip()) if part)
        super().__init__(
            f"Command '{shlex.join(self.argv)}' failed with exit code {returncode}",
            output=output or None,
        )

    @classmethod
    def from_result(cls, result: CommandResult) -> 'CommandError':
        return cls(result.argv, result.returncode, result.stdout, result.stderr)

    @property
    def command(self) -> str:
        return shlex.join(self.argv)

    @property
    def exit_code(self) -> int:
        # Signals show up as negative return codes
        return self.returncode if self.returncode > 0 else 1


def _decode(data: Optional[bytes]) -> str:
    return (data or b'').decode('utf-8', errors='replace')


class NodeInstaller:
    """Runs commands and manages files on the local host.

    All host paths are resolved under ``config.host_root`` so the same steps
    can run against a scratch tree. In dry-run mode commands and writes are
    only logged.
    """

    def __init__(self, config: InstallerConfig, dry_run: bool = False):
        """Initialize the installer.

        Args:
            config: Installer configuration
            dry_run: If True, only log commands and file writes without executing them
        """
        self.config = config
        self.dry_run = dry_run
        self.root = Path(config.host_root)

    def path(self, host_path: PathLike) -> Path:
        """Map an absolute host path onto the configured host root."""
        path = Path(host_path)
        if path.is_absolute():
            path = path.relative_to(path.anchor)
        return self.root / path

    def run(
        self,
        argv: Sequence[str],
        check: bool = True,
        input_data: Optional[bytes] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """Execute a command on the host and capture its output.

        Args:
            argv: Command and arguments
            check: If True, raise CommandError on a non-zero exit code
            input_data: Bytes fed to the command's stdin
            env: Extra environment variables for the command

        Returns:
            CommandResult: The command's exit code and decoded output

        Raises:
            CommandError: If check=True and the command fails or cannot be started
        """
        argv = [str(arg) for arg in argv]
        command = shlex.join(argv)

        if self.dry_run:
            logger.info("[DRY RUN] Would execute: %s", command)
            return CommandResult(argv, 0)

        logger.debug("Executing: %s", command)
        proc_env = {**os.environ, **env} if env else None
        try:
            completed = subprocess.run(
                argv,
                input=input_data,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=proc_env,
                check=False,
            )
        except OSError as e:
            result = CommandResult(argv, 127, stderr=str(e))
        else:
            result = CommandResult(
                argv, completed.returncode, _decode(completed.stdout), _decode(completed.stderr)
            )

        self._log_output(result)
        if check and not result.ok:
            raise CommandError.from_result(result)
        return result

    @staticmethod
    def _log_output(result: CommandResult) -> None:
        command_logger.debug("$ %s (exit %d)", result.command, result.returncode)
        for stream in (result.stdout, result.stderr):
            for line in stream.splitlines():
                command_logger.debug("  %s", line)

    def read_file(self, host_path: PathLike, errors: str = 'strict') -> str:
        """Read a host file as UTF-8.

        Pass ``errors='surrogateescape'`` to keep undecodable bytes so they
        can be written back unchanged with the same ``errors`` value.

        Raises:
            InstallerError: If the file cannot be read or decoded
        """
        try:
            return self.path(host_path).read_text(encoding='utf-8', errors=errors)
        except (OSError, UnicodeError) as e:
            raise InstallerError(f"Failed to read {host_path}: {e}") from e

    def ensure_dir(self, host_path: PathLike, mode: int = 0o755) -> Path:
        target = self.path(host_path)
        if self.dry_run:
            logger.info("[DRY RUN] Would create directory %s", host_path)
            return target
        try:
            target.mkdir(mode=mode, parents=True, exist_ok=True)
        except OSError as e:
            raise InstallerError(f"Failed to create directory {host_path}: {e}") from e
        return target

    def write_file(
        self, host_path: PathLike, content: str, mode: int = 0o644, errors: str = 'strict'
    ) -> Path:
        """Write (overwrite) a host file, creating parent directories.

        Args:
            host_path: Absolute path on the host
            content: File contents
            mode: File permissions (default: 0o644)
            errors: Encoding error handler, as for read_file

        Returns:
            Path: The resolved path that was written

        Raises:
            InstallerError: If the file cannot be written
        """
        target = self.path(host_path)
        if self.dry_run:
            logger.info("[DRY RUN] Would write %s", host_path)
            return target
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding='utf-8', errors=errors)
            os.chmod(target, mode)
        except (OSError, UnicodeError) as e:
            raise InstallerError(f"Failed to write {host_path}: {e}") from e
        logger.debug("Wrote %s", host_path)
        return target
