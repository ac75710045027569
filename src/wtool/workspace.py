"""
WORKSPACE file discovery and mutation.
"""

import os
from pathlib import Path
from typing import List, Optional, Union

from .buildfile import BuildFile, BuildFileBackend, CallStmt, StarlarkBackend
from .dependency import DependencyDeclaration
from .error_handling import FileReadError, FileWriteError, WorkspaceNotFoundError
from .structured_logging import log_declaration_appended, log_workspace_written

WORKSPACE_FILE = "WORKSPACE"


def find_workspace_root(start: Union[str, Path], marker: str = WORKSPACE_FILE) -> Path:
    """
    Find the nearest directory at or above ``start`` that contains ``marker``.

    Raises:
        WorkspaceNotFoundError: If no such directory exists
    """
    start_dir = Path(os.path.abspath(start))
    for directory in [start_dir, *start_dir.parents]:
        if (directory / marker).exists():
            return directory
    raise WorkspaceNotFoundError(f"no {marker} file found in {start_dir} or any parent directory")


class Workspace:
    """An in-memory WORKSPACE file that new declarations are appended to."""

    def __init__(
        self,
        path: Path,
        build_file: BuildFile,
        backend: Optional[BuildFileBackend] = None,
    ):
        self.path = path
        self.build_file = build_file
        self.backend = backend or StarlarkBackend()
        self.appended: List[DependencyDeclaration] = []

    @classmethod
    def load(cls, path: Union[str, Path], backend: Optional[BuildFileBackend] = None) -> "Workspace":
        """
        Read and parse a WORKSPACE file.

        Raises:
            FileReadError: If the file cannot be read
            ParseError: If the file is not well-formed
        """
        path = Path(path)
        backend = backend or StarlarkBackend()
        try:
            data = path.read_bytes()
        except OSError as e:
            raise FileReadError(f"cannot read {path}: {e}") from e
        return cls(path, backend.parse(str(path), data), backend)

    def append(self, declaration: DependencyDeclaration) -> None:
        """Add ``declaration`` after every existing statement."""
        self.build_file.stmts.append(CallStmt(func=declaration.rule, attrs=declaration.attributes()))
        self.appended.append(declaration)
        log_declaration_appended(
            str(self.path), declaration.name, declaration.importpath, declaration.commit
        )

    def render(self) -> bytes:
        """Return the file contents in canonical form."""
        self.backend.rewrite(self.build_file)
        return self.backend.format(self.build_file)

    def save(self) -> None:
        """
        Write the file back to where it was loaded from.

        Raises:
            FileWriteError: If the file cannot be written
        """
        data = self.render()
        try:
            self.path.write_bytes(data)
        except OSError as e:
            raise FileWriteError(f"cannot write {self.path}: {e}") from e
        log_workspace_written(str(self.path), len(self.appended), len(data))
