"""
Adds new_go_repository declarations to a WORKSPACE file.

Identifiers are handled one at a time, in the order given. Every declaration
is appended to the in-memory file first and the file is written only when all
of them succeeded, so a failure leaves the WORKSPACE file untouched.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from .buildfile import BuildFileBackend
from .cli_config import get_config
from .dependency import DependencyDeclaration, build_declaration
from .error_handling import UnsupportedVCSError
from .naming import resolve
from .vcs import SUPPORTED_VCS, RepoRootResolver, ls_remote
from .workspace import Workspace, find_workspace_root

CommitLookup = Callable[[str, str], Awaitable[str]]


@dataclass
class UpdateResult:
    """Outcome of one wtool run."""

    workspace_path: Path
    declarations: List[DependencyDeclaration] = field(default_factory=list)


class WorkspaceUpdater:
    """Resolves identifiers and appends their declarations to the WORKSPACE."""

    def __init__(
        self,
        repo_resolver: Optional[RepoRootResolver] = None,
        commit_lookup: Optional[CommitLookup] = None,
        backend: Optional[BuildFileBackend] = None,
    ):
        config = get_config()
        self.repo_resolver = repo_resolver or RepoRootResolver()
        self.commit_lookup = commit_lookup or ls_remote
        self.backend = backend
        self.workspace_file = config.workspace.file_name
        self.rule_name = config.workspace.rule_name
        self.ref = config.git.default_ref

    async def add_dependencies(
        self,
        identifiers: Iterable[str],
        asis: bool = False,
        start_dir: Union[str, Path, None] = None,
    ) -> UpdateResult:
        """
        Append one declaration per identifier and write the WORKSPACE file.

        Args:
            identifiers: Bazel repository names, or import paths when ``asis``
            asis: Treat every identifier as an import path
            start_dir: Directory to start the WORKSPACE search from (default: cwd)

        Returns:
            UpdateResult: The file written and the declarations added

        Raises:
            WtoolError: On the first failure; nothing is written in that case
        """
        root = find_workspace_root(start_dir or Path.cwd(), self.workspace_file)
        workspace = Workspace.load(root / self.workspace_file, self.backend)

        async with self.repo_resolver as repo_resolver:
            for identifier in identifiers:
                workspace.append(await self._declaration_for(repo_resolver, identifier, asis))

        workspace.save()
        return UpdateResult(workspace_path=workspace.path, declarations=list(workspace.appended))

    async def _declaration_for(
        self, repo_resolver: RepoRootResolver, identifier: str, asis: bool
    ) -> DependencyDeclaration:
        resolved = resolve(identifier, asis=asis)
        reference = await repo_resolver.resolve(resolved.importpath)
        if reference.vcs != SUPPORTED_VCS:
            raise UnsupportedVCSError(f"only git supported, not {reference.vcs!r}")
        commit = await self.commit_lookup(reference.repo, self.ref)
        return build_declaration(resolved, commit, rule=self.rule_name)
