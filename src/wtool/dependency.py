from dataclasses import dataclass
from typing import List, Tuple

DEFAULT_RULE = "new_go_repository"


@dataclass(frozen=True)
class ResolvedDependency:
    """A bazel repository name paired with the Go import path it stands for."""

    name: str
    importpath: str


@dataclass(frozen=True)
class RemoteReference:
    """Where the source for an import path lives."""

    vcs: str  # VCS command name: git, hg, bzr, svn
    repo: str  # clone URL
    root: str  # import path prefix of the repository root


@dataclass(frozen=True)
class DependencyDeclaration:
    """One new_go_repository entry to append to the WORKSPACE file."""

    name: str
    importpath: str
    commit: str
    rule: str = DEFAULT_RULE

    def attributes(self) -> List[Tuple[str, str]]:
        """Keyword arguments of the rule call, in the order they are written."""
        return [
            ("name", self.name),
            ("importpath", self.importpath),
            ("commit", self.commit),
        ]


def build_declaration(
    resolved: ResolvedDependency, commit: str, rule: str = DEFAULT_RULE
) -> DependencyDeclaration:
    return DependencyDeclaration(
        name=resolved.name, importpath=resolved.importpath, commit=commit, rule=rule
    )
