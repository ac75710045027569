"""
Conversion between bazel repository names and Go import paths.

Bazel names such as ``com_github_golang_glog`` are a lossy encoding of the
import path ``github.com/golang/glog``: the host is reversed and every
separator becomes an underscore. Decoding is therefore a heuristic, and the
result is only proven right when the repository lookup succeeds.
"""

from .dependency import ResolvedDependency
from .error_handling import MalformedIdentifierError
from .structured_logging import log_dependency_resolved

MIN_NAME_PARTS = 4

# Hosts whose import paths cannot be rebuilt from the reversed-host rule
SPECIAL_PREFIXES = [
    ("org_golang_google", "google.golang.org/"),
    ("com_google_cloud", "cloud.google.com/"),
]


def import_path_to_repo_name(importpath: str) -> str:
    """
    Compute the bazel repository name for a Go import path.

    ``github.com/golang/glog`` becomes ``com_github_golang_glog`` and
    ``gopkg.in/yaml.v2`` becomes ``in_gopkg_yaml_v2``.
    """
    components = importpath.lower().split("/")
    labels = components[0].split(".")
    labels.reverse()
    repo = "_".join(labels + components[1:])
    return repo.replace("-", "_").replace(".", "_")


def _name_to_import_path(name: str) -> str:
    parts = name.split("_")
    if len(parts) < MIN_NAME_PARTS:
        raise MalformedIdentifierError(
            f"only {MIN_NAME_PARTS}-part or longer strings supported "
            f"for workspace names: {name!r}"
        )

    rest = "-".join(parts[3:])
    for prefix, host in SPECIAL_PREFIXES:
        if name.startswith(prefix):
            return host + rest

    return "/".join([f"{parts[1]}.{parts[0]}", parts[2], rest])


def resolve(identifier: str, asis: bool = False) -> ResolvedDependency:
    """
    Map a command line identifier to a declaration name and import path.

    Args:
        identifier: A bazel repository name, or an import path when ``asis``
        asis: Treat ``identifier`` as the import path itself

    Returns:
        ResolvedDependency: The declaration name and import path

    Raises:
        MalformedIdentifierError: If the identifier cannot be converted
    """
    if not identifier:
        raise MalformedIdentifierError("empty dependency identifier")

    if asis:
        resolved = ResolvedDependency(
            name=import_path_to_repo_name(identifier), importpath=identifier
        )
    else:
        resolved = ResolvedDependency(name=identifier, importpath=_name_to_import_path(identifier))

    log_dependency_resolved(identifier, resolved.name, resolved.importpath, asis)
    return resolved
