"""
Version control lookups for Go import paths.

Maps an import path to the repository that hosts it, using the well-known
code hosting sites first and go-get discovery over HTTPS otherwise, and reads
the current commit of a git repository with ``git ls-remote``.
"""

import asyncio
import re
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import List, Optional, Set, Tuple

import httpx
from httpx import HTTPStatusError, RequestError

from .cli_config import get_config
from .dependency import RemoteReference
from .error_handling import NoRemoteOutputError, ProcessSpawnError, VCSResolutionError
from .structured_logging import get_vcs_logger, log_commit_resolved, log_repo_root_resolved

SUPPORTED_VCS = "git"
KNOWN_VCS = ("git", "hg", "bzr", "svn")


@dataclass(frozen=True)
class StaticHost:
    """A code hosting site whose repository layout is known in advance."""

    prefix: str
    pattern: re.Pattern
    vcs: Optional[str]  # None when the host has to be asked


STATIC_HOSTS = [
    StaticHost(
        "github.com/",
        re.compile(r"^(?P<root>github\.com/[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+)(/[A-Za-z0-9_.\-]+)*$"),
        "git",
    ),
    StaticHost(
        "bitbucket.org/",
        re.compile(
            r"^(?P<root>bitbucket\.org/(?P<bitname>[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+))"
            r"(/[A-Za-z0-9_.\-]+)*$"
        ),
        None,
    ),
    StaticHost(
        "launchpad.net/",
        re.compile(
            r"^(?P<root>launchpad\.net/((?P<project>[A-Za-z0-9_.\-]+)(?P<series>/[A-Za-z0-9_.\-]+)?"
            r"|~[A-Za-z0-9_.\-]+/(\+junk|[A-Za-z0-9_.\-]+)/[A-Za-z0-9_.\-]+))(/[A-Za-z0-9_.\-]+)*$"
        ),
        "bzr",
    ),
    StaticHost(
        "hub.jazz.net/git/",
        re.compile(r"^(?P<root>hub\.jazz\.net/git/[a-z0-9]+/[A-Za-z0-9_.\-]+)(/[A-Za-z0-9_.\-]+)*$"),
        "git",
    ),
    StaticHost(
        "git.apache.org/",
        re.compile(r"^(?P<root>git\.apache\.org/[a-z0-9_.\-]+\.git)(/[A-Za-z0-9_.\-]+)*$"),
        "git",
    ),
    StaticHost(
        "git.openstack.org/",
        re.compile(
            r"^(?P<root>git\.openstack\.org/[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+)(\.git)?"
            r"(/[A-Za-z0-9_.\-]+)*$"
        ),
        "git",
    ),
]

# Import paths that spell out their VCS, like example.org/repo.git/pkg
VCS_SUFFIX_PATTERN = re.compile(
    r"^(?P<root>(?P<repo>([a-z0-9.\-]+\.)+[a-z0-9.\-]+(:[0-9]+)?(/~?[A-Za-z0-9_.\-]+)+?)"
    r"\.(?P<vcs>bzr|git|hg|svn))(/~?[A-Za-z0-9_.\-]+)*$"
)

BITBUCKET_API = "https://api.bitbucket.org/2.0/repositories"


class GoImportParser(HTMLParser):
    """Collects ``<meta name="go-import" content="prefix vcs repo">`` tags."""

    def __init__(self):
        super().__init__()
        self.imports: List[Tuple[str, str, str]] = []

    def handle_starttag(self, tag, attrs):
        if tag != "meta":
            return
        attributes = dict(attrs)
        if attributes.get("name") != "go-import":
            return
        fields = (attributes.get("content") or "").split()
        if len(fields) == 3:
            self.imports.append((fields[0], fields[1], fields[2]))


def parse_go_imports(html: str) -> List[Tuple[str, str, str]]:
    """Return the go-import meta tags of an HTML page, in document order."""
    parser = GoImportParser()
    parser.feed(html)
    parser.close()
    return parser.imports


def match_go_import(
    imports: List[Tuple[str, str, str]], importpath: str
) -> Tuple[str, str, str]:
    """
    Pick the single go-import tag whose prefix covers ``importpath``.

    Raises:
        VCSResolutionError: If no tag, or more than one tag, matches
    """
    matches = [
        entry
        for entry in imports
        if entry[1] != "mod"
        and (importpath == entry[0] or importpath.startswith(entry[0] + "/"))
    ]
    if not matches:
        raise VCSResolutionError(f"no go-import meta tag found for {importpath!r}")
    if len(matches) > 1:
        raise VCSResolutionError(
            f"multiple go-import meta tags match {importpath!r}: "
            + ", ".join(entry[0] for entry in matches)
        )
    return matches[0]


class RepoRootResolver:
    """
    Resolves Go import paths to repository roots.

    Uses the async context manager pattern so the httpx.AsyncClient used for
    go-get discovery is opened once per run and closed on exit.
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        network = get_config().network
        self.timeout = httpx.Timeout(
            read_timeout or network.read_timeout,
            connect=connect_timeout or network.connect_timeout,
        )
        self._headers = {"User-Agent": user_agent or network.user_agent}
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self.client = httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._headers,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client:
            await self.client.aclose()
            self.client = None

    async def resolve(self, importpath: str) -> RemoteReference:
        """
        Find the repository that serves ``importpath``.

        Raises:
            VCSResolutionError: If the import path cannot be mapped
        """
        if not importpath or "://" in importpath or ".." in importpath.split("/"):
            raise VCSResolutionError(f"invalid import path {importpath!r}")

        reference = await self._resolve_static(importpath)
        if reference is None:
            reference = self._resolve_vcs_suffix(importpath)
        if reference is None:
            reference = await self._resolve_dynamic(importpath)

        log_repo_root_resolved(importpath, reference.vcs, reference.repo, reference.root)
        return reference

    async def _resolve_static(self, importpath: str) -> Optional[RemoteReference]:
        for host in STATIC_HOSTS:
            if not importpath.startswith(host.prefix):
                continue
            match = host.pattern.match(importpath)
            if match is None:
                raise VCSResolutionError(f"invalid {host.prefix.rstrip('/')} import path {importpath!r}")

            root = match.group("root")
            vcs = host.vcs
            if vcs is None:
                vcs = await self._bitbucket_vcs(match.group("bitname"))
            return RemoteReference(vcs=vcs, repo=f"https://{root}", root=root)
        return None

    def _resolve_vcs_suffix(self, importpath: str) -> Optional[RemoteReference]:
        match = VCS_SUFFIX_PATTERN.match(importpath)
        if match is None:
            return None
        vcs = match.group("vcs")
        return RemoteReference(
            vcs=vcs, repo=f"https://{match.group('repo')}.{vcs}", root=match.group("root")
        )

    async def _resolve_dynamic(self, importpath: str) -> RemoteReference:
        prefix, vcs, repo = match_go_import(await self._fetch_go_imports(importpath), importpath)

        if prefix != importpath:
            # The root page must claim the same repository
            confirmed = match_go_import(await self._fetch_go_imports(prefix), prefix)
            if confirmed != (prefix, vcs, repo):
                raise VCSResolutionError(
                    f"go-import meta tags for {importpath!r} and {prefix!r} disagree"
                )

        if vcs not in KNOWN_VCS:
            raise VCSResolutionError(f"unknown version control system {vcs!r} for {importpath!r}")
        if "://" not in repo:
            raise VCSResolutionError(f"invalid repo root {repo!r} for {importpath!r}")
        return RemoteReference(vcs=vcs, repo=repo, root=prefix)

    async def _get(self, url: str) -> httpx.Response:
        if self.client is None:
            raise VCSResolutionError("HTTP client not initialized")
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except HTTPStatusError as e:
            raise VCSResolutionError(
                f"{url}: unexpected status {e.response.status_code}"
            ) from e
        except RequestError as e:
            raise VCSResolutionError(f"{url}: {e}") from e
        return response

    async def _fetch_go_imports(self, importpath: str) -> List[Tuple[str, str, str]]:
        response = await self._get(f"https://{importpath}?go-get=1")
        return parse_go_imports(response.text)

    async def _bitbucket_vcs(self, bitname: str) -> str:
        response = await self._get(f"{BITBUCKET_API}/{bitname}?fields=scm")
        try:
            scm = response.json().get("scm")
        except ValueError as e:
            raise VCSResolutionError(f"bitbucket.org/{bitname}: invalid API response") from e
        if scm not in KNOWN_VCS:
            raise VCSResolutionError(f"bitbucket.org/{bitname}: unknown scm {scm!r}")
        return scm


# Reaper tasks stay referenced here until they finish
_background_tasks: Set["asyncio.Task[None]"] = set()


async def _reap(process: asyncio.subprocess.Process, repo: str) -> None:
    try:
        await process.communicate()
    except Exception as e:
        get_vcs_logger().debug("reaper_failed", repo=repo, error=str(e))


def _reap_in_background(process: asyncio.subprocess.Process, repo: str) -> None:
    """Drain and wait for ``process`` without making the caller wait for it."""
    task = asyncio.get_running_loop().create_task(_reap(process, repo))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


async def ls_remote(repo: str, ref: str = "HEAD", git_command: Optional[str] = None) -> str:
    """
    Return the commit hash ``ref`` points to in the remote ``repo``.

    Only the first line of ``git ls-remote`` output is read; the hash is the
    text before its first tab.

    Raises:
        ProcessSpawnError: If git cannot be started
        NoRemoteOutputError: If git prints no usable line
    """
    git_command = git_command or get_config().git.command

    try:
        process = await asyncio.create_subprocess_exec(
            git_command,
            "ls-remote",
            repo,
            ref,
            stdout=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ProcessSpawnError(f"could not start {git_command!r}: {e}") from e

    try:
        line = await process.stdout.readline()
    except (OSError, ValueError) as e:
        raise NoRemoteOutputError(f"reading ls-remote {repo!r} output failed: {e}") from e
    finally:
        _reap_in_background(process, repo)

    if not line:
        raise NoRemoteOutputError(f"nothing returned from ls-remote {repo!r}")
    commit = line.decode("utf-8", errors="replace").rstrip("\r\n").split("\t", 1)[0]
    if not commit:
        raise NoRemoteOutputError(f"ls-remote {repo!r} returned a line without a commit hash")

    log_commit_resolved(repo, ref, commit)
    return commit
