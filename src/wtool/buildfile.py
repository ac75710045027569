"""
Reading and writing Bazel build files.

Starlark's grammar is a subset of Python's, so the standard ``ast`` module is
used to check a file and find its top-level statements. Existing statements
are kept as their original source text together with the comments in front
of them; statements added by wtool are generated calls.
"""

import ast
import io
import tokenize
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Set, Tuple, Union

from .error_handling import ParseError

INDENT = "    "


@dataclass
class SourceStmt:
    """A statement copied verbatim from the parsed file."""

    text: str
    before: List[str] = field(default_factory=list)  # comment and blank lines
    string_lines: Set[int] = field(default_factory=set)  # 0-based, end inside a string literal


@dataclass
class CallStmt:
    """A generated ``func(key = "value", ...)`` statement."""

    func: str
    attrs: List[Tuple[str, str]]
    before: List[str] = field(default_factory=lambda: [""])


Stmt = Union[SourceStmt, CallStmt]


@dataclass
class BuildFile:
    path: str
    stmts: List[Stmt] = field(default_factory=list)


def _statement_spans(module: ast.Module) -> List[Tuple[int, int]]:
    """1-based inclusive line ranges of the top-level statements."""
    spans: List[Tuple[int, int]] = []
    for node in module.body:
        start = min([node.lineno] + [d.lineno for d in getattr(node, "decorator_list", [])])
        end = node.end_lineno or node.lineno
        if spans and start <= spans[-1][1]:
            # statements sharing a line, like "a = 1; b = 2"
            spans[-1] = (spans[-1][0], max(end, spans[-1][1]))
        else:
            spans.append((start, end))
    return spans


def _string_continuation_lines(text: str) -> Set[int]:
    """1-based numbers of the lines that end inside a multi-line string literal."""
    lines: Set[int] = set()
    for token in tokenize.generate_tokens(io.StringIO(text).readline):
        if token.type == tokenize.STRING and token.end[0] > token.start[0]:
            lines.update(range(token.start[0], token.end[0]))
    return lines


def parse(path: str, data: bytes) -> BuildFile:
    """
    Parse the contents of a build file.

    Comments after the last statement become a statement of their own, so
    anything appended later goes below them.

    Args:
        path: File name, used in error messages
        data: Raw file contents

    Returns:
        BuildFile: The parsed file

    Raises:
        ParseError: If the data is not valid UTF-8 or not well-formed
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"{path}: not valid UTF-8: {e}") from e
    if text.startswith("\ufeff"):
        text = text[1:]
    # Only these count as line breaks for the parser; str.splitlines knows more
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    try:
        module = ast.parse(text, filename=path)
        in_string = _string_continuation_lines(text)
    except SyntaxError as e:
        raise ParseError(f"{path}:{e.lineno}:{e.offset}: {e.msg}") from e
    except (ValueError, tokenize.TokenError) as e:
        raise ParseError(f"{path}: {e}") from e

    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()

    build_file = BuildFile(path=path)
    previous_end = 0
    for start, end in _statement_spans(module):
        build_file.stmts.append(
            SourceStmt(
                text="\n".join(lines[start - 1 : end]),
                before=lines[previous_end : start - 1],
                string_lines={number - start for number in in_string if start <= number <= end},
            )
        )
        previous_end = end

    trailing = lines[previous_end:]
    comments = [index for index, line in enumerate(trailing) if line.strip()]
    if comments:
        build_file.stmts.append(
            SourceStmt(
                text="\n".join(trailing[comments[0] : comments[-1] + 1]),
                before=trailing[: comments[0]],
            )
        )
    return build_file


def _collapse_blank_lines(lines: List[str], strip_leading: bool) -> List[str]:
    result: List[str] = []
    for line in lines:
        line = line.rstrip()
        if not line and ((not result and strip_leading) or (result and not result[-1])):
            continue
        result.append(line)
    return result


def rewrite(build_file: BuildFile) -> None:
    """Normalize whitespace in place and put ``name`` first in generated calls."""
    for index, stmt in enumerate(build_file.stmts):
        stmt.before = _collapse_blank_lines(stmt.before, strip_leading=index == 0)
        if isinstance(stmt, SourceStmt):
            stmt.text = "\n".join(
                line if number in stmt.string_lines else line.rstrip()
                for number, line in enumerate(stmt.text.split("\n"))
            )
        else:
            stmt.attrs.sort(key=lambda attr: attr[0] != "name")


def quote(value: str) -> str:
    """Render ``value`` as a double-quoted Starlark string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def format_call(stmt: CallStmt) -> str:
    if not stmt.attrs:
        return f"{stmt.func}()"
    lines = [f"{stmt.func}("]
    lines.extend(f"{INDENT}{key} = {quote(value)}," for key, value in stmt.attrs)
    lines.append(")")
    return "\n".join(lines)


def format(build_file: BuildFile) -> bytes:
    """Serialize a build file."""
    lines: List[str] = []
    for stmt in build_file.stmts:
        lines.extend(stmt.before)
        lines.append(stmt.text if isinstance(stmt, SourceStmt) else format_call(stmt))

    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    if not lines:
        return b""
    return ("\n".join(lines) + "\n").encode("utf-8")


class BuildFileBackend(ABC):
    """Parser and printer used by the workspace mutator."""

    @abstractmethod
    def parse(self, path: str, data: bytes) -> BuildFile:
        pass

    @abstractmethod
    def rewrite(self, build_file: BuildFile) -> None:
        pass

    @abstractmethod
    def format(self, build_file: BuildFile) -> bytes:
        pass


class StarlarkBackend(BuildFileBackend):
    """Default backend built on the module level functions above."""

    def parse(self, path: str, data: bytes) -> BuildFile:
        return parse(path, data)

    def rewrite(self, build_file: BuildFile) -> None:
        rewrite(build_file)

    def format(self, build_file: BuildFile) -> bytes:
        return format(build_file)
