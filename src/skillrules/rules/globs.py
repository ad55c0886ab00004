"""
Glob patterns for fileTriggers.

fnmatch lets '*' cross directory separators and has no notion of '**' or
brace alternation, so pathPatterns are translated to regular expressions
here instead:

    *        any run of characters except '/'
    ?        a single character except '/'
    **       as a whole segment, zero or more path segments
    [...]    character class ([!...] or [^...] negates)
    {a,b}    alternation, may be nested
    \\x       the literal character x

Braces are expanded first, so every alternative is a plain glob of its own:
'{**/*.ts,*.md}' behaves exactly like the two patterns '**/*.ts' and '*.md'.
An alternative without '/' is also tried against the basename of the path,
the same way the guardrail checks treat '*.pem' or '.env'.
"""

import re
from dataclasses import dataclass, field

from .errors import GlobSyntaxError

__all__ = [
    "CompiledGlob",
    "compile_glob",
    "expand_braces",
    "normalize_path",
    "translate_glob",
]

_SEGMENT = "[^/]*"


def normalize_path(path: str) -> str:
    """Normalise a path for matching: forward slashes, no leading './'."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _class_end(pattern: str, start: int) -> int:
    """Index of the ']' closing the class opened at `start`, or len(pattern)."""
    n = len(pattern)
    j = start + 1
    if j < n and pattern[j] in "!^":
        j += 1
    if j < n and pattern[j] == "]":
        j += 1
    while j < n and pattern[j] != "]":
        j += 1
    return j


def _first_alternation(pattern: str) -> tuple[int, int, list[int]] | None:
    """Locate the first top-level '{...}'.

    Returns:
        Tuple (index of '{', index of the matching '}', indexes of the
        top-level commas between them), or None if there is no brace.
    """
    depth = 0
    start = 0
    commas: list[int] = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "\\":
            i += 2
            continue
        if c == "[":
            i = _class_end(pattern, i) + 1
            continue
        if c == "{":
            if depth == 0:
                start = i
            depth += 1
        elif c == "}" and depth:
            depth -= 1
            if depth == 0:
                return start, i, commas
        elif c == "," and depth == 1:
            commas.append(i)
        i += 1
    if depth:
        raise GlobSyntaxError(pattern, "unterminated '{' alternation")
    return None


def expand_braces(pattern: str) -> list[str]:
    """Expand brace alternations: 'src/*.{ts,tsx}' -> ['src/*.ts', 'src/*.tsx'].

    Raises:
        GlobSyntaxError: A '{' is never closed.
    """
    found = _first_alternation(pattern)
    if found is None:
        return [pattern]
    start, end, commas = found
    prefix, suffix = pattern[:start], pattern[end + 1 :]
    bounds = [start] + commas + [end]
    expanded: list[str] = []
    for a, b in zip(bounds, bounds[1:]):
        for alternative in expand_braces(prefix + pattern[a + 1 : b] + suffix):
            if alternative not in expanded:
                expanded.append(alternative)
    return expanded


def _translate_class(pattern: str, start: int) -> tuple[str, int]:
    """Translate the character class opening at `start`.

    Returns:
        Tuple (regex fragment, index just past the closing bracket).
    """
    j = _class_end(pattern, start)
    if j >= len(pattern):
        raise GlobSyntaxError(pattern, f"unterminated character class at position {start}")

    body = pattern[start + 1 : j]
    negate = body[0] in "!^"
    if negate:
        body = body[1:]
    body = body.replace("\\", "\\\\").replace("[", "\\[")
    return ("[^" if negate else "[") + body + "]", j + 1


def translate_glob(pattern: str) -> str:
    """Translate a brace-free glob into a regular expression.

    Braces are literal here; expand them with expand_braces first.

    Raises:
        GlobSyntaxError: Empty pattern, unterminated class or a
            trailing backslash.
    """
    if not pattern:
        raise GlobSyntaxError(pattern, "empty pattern")

    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            whole_segment = (i == 0 or pattern[i - 1] == "/") and (
                j == n or pattern[j] == "/"
            )
            if j - i >= 2 and whole_segment:
                if j == n:
                    out.append(".*")
                    i = j
                else:
                    # '**/' swallows its separator so it can match zero segments
                    out.append("(?:[^/]*/)*")
                    i = j + 1
            else:
                out.append(_SEGMENT)
                i = j
            continue
        if c == "?":
            out.append("[^/]")
        elif c == "[":
            fragment, i = _translate_class(pattern, i)
            out.append(fragment)
            continue
        elif c == "\\":
            if i + 1 >= n:
                raise GlobSyntaxError(pattern, "trailing backslash")
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


@dataclass(frozen=True)
class GlobAlternative:
    """One brace-free alternative of a glob."""

    regex: re.Pattern[str]
    match_basename: bool

    def matches(self, normalized: str) -> bool:
        if self.regex.fullmatch(normalized):
            return True
        if self.match_basename:
            return self.regex.fullmatch(normalized.rsplit("/", 1)[-1]) is not None
        return False


@dataclass(frozen=True)
class CompiledGlob:
    """A validated glob, ready to match normalised paths."""

    pattern: str
    alternatives: tuple[GlobAlternative, ...] = field(repr=False, compare=False)

    def matches(self, path: str) -> bool:
        normalized = normalize_path(path)
        return any(alt.matches(normalized) for alt in self.alternatives)


def compile_glob(pattern: str) -> CompiledGlob:
    """Compile a glob, raising GlobSyntaxError if it is malformed."""
    if not pattern:
        raise GlobSyntaxError(pattern, "empty pattern")
    expanded = [alt for alt in expand_braces(pattern) if alt]
    if not expanded:
        raise GlobSyntaxError(pattern, "every alternative is empty")

    alternatives = []
    for alt in expanded:
        try:
            regex = re.compile(translate_glob(alt), re.DOTALL)
        except GlobSyntaxError as e:
            raise GlobSyntaxError(pattern, e.reason) from e
        except re.error as e:
            raise GlobSyntaxError(pattern, str(e)) from e
        alternatives.append(GlobAlternative(regex=regex, match_basename="/" not in alt))
    return CompiledGlob(pattern=pattern, alternatives=tuple(alternatives))
