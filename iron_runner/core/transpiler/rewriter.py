"""
IronScript Rewriter
===================

Pattern-based rewriting of IronScript source into JavaScript.

The rewriter is not a compiler: it recognizes a handful of fixed syntactic
shapes and rewrites them through an ordered list of substitution rules. Each
rule consumes the whole output of the previous one, so rule order matters.
Malformed input is never rejected here; it simply produces malformed
JavaScript that fails when executed.
"""

from typing import Any, Callable, List, Optional, Union
from dataclasses import dataclass
import re

from iron_runner.config.logging import get_logger

logger = get_logger(__name__)


JOIN_HELPER = 'function join(){ return Array.from(arguments).join(""); }\n'

_QUOTES = "\"'`"


class RewriteError(Exception):
    """Exception raised when a rewrite stage is looked up incorrectly."""

    pass


@dataclass(frozen=True)
class SubstitutionRule:
    """A named whole-buffer rewrite step."""

    name: str
    apply: Callable[[str], str]

    def __call__(self, text: str) -> str:
        return self.apply(text)


def _skip_quoted(text: str, start: int) -> Optional[int]:
    """Return the index just past the literal opened at ``start``."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            # Unterminated single-line literal: resume scanning on the next line
            return i
        i += 1
    return None


def find_closing_brace(text: str, open_index: int) -> Optional[int]:
    """
    Find the brace closing the one at ``open_index``.

    Braces inside string literals, template literals and comments (``//``,
    ``##`` and ``/* */``) are ignored.

    Args:
        text: Buffer to scan
        open_index: Index of an opening ``{``

    Returns:
        Index of the matching ``}``, or None when the block is unterminated
    """
    depth = 0
    i = open_index
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTES:
            end = _skip_quoted(text, i)
            if end is None:
                return None
            i = end
            continue
        if text.startswith("//", i) or text.startswith("##", i):
            newline = text.find("\n", i)
            if newline == -1:
                return None
            i = newline
            continue
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                return None
            i = end + 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def rewrite_blocks(
    text: str,
    header: "re.Pattern[str]",
    build: Callable[["re.Match[str]", str], str],
    trailer: Optional["re.Pattern[str]"] = None,
) -> str:
    """
    Rewrite every ``header { body }`` construct in ``text``.

    ``header`` must end by matching the opening brace. The body is located by
    brace-depth scanning and is itself rewritten before ``build`` receives it,
    so nested constructs of the same shape are handled. Unterminated blocks
    are left untouched. ``trailer``, when given, is consumed right after the
    closing brace.
    """
    parts: List[str] = []
    pos = 0
    search_from = 0
    while True:
        match = header.search(text, search_from)
        if match is None:
            break
        open_index = match.end() - 1
        close_index = find_closing_brace(text, open_index)
        if close_index is None:
            search_from = match.end()
            continue

        body = rewrite_blocks(text[open_index + 1 : close_index], header, build, trailer)
        end = close_index + 1
        if trailer is not None:
            trailing = trailer.match(text, end)
            if trailing:
                end = trailing.end()

        parts.append(text[pos : match.start()])
        parts.append(build(match, body))
        pos = search_from = end

    parts.append(text[pos:])
    return "".join(parts)


def regex_rule(
    name: str, pattern: str, replacement: Union[str, Callable[["re.Match[str]"], str]], flags: int = 0
) -> SubstitutionRule:
    """Build a rule applying one global regex substitution."""
    compiled = re.compile(pattern, flags)
    return SubstitutionRule(name, lambda text: compiled.sub(replacement, text))


def block_rule(
    name: str,
    header: str,
    build: Callable[["re.Match[str]", str], str],
    flags: int = 0,
    trailer: Optional[str] = None,
) -> SubstitutionRule:
    """Build a rule rewriting brace-delimited blocks introduced by ``header``."""
    compiled = re.compile(header, flags)
    compiled_trailer = re.compile(trailer) if trailer else None
    return SubstitutionRule(
        name, lambda text: rewrite_blocks(text, compiled, build, compiled_trailer)
    )


# Stage 6: interpolation markers, only inside template literals
_TEMPLATE_SPAN = re.compile(r"`([\s\S]*?)`")
_INTERPOLATION_MARKER = re.compile(r"\$_([A-Za-z0-9_.$]+)\$")


def _interpolate_span(match: "re.Match[str]") -> str:
    inner = _INTERPOLATION_MARKER.sub(lambda m: "${" + m.group(1) + "}", match.group(1))
    return "`" + inner + "`"


def _interpolate(text: str) -> str:
    return _TEMPLATE_SPAN.sub(_interpolate_span, text)


_IDENT_BOUNDARY = r"(?<![\w$.])"


def build_rules() -> List[SubstitutionRule]:
    """Return the ordered rewrite pipeline."""
    return [
        regex_rule("line-endings", r"\r\n?", "\n"),
        block_rule(
            "public-variable",
            r"\bpublic\s+variable\s*\{",
            lambda m, body: body.strip(),
            flags=re.IGNORECASE,
            trailer=r"\s*,",
        ),
        block_rule(
            "public-script",
            r"\bpublic\s+script\s*\{",
            lambda m, body: body.strip(),
            flags=re.IGNORECASE,
            trailer=r"\s*,",
        ),
        regex_rule(
            "const-declarations",
            _IDENT_BOUNDARY + r"(?:elem|need)\s+([A-Za-z_]\w*)\s*=\s*([^;]+);",
            lambda m: f"const {m.group(1)} = {m.group(2)};",
        ),
        regex_rule(
            "let-declarations",
            _IDENT_BOUNDARY + r"(?:string|int|bool|array|object)\s+([A-Za-z_]\w*)\s*=\s*([^;]+);",
            lambda m: f"let {m.group(1)} = {m.group(2)};",
        ),
        regex_rule("comments", r"##[ \t]?([^\n]*)", lambda m: "// " + m.group(1)),
        regex_rule("print", _IDENT_BOUNDARY + r"printLog\s*\(", "console.log("),
        SubstitutionRule("interpolation", _interpolate),
        # target = event name { body }
        block_rule(
            "event-assignment",
            r"^([ \t]*)(.*\S)[ \t]*=[ \t]*event\s+([A-Za-z_$][\w$]*)\s*\{",
            lambda m, body: f"{m.group(1)}{m.group(2)} = function {m.group(3)}(){{{body}}};",
            flags=re.MULTILINE | re.IGNORECASE,
        ),
        # event some.target(...)[...] { body }
        block_rule(
            "event-expression",
            _IDENT_BOUNDARY + r"event\s+([\w$]*[.\[(][\w$.\[\]()'\"]*)\s*\{",
            lambda m, body: f"{m.group(1)} = function(){{{body}}};",
            flags=re.IGNORECASE,
        ),
        # event name { body }
        block_rule(
            "event-named",
            r"(?:^|(?<=[;{}]))([ \t]*)event\s+([A-Za-z_$][\w$]*)\s*\{",
            lambda m, body: f"{m.group(1)}{m.group(2)} = function(){{{body}}};",
            flags=re.MULTILINE | re.IGNORECASE,
        ),
        SubstitutionRule("helpers", lambda text: JOIN_HELPER + text),
    ]


class Rewriter:
    """Applies the ordered rewrite pipeline to IronScript source."""

    def __init__(self, rules: Optional[List[SubstitutionRule]] = None) -> None:
        self.rules = rules if rules is not None else build_rules()
        self.logger: Any = logger.bind(component="rewriter")  # structlog.BoundLoggerBase

    @property
    def rule_names(self) -> List[str]:
        return [rule.name for rule in self.rules]

    def transpile(self, text: object) -> str:
        """
        Rewrite IronScript source into JavaScript.

        Args:
            text: IronScript source; anything other than a string yields ""

        Returns:
            JavaScript source with the helper functions prepended
        """
        if not isinstance(text, str):
            return ""

        code = text
        for rule in self.rules:
            code = rule(code)

        self.logger.debug("Transpiled IronScript", source_length=len(text), output_length=len(code))
        return code

    def apply_until(self, text: str, name: str) -> str:
        """Run the pipeline up to and including the stage called ``name``."""
        if name not in self.rule_names:
            raise RewriteError(f"Unknown rewrite stage: {name}")

        code = text
        for rule in self.rules:
            code = rule(code)
            if rule.name == name:
                break
        return code


_default_rewriter: Optional[Rewriter] = None


def get_rewriter() -> Rewriter:
    """Get the shared default rewriter."""
    global _default_rewriter
    if _default_rewriter is None:
        _default_rewriter = Rewriter()
    return _default_rewriter


def transpile(text: object) -> str:
    """Rewrite IronScript source into JavaScript using the default pipeline."""
    return get_rewriter().transpile(text)
