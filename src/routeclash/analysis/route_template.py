"""Route template grammar.

A template is a ``/``-separated list of segments. Each segment is either a
literal (matched case-insensitively by routers) or a single parameter::

    template   = [ "~/" | "/" ] [ segment *( "/" segment ) ] [ "/" ]
    parameter  = "{" [ "*" | "**" ] name *( ":" constraint [ "(" args ")" ] )
                 [ "=" default ] [ "?" ] "}"

Constraints and defaults are parsed for well-formedness and kept for display.
Nothing downstream evaluates them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias

_INVALID_LITERAL_CHARACTERS = frozenset("{}?#")
_INVALID_NAME_CHARACTERS = frozenset("/{}=?*:()")
_CONSTRAINT_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_.-]*")


class TemplateErrorKind(str, Enum):
    UNBALANCED_BRACES = "unbalanced_braces"
    EMPTY_SEGMENT = "empty_segment"
    EMPTY_PARAMETER_NAME = "empty_parameter_name"
    INVALID_PARAMETER_NAME = "invalid_parameter_name"
    MALFORMED_CONSTRAINT = "malformed_constraint"
    CATCH_ALL_NOT_LAST = "catch_all_not_last"
    MULTIPLE_CATCH_ALL = "multiple_catch_all"
    INVALID_LITERAL_CHARACTER = "invalid_literal_character"
    REPEATED_PARAMETER = "repeated_parameter"
    OPTIONAL_WITH_DEFAULT = "optional_with_default"
    OPTIONAL_CATCH_ALL = "optional_catch_all"


class TemplateSyntaxError(ValueError):
    """Malformed route template.

    :func:`parse_template` returns this as a value. Only
    :func:`parse_template_strict` raises it.
    """

    def __init__(
        self,
        kind: TemplateErrorKind,
        message: str,
        *,
        template: str,
        offset: int,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.template = template
        self.offset = offset

    def __str__(self) -> str:
        return f"{self.message} (at offset {self.offset} in {self.template!r})"


@dataclass(frozen=True)
class LiteralSegment:
    text: str

    @property
    def folded(self) -> str:
        return self.text.lower()

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class ParameterSegment:
    name: str
    is_optional: bool = False
    is_catch_all: bool = False
    has_default: bool = False
    constraints: tuple[str, ...] = ()
    default: str | None = None
    # "**" catch-alls keep encoded slashes when generating links.
    preserves_slashes: bool = False

    def render(self) -> str:
        prefix = ""
        if self.is_catch_all:
            prefix = "**" if self.preserves_slashes else "*"
        parts = [prefix, self.name]
        parts.extend(f":{constraint}" for constraint in self.constraints)
        if self.has_default:
            parts.append(f"={self.default or ''}")
        if self.is_optional:
            parts.append("?")
        return "{" + "".join(parts) + "}"


Segment: TypeAlias = LiteralSegment | ParameterSegment


@dataclass(frozen=True)
class TemplateTree:
    segments: tuple[Segment, ...]
    text: str = ""

    @property
    def catch_all(self) -> ParameterSegment | None:
        if not self.segments:
            return None
        last = self.segments[-1]
        if isinstance(last, ParameterSegment) and last.is_catch_all:
            return last
        return None

    @property
    def canonical(self) -> str:
        return "/" + "/".join(segment.render() for segment in self.segments)

    def __str__(self) -> str:
        return self.text or self.canonical


@dataclass(frozen=True)
class TemplateParseResult:
    template: str
    tree: TemplateTree | None = None
    error: TemplateSyntaxError | None = None

    @property
    def ok(self) -> bool:
        return self.tree is not None


def parse_template(text: str) -> TemplateParseResult:
    try:
        tree = _parse(text)
    except TemplateSyntaxError as error:
        return TemplateParseResult(template=text, error=error)
    return TemplateParseResult(template=text, tree=tree)


def parse_template_strict(text: str) -> TemplateTree:
    return _parse(text)


def _parse(text: str) -> TemplateTree:
    body, base = _strip_separators(text)
    if not body:
        return TemplateTree(segments=(), text=text)
    segments: list[Segment] = []
    offsets: list[int] = []
    for offset, raw in _split_segments(text, body, base):
        if not raw:
            raise TemplateSyntaxError(
                TemplateErrorKind.EMPTY_SEGMENT,
                "The route template separator '/' cannot appear consecutively.",
                template=text,
                offset=offset,
            )
        segments.append(_parse_segment(text, raw, offset))
        offsets.append(offset)
    _check_catch_all_positions(text, segments, offsets)
    _check_repeated_names(text, segments, offsets)
    return TemplateTree(segments=tuple(segments), text=text)


def _strip_separators(text: str) -> tuple[str, int]:
    base = 0
    if text.startswith("~/"):
        base = 2
    elif text.startswith("/"):
        base = 1
    body = text[base:]
    # "//" is two separators around an empty segment, not the root.
    if body.endswith("/") and body != "/":
        body = body[:-1]
    return body, base


def _split_segments(text: str, body: str, base: int) -> list[tuple[int, str]]:
    # Slashes inside braces belong to constraint arguments, not to the path.
    pieces: list[tuple[int, str]] = []
    depth = 0
    start = 0
    for index, char in enumerate(body):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                raise TemplateSyntaxError(
                    TemplateErrorKind.UNBALANCED_BRACES,
                    "Unmatched '}' in route template.",
                    template=text,
                    offset=base + index,
                )
        elif char == "/" and depth == 0:
            pieces.append((base + start, body[start:index]))
            start = index + 1
    if depth != 0:
        raise TemplateSyntaxError(
            TemplateErrorKind.UNBALANCED_BRACES,
            "Unmatched '{' in route template.",
            template=text,
            offset=base + start,
        )
    pieces.append((base + start, body[start:]))
    return pieces


def _parse_segment(text: str, raw: str, offset: int) -> Segment:
    if raw.startswith("{") and _closing_brace(raw) == len(raw) - 1:
        return _parse_parameter(text, raw[1:-1], offset)
    for index, char in enumerate(raw):
        if char in _INVALID_LITERAL_CHARACTERS or ord(char) < 0x20 or char == "\x7f":
            raise TemplateSyntaxError(
                TemplateErrorKind.INVALID_LITERAL_CHARACTER,
                f"The literal section {raw!r} contains the invalid character {char!r}.",
                template=text,
                offset=offset + index,
            )
    return LiteralSegment(raw)


def _closing_brace(raw: str) -> int:
    depth = 0
    for index, char in enumerate(raw):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _parse_parameter(text: str, inner: str, offset: int) -> ParameterSegment:
    def fail(kind: TemplateErrorKind, message: str) -> TemplateSyntaxError:
        return TemplateSyntaxError(kind, message, template=text, offset=offset)

    is_catch_all = False
    preserves_slashes = False
    body = inner
    if body.startswith("**"):
        is_catch_all = preserves_slashes = True
        body = body[2:]
    elif body.startswith("*"):
        is_catch_all = True
        body = body[1:]

    is_optional = body.endswith("?")
    if is_optional:
        body = body[:-1]

    head, default = _split_default(body)
    name, separator, constraint_text = head.partition(":")
    if not name:
        raise fail(
            TemplateErrorKind.EMPTY_PARAMETER_NAME,
            "A route parameter name must be non-empty.",
        )
    if any(char in _INVALID_NAME_CHARACTERS or char.isspace() for char in name):
        raise fail(
            TemplateErrorKind.INVALID_PARAMETER_NAME,
            f"The route parameter name {name!r} is invalid.",
        )
    constraints = _parse_constraints(separator + constraint_text, fail)

    if is_optional and default is not None:
        raise fail(
            TemplateErrorKind.OPTIONAL_WITH_DEFAULT,
            f"The optional parameter {name!r} cannot have a default value.",
        )
    if is_optional and is_catch_all:
        raise fail(
            TemplateErrorKind.OPTIONAL_CATCH_ALL,
            f"The catch-all parameter {name!r} cannot be marked optional.",
        )
    return ParameterSegment(
        name=name,
        is_optional=is_optional,
        is_catch_all=is_catch_all,
        has_default=default is not None,
        constraints=constraints,
        default=default,
        preserves_slashes=preserves_slashes,
    )


def _split_default(body: str) -> tuple[str, str | None]:
    depth = 0
    for index, char in enumerate(body):
        if char == "(":
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
        elif char == "=" and depth == 0:
            return body[:index], body[index + 1 :]
    return body, None


def _parse_constraints(text: str, fail) -> tuple[str, ...]:
    constraints: list[str] = []
    index = 0
    while index < len(text):
        if text[index] != ":":
            raise fail(
                TemplateErrorKind.MALFORMED_CONSTRAINT,
                f"Unexpected {text[index]!r} after a route constraint.",
            )
        index += 1
        start = index
        while index < len(text) and text[index] not in ":(":
            index += 1
        name = text[start:index]
        if not _CONSTRAINT_NAME_RE.fullmatch(name):
            raise fail(
                TemplateErrorKind.MALFORMED_CONSTRAINT,
                f"The route constraint name {name!r} is invalid.",
            )
        if index < len(text) and text[index] == "(":
            close = _closing_paren(text, index)
            if close < 0:
                raise fail(
                    TemplateErrorKind.MALFORMED_CONSTRAINT,
                    f"The arguments of route constraint {name!r} are not terminated.",
                )
            constraints.append(f"{name}{text[index:close + 1]}")
            index = close + 1
        else:
            constraints.append(name)
    return tuple(constraints)


def _closing_paren(text: str, start: int) -> int:
    depth = 0
    for index in range(start, len(text)):
        if text[index] == "(":
            depth += 1
        elif text[index] == ")":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _check_catch_all_positions(
    text: str, segments: list[Segment], offsets: list[int]
) -> None:
    positions = [
        index
        for index, segment in enumerate(segments)
        if isinstance(segment, ParameterSegment) and segment.is_catch_all
    ]
    if len(positions) > 1:
        raise TemplateSyntaxError(
            TemplateErrorKind.MULTIPLE_CATCH_ALL,
            "A route template can contain only one catch-all parameter.",
            template=text,
            offset=offsets[positions[1]],
        )
    if positions and positions[0] != len(segments) - 1:
        raise TemplateSyntaxError(
            TemplateErrorKind.CATCH_ALL_NOT_LAST,
            "A catch-all parameter can only appear as the last segment of the route template.",
            template=text,
            offset=offsets[positions[0]],
        )


def _check_repeated_names(
    text: str, segments: list[Segment], offsets: list[int]
) -> None:
    seen: set[str] = set()
    for segment, offset in zip(segments, offsets):
        if not isinstance(segment, ParameterSegment):
            continue
        key = segment.name.lower()
        if key in seen:
            raise TemplateSyntaxError(
                TemplateErrorKind.REPEATED_PARAMETER,
                f"The route parameter name {segment.name!r} appears more than one time.",
                template=text,
                offset=offset,
            )
        seen.add(key)
