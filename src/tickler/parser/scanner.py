"""Comment scanner: groups tagged comments with their continuation lines.

A comment matching ``#<space>TAG(`` opens a block. Following comments whose
indentation after ``#`` is exactly two more than the tag line's become the
block body. Any other comment closes the block; it is not attached and is
not an error, since ordinary comments often follow a directive::

    # TODO(on: date('2025-01-01'), to: 'john@example.com')
    #   Attached to the directive.
    # Not attached (closes the block).
"""

from __future__ import annotations

import io
import logging
import re
import tokenize
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from tickler.models.config import DEFAULT_TAGS
from tickler.models.directive import Directive, SourceLocation
from tickler.parser.compiler import compile_directive

logger = logging.getLogger(__name__)

CONTINUATION_INDENT = 2

_INDENT_PATTERN = re.compile(r"^#(\s*)")
_LINE_COMMENT_PATTERN = re.compile(r"^\s*(#.*)$")


@dataclass(frozen=True)
class Comment:
    """One comment token.

    Attributes:
        text: Raw comment text, starting with ``#``.
        line: 1-based line number.
        inline: False for block/doc comments, which the scanner ignores.
    """

    text: str
    line: int
    inline: bool = True


@dataclass
class CommentBlock:
    """A tag line plus its attached continuation lines."""

    tag_line: str
    start_line: int
    indent: int
    lines: list[str] = field(default_factory=list)

    @property
    def end_line(self) -> int:
        return self.start_line + len(self.lines)

    @property
    def body(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


def tag_pattern(tags: Sequence[str] = DEFAULT_TAGS) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(tag) for tag in tags)
    return re.compile(rf"^#\s({alternatives})\(")


def comment_indent(text: str) -> int:
    """Number of whitespace characters right after the ``#``."""
    match = _INDENT_PATTERN.match(text)
    return len(match.group(1)) if match else -1


def scan_comments(
    comments: Iterable[Comment], tags: Sequence[str] = DEFAULT_TAGS
) -> list[CommentBlock]:
    """Group a comment stream into candidate directive blocks."""
    pattern = tag_pattern(tags)
    blocks: list[CommentBlock] = []
    current: CommentBlock | None = None

    for comment in comments:
        if not comment.inline:
            continue

        text = comment.text.rstrip("\r\n")
        if pattern.match(text):
            if current is not None:
                blocks.append(current)
            current = CommentBlock(
                tag_line=text, start_line=comment.line, indent=comment_indent(text)
            )
            continue

        indent = comment_indent(text)
        if current is not None and indent - current.indent == CONTINUATION_INDENT:
            current.lines.append(text[indent + 1:])
            continue

        if current is not None:
            blocks.append(current)
        current = None

    if current is not None:
        blocks.append(current)
    return blocks


def comments_from_source(source: str) -> list[Comment]:
    """Extract ``#`` comments from Python source.

    Uses ``tokenize`` so that ``#`` inside string literals is not mistaken
    for a comment. Sources that do not tokenize fall back to a line scan.
    """
    comments: list[Comment] = []
    try:
        for token in tokenize.generate_tokens(io.StringIO(source).readline):
            if token.type == tokenize.COMMENT:
                comments.append(Comment(text=token.string, line=token.start[0]))
    except (tokenize.TokenError, SyntaxError) as exc:
        logger.debug("Falling back to line scan: %s", exc)
        return _comments_from_lines(source)
    return comments


def _comments_from_lines(source: str) -> list[Comment]:
    comments = []
    for number, line in enumerate(source.splitlines(), start=1):
        match = _LINE_COMMENT_PATTERN.match(line)
        if match:
            comments.append(Comment(text=match.group(1), line=number))
    return comments


def compile_block(block: CommentBlock, filepath: str = "-") -> Directive:
    return compile_directive(
        block.tag_line,
        body=block.body,
        location=SourceLocation(
            file=filepath, start_line=block.start_line, end_line=block.end_line
        ),
    )


def scan_source(
    source: str, filepath: str = "-", tags: Sequence[str] = DEFAULT_TAGS
) -> list[Directive]:
    """Scan Python source and compile every tagged comment block."""
    blocks = scan_comments(comments_from_source(source), tags)
    return [compile_block(block, filepath) for block in blocks]
