"""Directive parsing: comment scanning, tokenizing, and compiling."""

from tickler.parser.compiler import compile_directive
from tickler.parser.scanner import (
    Comment,
    CommentBlock,
    comments_from_source,
    scan_comments,
    scan_source,
)

__all__ = [
    "Comment",
    "CommentBlock",
    "comments_from_source",
    "scan_comments",
    "scan_source",
    "compile_directive",
]
