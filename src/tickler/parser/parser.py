"""Recursive-descent parser for directive call expressions.

Grammar::

    call     := IDENT "(" [arg ("," arg)* [","]] ")"
    arg      := IDENT ":" expr | expr
    expr     := STRING | INTEGER | IDENT | call | <anything else>

Anything that is not a literal, a bare name or a call is kept as a RawNode
so the compiler can report it with its original text. Only structural
problems (unbalanced parentheses, unterminated strings, empty arguments)
raise DirectiveSyntaxError.
"""

from __future__ import annotations

from collections.abc import Iterator

from tickler.exceptions import DirectiveSyntaxError
from tickler.parser.lexer import Token, TokenKind, tokenize
from tickler.parser.nodes import (
    CallNode,
    IntegerNode,
    KeywordNode,
    NameNode,
    Node,
    RawNode,
    StringNode,
)

_BOUNDARY = (TokenKind.COMMA, TokenKind.RPAREN)
_END = (*_BOUNDARY, TokenKind.EOF)

# The tag call, its event calls, and one more level the compiler can report.
MAX_DEPTH = 3


class Parser:
    """Parses a single call expression from ``text``."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._tokens: Iterator[Token] = tokenize(text)
        self._buffer: list[Token] = []
        self._eof: Token | None = None
        self._last_end = 0
        self._depth = 0

    # ------------------------------------------------------------------
    # Token stream
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        while len(self._buffer) <= offset:
            token = next(self._tokens, None) or self._eof
            if token is None:
                raise DirectiveSyntaxError("unexpected end of input")
            if token.kind is TokenKind.EOF:
                self._eof = token
            self._buffer.append(token)
        return self._buffer[offset]

    def _advance(self) -> Token:
        token = self._peek()
        self._buffer.pop(0)
        return token

    def _expect(self, kind: TokenKind) -> Token:
        token = self._peek()
        if token.kind is not kind:
            raise DirectiveSyntaxError(
                f"expected {kind} but found {self._describe(token)}", token.start
            )
        return self._advance()

    def _describe(self, token: Token) -> str:
        if token.kind is TokenKind.EOF:
            return "end of input"
        return f"{token.kind} `{self._text[token.start:token.end]}`"

    # ------------------------------------------------------------------
    # Grammar
    # ------------------------------------------------------------------

    def parse(self) -> CallNode:
        """Parse the leading call expression; trailing text is ignored."""
        return self._parse_call(self._expect(TokenKind.IDENT))

    def _parse_call(self, name: Token) -> CallNode:
        if self._depth >= MAX_DEPTH:
            raise DirectiveSyntaxError("calls nested too deeply", name.start)
        self._depth += 1
        try:
            return self._parse_call_body(name)
        finally:
            self._depth -= 1

    def _parse_call_body(self, name: Token) -> CallNode:
        self._expect(TokenKind.LPAREN)
        arguments: list[Node] = []
        keywords: list[KeywordNode] = []

        while self._peek().kind is not TokenKind.RPAREN:
            token = self._peek()
            if token.kind is TokenKind.IDENT and self._peek(1).kind is TokenKind.COLON:
                key = self._advance()
                self._advance()
                value = self._parse_expr()
                keywords.append(
                    KeywordNode(
                        key=str(key.value),
                        value=value,
                        source=self._text[key.start:self._last_end],
                    )
                )
            else:
                arguments.append(self._parse_expr())

            if self._peek().kind is TokenKind.COMMA:
                self._advance()
            elif self._peek().kind is not TokenKind.RPAREN:
                token = self._peek()
                raise DirectiveSyntaxError(
                    f"expected ',' or ')' but found {self._describe(token)}",
                    token.start,
                )

        end = self._advance().end
        self._last_end = end
        return CallNode(
            name=str(name.value),
            arguments=tuple(arguments),
            keywords=tuple(keywords),
            source=self._text[name.start:end],
        )

    def _parse_expr(self) -> Node:
        first = self._peek()
        if first.kind in _END:
            raise DirectiveSyntaxError(
                f"expected a value but found {self._describe(first)}", first.start
            )

        node: Node | None = None
        if first.kind is TokenKind.STRING:
            token = self._advance()
            node = StringNode(str(token.value), self._text[token.start:token.end])
            self._last_end = token.end
        elif first.kind is TokenKind.INTEGER:
            token = self._advance()
            node = IntegerNode(int(token.value), self._text[token.start:token.end])  # type: ignore[arg-type]
            self._last_end = token.end
        elif first.kind is TokenKind.IDENT:
            token = self._advance()
            if self._peek().kind is TokenKind.LPAREN:
                node = self._parse_call(token)
            else:
                node = NameNode(str(token.value), self._text[token.start:token.end])
                self._last_end = token.end

        if node is not None and self._peek().kind in _END:
            return node

        # Not a plain literal/name/call: swallow up to the next boundary.
        self._skip_to_boundary()
        return RawNode(self._text[first.start:self._last_end].strip())

    def _skip_to_boundary(self) -> None:
        depth = 0
        while True:
            token = self._peek()
            if token.kind is TokenKind.EOF:
                raise DirectiveSyntaxError("unbalanced parentheses", token.start)
            if depth == 0 and token.kind in _BOUNDARY:
                return
            if token.kind is TokenKind.LPAREN:
                depth += 1
            elif token.kind is TokenKind.RPAREN:
                depth -= 1
            self._last_end = self._advance().end


def parse_call(text: str) -> CallNode:
    """Parse ``text`` as a call expression.

    Raises:
        DirectiveSyntaxError: If the text is not a well-formed call.
    """
    return Parser(text).parse()
