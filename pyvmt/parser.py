"""
Command Parser for VM source

Classifies the significant lines produced by the lexer into `Command`
values. The parser is lazy and forward-only: each call to `next()` consumes
exactly one source line, and a rejected line raises `MalformedCommand`.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Union

from pyvmt.commands import (
    Arithmetic,
    ArithmeticOp,
    Call,
    Command,
    Function,
    Goto,
    IfGoto,
    Label,
    Pop,
    Push,
    Return,
    Segment,
)
from pyvmt.lexer import Lexer, SourceLine, Token, TokenType

# largest literal an A-instruction can load
MAX_INDEX = 32767

_SEGMENTS = {s.value: s for s in Segment}
_ARITHMETIC = {op.value: op for op in ArithmeticOp}


class ParserError(Exception):
    """Parser error"""
    def __init__(self, message: str, token: Optional[Token] = None, text: str = ""):
        self.message = message
        self.token = token
        self.text = text
        if token:
            super().__init__(f"{message} at {token.line}:{token.column}")
        else:
            super().__init__(message)

    @property
    def line(self) -> Optional[int]:
        return self.token.line if self.token else None

    @property
    def column(self) -> Optional[int]:
        return self.token.column if self.token else None


class MalformedCommand(ParserError):
    """A non-blank line that matches no recognized command shape"""


class Parser:
    """Parser for VM commands"""

    def __init__(self, source: Union[str, Iterable[str]], filename: str = "<input>"):
        self.filename = filename
        self._lines: Iterator[SourceLine] = Lexer(source, filename).lines()
        self._pending: Optional[SourceLine] = None
        self.current_line: Optional[int] = None

    def has_next(self) -> bool:
        """Are there more commands in the input?"""
        if self._pending is None:
            self._pending = next(self._lines, None)
        return self._pending is not None

    def next(self) -> Command:
        """Read and classify the next command."""
        if not self.has_next():
            raise StopIteration
        line = self._pending
        self._pending = None
        self.current_line = line.number
        return self._classify(line)

    def __iter__(self) -> Iterator[Command]:
        return self

    def __next__(self) -> Command:
        return self.next()

    def parse(self) -> List[Command]:
        """Parse all remaining commands"""
        return list(self)

    # -----------------
    # Helpers
    # -----------------

    def _classify(self, line: SourceLine) -> Command:
        head, operands = line.tokens[0], line.tokens[1:]
        word = head.value

        if head.type != TokenType.KEYWORD:
            raise MalformedCommand(f"Unknown command {word!r}", head, line.text)

        if word in _ARITHMETIC:
            self._arity(line, 0)
            return Arithmetic(_ARITHMETIC[word])

        if word in ("push", "pop"):
            self._arity(line, 2)
            seg_tok, idx_tok = operands
            segment = _SEGMENTS.get(seg_tok.value)
            if segment is None:
                raise MalformedCommand(f"Unknown segment {seg_tok.value!r}", seg_tok, line.text)
            index = self._number(idx_tok, line)
            return Push(segment, index) if word == "push" else Pop(segment, index)

        if word in ("label", "goto", "if-goto"):
            self._arity(line, 1)
            name = self._identifier(operands[0], line)
            if word == "label":
                return Label(name)
            if word == "goto":
                return Goto(name)
            return IfGoto(name)

        if word in ("function", "call"):
            self._arity(line, 2)
            name = self._identifier(operands[0], line)
            count = self._number(operands[1], line)
            return Function(name, count) if word == "function" else Call(name, count)

        # only `return` is left
        self._arity(line, 0)
        return Return()

    def _arity(self, line: SourceLine, expected: int) -> None:
        got = len(line.tokens) - 1
        if got != expected:
            head = line.tokens[0]
            raise MalformedCommand(
                f"{head.value!r} expects {expected} operand(s), got {got}", head, line.text
            )

    def _number(self, tok: Token, line: SourceLine) -> int:
        if tok.type != TokenType.NUMBER:
            raise MalformedCommand(f"Expected a non-negative integer, got {tok.value!r}", tok, line.text)
        value = int(tok.value)
        if value > MAX_INDEX:
            raise MalformedCommand(f"Integer {value} out of range (max {MAX_INDEX})", tok, line.text)
        return value

    def _identifier(self, tok: Token, line: SourceLine) -> str:
        if tok.type != TokenType.IDENTIFIER:
            raise MalformedCommand(f"Expected a name, got {tok.value!r}", tok, line.text)
        return tok.value
