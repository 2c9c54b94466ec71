"""
Lexical Analyzer (Lexer) for VM source

Converts VM source text into a lazy stream of significant lines, each a list
of positioned tokens. Comments (`//` to end of line) and surrounding
whitespace are stripped; lines that are blank afterwards are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, Iterator, List, Set, Union
import re


class TokenType(Enum):
    """Token types for VM source"""
    KEYWORD = auto()
    IDENTIFIER = auto()
    NUMBER = auto()
    # anything else; the parser rejects it
    UNKNOWN = auto()


@dataclass
class Token:
    """Represents a lexical token"""
    type: TokenType
    value: str
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {repr(self.value)}, {self.line}:{self.column})"


@dataclass
class SourceLine:
    """One significant source line"""
    number: int
    tokens: List[Token]

    @property
    def text(self) -> str:
        return " ".join(t.value for t in self.tokens)


class Lexer:
    """Lexical analyzer for VM source"""

    KEYWORDS: Set[str] = {
        'add', 'sub', 'neg', 'eq', 'gt', 'lt', 'and', 'or', 'not',
        'push', 'pop', 'label', 'goto', 'if-goto', 'function', 'call', 'return',
    }

    _WORD_RE = re.compile(r"\S+")
    _NUMBER_RE = re.compile(r"[0-9]+")
    _IDENT_RE = re.compile(r"[A-Za-z_.:$][A-Za-z0-9_.:$]*")

    def __init__(self, source: Union[str, Iterable[str]], filename: str = "<input>"):
        """Initialize lexer with source text or an iterable of lines"""
        self.source = source
        self.filename = filename
        self.line = 0

    def _raw_lines(self) -> Iterator[str]:
        if isinstance(self.source, str):
            return iter(self.source.splitlines())
        return iter(self.source)

    def classify(self, word: str) -> TokenType:
        if word in self.KEYWORDS:
            return TokenType.KEYWORD
        if self._NUMBER_RE.fullmatch(word):
            return TokenType.NUMBER
        if self._IDENT_RE.fullmatch(word):
            return TokenType.IDENTIFIER
        return TokenType.UNKNOWN

    def lines(self) -> Iterator[SourceLine]:
        """Yield significant lines one at a time"""
        for raw in self._raw_lines():
            self.line += 1
            code = raw.split("//", 1)[0]
            tokens = [
                Token(self.classify(m.group()), m.group(), self.line, m.start() + 1)
                for m in self._WORD_RE.finditer(code)
            ]
            if tokens:
                yield SourceLine(self.line, tokens)

    def tokenize(self) -> List[SourceLine]:
        """Eagerly lex the whole source"""
        return list(self.lines())
