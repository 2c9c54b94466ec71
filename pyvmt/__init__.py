"""
PyVMT - VM to Hack assembly translator

Translates the stack-based VM language into Hack assembly, following the
classic parser / code writer architecture.
"""

__version__ = "0.1.0"
__author__ = "PyVMT Contributors"
__license__ = "MIT"

from .lexer import Lexer, Token
from .parser import Parser, ParserError, MalformedCommand
from .codegen import (
    CodeGenerator,
    CodeGenError,
    InvalidOperation,
    InvalidSegmentIndex,
    TranslationState,
    UnknownArithmeticOp,
)
from .translator import Translator, TranslationResult

__all__ = [
    'Lexer',
    'Token',
    'Parser',
    'ParserError',
    'MalformedCommand',
    'CodeGenerator',
    'CodeGenError',
    'InvalidOperation',
    'InvalidSegmentIndex',
    'TranslationState',
    'UnknownArithmeticOp',
    'Translator',
    'TranslationResult',
]
