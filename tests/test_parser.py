"""
Unit tests for the Lexer and Parser modules
"""

import pytest
from pyvmt.commands import (
    Arithmetic,
    ArithmeticOp,
    Call,
    Function,
    Goto,
    IfGoto,
    Label,
    Pop,
    Push,
    Return,
    Segment,
)
from pyvmt.lexer import Lexer, TokenType
from pyvmt.parser import MalformedCommand, Parser, ParserError


class TestLexer:
    """Test line splitting and token classification"""

    def test_skips_blank_and_comment_lines(self):
        src = "// header\n\n   \npush constant 1  // trailing\n\t// indented comment\nadd\n"
        lines = Lexer(src).tokenize()
        assert [l.number for l in lines] == [4, 6]
        assert [t.value for t in lines[0].tokens] == ["push", "constant", "1"]

    def test_token_positions(self):
        lines = Lexer("  pop local 3").tokenize()
        toks = lines[0].tokens
        assert (toks[0].line, toks[0].column) == (1, 3)
        assert toks[2].column == 13

    def test_token_types(self):
        toks = Lexer("call Main.f$x 2 @bad").tokenize()[0].tokens
        assert [t.type for t in toks] == [
            TokenType.KEYWORD,
            TokenType.IDENTIFIER,
            TokenType.NUMBER,
            TokenType.UNKNOWN,
        ]

    def test_accepts_iterable_of_lines(self):
        lines = Lexer(iter(["push constant 1\n", "\n", "neg\n"])).tokenize()
        assert [l.text for l in lines] == ["push constant 1", "neg"]


class TestParser:
    """Test command classification"""

    def test_all_command_kinds(self):
        src = """
add
push constant 7
pop local 0
label LOOP
goto LOOP
if-goto LOOP
function Main.main 2
call Math.multiply 2
return
"""
        assert Parser(src).parse() == [
            Arithmetic(ArithmeticOp.ADD),
            Push(Segment.CONSTANT, 7),
            Pop(Segment.LOCAL, 0),
            Label("LOOP"),
            Goto("LOOP"),
            IfGoto("LOOP"),
            Function("Main.main", 2),
            Call("Math.multiply", 2),
            Return(),
        ]

    def test_every_arithmetic_op(self):
        ops = ["add", "sub", "neg", "eq", "gt", "lt", "and", "or", "not"]
        cmds = Parser("\n".join(ops)).parse()
        assert [c.op.value for c in cmds] == ops

    def test_has_next_and_next(self):
        p = Parser("// only comment\npush constant 1\n\n")
        assert p.has_next()
        assert p.has_next()
        assert p.next() == Push(Segment.CONSTANT, 1)
        assert p.current_line == 2
        assert not p.has_next()
        with pytest.raises(StopIteration):
            p.next()

    def test_empty_source(self):
        p = Parser("\n// nothing\n")
        assert not p.has_next()
        assert p.parse() == []

    def test_lazy_consumption(self):
        consumed = []

        def lines():
            for l in ["push constant 1", "push constant 2", "bogus"]:
                consumed.append(l)
                yield l

        p = Parser(lines())
        assert p.next() == Push(Segment.CONSTANT, 1)
        assert consumed == ["push constant 1"]
        assert p.next() == Push(Segment.CONSTANT, 2)
        with pytest.raises(MalformedCommand):
            p.next()

    def test_str_renders_source_form(self):
        src = ["push constant 7", "pop pointer 1", "if-goto END", "function Main.f 3", "call Main.f 0", "return", "eq"]
        assert [str(c) for c in Parser("\n".join(src))] == src


class TestMalformed:
    """Test rejection of malformed lines"""

    @pytest.mark.parametrize(
        "line",
        [
            "mul",
            "push constant",
            "push constant x",
            "push constant -1",
            "push constant 40000",
            "push heap 1",
            "add 1",
            "label",
            "label 1abc",
            "goto a b",
            "function Main.f",
            "call Main.f two",
            "return 0",
            "Push constant 1",
        ],
    )
    def test_rejected(self, line):
        with pytest.raises(MalformedCommand):
            Parser(line).next()

    def test_segment_rules_left_to_code_generator(self):
        # well-formed lines; the generator rejects them with typed errors
        assert Parser("pop constant 0").next() == Pop(Segment.CONSTANT, 0)
        assert Parser("push pointer 2").next() == Push(Segment.POINTER, 2)

    def test_error_carries_position_and_text(self):
        p = Parser("push constant 1\n\npush local x\n")
        p.next()
        with pytest.raises(ParserError) as ei:
            p.next()
        err = ei.value
        assert err.line == 3
        assert err.column == 12
        assert err.text == "push local x"
        assert "3:12" in str(err)
