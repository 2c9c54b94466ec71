"""Minimal Hack assembler and CPU used by the tests to run emitted code.

Only what the translator emits is supported: A-instructions (numbers and
symbols), C-instructions with the standard comp/dest/jump tables, label
declarations and `//` comments.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

RAM_SIZE = 32768

PREDEFINED: Dict[str, int] = {
    "SP": 0,
    "LCL": 1,
    "ARG": 2,
    "THIS": 3,
    "THAT": 4,
    "SCREEN": 16384,
    "KBD": 24576,
}
PREDEFINED.update({f"R{i}": i for i in range(16)})

COMP = {
    "0": lambda a, d, m: 0,
    "1": lambda a, d, m: 1,
    "-1": lambda a, d, m: -1,
    "D": lambda a, d, m: d,
    "A": lambda a, d, m: a,
    "M": lambda a, d, m: m,
    "!D": lambda a, d, m: ~d,
    "!A": lambda a, d, m: ~a,
    "!M": lambda a, d, m: ~m,
    "-D": lambda a, d, m: -d,
    "-A": lambda a, d, m: -a,
    "-M": lambda a, d, m: -m,
    "D+1": lambda a, d, m: d + 1,
    "A+1": lambda a, d, m: a + 1,
    "M+1": lambda a, d, m: m + 1,
    "D-1": lambda a, d, m: d - 1,
    "A-1": lambda a, d, m: a - 1,
    "M-1": lambda a, d, m: m - 1,
    "D+A": lambda a, d, m: d + a,
    "D+M": lambda a, d, m: d + m,
    "D-A": lambda a, d, m: d - a,
    "D-M": lambda a, d, m: d - m,
    "A-D": lambda a, d, m: a - d,
    "M-D": lambda a, d, m: m - d,
    "D&A": lambda a, d, m: d & a,
    "D&M": lambda a, d, m: d & m,
    "D|A": lambda a, d, m: d | a,
    "D|M": lambda a, d, m: d | m,
}

JUMPS = {
    "": lambda v: False,
    "JGT": lambda v: v > 0,
    "JEQ": lambda v: v == 0,
    "JGE": lambda v: v >= 0,
    "JLT": lambda v: v < 0,
    "JNE": lambda v: v != 0,
    "JLE": lambda v: v <= 0,
    "JMP": lambda v: True,
}


def to_word(value: int) -> int:
    """Wrap to a signed 16-bit word"""
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


class AssemblyError(Exception):
    pass


def assemble(text: str) -> Tuple[List[tuple], Dict[str, int]]:
    """Two-pass assembly into (program, symbol table)"""
    lines = []
    for raw in text.splitlines():
        code = raw.split("//", 1)[0].strip()
        if code:
            lines.append(code)

    symbols = dict(PREDEFINED)
    labels = set()
    address = 0
    for code in lines:
        if code.startswith("("):
            if not code.endswith(")"):
                raise AssemblyError(f"bad label: {code}")
            name = code[1:-1]
            if name in labels:
                raise AssemblyError(f"duplicate label: {name}")
            labels.add(name)
            symbols[name] = address
        else:
            address += 1

    program: List[tuple] = []
    next_var = 16
    for code in lines:
        if code.startswith("("):
            continue
        if code.startswith("@"):
            sym = code[1:]
            if sym.isdigit():
                value = int(sym)
            else:
                if sym not in symbols:
                    symbols[sym] = next_var
                    next_var += 1
                value = symbols[sym]
            program.append(("A", value))
            continue
        dest, comp, jump = "", code, ""
        if "=" in comp:
            dest, comp = comp.split("=", 1)
        if ";" in comp:
            comp, jump = comp.split(";", 1)
        if comp not in COMP or jump not in JUMPS or not set(dest) <= set("ADM"):
            raise AssemblyError(f"bad instruction: {code}")
        program.append(("C", dest, COMP[comp], JUMPS[jump]))
    return program, symbols


class HackMachine:
    """Runs assembled Hack code against a flat RAM"""

    def __init__(self, asm: str):
        self.program, self.symbols = assemble(asm)
        self.ram = [0] * RAM_SIZE
        self.a = 0
        self.d = 0
        self.pc = 0

    def __getitem__(self, key) -> int:
        if isinstance(key, str):
            return self.ram[self.symbols[key]]
        return self.ram[key]

    def __setitem__(self, key, value: int) -> None:
        if isinstance(key, str):
            key = self.symbols[key]
        self.ram[key] = to_word(value)

    def step(self) -> None:
        ins = self.program[self.pc]
        if ins[0] == "A":
            self.a = ins[1]
            self.pc += 1
            return
        _, dest, comp, jump = ins
        m = self.ram[self.a] if 0 <= self.a < RAM_SIZE else 0
        out = to_word(comp(self.a, self.d, m))
        target = self.a
        if "M" in dest:
            self.ram[self.a] = out
        if "D" in dest:
            self.d = out
        if "A" in dest:
            self.a = out
        self.pc = target if jump(out) else self.pc + 1

    def run(self, until: str = "HALT", max_steps: int = 1_000_000) -> int:
        """Execute until the program counter reaches label `until`"""
        stop: Optional[int] = self.symbols.get(until)
        steps = 0
        while self.pc != stop and self.pc < len(self.program):
            if steps >= max_steps:
                raise RuntimeError(f"no halt after {max_steps} steps (pc={self.pc})")
            self.step()
            steps += 1
        return steps

    def stack(self, base: int = 256) -> List[int]:
        return self.ram[base:self.ram[0]]
