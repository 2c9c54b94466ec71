"""
Main Translator Driver

Sequences VM modules through the parser and code generator into one
assembly program: bootstrap code first (optional), every module in order,
then the terminating halt loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple
import logging
import os

from pyvmt.codegen import CodeGenError, CodeGenerator, TranslationState
from pyvmt.commands import Function
from pyvmt.parser import Parser, ParserError

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_POINT = "Sys.init"
DEFAULT_STACK_BASE = 256


@dataclass
class TranslationResult:
    """Result of translation"""
    success: bool
    output_file: Optional[str] = None
    errors: List[str] = None
    warnings: List[str] = None
    assembly: Optional[str] = None
    modules: List[str] = None

    def __post_init__(self):
        if self.errors is None:
            self.errors = []
        if self.warnings is None:
            self.warnings = []
        if self.modules is None:
            self.modules = []


class Translator:
    """Main translator class orchestrating parsing and code generation"""

    def __init__(
        self,
        bootstrap: Optional[bool] = None,
        *,
        entry_point: Optional[str] = None,
        stack_base: Optional[int] = None,
        annotate: bool = True,
    ):
        # None means: bootstrap when the entry point's module is among the inputs.
        self.bootstrap = bootstrap
        self.config_errors: List[str] = []
        self.entry_point = entry_point or os.environ.get("PYVMT_ENTRY", DEFAULT_ENTRY_POINT)
        if stack_base is None:
            raw = os.environ.get("PYVMT_STACK_BASE", str(DEFAULT_STACK_BASE))
            try:
                stack_base = int(raw)
            except ValueError:
                self.config_errors.append(f"Invalid PYVMT_STACK_BASE: {raw!r} is not an integer")
                stack_base = DEFAULT_STACK_BASE
        self.stack_base = stack_base
        self.annotate = annotate

    def translate_file(self, source_file: str, output_file: Optional[str] = None) -> TranslationResult:
        """Translate a single .vm file (or a directory of them)."""
        return self.translate_paths([source_file], output_file)

    def translate_paths(self, paths: Sequence[str], output_file: Optional[str] = None) -> TranslationResult:
        """Translate .vm files and directories into one program.

        If output_file is None it is derived from a single input:
        - X.vm -> X.asm
        - dir/ -> dir/dir.asm
        """
        try:
            files = discover_sources(paths)
        except ValueError as e:
            return TranslationResult(success=False, errors=[str(e)])

        if output_file is None:
            if len(paths) != 1:
                return TranslationResult(
                    success=False,
                    errors=["An output file is required when translating multiple inputs"],
                )
            output_file = default_output_path(paths[0])

        try:
            modules = load_modules(files)
        except (OSError, UnicodeDecodeError) as e:
            return TranslationResult(success=False, errors=[f"Failed to read source file: {e}"])

        result = self.translate_modules(modules, filenames=files)
        if not result.success:
            return result

        try:
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(result.assembly)
        except IOError as e:
            return TranslationResult(success=False, errors=[f"Failed to write output file: {e}"])
        logger.info("wrote %s", output_file)
        result.output_file = output_file
        return result

    def translate_code(self, source: str, module_name: str = "Main") -> TranslationResult:
        """Translate the source text of one module"""
        return self.translate_modules([(module_name, source)])

    def translate_modules(
        self,
        modules: Sequence[Tuple[str, str]],
        filenames: Optional[Sequence[str]] = None,
    ) -> TranslationResult:
        """Translate (module_name, source) pairs into one assembly program.

        Translation of a module stops at its first error; the remaining
        modules are still translated so every failing module is reported.
        """
        errors: List[str] = []
        warnings: List[str] = []
        names = [name for name, _ in modules]
        if self.config_errors:
            return TranslationResult(success=False, errors=list(self.config_errors), modules=names)

        gen = CodeGenerator(state=TranslationState(), annotate=self.annotate)
        parts: List[str] = []

        bootstrap = self._wants_bootstrap(names)
        if bootstrap:
            try:
                parts.append(gen.translate_bootstrap(self.entry_point, self.stack_base))
            except CodeGenError as e:
                return TranslationResult(success=False, errors=[f"Bootstrap failed: {e}"])

        defined = set()
        for i, (name, source) in enumerate(modules):
            filename = filenames[i] if filenames else f"{name}.vm"
            logger.info("translating module %s (%s)", name, filename)
            gen.begin_module(name)
            parser = Parser(source, filename)
            count = 0
            try:
                for command in parser:
                    parts.append(gen.translate(command))
                    count += 1
                    if isinstance(command, Function):
                        defined.add(gen.qualify(command.name))
            except ParserError as e:
                errors.append(f"{filename}:{e.line}: {type(e).__name__}: {e.message}: {e.text}")
                continue
            except CodeGenError as e:
                errors.append(f"{filename}:{parser.current_line}: {type(e).__name__}: {e}")
                continue
            if count == 0:
                warnings.append(f"{filename}: module has no commands")

        if bootstrap and self.entry_point not in defined:
            warnings.append(f"Entry point {self.entry_point} is not defined by any module")

        if errors:
            return TranslationResult(success=False, errors=errors, warnings=warnings, modules=names)

        parts.append(gen.translate_halt())
        for w in warnings:
            logger.warning(w)
        return TranslationResult(
            success=True,
            assembly="".join(parts),
            errors=errors,
            warnings=warnings,
            modules=names,
        )

    def _wants_bootstrap(self, module_names: Iterable[str]) -> bool:
        if self.bootstrap is not None:
            return self.bootstrap
        entry_module = self.entry_point.split(".", 1)[0]
        return entry_module in set(module_names)


def module_name_for(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0]


def discover_sources(paths: Sequence[str]) -> List[str]:
    """Expand directories to their .vm files (sorted by name)"""
    files: List[str] = []
    for p in paths:
        if os.path.isdir(p):
            found = sorted(
                os.path.join(p, n) for n in os.listdir(p)
                if n.endswith(".vm") and os.path.isfile(os.path.join(p, n))
            )
            if not found:
                raise ValueError(f"No .vm files found in directory: {p}")
            files.extend(found)
        elif os.path.isfile(p):
            if not p.endswith(".vm"):
                raise ValueError(f"Not a .vm file: {p}")
            files.append(p)
        else:
            raise ValueError(f"No such file or directory: {p}")
    return files


def default_output_path(path: str) -> str:
    if os.path.isdir(path):
        d = os.path.abspath(path)
        return os.path.join(d, os.path.basename(d) + ".asm")
    return os.path.splitext(path)[0] + ".asm"


def load_modules(files: Sequence[str]) -> List[Tuple[str, str]]:
    """Read each file as a (module_name, source) pair"""
    modules: List[Tuple[str, str]] = []
    for path in files:
        with open(path, "r", encoding="utf-8") as f:
            modules.append((module_name_for(path), f.read()))
    return modules
