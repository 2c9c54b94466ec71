#!/usr/bin/env python3
"""pyvmt - top-level CLI wrapper for the VM translator

Compatible with Python 3.8+.

Usage examples:
  ./pyvmt.py StackTest.vm                 # writes StackTest.asm
  ./pyvmt.py FibonacciElement/            # writes FibonacciElement/FibonacciElement.asm
  ./pyvmt.py Main.vm Sys.vm -o prog.asm
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from pyvmt.translator import Translator, discover_sources, load_modules


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    ap = argparse.ArgumentParser(prog="pyvmt", description="VM to Hack assembly translator")
    ap.add_argument("source", nargs="+", help="Input .vm file(s) or directories")
    ap.add_argument("-o", dest="output", required=False, help="Output .asm file")
    ap.add_argument("-S", dest="stdout", action="store_true", help="Write assembly to stdout")
    boot = ap.add_mutually_exclusive_group()
    boot.add_argument("--bootstrap", dest="bootstrap", action="store_true", default=None,
                      help="Always emit bootstrap code")
    boot.add_argument("--no-bootstrap", dest="bootstrap", action="store_false", default=None,
                      help="Never emit bootstrap code")
    ap.add_argument("--entry", default=None, help="Entry point called by the bootstrap (default Sys.init)")
    ap.add_argument("--stack-base", type=int, default=None, help="Initial stack pointer (default 256)")
    ap.add_argument("--no-comments", action="store_true", help="Do not annotate output with VM commands")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="Log progress (-vv for debug)")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format="[%(levelname)s] %(message)s",
        )

    translator = Translator(
        args.bootstrap,
        entry_point=args.entry,
        stack_base=args.stack_base,
        annotate=not args.no_comments,
    )

    if args.stdout:
        try:
            files = discover_sources(args.source)
            modules = load_modules(files)
        except (ValueError, OSError) as e:
            print(f"Error: {e}")
            return 1
        result = translator.translate_modules(modules, filenames=files)
        if not result.success:
            for e in result.errors:
                print("Error:", e)
            return 1
        sys.stdout.write(result.assembly)
        return 0

    if len(args.source) > 1 and not args.output:
        print("Error: -o is required when translating multiple inputs")
        return 1

    result = translator.translate_paths(args.source, args.output)
    if not result.success:
        for e in result.errors:
            print("Error:", e)
        return 1
    for w in result.warnings:
        print("Warning:", w)
    print("Done:", result.output_file)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
