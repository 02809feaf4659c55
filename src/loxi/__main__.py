#!/usr/bin/env python3
"""
CLI for the loxi interpreter.

Usage:
    python -m loxi                      # interactive prompt
    python -m loxi FILE                 # run a script
    python -m loxi FILE --tokens        # also dump the token stream
    python -m loxi FILE --ast           # also print the syntax tree

Exit status follows sysexits: 65 when the script has a compile-time
error, 70 when it fails at run time.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

EXIT_COMPILE_ERROR = 65
EXIT_RUNTIME_ERROR = 70


def dump_tokens(source: str, filename: Optional[str]) -> None:
    """Print one token per line with its location."""
    from .errors import DiagnosticCollector
    from .lexer import Lexer

    for token in Lexer(source, filename, DiagnosticCollector(source=source)).tokenize():
        print(f"{token.location}\t{token}")


def dump_ast(source: str, filename: Optional[str]) -> None:
    """Print the syntax tree of whatever parses."""
    from .errors import DiagnosticCollector
    from .lexer import Lexer
    from .parser import Parser
    from .ast import format_ast

    sink = DiagnosticCollector(source=source)
    tokens = Lexer(source, filename, sink).tokenize()
    statements = Parser(tokens, diagnostics=sink).parse()
    if statements:
        print(format_ast(statements))


def report(session) -> None:
    """Write a run's diagnostics to stderr."""
    if session.diagnostics.diagnostics:
        print(session.diagnostics.format_all(), file=sys.stderr)


def cmd_script(args) -> int:
    """Run a script file."""
    from .runtime import Session

    source_path = Path(args.script)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    source = source_path.read_text(encoding="utf-8")

    if args.tokens:
        dump_tokens(source, str(source_path))
    if args.ast:
        dump_ast(source, str(source_path))

    session = Session(output=print, filename=str(source_path))
    result = session.run(source)
    report(session)

    if result.had_compile_error:
        return EXIT_COMPILE_ERROR
    if result.had_runtime_error:
        return EXIT_RUNTIME_ERROR
    return 0


def cmd_repl(args) -> int:
    """Read-eval-print loop. Names declared on one line stay visible on later ones."""
    from .runtime import Session

    session = Session(output=print)
    while True:
        try:
            line = input("> ")
        except EOFError:
            print()
            return 0
        except KeyboardInterrupt:
            print()
            continue

        line = line.strip()
        if not line:
            continue
        if not line.endswith((";", "}")):
            line += ";"

        if args.tokens:
            dump_tokens(line, None)
        if args.ast:
            dump_ast(line, None)

        session.run(line)
        report(session)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog='loxi',
        description='loxi scripting language interpreter',
    )
    parser.add_argument('script', nargs='?', help='Script to run (omit for a prompt)')
    parser.add_argument('--tokens', action='store_true',
                        help='Print the token stream before running')
    parser.add_argument('--ast', action='store_true',
                        help='Print the syntax tree before running')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: WARNING)')

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(name)s: %(levelname)s: %(message)s')

    if args.script:
        return cmd_script(args)
    return cmd_repl(args)


if __name__ == '__main__':
    sys.exit(main())
