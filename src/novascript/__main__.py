#!/usr/bin/env python3
"""
CLI for the NovaScript interpreter.

Usage:
    python -m novascript run FILE [--config YAML] [-D NAME=VALUE ...] [-v]
    python -m novascript check FILE [--json]
    python -m novascript tokens FILE
    python -m novascript ast FILE

Examples:
    # Run the bundled sample
    python -m novascript run examples/main.nova

    # Seed globals from the command line
    python -m novascript run script.nova -D width=30 -D name=box

    # Check syntax only, with machine-readable diagnostics
    python -m novascript check script.nova --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, List


def parse_param(param_str: str) -> tuple:
    """Parse a parameter string like 'name=value' into (name, typed_value)."""
    if '=' not in param_str:
        raise ValueError(f"Invalid parameter format: {param_str} (expected name=value)")

    from .tokens import KEYWORDS, BOOLEANS

    name, value_str = param_str.split('=', 1)
    name = name.strip()
    value_str = value_str.strip()

    # A reserved word never lexes as an identifier, so no script could read it
    if name in KEYWORDS or name in BOOLEANS:
        raise ValueError(f"Invalid parameter name: {name} is a reserved word")

    # Try to parse as bool, number, or string
    if value_str.lower() == 'true':
        return (name, True)
    elif value_str.lower() == 'false':
        return (name, False)

    try:
        return (name, float(value_str))
    except ValueError:
        pass

    # Strip quotes if present
    if (value_str.startswith('"') and value_str.endswith('"')) or \
       (value_str.startswith("'") and value_str.endswith("'")):
        value_str = value_str[1:-1]

    return (name, value_str)


def _read_source(path_str: str) -> Optional[str]:
    source_path = Path(path_str)
    if not source_path.is_file():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text(encoding="utf-8")


def cmd_check(args):
    """Lex and parse a script without running it."""
    from . import tokenize, parse, NovaError, DiagnosticCollector

    source = _read_source(args.file)
    if source is None:
        return 1

    collector = DiagnosticCollector()
    program = None
    try:
        program = parse(tokenize(source, args.file), args.file, source)
    except NovaError as e:
        collector.add_error(e)

    if args.json:
        print(json.dumps(collector.to_json(), indent=2))
        return 1 if collector.has_errors else 0

    if collector.has_errors:
        print(collector.format_all(), file=sys.stderr)
        return 1

    name = Path(args.file).name
    print(f"OK: {name} - {len(program.statements)} statement(s), "
          f"{len(program.functions)} function(s), {len(program.macros)} macro(s)")
    return 0


def cmd_tokens(args):
    """Print the token stream of a script."""
    from . import Lexer, NovaError

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        for token in Lexer(source, args.file):
            start = token.span.start
            print(f"{start.line:>4}:{start.column:<4} {token.type.name:<10} {token.lexeme}")
    except NovaError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


def cmd_ast(args):
    """Print the AST of a script."""
    from . import tokenize, parse, format_ast, NovaError

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        program = parse(tokenize(source, args.file), args.file, source)
    except NovaError as e:
        print(e, file=sys.stderr)
        return 1

    print(format_ast(program))
    return 0


def cmd_run(args):
    """Run a script with the default bindings."""
    from . import interpret, load_config, ConfigError

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.logging_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    source = _read_source(args.file)
    if source is None:
        return 1

    bindings: Dict[str, Any] = {}
    for param_str in args.define or []:
        try:
            name, value = parse_param(param_str)
            bindings[name] = value
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    result = interpret(source, bindings, config=config, filename=args.file)
    if not result.success:
        print(result.format_error(config.show_source), file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        prog='python -m novascript',
        description='NovaScript interpreter',
    )

    subparsers = parser.add_subparsers(dest='action', required=True)

    # run command
    run_parser = subparsers.add_parser('run', help='Run a script')
    run_parser.add_argument('file', help='NovaScript source file')
    run_parser.add_argument('-c', '--config', metavar='YAML',
                            help='Configuration file (default: $NOVASCRIPT_CONFIG)')
    run_parser.add_argument('-D', '--define', action='append', metavar='NAME=VALUE',
                            help='Bind a global before the script runs (can be repeated)')
    run_parser.add_argument('-v', '--verbose', action='store_true',
                            help='Log at DEBUG level')

    # check command
    check_parser = subparsers.add_parser('check', help='Check a script for syntax errors')
    check_parser.add_argument('file', help='NovaScript source file')
    check_parser.add_argument('--json', action='store_true',
                              help='Emit diagnostics as JSON')

    # tokens command
    tokens_parser = subparsers.add_parser('tokens', help='Print the token stream')
    tokens_parser.add_argument('file', help='NovaScript source file')

    # ast command
    ast_parser = subparsers.add_parser('ast', help='Print the syntax tree')
    ast_parser.add_argument('file', help='NovaScript source file')

    args = parser.parse_args(argv)

    if args.action == 'run':
        return cmd_run(args)
    elif args.action == 'check':
        return cmd_check(args)
    elif args.action == 'tokens':
        return cmd_tokens(args)
    elif args.action == 'ast':
        return cmd_ast(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
