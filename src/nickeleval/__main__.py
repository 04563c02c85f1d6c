#!/usr/bin/env python3
"""
CLI for evaluating Nickel code.

Usage:
    python -m nickeleval eval EXPR [--backend native|process]
    python -m nickeleval file FILE.ncl [--backend native|process]
    python -m nickeleval export FILE.ncl [--format json|yaml|toml|raw|binary]
    python -m nickeleval build CRATE_DIR [--dest DIR]

Examples:
    # Evaluate an expression with the nickel CLI
    python -m nickeleval eval '{ a = 1, b = [1, 2.5] }'

    # Evaluate a file through the embedded library (keeps ints and floats apart)
    python -m nickeleval file config.ncl --backend native

    # Export a file as YAML
    python -m nickeleval export config.ncl --format yaml
"""

import argparse
import json
import logging
import sys

from .config import get_settings


def _evaluator():
    from .gateway import Evaluator
    return Evaluator()


def _print_value(value) -> None:
    from .values import to_plain
    print(json.dumps(to_plain(value), indent=2, ensure_ascii=False))


def cmd_eval(args):
    """Evaluate an expression."""
    evaluator = _evaluator()
    if args.backend == 'native':
        value = evaluator.evaluate_native(args.expr)
    else:
        value = evaluator.evaluate(args.expr)
    _print_value(value)
    return 0


def cmd_file(args):
    """Evaluate a file."""
    evaluator = _evaluator()
    if args.backend == 'native':
        value = evaluator.evaluate_file_native(args.file)
    else:
        value = evaluator.evaluate_file(args.file)
    _print_value(value)
    return 0


def cmd_export(args):
    """Export a file in the requested format."""
    output = _evaluator().export_file(args.file, args.format)
    if isinstance(output, bytes):
        sys.stdout.buffer.write(output)
    else:
        sys.stdout.write(output)
    return 0


def cmd_build(args):
    """Build the native library from its crate."""
    from .build import build_native_library

    if not (args.yes or get_settings().build_ffi):
        print("Error: native build disabled (pass --yes or set NICKELEVAL_BUILD_FFI=true)",
              file=sys.stderr)
        return 1
    target = build_native_library(args.crate, args.dest)
    if target is None:
        print("Error: native build failed (see log)", file=sys.stderr)
        return 1
    print(f"Built: {target}")
    return 0


def main(argv=None):
    from .errors import NickelError
    from .formats import VALID_FORMATS

    parser = argparse.ArgumentParser(
        prog='python -m nickeleval',
        description='Evaluate Nickel configuration code',
    )
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase log verbosity (repeatable)')

    subparsers = parser.add_subparsers(dest='action', required=True)

    eval_parser = subparsers.add_parser('eval', help='Evaluate an expression')
    eval_parser.add_argument('expr', help='Nickel source text')
    eval_parser.add_argument('--backend', choices=('native', 'process'), default='process')

    file_parser = subparsers.add_parser('file', help='Evaluate a Nickel file')
    file_parser.add_argument('file', help='Nickel source file')
    file_parser.add_argument('--backend', choices=('native', 'process'), default='process')

    export_parser = subparsers.add_parser('export', help='Export a Nickel file')
    export_parser.add_argument('file', help='Nickel source file')
    export_parser.add_argument('-f', '--format', default='json', metavar='FORMAT',
                               help=f"Output format ({', '.join(VALID_FORMATS)})")

    build_parser = subparsers.add_parser('build', help='Build the native library with cargo')
    build_parser.add_argument('crate', help='Path to the Rust crate')
    build_parser.add_argument('--dest', help='Install directory (default: package _lib/)')
    build_parser.add_argument('-y', '--yes', action='store_true',
                              help='Allow invoking cargo')

    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    handlers = {
        'eval': cmd_eval,
        'file': cmd_file,
        'export': cmd_export,
        'build': cmd_build,
    }
    try:
        return handlers[args.action](args)
    except (NickelError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
