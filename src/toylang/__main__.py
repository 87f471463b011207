#!/usr/bin/env python3
"""
CLI for the toylang interpreter.

Usage:
    python -m toylang run FILE.toy [--config FILE.yaml]
    python -m toylang check FILE.toy

Examples:
    # Check that a program parses
    python -m toylang check examples/closures.toy

    # Run a program, resolving imports from its own directory and lib/
    python -m toylang run main.toy --config toylang.yaml
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import InterpreterConfig, load_config
from .errors import ToyError, UncaughtException
from .ast import statement_count


def _load_config(args) -> InterpreterConfig:
    if args.config:
        return load_config(args.config)
    return InterpreterConfig()


def cmd_check(args):
    """Parse a file and report the number of top-level statements."""
    from . import parse

    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    try:
        config = _load_config(args)
        source = source_path.read_text(encoding=config.encoding)
        program = parse(source, str(source_path))
    except (ToyError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"OK: {source_path.name} - {statement_count(program)} statement(s)")
    return 0


def cmd_run(args):
    """Run a file."""
    from . import Interpreter

    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    try:
        config = _load_config(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(level=config.log_level,
                        format="%(levelname)s %(name)s: %(message)s")

    # imports resolve relative to the script first
    script_dir = str(source_path.resolve().parent)
    if script_dir not in config.module_paths:
        config.module_paths.insert(0, script_dir)

    def write(text: str) -> None:
        sys.stdout.write(text)
        sys.stdout.flush()

    try:
        Interpreter(config, output=write).run_file(source_path)
    except UncaughtException:
        # the report was already written to the output sink
        return 1
    except (ToyError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m toylang',
        description='toylang interpreter',
    )

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', help='Check that a file parses')
    check_parser.add_argument('file', help='toylang source file')
    check_parser.add_argument('-c', '--config', metavar='FILE',
                              help='YAML configuration file')

    # run command
    run_parser = subparsers.add_parser('run', help='Run a toylang program')
    run_parser.add_argument('file', help='toylang source file')
    run_parser.add_argument('-c', '--config', metavar='FILE',
                            help='YAML configuration file')

    args = parser.parse_args(argv)

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'run':
        return cmd_run(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
