"""
Oberon-07 Front-End - Main Entry Point
Scans and parses one Oberon-07 module and prints its tokens, tree or outline
"""

import sys
import argparse
from pathlib import Path
from typing import List, Optional

from error_handling import OberonErrorHandler, ParseError
from parsing import DEFAULT_MAX_DEPTH, OberonParser, pretty_print_tree
from scanning import scan
from semantics import OberonSemanticsError, create_analyzer, create_debug_analyzer
from utilities import decode_source, make_print_tracer, read_source


VERSION = "0.1.0"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Oberon-07 front-end - scanner and recursive-descent parser',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s Hello.Mod                 # Check that a module parses
  %(prog)s --tokens Hello.Mod        # Show the token list
  %(prog)s --tree Hello.Mod          # Show the parse tree
  %(prog)s --outline Hello.Mod       # Show imports and declared names
  %(prog)s --debug Hello.Mod         # Trace every production attempt
        """
  )

  parser.add_argument(
      'source',
      help='Oberon-07 source file to parse'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Print the token list'
  )

  parser.add_argument(
      '--tree',
      action='store_true',
      help='Print the concrete parse tree'
  )

  parser.add_argument(
      '--outline',
      action='store_true',
      help='Print the module outline (imports and declarations)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Trace scanner and parser progress to stderr (implies --tokens --tree)'
  )

  parser.add_argument(
      '--max-depth',
      type=int,
      default=DEFAULT_MAX_DEPTH,
      help=f'Maximum production nesting depth (default: {DEFAULT_MAX_DEPTH})'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=f'oberon07 v{VERSION}'
  )

  return parser


def process_file(source_path: str, show_tokens: bool = False, show_tree: bool = False,
                 show_outline: bool = False, debug: bool = False,
                 max_depth: int = DEFAULT_MAX_DEPTH) -> int:
  """Scan, parse and outline one file; returns the process exit status"""
  try:
    source = read_source(source_path)
  except FileNotFoundError:
    print(f"Error: Source file '{source_path}' not found")
    print(f"  Hint: Check the file path and make sure the file exists")
    return 1
  except PermissionError:
    print(f"Error: Permission denied reading '{source_path}'")
    print(f"  Hint: Make sure you have read permissions for this file")
    return 1
  except IsADirectoryError:
    print(f"Error: '{source_path}' is a directory")
    return 1

  handler = OberonErrorHandler(decode_source(source), source_path)
  tracer = make_print_tracer() if debug else None
  analyzer = create_debug_analyzer() if debug else create_analyzer()

  if debug:
    print(f"Scanning {source_path}...")
  result = scan(source, tracer)

  if show_tokens or debug:
    print(f"\n{len(result.tokens)} tokens:")
    print("=" * 50)
    for index, token in enumerate(result.tokens):
      print(f"{index:5d}  {token}")

  if result.error is not None:
    print(handler.format(result.error))
    return 1

  try:
    if debug:
      print(f"\nParsing {source_path}...")
    tree = OberonParser(result.tokens, tracer, max_depth).parse()
  except ParseError as e:
    print(handler.format(e))
    return 1

  if show_tree or debug:
    print("\nParse tree:")
    print("=" * 50)
    print(pretty_print_tree(tree))

  try:
    outline = analyzer.analyze_module(tree)
  except OberonSemanticsError as e:
    print(f"Semantic analysis error in '{source_path}': {e}")
    return 1

  if show_outline:
    print("\nOutline:")
    print("=" * 50)
    print(analyzer.format_outline(outline))

  print(f"{source_path}: module {outline['name']} parsed successfully ({len(result.tokens)} tokens)")
  return 0


def main(argv: Optional[List[str]] = None) -> None:
  """Main entry point for the oberon07 command"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  if args.max_depth < 1:
    arg_parser.error("--max-depth must be at least 1")

  if not Path(args.source).exists():
    print(f"Error: Source file '{args.source}' does not exist")
    sys.exit(1)

  status = process_file(
      args.source,
      show_tokens=args.tokens,
      show_tree=args.tree,
      show_outline=args.outline,
      debug=args.debug,
      max_depth=args.max_depth
  )
  if status != 0:
    sys.exit(status)


if __name__ == "__main__":
  main()
