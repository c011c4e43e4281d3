"""
Main Entry Point for the log-annotation CLI.

This module handles argument parsing and dispatches to the rewrite handler in
``log_annotation.cli.handlers.rewrite``.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from log_annotation import __version__
from log_annotation.config import LOG_LEVELS
from log_annotation.cli.handlers.rewrite import handle_rewrite


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(
    prog="log-annotation",
    description="Rewrites functions annotated with a '# @Log()' comment to log their parameters and results.",
  )
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
  parser.add_argument("paths", nargs="+", type=Path, help="Source files or directories to process")
  parser.add_argument(
    "--replace",
    action="store_true",
    default=None,
    help="Overwrite source files in place instead of writing to the output directory (Overrides config)",
  )
  parser.add_argument(
    "--out-dir",
    default=None,
    help="Name of the directory, next to each source file, receiving generated files (default: _gen)",
  )
  parser.add_argument(
    "--level",
    choices=LOG_LEVELS,
    default=None,
    help="Logging method called by the synthesized statements (Overrides config)",
  )
  parser.add_argument(
    "--keep-going",
    action="store_true",
    help="Skip files that fail to rewrite instead of aborting the run",
  )
  parser.add_argument(
    "--dry-run",
    action="store_true",
    help="List files that would be rewritten without writing anything",
  )

  args = parser.parse_args(argv)
  return handle_rewrite(args.paths, args.replace, args.out_dir, args.keep_going, args.dry_run, args.level)


if __name__ == "__main__":
  sys.exit(main())
