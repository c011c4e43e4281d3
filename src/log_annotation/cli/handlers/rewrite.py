"""
Rewrite Command Handler.

Implements the default ``log-annotation`` command:
1. Configuration loading (pyproject.toml + CLI overrides).
2. Discovery of ``.py`` files under the given paths.
3. Annotation rewriting via the Engine.
4. Output writing, in place or into a sibling output directory.
"""

import shutil
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from rich.markup import escape
from rich.table import Table

from log_annotation.config import RuntimeConfig
from log_annotation.core.engine import AnnotationEngine, RewriteResult
from log_annotation.utils.console import console, log_error, log_info, log_success, log_warning


def handle_rewrite(
  paths: List[Path],
  replace: Optional[bool] = None,
  out_dir: Optional[str] = None,
  keep_going: bool = False,
  dry_run: bool = False,
  level: Optional[str] = None,
) -> int:
  """
  Rewrites every annotated file found under ``paths``.

  Files without annotations are never written. A file that fails to parse or
  to rewrite is not written either; by default the whole run stops there,
  with ``keep_going`` the file is skipped and the run continues.

  Args:
      paths: Source files or directories.
      replace: Overwrite sources in place (overrides config).
      out_dir: Name of the sibling output directory (overrides config).
      keep_going: Skip failing files instead of aborting.
      dry_run: Report files that would change without writing them.
      level: Logging method of the synthesized statements (overrides config).

  Returns:
      int: Exit code (0 for success, 1 if any file failed).
  """
  missing = [p for p in paths if not p.exists()]
  if missing:
    for p in missing:
      log_error(f"Input not found: {escape(str(p))}")
    return 1

  first = paths[0]
  config = RuntimeConfig.load(
    replace=replace,
    output_dir=out_dir,
    fail_fast=False if keep_going else None,
    level=level,
    search_path=first if first.is_dir() else first.parent,
  )
  engine = AnnotationEngine(config)
  results: Dict[str, RewriteResult] = {}

  for root in paths:
    files = list(discover_sources(root, config.output_dir))
    if not files:
      log_warning(f"No .py files found in {escape(str(root))}")
      continue

    for src_file in files:
      result = _rewrite_single_file(src_file, engine, config, dry_run)
      results[str(src_file)] = result
      if not result.success and config.fail_fast:
        log_error("Aborting run (use --keep-going to skip failing files).")
        _print_batch_summary(results)
        return 1

  _print_batch_summary(results)
  return 1 if any(not r.success for r in results.values()) else 0


def discover_sources(root: Path, output_dir: str) -> Iterator[Path]:
  """
  Yields the Python files to process under ``root``.

  Files inside a generated output directory are skipped so a second run does
  not pick up its own output.

  Args:
      root: A file or a directory.
      output_dir: Name of the generated output directory.

  Yields:
      Path: Source files, sorted for a stable processing order.
  """
  if root.is_file():
    if root.suffix == ".py":
      yield root
    return

  for path in sorted(root.rglob("*.py")):
    if output_dir in path.relative_to(root).parts[:-1]:
      continue
    yield path


def destination_for(src_file: Path, config: RuntimeConfig) -> Path:
  """
  Where the rewritten ``src_file`` is written.

  Returns:
      Path: ``src_file`` itself when replacing, else ``<dir>/<output_dir>/<name>``.
  """
  if config.replace:
    return src_file
  return src_file.parent / config.output_dir / src_file.name


def _rewrite_single_file(
  src_file: Path,
  engine: AnnotationEngine,
  config: RuntimeConfig,
  dry_run: bool,
) -> RewriteResult:
  """
  Rewrites one file and writes the output if anything changed.

  Args:
      src_file: Source file path.
      engine: Configured engine.
      config: Runtime configuration (output placement).
      dry_run: Skip writing.

  Returns:
      RewriteResult: Result object containing status and code.
  """
  try:
    code = src_file.read_text(encoding="utf-8")
  except (OSError, UnicodeDecodeError) as e:
    log_error(f"Failed to read {escape(str(src_file))}: {escape(str(e))}")
    return RewriteResult(success=False, errors=[str(e)])

  result = engine.run(code, str(src_file))
  if not result.success:
    for err in result.errors:
      log_error(escape(err))
    return result

  if not result.modified:
    return result

  dest = destination_for(src_file, config)
  if dry_run:
    log_info(f"Would rewrite [path]{escape(str(src_file))}[/path]")
    return result

  try:
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(result.code, encoding="utf-8")
    shutil.copymode(src_file, dest)
  except OSError as e:
    log_error(f"Failed to write {escape(str(dest))}: {escape(str(e))}")
    return RewriteResult(code=result.code, modified=True, success=False, errors=[str(e)])

  log_success(f"Rewrote: [path]{escape(str(src_file))}[/path] -> [path]{escape(str(dest))}[/path]")
  return result


def _print_batch_summary(results: Dict[str, RewriteResult]) -> None:
  """
  Renders a summary of the batch to the console.

  Args:
      results: Dictionary mapping file paths to rewrite results.
  """
  total = len(results)
  rewritten = sum(1 for r in results.values() if r.success and r.modified)
  failures = sum(1 for r in results.values() if not r.success)

  if failures == 0:
    log_success(f"Batch Complete: {rewritten}/{total} files rewritten.")
    return

  table = Table(title="Annotation Report")
  table.add_column("File", style="cyan")
  table.add_column("Status", justify="center")
  table.add_column("Issues", style="red")

  for filename, res in results.items():
    if res.success:
      continue
    issues = "; ".join(res.errors) if res.errors else "Unknown Error"
    table.add_row(escape(filename), "❌ Failed", escape(issues))

  console.print(table)
  console.print(f"\n[bold]Summary:[/bold] {rewritten} Rewritten, {failures} Failed, {total} Scanned.")
