"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Console capture so CLI tests can inspect tool output.
- A helper running the engine on dedented source text.
"""

import sys
import textwrap
from pathlib import Path

import pytest
from rich.console import Console

# Add src to path so we can import 'log_annotation' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from log_annotation.config import RuntimeConfig  # noqa: E402
from log_annotation.core.engine import AnnotationEngine  # noqa: E402
from log_annotation.utils.console import reset_console, set_console  # noqa: E402


@pytest.fixture
def captured_console():
  """
  Redirects tool output to an in-memory console.

  Yields:
      Console: The recording console. Use ``export_text()`` to read it.
  """
  recorder = Console(record=True, width=200, force_terminal=False)
  set_console(recorder)
  yield recorder
  reset_console()


@pytest.fixture
def run_rewrite():
  """
  Returns a function rewriting dedented source and returning the result.

  Usage:
      res = run_rewrite(code, path="m.py", level="debug")
  """

  def _run(code: str, path: str = "testdata/main.py", **config):
    engine = AnnotationEngine(RuntimeConfig(**config))
    return engine.run(textwrap.dedent(code).lstrip("\n"), path)

  return _run
