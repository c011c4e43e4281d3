"""
Tests for the log-annotation CLI.

Verifies that:
1.  Annotated files are written to the output directory (or in place).
2.  Files without annotations are never written.
3.  A failing file aborts the run unless ``--keep-going`` is given.
4.  Arguments are dispatched to the rewrite handler.
"""

import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from log_annotation.cli.__main__ import main
from log_annotation.cli.handlers.rewrite import destination_for, discover_sources
from log_annotation.config import RuntimeConfig

ANNOTATED = "# @Log()\ndef f(a):\n    return a\n"
PLAIN = "def g(a):\n    return a\n"
BROKEN = "# @Log()\ndef f(:\n    pass\n"


@pytest.fixture
def tree(tmp_path, captured_console):
  """A source tree with one annotated and one plain module."""
  src = tmp_path / "pkg"
  src.mkdir()
  (src / "mod.py").write_text(ANNOTATED, encoding="utf-8")
  (src / "plain.py").write_text(PLAIN, encoding="utf-8")
  return src


def test_writes_to_output_dir(tree):
  assert main([str(tree)]) == 0

  out = tree / "_gen" / "mod.py"
  assert out.exists()
  assert "from log_annotation.runtime import logger" in out.read_text(encoding="utf-8")
  # Sources untouched, plain files not written
  assert (tree / "mod.py").read_text(encoding="utf-8") == ANNOTATED
  assert not (tree / "_gen" / "plain.py").exists()


def test_custom_out_dir(tree):
  assert main([str(tree), "--out-dir", "generated"]) == 0
  assert (tree / "generated" / "mod.py").exists()
  assert not (tree / "_gen").exists()


def test_replace_in_place(tree):
  assert main([str(tree), "--replace"]) == 0

  assert "# @Log()" not in (tree / "mod.py").read_text(encoding="utf-8")
  assert (tree / "plain.py").read_text(encoding="utf-8") == PLAIN
  assert not (tree / "_gen").exists()


def test_single_file(tree):
  assert main([str(tree / "mod.py")]) == 0
  assert (tree / "_gen" / "mod.py").exists()


def test_dry_run(tree, captured_console):
  assert main([str(tree), "--dry-run"]) == 0

  assert not (tree / "_gen").exists()
  assert "Would rewrite" in captured_console.export_text()


@pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")
def test_file_mode_preserved(tree):
  src = tree / "mod.py"
  src.chmod(0o755)

  main([str(tree)])

  assert stat.S_IMODE((tree / "_gen" / "mod.py").stat().st_mode) == 0o755


def test_second_run_skips_generated_files(tree):
  main([str(tree)])
  first = (tree / "_gen" / "mod.py").read_text(encoding="utf-8")

  assert main([str(tree)]) == 0
  assert not (tree / "_gen" / "_gen").exists()
  assert (tree / "_gen" / "mod.py").read_text(encoding="utf-8") == first


def test_missing_input(tmp_path, captured_console):
  assert main([str(tmp_path / "nope")]) == 1
  assert "Input not found" in captured_console.export_text()


def test_failure_aborts_by_default(tree, captured_console):
  (tree / "a_broken.py").write_text(BROKEN, encoding="utf-8")
  (tree / "b_good.py").write_text(ANNOTATED, encoding="utf-8")

  assert main([str(tree)]) == 1

  assert not (tree / "_gen" / "b_good.py").exists()
  output = captured_console.export_text()
  assert "Parse Error" in output
  assert "Annotation Report" in output


def test_keep_going(tree, captured_console):
  (tree / "a_broken.py").write_text(BROKEN, encoding="utf-8")
  (tree / "b_good.py").write_text(ANNOTATED, encoding="utf-8")

  assert main([str(tree), "--keep-going"]) == 1

  assert (tree / "_gen" / "b_good.py").exists()
  assert (tree / "_gen" / "mod.py").exists()
  assert not (tree / "_gen" / "a_broken.py").exists()


def test_fail_fast_from_pyproject(tmp_path, captured_console):
  (tmp_path / "pyproject.toml").write_text("[tool.log_annotation]\nfail_fast = false\n", encoding="utf-8")
  (tmp_path / "a_broken.py").write_text(BROKEN, encoding="utf-8")
  (tmp_path / "b_good.py").write_text(ANNOTATED, encoding="utf-8")

  assert main([str(tmp_path)]) == 1
  assert (tmp_path / "_gen" / "b_good.py").exists()


def test_argument_dispatch():
  with patch("log_annotation.cli.__main__.handle_rewrite", return_value=0) as mock_handle:
    assert main(["src", "--replace", "--keep-going", "--out-dir", "out"]) == 0

  mock_handle.assert_called_once_with([Path("src")], True, "out", True, False, None)


def test_argument_defaults():
  with patch("log_annotation.cli.__main__.handle_rewrite", return_value=0) as mock_handle:
    main(["a.py", "b.py"])

  mock_handle.assert_called_once_with([Path("a.py"), Path("b.py")], None, None, False, False, None)


def test_requires_paths():
  with pytest.raises(SystemExit):
    main([])


def test_discover_sources_skips_output_dir(tmp_path):
  (tmp_path / "a.py").write_text("", encoding="utf-8")
  (tmp_path / "sub").mkdir()
  (tmp_path / "sub" / "b.py").write_text("", encoding="utf-8")
  (tmp_path / "sub" / "_gen").mkdir()
  (tmp_path / "sub" / "_gen" / "b.py").write_text("", encoding="utf-8")
  (tmp_path / "notes.txt").write_text("", encoding="utf-8")

  found = [p.relative_to(tmp_path).as_posix() for p in discover_sources(tmp_path, "_gen")]
  assert found == ["a.py", "sub/b.py"]


def test_destination_for(tmp_path):
  src = tmp_path / "m.py"
  assert destination_for(src, RuntimeConfig()) == tmp_path / "_gen" / "m.py"
  assert destination_for(src, RuntimeConfig(replace=True)) == src


def test_level_flag(tree):
  assert main([str(tree), "--level", "debug"]) == 0
  assert '.debug("#f start, params: %r", a)' in (tree / "_gen" / "mod.py").read_text(encoding="utf-8")


def test_level_flag_rejects_unknown(tree):
  with pytest.raises(SystemExit):
    main([str(tree), "--level", "loud"])
