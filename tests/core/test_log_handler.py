"""
Tests for the @Log() Annotation Handler.

Verifies that:
1.  Only an exact ``@Log()`` doc comment triggers the rewrite.
2.  Entry and exit statements are formatted with one placeholder per name.
3.  A leading ``ctx`` parameter is bound via ``with_context`` and not printed.
4.  Methods drop their receiver and are labelled ``Owner.method``.
5.  Synthesis failures abort with the file path and declaration label.
"""

import ast

import pytest

from log_annotation.config import RuntimeConfig
from log_annotation.core.log_handler import LogHandler, entry_log_args, exit_log_args, log_args

SELECTOR = 'logger.with_field("filepath", "testdata/main.py").info'
CTX_SELECTOR = 'logger.with_context(ctx).with_field("filepath", "testdata/main.py").info'


# --- Formatting ---


def test_log_args_placeholders():
  assert log_args("#f start, params: ", ["a", "b"]) == ['"#f start, params: %r, %r"', "a", "b"]


def test_log_args_void():
  assert entry_log_args("f", []) == ['"#f start, params: (void)"']
  assert exit_log_args("f", []) == ['"#f end, results: (void)"']


def test_selector_with_alias_and_level():
  handler = LogHandler(RuntimeConfig(logger_alias="log", level="DEBUG", path_field="src"))
  assert handler.selector("a.py", with_context=True) == 'log.with_context(ctx).with_field("src", "a.py").debug'


# --- Marker Detection ---


@pytest.mark.parametrize(
  "comment",
  [
    "# @Log()",
    "#  @Log()  ",
    "#@Log()",
  ],
)
def test_marker_matches(run_rewrite, comment):
  res = run_rewrite(f"x = 1\n\n\n{comment}\ndef f():\n    pass\n")
  assert res.success
  assert res.modified


@pytest.mark.parametrize(
  "comment",
  [
    "# @Log(foo)",
    "# @log()",
    "# @Log() please",
    "# Logs things\n# @Log()",
    "# Log",
  ],
)
def test_marker_rejects(run_rewrite, comment):
  code = f"x = 1\n\n\n{comment}\ndef f():\n    pass\n"
  res = run_rewrite(code)
  assert res.success
  assert not res.modified
  assert res.code == code


def test_marker_must_touch_definition(run_rewrite):
  res = run_rewrite("x = 1\n\n# @Log()\n\ndef f():\n    pass\n")
  assert not res.modified


def test_marker_on_decorated_function(run_rewrite):
  res = run_rewrite(
    """
    import functools


    # @Log()
    @functools.lru_cache()
    def f(a):
        return a
    """
  )
  assert res.modified
  assert "@functools.lru_cache()\ndef f(a):" in res.code
  assert "# @Log()" not in res.code


# --- Rewriting ---


def test_full_rewrite(run_rewrite):
  res = run_rewrite(
    """
    from typing import Tuple


    # @Log()
    def fn(ctx, a: int, b: str, c: str, d: bool) -> Tuple[int, str, str]:
        return a, b, c
    """
  )

  expected = (
    "from typing import Tuple\n"
    "from log_annotation.runtime import logger\n"
    "\n"
    "\n"
    "def fn(ctx, a: int, b: str, c: str, d: bool) -> Tuple[int, str, str]:\n"
    f'    {CTX_SELECTOR}("#fn start, params: %r, %r, %r, %r", a, b, c, d)\n'
    "    _ret = None\n"
    "    try:\n"
    "        _ret = a, b, c\n"
    "        return _ret\n"
    "    finally:\n"
    "        _0, _1, _2 = _ret if isinstance(_ret, tuple) and len(_ret) == 3 else (_ret, None, None)\n"
    f'        {CTX_SELECTOR}("#fn end, results: %r, %r, %r", _0, _1, _2)\n'
  )
  assert res.success
  assert res.code == expected


def test_void_function(run_rewrite):
  res = run_rewrite(
    """
    # @Log()
    def ping():
        pass
    """
  )

  assert f'{SELECTOR}("#ping start, params: (void)")' in res.code
  assert f'{SELECTOR}("#ping end, results: (void)")' in res.code
  assert "_0" not in res.code
  ast.parse(res.code)


def test_ctx_only_parameter(run_rewrite):
  res = run_rewrite(
    """
    # @Log()
    def handle(ctx) -> None:
        pass
    """
  )

  assert f'{CTX_SELECTOR}("#handle start, params: (void)")' in res.code
  assert f'{CTX_SELECTOR}("#handle end, results: (void)")' in res.code


def test_ctx_not_first_is_a_regular_parameter(run_rewrite):
  res = run_rewrite(
    """
    # @Log()
    def handle(a, ctx):
        pass
    """
  )

  assert "with_context" not in res.code
  assert '"#handle start, params: %r, %r", a, ctx)' in res.code


def test_single_result(run_rewrite):
  res = run_rewrite(
    """
    # @Log()
    def double(x: int) -> int:
        if x < 0:
            return 0
        return x * 2
    """
  )

  assert "    _0 = None\n" in res.code
  assert "_0 = 0" in res.code
  assert "_0 = x * 2" in res.code
  assert res.code.count("return _0") == 2
  assert '"#double end, results: %r", _0)' in res.code


def test_result_names_skip_parameter_names(run_rewrite):
  res = run_rewrite(
    """
    # @Log()
    def f(_0: int) -> int:
        return _0 + 1
    """
  )

  assert "    _1 = None\n" in res.code
  assert "_1 = _0 + 1" in res.code
  assert '"#f start, params: %r", _0)' in res.code
  assert '"#f end, results: %r", _1)' in res.code


def test_result_holder_avoids_parameter_names(run_rewrite):
  res = run_rewrite(
    """
    from typing import Tuple


    # @Log()
    def f(_ret) -> Tuple[int, int]:
        return _ret
    """
  )

  assert "    _ret1 = None\n" in res.code
  assert "_ret1 = _ret\n" in res.code
  assert "return _ret1\n" in res.code


def test_variadic_tuple_is_one_result(run_rewrite):
  res = run_rewrite(
    """
    from typing import Tuple


    # @Log()
    def ids(n) -> Tuple[int, ...]:
        return tuple(range(n))
    """
  )

  assert "_0 = tuple(range(n))" in res.code
  assert "_1" not in res.code


def test_method_label_and_receiver(run_rewrite):
  res = run_rewrite(
    """
    class Foo:
        # @Log()
        def bar(self, ctx, a):
            return a

        # @Log()
        @staticmethod
        def baz(a):
            return a

        # @Log()
        @classmethod
        def qux(cls, a):
            return a
    """
  )

  assert '.info("#Foo.bar start, params: %r", a)' in res.code
  assert "with_context(ctx)" in res.code
  assert '.info("#Foo.baz start, params: %r", a)' in res.code
  assert '.info("#Foo.qux start, params: %r", a)' in res.code
  assert "self)" not in res.code
  assert "cls)" not in res.code
  ast.parse(res.code)


def test_nested_function_is_not_a_method(run_rewrite):
  res = run_rewrite(
    """
    class Foo:
        def bar(self):
            # @Log()
            def inner(x):
                return x
            return inner
    """
  )

  assert '"#inner start, params: %r", x)' in res.code


def test_docstring_stays_first(run_rewrite):
  res = run_rewrite(
    '''
    # @Log()
    def f(a):
        """Docs."""
        return a
    '''
  )

  tree = ast.parse(res.code)
  func = next(n for n in tree.body if isinstance(n, ast.FunctionDef))
  assert ast.get_docstring(func) == "Docs."
  assert isinstance(func.body[1], ast.Expr)
  assert isinstance(func.body[-1], ast.Try)


def test_single_line_suite(run_rewrite):
  res = run_rewrite(
    """
    # @Log()
    def f(a) -> int: return a + 1
    """
  )

  tree = ast.parse(res.code)
  func = next(n for n in tree.body if isinstance(n, ast.FunctionDef))
  assert isinstance(func.body[-1], ast.Try)
  assert "_0 = a + 1" in res.code


def test_star_parameters_in_signature_order(run_rewrite):
  res = run_rewrite(
    """
    # @Log()
    def f(*args, key=None, **kwargs):
        pass
    """
  )

  assert '"#f start, params: %r, %r, %r", args, key, kwargs)' in res.code


def test_rewrite_is_idempotent(run_rewrite):
  first = run_rewrite(
    """
    # @Log()
    def f(a):
        return a
    """
  )
  second = run_rewrite(first.code)

  assert first.modified
  assert not second.modified
  assert second.code == first.code


def test_custom_logger_import(run_rewrite):
  res = run_rewrite(
    """
    # @Log()
    def f():
        pass
    """,
    logger_module="app.logging",
    logger_name="log",
    logger_alias="alog",
  )

  assert "from app.logging import log as alog\n" in res.code
  assert 'alog.with_field("filepath", "testdata/main.py").info(' in res.code


def test_shebang_stays_first(run_rewrite):
  res = run_rewrite("#!/usr/bin/env python\ndef a():\n    pass\n\n\n# @Log()\ndef b():\n    pass\n")

  assert res.modified
  assert res.code.startswith("#!/usr/bin/env python\nfrom log_annotation.runtime import logger\n\ndef a():\n")


def test_shebang_above_annotated_first_function(run_rewrite):
  res = run_rewrite("#!/usr/bin/env python\n\n# @Log()\ndef b():\n    pass\n")

  assert res.code.startswith("#!/usr/bin/env python\n\nfrom log_annotation.runtime import logger\n\ndef b():\n")


# --- Failures ---


def test_synthesis_error(run_rewrite):
  code = "# @Log()\ndef f(a):\n    return a\n"
  res = run_rewrite(code, path="pkg/mod.py", logger_name="bad name")

  assert not res.success
  assert res.code == code
  assert len(res.errors) == 1
  assert "pkg/mod.py" in res.errors[0]
  assert "#f" in res.errors[0]


def test_synthesis_error_reports_method_label(run_rewrite):
  res = run_rewrite(
    """
    class Foo:
        # @Log()
        def bar(self):
            pass
    """,
    logger_name="bad name",
  )

  assert not res.success
  assert "#Foo.bar" in res.errors[0]
