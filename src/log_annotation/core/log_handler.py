"""
The ``@Log()`` Annotation Handler.

Rewrites a function definition whose doc comment is exactly ``# @Log()``:

.. code-block:: python

    # @Log()
    def fn(ctx, a: int, b: str) -> Tuple[int, str]:
        return a, b

becomes

.. code-block:: python

    def fn(ctx, a: int, b: str) -> Tuple[int, str]:
        logger.with_context(ctx).with_field("filepath", "m.py").info("#fn start, params: %r, %r", a, b)
        _ret = None
        try:
            _ret = a, b
            return _ret
        finally:
            _0, _1 = _ret if isinstance(_ret, tuple) and len(_ret) == 2 else (_ret, None)
            logger.with_context(ctx).with_field("filepath", "m.py").info("#fn end, results: %r, %r", _0, _1)

and registers ``from log_annotation.runtime import logger`` in the module. The
returned object is passed through untouched; a single result is bound to
``_0`` directly.
"""

from typing import List, Optional, Sequence

import libcst as cst

from log_annotation.config import RuntimeConfig
from log_annotation.core.errors import SynthesisError
from log_annotation.core.handlers import AnnotationHandler, NodeKind, RewriteContext
from log_annotation.core.nodes import (
  ReturnCapture,
  assign_default_names,
  build_call,
  build_finalizer,
  build_initializer,
  build_unpack,
  doc_comment,
  expr_statement,
  extract_names,
  has_decorator,
  is_docstring,
  param_fields,
  positional_count,
  quote,
  result_fields,
  strip_doc_comment,
  unique_name,
)

MARKER = "@Log()"
CONTEXT_PARAM = "ctx"
PLACEHOLDER = "%r"
VOID = "(void)"
RESULT_HOLDER = "_ret"


def declaration_label(node: cst.FunctionDef, owner: Optional[str]) -> str:
  """
  Label used in log messages: ``name`` for functions, ``Owner.name`` for methods.
  """
  if owner is None:
    return node.name.value
  return f"{owner}.{node.name.value}"


def log_args(format_prefix: str, names: Sequence[str]) -> List[str]:
  """
  Builds the argument texts of a log call.

  The first argument is the quoted format string with one placeholder per
  name, or the ``(void)`` suffix when there are none; the names follow.

  Args:
      format_prefix: Message prefix (e.g. ``"#fn start, params: "``).
      names: Identifiers to print.

  Returns:
      List[str]: Expression texts, format literal first.
  """
  if not names:
    return [quote(format_prefix + VOID)]

  fmt = format_prefix + ", ".join([PLACEHOLDER] * len(names))
  return [quote(fmt), *names]


def entry_log_args(label: str, names: Sequence[str]) -> List[str]:
  return log_args(f"#{label} start, params: ", names)


def exit_log_args(label: str, names: Sequence[str]) -> List[str]:
  return log_args(f"#{label} end, results: ", names)


def _has_receiver(node: cst.FunctionDef) -> bool:
  return not has_decorator(node, "staticmethod") and positional_count(node.params) > 0


def _body_statements(body: cst.BaseSuite) -> List[cst.BaseStatement]:
  if isinstance(body, cst.IndentedBlock):
    return list(body.body)
  # Single-line suite: ``def f(): return 1``
  return [
    cst.SimpleStatementLine(body=[small.with_changes(semicolon=cst.MaybeSentinel.DEFAULT)]) for small in body.body
  ]


class LogHandler(AnnotationHandler):
  """
  Injects entry and guaranteed exit logging into ``@Log()`` annotated functions.
  """

  kinds = frozenset({NodeKind.FUNCTION})

  def __init__(self, config: Optional[RuntimeConfig] = None):
    self.config = config or RuntimeConfig()

  def selector(self, path: str, with_context: bool) -> str:
    """
    Composes the callee text of the synthesized log calls.

    Args:
        path: File path bound as a structured field.
        with_context: Whether a ``ctx`` parameter is bound to the logger.

    Returns:
        str: e.g. ``logger.with_context(ctx).with_field("filepath", "m.py").info``.
    """
    text = self.config.logger_ref
    if with_context:
      text += f".with_context({CONTEXT_PARAM})"
    text += f".with_field({quote(self.config.path_field)}, {quote(path)})"
    return text + f".{self.config.level}"

  def handle(self, context: RewriteContext) -> Optional[cst.CSTNode]:
    node = context.node
    if not isinstance(node, cst.FunctionDef):
      return None

    text = doc_comment(node)
    if text is None or text.strip() != MARKER:
      return None

    node = strip_doc_comment(node)
    context.add_import(self.config.logger_module, self.config.logger_name, self.config.logger_alias)

    # Every field gets a name before any name is read
    params = param_fields(node.params)
    results = result_fields(node.returns)
    assign_default_names(params)
    bound_names = extract_names(params)
    assign_default_names(results, reserved=bound_names)
    result_names = extract_names(results)
    holder = self._result_holder(bound_names, result_names)
    param_names = bound_names

    if context.owner is not None and _has_receiver(node):
      param_names = param_names[1:]

    with_context = bool(param_names) and param_names[0] == CONTEXT_PARAM
    if with_context:
      param_names = param_names[1:]

    label = declaration_label(node, context.owner)
    selector = self.selector(context.path, with_context)
    try:
      entry_call = build_call(selector, *entry_log_args(label, param_names))
      exit_call = build_call(selector, *exit_log_args(label, result_names))
    except cst.ParserSyntaxError as e:
      raise SynthesisError(context.path, label, str(e)) from e

    return node.with_changes(body=self._splice(node.body, entry_call, exit_call, result_names, holder))

  @staticmethod
  def _result_holder(param_names: Sequence[str], result_names: Sequence[str]) -> Optional[str]:
    """
    Name bound to the returned object: the result name itself for a single
    result, a fresh name for several (spread over the result names on exit).
    """
    if not result_names:
      return None
    if len(result_names) == 1:
      return result_names[0]
    return unique_name(RESULT_HOLDER, {*param_names, *result_names})

  def _splice(
    self,
    body: cst.BaseSuite,
    entry_call: cst.Call,
    exit_call: cst.Call,
    result_names: Sequence[str],
    holder: Optional[str],
  ) -> cst.IndentedBlock:
    """
    Places the entry log first and runs the original body under a finalizer.

    A leading docstring stays first so the function keeps its ``__doc__``.
    Returns bind the returned object to ``holder`` and return it unchanged.
    """
    statements = _body_statements(body)
    head: List[cst.BaseStatement] = []
    if statements and is_docstring(statements[0]):
      head, statements = statements[:1], statements[1:]

    new_body: List[cst.BaseStatement] = [*head, expr_statement(entry_call)]
    finalizer: List[cst.BaseStatement] = [expr_statement(exit_call)]
    if holder is not None:
      new_body.append(build_initializer([holder]))
      statements = list(cst.IndentedBlock(body=statements).visit(ReturnCapture(holder)).body)
      if len(result_names) > 1:
        finalizer.insert(0, build_unpack(result_names, holder))
    new_body.append(build_finalizer(statements, *finalizer))

    if isinstance(body, cst.IndentedBlock):
      return body.with_changes(body=new_body)
    return cst.IndentedBlock(body=new_body, header=body.trailing_whitespace)
