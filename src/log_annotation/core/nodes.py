"""
Node Construction Utilities.

Stateless helpers used by annotation handlers to inspect function definitions
and to synthesize new LibCST nodes:

1.  **Fields**: Flattening a signature (parameters) and a return annotation
    (results) into ordered ``Field`` records, assigning ``_0, _1, ...`` to
    anonymous ones and extracting their names.
2.  **Doc Comments**: Reading and stripping the ``#`` comment block directly
    above a definition.
3.  **Synthesis**: Building a call from a textual selector and wrapping a body
    in a ``try/finally`` finalizer.
"""

import json
from dataclasses import dataclass, field
from typing import Collection, List, Optional, Sequence, Tuple, Union

import libcst as cst

TUPLE_NAMES = {"Tuple", "tuple"}


@dataclass
class Field:
  """
  A parameter or result slot.

  Attributes:
      names (List[str]): Zero, one or many names. A field without names is anonymous.
      annotation (Optional[cst.BaseExpression]): The declared type, if any.
  """

  names: List[str] = field(default_factory=list)
  annotation: Optional[cst.BaseExpression] = None

  @property
  def is_anonymous(self) -> bool:
    return not self.names


def assign_default_names(fields: Sequence[Field], reserved: Collection[str] = ()) -> bool:
  """
  Gives every anonymous field a default name.

  Default names are ``_0``, ``_1``, ... counting only the fields that had no
  name, in declared order. Numbering restarts for each call. Numbers whose
  name is in ``reserved`` (e.g. a parameter called ``_0``) are skipped.

  Args:
      fields: The fields to update in place.
      reserved: Names already bound in the enclosing scope.

  Returns:
      bool: True if at least one name was assigned.
  """
  index = 0
  assigned = False
  for f in fields:
    if f.is_anonymous:
      while f"_{index}" in reserved:
        index += 1
      f.names = [f"_{index}"]
      index += 1
      assigned = True
  return assigned


def unique_name(base: str, taken: Collection[str]) -> str:
  """Returns ``base``, or ``base`` with the smallest numeric suffix not in ``taken``."""
  name = base
  suffix = 1
  while name in taken:
    name = f"{base}{suffix}"
    suffix += 1
  return name


def extract_names(fields: Sequence[Field]) -> List[str]:
  """
  Flattens the names of all fields in declared order.

  A field holding several names contributes all of them, so
  ``(a, b: int, c: str)`` modelled as ``[a], [b, c]`` yields ``["a", "b", "c"]``.
  """
  names: List[str] = []
  for f in fields:
    names.extend(f.names)
  return names


def param_fields(params: cst.Parameters) -> List[Field]:
  """
  Builds one field per named parameter.

  Order follows the signature: positional-only, regular, ``*args``,
  keyword-only, ``**kwargs``. The bare ``*`` separator is not a field.

  Args:
      params: The LibCST parameter list.

  Returns:
      List[Field]: Ordered parameter fields.
  """
  ordered: List[cst.Param] = [*params.posonly_params, *params.params]
  if isinstance(params.star_arg, cst.Param):
    ordered.append(params.star_arg)
  ordered.extend(params.kwonly_params)
  if params.star_kwarg is not None:
    ordered.append(params.star_kwarg)

  return [Field([p.name.value], p.annotation.annotation if p.annotation else None) for p in ordered]


def positional_count(params: cst.Parameters) -> int:
  """Number of parameters that can receive the implicit receiver (``self``/``cls``)."""
  return len(params.posonly_params) + len(params.params)


def result_fields(returns: Optional[cst.Annotation]) -> List[Field]:
  """
  Builds the anonymous result fields described by a return annotation.

  - No annotation, or ``None``: no results.
  - ``Tuple[A, B]`` / ``tuple[A, B]``: one field per element.
  - ``Tuple[A, ...]``: a single field (variadic tuple).
  - Anything else: a single field.

  Args:
      returns: The return annotation of a function definition.

  Returns:
      List[Field]: Ordered, unnamed result fields.
  """
  if returns is None:
    return []

  expr = returns.annotation
  if isinstance(expr, cst.Name) and expr.value == "None":
    return []

  if isinstance(expr, cst.Subscript) and tail_name(expr.value) in TUPLE_NAMES:
    elements = [el.slice.value for el in expr.slice if isinstance(el.slice, cst.Index)]
    if any(isinstance(e, cst.Ellipsis) for e in elements):
      return [Field([], expr)]
    # Tuple[()] is the empty tuple
    if len(elements) == 1 and isinstance(elements[0], cst.Tuple) and not elements[0].elements:
      return []
    return [Field([], e) for e in elements]

  return [Field([], expr)]


def tail_name(node: cst.BaseExpression) -> str:
  """Returns the last identifier of a ``Name`` or dotted ``Attribute`` (``typing.Tuple`` -> ``Tuple``)."""
  if isinstance(node, cst.Name):
    return node.value
  if isinstance(node, cst.Attribute):
    return node.attr.value
  return ""


def dotted_name(node: Optional[cst.BaseExpression]) -> str:
  """
  Reconstructs a dotted path from a ``Name``/``Attribute`` chain.

  Args:
      node: The expression (e.g. ``Attribute(Name('a'), Name('b'))``).

  Returns:
      str: The path (e.g. ``"a.b"``), or an empty string for other nodes.
  """
  if isinstance(node, cst.Name):
    return node.value
  if isinstance(node, cst.Attribute):
    base = dotted_name(node.value)
    return f"{base}.{node.attr.value}" if base else ""
  return ""


def create_dotted_name(name_str: str) -> cst.BaseExpression:
  """
  Creates a ``Name``/``Attribute`` chain for a dotted path string.

  Args:
      name_str (str): Dot-separated path (e.g. "log_annotation.runtime").

  Returns:
      cst.BaseExpression: The constructed node.
  """
  parts = name_str.split(".")
  node: cst.BaseExpression = cst.Name(parts[0])
  for part in parts[1:]:
    node = cst.Attribute(value=node, attr=cst.Name(part))
  return node


# --- Doc Comments ---


def _doc_comment_start(lines: Sequence[cst.EmptyLine]) -> int:
  start = len(lines)
  while start > 0 and lines[start - 1].comment is not None:
    start -= 1
  return start


def _comment_text(comment: str) -> str:
  text = comment[1:]
  return text[1:] if text.startswith(" ") else text


def doc_comment(node: cst.FunctionDef) -> Optional[str]:
  """
  Returns the text of the comment block directly above a definition.

  Only the contiguous run of comment lines touching the definition (or its
  first decorator) counts; a blank line ends the block. Comment markers and a
  single following space are removed from each line, lines are joined with
  newlines.

  Args:
      node: The function definition.

  Returns:
      Optional[str]: The comment text, or None when there is no such block.
  """
  lines = node.leading_lines
  start = _doc_comment_start(lines)
  if start == len(lines):
    return None
  return "\n".join(_comment_text(line.comment.value) for line in lines[start:])


def strip_doc_comment(node: cst.FunctionDef) -> cst.FunctionDef:
  """Removes the whole doc comment block, keeping any blank lines above it."""
  lines = node.leading_lines
  return node.with_changes(leading_lines=lines[: _doc_comment_start(lines)])


def attach_header_comments(module: cst.Module) -> cst.Module:
  """
  Gives the first statement back the comment block that touches it.

  The parser stores every line above the first statement in ``Module.header``,
  so a doc comment on the first definition of a file would otherwise be
  invisible. Only the comment run directly above the statement moves; the
  printed source is identical.

  Args:
      module: A freshly parsed module.

  Returns:
      cst.Module: The module with the adjacent comments owned by its first statement.
  """
  if not module.body:
    return module

  header = module.header
  start = _doc_comment_start(header)
  if start == len(header):
    return module

  first = module.body[0]
  first = first.with_changes(leading_lines=[*header[start:], *first.leading_lines])
  return module.with_changes(header=header[:start], body=[first, *module.body[1:]])


def is_docstring(node: cst.CSTNode) -> bool:
  """
  Determines if a statement is a bare string expression (a docstring when first in a body).
  """
  if isinstance(node, cst.SimpleStatementLine):
    if len(node.body) == 1 and isinstance(node.body[0], cst.Expr):
      return isinstance(node.body[0].value, (cst.SimpleString, cst.ConcatenatedString))
  return False


def has_decorator(node: cst.FunctionDef, name: str) -> bool:
  """True if ``node`` is decorated with ``@name`` or ``@<module>.name``."""
  return any(tail_name(d.decorator) == name for d in node.decorators)


# --- Synthesis ---


def quote(text: str) -> str:
  """Renders ``text`` as a double-quoted Python string literal."""
  return json.dumps(text, ensure_ascii=False)


def build_call(selector: str, *args: str) -> cst.Call:
  """
  Produces a call expression from a textual selector.

  Example:
      ``build_call("logger.with_context(ctx).info", '"#fn"', "a")`` yields
      ``logger.with_context(ctx).info("#fn", a)``.

  Args:
      selector: Expression text of the callee.
      *args: Expression text of each positional argument (bare identifiers or literals).

  Returns:
      cst.Call: The call node.

  Raises:
      libcst.ParserSyntaxError: If the selector or an argument is not a valid expression.
  """
  func = cst.parse_expression(selector)
  return cst.Call(func=func, args=[cst.Arg(value=cst.parse_expression(arg)) for arg in args])


def expr_statement(expr: cst.BaseExpression) -> cst.SimpleStatementLine:
  return cst.SimpleStatementLine(body=[cst.Expr(value=expr)])


def build_finalizer(body: Sequence[cst.BaseStatement], *statements: cst.BaseStatement) -> cst.Try:
  """
  Wraps ``body`` so that ``statements`` run on every exit path.

  The result is ``try: <body> finally: <statements>``, which executes the
  finalizer after a normal fall-through, an early ``return`` or a raised
  exception.

  Args:
      body: Statements to guard. An empty body becomes ``pass``.
      *statements: Finalizer statements, executed in order.

  Returns:
      cst.Try: The guarded statement.
  """
  guarded = list(body) or [cst.SimpleStatementLine(body=[cst.Pass()])]
  return cst.Try(
    body=cst.IndentedBlock(body=guarded),
    finalbody=cst.Finally(body=cst.IndentedBlock(body=list(statements))),
  )


def names_target(names: Sequence[str]) -> cst.BaseExpression:
  """A ``Name`` for one name, otherwise an unparenthesized tuple (``_0, _1``)."""
  if len(names) == 1:
    return cst.Name(names[0])
  return cst.Tuple(elements=[cst.Element(value=cst.Name(n)) for n in names], lpar=[], rpar=[])


def build_unpack(names: Sequence[str], holder: str) -> cst.SimpleStatementLine:
  """
  Spreads the value held by ``holder`` over ``names`` without touching it.

  Produces ``_0, _1 = _ret if isinstance(_ret, tuple) and len(_ret) == 2 else (_ret, None)``.
  A tuple of the expected length (subclasses included) is unpacked; any other
  value, including an iterator or a tuple of another length, lands in the first
  name and the others are ``None``. Nothing is iterated, so the returned object
  is never consumed.
  """
  fill = ", ".join([holder] + ["None"] * (len(names) - 1))
  value = cst.parse_expression(
    f"{holder} if isinstance({holder}, tuple) and len({holder}) == {len(names)} else ({fill})"
  )
  assign = cst.Assign(targets=[cst.AssignTarget(target=names_target(names))], value=value)
  return cst.SimpleStatementLine(body=[assign])


def build_initializer(names: Sequence[str], value: str = "None") -> cst.SimpleStatementLine:
  """Produces ``_0 = _1 = None`` binding every name to ``value``."""
  return cst.SimpleStatementLine(
    body=[cst.Assign(targets=[cst.AssignTarget(target=cst.Name(n)) for n in names], value=cst.Name(value))]
  )


class ReturnCapture(cst.CSTTransformer):
  """
  Rewrites ``return <expr>`` into ``<target> = <expr>`` followed by ``return <target>``.

  The returned object is bound once and returned as is. Only returns
  belonging to the visited body are touched; nested functions, lambdas and
  classes are skipped. Bare ``return`` statements are kept.
  """

  def __init__(self, target: str):
    super().__init__()
    self.target = target

  def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
    return False

  def visit_Lambda(self, node: cst.Lambda) -> bool:
    return False

  def visit_ClassDef(self, node: cst.ClassDef) -> bool:
    return False

  def _capture(self, ret: cst.Return) -> Tuple[cst.Assign, cst.Return]:
    assign = cst.Assign(targets=[cst.AssignTarget(target=cst.Name(self.target))], value=ret.value)
    return assign, ret.with_changes(value=cst.Name(self.target), whitespace_after_return=cst.SimpleWhitespace(" "))

  def _capture_all(self, body: Sequence[cst.BaseSmallStatement]) -> List[cst.BaseSmallStatement]:
    captured: List[cst.BaseSmallStatement] = []
    for small in body:
      if isinstance(small, cst.Return) and small.value is not None:
        captured.extend(self._capture(small))
      else:
        captured.append(small)
    return captured

  def leave_SimpleStatementLine(
    self, original_node: cst.SimpleStatementLine, updated_node: cst.SimpleStatementLine
  ) -> Union[cst.SimpleStatementLine, cst.FlattenSentinel]:
    body = updated_node.body
    if len(body) == 1 and isinstance(body[0], cst.Return) and body[0].value is not None:
      assign, ret = self._capture(body[0])
      return cst.FlattenSentinel(
        [
          cst.SimpleStatementLine(body=[assign], leading_lines=updated_node.leading_lines),
          updated_node.with_changes(body=[ret], leading_lines=[]),
        ]
      )
    return updated_node.with_changes(body=self._capture_all(body))

  def leave_SimpleStatementSuite(
    self, original_node: cst.SimpleStatementSuite, updated_node: cst.SimpleStatementSuite
  ) -> cst.SimpleStatementSuite:
    return updated_node.with_changes(body=self._capture_all(updated_node.body))
