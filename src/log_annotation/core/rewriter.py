"""
Rewrite Driver.

Walks every node of one parsed source unit, dispatches the nodes to the
registered annotation handlers and reports whether anything changed.

1.  **SourceUnit**: The parsed file (LibCST module) and its import table. The
    driver holds it exclusively for the duration of ``overwrite`` and replaces
    ``unit.module`` with the rewritten tree.
2.  **AnnotationRewriter**: The LibCST transformer. Each node is visited once;
    handlers are dispatched when the node is left, so they receive the node
    with its children already rewritten. The walk never stops early.
3.  **Overwriter**: Runs the transformer, injects the imports handlers asked
    for and returns the aggregate "modified" flag. The first ``SynthesisError``
    aborts the file and leaves the unit untouched.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import libcst as cst

from log_annotation.config import RuntimeConfig
from log_annotation.core.errors import AnnotationError
from log_annotation.core.handlers import HandlerRegistry, NodeKind, RewriteContext, classify
from log_annotation.core.imports import ImportTable
from log_annotation.core.log_handler import LogHandler
from log_annotation.core.nodes import attach_header_comments

logger = logging.getLogger(__name__)


@dataclass
class SourceUnit:
  """
  One parsed source file.

  Attributes:
      path (str): Path of the file (as discovered by the caller).
      module (cst.Module): The syntax tree. Replaced by ``Overwriter.overwrite``.
      imports (ImportTable): Module-level imports, seeded from ``module``.
  """

  path: str
  module: cst.Module
  imports: ImportTable = field(init=False)

  def __post_init__(self) -> None:
    self.module = attach_header_comments(self.module)
    self.imports = ImportTable(self.module)

  @classmethod
  def parse(cls, code: str, path: str) -> "SourceUnit":
    """
    Parses source text into a unit.

    Raises:
        libcst.ParserSyntaxError: If the code is not valid Python.
    """
    return cls(path=path, module=cst.parse_module(code))

  @property
  def code(self) -> str:
    return self.module.code


def default_registry(config: Optional[RuntimeConfig] = None) -> HandlerRegistry:
  """
  Builds the registry used by the CLI: the ``@Log()`` handler only.

  Args:
      config: Settings forwarded to the handlers.

  Returns:
      HandlerRegistry: A new registry.
  """
  return HandlerRegistry([LogHandler(config)])


class AnnotationRewriter(cst.CSTTransformer):
  """
  LibCST transformer dispatching every classified node to the registry.

  Attributes:
      modified (bool): True once any handler returned a replacement node.
  """

  def __init__(self, registry: HandlerRegistry, context: RewriteContext):
    super().__init__()
    self.registry = registry
    self.context = context
    self.modified = False
    # Class name for class scopes, None for function scopes
    self._scopes: List[Optional[str]] = []

  def visit_ClassDef(self, node: cst.ClassDef) -> Optional[bool]:
    self._scopes.append(node.name.value)
    return True

  def visit_FunctionDef(self, node: cst.FunctionDef) -> Optional[bool]:
    self._scopes.append(None)
    return True

  def on_leave(self, original_node: cst.CSTNode, updated_node: cst.CSTNode):
    result = super().on_leave(original_node, updated_node)
    if isinstance(result, cst.CSTNode):
      result = self._dispatch(result)
    if isinstance(original_node, (cst.ClassDef, cst.FunctionDef)):
      self._scopes.pop()
    return result

  def _owner(self, node: cst.CSTNode) -> Optional[str]:
    """Class directly enclosing a function definition (the scope below its own)."""
    if isinstance(node, cst.FunctionDef) and len(self._scopes) >= 2:
      return self._scopes[-2]
    return None

  def _dispatch(self, node: cst.CSTNode) -> cst.CSTNode:
    kind: Optional[NodeKind] = classify(node)
    if kind is None:
      return node

    for handler in self.registry.handlers_for(kind):
      self.context.node = node
      self.context.owner = self._owner(node)
      replacement = handler.handle(self.context)
      if replacement is not None:
        self.modified = True
        node = replacement
    return node


class Overwriter:
  """
  Applies a handler registry to source units.
  """

  def __init__(self, registry: HandlerRegistry):
    self.registry = registry

  def overwrite(self, path: str, unit: SourceUnit) -> bool:
    """
    Rewrites ``unit`` with every registered handler.

    Args:
        path: File path embedded into synthesized statements.
        unit: The source unit. ``unit.module`` is replaced when modified.

    Returns:
        bool: True if at least one node was rewritten.

    Raises:
        SynthesisError: On the first handler failure. ``unit`` is left unchanged.
    """
    context = RewriteContext(path=path, add_import=unit.imports.add)
    rewriter = AnnotationRewriter(self.registry, context)
    try:
      module = unit.module.visit(rewriter)
    except AnnotationError:
      unit.imports.rollback()
      raise

    if not rewriter.modified:
      return False

    unit.module = unit.imports.apply(module)
    logger.debug("Rewrote annotations in %s", path)
    return True


def overwrite(path: str, unit: SourceUnit, registry: Optional[HandlerRegistry] = None) -> bool:
  """
  Convenience wrapper running ``Overwriter`` with the default registry.

  Args:
      path: File path embedded into synthesized statements.
      unit: The source unit to rewrite in place.
      registry: Handlers to apply. Defaults to ``default_registry()``.

  Returns:
      bool: True if the unit was modified.
  """
  return Overwriter(registry if registry is not None else default_registry()).overwrite(path, unit)
