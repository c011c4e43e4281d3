"""
Annotation Handler Registry and Rewrite Context.

This module defines the contract between the rewrite driver and the
annotation handlers it dispatches to:

1.  **NodeKind**: The closed set of node kinds a handler can ask for. The
    driver classifies each visited node once and only dispatches it to the
    handlers registered for that kind.
2.  **RewriteContext**: Per-file state shared by every dispatch (file path,
    current node, enclosing class, import registration callback). The driver
    overwrites ``node``/``owner`` before each dispatch; handlers must not keep
    a reference to it beyond their own call.
3.  **HandlerRegistry**: An explicitly constructed list of handlers. There is
    no module-level registry; callers build one and hand it to the driver.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Type

import libcst as cst

# (module, name, alias) -> True if the import was added, False if already present.
ImportAdderType = Callable[..., bool]


class NodeKind(str, Enum):
  FUNCTION = "function"
  FIELD_LIST = "field_list"
  STATEMENTS = "statements"


_NODE_KINDS: Dict[Type[cst.CSTNode], NodeKind] = {
  cst.FunctionDef: NodeKind.FUNCTION,
  cst.Parameters: NodeKind.FIELD_LIST,
  cst.IndentedBlock: NodeKind.STATEMENTS,
  cst.SimpleStatementSuite: NodeKind.STATEMENTS,
}


def classify(node: cst.CSTNode) -> Optional[NodeKind]:
  """
  Maps a LibCST node to its ``NodeKind``.

  Args:
      node: Any visited node.

  Returns:
      Optional[NodeKind]: The kind, or None for nodes no handler can inspect.
  """
  return _NODE_KINDS.get(type(node))


@dataclass
class RewriteContext:
  """
  Processing state for one file, reused across every visited node.

  Attributes:
      path (str): Path of the file, embedded into synthesized statements.
      add_import (ImportAdderType): Registers ``from module import name [as alias]``
          (or ``import module [as alias]`` when ``name`` is None). Idempotent.
      node (Optional[cst.CSTNode]): The node currently being dispatched.
      owner (Optional[str]): Name of the class whose body directly contains
          ``node`` when it is a function definition, else None.
  """

  path: str
  add_import: ImportAdderType
  node: Optional[cst.CSTNode] = None
  owner: Optional[str] = None


class AnnotationHandler(ABC):
  """
  Contract for a rewrite rule triggered by an annotation.

  Handlers are stateless across nodes: everything they need is read from the
  ``RewriteContext`` of the current dispatch.
  """

  kinds: FrozenSet[NodeKind] = frozenset()

  @abstractmethod
  def handle(self, context: RewriteContext) -> Optional[cst.CSTNode]:
    """
    Applies the rule to ``context.node``.

    Args:
        context: The shared rewrite context.

    Returns:
        Optional[cst.CSTNode]: The replacement node, or None to leave the node unchanged.

    Raises:
        SynthesisError: If the replacement cannot be built. Aborts the file.
    """


class HandlerRegistry:
  """
  Ordered collection of annotation handlers.
  """

  def __init__(self, handlers: Optional[Iterable[AnnotationHandler]] = None):
    self._handlers: List[AnnotationHandler] = []
    for handler in handlers or []:
      self.register(handler)

  def register(self, handler: AnnotationHandler) -> AnnotationHandler:
    """
    Adds a handler. Handlers run in registration order.

    Args:
        handler: The handler instance.

    Returns:
        AnnotationHandler: The same handler, for chaining.
    """
    self._handlers.append(handler)
    return handler

  def handlers_for(self, kind: NodeKind) -> List[AnnotationHandler]:
    """Returns the handlers interested in nodes of ``kind``."""
    return [h for h in self._handlers if kind in h.kinds]

  def __iter__(self) -> Iterator[AnnotationHandler]:
    return iter(self._handlers)

  def __len__(self) -> int:
    return len(self._handlers)
