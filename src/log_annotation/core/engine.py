"""
Orchestration Engine for Annotation Rewriting.

This module provides the ``AnnotationEngine``, which runs the full pipeline on
one source text:

1.  **Parsing**: Source text -> LibCST module (``SourceUnit``).
2.  **Rewriting**: ``Overwriter`` applies the registered handlers.
3.  **Printing**: The rewritten module is rendered back to source text.

Failures never escape ``run``: a parse error or a synthesis error produces a
``RewriteResult`` with ``success=False`` and the original code, so the caller
decides whether to abort the batch or skip the file.
"""

import logging
from typing import List, Optional

import libcst as cst
from pydantic import BaseModel, Field

from log_annotation.config import RuntimeConfig
from log_annotation.core.errors import AnnotationError
from log_annotation.core.handlers import HandlerRegistry
from log_annotation.core.rewriter import Overwriter, SourceUnit, default_registry

logger = logging.getLogger(__name__)


class RewriteResult(BaseModel):
  """
  Structured result of a single file rewrite.
  """

  code: str = Field(default="", description="The rewritten source code (original code on failure).")
  modified: bool = Field(default=False, description="True if at least one annotation was applied.")
  errors: List[str] = Field(default_factory=list, description="Error messages.")
  success: bool = Field(default=True, description="True if the pipeline completed without failures.")

  @property
  def has_errors(self) -> bool:
    """
    Returns True if any errors were recorded.

    Returns:
        bool: True if errors list is non-empty.
    """
    return len(self.errors) > 0


class AnnotationEngine:
  """
  Parses, rewrites and prints source units.
  """

  def __init__(self, config: Optional[RuntimeConfig] = None, registry: Optional[HandlerRegistry] = None):
    """
    Initializes the Engine.

    Args:
        config (RuntimeConfig, optional): Runtime settings. Defaults are used if None.
        registry (HandlerRegistry, optional): Handlers to apply. Defaults to the ``@Log()`` handler.
    """
    self.config = config or RuntimeConfig()
    self.registry = registry if registry is not None else default_registry(self.config)
    self.overwriter = Overwriter(self.registry)

  def run(self, code: str, path: str) -> RewriteResult:
    """
    Executes the pipeline on one source text.

    Args:
        code (str): The input source.
        path (str): The file path, embedded into synthesized log statements.

    Returns:
        RewriteResult: Rewritten code, modification flag and errors.
    """
    try:
      unit = SourceUnit.parse(code, path)
    except cst.ParserSyntaxError as e:
      return RewriteResult(code=code, errors=[f"Parse Error in {path}: {e}"], success=False)

    try:
      modified = self.overwriter.overwrite(path, unit)
    except AnnotationError as e:
      return RewriteResult(code=code, errors=[str(e)], success=False)

    if not modified:
      logger.debug("No annotations found in %s", path)
      return RewriteResult(code=code)

    return RewriteResult(code=unit.code, modified=True)
