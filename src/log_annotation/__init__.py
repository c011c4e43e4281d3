"""
log-annotation Package.

An annotation-driven source-to-source rewriter. Functions whose doc comment
is exactly ``# @Log()`` are rewritten to log their parameters on entry and
their results on every exit path.

Usage
-----

Simple String Rewriting
^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import log_annotation as la
    code = '''
    # @Log()
    def add(a: int, b: int) -> int:
        return a + b
    '''
    print(la.rewrite(code, path="calc.py"))

Advanced Usage (Engine)
^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from log_annotation import AnnotationEngine, RuntimeConfig

    engine = AnnotationEngine(RuntimeConfig(level="debug"))
    res = engine.run(code, "calc.py")

    if res.success:
        print(res.code)
    else:
        print(f"Errors: {res.errors}")
"""

from typing import Optional

from log_annotation.config import RuntimeConfig
from log_annotation.core.engine import AnnotationEngine, RewriteResult
from log_annotation.core.errors import AnnotationError, SynthesisError
from log_annotation.core.rewriter import SourceUnit, overwrite

__version__ = "0.1.0"


def rewrite(code: str, path: str = "<string>", config: Optional[RuntimeConfig] = None) -> str:
  """
  Applies the ``@Log()`` annotation to a string of Python code.

  Args:
      code (str): The source code.
      path (str): File path embedded into the synthesized log statements.
      config (RuntimeConfig, optional): Logger import and level settings.

  Returns:
      str: The rewritten source code (unchanged if nothing is annotated).

  Raises:
      ValueError: If the code cannot be parsed or a log statement cannot be synthesized.
  """
  result = AnnotationEngine(config).run(code, path)
  if not result.success:
    error_msg = "\n".join(result.errors)
    raise ValueError(f"Rewrite failed:\n{error_msg}")
  return result.code


__all__ = [
  "AnnotationEngine",
  "AnnotationError",
  "RewriteResult",
  "RuntimeConfig",
  "SourceUnit",
  "SynthesisError",
  "overwrite",
  "rewrite",
  "__version__",
]
