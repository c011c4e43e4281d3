"""
Error types raised by the rewrite engine.

A failure while synthesizing the logging statements of one annotated
declaration aborts the whole file: the driver does not skip the declaration
and carry on. Callers receive the error with enough context (file path and
declaration label) to locate the offending annotation.
"""

from typing import Optional


class AnnotationError(ValueError):
  """Base class for failures raised while applying annotations."""


class SynthesisError(AnnotationError):
  """
  Raised when a synthesized expression cannot be built.

  Attributes:
      path (str): File being rewritten.
      declaration (Optional[str]): Label of the annotated declaration (e.g. ``Foo.bar``).
      reason (str): Underlying parser message.
  """

  def __init__(self, path: str, declaration: Optional[str], reason: str):
    self.path = path
    self.declaration = declaration
    self.reason = reason
    where = f"{path}: #{declaration}" if declaration else path
    super().__init__(f"Failed to synthesize log statements in {where}: {reason}")
