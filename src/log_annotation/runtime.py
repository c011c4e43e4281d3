"""
Runtime Logger for Annotated Code.

Code rewritten by the ``@Log()`` handler imports ``logger`` from this module
and calls it through a chainable interface::

    logger.with_context(ctx).with_field("filepath", "app/service.py").info("#fn start, params: %r", a)

``AnnotatedLogger`` is a ``logging.LoggerAdapter``: messages go to the
standard ``log_annotation.runtime`` logger with lazy ``%`` formatting. Bound
fields are attached to each ``LogRecord`` as attributes (``record.filepath``)
and the bound context as ``record.context``.
"""

import logging
from typing import Any, Dict, MutableMapping, Optional, Tuple


class AnnotatedLogger(logging.LoggerAdapter):
  """
  Immutable logger binding a context object and structured fields.

  Every ``with_*`` call returns a new logger; the receiver is never changed.
  """

  def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None, context: Any = None):
    super().__init__(logger, dict(extra or {}))
    self.context = context

  def with_context(self, ctx: Any) -> "AnnotatedLogger":
    """Binds a propagation context (e.g. a request or trace object)."""
    return AnnotatedLogger(self.logger, self.extra, ctx)

  def with_field(self, key: str, value: Any) -> "AnnotatedLogger":
    """Binds one structured field."""
    return self.with_fields(**{key: value})

  def with_fields(self, **fields: Any) -> "AnnotatedLogger":
    """Binds several structured fields."""
    return AnnotatedLogger(self.logger, {**self.extra, **fields}, self.context)

  def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
    extra = dict(self.extra)
    extra["context"] = self.context
    extra.update(kwargs.get("extra") or {})
    kwargs["extra"] = extra
    return msg, kwargs


logger = AnnotatedLogger(logging.getLogger(__name__))
