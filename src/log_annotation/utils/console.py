"""
Central Logging and Console Utilities.

Tool output goes through the Python standard ``logging`` library, rendered by
``rich``. The console sits behind a proxy so that the destination (stdout or a
capture buffer in tests) can be swapped at runtime via ``set_console``; the
logging handler is re-attached to the new console on every swap.

Attributes:
    console (_ConsoleProxy): A stable reference to the active Rich Console.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Between INFO and WARNING
SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

_LOGGER_NAME = "log_annotation"

_THEME = Theme(
  {
    "logging.level.success": "green",
    "info": "dim cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "green",
    "path": "bold blue",
  }
)

_log = logging.getLogger(_LOGGER_NAME)


class _ConsoleProxy:
  """
  Forwards printing to a swappable ``rich.console.Console`` backend.

  Attributes:
      _backend (Console): The active Rich Console instance.
  """

  def __init__(self) -> None:
    self._backend: Console = Console(theme=_THEME)
    self._handler: RichHandler = self._configure_logging()

  def set_backend(self, new_console: Console) -> None:
    """
    Injects a new Console backend and updates the logging handler.

    Args:
        new_console (Console): The new Rich Console instance to use.
    """
    self._backend = new_console
    self._handler = self._configure_logging()

  def reset(self) -> None:
    """Resets the proxy to a fresh standard output console."""
    self.set_backend(Console(theme=_THEME))

  @property
  def backend(self) -> Console:
    return self._backend

  def _configure_logging(self) -> RichHandler:
    """
    Attaches a RichHandler bound to the current backend to the tool logger,
    replacing any handler attached by a previous backend.
    """
    for handler in list(_log.handlers):
      if isinstance(handler, RichHandler):
        _log.removeHandler(handler)

    rich_handler = RichHandler(
      console=self._backend,
      show_time=False,
      omit_repeated_times=False,
      show_path=False,
      markup=True,
      rich_tracebacks=True,
    )
    _log.setLevel(logging.INFO)
    _log.addHandler(rich_handler)
    return rich_handler

  def print(self, *args: Any, **kwargs: Any) -> None:
    self._backend.print(*args, **kwargs)

  def __getattr__(self, name: str) -> Any:
    return getattr(self._backend, name)


console = _ConsoleProxy()


def set_console(new_console: Console) -> None:
  """
  Redirects console output and tool logging to ``new_console``.

  Args:
      new_console (Console): The configured Rich console to use globally.
  """
  console.set_backend(new_console)


def reset_console() -> None:
  """Resets logging and console to standard output."""
  console.reset()


def log_info(msg: str) -> None:
  """
  Logs an informational message.

  Args:
      msg (str): The message content. Can include rich markup like [bold].
  """
  _log.info(f"ℹ️  {msg}", extra={"markup": True})


def log_success(msg: str) -> None:
  _log.log(SUCCESS_LEVEL_NUM, f"✅ {msg}", extra={"markup": True})


def log_warning(msg: str) -> None:
  _log.warning(f"⚠️  {msg}", extra={"markup": True})


def log_error(msg: str) -> None:
  _log.error(f"❌ {msg}", extra={"markup": True})
