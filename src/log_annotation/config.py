"""
Runtime Configuration Store.

Settings are read from the ``[tool.log_annotation]`` table of the nearest
``pyproject.toml`` and overridden by CLI arguments.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

LOG_LEVELS = ("debug", "info", "warning", "error")

# Attributes set by ``logging.LogRecord`` itself; ``extra`` keys may not overwrite them.
# ``context`` is bound by the runtime logger.
RESERVED_RECORD_FIELDS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "context"}


class RuntimeConfig(BaseModel):
  """
  Configuration container for the annotation engine and CLI.
  """

  logger_module: str = Field("log_annotation.runtime", description="Module the logger is imported from.")
  logger_name: str = Field("logger", description="Logger symbol imported from `logger_module`.")
  logger_alias: Optional[str] = Field(None, description="Optional local alias for the imported logger.")
  level: str = Field("info", description="Logging method called by synthesized statements.")
  path_field: str = Field("filepath", description="Structured field carrying the source file path.")

  replace: bool = Field(False, description="If True, overwrite source files in place.")
  output_dir: str = Field("_gen", description="Sibling directory receiving generated files when not replacing.")
  fail_fast: bool = Field(True, description="If True, stop the batch at the first file that fails.")

  @field_validator("level")
  @classmethod
  def validate_level(cls, v: str) -> str:
    """
    Normalizes the logging method name.

    Args:
        v (str): Raw level name.

    Returns:
        str: Lowercase level name.

    Raises:
        ValueError: If the level is not supported by the runtime logger.
    """
    v_clean = v.lower().strip()
    if v_clean not in LOG_LEVELS:
      raise ValueError(f"Unknown log level: '{v_clean}'. Supported levels: {list(LOG_LEVELS)}")
    return v_clean

  @field_validator("path_field")
  @classmethod
  def validate_path_field(cls, v: str) -> str:
    if not v.isidentifier():
      raise ValueError(f"Path field must be an identifier, got '{v}'")
    if v in RESERVED_RECORD_FIELDS:
      raise ValueError(f"Path field '{v}' clashes with a LogRecord attribute")
    return v

  @field_validator("output_dir")
  @classmethod
  def validate_output_dir(cls, v: str) -> str:
    if not v or "/" in v or "\\" in v or v in (".", ".."):
      raise ValueError(f"Output directory must be a plain directory name, got '{v}'")
    return v

  @property
  def logger_ref(self) -> str:
    """
    Name the synthesized code uses to reach the logger.

    Returns:
        str: The alias if configured, otherwise the imported symbol.
    """
    return self.logger_alias or self.logger_name

  @classmethod
  def load(
    cls,
    replace: Optional[bool] = None,
    output_dir: Optional[str] = None,
    fail_fast: Optional[bool] = None,
    level: Optional[str] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Args:
        replace (Optional[bool]): Override for in-place rewriting.
        output_dir (Optional[str]): Override for the generated output directory name.
        fail_fast (Optional[bool]): Override for the batch error policy.
        level (Optional[str]): Override for the synthesized logging level.
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, _ = _load_toml_settings(start_dir)

    overrides: Dict[str, Any] = {
      "replace": replace,
      "output_dir": output_dir,
      "fail_fast": fail_fast,
      "level": level,
    }
    settings = {**toml_config, **{k: v for k, v in overrides.items() if v is not None}}
    return cls.model_validate(settings)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Searches the start directory and its parents for 'pyproject.toml' and extracts config.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory it was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.is_file():
      with open(toml_path, "rb") as f:
        data = tomllib.load(f)
      return data.get("tool", {}).get("log_annotation", {}), parent

  return {}, None
