"""
Import Table for a Source Unit.

Tracks the top-level imports of a module and the imports requested by
annotation handlers during a rewrite. Registration is idempotent: asking for
an import that already exists (in the source or among pending requests) is a
no-op.

Pending imports are injected by ``apply`` after the leading docstring,
``__future__`` imports and the leading block of import statements.
"""

from typing import Iterator, List, Optional, Set, Tuple

import libcst as cst

from log_annotation.core.nodes import create_dotted_name, dotted_name, is_docstring

# (module, name, alias): ``from module import name as alias`` or ``import module as alias`` when name is None.
ImportKey = Tuple[str, Optional[str], Optional[str]]


def _relative_prefix(node: cst.ImportFrom) -> str:
  return "." * len(node.relative)


def _alias_of(alias: cst.ImportAlias) -> Optional[str]:
  if alias.asname is None:
    return None
  target = alias.asname.name
  return target.value if isinstance(target, cst.Name) else None


def scan_imports(module: cst.Module) -> Iterator[ImportKey]:
  """
  Yields a key for every name imported at module level.

  Args:
      module: The parsed module.

  Yields:
      ImportKey: One entry per imported alias.
  """
  for stmt in module.body:
    if not isinstance(stmt, cst.SimpleStatementLine):
      continue
    for small in stmt.body:
      if isinstance(small, cst.Import):
        for alias in small.names:
          yield dotted_name(alias.name), None, _alias_of(alias)
      elif isinstance(small, cst.ImportFrom) and not isinstance(small.names, cst.ImportStar):
        mod = _relative_prefix(small) + dotted_name(small.module)
        for alias in small.names:
          yield mod, dotted_name(alias.name), _alias_of(alias)


def is_import(node: cst.CSTNode) -> bool:
  if isinstance(node, cst.SimpleStatementLine) and node.body:
    return all(isinstance(small, (cst.Import, cst.ImportFrom)) for small in node.body)
  return False


def build_import(key: ImportKey) -> cst.SimpleStatementLine:
  """
  Creates the import statement for a key.

  Args:
      key: ``(module, name, alias)``.

  Returns:
      cst.SimpleStatementLine: ``from module import name [as alias]`` or ``import module [as alias]``.
  """
  module, name, alias = key
  asname = cst.AsName(name=cst.Name(alias)) if alias else None
  if name is None:
    stmt: cst.BaseSmallStatement = cst.Import(names=[cst.ImportAlias(name=create_dotted_name(module), asname=asname)])
  else:
    stmt = cst.ImportFrom(
      module=create_dotted_name(module),
      names=[cst.ImportAlias(name=cst.Name(name), asname=asname)],
    )
  return cst.SimpleStatementLine(body=[stmt])


class ImportTable:
  """
  Existing and requested module-level imports of one source unit.
  """

  def __init__(self, module: cst.Module):
    self._present: Set[ImportKey] = set(scan_imports(module))
    self._pending: List[ImportKey] = []

  def __contains__(self, key: ImportKey) -> bool:
    return key in self._present or key in self._pending

  @property
  def pending(self) -> List[ImportKey]:
    return list(self._pending)

  def add(self, module: str, name: Optional[str] = None, alias: Optional[str] = None) -> bool:
    """
    Requests an import.

    Args:
        module: Dotted module path.
        name: Symbol imported from the module, or None for ``import module``.
        alias: Optional local alias.

    Returns:
        bool: True if the import was added, False if it was already present or pending.
    """
    key = (module, name, alias)
    if key in self:
      return False
    self._pending.append(key)
    return True

  def rollback(self) -> None:
    """Drops every pending request."""
    self._pending.clear()

  def apply(self, module: cst.Module) -> cst.Module:
    """
    Injects pending imports into ``module`` and marks them present.

    Args:
        module: The module to update.

    Returns:
        cst.Module: The module with imports inserted (unchanged if nothing is pending).
    """
    if not self._pending:
      return module

    body = list(module.body)
    insert_idx = 0
    for i, stmt in enumerate(body):
      if i == 0 and is_docstring(stmt):
        insert_idx = i + 1
        continue
      if is_import(stmt):
        insert_idx = i + 1
        continue
      break

    injections = [build_import(key) for key in self._pending]
    following = body[insert_idx:]
    if insert_idx == 0 and following and following[0].leading_lines:
      # Comments above the first statement (shebang, encoding, license) stay on top
      injections[0] = injections[0].with_changes(leading_lines=following[0].leading_lines)
      following[0] = following[0].with_changes(leading_lines=[])
    if following and not is_import(following[0]) and not following[0].leading_lines:
      following[0] = following[0].with_changes(leading_lines=[cst.EmptyLine()])

    self._present.update(self._pending)
    self._pending.clear()
    return module.with_changes(body=body[:insert_idx] + injections + following)
