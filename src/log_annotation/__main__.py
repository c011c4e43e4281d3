"""
Entry point for module execution (``python -m log_annotation``).

This module delegates execution to the CLI handler in ``log_annotation.cli.__main__``.
"""

import sys
from log_annotation.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
