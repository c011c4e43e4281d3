"""
CLI Subpackage.

Contains the application entry-point and command handlers for the command-line interface.

Modules:
    - ``__main__``: The argparse definition and dispatcher.
    - ``handlers/*``: Implementation modules for CLI actions (rewrite).
"""
