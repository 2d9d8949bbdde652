"""CLI entry point for cattv.cli module.

Enables execution via: python -m cattv.cli <command>
"""

from cattv.cli.contract import main

if __name__ == "__main__":
    raise SystemExit(main())
