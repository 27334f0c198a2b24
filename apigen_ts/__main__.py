# File: apigen_ts/__main__.py
"""
APIGen-TS - Module entry point.

Allows running the generator directly via::

    python -m apigen_ts --metadata metadata.yaml
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from apigen_ts.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
