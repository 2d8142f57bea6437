#!/usr/bin/env python
"""
Thin wrapper script to invoke the pr_diff_context CLI.

Running ``python prdiff.py`` is equivalent to running the ``prdiff``
console script installed via ``pyproject.toml``.
"""

from pr_diff_context.cli import main


if __name__ == "__main__":
    main(prog_name="prdiff")
