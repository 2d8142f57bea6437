"""
Configuration loading for pr_diff_context.

Provides a loader for the optional JSON configuration file in the
user's home directory. See :mod:`pr_diff_context.config.loader` for
implementation details.
"""

from .loader import ConfigError, load_config  # noqa: F401
