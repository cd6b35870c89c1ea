"""Utility modules for qsysbridge.

This module exports commonly used utility functions.
"""

from qsysbridge.utils.formatting import (
    console,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from qsysbridge.utils.shell import CommandResult, cl_quote, sh_quote

__all__ = [
    "CommandResult",
    "cl_quote",
    "console",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "sh_quote",
]
