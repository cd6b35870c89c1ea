"""qsysbridge - work with IBM i libraries, members and stream files as resources."""

__version__ = "0.4.0"
