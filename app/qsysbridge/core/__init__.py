"""Core orchestration for qsysbridge.

Connection sessions, the resource URI scheme, configuration resolution,
Action execution, diagnostics and the debug bootstrap live here.
"""
