"""Remote connection contract and transports."""

from qsysbridge.remote.base import MemberInfo, RemoteCommand, RemoteConnection

__all__ = ["MemberInfo", "RemoteCommand", "RemoteConnection"]
