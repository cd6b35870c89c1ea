"""Virtual filesystem for remote IBM i resources."""

from qsysbridge.vfs.provider import FileChangeEvent, FileChangeType, FileStat, QsysFileSystem

__all__ = ["FileChangeEvent", "FileChangeType", "FileStat", "QsysFileSystem"]
