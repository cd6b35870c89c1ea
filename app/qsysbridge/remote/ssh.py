"""SSH transport for IBM i connections.

Commands run through PASE over an SSH exec channel; stream files move over
SFTP. Members are copied through a temporary stream file with
CPYTOSTMF/CPYFRMSTMF, and SQL runs through ``db2util``.
"""

import json
import logging
import posixpath
import uuid
from datetime import datetime
from typing import Any

import paramiko

from qsysbridge.core.errors import NotConnectedError, NotFoundError, RemoteCommandError
from qsysbridge.core.settings import ConnectionSettings
from qsysbridge.remote.base import MemberInfo, RemoteCommand, RemoteConnection, Row
from qsysbridge.utils.shell import CommandResult, cl_quote, sh_quote, wrap_ile_command, wrap_qsh_command

logger = logging.getLogger(__name__)

# Messages CPYTOSTMF reports for a missing library, file or member
NOT_FOUND_MESSAGES = ("CPF9810", "CPF9812", "CPF9815", "CPFA0A9")

CONNECT_TIMEOUT = 20.0
KEEPALIVE_INTERVAL = 30
TEMP_DIRECTORY = "/tmp"

# Tool scripts looked up on connect, by the directories they live in
FEATURE_DIRECTORIES = (
    "/QOpenSys/pkgs/bin",
    "/usr/bin",
    "/QIBM/ProdData/IBMiDebugService/bin",
)
KNOWN_FEATURES = frozenset(
    {"db2util", "setccsid", "iconv", "attr", "tn5250", "md5sum", "bash", "startDebugService.sh"}
)

MEMBER_INFO_SQL = (
    "SELECT TABLE_PARTITION AS NAME, IFNULL(SOURCE_TYPE, '') AS TYPE, "
    "IFNULL(PARTITION_TEXT, '') AS TEXT, DATA_SIZE AS SIZE, "
    "VARCHAR_FORMAT(LAST_SOURCE_UPDATE_TIMESTAMP, 'YYYY-MM-DD HH24:MI:SS') AS CHANGED "
    "FROM QSYS2.SYSPARTITIONSTAT WHERE TABLE_SCHEMA = '{library}' "
    "AND TABLE_NAME = '{file}' AND TABLE_PARTITION = '{member}'"
)


def qsys_member_path(library: str, file: str, member: str, asp: str | None = None) -> str:
    """IFS path of a member in the QSYS file system."""
    path = f"/QSYS.LIB/{library}.LIB/{file}.FILE/{member}.MBR".upper()
    return f"/{asp.upper()}{path}" if asp else path


def _sql_name(value: str) -> str:
    return value.upper().replace("'", "''")


class SshConnection(RemoteConnection):
    """RemoteConnection over paramiko.

    Attributes:
        settings: Settings the connection was opened with.
    """

    def __init__(self, settings: ConnectionSettings, client: paramiko.SSHClient) -> None:
        super().__init__(settings.name, settings.username, settings.host)
        self.settings = settings
        self._client: paramiko.SSHClient | None = client
        self._sftp: paramiko.SFTPClient | None = None

    @classmethod
    def open(cls, settings: ConnectionSettings, password: str) -> "SshConnection":
        """Connect and discover remote features.

        Raises:
            paramiko.SSHException: If the SSH handshake or login fails.
            OSError: If the host cannot be reached.
        """
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        client.connect(
            hostname=settings.host,
            port=settings.port,
            username=settings.username,
            password=password,
            timeout=CONNECT_TIMEOUT,
            allow_agent=False,
            look_for_keys=False,
        )
        transport = client.get_transport()
        if transport is not None:
            transport.set_keepalive(KEEPALIVE_INTERVAL)

        connection = cls(settings, client)
        connection.remote_features = connection.discover_features()
        logger.info("Connected to %s:%d", settings.host, settings.port)
        return connection

    @property
    def connected(self) -> bool:
        if self._client is None:
            return False
        transport = self._client.get_transport()
        return transport is not None and transport.is_active()

    def _require_client(self) -> paramiko.SSHClient:
        if self._client is None or not self.connected:
            msg = f"No connection to {self.current_host} available."
            raise NotConnectedError(msg)
        return self._client

    def _sftp_client(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            self._sftp = self._require_client().open_sftp()
        return self._sftp

    def _exec(self, command_line: str) -> CommandResult:
        client = self._require_client()
        logger.debug("exec: %s", command_line)
        try:
            _, stdout, stderr = client.exec_command(command_line, timeout=self.settings.command_timeout)
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
            returncode = stdout.channel.recv_exit_status()
        except TimeoutError as e:
            raise RemoteCommandError(
                command_line, -1, f"timed out after {self.settings.command_timeout}s"
            ) from e
        return CommandResult(stdout=out, stderr=err, returncode=returncode, command=command_line)

    def discover_features(self) -> dict[str, str]:
        """Find known tool scripts in the standard directories.

        Returns:
            Tool name mapped to its full path; the first directory wins.
        """
        features: dict[str, str] = {}
        for directory in FEATURE_DIRECTORIES:
            result = self._exec(f"ls -p {sh_quote(directory)}")
            if not result.success:
                continue
            for name in result.stdout.split():
                if name in KNOWN_FEATURES and name not in features:
                    features[name] = posixpath.join(directory, name)
        logger.debug("Remote features: %s", sorted(features))
        return features

    def run_command(self, command: RemoteCommand) -> CommandResult:
        if command.environment == "ile":
            line = wrap_ile_command(command.command)
        elif command.environment == "qsh":
            line = wrap_qsh_command(command.command)
        else:
            line = command.command

        prefix = [f"export {name}={sh_quote(value)}" for name, value in command.env.items()]
        if command.cwd:
            prefix.append(f"cd {sh_quote(command.cwd)}")
        if prefix:
            line = " && ".join([*prefix, line])

        result = self._exec(line)
        return CommandResult(
            stdout=result.stdout,
            stderr=result.stderr,
            returncode=result.returncode,
            command=command.command,
        )

    def test_stream_file(self, path: str, mode: str) -> bool:
        return self._exec(f"test -{mode} {sh_quote(path)}").success

    def download_streamfile_raw(self, path: str) -> bytes:
        try:
            with self._sftp_client().open(path, "rb") as remote_file:
                return remote_file.read()
        except FileNotFoundError as e:
            raise NotFoundError(f"Stream file {path} not found") from e

    def upload_streamfile_raw(self, path: str, data: bytes) -> None:
        with self._sftp_client().open(path, "wb") as remote_file:
            remote_file.write(data)

    def _temp_path(self) -> str:
        return posixpath.join(TEMP_DIRECTORY, f"qsysbridge_{uuid.uuid4().hex}")

    def _run_cl(self, command: str) -> None:
        result = self.run_command(RemoteCommand(command=command))
        if not result.success:
            raise RemoteCommandError(command, result.returncode, result.stderr)

    def download_member(self, library: str, file: str, member: str, asp: str | None = None) -> str:
        temp = self._temp_path()
        member_path = qsys_member_path(library, file, member, asp)
        command = (
            f"CPYTOSTMF FROMMBR({cl_quote(member_path)}) TOSTMF({cl_quote(temp)}) "
            "STMFOPT(*REPLACE) STMFCCSID(1208)"
        )
        try:
            result = self.run_command(RemoteCommand(command=command))
            if not result.success:
                if any(message in result.output for message in NOT_FOUND_MESSAGES):
                    raise NotFoundError(f"Member {library}/{file}({member}) not found")
                raise RemoteCommandError(command, result.returncode, result.stderr)
            return self.download_streamfile_raw(temp).decode("utf-8", errors="replace")
        finally:
            self._exec(f"rm -f {sh_quote(temp)}")

    def upload_member(
        self, library: str, file: str, member: str, content: str, asp: str | None = None
    ) -> None:
        temp = self._temp_path()
        member_path = qsys_member_path(library, file, member, asp)
        try:
            self.upload_streamfile_raw(temp, content.encode("utf-8"))
            self._exec(f"setccsid 1208 {sh_quote(temp)}")
            self._run_cl(
                f"CPYFRMSTMF FROMSTMF({cl_quote(temp)}) TOMBR({cl_quote(member_path)}) "
                "MBROPT(*REPLACE)"
            )
        finally:
            self._exec(f"rm -f {sh_quote(temp)}")

    def get_member_info(self, library: str, file: str, member: str) -> MemberInfo | None:
        rows = self.run_sql(
            MEMBER_INFO_SQL.format(
                library=_sql_name(library), file=_sql_name(file), member=_sql_name(member)
            )
        )
        if not rows:
            return None
        row = rows[0]
        changed: Any = row.get("CHANGED")
        return MemberInfo(
            library=library.upper(),
            file=file.upper(),
            name=str(row.get("NAME", member)).strip(),
            extension=str(row.get("TYPE", "")).strip(),
            size=int(row.get("SIZE") or 0),
            changed=_parse_changed(changed),
            text=str(row.get("TEXT", "")).strip(),
        )

    def run_sql(self, statement: str) -> list[Row]:
        """Run a statement with ``db2util`` and return the result rows.

        Raises:
            RemoteCommandError: If the statement fails or returns unreadable output.
        """
        command = f"db2util -o json {sh_quote(statement)}"
        result = self._exec(command)
        if not result.success:
            raise RemoteCommandError(statement, result.returncode, result.stderr)
        text = result.stdout.strip()
        if not text:
            return []
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise RemoteCommandError(statement, result.returncode, f"unreadable output: {e}") from e
        rows = data.get("records", []) if isinstance(data, dict) else data
        return [row for row in rows if isinstance(row, dict)]

    def end(self) -> None:
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._client is not None:
            self._client.close()
            self._client = None
        logger.info("Disconnected from %s", self.current_host)


def _parse_changed(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None
