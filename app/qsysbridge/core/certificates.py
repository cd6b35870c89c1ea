"""Debug service certificates.

The IBM i debug service needs a PKCS#12 keystore in its certs directory.
A copy of it is kept locally, per host, so the debug client can trust the
service.
"""

import logging
import posixpath
from pathlib import Path

from qsysbridge.core.errors import RemoteCommandError
from qsysbridge.core.paths import ensure_certificate_dir, get_certificate_dir
from qsysbridge.remote.base import RemoteCommand, RemoteConnection
from qsysbridge.utils.shell import sh_quote

logger = logging.getLogger(__name__)

DEBUG_SERVICE_DIRECTORY = "/QIBM/ProdData/IBMiDebugService"
CERTIFICATE_DIRECTORY = posixpath.join(DEBUG_SERVICE_DIRECTORY, "bin", "certs")
CERTIFICATE_NAME = "debug_service.pfx"


def get_remote_certificate_path() -> str:
    return posixpath.join(CERTIFICATE_DIRECTORY, CERTIFICATE_NAME)


def _generate_commands(host: str) -> list[str]:
    subject = sh_quote(f"/CN={host}")
    return [
        "openssl genrsa -out debug_service.key 2048",
        f"openssl req -new -key debug_service.key -out debug_service.csr -subj {subject}",
        "openssl x509 -req -in debug_service.csr -signkey debug_service.key "
        "-out debug_service.crt -days 1095 -sha256",
        "openssl pkcs12 -export -out debug_service.pfx -inkey debug_service.key "
        f"-in debug_service.crt -password {sh_quote('pass:' + host)}",
        "rm debug_service.key debug_service.csr debug_service.crt",
        f"chmod 444 {CERTIFICATE_NAME}",
    ]


class DebugCertificates:
    """Remote and local debug certificate operations for one connection.

    Attributes:
        connection: Live remote connection.
    """

    def __init__(self, connection: RemoteConnection) -> None:
        self.connection = connection

    @property
    def local_path(self) -> Path:
        return get_certificate_dir(self.connection.current_host) / CERTIFICATE_NAME

    def check_remote_exists(self) -> bool:
        """Check for the keystore on the server. Transport errors propagate."""
        return self.connection.test_stream_file(get_remote_certificate_path(), "f")

    def setup(self) -> None:
        """Generate a self-signed keystore on the server.

        Raises:
            RemoteCommandError: If generation fails; the message carries the
                remote error output.
        """
        script = " && ".join(_generate_commands(self.connection.current_host))
        result = self.connection.run_command(
            RemoteCommand(command=script, environment="pase", cwd=CERTIFICATE_DIRECTORY)
        )
        if not result.success:
            raise RemoteCommandError(script, result.returncode, result.stderr or result.stdout)
        logger.info("Generated debug certificate on %s", self.connection.current_host)

    def check_local_exists(self) -> bool:
        return self.local_path.is_file()

    def download_to_local(self) -> Path:
        """Copy the server keystore to the local certificate directory.

        Returns:
            Path of the local copy.
        """
        data = self.connection.download_streamfile_raw(get_remote_certificate_path())
        directory = ensure_certificate_dir(self.connection.current_host)
        target = directory / CERTIFICATE_NAME
        target.write_bytes(data)
        logger.info("Downloaded debug certificate to %s", target)
        return target
