"""Debug service bootstrap.

Getting from "connected" to "debug session started" takes several checks
and optional repairs: the debug PTF must be installed, the service
certificate must exist on the server and a copy of it must exist locally.
The sequence is modelled as an explicit state machine. :func:`advance` is
the pure transition function; :class:`DebugBootstrap` performs the I/O for
each state and feeds the outcome back into it.
"""

import logging
import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from qsysbridge.core.certificates import DebugCertificates
from qsysbridge.core.errors import CapabilityMissingError, InvalidResourceUriError, QsysBridgeError
from qsysbridge.core.session import ConnectionSession
from qsysbridge.core.uri import decode
from qsysbridge.editor.host import EditorHost
from qsysbridge.models.resource import ResourceKind
from qsysbridge.remote.base import RemoteCommand, RemoteConnection

logger = logging.getLogger(__name__)

# Remote feature that marks an installed debug PTF
PTF_MARKER = "startDebugService.sh"

PTF_CONTEXT = "debug.ptf"
REMOTE_CERT_CONTEXT = "debug.remote"
LOCAL_CERT_CONTEXT = "debug.local"

PTF_MISSING_MESSAGE = "Debug PTF not installed."
LOCAL_DOWNLOAD_FAILED_MESSAGE = "Failed to download new local debug certificate"


class DebugState(str, Enum):
    """Bootstrap progress."""

    UNKNOWN = "unknown"
    PTF_CHECKED = "ptf_checked"
    REMOTE_CERT_CHECKED = "remote_cert_checked"
    REMOTE_CERT_MISSING = "remote_cert_missing"
    REMOTE_CERT_SETUP = "remote_cert_setup"
    LOCAL_CERT_CHECKED = "local_cert_checked"
    LOCAL_CERT_MISSING = "local_cert_missing"
    LOCAL_CERT_DOWNLOAD = "local_cert_download"
    READY = "ready"
    STARTED = "started"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({DebugState.STARTED, DebugState.FAILED, DebugState.CANCELLED})


class StepResult(str, Enum):
    """Outcome of the work done in one state.

    Attributes:
        OK: The check passed or the step completed.
        MISSING: The checked item does not exist.
        ACCEPTED: The user agreed to a repair.
        DECLINED: The user declined or dismissed a prompt.
        ERROR: The step failed.
    """

    OK = "ok"
    MISSING = "missing"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    ERROR = "error"


_TRANSITIONS: dict[tuple[DebugState, StepResult], DebugState] = {
    (DebugState.UNKNOWN, StepResult.OK): DebugState.PTF_CHECKED,
    (DebugState.UNKNOWN, StepResult.MISSING): DebugState.FAILED,
    (DebugState.PTF_CHECKED, StepResult.OK): DebugState.REMOTE_CERT_CHECKED,
    (DebugState.PTF_CHECKED, StepResult.MISSING): DebugState.REMOTE_CERT_MISSING,
    (DebugState.PTF_CHECKED, StepResult.ERROR): DebugState.FAILED,
    (DebugState.REMOTE_CERT_MISSING, StepResult.ACCEPTED): DebugState.REMOTE_CERT_SETUP,
    (DebugState.REMOTE_CERT_MISSING, StepResult.DECLINED): DebugState.CANCELLED,
    # A freshly generated certificate always replaces the local copy
    (DebugState.REMOTE_CERT_SETUP, StepResult.OK): DebugState.LOCAL_CERT_DOWNLOAD,
    (DebugState.REMOTE_CERT_SETUP, StepResult.ERROR): DebugState.FAILED,
    (DebugState.REMOTE_CERT_CHECKED, StepResult.OK): DebugState.LOCAL_CERT_CHECKED,
    (DebugState.REMOTE_CERT_CHECKED, StepResult.MISSING): DebugState.LOCAL_CERT_MISSING,
    (DebugState.REMOTE_CERT_CHECKED, StepResult.ERROR): DebugState.FAILED,
    (DebugState.LOCAL_CERT_MISSING, StepResult.ACCEPTED): DebugState.LOCAL_CERT_DOWNLOAD,
    (DebugState.LOCAL_CERT_MISSING, StepResult.DECLINED): DebugState.CANCELLED,
    (DebugState.LOCAL_CERT_DOWNLOAD, StepResult.OK): DebugState.LOCAL_CERT_CHECKED,
    (DebugState.LOCAL_CERT_DOWNLOAD, StepResult.ERROR): DebugState.FAILED,
    (DebugState.LOCAL_CERT_CHECKED, StepResult.OK): DebugState.READY,
    (DebugState.READY, StepResult.OK): DebugState.STARTED,
    (DebugState.READY, StepResult.DECLINED): DebugState.CANCELLED,
    (DebugState.READY, StepResult.ERROR): DebugState.FAILED,
}


@dataclass(frozen=True, slots=True)
class Transition:
    """One step of the state machine."""

    source: DebugState
    result: StepResult
    target: DebugState


def advance(state: DebugState, result: StepResult) -> Transition:
    """Compute the next state.

    Args:
        state: Current state.
        result: Outcome of the work done in ``state``.

    Returns:
        The transition taken.

    Raises:
        ValueError: If ``state`` is terminal or ``result`` is not a valid
            outcome for it.
    """
    if state in TERMINAL_STATES:
        msg = f"{state.value} is a terminal state"
        raise ValueError(msg)
    target = _TRANSITIONS.get((state, result))
    if target is None:
        msg = f"No transition from {state.value} on {result.value}"
        raise ValueError(msg)
    return Transition(source=state, result=result, target=target)


@dataclass(slots=True)
class DebugCertificateState:
    """What is known about the certificates of one connection.

    A local copy only counts once it was checked or downloaded right after
    a fresh remote generation.
    """

    remote_exists: bool = False
    local_exists: bool = False
    freshly_generated: bool = False

    @property
    def ready(self) -> bool:
        return self.remote_exists and self.local_exists


class DebugLaunchConfig(BaseModel):
    """Launch configuration handed to the editor's debugger."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = "IBMiDebug"
    request: str = "launch"
    name: str = "Remote debug: Launch a batch debug session"
    user: str
    password: str
    host: str
    port: str = "8005"
    secure: bool = False
    ignore_certificate_errors: Annotated[bool, Field(alias="ignoreCertificateErrors")] = True
    library: str
    program: str
    start_batch_job_command: Annotated[str, Field(alias="startBatchJobCommand")]
    update_production_files: Annotated[bool, Field(alias="updateProductionFiles")] = False
    trace: bool = False

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True, slots=True)
class DebugOutcome:
    """Final result of a bootstrap flow.

    Attributes:
        state: Terminal (or READY) state reached.
        message: The single user-facing message for the flow.
        config: Launch configuration, when a session was started.
        transitions: Every transition taken, in order.
    """

    state: DebugState
    message: str
    config: DebugLaunchConfig | None = None
    transitions: tuple[Transition, ...] = field(default=())

    @property
    def success(self) -> bool:
        return self.state in (DebugState.READY, DebugState.STARTED)


def debug_ptf_installed(connection: RemoteConnection) -> bool:
    return PTF_MARKER in connection.remote_features


def get_object_from_uri(uri: str, current_library: str) -> tuple[str, str]:
    """Resolve the program to debug for an edited source.

    Members use their library and member name; stream files and local
    files use the current library and the file name. A trailing ``.PGM``
    is dropped and both parts are upper-cased.

    Returns:
        Tuple of (library, program).

    Raises:
        InvalidResourceUriError: If the URI is malformed.
    """
    identity = decode(uri)
    if identity.kind in (ResourceKind.MEMBER, ResourceKind.OBJECT):
        library = identity.library or ""
    else:
        library = current_library
    program = identity.name.upper()
    if program.endswith(".PGM"):
        program = program[: -len(".PGM")]
    if not library or not program:
        msg = f"Cannot determine a program for {uri!r}"
        raise InvalidResourceUriError(msg)
    return library.upper(), program


class DebugBootstrap:
    """Drives the debug state machine for one session.

    Attributes:
        session: Active connection session.
        host: Editor host used for prompts, context flags and launching.
        certificates: Certificate operations for the connection.
        state: Current state.
        certificate_state: Known certificate flags.
    """

    def __init__(
        self,
        session: ConnectionSession,
        host: EditorHost,
        certificates: DebugCertificates | None = None,
    ) -> None:
        self.session = session
        self.host = host
        self.certificates = certificates or DebugCertificates(session.connection)
        self.state = DebugState.UNKNOWN
        self.certificate_state = DebugCertificateState()
        self._transitions: list[Transition] = []

    def _step(self, result: StepResult) -> DebugState:
        transition = advance(self.state, result)
        self._transitions.append(transition)
        logger.debug(
            "Debug bootstrap %s --%s--> %s",
            transition.source.value,
            result.value,
            transition.target.value,
        )
        self.state = transition.target
        return self.state

    def _finish(self, message: str, config: DebugLaunchConfig | None = None) -> DebugOutcome:
        outcome = DebugOutcome(self.state, message, config, tuple(self._transitions))
        if self.state == DebugState.FAILED:
            level = "error"
        elif self.state == DebugState.CANCELLED:
            level = "warning"
        else:
            level = "info"
        self.host.show_message(message, level=level)
        return outcome

    def _restart(self) -> None:
        self.state = DebugState.UNKNOWN
        self.certificate_state = DebugCertificateState()
        self._transitions = []

    def _check_ptf(self) -> None:
        connection = self.session.require_connection()
        if not debug_ptf_installed(connection):
            self._step(StepResult.MISSING)
            raise CapabilityMissingError(PTF_MISSING_MESSAGE)
        self._step(StepResult.OK)

    def _prepare(self, *, force_local: bool, ask_local: bool) -> DebugOutcome | None:
        """Run every state up to READY.

        Returns:
            None once READY is reached, otherwise the terminal outcome.
        """
        self._restart()
        self._check_ptf()

        if self.certificates.check_remote_exists():
            self.certificate_state.remote_exists = True
            self._step(StepResult.OK)
        else:
            self._step(StepResult.MISSING)
            choice = self.host.show_message(
                "Debug setup",
                "Continue",
                modal=True,
                detail="Debug certificates are not setup on the system. Continue with setup?",
            )
            if choice != "Continue":
                self._step(StepResult.DECLINED)
                return self._finish("Debug setup cancelled.")
            self._step(StepResult.ACCEPTED)
            try:
                self.certificates.setup()
            except QsysBridgeError as e:
                self._step(StepResult.ERROR)
                return self._finish(str(e))
            self._step(StepResult.OK)
            self.certificate_state.remote_exists = True
            self.certificate_state.freshly_generated = True

        self.host.set_context(REMOTE_CERT_CONTEXT, True)

        if self.state == DebugState.REMOTE_CERT_CHECKED:
            if not force_local and self.certificates.check_local_exists():
                self.certificate_state.local_exists = True
                self._step(StepResult.OK)
            else:
                self._step(StepResult.MISSING)
                if ask_local and not force_local:
                    choice = self.host.show_message(
                        "Local debug certificate does not exist.", "Setup", level="error"
                    )
                    if choice != "Setup":
                        self._step(StepResult.DECLINED)
                        return self._finish("Debug cancelled: no local debug certificate.")
                self._step(StepResult.ACCEPTED)

        if self.state == DebugState.LOCAL_CERT_DOWNLOAD:
            try:
                self.certificates.download_to_local()
            except (QsysBridgeError, OSError, RuntimeError) as e:
                logger.warning("Certificate download failed: %s", e)
                self._step(StepResult.ERROR)
                return self._finish(LOCAL_DOWNLOAD_FAILED_MESSAGE)
            self.certificate_state.local_exists = True
            self._step(StepResult.OK)

        self.host.set_context(LOCAL_CERT_CONTEXT, True)
        self._step(StepResult.OK)
        return None

    def setup_remote(self) -> DebugOutcome:
        """Make sure the server certificate exists, then sync the local copy.

        Raises:
            NotConnectedError: If the session has no live connection.
            CapabilityMissingError: If the debug PTF is not installed.
        """
        with self.host.with_context("debug.working"):
            outcome = self._prepare(force_local=False, ask_local=False)
            return outcome or self._finish("Debug certificates are ready.")

    def setup_local(self, force: bool = False) -> DebugOutcome:
        """Make sure a local copy of the server certificate exists.

        Args:
            force: Download again even if a local copy exists.

        Raises:
            NotConnectedError: If the session has no live connection.
            CapabilityMissingError: If the debug PTF is not installed.
        """
        with self.host.with_context("debug.working"):
            outcome = self._prepare(force_local=force, ask_local=False)
            return outcome or self._finish("Local debug certificate is ready.")

    def _get_password(self) -> str | None:
        connection = self.session.connection
        key = self.host.secret_key(connection.connection_name, "password")
        password = self.host.get_secret(key)
        if not password:
            password = self.host.input_box(
                f"Password for user profile {connection.current_user} is required to debug.",
                password=True,
            )
        return password or None

    def start_service(self) -> DebugOutcome:
        """Start the debug service on the server.

        Raises:
            NotConnectedError: If the session has no live connection.
            CapabilityMissingError: If the debug PTF is not installed.
        """
        outcome = self._prepare(force_local=False, ask_local=True)
        if outcome is not None:
            return outcome

        connection = self.session.connection
        script = connection.remote_features[PTF_MARKER]
        result = connection.run_command(
            RemoteCommand(command=script, environment="pase", cwd=posixpath.dirname(script))
        )
        if not result.success:
            self._step(StepResult.ERROR)
            return self._finish(f"Failed to start the debug service: {result.output.strip()}")
        self._step(StepResult.OK)
        return self._finish("Debug service started.")

    def start(self, uri: str) -> DebugOutcome:
        """Launch a batch debug session for the program built from ``uri``.

        Args:
            uri: Source (member, stream file or local file) or program object.

        Returns:
            The outcome; its message has already been shown.

        Raises:
            NotConnectedError: If the session has no live connection.
            CapabilityMissingError: If the debug PTF is not installed.
            InvalidResourceUriError: If no program can be derived from ``uri``.
        """
        library, program = get_object_from_uri(uri, self.session.settings.current_library)

        outcome = self._prepare(force_local=False, ask_local=True)
        if outcome is not None:
            return outcome

        password = self._get_password()
        if password is None:
            self._step(StepResult.DECLINED)
            return self._finish("Debug cancelled: no password given.")

        connection = self.session.connection
        config = DebugLaunchConfig(
            user=connection.current_user.upper(),
            password=password,
            host=connection.current_host,
            port=str(self.session.settings.debug_port),
            library=library,
            program=program,
            start_batch_job_command=f"SBMJOB CMD(CALL PGM({library}/{program}))",
        )

        if not self.host.start_debugging(config.to_dict()):
            self._step(StepResult.ERROR)
            return self._finish(f"Debug session for {library}/{program} failed to start.", config)
        self._step(StepResult.OK)
        logger.info("Started debug session for %s/%s", library, program)
        return self._finish(f"Debugging {library}/{program}.", config)


def detect_on_connect(
    session: ConnectionSession,
    host: EditorHost,
    certificates: DebugCertificates | None = None,
) -> DebugCertificateState:
    """Publish debug readiness as context flags right after connecting.

    Detection failures are logged and leave the remaining flags unset.

    Returns:
        What was found out about the certificates.
    """
    state = DebugCertificateState()
    if not debug_ptf_installed(session.connection):
        return state

    host.set_context(PTF_CONTEXT, True)
    certificates = certificates or DebugCertificates(session.connection)
    try:
        state.remote_exists = certificates.check_remote_exists()
        if not state.remote_exists:
            host.show_message(
                "Looks like you have the debug PTF installed. "
                "Run 'qsysbridge debug setup' to create the debug certificates."
            )
            return state
        host.set_context(REMOTE_CERT_CONTEXT, True)

        state.local_exists = certificates.check_local_exists()
        if state.local_exists:
            host.set_context(LOCAL_CERT_CONTEXT, True)
        else:
            outcome = DebugBootstrap(session, host, certificates).setup_local()
            state.local_exists = outcome.success
    except (QsysBridgeError, OSError) as e:
        logger.warning("Debug readiness check failed: %s", e)
    return state
