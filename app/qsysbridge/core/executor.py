"""Action execution and compiler diagnostics publishing.

Provides the Action run pipeline (select, save, substitute, run, publish)
and the "open errors" helpers that load diagnostics from an existing
EVFEVENT member. Everything user-facing goes through the EditorHost.
"""

from __future__ import annotations

import logging
import posixpath
from typing import TYPE_CHECKING

from qsysbridge.core.diagnostics import parse_event_output
from qsysbridge.core.errors import InvalidResourceUriError, RemoteCommandError
from qsysbridge.core.uri import decode, get_uri_from_path, normalize
from qsysbridge.models.action import (
    ActionDefinition,
    ActionRunResult,
    ActionRunStatus,
    CommandOutcome,
    RefreshScope,
)
from qsysbridge.models.resource import ResourceIdentity, ResourceKind
from qsysbridge.remote.base import RemoteCommand
from qsysbridge.utils.shell import CommandResult

if TYPE_CHECKING:
    from qsysbridge.core.session import ConnectionSession
    from qsysbridge.editor.host import EditorHost
    from qsysbridge.models.diagnostic import Diagnostic

logger = logging.getLogger(__name__)

# Source file holding compiler event records
EVENT_FILE = "EVFEVENT"

SAVE = "Save"
SAVE_AUTOMATICALLY = "Save automatically"
CANCEL = "Cancel"


def build_variables(session: ConnectionSession, identity: ResourceIdentity) -> dict[str, str]:
    """Collect the substitution variables for a resource.

    Args:
        session: Active session (current library, user and host).
        identity: Resource the action runs against.

    Returns:
        Mapping of ``&VARIABLE`` to its value.
    """
    connection = session.connection
    variables = {
        "&CURLIB": session.settings.current_library,
        "&USERNAME": connection.current_user,
        "&HOST": connection.current_host,
        "&NAME": identity.name,
        "&EXT": identity.extension,
        "&BASENAME": identity.basename,
    }

    if identity.kind == ResourceKind.MEMBER:
        variables["&LIBRARY"] = identity.library or ""
        variables["&PARENT"] = identity.source_file or ""
        variables["&FULLPATH"] = f"{identity.library_or_path}/{identity.basename}"
    elif identity.kind == ResourceKind.OBJECT:
        variables["&LIBRARY"] = identity.library_or_path
        variables["&PARENT"] = identity.library_or_path
        variables["&FULLPATH"] = f"{identity.library_or_path}/{identity.basename}"
    else:
        variables["&LIBRARY"] = session.settings.current_library
        variables["&PARENT"] = posixpath.basename(identity.library_or_path.rstrip("/"))
        variables["&FULLPATH"] = identity.path

    return variables


def substitute(command: str, variables: dict[str, str]) -> str:
    """Replace ``&VARIABLE`` references, longest names first.

    Longer names go first so that ``&NAME`` never eats the start of a
    longer variable such as ``&NAMEX``.
    """
    for name in sorted(variables, key=len, reverse=True):
        command = command.replace(name, variables[name])
    return command


def select_actions(
    actions: list[ActionDefinition],
    identity: ResourceIdentity,
    protected: bool,
) -> tuple[list[ActionDefinition], bool]:
    """Pick the actions that may run against a resource.

    Args:
        actions: Configured actions.
        identity: Target resource.
        protected: Whether the target is protected (see
            ConnectionSession.is_protected).

    Returns:
        Tuple of (eligible actions, blocked). ``blocked`` is True when some
        actions matched but every one of them was excluded by protection.
    """
    matching = [action for action in actions if action.matches(identity)]
    if not protected:
        return matching, False
    eligible = [action for action in matching if action.run_on_protected]
    return eligible, bool(matching) and not eligible


def _choose_action(
    host: EditorHost,
    candidates: list[ActionDefinition],
    action_name: str | None,
) -> ActionDefinition | None:
    if action_name is not None:
        wanted = action_name.casefold()
        return next((a for a in candidates if a.name.casefold() == wanted), None)
    if len(candidates) == 1:
        return candidates[0]
    choice = host.show_message("Select an action", *(a.name for a in candidates))
    return next((a for a in candidates if a.name == choice), None)


def ensure_saved(session: ConnectionSession, host: EditorHost, uri: str) -> bool:
    """Make sure an open document is saved before it is compiled.

    Returns:
        False if the user cancelled or saving failed.
    """
    document = host.documents.get(uri)
    if document is None or not document.is_dirty:
        return True

    if session.settings.auto_save_before_action:
        return host.save_document(document)

    choice = host.show_message(
        "The file must be saved to run Actions.",
        SAVE,
        SAVE_AUTOMATICALLY,
        CANCEL,
        level="warning",
        modal=True,
    )
    if choice == SAVE_AUTOMATICALLY:
        session.update_settings(auto_save_before_action=True)
        return host.save_document(document)
    if choice == SAVE:
        return host.save_document(document)
    return False


def _event_source(identity: ResourceIdentity) -> str:
    if identity.kind == ResourceKind.MEMBER:
        return f"{identity.library}/{identity.source_file}/{identity.name}".upper()
    return identity.path


def _source_uri(source: str) -> str | None:
    try:
        return get_uri_from_path(source)
    except InvalidResourceUriError:
        logger.debug("Cannot map diagnostic source %r to a resource", source)
        return None


def publish_diagnostics(
    host: EditorHost,
    uri: str,
    identity: ResourceIdentity,
    output: str,
) -> list[Diagnostic]:
    """Parse command output and replace the published diagnostics.

    Diagnostics for the resource itself always replace what was published
    for ``uri``, so an empty result clears stale entries. Diagnostics for
    other sources (copybooks, includes) are published under their own URI.
    Event sources are matched by resource identity, so an IFS path
    reported in a different case still belongs to ``uri``.

    Returns:
        Diagnostics published for ``uri``.
    """
    own_source = _event_source(identity)
    own_key = normalize(uri)
    grouped = parse_event_output(output, default_source=own_source)

    own: list[Diagnostic] = []
    others: dict[str, tuple[str, list[Diagnostic]]] = {}
    for source, diagnostics in grouped.items():
        source_uri = _source_uri(source)
        if source == own_source or (source_uri is not None and normalize(source_uri) == own_key):
            own.extend(diagnostics)
        elif source_uri is not None:
            others.setdefault(normalize(source_uri), (source_uri, []))[1].extend(diagnostics)

    for source_uri, diagnostics in others.values():
        host.set_diagnostics(source_uri, diagnostics)

    host.set_diagnostics(uri, own)
    return own


def _cwd_for(identity: ResourceIdentity) -> str | None:
    if identity.kind == ResourceKind.STREAMFILE:
        return identity.library_or_path
    return None


def run_action(
    session: ConnectionSession,
    uri: str,
    *,
    host: EditorHost,
    action_name: str | None = None,
) -> ActionRunResult:
    """Run a configured Action against a resource.

    Args:
        session: Active connection session.
        uri: Target resource URI (member, streamfile, object or local file).
        host: Editor host for prompts, saving and diagnostics.
        action_name: Run this action instead of asking when several match.

    Returns:
        The run outcome. Remote command failures are reported as
        ``FAILED``; they do not raise.

    Raises:
        NotConnectedError: If the session has no live connection.
        InvalidResourceUriError: If ``uri`` is malformed.
    """
    connection = session.require_connection()
    identity = decode(uri)
    protected = session.is_protected(identity)

    candidates, blocked = select_actions(session.get_actions(), identity, protected)
    if blocked:
        message = f"No action may run on {identity.basename}: the resource is protected."
        host.show_message(message, level="error")
        return ActionRunResult(ActionRunStatus.NOT_PERMITTED, message)
    if not candidates:
        ext = identity.extension.upper() or identity.kind.value
        message = f"No actions available for {ext}."
        host.show_message(message, level="warning")
        return ActionRunResult(ActionRunStatus.NO_ACTION, message)

    action = _choose_action(host, candidates, action_name)
    if action is None:
        if action_name is not None:
            message = f"Action {action_name!r} is not available for {identity.basename}."
            host.show_message(message, level="warning")
            return ActionRunResult(ActionRunStatus.NO_ACTION, message)
        return ActionRunResult(ActionRunStatus.CANCELLED, "Action cancelled.")

    if not ensure_saved(session, host, uri):
        return ActionRunResult(ActionRunStatus.CANCELLED, "Action cancelled.", action=action)

    variables = build_variables(session, identity)
    outcomes: list[CommandOutcome] = []
    for line in action.command_lines:
        command = substitute(line, variables)
        logger.info("Running action %r: %s", action.name, command)
        try:
            result = connection.run_command(
                RemoteCommand(
                    command=command, environment=action.environment, cwd=_cwd_for(identity)
                )
            )
        except RemoteCommandError as e:
            # Later lines still run; the line counts as failed
            result = CommandResult(stdout="", stderr=str(e), returncode=-1, command=command)
        if not result.success:
            logger.warning("Command failed with exit code %d: %s", result.returncode, command)
        outcomes.append(CommandOutcome(command=command, result=result))

    output = "\n".join(outcome.result.output for outcome in outcomes)
    diagnostics = publish_diagnostics(host, uri, identity, output)

    if action.refresh != RefreshScope.NONE:
        host.refresh_tree(action.refresh, uri)

    failed = [outcome for outcome in outcomes if not outcome.success]
    if failed:
        status = ActionRunStatus.FAILED
        message = f"Action {action.name} for {identity.basename} was not successful."
    else:
        status = ActionRunStatus.SUCCEEDED
        message = f"Action {action.name} for {identity.basename} was successful."
    host.show_message(message, level="error" if failed else "info")

    return ActionRunResult(
        status,
        message,
        action=action,
        outcomes=tuple(outcomes),
        diagnostics=tuple(diagnostics),
    )


def resolve_error_target(text: str) -> tuple[str, str, str | None]:
    """Parse ``LIB/OBJECT[.EXT]`` as typed for "open errors".

    Returns:
        Tuple of (library, object, extension or None), upper-cased.

    Raises:
        InvalidResourceUriError: If the text is not ``LIB/OBJECT``.
    """
    parts = [part.strip() for part in text.strip().split("/")]
    if len(parts) != 2 or not all(parts):
        msg = f"Expected LIB/OBJECT, got {text!r}"
        raise InvalidResourceUriError(msg)
    library, obj = parts[0].upper(), parts[1].upper()
    extension: str | None = None
    if "." in obj:
        obj, extension = obj.rsplit(".", 1)
    return library, obj, extension


def refresh_diagnostics(
    session: ConnectionSession,
    host: EditorHost,
    library: str,
    object_name: str,
    extension: str | None = None,
) -> dict[str, list[Diagnostic]]:
    """Load diagnostics from the ``LIB/EVFEVENT/OBJECT`` member and publish them.

    Args:
        session: Active connection session.
        host: Diagnostics sink.
        library: Library holding the EVFEVENT file.
        object_name: Compiled object (also the event member name).
        extension: Source extension appended to member sources named like
            the object, so diagnostics land on the edited document.

    Returns:
        Published diagnostics keyed by URI.

    Raises:
        NotConnectedError: If the session has no live connection.
        NotFoundError: If the event member does not exist.
    """
    connection = session.require_connection()
    content = connection.download_member(library.upper(), EVENT_FILE, object_name.upper())
    grouped = parse_event_output(content)

    published: dict[str, list[Diagnostic]] = {}
    for source, diagnostics in grouped.items():
        if extension and not source.startswith("/") and source.endswith(f"/{object_name.upper()}"):
            source = f"{source}.{extension.upper()}"
        source_uri = _source_uri(source)
        if source_uri is None:
            continue
        host.set_diagnostics(source_uri, diagnostics)
        published[source_uri] = diagnostics

    logger.debug("Published diagnostics for %d sources from %s/%s", len(published), library, object_name)
    return published


def clear_diagnostics(host: EditorHost) -> None:
    """Remove every published diagnostic."""
    host.clear_diagnostics()
