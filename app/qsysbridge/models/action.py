"""Action models for compile and build commands.

An ActionDefinition is a user-configured command template bound to resource
kinds and extensions. ActionRunResult captures the outcome of running one
against a resource.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from qsysbridge.models.diagnostic import Diagnostic
from qsysbridge.models.resource import ResourceIdentity, ResourceKind
from qsysbridge.utils.shell import CommandResult

# Environment a command line is executed in
ActionEnvironment = Literal["ile", "qsh", "pase"]

# Extension that makes an action applicable to every resource
GLOBAL_EXTENSION = "GLOBAL"


class RefreshScope(str, Enum):
    """What the object browser should reload after an action.

    Attributes:
        NONE: Nothing.
        PARENT: The container of the resource.
        FILTER: The filter that shows the resource.
        BROWSER: The whole object browser.
    """

    NONE = "no"
    PARENT = "parent"
    FILTER = "filter"
    BROWSER = "browser"


class ActionDefinition(BaseModel):
    """A configured Action.

    Attributes:
        name: Display name, unique per configuration document.
        command: One or more command lines separated by newlines.
        extensions: Applicable extensions (upper-case) or ``GLOBAL``.
        types: Resource kinds the action applies to.
        environment: Execution environment for every command line.
        refresh: Browser refresh scope applied afterwards.
        run_on_protected: Permit running against read-only resources.
        post_download: Paths to fetch afterwards (kept for document compatibility).
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: Annotated[str, Field(min_length=1, description="Action name")]
    command: Annotated[str, Field(min_length=1, description="Command template")]
    extensions: Annotated[list[str], Field(description="Applicable extensions")] = [
        GLOBAL_EXTENSION
    ]
    types: Annotated[
        list[ResourceKind],
        Field(alias="type", description="Applicable resource kinds"),
    ] = [ResourceKind.MEMBER, ResourceKind.STREAMFILE, ResourceKind.FILE]
    environment: Annotated[ActionEnvironment, Field(description="Execution environment")] = "ile"
    refresh: Annotated[RefreshScope, Field(description="Refresh scope")] = RefreshScope.NONE
    run_on_protected: Annotated[
        bool,
        Field(alias="runOnProtected", description="Allow read-only targets"),
    ] = False
    post_download: Annotated[
        list[str],
        Field(alias="postDownload", description="Paths fetched afterwards"),
    ] = []

    @field_validator("extensions")
    @classmethod
    def upper_extensions(cls, value: list[str]) -> list[str]:
        """Store extensions upper-cased so matching is case-insensitive."""
        return [ext.strip().upper() for ext in value if ext.strip()]

    @field_validator("types", mode="before")
    @classmethod
    def single_type(cls, value: object) -> object:
        """Accept a single kind string as well as a list."""
        if isinstance(value, str):
            return [value]
        return value

    @property
    def command_lines(self) -> list[str]:
        """Non-empty command lines, in declared order."""
        return [line.strip() for line in self.command.splitlines() if line.strip()]

    def matches(self, identity: ResourceIdentity) -> bool:
        """Check kind and extension applicability, ignoring protection."""
        if identity.kind not in self.types:
            return False
        if GLOBAL_EXTENSION in self.extensions:
            return True
        return identity.extension.upper() in self.extensions


class ActionRunStatus(str, Enum):
    """Final status of an action run.

    Attributes:
        SUCCEEDED: Every command line exited zero.
        FAILED: At least one command line exited non-zero.
        NO_ACTION: No action is configured for the resource.
        NOT_PERMITTED: Matching actions exist but none may run on a read-only target.
        CANCELLED: The user declined the save prompt.
    """

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NO_ACTION = "no_action"
    NOT_PERMITTED = "not_permitted"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class CommandOutcome:
    """Result of one substituted command line."""

    command: str
    result: CommandResult

    @property
    def success(self) -> bool:
        return self.result.success


@dataclass(frozen=True, slots=True)
class ActionRunResult:
    """Outcome of a run_action call.

    Attributes:
        status: Final status.
        message: Single user-facing summary.
        action: The action that ran, if one was chosen.
        outcomes: Per command line results, in execution order.
        diagnostics: Diagnostics published for the resource.
    """

    status: ActionRunStatus
    message: str
    action: ActionDefinition | None = None
    outcomes: tuple[CommandOutcome, ...] = field(default=())
    diagnostics: tuple[Diagnostic, ...] = field(default=())

    @property
    def success(self) -> bool:
        return self.status == ActionRunStatus.SUCCEEDED


_ACTION_LIST = TypeAdapter(list[ActionDefinition])


def parse_action_document(raw: Any) -> list[ActionDefinition]:
    """Validate an Action configuration document.

    Accepts a bare list of actions or an object with an ``actions`` list.

    Args:
        raw: Parsed JSON value.

    Returns:
        Validated actions, in document order.

    Raises:
        pydantic.ValidationError: If the document does not match the schema.
    """
    if isinstance(raw, dict) and "actions" in raw:
        raw = raw["actions"]
    return _ACTION_LIST.validate_python(raw)
