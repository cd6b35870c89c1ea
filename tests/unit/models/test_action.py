"""Unit tests for Action models.

Tests for ActionDefinition parsing and matching, and the Action document.
"""

import pytest
from pydantic import ValidationError
from qsysbridge.models.action import (
    ActionDefinition,
    ActionRunResult,
    ActionRunStatus,
    RefreshScope,
    parse_action_document,
)
from qsysbridge.models.resource import ResourceIdentity, ResourceKind

MEMBER = ResourceIdentity(ResourceKind.MEMBER, "DEVLIB/QRPGLESRC", "HELLO", "rpgle")
STREAMFILE = ResourceIdentity(ResourceKind.STREAMFILE, "/home/dev", "hello", "sqlrpgle")


class TestActionDefinition:
    """Tests for ActionDefinition model."""

    def test_parses_document_field_names(self) -> None:
        """Camel-case document keys map to fields."""
        action = ActionDefinition.model_validate(
            {
                "name": "Create Bound RPG Program",
                "command": "CRTBNDRPG PGM(&LIBRARY/&NAME)",
                "extensions": ["rpgle"],
                "type": "member",
                "environment": "ile",
                "refresh": "parent",
                "runOnProtected": True,
                "postDownload": ["/tmp/out"],
            }
        )

        assert action.extensions == ["RPGLE"]
        assert action.types == [ResourceKind.MEMBER]
        assert action.refresh == RefreshScope.PARENT
        assert action.run_on_protected is True
        assert action.post_download == ["/tmp/out"]

    def test_defaults(self) -> None:
        """An action defaults to every kind and GLOBAL."""
        action = ActionDefinition(name="Echo", command="echo hi")

        assert action.extensions == ["GLOBAL"]
        assert action.environment == "ile"
        assert action.refresh == RefreshScope.NONE
        assert action.run_on_protected is False

    def test_unknown_environment_rejected(self) -> None:
        """Only ile, qsh and pase are valid environments."""
        with pytest.raises(ValidationError):
            ActionDefinition(name="Bad", command="x", environment="bash")

    def test_command_lines_skip_blank_lines(self) -> None:
        """Each non-empty line is one command."""
        action = ActionDefinition(name="Two", command="CHGCURLIB DEVLIB\n\n  CRTBNDRPG X  \n")

        assert action.command_lines == ["CHGCURLIB DEVLIB", "CRTBNDRPG X"]

    def test_matches_extension_case_insensitively(self) -> None:
        """Extensions match regardless of case."""
        action = ActionDefinition(name="RPG", command="x", extensions=["RPGLE"], type=["member"])

        assert action.matches(MEMBER)
        assert not action.matches(STREAMFILE)

    def test_global_matches_any_extension(self) -> None:
        """GLOBAL matches every extension of an applicable kind."""
        action = ActionDefinition(name="Any", command="x", extensions=["GLOBAL"], type="streamfile")

        assert action.matches(STREAMFILE)
        assert not action.matches(MEMBER)


class TestParseActionDocument:
    """Tests for parse_action_document function."""

    def test_accepts_bare_list(self) -> None:
        """A bare list is a valid document."""
        actions = parse_action_document([{"name": "A", "command": "x"}])

        assert [a.name for a in actions] == ["A"]

    def test_accepts_actions_object(self) -> None:
        """An object with an actions list is a valid document."""
        actions = parse_action_document({"actions": [{"name": "A", "command": "x"}]})

        assert len(actions) == 1

    def test_invalid_document_raises(self) -> None:
        """Validation errors propagate."""
        with pytest.raises(ValidationError):
            parse_action_document([{"name": "A"}])


class TestActionRunResult:
    """Tests for ActionRunResult."""

    def test_success_only_when_succeeded(self) -> None:
        """Only SUCCEEDED counts as success."""
        assert ActionRunResult(ActionRunStatus.SUCCEEDED, "ok").success
        assert not ActionRunResult(ActionRunStatus.NO_ACTION, "none").success
