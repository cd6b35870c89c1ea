"""Unit tests for ResourceIdentity.

Tests for paths, qualified names and identity comparison.
"""

import pytest
from qsysbridge.models.resource import ResourceIdentity, ResourceKind, is_case_sensitive_path


class TestResourceIdentity:
    """Tests for ResourceIdentity construction and properties."""

    def test_member_path(self) -> None:
        """Member path is /LIB/FILE/NAME.EXT."""
        identity = ResourceIdentity(ResourceKind.MEMBER, "DEVLIB/QRPGLESRC", "HELLO", "RPGLE")

        assert identity.path == "/DEVLIB/QRPGLESRC/HELLO.RPGLE"
        assert identity.library == "DEVLIB"
        assert identity.source_file == "QRPGLESRC"
        assert identity.qualified_name == "DEVLIB/QRPGLESRC(HELLO)"

    def test_member_path_with_asp(self) -> None:
        """An ASP prefixes the member path."""
        identity = ResourceIdentity(
            ResourceKind.MEMBER, "DEVLIB/QRPGLESRC", "HELLO", "RPGLE", asp="IASP1"
        )

        assert identity.path == "/IASP1/DEVLIB/QRPGLESRC/HELLO.RPGLE"

    def test_object_path(self) -> None:
        """Object path is /LIB/NAME.TYPE."""
        identity = ResourceIdentity(ResourceKind.OBJECT, "DEVLIB", "HELLO", "PGM")

        assert identity.path == "/DEVLIB/HELLO.PGM"
        assert identity.library == "DEVLIB"
        assert identity.qualified_name == "DEVLIB/HELLO"

    def test_streamfile_path(self) -> None:
        """Stream file path joins the directory and the basename."""
        identity = ResourceIdentity(ResourceKind.STREAMFILE, "/home/dev", "hello", "rpgle")

        assert identity.path == "/home/dev/hello.rpgle"
        assert identity.library is None
        assert identity.source_file is None

    def test_empty_name_rejected(self) -> None:
        """A resource needs a name."""
        with pytest.raises(ValueError, match="name cannot be empty"):
            ResourceIdentity(ResourceKind.STREAMFILE, "/home", "")

    def test_member_container_must_be_library_and_file(self) -> None:
        """Member containers are exactly LIB/SRCFILE."""
        with pytest.raises(ValueError, match="LIB/SRCFILE"):
            ResourceIdentity(ResourceKind.MEMBER, "DEVLIB", "HELLO")


class TestSameResource:
    """Tests for identity comparison."""

    def test_members_compare_case_insensitively(self) -> None:
        """Member identity ignores case."""
        a = ResourceIdentity(ResourceKind.MEMBER, "devlib/qrpglesrc", "hello", "rpgle")
        b = ResourceIdentity(ResourceKind.MEMBER, "DEVLIB/QRPGLESRC", "HELLO", "RPGLE")

        assert a.same_resource(b)

    def test_readonly_does_not_change_identity(self) -> None:
        """The readonly flag is not part of the identity."""
        a = ResourceIdentity(ResourceKind.STREAMFILE, "/home/dev", "a", "txt")
        b = ResourceIdentity(ResourceKind.STREAMFILE, "/home/dev", "a", "txt", readonly=True)

        assert a.same_resource(b)

    def test_qopensys_streamfiles_are_case_sensitive(self) -> None:
        """Stream files under /QOpenSys/ compare exactly."""
        a = ResourceIdentity(ResourceKind.STREAMFILE, "/QOpenSys/etc", "Profile")
        b = ResourceIdentity(ResourceKind.STREAMFILE, "/QOpenSys/etc", "profile")

        assert a.is_case_sensitive
        assert not a.same_resource(b)

    def test_different_kinds_differ(self) -> None:
        """Same path under different schemes are different resources."""
        a = ResourceIdentity(ResourceKind.STREAMFILE, "/home", "a")
        b = ResourceIdentity(ResourceKind.FILE, "/home", "a")

        assert not a.same_resource(b)


class TestIsCaseSensitivePath:
    """Tests for is_case_sensitive_path function."""

    @pytest.mark.parametrize(
        ("kind", "path", "expected"),
        [
            (ResourceKind.STREAMFILE, "/QOpenSys/usr/bin/x", True),
            (ResourceKind.STREAMFILE, "/qopensys/usr/bin/x", True),
            (ResourceKind.STREAMFILE, "/home/dev/x", False),
            (ResourceKind.MEMBER, "/QOpenSys/A/B", False),
            (ResourceKind.FILE, "/QOpenSys/x", False),
        ],
    )
    def test_only_streamfiles_under_root(self, kind: ResourceKind, path: str, expected: bool) -> None:
        """Only stream files under the root are case sensitive."""
        assert is_case_sensitive_path(kind, path) is expected
