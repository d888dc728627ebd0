"""Unit tests for the exception hierarchy."""

from mole.core.errors import (
    DeletionFailed,
    MoleError,
    SettingsError,
    SupervisorError,
    SymlinkRefused,
    TimedOut,
    ValidationRejected,
)
from mole.safety.models import RejectionReason


class TestErrors:
    """Tests for mole exceptions."""

    def test_all_derive_from_base(self) -> None:
        """Every exception can be caught as MoleError."""
        for exc_type in (DeletionFailed, SettingsError, SupervisorError):
            assert issubclass(exc_type, MoleError)
        assert isinstance(SymlinkRefused("/x"), MoleError)

    def test_validation_rejected_message(self) -> None:
        """The message names the reason and the path."""
        error = ValidationRejected(RejectionReason.TRAVERSAL, "/a/../b")

        assert error.reason == RejectionReason.TRAVERSAL
        assert "traversal" in str(error)
        assert "/a/../b" in str(error)

    def test_timed_out_message(self) -> None:
        """The message names the bound and the command."""
        error = TimedOut(5, ("rm", "-rf", "/data/x"))

        assert error.command == ["rm", "-rf", "/data/x"]
        assert str(error) == "Command timed out after 5s: rm -rf /data/x"
