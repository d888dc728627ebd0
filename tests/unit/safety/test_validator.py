"""Unit tests for the path validator."""

import os
from pathlib import Path

import pytest
from mole.core.errors import ValidationRejected
from mole.safety.models import RejectionReason, ValidationResult
from mole.safety.protected import ProtectionRule
from mole.safety.validator import PathValidator
from mole.safety.whitelist import Whitelist


@pytest.fixture
def default_validator() -> PathValidator:
    """Validator with the built-in rule for a fixed home directory."""
    return PathValidator(ProtectionRule.default(home="/home/alice"), Whitelist())


class TestValidate:
    """Tests for PathValidator.validate."""

    @pytest.mark.parametrize("path", [None, "", "   "])
    def test_empty(self, default_validator: PathValidator, path: str | None) -> None:
        """Unset, empty and whitespace-only paths are rejected."""
        assert default_validator.validate(path).reason == RejectionReason.EMPTY

    @pytest.mark.parametrize("path", ["/mole-test/a\nb", "/mole-test/\x00", "/mole-test/\x7f"])
    def test_control_characters(self, default_validator: PathValidator, path: str) -> None:
        """Paths with control characters are rejected."""
        result = default_validator.validate(path)

        assert result.reason == RejectionReason.CONTROL_CHARACTER

    def test_relative(self, default_validator: PathValidator) -> None:
        """Relative paths are rejected."""
        result = default_validator.validate("build/output")

        assert result.reason == RejectionReason.RELATIVE

    def test_relative_allowed_when_not_required(self, default_validator: PathValidator) -> None:
        """require_absolute=False skips the relative check."""
        assert default_validator.validate("build/output", require_absolute=False).ok

    @pytest.mark.parametrize("path", ["/mole-test/../etc", "/mole-test/a/..", "/.."])
    def test_traversal(self, default_validator: PathValidator, path: str) -> None:
        """Any ".." segment is rejected."""
        assert default_validator.validate(path).reason == RejectionReason.TRAVERSAL

    def test_dots_inside_names_are_allowed(self, default_validator: PathValidator) -> None:
        """Names like "..cache" are not traversal segments."""
        assert default_validator.validate("/mole-test/..cache/x...y").ok

    @pytest.mark.parametrize(
        "path",
        ["/", "/etc", "/etc/passwd", "/usr/local/bin", "/System/Library", "/home/alice"],
    )
    def test_protected(self, default_validator: PathValidator, path: str) -> None:
        """Protected locations are rejected."""
        assert default_validator.validate(path).reason == RejectionReason.PROTECTED

    def test_protected_after_normalization(self, default_validator: PathValidator) -> None:
        """Redundant separators do not bypass protection."""
        result = default_validator.validate("//etc//ssh/")

        assert result.reason == RejectionReason.PROTECTED

    def test_check_order(self, default_validator: PathValidator) -> None:
        """Control characters are reported before protection."""
        result = default_validator.validate("/etc/\n")

        assert result.reason == RejectionReason.CONTROL_CHARACTER

    def test_whitelisted(self) -> None:
        """Whitelisted paths and their subtrees are rejected."""
        validator = PathValidator(
            ProtectionRule(exact=frozenset({"/"})),
            Whitelist.from_entries(["/mole-test/keep"]),
        )

        assert validator.validate("/mole-test/keep").reason == RejectionReason.WHITELISTED
        assert validator.validate("/mole-test/keep/x").reason == RejectionReason.WHITELISTED
        assert validator.validate("/mole-test/keeper").ok

    def test_accepts_ordinary_path(self, default_validator: PathValidator) -> None:
        """An ordinary absolute path passes and is returned unchanged."""
        result = default_validator.validate("/mole-test/project/node_modules")

        assert result == ValidationResult(path="/mole-test/project/node_modules")
        assert result.ok
        assert result

    def test_accepts_pathlike(self, default_validator: PathValidator) -> None:
        """os.PathLike inputs are accepted."""
        result = default_validator.validate(Path("/mole-test/cache"))

        assert result.ok
        assert result.path == "/mole-test/cache"

    def test_symlinked_parent_into_protected_tree(self, tmp_path: Path) -> None:
        """A path whose parent resolves into a protected tree is rejected."""
        secure = tmp_path / "secure"
        secure.mkdir()
        (tmp_path / "link").symlink_to(secure)
        validator = PathValidator(
            ProtectionRule(prefixes=frozenset({os.path.realpath(secure)})),
            Whitelist(),
        )

        result = validator.validate(str(tmp_path / "link" / "file"))

        assert result.reason == RejectionReason.PROTECTED

    def test_final_symlink_is_not_followed(self, tmp_path: Path) -> None:
        """A symlink pointing into a protected tree is itself deletable."""
        secure = tmp_path / "secure"
        secure.mkdir()
        (tmp_path / "link").symlink_to(secure)
        validator = PathValidator(
            ProtectionRule(prefixes=frozenset({os.path.realpath(secure)})),
            Whitelist(),
        )

        assert validator.validate(str(tmp_path / "link")).ok

    @pytest.mark.parametrize("suffix", ["/", "//", "/."])
    def test_trailing_slash_follows_symlink_into_protected_tree(
        self, tmp_path: Path, suffix: str
    ) -> None:
        """A trailing slash names the link target, so the target is checked too."""
        secure = tmp_path / "secure"
        secure.mkdir()
        (tmp_path / "link").symlink_to(secure)
        validator = PathValidator(
            ProtectionRule(prefixes=frozenset({os.path.realpath(secure)})),
            Whitelist(),
        )

        result = validator.validate(f"{tmp_path / 'link'}{suffix}")

        assert result.reason == RejectionReason.PROTECTED

    def test_trailing_slash_follows_symlink_into_whitelist(self, tmp_path: Path) -> None:
        """The whitelist is checked against the link target as well."""
        kept = tmp_path / "kept"
        kept.mkdir()
        (tmp_path / "link").symlink_to(kept)
        validator = PathValidator(
            ProtectionRule(exact=frozenset({"/"})),
            Whitelist.from_entries([os.path.realpath(kept)]),
        )

        assert validator.validate(f"{tmp_path / 'link'}/").reason == RejectionReason.WHITELISTED

    @pytest.mark.parametrize(
        "path",
        ["/mole-test/cache/", "/mole-test//cache", "/mole-test/./cache/."],
    )
    def test_accepted_path_is_normalized(
        self, default_validator: PathValidator, path: str
    ) -> None:
        """Accepted paths come back without trailing slashes or "." segments."""
        assert default_validator.validate(path).path == "/mole-test/cache"

    def test_rejected_path_is_returned_as_given(self, default_validator: PathValidator) -> None:
        """Rejections report the caller's input unchanged."""
        assert default_validator.validate("//etc//ssh/").path == "//etc//ssh/"


class TestRequire:
    """Tests for PathValidator.require."""

    def test_returns_path(self, default_validator: PathValidator) -> None:
        """A valid path is returned as a string."""
        assert default_validator.require("/mole-test/cache") == "/mole-test/cache"

    def test_raises_with_reason(self, default_validator: PathValidator) -> None:
        """A rejected path raises ValidationRejected carrying the reason."""
        with pytest.raises(ValidationRejected) as exc_info:
            default_validator.require("/etc")

        assert exc_info.value.reason == RejectionReason.PROTECTED
        assert exc_info.value.path == "/etc"


class TestIsProtected:
    """Tests for PathValidator.is_protected."""

    def test_protected_and_whitelisted(self) -> None:
        """Both the protection rule and the whitelist count."""
        validator = PathValidator(
            ProtectionRule(prefixes=frozenset({"/etc"})),
            Whitelist.from_entries(["/mole-test/keep"]),
        )

        assert validator.is_protected("/etc/hosts")
        assert validator.is_protected("/mole-test/keep/file")
        assert not validator.is_protected("/mole-test/other")

    def test_defaults(self) -> None:
        """Without arguments the default rule and an empty whitelist apply."""
        validator = PathValidator()

        assert validator.is_protected("/usr/bin")
        assert len(validator.whitelist) == 0
