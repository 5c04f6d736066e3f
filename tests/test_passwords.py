"""
Tests for password hashing and strength rules.
"""

import pytest

from legalvibes.auth.passwords import SPECIAL_CHARACTERS, PasswordPolicy
from legalvibes.errors import ValidationError


@pytest.fixture
def policy():
    return PasswordPolicy(iterations=1_000)


# =============================================================================
# Hashing
# =============================================================================


class TestHashing:
    def test_verify_accepts_original_password(self, policy):
        hashed = policy.hash("Str0ng!Pass")
        assert policy.verify("Str0ng!Pass", hashed)

    def test_verify_rejects_other_password(self, policy):
        hashed = policy.hash("Str0ng!Pass")
        assert not policy.verify("str0ng!Pass", hashed)
        assert not policy.verify("Str0ng!Pas", hashed)

    def test_same_password_hashes_differently(self, policy):
        first = policy.hash("Str0ng!Pass")
        second = policy.hash("Str0ng!Pass")

        assert first != second
        assert policy.verify("Str0ng!Pass", first)
        assert policy.verify("Str0ng!Pass", second)

    def test_hash_embeds_work_factor(self, policy):
        iterations, salt, digest = policy.hash("Str0ng!Pass").split(":")
        assert iterations == "1000"
        assert salt and digest

    def test_hash_from_other_work_factor_still_verifies(self, policy):
        hashed = PasswordPolicy(iterations=2_000).hash("Str0ng!Pass")
        assert policy.verify("Str0ng!Pass", hashed)

    def test_empty_password_cannot_be_hashed(self, policy):
        with pytest.raises(ValidationError):
            policy.hash("")

    @pytest.mark.parametrize("bad_hash", ["", "nonsense", "a:b", "x:salt:digest", "0:salt:digest"])
    def test_malformed_hash_never_verifies(self, policy, bad_hash):
        assert policy.verify("Str0ng!Pass", bad_hash) is False

    def test_empty_password_never_verifies(self, policy):
        assert policy.verify("", policy.hash("Str0ng!Pass")) is False


# =============================================================================
# Strength
# =============================================================================


class TestStrength:
    def test_strong_password_passes(self, policy):
        result = policy.validate_strength("Str0ng!Pass")
        assert result.valid
        assert result.reason is None

    @pytest.mark.parametrize(
        "password, reason",
        [
            ("", "Password is required"),
            (None, "Password is required"),
            ("Ab1!", "Password must be at least 8 characters long"),
            ("Ab1!" + "a" * 125, "Password must not exceed 128 characters"),
            ("lowercase1!", "Password must contain at least one uppercase letter"),
            ("UPPERCASE1!", "Password must contain at least one lowercase letter"),
            ("NoDigits!!", "Password must contain at least one number"),
            ("NoSpecial1", f"Password must contain at least one special character ({SPECIAL_CHARACTERS})"),
        ],
    )
    def test_first_failed_rule_is_reported(self, policy, password, reason):
        result = policy.validate_strength(password)
        assert not result.valid
        assert result.reason == reason

    def test_short_password_reports_length_before_character_classes(self, policy):
        assert policy.validate_strength("abc").reason == "Password must be at least 8 characters long"

    def test_boundaries(self, policy):
        assert policy.validate_strength("Abcdef1!").valid  # exactly 8
        assert policy.validate_strength("Ab1!" + "a" * 124).valid  # exactly 128
