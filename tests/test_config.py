"""
Tests for fafcore.core.config — FafConfig defaults, env loading and validation.
"""

import pytest

from fafcore.core.config import CURRENT_SCORING_SYSTEM, DEFAULT_BONUS_RULES, FafConfig
from fafcore.core.scoring import TrustPolicy
from fafcore.exceptions import ConfigError, FafError


class TestFafConfigDefaults:

    def test_trusts_current_scoring_system(self):
        assert FafConfig().trusted_scoring_versions == frozenset({CURRENT_SCORING_SYSTEM})

    def test_checksum_length_default(self):
        assert FafConfig().checksum_length == 16

    def test_default_document_name(self):
        assert FafConfig().default_document == "project.faf"

    def test_bonus_rules_are_copied_per_instance(self):
        cfg = FafConfig()
        cfg.quality_bonuses["tests"] = 50
        assert DEFAULT_BONUS_RULES["tests"] == 2
        assert FafConfig().quality_bonuses["tests"] == 2

    def test_default_validates(self):
        assert FafConfig().validate() is True


class TestFafConfigFromEnv:

    def test_no_env_matches_defaults(self):
        cfg = FafConfig.from_env()
        assert cfg.trusted_scoring_versions == FafConfig().trusted_scoring_versions
        assert cfg.default_type is None
        assert cfg.checksum_length == 16
        assert cfg.log_level == "INFO"

    def test_trusted_versions_comma_list(self, monkeypatch):
        monkeypatch.setenv("FAF_TRUSTED_SCORING_VERSIONS", "2025-08-30, 2024-01-01 ,")
        cfg = FafConfig.from_env()
        assert cfg.trusted_scoring_versions == frozenset({"2025-08-30", "2024-01-01"})

    def test_empty_trusted_versions_trusts_nothing(self, monkeypatch):
        monkeypatch.setenv("FAF_TRUSTED_SCORING_VERSIONS", "")
        assert FafConfig.from_env().trusted_scoring_versions == frozenset()

    def test_project_type_and_checksum_length(self, monkeypatch):
        monkeypatch.setenv("FAF_PROJECT_TYPE", "cli")
        monkeypatch.setenv("FAF_CHECKSUM_LENGTH", "32")
        cfg = FafConfig.from_env()
        assert cfg.default_type == "cli"
        assert cfg.checksum_length == 32

    def test_log_level_upper_cased(self, monkeypatch):
        monkeypatch.setenv("FAF_LOG_LEVEL", "debug")
        assert FafConfig.from_env().log_level == "DEBUG"


class TestFafConfigValidation:

    @pytest.mark.parametrize("length", [0, 7, 65, 128])
    def test_checksum_length_out_of_range(self, length):
        with pytest.raises(ConfigError, match="checksum_length"):
            FafConfig(checksum_length=length).validate()

    @pytest.mark.parametrize("length", [8, 16, 64])
    def test_checksum_length_in_range(self, length):
        assert FafConfig(checksum_length=length).validate()

    def test_unknown_log_level(self):
        with pytest.raises(ConfigError, match="log level"):
            FafConfig(log_level="LOUD").validate()

    def test_config_error_hierarchy(self):
        with pytest.raises(ValueError):
            FafConfig(checksum_length=1).validate()
        assert issubclass(ConfigError, FafError)


class TestTrustPolicyFromConfig:

    def test_default_policy(self):
        assert FafConfig().trust_policy() == TrustPolicy.default()

    def test_empty_policy_is_strict(self):
        policy = FafConfig(trusted_scoring_versions=frozenset()).trust_policy()
        assert policy == TrustPolicy.strict()
        assert not policy.is_trusted(CURRENT_SCORING_SYSTEM)
