import pytest

from scripts.user_audit.config import DEFAULT_LOOKUP_URL, AuditConfig, load_config
from scripts.user_audit.errors import ConfigurationError


class TestLoadConfig:
    def test_defaults(self, clean_env):
        config = load_config()

        assert config == AuditConfig()
        assert config.provider == "aws_iam"
        assert config.concurrency == 10
        assert config.name_filters == ()
        assert config.group_filters == ()
        assert config.output_path == "awsusers.csv"
        assert config.lookup_url_template == DEFAULT_LOOKUP_URL
        assert config.identity_center is None
        assert config.aws.region is None
        assert config.aws.retry_mode == "adaptive"

    def test_reads_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("AUDIT_PROVIDER", "aws_identity_center")
        monkeypatch.setenv("AUDIT_USER_FILTERS", "^a, ^c ,")
        monkeypatch.setenv("AUDIT_GROUP_FILTERS", "^adm")
        monkeypatch.setenv("AUDIT_CONCURRENCY", "4")
        monkeypatch.setenv("AUDIT_OUTPUT_FORMAT", "JSON")
        monkeypatch.setenv("AUDIT_INCLUDE_GROUPS", "true")
        monkeypatch.setenv("AUDIT_FAIL_ON_ITEM_ERRORS", "1")
        monkeypatch.setenv("AWS_REGION", "eu-west-2")
        monkeypatch.setenv("AWS_MAX_ATTEMPTS", "9")
        monkeypatch.setenv("AWS_IDENTITY_STORE_ID", "d-1234567890")

        config = load_config()

        assert config.provider == "aws_identity_center"
        assert config.name_filters == ("^a", "^c")
        assert config.group_filters == ("^adm",)
        assert config.concurrency == 4
        assert config.output_format == "json"
        assert config.include_groups is True
        assert config.fail_on_item_errors is True
        assert config.aws.region == "eu-west-2"
        assert config.aws.max_attempts == 9
        assert config.identity_center.identity_store_id == "d-1234567890"

    @pytest.mark.parametrize("name", ["AUDIT_CONCURRENCY", "AWS_MAX_ATTEMPTS"])
    def test_non_integer_is_rejected(self, clean_env, monkeypatch, name):
        monkeypatch.setenv(name, "ten")
        with pytest.raises(ConfigurationError, match=name):
            load_config()

    def test_unknown_output_format(self, clean_env, monkeypatch):
        monkeypatch.setenv("AUDIT_OUTPUT_FORMAT", "xml")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_configuration_error_is_a_value_error(self):
        assert issubclass(ConfigurationError, ValueError)
