"""Tests for role registry loading and validation."""

import json

import pytest

from imds_switch.config_file import RegistryFile, load_registry
from imds_switch.config_schema import RegistryConfig
from imds_switch.errors import ConfigFileError


def write_registry(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
    return path


class TestPathResolution:
    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("IMDS_SWITCH_CONFIG", str(tmp_path / "env.json"))

        registry_file = RegistryFile(path=tmp_path / "explicit.json")

        assert registry_file.path == tmp_path / "explicit.json"

    def test_environment_variable_used_without_explicit_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("IMDS_SWITCH_CONFIG", str(tmp_path / "env.json"))

        assert RegistryFile().path == tmp_path / "env.json"

    def test_xdg_profile_path(self, tmp_path):
        registry_file = RegistryFile(profile="lab")

        assert registry_file.path == tmp_path / "xdg" / "imds-switch" / "lab.json"

    def test_list_profiles(self, tmp_path, registry_data):
        base_dir = tmp_path / "xdg" / "imds-switch"
        write_registry(base_dir / "default.json", registry_data)
        write_registry(base_dir / "lab.json", registry_data)

        assert RegistryFile().list_profiles() == ["default", "lab"]

    def test_list_profiles_without_directory(self):
        assert RegistryFile().list_profiles() == []


class TestLoading:
    def test_load_valid_registry(self, registry_path):
        registry = load_registry(registry_path)

        assert isinstance(registry, RegistryConfig)
        assert registry.default_role == "dev"
        assert list(registry.roles) == ["dev", "prod"]
        assert registry.roles["prod"].arn == "arn:aws:iam::222:role/prod"
        assert registry.credentials.region == "us-east-1"

    def test_load_from_profile(self, tmp_path, registry_data):
        write_registry(tmp_path / "xdg" / "imds-switch" / "work.json", registry_data)

        registry = load_registry(profile="work")

        assert registry.default_role == "dev"

    def test_camel_case_keys_accepted(self, tmp_path):
        path = write_registry(
            tmp_path / "camel.json",
            {
                "defaultRole": "dev",
                "roles": {"dev": {"arn": "arn:aws:iam::111:role/dev", "sessionName": "dev-session"}},
            },
        )

        registry = load_registry(path)

        assert registry.roles["dev"].session_name == "dev-session"
        assert registry.credentials.profile is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigFileError, match="Role registry not found") as exc_info:
            load_registry(tmp_path / "nope.json")

        assert "IMDS_SWITCH_CONFIG" in exc_info.value.suggestion

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ConfigFileError, match="Invalid JSON"):
            load_registry(path)

    def test_non_object_json(self, tmp_path):
        path = write_registry(tmp_path / "list.json", ["dev"])

        with pytest.raises(ConfigFileError, match="must contain a JSON object"):
            load_registry(path)


class TestValidation:
    @pytest.mark.parametrize(
        "mutate, message",
        [
            (lambda d: d.update(default_role="missing"), "default_role 'missing'"),
            (lambda d: d.update(roles={}), "At least one role"),
            (lambda d: d["roles"]["dev"].update(arn="not-an-arn"), "Invalid role ARN"),
            (lambda d: d["roles"]["dev"].update(session_name="x"), "Invalid session name"),
            (lambda d: d["roles"].update({"a/b": {"arn": "arn:aws:iam::1:role/x"}}), "Must not contain '/'"),
            (lambda d: d.pop("default_role"), "Field required"),
            (lambda d: d.update(unexpected=True), "unexpected"),
        ],
    )
    def test_invalid_registry(self, tmp_path, registry_data, mutate, message):
        mutate(registry_data)
        path = write_registry(tmp_path / "roles.json", registry_data)

        with pytest.raises(ConfigFileError) as exc_info:
            load_registry(path)

        assert "Invalid role registry" in exc_info.value.message
        assert message in exc_info.value.suggestion

    def test_error_format_includes_suggestion(self, tmp_path):
        with pytest.raises(ConfigFileError) as exc_info:
            load_registry(tmp_path / "nope.json")

        formatted = exc_info.value.format()
        assert formatted.startswith("Configuration error: Role registry not found")
        assert "IMDS_SWITCH_CONFIG" in formatted
