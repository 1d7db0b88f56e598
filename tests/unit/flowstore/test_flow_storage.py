"""
Unit tests for FlowStorage.

Tests:
- init prepares the node directory and rejects projects mode
- save_flows writes the flows file and node files
- get_flows prefers node files and falls back to the flows file
- Read-only mode writes nothing
- Credentials round trip with backups
"""

import json

import pytest

from flowstore.config.settings import StorageSettings
from flowstore.core.exceptions import ConfigError, ValidationError
from flowstore.storage.flow_storage import FlowStorage, serialize_json

from conftest import make_node


class TestInit:
    """Tests for FlowStorage construction and init."""

    def test_unresolved_settings_rejected(self):
        with pytest.raises(ConfigError):
            FlowStorage(StorageSettings(user_dir="/tmp"))

    def test_creates_node_directory(self, storage_settings):
        settings = storage_settings()

        FlowStorage(settings).init()

        assert settings.flows_dir_path.is_dir()

    def test_projects_not_supported(self, storage_settings):
        storage = FlowStorage(storage_settings(projects_enabled=True))

        with pytest.raises(ConfigError) as exc_info:
            storage.init()

        assert "projects" in str(exc_info.value)

    def test_read_only_creates_nothing(self, storage_settings):
        settings = storage_settings(read_only=True)

        FlowStorage(settings).init()

        assert not settings.flows_dir_path.exists()


class TestFlows:
    """Tests for get_flows and save_flows."""

    def test_save_writes_flows_file_and_node_files(self, storage_settings, sample_flows):
        settings = storage_settings()
        storage = FlowStorage(settings)

        report = storage.save_flows(sample_flows)

        assert json.loads(settings.flows_path.read_text(encoding="utf-8")) == sample_flows
        assert sorted(p.name for p in settings.flows_dir_path.iterdir()) == sorted(report.written)
        assert len(report.written) == 3

    def test_round_trip(self, storage_settings, sample_flows, reference_node):
        storage = FlowStorage(storage_settings())
        flows = sample_flows + [reference_node]

        storage.save_flows(flows)

        assert FlowStorage(storage_settings()).get_flows() == flows

    def test_node_files_preferred(self, storage_settings, sample_flows):
        settings = storage_settings()
        storage = FlowStorage(settings)
        storage.save_flows(sample_flows)
        settings.flows_path.write_text('[{"id": "other", "type": "inject"}]', encoding="utf-8")

        assert storage.get_flows() == sample_flows

    def test_falls_back_to_flows_file(self, storage_settings, sample_flows):
        settings = storage_settings()
        settings.flows_path.write_text(json.dumps(sample_flows), encoding="utf-8")

        assert FlowStorage(settings).get_flows() == sample_flows

    def test_invalid_node_file_falls_back(self, storage_settings, sample_flows):
        settings = storage_settings()
        storage = FlowStorage(settings)
        storage.save_flows(sample_flows)
        (settings.flows_dir_path / "bad.x.flows.js").write_text("garbage", encoding="utf-8")

        assert storage.get_flows() == sample_flows

    def test_nothing_stored(self, storage_settings):
        assert FlowStorage(storage_settings()).get_flows() == []

    def test_pretty_flows_file(self, storage_settings):
        settings = storage_settings(flow_file_pretty=True)

        FlowStorage(settings).save_flows([make_node("a")])

        assert settings.flows_path.read_text(encoding="utf-8") == serialize_json([make_node("a")], True)
        assert "\n    " in settings.flows_path.read_text(encoding="utf-8")

    def test_flows_file_backup(self, storage_settings):
        settings = storage_settings()
        storage = FlowStorage(settings)

        storage.save_flows([make_node("a")])
        storage.save_flows([make_node("b")])

        backup = json.loads(settings.flows_backup_path.read_text(encoding="utf-8"))
        assert backup == [make_node("a")]

    def test_flows_file_disabled(self, storage_settings, sample_flows):
        settings = storage_settings(flow_file_enabled=False)

        FlowStorage(settings).save_flows(sample_flows)

        assert not settings.flows_path.exists()
        assert FlowStorage(settings).get_flows() == sample_flows

    def test_read_only_save(self, storage_settings, sample_flows):
        settings = storage_settings(read_only=True)

        assert FlowStorage(settings).save_flows(sample_flows) is None
        assert not settings.flows_path.exists()
        assert not settings.flows_dir_path.exists()

    def test_invalid_node_rejected(self, storage_settings):
        with pytest.raises(ValidationError):
            FlowStorage(storage_settings()).save_flows([{"type": "inject"}])


class TestCredentials:
    """Tests for get_credentials and save_credentials."""

    def test_missing(self, storage_settings):
        assert FlowStorage(storage_settings()).get_credentials() == {}

    def test_round_trip_with_backup(self, storage_settings):
        settings = storage_settings()
        storage = FlowStorage(settings)

        storage.save_credentials({"n1": {"user": "a"}})
        storage.save_credentials({"n1": {"user": "b"}})

        assert storage.get_credentials() == {"n1": {"user": "b"}}
        assert json.loads(settings.credentials_backup_path.read_text(encoding="utf-8")) == {
            "n1": {"user": "a"}
        }
        assert settings.credentials_path.name == "flows_cred.json"

    def test_read_only(self, storage_settings):
        settings = storage_settings(read_only=True)

        FlowStorage(settings).save_credentials({"n1": {}})

        assert not settings.credentials_path.exists()


class TestSerializeJson:

    def test_compact(self):
        assert serialize_json([{"a": 1, "b": "é"}], False) == '[{"a":1,"b":"é"}]'

    def test_pretty(self):
        assert serialize_json({"a": 1}, True) == '{\n    "a": 1\n}'
