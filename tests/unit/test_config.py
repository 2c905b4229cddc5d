"""
Unit tests for configuration loading.
"""

import pytest
import yaml

from recordsync.config import StoreConfig, config_to_dict, load_config, parse_config
from recordsync.reconciliation.errors import ConfigurationError


def minimal_document(**overrides):
    document = {
        "store": {"kind": "postgres", "database": "warehouse"},
        "collections": [
            {
                "name": "hulu.scope",
                "dedup_keys": ["Scope", "Category"],
                "mapping": [
                    {
                        "filename": "Scopes.xlsx",
                        "sheet_name": "Scopes",
                        "columns": [
                            {"column_name": "Scope", "header_name": "Scope Name"},
                            {"column_name": "Count", "header_name": "Count", "data_type": "Number"},
                        ],
                    }
                ],
            }
        ],
    }
    document.update(overrides)
    return document


class TestParseConfig:
    """Test parsing of an already-loaded document."""

    def test_minimal_document(self):
        config = parse_config(minimal_document())

        collection = config.collections[0]
        assert collection.name == "hulu.scope"
        assert collection.dedup_keys == ("Scope", "Category")
        assert collection.mapping[0].columns[1].data_type == "number"
        assert collection.mapping[0].header_index == 1
        assert config.workers == 1
        assert config.reports_directory == "Reports"

    def test_compare_keys_default_to_dedup_keys(self):
        config = parse_config(minimal_document())

        assert config.collections[0].compare_keys == ("Scope", "Category")

    def test_explicit_compare_keys(self):
        document = minimal_document()
        document["collections"][0]["compare_keys"] = ["Scope"]

        config = parse_config(document)

        assert config.collections[0].compare_keys == ("Scope",)

    def test_explicit_empty_compare_keys_are_kept(self):
        """Test that an empty compare_keys list is not replaced by dedup_keys."""
        document = minimal_document()
        document["collections"][0]["compare_keys"] = []

        config = parse_config(document)

        assert config.collections[0].compare_keys == ()

    def test_empty_values_and_exclude_rules(self):
        document = minimal_document()
        document["collections"][0]["empty_values"] = {"Count": [0, "0"]}
        document["collections"][0]["exclude_records"] = [{"column_name": "Status", "values": "Retired"}]

        collection = parse_config(document).collections[0]

        assert collection.empty_values == {"Count": (0, "0")}
        assert collection.exclude_records[0].values == ("Retired",)

    def test_runtime_workers(self):
        config = parse_config(minimal_document(runtime={"workers": 4}))

        assert config.workers == 4

    @pytest.mark.parametrize("document, message", [
        ([], "root must be a mapping"),
        ({"collections": []}, "non-empty 'collections'"),
        (minimal_document(store={"kind": "mongodb"}), "Unknown store kind"),
        (minimal_document(runtime={"workers": 0}), "at least 1"),
        (minimal_document(runtime={"workers": "many"}), "must be an integer"),
    ])
    def test_invalid_documents(self, document, message):
        with pytest.raises(ConfigurationError, match=message):
            parse_config(document)

    def test_duplicate_collection_names(self):
        document = minimal_document()
        document["collections"].append(dict(document["collections"][0]))

        with pytest.raises(ConfigurationError, match="Duplicate collection names"):
            parse_config(document)

    def test_unknown_data_type(self):
        document = minimal_document()
        document["collections"][0]["mapping"][0]["columns"][0]["data_type"] = "blob"

        with pytest.raises(ConfigurationError, match="unknown data_type"):
            parse_config(document)

    def test_missing_dedup_keys_left_to_engine(self):
        """Test that a collection without dedup keys still loads."""
        document = minimal_document()
        del document["collections"][0]["dedup_keys"]

        collection = parse_config(document).collections[0]

        assert collection.dedup_keys == ()

    def test_get_collection(self):
        config = parse_config(minimal_document())

        assert config.get_collection("hulu.scope").name == "hulu.scope"
        with pytest.raises(ConfigurationError, match="Unknown collection"):
            config.get_collection("missing")


class TestLoadConfig:
    """Test loading from YAML files."""

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(minimal_document()))

        config = load_config(path)

        assert config.store.kind == "postgres"
        assert config.store.resolved_port == 5432

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("collections: [unclosed")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)


class TestStoreConfig:
    """Test store configuration helpers."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RECORDSYNC_STORE_HOST", "db.internal")
        monkeypatch.setenv("RECORDSYNC_STORE_PASSWORD", "from-env")

        config = StoreConfig(host="localhost", password="from-file").with_env_overrides()

        assert config.host == "db.internal"
        assert config.password == "from-env"

    def test_scylla_default_port(self):
        assert StoreConfig(kind="scylla").resolved_port == 9042

    def test_config_to_dict_masks_password(self):
        document = minimal_document(store={"kind": "postgres", "password": "secret"})

        rendered = config_to_dict(parse_config(document))

        assert rendered["store"]["password"] == "***"
        assert rendered["collections"][0]["files"] == ["Scopes.xlsx"]
