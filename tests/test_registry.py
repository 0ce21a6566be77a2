from __future__ import annotations

import pytest

from direct_query.core.registry import CatalogLoadError, DataSourceMetadata, DataSourceService, DataSourceType
from direct_query.errors import DataSourceNotFoundError


def test_catalog_loads_entries(catalog_file):
    service = DataSourceService.from_yaml(catalog_file)

    metrics = service.get_datasource_metadata("metrics")
    assert metrics.connector is DataSourceType.PROMETHEUS
    assert metrics.properties["prometheus.uri"] == "http://prometheus.test:9090"
    assert metrics.description == "Test Prometheus"
    assert [entry.name for entry in service.list(connector=DataSourceType.PROMETHEUS)] == ["metrics", "metrics_with_alerts"]
    assert len(service) == 3


def test_bundled_catalog_is_valid(bundled_catalog_file):
    service = DataSourceService.from_yaml(bundled_catalog_file)

    assert service.datasource_exists("local_prometheus")
    assert all(entry.connector is DataSourceType.PROMETHEUS for entry in service)


def test_unknown_name_raises_not_found():
    with pytest.raises(DataSourceNotFoundError, match="Data source does not exist: ghost"):
        DataSourceService().get_datasource_metadata("ghost")


def test_register_and_unregister():
    service = DataSourceService()
    service.register(DataSourceMetadata(name="ds1", connector=DataSourceType.PROMETHEUS))

    assert service.datasource_exists("ds1")
    service.unregister("ds1")
    assert not service.datasource_exists("ds1")


def test_redacted_properties_mask_credentials():
    metadata = DataSourceMetadata(
        name="amp",
        connector=DataSourceType.PROMETHEUS,
        properties={
            "prometheus.uri": "https://aps.test",
            "prometheus.auth.access_key": "AKID",
            "prometheus.auth.secret_key": "secret",
            "prometheus.auth.region": "us-east-1",
        },
    )

    assert metadata.redacted_properties() == {
        "prometheus.uri": "https://aps.test",
        "prometheus.auth.access_key": "******",
        "prometheus.auth.secret_key": "******",
        "prometheus.auth.region": "us-east-1",
    }


def test_scalar_properties_are_stringified(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text("- name: ds\n  connector: Prometheus\n  properties:\n    prometheus.uri: http://p.test\n    extra.port: 9090\n", encoding="utf-8")

    metadata = DataSourceService.from_yaml(path).get_datasource_metadata("ds")

    assert metadata.properties["extra.port"] == "9090"


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("- name: a\n  connector: prometheus\n- name: a\n  connector: prometheus\n", "Duplicate data source 'a'"),
        ("- name: a\n  connector: graphite\n", "Unknown connector type 'graphite'"),
        ("- name: a\n", "Missing required key"),
        ("name: a\n", "must contain a list"),
        ("- name: a\n  connector: prometheus\n  properties: [1, 2]\n", "must be a mapping"),
        ("- [unbalanced\n", "Failed to parse"),
    ],
)
def test_invalid_catalogs(tmp_path, content, message):
    path = tmp_path / "catalog.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(CatalogLoadError, match=message):
        DataSourceService.from_yaml(path)


def test_missing_catalog_file(tmp_path):
    with pytest.raises(CatalogLoadError, match="does not exist"):
        DataSourceService.from_yaml(tmp_path / "nope.yaml")
