"""Tests for settings validation and endpoint construction."""

from collections.abc import Callable
from typing import Any

import pytest

from hecshipper.config import HecSettings, build_endpoint_url, load_settings
from hecshipper.core.errors import ConfigurationError

MakeSettings = Callable[..., HecSettings]


@pytest.mark.core
class TestRequiredOptions:
    """Tests for host, token and URL requirements."""

    def test_host_and_token_are_enough(self) -> None:
        settings = load_settings({"hec_host": "splunk.local", "hec_token": "abc"})

        assert settings.connection_config().url == (
            "https://splunk.local:8088/services/collector"
        )

    def test_neither_host_nor_full_url_fails(self) -> None:
        with pytest.raises(ConfigurationError, match="One of `hec_host` or `full_url`"):
            load_settings({"hec_token": "abc"})

    def test_token_is_required(self) -> None:
        with pytest.raises(ConfigurationError, match="hec_token"):
            load_settings({"hec_host": "splunk.local"})

    def test_empty_token_fails(self) -> None:
        with pytest.raises(ConfigurationError, match="must not be empty"):
            load_settings({"hec_host": "splunk.local", "hec_token": ""})

    def test_unknown_options_fail(self) -> None:
        with pytest.raises(ConfigurationError, match="hec_hots"):
            load_settings({"hec_hots": "splunk.local", "hec_token": "abc"})

    def test_token_is_not_exposed_in_repr(self) -> None:
        settings = load_settings({"hec_host": "splunk.local", "hec_token": "s3cr3t"})

        assert "s3cr3t" not in repr(settings)

    def test_configuration_error_keeps_validation_cause(self) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            load_settings({"hec_host": "h", "hec_token": "t", "hec_port": 0})

        assert excinfo.value.__cause__ is not None


@pytest.mark.core
class TestEndpointUrl:
    """Tests for building the endpoint URL."""

    @pytest.mark.parametrize(
        ("overrides", "expected"),
        [
            ({}, "https://hec.example.com:8088/services/collector"),
            (
                {"protocol": "http", "hec_port": 8000, "hec_endpoint": "/raw"},
                "http://hec.example.com:8000/raw",
            ),
            (
                {"full_url": "https://hec.cloud/", "hec_host": ""},
                "https://hec.cloud/services/collector",
            ),
            (
                {"full_url": "https://proxy.local/splunk", "hec_endpoint": "/services/collector/event"},
                "https://proxy.local/splunk/services/collector/event",
            ),
        ],
    )
    def test_url_construction(
        self, make_settings: MakeSettings, overrides: dict[str, Any], expected: str
    ) -> None:
        assert build_endpoint_url(make_settings(**overrides)) == expected

    def test_full_url_takes_precedence(self, make_settings: MakeSettings) -> None:
        settings = make_settings(full_url="http://other:9000")

        assert build_endpoint_url(settings) == "http://other:9000/services/collector"

    def test_malformed_full_url_fails(self) -> None:
        with pytest.raises(ConfigurationError, match=r"full_url \(not a url\) is invalid"):
            load_settings({"full_url": "not a url", "hec_token": "abc"})

    def test_port_out_of_range_fails(self) -> None:
        with pytest.raises(ConfigurationError, match="hec_port"):
            load_settings({"hec_host": "h", "hec_token": "t", "hec_port": 70000})


@pytest.mark.core
class TestMetricMode:
    """Tests for metric mode option combinations."""

    def test_metric_name_key_switches_to_explicit(self, make_settings: MakeSettings) -> None:
        settings = make_settings(
            data_type="metric", metric_name_key="name", metric_value_key="value"
        )

        assert settings.metrics_from_event is False

    def test_explicit_mode_requires_name(self) -> None:
        with pytest.raises(ConfigurationError, match="metric_name_key"):
            load_settings(
                {
                    "hec_host": "h",
                    "hec_token": "t",
                    "data_type": "metric",
                    "metrics_from_event": False,
                }
            )

    def test_explicit_mode_requires_value(self) -> None:
        with pytest.raises(ConfigurationError, match="metric_value_key"):
            load_settings(
                {
                    "hec_host": "h",
                    "hec_token": "t",
                    "data_type": "metric",
                    "metric_name_key": "name",
                }
            )

    def test_event_mode_ignores_metric_options(self, make_settings: MakeSettings) -> None:
        settings = make_settings(metric_name_key="name")

        assert settings.metrics_from_event is True

    def test_unknown_data_type_fails(self) -> None:
        with pytest.raises(ConfigurationError, match="data_type"):
            load_settings({"hec_host": "h", "hec_token": "t", "data_type": "trace"})


@pytest.mark.core
class TestDerivedOptions:
    """Tests for values handed to the transformer and client."""

    def test_key_field_values_and_paths(self, make_settings: MakeSettings) -> None:
        settings = make_settings(index="main", source="${tag}", host_key="hostname")

        assert settings.key_field_values() == {"index": "main", "source": "${tag}"}
        assert settings.key_field_paths() == {"host": "hostname"}

    def test_extra_fields_default_to_same_name(self, make_settings: MakeSettings) -> None:
        settings = make_settings(fields={"pod": "", "ns": "namespace"})

        assert settings.extra_fields() == {"pod": "pod", "ns": "namespace"}

    def test_no_extra_fields(self, make_settings: MakeSettings) -> None:
        assert make_settings().extra_fields() is None

    def test_default_format_is_json_for_every_tag(self, make_settings: MakeSettings) -> None:
        formats = make_settings().formats

        assert [(f.usage, f.type) for f in formats] == [("**", "json")]

    def test_literal_and_key_for_same_field_fail(self) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            load_settings(
                {"hec_host": "h", "hec_token": "t", "index": "main", "index_key": "idx"}
            )

        assert str(excinfo.value) == "Can not set index and index_key at the same time."

    def test_invalid_key_path_fails(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid key path"):
            load_settings({"hec_host": "h", "hec_token": "t", "source_key": "a..b"})

    def test_client_key_requires_cert(self) -> None:
        with pytest.raises(ConfigurationError, match="client_cert"):
            load_settings({"hec_host": "h", "hec_token": "t", "client_key": "/k.pem"})

    def test_connection_config(self, make_settings: MakeSettings) -> None:
        config = make_settings(
            idle_timeout=10,
            read_timeout=3,
            ssl_ciphers=["ECDHE-RSA-AES128-GCM-SHA256"],
            insecure_ssl=True,
            custom_headers={"X-Team": "obs"},
        ).connection_config()

        assert config.idle_timeout == 10
        assert config.read_timeout == 3
        assert config.open_timeout is None
        assert config.ciphers == ("ECDHE-RSA-AES128-GCM-SHA256",)
        assert config.insecure is True
        assert config.headers["X-Team"] == "obs"
