# tests/test_connector_config.py
"""Unit tests for connector config parsing and validation."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import pytest
from fusion.schemas.connector_config import YoLinkConfig, PikoConfig, GeneaConfig
from fusion.services.connector_config import (
    parse_connector_config, ConnectorConfigError, PARSE_ERROR_MESSAGE,
)


class TestParsing:
    def test_yolink(self):
        cfg = parse_connector_config("yolink", json.dumps({"uaid": "u1", "clientSecret": "s1", "homeId": "h"}))
        assert isinstance(cfg, YoLinkConfig)
        assert cfg.client_secret == "s1"
        assert cfg.home_id == "h"

    def test_accepts_decoded_dict(self):
        cfg = parse_connector_config("genea", {"apiKey": "k", "customerUuid": "c"})
        assert isinstance(cfg, GeneaConfig)

    @pytest.mark.parametrize("blob", ["{not json", "", "[1, 2]", "null", None])
    def test_malformed_blob(self, blob):
        with pytest.raises(ConnectorConfigError) as exc:
            parse_connector_config("yolink", blob)
        assert str(exc.value) == PARSE_ERROR_MESSAGE == "Failed to parse connector configuration."

    def test_wrong_field_type_is_a_parse_error(self):
        blob = json.dumps({"type": "local", "username": "a", "password": "b", "host": "h", "port": "not-a-port"})
        with pytest.raises(ConnectorConfigError, match="Failed to parse"):
            parse_connector_config("piko", blob)

    def test_unknown_category_returns_raw_dict(self):
        assert parse_connector_config("netbox", '{"x": 1}') == {"x": 1}


class TestRequiredFields:
    def test_yolink_missing_secret(self):
        with pytest.raises(ConnectorConfigError) as exc:
            parse_connector_config("yolink", json.dumps({"uaid": "u1"}))
        assert str(exc.value) == "Missing required YoLink configuration fields: clientSecret."

    def test_genea_missing_both(self):
        with pytest.raises(ConnectorConfigError) as exc:
            parse_connector_config("genea", "{}")
        assert "apiKey" in str(exc.value) and "customerUuid" in str(exc.value)

    def test_piko_cloud_needs_system(self):
        with pytest.raises(ConnectorConfigError, match="selectedSystem"):
            parse_connector_config("piko", json.dumps({"type": "cloud", "username": "a", "password": "b"}))

    def test_piko_local_needs_host_and_port(self):
        with pytest.raises(ConnectorConfigError) as exc:
            parse_connector_config("piko", json.dumps({"type": "local", "username": "a", "password": "b"}))
        assert "host" in str(exc.value) and "port" in str(exc.value)

    def test_piko_local_ok(self):
        cfg = parse_connector_config(
            "piko", json.dumps({"type": "local", "username": "a", "password": "b", "host": "10.0.0.5", "port": 7001})
        )
        assert isinstance(cfg, PikoConfig)
        assert cfg.port == 7001
        assert cfg.ignore_tls_errors is False


class TestWriteBack:
    def test_to_blob_keeps_camel_case_and_extras(self):
        cfg = YoLinkConfig.model_validate({"uaid": "u", "clientSecret": "s", "scope": ["create"]})
        cfg.access_token = "tok"
        blob = cfg.to_blob()
        assert blob["clientSecret"] == "s"
        assert blob["accessToken"] == "tok"
        assert blob["scope"] == ["create"]
        assert "refreshToken" not in blob
