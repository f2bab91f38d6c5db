"""
Unit tests for the FastAPI front end.

Tests cover:
- /health
- /{application}/{profile}[/{label}]: Environment JSON, label decoding, include_origin
- flattened views: json, yml, properties
- error mapping: 404 for unknown labels, 400 for invalid input, 500 otherwise
- end to end with the native repository and a mocked Parameter Store
"""

import os
import sys
from unittest.mock import MagicMock

import yaml
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../../src"))

from switchboard_config.api import create_app, decode_label, nest_properties, render_properties
from switchboard_config.enriched_repository import ParameterStoreEnvironmentRepository
from switchboard_config.environment import Environment, PropertySource
from switchboard_config.native_repository import NativeEnvironmentRepository
from switchboard_config.repository import EnvironmentRepository, NoSuchLabelError

SAMPLE_REPO = os.path.join(os.path.dirname(__file__), "../../../config-repo")

SAMPLE_ENVIRONMENT = Environment(
    name="billing",
    profiles=["dev"],
    label="main",
    version="abc123",
    property_sources=[
        PropertySource("file:billing.yml", {"db.host": "localhost", "db.port": "5432"}),
        PropertySource("aws-parameter-store:/switchboard/billing", {"db.host": "x"}),
    ],
)


def make_repository(environment: Environment = SAMPLE_ENVIRONMENT) -> MagicMock:
    repository = MagicMock(spec=EnvironmentRepository)
    repository.find_one.return_value = environment
    return repository


class TestHealth:
    def test_health(self) -> None:
        client = TestClient(create_app(make_repository(), version="1.2.3"))
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "UP", "version": "1.2.3"}


class TestEnvironmentRoutes:
    def setup_method(self) -> None:
        self.repository = make_repository()
        self.client = TestClient(create_app(self.repository))

    def test_environment_json(self) -> None:
        response = self.client.get("/billing/dev")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "billing"
        assert body["profiles"] == ["dev"]
        assert body["label"] == "main"
        assert body["version"] == "abc123"
        assert [ps["name"] for ps in body["propertySources"]] == [
            "file:billing.yml",
            "aws-parameter-store:/switchboard/billing",
        ]

    def test_default_label_passed_as_none(self) -> None:
        self.client.get("/billing/dev")
        self.repository.find_one.assert_called_once_with("billing", "dev", None, False)

    def test_label_passed_through(self) -> None:
        self.client.get("/billing/dev/release-1")
        self.repository.find_one.assert_called_once_with("billing", "dev", "release-1", False)

    def test_label_slash_escape_decoded(self) -> None:
        self.client.get("/billing/dev/feature(_)login")
        self.repository.find_one.assert_called_once_with("billing", "dev", "feature/login", False)

    def test_include_origin_passed_through(self) -> None:
        self.client.get("/billing/dev?include_origin=true")
        self.repository.find_one.assert_called_once_with("billing", "dev", None, True)

    def test_multiple_profiles(self) -> None:
        self.client.get("/billing/dev,east")
        self.repository.find_one.assert_called_once_with("billing", "dev,east", None, False)


class TestFlatRoutes:
    def setup_method(self) -> None:
        self.repository = make_repository()
        self.client = TestClient(create_app(self.repository))

    def test_json_is_merged(self) -> None:
        response = self.client.get("/billing-dev.json")

        assert response.status_code == 200
        assert response.json() == {"db.host": "x", "db.port": "5432"}

    def test_properties(self) -> None:
        response = self.client.get("/billing-dev.properties")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "db.host=x\ndb.port=5432\n"

    def test_yaml_is_nested(self) -> None:
        response = self.client.get("/billing-dev.yml")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/yaml")
        assert yaml.safe_load(response.text) == {"db": {"host": "x", "port": "5432"}}

    def test_labelled_flat_route(self) -> None:
        self.client.get("/release-1/billing-dev.json")
        self.repository.find_one.assert_called_once_with("billing", "dev", "release-1", False)

    def test_hyphenated_application(self) -> None:
        self.client.get("/billing-service-dev.json")
        self.repository.find_one.assert_called_once_with("billing-service", "dev", None, False)

    def test_unknown_format(self) -> None:
        response = self.client.get("/billing-dev.xml")

        assert response.status_code == 404
        self.repository.find_one.assert_not_called()

    def test_dotted_profile_reaches_environment_route(self) -> None:
        response = self.client.get("/billing/prod-1.2")

        assert response.status_code == 200
        assert response.json()["name"] == "billing"
        self.repository.find_one.assert_called_once_with("billing", "prod-1.2", None, False)

    def test_dotted_profile_with_label_reaches_environment_route(self) -> None:
        self.client.get("/billing/prod-1.2/main")
        self.repository.find_one.assert_called_once_with("billing", "prod-1.2", "main", False)

    def test_unknown_extension_after_label_is_a_profile(self) -> None:
        self.client.get("/main/billing-dev.xml")
        self.repository.find_one.assert_called_once_with("main", "billing-dev.xml", None, False)

    def test_yaml_extension_alias(self) -> None:
        response = self.client.get("/release-1/billing-dev.yaml")

        assert response.status_code == 200
        assert yaml.safe_load(response.text) == {"db": {"host": "x", "port": "5432"}}
        self.repository.find_one.assert_called_once_with("billing", "dev", "release-1", False)


class TestErrors:
    def test_unknown_label_is_404(self) -> None:
        repository = make_repository()
        repository.find_one.side_effect = NoSuchLabelError("nope")
        response = TestClient(create_app(repository)).get("/billing/dev/nope")

        assert response.status_code == 404
        assert response.json()["type"] == "NoSuchLabelError"

    def test_invalid_request_is_400(self) -> None:
        repository = make_repository()
        repository.find_one.side_effect = ValueError("Invalid application name")
        response = TestClient(create_app(repository)).get("/billing/dev")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid application name"

    def test_unhandled_error_is_500(self) -> None:
        repository = make_repository()
        repository.find_one.side_effect = RuntimeError("backend down")
        client = TestClient(create_app(repository), raise_server_exceptions=False)
        response = client.get("/billing/dev")

        assert response.status_code == 500
        assert response.json()["type"] == "RuntimeError"


class TestEndToEnd:
    """Native repository + Parameter Store decorator behind the HTTP front end."""

    def setup_method(self) -> None:
        self.parameter_client = MagicMock()
        native = NativeEnvironmentRepository([SAMPLE_REPO])
        repository = ParameterStoreEnvironmentRepository(native, self.parameter_client)
        self.client = TestClient(create_app(repository))

    def test_parameter_store_overrides_files(self) -> None:
        self.parameter_client.fetch_all.return_value = {
            "/switchboard/billing/db/host": "x",
            "/switchboard/billing/db/password": "s3cret",
        }
        body = self.client.get("/billing/prod").json()

        last = body["propertySources"][-1]
        assert last["name"] == "aws-parameter-store:/switchboard/billing"
        assert last["source"] == {"db.host": "x", "db.password": "s3cret"}

        merged = self.client.get("/billing-prod.json").json()
        assert merged["db.host"] == "x"
        assert merged["db.pool.max_size"] == "50"

    def test_parameter_store_outage_still_serves_files(self) -> None:
        self.parameter_client.fetch_all.side_effect = ConnectionError("unreachable")
        response = self.client.get("/billing/prod")

        assert response.status_code == 200
        names = [ps["name"] for ps in response.json()["propertySources"]]
        assert all(name.startswith("file:") for name in names)

    def test_origin_rendered_for_file_values(self) -> None:
        self.parameter_client.fetch_all.return_value = {}
        body = self.client.get("/billing/dev?include_origin=true").json()

        billing = [ps for ps in body["propertySources"] if ps["name"].endswith("billing.yml")][0]
        assert billing["source"]["db.host"]["value"] == "localhost"
        assert billing["source"]["db.host"]["origin"].endswith("billing.yml")

    def test_label_directory(self) -> None:
        self.parameter_client.fetch_all.return_value = {}
        body = self.client.get("/billing/dev/release-2024").json()

        assert body["label"] == "release-2024"
        assert [ps["source"]["db.host"] for ps in body["propertySources"]] == ["legacy-db.internal"]

    def test_unknown_label(self) -> None:
        response = self.client.get("/billing/dev/no-such-label")

        assert response.status_code == 404
        self.parameter_client.fetch_all.assert_not_called()


class TestBrokenRepositoryFiles:
    """A broken file in the server's own repository is a server fault, not a bad request."""

    def make_client(self, tmp_path) -> TestClient:
        parameter_client = MagicMock()
        parameter_client.fetch_all.return_value = {}
        native = NativeEnvironmentRepository([str(tmp_path)])
        repository = ParameterStoreEnvironmentRepository(native, parameter_client)
        return TestClient(create_app(repository), raise_server_exceptions=False)

    def test_non_mapping_file_is_500(self, tmp_path) -> None:
        (tmp_path / "billing.yml").write_text("- a\n- b\n", encoding="utf-8")
        response = self.make_client(tmp_path).get("/billing/dev")

        assert response.status_code == 500
        assert response.json()["type"] == "InvalidRepositoryFileError"

    def test_malformed_yaml_is_500(self, tmp_path) -> None:
        (tmp_path / "billing.yml").write_text("a: [unclosed\n", encoding="utf-8")
        response = self.make_client(tmp_path).get("/billing-dev.json")

        assert response.status_code == 500

    def test_invalid_application_is_still_400(self, tmp_path) -> None:
        response = self.make_client(tmp_path).get("/bil..ling/dev")

        assert response.status_code == 400
        assert response.json()["type"] == "ValueError"


class TestHelpers:
    def test_decode_label(self) -> None:
        assert decode_label("feature(_)a(_)b") == "feature/a/b"
        assert decode_label(None) is None

    def test_nest_properties(self) -> None:
        assert nest_properties({"a.b": "1", "a.c": "2", "d": "3"}) == {"a": {"b": "1", "c": "2"}, "d": "3"}

    def test_nest_properties_leaf_collision(self) -> None:
        assert nest_properties({"a": "1", "a.b": "2"}) == {"a": "1", "a.b": "2"}

    def test_render_properties_escapes_newlines(self) -> None:
        assert render_properties({"key": "line1\nline2"}) == "key=line1\\nline2\n"

    def test_render_properties_empty(self) -> None:
        assert render_properties({}) == ""
