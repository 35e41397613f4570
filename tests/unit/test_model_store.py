"""
Unit tests for the model store.

Tests save/load round trips, validation before write, missing models and
namespace isolation.
"""

import pytest
from pymongo.errors import OperationFailure, PyMongoError

from mdb_casbin.config import StoreConfig
from mdb_casbin.constants import DEFAULT_RBAC_MODEL, SIMPLE_ACL_MODEL
from mdb_casbin.exceptions import NotFoundError, StoreError, ValidationError
from mdb_casbin.model_store import (
    load_model,
    load_model_text,
    parse_model,
    save_model,
    save_model_text,
)
from mdb_casbin.observability import get_metrics_collector

MALFORMED_MODEL = """
[request_definition]
r sub obj act
"""

INCOMPLETE_MODEL = """
[request_definition]
r = sub, obj, act
"""


def _sections(model):
    return {
        sec: {key: ast.value for key, ast in assertions.items()}
        for sec, assertions in model.model.items()
    }


class TestParseModel:
    """Test model text validation."""

    def test_valid_model(self):
        model = parse_model(DEFAULT_RBAC_MODEL)
        assert "p" in model.model
        assert "g" in model.model

    def test_malformed_model(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_model(MALFORMED_MODEL)
        assert exc_info.value.context["error_type"] == "RuntimeError"

    def test_missing_required_sections(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_model(INCOMPLETE_MODEL)
        assert "missing required sections" in str(exc_info.value)
        assert exc_info.value.context["missing_sections"] == [
            "policy_definition",
            "policy_effect",
            "matchers",
        ]

    def test_acl_model_without_roles(self):
        assert "g" not in parse_model(SIMPLE_ACL_MODEL).model

    def test_empty_model(self):
        with pytest.raises(ValidationError):
            parse_model("   ")


class TestSaveModel:
    """Test writing the model document."""

    @pytest.mark.asyncio
    async def test_round_trip(self, fake_database):
        await save_model_text(fake_database, DEFAULT_RBAC_MODEL)
        loaded = await load_model(fake_database)
        assert _sections(loaded) == _sections(parse_model(DEFAULT_RBAC_MODEL))
        assert loaded.model["p"]["p"].tokens == ["p_sub", "p_obj", "p_act"]

    @pytest.mark.asyncio
    async def test_save_from_file(self, fake_database, model_file):
        await save_model(fake_database, model_file)
        assert await load_model_text(fake_database) == DEFAULT_RBAC_MODEL

    @pytest.mark.asyncio
    async def test_missing_file(self, fake_database, tmp_path):
        with pytest.raises(OSError):
            await save_model(fake_database, tmp_path / "missing.conf")

    @pytest.mark.asyncio
    async def test_document_schema(self, fake_database):
        await save_model_text(fake_database, SIMPLE_ACL_MODEL)
        [doc] = fake_database["casbin"].docs
        assert doc["key"] == "conf"
        assert doc["namespace"] == ""
        assert doc["text"] == SIMPLE_ACL_MODEL
        assert "p_type" not in doc

    @pytest.mark.asyncio
    async def test_overwrite_keeps_single_document(self, fake_database):
        await save_model_text(fake_database, DEFAULT_RBAC_MODEL)
        await save_model_text(fake_database, SIMPLE_ACL_MODEL)
        assert len(fake_database["casbin"].docs) == 1
        assert await load_model_text(fake_database) == SIMPLE_ACL_MODEL

    @pytest.mark.asyncio
    async def test_write_runs_in_transaction(self, fake_database):
        await save_model_text(fake_database, DEFAULT_RBAC_MODEL)
        assert fake_database.client.transactions == 1

    @pytest.mark.asyncio
    async def test_invalid_model_is_never_written(self, fake_database):
        with pytest.raises(ValidationError):
            await save_model_text(fake_database, MALFORMED_MODEL)
        assert fake_database["casbin"].docs == []
        assert fake_database.client.transactions == 0

    @pytest.mark.asyncio
    async def test_incomplete_model_is_never_written(self, fake_database):
        with pytest.raises(ValidationError):
            await save_model_text(fake_database, INCOMPLETE_MODEL)
        assert fake_database["casbin"].docs == []
        with pytest.raises(NotFoundError):
            await load_model(fake_database)

    @pytest.mark.asyncio
    async def test_invalid_model_keeps_previous(self, fake_database):
        await save_model_text(fake_database, DEFAULT_RBAC_MODEL)
        with pytest.raises(ValidationError):
            await save_model_text(fake_database, MALFORMED_MODEL)
        assert await load_model_text(fake_database) == DEFAULT_RBAC_MODEL

    @pytest.mark.asyncio
    async def test_store_failure(self, fake_database):
        fake_database["casbin"].failures["replace_one"] = OperationFailure("not authorized")
        with pytest.raises(StoreError) as exc_info:
            await save_model_text(fake_database, DEFAULT_RBAC_MODEL)
        assert exc_info.value.operation == "model_store.save"
        assert exc_info.value.context["error_type"] == "OperationFailure"
        assert isinstance(exc_info.value.__cause__, PyMongoError)

    @pytest.mark.asyncio
    async def test_records_metrics(self, fake_database):
        await save_model_text(fake_database, DEFAULT_RBAC_MODEL)
        assert get_metrics_collector().get_operation_count("model_store.save") == 1


class TestLoadModel:
    """Test reading the model document."""

    @pytest.mark.asyncio
    async def test_not_found(self, fake_database):
        with pytest.raises(NotFoundError) as exc_info:
            await load_model(fake_database)
        assert exc_info.value.collection == "casbin"
        assert exc_info.value.namespace == ""

    @pytest.mark.asyncio
    async def test_stored_text_no_longer_parses(self, fake_database):
        fake_database["casbin"].docs.append(
            {"_id": 1, "key": "conf", "namespace": "", "text": MALFORMED_MODEL}
        )
        with pytest.raises(ValidationError):
            await load_model(fake_database)

    @pytest.mark.asyncio
    async def test_read_failure(self, fake_database):
        fake_database["casbin"].failures["find_one"] = PyMongoError("network down")
        with pytest.raises(StoreError):
            await load_model(fake_database)

    @pytest.mark.asyncio
    async def test_custom_collection(self, fake_database):
        config = StoreConfig(collection="authz", namespace="")
        await save_model_text(fake_database, DEFAULT_RBAC_MODEL, config)
        assert len(fake_database["authz"].docs) == 1
        with pytest.raises(NotFoundError):
            await load_model(fake_database, StoreConfig(collection="casbin", namespace=""))


class TestNamespaceIsolation:
    """Test that namespaces in one collection do not see each other."""

    @pytest.mark.asyncio
    async def test_independent_models(self, fake_database):
        tenant_a = StoreConfig(namespace="tenantA")
        tenant_b = StoreConfig(namespace="tenantB")

        await save_model_text(fake_database, DEFAULT_RBAC_MODEL, tenant_a)
        with pytest.raises(NotFoundError):
            await load_model(fake_database, tenant_b)

        await save_model_text(fake_database, SIMPLE_ACL_MODEL, tenant_b)
        assert await load_model_text(fake_database, tenant_a) == DEFAULT_RBAC_MODEL
        assert await load_model_text(fake_database, tenant_b) == SIMPLE_ACL_MODEL
        assert len(fake_database["casbin"].docs) == 2
