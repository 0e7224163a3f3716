"""Tests for the SQLite record service and HostConfig."""

import logging

import pytest

from recordplug.core.errors import RecordNotFoundError
from recordplug.core.types import (
    ColumnSet,
    ConditionExpression,
    ConditionOperator,
    Entity,
    EntityReference,
    FilterExpression,
    OptionSetValue,
    QueryExpression,
)
from recordplug.persistence.config import HostConfig, create_service_factory
from recordplug.persistence.sqlite import (
    SQLiteOrganizationService,
    SQLiteServiceFactory,
    connect,
    dumps_attributes,
    loads_attributes,
)
from recordplug.plugins import OrganizationService, OrganizationServiceFactory


@pytest.fixture
def conn():
    conn = connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def service(conn):
    return SQLiteOrganizationService(conn, user_id="U1")


class TestProtocols:
    def test_service_satisfies_protocol(self, service):
        assert isinstance(service, OrganizationService)

    def test_factory_satisfies_protocol(self, conn):
        assert isinstance(SQLiteServiceFactory(conn), OrganizationServiceFactory)

    def test_factory_binds_user(self, conn):
        service = SQLiteServiceFactory(conn).create_organization_service("U7")
        assert service.user_id == "U7"
        assert service.conn is conn


class TestAttributeEncoding:
    def test_typed_values_survive(self):
        attributes = {
            "owner": EntityReference("systemuser", "U1", "Ada"),
            "status": OptionSetValue(3),
            "days": 2.5,
            "note": None,
        }
        assert loads_attributes(dumps_attributes(attributes)) == attributes


class TestSQLiteOrganizationService:
    def test_create_and_retrieve(self, service):
        id = service.create(Entity("account", "A1", {"name": "Contoso"}))

        record = service.retrieve("account", id, ColumnSet.all())
        assert record.id == "A1"
        assert record.logical_name == "account"
        assert record["name"] == "Contoso"
        assert record["createdby"] == EntityReference("systemuser", "U1")

    def test_create_generates_id(self, service):
        id = service.create(Entity("account", attributes={"name": "Fabrikam"}))
        assert id
        assert service.retrieve("account", id, ColumnSet.all())["name"] == "Fabrikam"

    def test_create_keeps_explicit_createdby(self, service):
        owner = EntityReference("systemuser", "U9")
        service.create(Entity("account", "A1", {"createdby": owner}))
        assert service.retrieve("account", "A1", ColumnSet.all())["createdby"] == owner

    def test_retrieve_column_subset(self, service):
        service.create(Entity("account", "A1", {"name": "Contoso", "city": "Oslo"}))

        record = service.retrieve("account", "A1", ColumnSet.of("city"))
        assert record.attributes == {"city": "Oslo"}

    def test_retrieve_missing_raises(self, service):
        with pytest.raises(RecordNotFoundError, match="A404"):
            service.retrieve("account", "A404", ColumnSet.all())

    def test_update_merges_attributes(self, service):
        service.create(Entity("account", "A1", {"name": "Contoso", "city": "Oslo"}))

        service.update(Entity("account", "A1", {"city": "Bergen"}))

        record = service.retrieve("account", "A1", ColumnSet.all())
        assert record["name"] == "Contoso"
        assert record["city"] == "Bergen"
        assert record["modifiedby"] == EntityReference("systemuser", "U1")

    def test_update_missing_raises(self, service):
        with pytest.raises(RecordNotFoundError):
            service.update(Entity("account", "A404", {"city": "Bergen"}))

    def test_update_without_id_raises(self, service):
        with pytest.raises(ValueError, match="without an id"):
            service.update(Entity("account", None, {"city": "Bergen"}))

    def test_delete(self, service):
        service.create(Entity("account", "A1"))
        service.delete("account", "A1")
        with pytest.raises(RecordNotFoundError):
            service.retrieve("account", "A1", ColumnSet.all())

    def test_delete_missing_raises(self, service):
        with pytest.raises(RecordNotFoundError):
            service.delete("account", "A404")

    def test_retrieve_multiple_conjunctive_equality(self, service):
        service.create(Entity("task", "T1", {"owner": EntityReference("systemuser", "U1"), "kind": OptionSetValue(1)}))
        service.create(Entity("task", "T2", {"owner": EntityReference("systemuser", "U1"), "kind": OptionSetValue(2)}))
        service.create(Entity("task", "T3", {"owner": EntityReference("systemuser", "U2"), "kind": OptionSetValue(1)}))
        service.create(Entity("note", "N1", {"owner": EntityReference("systemuser", "U1"), "kind": OptionSetValue(1)}))

        query = QueryExpression(
            entity_name="task",
            column_set=ColumnSet.of("kind"),
            criteria=FilterExpression(
                conditions=(
                    ConditionExpression("owner", ConditionOperator.EQUAL, "U1"),
                    ConditionExpression("kind", ConditionOperator.EQUAL, 1),
                )
            ),
        )
        results = service.retrieve_multiple(query)

        assert [e.id for e in results] == ["T1"]
        assert results.entities[0].attributes == {"kind": OptionSetValue(1)}

    def test_retrieve_multiple_without_conditions(self, service):
        service.create(Entity("task", "T2"))
        service.create(Entity("task", "T1"))

        results = service.retrieve_multiple(QueryExpression(entity_name="task"))

        assert [e.id for e in results] == ["T1", "T2"]
        assert len(results) == 2


class TestHostConfig:
    def test_from_env_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/plugins.db")
        monkeypatch.delenv("RECORDPLUG_DB_PATH", raising=False)
        config = HostConfig.from_env()
        assert config.url == "sqlite:///tmp/plugins.db"
        assert config.db_path == "tmp/plugins.db"

    def test_from_env_db_path(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("RECORDPLUG_DB_PATH", "/data/plugins.db")
        config = HostConfig.from_env()
        assert config.url == "sqlite:////data/plugins.db"
        assert config.db_path == "/data/plugins.db"

    def test_from_env_default(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("RECORDPLUG_DB_PATH", raising=False)
        monkeypatch.delenv("RECORDPLUG_LOG_LEVEL", raising=False)
        config = HostConfig.from_env()
        assert config.url == "sqlite:///recordplug.db"
        assert config.log_level == "INFO"
        assert config.logging_level == logging.INFO

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("RECORDPLUG_LOG_LEVEL", "debug")
        assert HostConfig.from_env().logging_level == logging.DEBUG

    def test_unknown_log_level(self):
        with pytest.raises(ValueError, match="log level"):
            HostConfig(url="sqlite:///x.db", log_level="CHATTY").logging_level

    def test_empty_sqlite_path_is_memory(self):
        assert HostConfig(url="sqlite:///").db_path == ":memory:"

    def test_unsupported_scheme(self):
        with pytest.raises(ValueError, match="Unsupported"):
            create_service_factory(HostConfig(url="postgresql://localhost/db"))

    def test_create_service_factory(self, tmp_path):
        factory = create_service_factory(HostConfig(url=f"sqlite:///{tmp_path / 'p.db'}"))
        try:
            factory.create_organization_service(None).create(Entity("account", "A1"))
            assert (tmp_path / "p.db").exists()
        finally:
            factory.conn.close()
