import pytest

from conftest import SETTINGS
from db.config_source import ArrayDatabaseConfig, DatabaseConfig, EnvDatabaseConfig
from db.errors import ConfigurationError
from db.identity import belongs_to, owner_database_id

ENVIRON = {
    "DB_DB_1_HOST": "db.internal",
    "DB_DB_1_PORT": "6432",
    "DB_DB_1_USER": "app",
    "DB_DB_1_PASSWORD": "secret",
    "DB_TABLE_101_NAME": "users",
    "DB_MAPPING_1_NAME": "main",
    "DB_TABLE_x_NAME": "ignored",
    "OTHER_VAR": "ignored",
}


def _configs() -> list[DatabaseConfig]:
    return [ArrayDatabaseConfig(SETTINGS), EnvDatabaseConfig(environ=ENVIRON)]


def test_owner_database_id_uses_leading_digits():
    assert owner_database_id(101) == 1
    assert owner_database_id(299) == 2
    assert owner_database_id(1201) == 12
    assert belongs_to(201, 2) is True
    assert belongs_to(201, 1) is False


@pytest.mark.parametrize("bad", [7, 99, "101", True, None])
def test_owner_database_id_rejects_malformed_ids(bad):
    with pytest.raises(ConfigurationError):
        owner_database_id(bad)


@pytest.mark.parametrize("cfg", _configs())
def test_unconfigured_ids_raise_for_every_source(cfg):
    with pytest.raises(ConfigurationError):
        cfg.get_db_info(9)
    with pytest.raises(ConfigurationError):
        cfg.get_table_name(999)
    with pytest.raises(ConfigurationError):
        cfg.get_db_name(9)


def test_array_config_requires_all_sections():
    with pytest.raises(ConfigurationError, match="tables"):
        ArrayDatabaseConfig({"databases": {}, "db_mapping": {}})


def test_array_config_coerces_string_keys():
    cfg = ArrayDatabaseConfig({
        "databases": {"1": {"host": "h"}},
        "tables": {"101": "users"},
        "db_mapping": {"1": "main"},
    })

    assert cfg.get_table_name(101) == "users"
    assert cfg.get_db_name(1) == "main"


def test_descriptor_accepts_pw_alias_and_hides_password():
    descriptor = ArrayDatabaseConfig(SETTINGS).descriptor(2)

    assert descriptor.password == "log_pw"
    assert descriptor.port == 5433
    assert descriptor.logical_name == "logs"
    assert "log_pw" not in repr(descriptor)


def test_env_config_parses_prefixed_variables():
    cfg = EnvDatabaseConfig(environ=ENVIRON)
    descriptor = cfg.descriptor(1)

    assert descriptor.host == "db.internal"
    assert descriptor.port == 6432
    assert descriptor.password == "secret"
    assert cfg.get_table_name(101) == "users"
    assert cfg.database_id_for("main") == 1


def test_env_config_without_databases_fails():
    with pytest.raises(ConfigurationError):
        EnvDatabaseConfig(environ={"DB_TABLE_101_NAME": "users"})


def test_group_and_table_lookup():
    cfg = ArrayDatabaseConfig(SETTINGS)

    assert cfg.database_id_for("logs") == 2
    assert cfg.table_id_for(2, "access_logs") == 201
    assert cfg.tables_of(2) == {201: "access_logs"}
    with pytest.raises(ConfigurationError):
        cfg.database_id_for("missing")
    with pytest.raises(ConfigurationError):
        cfg.table_id_for(1, "access_logs")
