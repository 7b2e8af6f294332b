import pytest
from pydantic import ValidationError

from tuspg.settings import PostgresInfoStorageSettings, normalize_dsn


class TestSettings:
    def test_defaults(self):
        settings = PostgresInfoStorageSettings(_env_file=None)

        assert settings.table_name == "file_info"
        assert settings.schema_name == "public"
        assert settings.max_pool_size == 100
        assert settings.pool_timeout is None
        assert settings.tls_mode == "disable"

    def test_url_from_components(self):
        settings = PostgresInfoStorageSettings(
            _env_file=None,
            host="db.internal",
            port=6543,
            user="tus",
            password="s3cret",
            db_name="uploads",
        )
        url = settings.database_url()

        assert url.drivername == "postgresql+asyncpg"
        assert url.host == "db.internal"
        assert url.port == 6543
        assert url.username == "tus"
        assert url.password == "s3cret"
        assert url.database == "uploads"

    def test_dsn_overrides_components(self):
        settings = PostgresInfoStorageSettings(
            _env_file=None, host="ignored", dsn="postgres://u:p@remote:5433/files"
        )
        url = settings.database_url()

        assert url.drivername == "postgresql+asyncpg"
        assert url.host == "remote"
        assert url.port == 5433
        assert url.database == "files"

    def test_normalize_keeps_asyncpg_dsn(self):
        url = normalize_dsn("postgresql+asyncpg://u:p@h/db")

        assert url.drivername == "postgresql+asyncpg"

    def test_normalize_rejects_other_databases(self):
        with pytest.raises(ValueError):
            normalize_dsn("mysql://u:p@h/db")

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("TUSPG_TABLE_NAME", "uploads")
        monkeypatch.setenv("TUSPG_MAX_POOL_SIZE", "7")
        monkeypatch.setenv("TUSPG_TLS_MODE", "require")

        settings = PostgresInfoStorageSettings(_env_file=None)

        assert settings.table_name == "uploads"
        assert settings.max_pool_size == 7
        assert settings.tls_mode == "require"

    def test_pool_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            PostgresInfoStorageSettings(_env_file=None, max_pool_size=0)

    def test_unknown_tls_mode(self):
        with pytest.raises(ValidationError):
            PostgresInfoStorageSettings(_env_file=None, tls_mode="prefer")
