import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.schema import CreateSchema, CreateTable, DDLElement

from tuspg.errors import DUPLICATE_SCHEMA, DUPLICATE_TABLE, UNIQUE_VIOLATION, sqlstate_of

# Postgres can still report these when two processes race on "IF NOT EXISTS"
_ALREADY_EXISTS = (DUPLICATE_TABLE, DUPLICATE_SCHEMA, UNIQUE_VIOLATION)


def build_upload_table(table_name: str, schema_name: str = "public") -> sa.Table:
    """
    Describe the info table.

    Each storage builds its own ``MetaData`` so that several stores pointing at
    different tables can live in one process.
    """
    metadata = sa.MetaData(schema=schema_name)
    return sa.Table(
        table_name,
        metadata,
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("offset", sa.BigInteger, nullable=False),
        sa.Column("length", sa.BigInteger, nullable=True),
        sa.Column("path", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deferred_size", sa.Boolean, nullable=False),
        sa.Column("is_partial", sa.Boolean, nullable=False),
        sa.Column("is_final", sa.Boolean, nullable=False),
        sa.Column("parts", ARRAY(sa.Text), nullable=True),
        sa.Column("storage", sa.Text, nullable=False),
        sa.Column(
            "metadata",
            JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )


def create_table_statement(table: sa.Table) -> DDLElement:
    return CreateTable(table, if_not_exists=True)


def create_schema_statement(schema_name: str) -> DDLElement:
    return CreateSchema(schema_name, if_not_exists=True)


def is_already_exists(error: BaseException) -> bool:
    return sqlstate_of(error) in _ALREADY_EXISTS
