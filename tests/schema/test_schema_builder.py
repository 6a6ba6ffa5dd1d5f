import logging

from touchorm.core import DateTimeField, ForeignKey, IntegerField, Model, StringField
from touchorm.dialects import SQLiteDialect
from touchorm.schema import SchemaBuilder

dialect = SQLiteDialect()
builder = SchemaBuilder(dialect)


class User(Model):
    name = StringField(nullable=False)
    age = IntegerField(default=0)


class Badge(Model):
    user = ForeignKey(User, touch=True, db_column="user_id")
    awarded_at = DateTimeField()


class AbstractStamp(Model):
    updated_at = DateTimeField()

    class Meta:
        abstract = True


def test_create_table_sql():
    sql = builder.create_table_sql(User)
    expected = 'CREATE TABLE IF NOT EXISTS "user" ("id" INTEGER NOT NULL PRIMARY KEY, "name" TEXT NOT NULL, "age" INTEGER DEFAULT 0)'
    assert sql == expected


def test_foreign_key_references_remote_table():
    sql = builder.create_table_sql(Badge)
    assert '"user_id" INTEGER NOT NULL REFERENCES "user" ("id") ON DELETE CASCADE' in sql
    assert '"awarded_at" TEXT' in sql


def test_create_all_skips_abstract_models():
    statements = builder.create_all_sql([User, AbstractStamp, Badge])
    assert len(statements) == 2
    assert all("abstract_stamp" not in statement for statement in statements)


def test_drop_table_sql():
    sql = builder.drop_table_sql(User)
    assert sql == 'DROP TABLE IF EXISTS "user"'


def test_drop_table_logs_warning(caplog):
    caplog.set_level(logging.WARNING, logger="touchorm.schema.builder")
    local_builder = SchemaBuilder(SQLiteDialect())
    local_builder.drop_table_sql(User)
    assert any("DROP TABLE generated" in record.message for record in caplog.records)
