"""
Tests for the schema migration runner.
"""

import shutil
import pytest
from sqlalchemy import inspect

from backend import migrations
from backend.database import create_db_engine

TABLES = {'customers', 'products', 'invoices', 'invoice_items'}


def write_revision(directory, revision, down_revision, upgrade, downgrade):
    """Write a revision module whose upgrade/downgrade bodies are given as source lines."""
    (directory / f"{revision}.py").write_text(
        "from alembic import op\n"
        "import sqlalchemy as sa\n"
        f"revision = {revision!r}\n"
        f"down_revision = {down_revision!r}\n"
        f"def upgrade():\n    {upgrade}\n"
        f"def downgrade():\n    {downgrade}\n"
    )


@pytest.fixture
def empty_engine(tmp_path):
    eng = create_db_engine(f"sqlite:///{tmp_path / 'nested' / 'migrate.sqlite'}")
    yield eng
    eng.dispose()


class TestMigrations:
    """Test upgrade/downgrade of the invoice schema."""

    def test_revisions_load_in_order(self):
        revisions = migrations.load_revisions()
        assert [r.revision for r in revisions] == ['001_invoice_schema']

    def test_upgrade_creates_tables(self, empty_engine):
        migrations.upgrade(empty_engine)
        assert TABLES <= set(inspect(empty_engine).get_table_names())

        foreign_keys = inspect(empty_engine).get_foreign_keys('invoice_items')
        assert {fk['referred_table'] for fk in foreign_keys} == {'invoices', 'products'}

    def test_upgrade_twice(self, empty_engine):
        migrations.upgrade(empty_engine)
        migrations.upgrade(empty_engine)
        assert TABLES <= set(inspect(empty_engine).get_table_names())

    def test_downgrade_drops_tables(self, empty_engine):
        migrations.upgrade(empty_engine)
        migrations.downgrade(empty_engine)
        assert not TABLES & set(inspect(empty_engine).get_table_names())

    def test_broken_chain(self, tmp_path):
        (tmp_path / '002_orphan.py').write_text(
            "revision = '002_orphan'\n"
            "down_revision = 'missing'\n"
            "def upgrade():\n    pass\n"
            "def downgrade():\n    pass\n"
        )
        with pytest.raises(migrations.MigrationError):
            migrations.load_revisions(tmp_path)

    def test_failing_revision(self, tmp_path, empty_engine):
        write_revision(tmp_path, '001_fail', None, "raise RuntimeError('boom')", "pass")
        with pytest.raises(migrations.MigrationError, match='boom'):
            migrations.upgrade(empty_engine, migrations.load_revisions(tmp_path))


class TestMigrationRollback:
    """Test that a failing revision leaves the schema as it was."""

    def test_failed_upgrade_keeps_no_tables(self, tmp_path, empty_engine):
        write_revision(
            tmp_path, '001_first', None,
            "op.create_table('first_table', sa.Column('id', sa.Integer(), primary_key=True))",
            "op.drop_table('first_table')"
        )
        write_revision(tmp_path, '002_second', '001_first', "raise RuntimeError('boom')", "pass")

        with pytest.raises(migrations.MigrationError):
            migrations.upgrade(empty_engine, migrations.load_revisions(tmp_path))

        assert 'first_table' not in inspect(empty_engine).get_table_names()

    def test_failed_downgrade_keeps_all_tables(self, tmp_path, empty_engine):
        write_revision(
            tmp_path, '001_first', None,
            "op.create_table('first_table', sa.Column('id', sa.Integer(), primary_key=True))",
            "raise RuntimeError('boom')"
        )
        write_revision(
            tmp_path, '002_second', '001_first',
            "op.create_table('second_table', sa.Column('id', sa.Integer(), primary_key=True))",
            "op.drop_table('second_table')"
        )
        revisions = migrations.load_revisions(tmp_path)
        migrations.upgrade(empty_engine, revisions)

        with pytest.raises(migrations.MigrationError):
            migrations.downgrade(empty_engine, revisions)

        assert {'first_table', 'second_table'} <= set(inspect(empty_engine).get_table_names())

    def test_failed_invoice_upgrade_rolls_back(self, tmp_path, empty_engine):
        shutil.copy(migrations.VERSIONS_DIR / '001_invoice_schema.py', tmp_path)
        write_revision(tmp_path, '002_broken', '001_invoice_schema', "raise RuntimeError('boom')", "pass")

        with pytest.raises(migrations.MigrationError):
            migrations.upgrade(empty_engine, migrations.load_revisions(tmp_path))

        assert not TABLES & set(inspect(empty_engine).get_table_names())
