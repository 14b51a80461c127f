#!/usr/bin/env python3
"""
Invoice Spreadsheet Import CLI

Usage:
    # Create the schema
    python scripts/invoice_importer_cli.py init-db

    # Import a spreadsheet (rows committed one by one)
    python scripts/invoice_importer_cli.py import --file data.xlsx

    # Import all-or-nothing
    python scripts/invoice_importer_cli.py import --file data.xlsx --atomic

    # Show stored rows
    python scripts/invoice_importer_cli.py list customers
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import json
import logging
from typing import Optional

import click

from backend import migrations
from backend.config import TransactionMode, get_settings
from backend.database import create_db_engine, make_session_factory, session_scope
from services.import_service import InvoiceImportService
from services.repositories import RESOURCE_REPOSITORIES, resolve_repository

logger = logging.getLogger('invoice_importer_cli')


def configure_logging(settings):
    """Log to the configured file and to stdout."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
        handlers=[
            logging.FileHandler(settings.LOG_FILE, delay=True),
            logging.StreamHandler(sys.stdout)
        ]
    )


@click.group()
@click.option('--database-url', envvar='DATABASE_URL', help='SQLAlchemy database URL')
@click.pass_context
def cli(ctx, database_url: Optional[str]):
    """Invoice spreadsheet import CLI"""
    settings = get_settings()
    configure_logging(settings)

    ctx.ensure_object(dict)
    ctx.obj['settings'] = settings
    ctx.obj['engine'] = create_db_engine(
        database_url or settings.DATABASE_URL,
        echo=settings.DB_ECHO,
        sqlite_foreign_keys=settings.SQLITE_FOREIGN_KEYS
    )
    ctx.call_on_close(ctx.obj['engine'].dispose)


@cli.command('init-db')
@click.pass_context
def init_db_cmd(ctx):
    """Create the invoice tables."""
    try:
        migrations.upgrade(ctx.obj['engine'])
    except migrations.MigrationError as e:
        logger.error(f"Schema creation failed: {e}", exc_info=True)
        click.echo(f"✗ Schema creation failed: {e}", err=True)
        sys.exit(1)
    click.echo("✓ Schema is up to date")


@cli.command('drop-db')
@click.confirmation_option(prompt='Drop all invoice tables?')
@click.pass_context
def drop_db_cmd(ctx):
    """Drop the invoice tables."""
    try:
        migrations.downgrade(ctx.obj['engine'])
    except migrations.MigrationError as e:
        logger.error(f"Schema removal failed: {e}", exc_info=True)
        click.echo(f"✗ Schema removal failed: {e}", err=True)
        sys.exit(1)
    click.echo("✓ Schema dropped")


@cli.command('import')
@click.option('--file', '-f', 'file_path', required=True, type=click.Path(dir_okay=False),
              help='Path to the .xlsx file to import')
@click.option('--sheet', '-s', default=None, help='Only import this worksheet')
@click.option('--atomic/--per-row', default=None,
              help='Roll back the whole file on failure (default: commit row by row)')
@click.pass_context
def import_cmd(ctx, file_path: str, sheet: Optional[str], atomic: Optional[bool]):
    """Import an invoice spreadsheet."""
    settings = ctx.obj['settings']

    if atomic is None:
        mode = settings.IMPORT_TRANSACTION_MODE
    else:
        mode = TransactionMode.ATOMIC if atomic else TransactionMode.PER_ROW

    click.echo(f"\n📁 Importing: {file_path} ({mode.value})")

    service = InvoiceImportService(
        make_session_factory(ctx.obj['engine']),
        transaction_mode=mode,
        sheet_name=sheet or settings.IMPORT_SHEET_NAME,
        header_rows=settings.IMPORT_HEADER_ROWS
    )
    result = service.import_file(file_path)

    if not result.succeeded:
        error = result.error
        location = f" at row {error.row_number}" if error.row_number is not None else ""
        click.echo(f"\n✗ Import failed ({error.kind}){location}: {error.message}", err=True)
        click.echo(f"Rows committed before the failure: {result.committed_rows}", err=True)
        sys.exit(1)

    summary = result.summary
    click.echo("\n✓ Import successful!")
    click.echo("\nSummary:")
    click.echo(f"  Customers: {summary.customers}")
    click.echo(f"  Products: {summary.products}")
    click.echo(f"  Invoices: {summary.invoices}")
    click.echo(f"  Invoice items: {summary.invoice_items}")


@cli.command('list')
@click.argument('resource', type=click.Choice(sorted(RESOURCE_REPOSITORIES), case_sensitive=False))
@click.pass_context
def list_cmd(ctx, resource: str):
    """Print every stored row of RESOURCE as JSON lines."""
    with session_scope(make_session_factory(ctx.obj['engine'])) as session:
        for row in resolve_repository(resource, session).all():
            click.echo(json.dumps(row, default=str))


if __name__ == '__main__':
    cli()
