"""
Transactional schema migration runner.

Revision modules live in ``versions/`` and use the regular Alembic ``op``
API. They are applied in revision order (``upgrade``) or reverse order
(``downgrade``) inside a single transaction on one connection.
"""

import importlib.util
import logging
from pathlib import Path
from types import ModuleType
from typing import List, Optional

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).parent / 'versions'


class MigrationError(RuntimeError):
    """Raised when applying or reverting revisions fails."""


def load_revisions(versions_dir: Path = VERSIONS_DIR) -> List[ModuleType]:
    """
    Load revision modules ordered by their ``down_revision`` chain.

    Raises:
        MigrationError: If a module lacks ``upgrade``/``downgrade`` or the
            chain is broken.
    """
    modules = {}
    for path in sorted(versions_dir.glob('*.py')):
        spec = importlib.util.spec_from_file_location(f"_revision_{path.stem}", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        if not callable(getattr(module, 'upgrade', None)) or \
                not callable(getattr(module, 'downgrade', None)):
            raise MigrationError(f"Revision {path.name} must define upgrade() and downgrade()")
        modules[module.revision] = module

    ordered = []
    previous: Optional[str] = None
    while len(ordered) < len(modules):
        following = [m for m in modules.values() if m.down_revision == previous]
        if len(following) != 1:
            raise MigrationError(f"Broken revision chain after {previous!r}")
        ordered.append(following[0])
        previous = following[0].revision

    return ordered


def _run(engine: Engine, revisions: List[ModuleType], direction: str):
    try:
        with engine.begin() as connection:
            context = MigrationContext.configure(connection)
            with Operations.context(context):
                for module in revisions:
                    logger.info(f"Running {direction} for revision {module.revision}")
                    getattr(module, direction)()
    except Exception as e:
        raise MigrationError(f"Migration {direction} failed: {e}") from e


def upgrade(engine: Engine, revisions: Optional[List[ModuleType]] = None):
    """Apply all revisions in order."""
    revisions = load_revisions() if revisions is None else revisions
    _run(engine, revisions, 'upgrade')
    logger.info(f"Schema upgraded ({len(revisions)} revisions)")


def downgrade(engine: Engine, revisions: Optional[List[ModuleType]] = None):
    """Revert all revisions in reverse order."""
    revisions = load_revisions() if revisions is None else revisions
    _run(engine, list(reversed(revisions)), 'downgrade')
    logger.info(f"Schema downgraded ({len(revisions)} revisions)")
