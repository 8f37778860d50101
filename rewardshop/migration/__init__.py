"""Legacy data migration."""

from .legacy import LegacyFormatError
from .migrator import LegacyMigrator, MigrationReport

__all__ = ["LegacyFormatError", "LegacyMigrator", "MigrationReport"]
