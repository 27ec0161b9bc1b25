"""Backup area management: pre-write snapshots, listing, restore and retention."""

from strata_config.backup.manager import BackupManager, format_backup_name, parse_backup_name

__all__ = ["BackupManager", "format_backup_name", "parse_backup_name"]
