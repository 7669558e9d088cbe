"""
utils/backup.py — Garden database backup and restore operations.

Copies the .db file to the backup directory with timestamped filenames.
Backup triggers: before a garden is deleted (cascades to all its beds and
cell history), before an export, and on demand from the settings API.
Format: garden_layout_YYYYMMDD_HHMMSS_{reason}.db
"""

import logging
import os
import shutil
from datetime import datetime

from database import get_db_path

logger = logging.getLogger(__name__)

PREFIX = 'garden_layout_'


def get_backup_dir() -> str:
    """Backup directory from environment or default."""
    default_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'backups')
    return os.environ.get('GARDEN_BACKUP_DIR', default_dir)


def backup_db(reason='manual', db_path=None):
    """
    Copy the current database to the backup directory.

    Args:
        reason: Short tag for the backup trigger (e.g., 'manual', 'pre_delete_garden', 'export').
        db_path: Database to copy; defaults to get_db_path().

    Returns:
        The filename of the created backup, or None when there was nothing to copy
        or the copy failed.
    """
    db_path = db_path or get_db_path()
    backup_dir = get_backup_dir()
    os.makedirs(backup_dir, exist_ok=True)

    if not os.path.exists(db_path):
        return None

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    safe_reason = reason.replace(' ', '_').replace('/', '_')[:30]
    filename = f'{PREFIX}{timestamp}_{safe_reason}.db'
    dest = os.path.join(backup_dir, filename)

    try:
        shutil.copy2(db_path, dest)
    except OSError:
        logger.exception("Backup to %s failed", dest)
        return None
    logger.info("Backed up garden database to %s", filename)
    return filename


def list_backups():
    """
    List all backup files, newest first.

    Returns:
        List of dicts with keys: filename, timestamp, size_bytes, reason.
    """
    backup_dir = get_backup_dir()
    os.makedirs(backup_dir, exist_ok=True)

    backups = []
    for f in os.listdir(backup_dir):
        if not (f.startswith(PREFIX) and f.endswith('.db')):
            continue
        stat = os.stat(os.path.join(backup_dir, f))

        # garden_layout_YYYYMMDD_HHMMSS_reason.db
        parts = f[len(PREFIX):-len('.db')].split('_')
        timestamp_str = ''
        reason = ''
        if len(parts) >= 2:
            date_part, time_part = parts[0], parts[1]
            timestamp_str = (f'{date_part[:4]}-{date_part[4:6]}-{date_part[6:8]} '
                             f'{time_part[:2]}:{time_part[2:4]}:{time_part[4:6]}')
            reason = '_'.join(parts[2:])

        backups.append({
            'filename': f,
            'timestamp': timestamp_str,
            'size_bytes': stat.st_size,
            'reason': reason,
        })

    backups.sort(key=lambda b: b['filename'], reverse=True)
    return backups


def restore_db(filename, db_path=None):
    """
    Replace the current database with a backup file.

    DANGEROUS: This overwrites the current database entirely.

    Returns:
        True on success, False on failure.
    """
    if os.path.basename(filename) != filename:
        return False
    if not filename.startswith(PREFIX) or not filename.endswith('.db'):
        return False

    backup_path = os.path.join(get_backup_dir(), filename)
    if not os.path.exists(backup_path):
        return False

    db_path = db_path or get_db_path()
    try:
        shutil.copy2(backup_path, db_path)
    except OSError:
        logger.exception("Restore from %s failed", filename)
        return False
    # Drop WAL side files so the restored copy is read as-is
    for suffix in ('-wal', '-shm'):
        if os.path.exists(db_path + suffix):
            os.remove(db_path + suffix)
    logger.info("Restored garden database from %s", filename)
    return True
