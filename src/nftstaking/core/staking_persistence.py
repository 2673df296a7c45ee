"""
NFT Staking - Persistent Storage

Stake records and pool configuration are financial entitlements, so the
local chain state is persisted with:
- Atomic writes (temp file + rename)
- Checksum verification
- Rotating backups
- Auto-recovery from the newest valid backup
"""

import hashlib
import json
import logging
import os
import shutil
import time
from datetime import datetime
from threading import Lock
from typing import List, Optional, Tuple

from .exceptions import CorruptedDataError

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = "1.0"


class StakingStorage:
    """
    Durable JSON storage for the staking chain state.

    Features:
    - Atomic writes (write to temp, fsync, then rename)
    - SHA-256 checksum over the canonical JSON payload
    - Backup of the previous state on every save
    - Recovery from the newest backup whose checksum verifies
    """

    def __init__(
        self,
        data_dir: str,
        state_file_name: str = "chain_state.json",
        max_backups: int = 10,
    ):
        """
        Initialize storage

        Args:
            data_dir: Directory holding the state file and backups
            state_file_name: Name of the state file inside data_dir
            max_backups: Number of backups to keep
        """
        self.data_dir = str(data_dir)
        self.state_file = os.path.join(self.data_dir, state_file_name)
        self.backup_dir = os.path.join(self.data_dir, "backups")
        self.max_backups = max_backups

        os.makedirs(self.data_dir, exist_ok=True)
        os.makedirs(self.backup_dir, exist_ok=True)

        self.lock = Lock()

    def exists(self) -> bool:
        return os.path.exists(self.state_file)

    def _calculate_checksum(self, data: str) -> str:
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    @staticmethod
    def _canonical_json(state: dict) -> str:
        return json.dumps(state, indent=2, sort_keys=True)

    def save_to_disk(self, state: dict, create_backup: bool = True) -> Tuple[bool, str]:
        """
        Save state to disk with atomic write

        Args:
            state: Serialized chain state
            create_backup: Whether to back up the previous state first

        Returns:
            tuple: (success: bool, message: str)
        """
        with self.lock:
            try:
                state_json = self._canonical_json(state)
                checksum = self._calculate_checksum(state_json)

                metadata = {
                    "timestamp": time.time(),
                    "block_height": state.get("block_height", 0),
                    "checksum": checksum,
                    "version": STATE_FORMAT_VERSION,
                }
                package_json = json.dumps(
                    {"metadata": metadata, "state": state}, indent=2, sort_keys=True
                )

                if create_backup and os.path.exists(self.state_file):
                    self._create_backup()

                temp_file = self.state_file + ".tmp"
                with open(temp_file, "w", encoding="utf-8") as f:
                    f.write(package_json)
                    f.flush()
                    os.fsync(f.fileno())

                os.replace(temp_file, self.state_file)

                logger.debug(
                    "Staking state saved",
                    extra={
                        "event": "storage.saved",
                        "block_height": metadata["block_height"],
                        "checksum": checksum[:8],
                    },
                )
                return (
                    True,
                    f"State saved (height: {metadata['block_height']}, checksum: {checksum[:8]}...)",
                )

            except (OSError, TypeError, ValueError) as e:
                logger.error(
                    "Failed to save staking state",
                    extra={
                        "event": "storage.save_failed",
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                return False, f"Failed to save state: {e}"

    def load_from_disk(self) -> Tuple[bool, Optional[dict], str]:
        """
        Load state from disk with integrity checks

        Attempts recovery from backups if the state file is corrupted.

        Returns:
            tuple: (success: bool, state: dict or None, message: str)
        """
        with self.lock:
            if not os.path.exists(self.state_file):
                return False, None, "No state file found"

            try:
                state = self._read_package(self.state_file)
                return True, state, f"State loaded (height: {state.get('block_height', 0)})"
            except (json.JSONDecodeError, CorruptedDataError) as e:
                logger.warning(
                    "Staking state corrupted, attempting recovery",
                    extra={
                        "event": "storage.corrupted",
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                return self._attempt_recovery()
            except OSError as e:
                logger.error(
                    "Failed to load staking state",
                    extra={
                        "event": "storage.load_failed",
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                return False, None, f"Failed to load state: {e}"

    def list_backups(self) -> List[str]:
        """Backup paths, newest first."""
        backups = [
            os.path.join(self.backup_dir, f)
            for f in os.listdir(self.backup_dir)
            if f.startswith("state_backup_") and f.endswith(".json")
        ]
        backups.sort(reverse=True)
        return backups

    def _read_package(self, path: str) -> dict:
        with open(path, "r", encoding="utf-8") as f:
            package = json.load(f)

        if not isinstance(package, dict) or "state" not in package:
            raise CorruptedDataError(f"{os.path.basename(path)} has no state section")

        state = package["state"]
        expected = package.get("metadata", {}).get("checksum")
        if not expected:
            raise CorruptedDataError(f"{os.path.basename(path)} has no checksum")
        if self._calculate_checksum(self._canonical_json(state)) != expected:
            raise CorruptedDataError(
                f"Checksum verification failed for {os.path.basename(path)}",
                details={"expected": expected[:8]},
            )
        return state

    def _create_backup(self) -> bool:
        try:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            backup_file = os.path.join(self.backup_dir, f"state_backup_{timestamp}.json")
            shutil.copy2(self.state_file, backup_file)
            self._cleanup_old_backups()
            return True
        except (OSError, shutil.Error) as e:
            logger.warning(
                "Failed to create state backup",
                extra={
                    "event": "storage.backup_failed",
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return False

    def _cleanup_old_backups(self) -> None:
        for backup in self.list_backups()[self.max_backups:]:
            try:
                os.remove(backup)
            except OSError as e:
                logger.warning(
                    "Failed to remove old backup",
                    extra={"event": "storage.cleanup_failed", "backup": backup, "error": str(e)},
                )

    def _attempt_recovery(self) -> Tuple[bool, Optional[dict], str]:
        for backup_file in self.list_backups():
            try:
                state = self._read_package(backup_file)
            except (OSError, json.JSONDecodeError, CorruptedDataError) as e:
                logger.warning(
                    "Backup is invalid",
                    extra={
                        "event": "storage.backup_invalid",
                        "backup": os.path.basename(backup_file),
                        "error": str(e),
                    },
                )
                continue

            logger.warning(
                "Staking state recovered from backup",
                extra={"event": "storage.recovered", "backup": os.path.basename(backup_file)},
            )
            return True, state, f"Recovered from backup {os.path.basename(backup_file)}"

        return False, None, "Recovery failed - no valid backup found"
