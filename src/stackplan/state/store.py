"""Durable state store with atomic replace and an advisory lock file."""

import json
import os
import socket
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Union
from pydantic import ValidationError as PydanticValidationError
from .models import STATE_FORMAT_VERSION, StateSnapshot
from ..utils.errors import CorruptStateError, StateLockError, StackPlanError
from ..utils.logging import get_logger

logger = get_logger("state.store")


def state_path_for(directory: Union[str, Path], environment: str) -> Path:
    """State file of an environment: <directory>/<environment>.json"""
    return Path(directory) / f"{environment}.json"


class StateStore:
    """Load and save the state snapshot of one environment."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")

    def load(self) -> StateSnapshot:
        """
        Load the persisted snapshot.

        Returns:
            The snapshot, or an empty one if no state was saved yet

        Raises:
            CorruptStateError: If the file is unreadable or invalid
        """
        if not self.path.exists():
            logger.info(f"No state file at {self.path}, starting from empty state")
            return StateSnapshot()

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise CorruptStateError(f"State file {self.path} is not valid JSON: {e}")
        except OSError as e:
            raise CorruptStateError(f"Error reading state file {self.path}: {e}")

        if not isinstance(data, dict):
            raise CorruptStateError(f"State file {self.path} must contain a JSON object")

        version = data.get("format_version")
        if version == 1:
            logger.info(f"Migrating state file {self.path} from format version 1")
            data = _migrate_v1(data, self.path)
        elif version != STATE_FORMAT_VERSION:
            raise CorruptStateError(
                f"State file {self.path} has unsupported format_version {version!r} "
                f"(supported: 1, {STATE_FORMAT_VERSION})"
            )

        try:
            snapshot = StateSnapshot(**data)
        except (PydanticValidationError, TypeError) as e:
            raise CorruptStateError(f"State file {self.path} has invalid structure: {e}")

        for address, resource in snapshot.resources.items():
            if resource.address != address:
                raise CorruptStateError(
                    f"State file {self.path}: entry '{address}' describes {resource.address}"
                )

        logger.info(f"Loaded state from {self.path} (serial: {snapshot.serial}, resources: {len(snapshot.resources)})")
        return snapshot

    def save(self, snapshot: StateSnapshot) -> None:
        """
        Persist the snapshot atomically.

        The content is written to a temporary file in the same directory,
        flushed to disk and renamed over the state file, so readers only ever
        see the old or the new snapshot.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StackPlanError(f"Failed to create state directory {self.path.parent}: {e}")

        payload = json.dumps(snapshot.model_dump(mode="json"), indent=2, sort_keys=True)
        temp_name = None
        try:
            fd, temp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_name, self.path)
        except OSError as e:
            if temp_name is not None:
                _remove_quietly(Path(temp_name))
            raise StackPlanError(f"Failed to write state file {self.path}: {e}")
        logger.debug(f"Saved state to {self.path} (serial: {snapshot.serial})")

    @contextmanager
    def lock(self) -> Iterator[None]:
        """
        Hold the state lock for the duration of a run.

        Raises:
            StateLockError: If another run holds the lock
        """
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        info = {
            "pid": os.getpid(),
            "host": socket.gethostname(),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            raise StateLockError(
                f"State {self.path} is locked by another run ({self._describe_lock()}). "
                "If no other run is active, remove the lock with: stackplan state unlock"
            )
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(info, f)
        logger.debug(f"Acquired state lock {self.lock_path}")
        try:
            yield
        finally:
            _remove_quietly(self.lock_path)
            logger.debug(f"Released state lock {self.lock_path}")

    def is_locked(self) -> bool:
        return self.lock_path.exists()

    def force_unlock(self) -> bool:
        """Remove a stale lock. Returns True if a lock was removed."""
        if not self.lock_path.exists():
            return False
        self.lock_path.unlink()
        logger.warning(f"Removed state lock {self.lock_path}")
        return True

    def _describe_lock(self) -> str:
        try:
            info = json.loads(self.lock_path.read_text(encoding='utf-8'))
            return f"pid {info.get('pid')} on {info.get('host')} since {info.get('created_at')}"
        except (OSError, ValueError):
            return "owner unknown"


def _migrate_v1(data: Dict[str, Any], path: Path) -> Dict[str, Any]:
    """Version 1 stored resources as a list without provider outputs."""
    resources = data.get("resources", [])
    if not isinstance(resources, list):
        raise CorruptStateError(f"State file {path}: version 1 'resources' must be a list")

    migrated = {}
    for entry in resources:
        if not isinstance(entry, dict) or "type" not in entry or "name" not in entry:
            raise CorruptStateError(f"State file {path}: invalid version 1 resource entry {entry!r}")
        record = dict(entry)
        record.setdefault("outputs", {})
        migrated[f"{record['type']}.{record['name']}"] = record

    upgraded = {key: value for key, value in data.items() if key != "resources"}
    upgraded["format_version"] = STATE_FORMAT_VERSION
    upgraded["resources"] = migrated
    return upgraded


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
