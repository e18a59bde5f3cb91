"""
JSONL snapshot export/import utilities for Countify.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from ..core.models import CountSession, utc_now
from ..core.registry import SessionRegistry

SNAPSHOT_SCHEMA_VERSION = "1"
RECORD_ORDER: Tuple[str, ...] = ("meta", "session")


def export_snapshot(registry: SessionRegistry, snapshot_path: Path) -> int:
    """
    Export every session to a deterministic JSONL snapshot.

    Sessions are written ordered by creation time, then id.

    Returns:
        Number of session records written
    """
    snapshot_path.parent.mkdir(parents=True, exist_ok=True)
    sessions = sorted(
        registry.list_sessions(),
        key=lambda session: (session.created_at, str(session.id)),
    )
    meta = {
        "record_type": "meta",
        "schema_version": SNAPSHOT_SCHEMA_VERSION,
        "generated_at": utc_now().isoformat(),
    }

    with snapshot_path.open("w", encoding="utf-8", newline="\n") as handle:
        handle.write(json.dumps(meta, sort_keys=True) + "\n")
        for session in sessions:
            record = {"record_type": "session", **session.model_dump(mode="json")}
            handle.write(json.dumps(record, sort_keys=True) + "\n")

    return len(sessions)


def import_snapshot(
    registry: SessionRegistry, snapshot_path: Path, overwrite: bool = False
) -> int:
    """
    Import a JSONL snapshot into a registry.

    Args:
        registry: Registry to save the sessions into
        snapshot_path: Path to the JSONL snapshot to import
        overwrite: If True, delete all existing sessions first

    Returns:
        Number of sessions imported

    Raises:
        FileNotFoundError: If the snapshot file does not exist
        ValueError: If snapshot records are invalid
    """
    if not snapshot_path.exists():
        raise FileNotFoundError(f"Snapshot not found: {snapshot_path}")

    meta_record, session_records = _parse_snapshot(snapshot_path)
    _validate_meta(meta_record)

    sessions = []
    for record in session_records:
        fields = {key: value for key, value in record.items() if key != "record_type"}
        try:
            sessions.append(CountSession.model_validate(fields))
        except ValidationError as exc:
            raise ValueError(f"Invalid session record: {exc}") from exc

    if overwrite:
        registry.clear()
    for session in sessions:
        registry.save_session(session, touch=False)
    return len(sessions)


def _parse_snapshot(
    snapshot_path: Path,
) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    meta_record: Dict[str, Any] | None = None
    sessions: List[Dict[str, Any]] = []

    with snapshot_path.open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            stripped = line.strip()
            if not stripped:
                continue
            try:
                record = json.loads(stripped)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON on line {line_number}: {exc}") from exc

            if not isinstance(record, dict):
                raise ValueError(
                    f"Snapshot record on line {line_number} must be an object"
                )

            record_type = record.get("record_type")
            if record_type not in RECORD_ORDER:
                raise ValueError(
                    f"Invalid record_type '{record_type}' on line {line_number}"
                )

            if record_type == "meta":
                if meta_record is not None:
                    raise ValueError("Snapshot must contain only one meta record")
                meta_record = record
            else:
                if meta_record is None:
                    raise ValueError("Snapshot must start with a meta record")
                sessions.append(record)

    if meta_record is None:
        raise ValueError("Snapshot must include a meta record")

    return meta_record, sessions


def _validate_meta(meta_record: Dict[str, Any]) -> None:
    schema_version = meta_record.get("schema_version")
    if schema_version != SNAPSHOT_SCHEMA_VERSION:
        raise ValueError(f"Unsupported snapshot schema version: {schema_version}")
    generated_at = meta_record.get("generated_at")
    if not isinstance(generated_at, str) or not generated_at:
        raise ValueError("Meta record must include generated_at")
