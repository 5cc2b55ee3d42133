"""
Edit state persistence for Open Annotate.

Saves the filter parameters of every image in a session so a reopened editor
can start from the last applied state. Annotations are not saved; they are
flattened into the exported images.

The file schema (.oaedit, JSON) includes:
- schema_version
- saved_at
- active_index
- entries: list of {label, filters}

Functions:
    build_edit_state: Build the JSON payload for a session
    save_edit_state: Write a session's edit state to disk
    load_edit_state: Load and normalize an edit state file
    list_edit_state_files: List edit state files in a directory
"""

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List
import json
import logging

from OA_Libs.constants import (
    EDIT_STATE_EXTENSION,
    EDIT_STATE_SCHEMA_VERSION,
    FIELD_ACTIVE_INDEX,
    FIELD_ENTRIES,
    FIELD_FILTERS,
    FIELD_LABEL,
    FIELD_SAVED_AT,
    FIELD_SCHEMA_VERSION,
)
from OA_Libs.ImageEditingLib.filter_model import (
    FilterParameters,
    clamp_filters,
    default_filters,
)

if TYPE_CHECKING:
    from OA_Libs.SessionLib.edit_session import EditSession

logger = logging.getLogger(__name__)


def _normalize_filters(data: Any) -> FilterParameters:
    """Turn stored filter data into clamped parameters, defaults on bad data."""
    if not isinstance(data, dict):
        return default_filters()
    try:
        return clamp_filters(FilterParameters.from_dict(data))
    except (TypeError, ValueError):
        return default_filters()


def build_edit_state(session: "EditSession") -> Dict[str, Any]:
    """
    Build the JSON payload describing a session's filter state.

    Args:
        session: The session to describe

    Returns:
        Dict with schema version, save time, active index and one
        ``{label, filters}`` entry per image
    """
    return {
        FIELD_SCHEMA_VERSION: EDIT_STATE_SCHEMA_VERSION,
        FIELD_SAVED_AT: datetime.now().isoformat(timespec="seconds"),
        FIELD_ACTIVE_INDEX: session.active_index,
        FIELD_ENTRIES: [
            {
                FIELD_LABEL: entry.label,
                FIELD_FILTERS: entry.filters.to_dict(),
            }
            for entry in session.entries
        ],
    }


def save_edit_state(path: Path, session: "EditSession") -> Path:
    """
    Write the session's filter state to ``path``.

    The edit state extension is appended when missing and parent
    directories are created.

    Returns:
        The path written
    """
    path = Path(path)
    if path.suffix != EDIT_STATE_EXTENSION:
        path = path.with_name(path.name + EDIT_STATE_EXTENSION)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = build_edit_state(session)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.debug(f"Saved edit state for {len(payload[FIELD_ENTRIES])} image(s) to {path}")
    return path


def load_edit_state(path: Path) -> Dict[str, Any]:
    """
    Load an edit state file.

    Missing, unreadable or malformed files load as an empty state instead of
    raising; invalid entries fall back to default filters.

    Returns:
        Dict with ``active_index`` (int), ``labels`` (list of str) and
        ``filters`` (list of FilterParameters)
    """
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not read edit state {path}: {e}")
        payload = {}

    if not isinstance(payload, dict):
        payload = {}

    raw_entries = payload.get(FIELD_ENTRIES)
    if not isinstance(raw_entries, list):
        raw_entries = []

    labels: List[str] = []
    filters: List[FilterParameters] = []
    for raw in raw_entries:
        if not isinstance(raw, dict):
            raw = {}
        labels.append(str(raw.get(FIELD_LABEL) or ""))
        filters.append(_normalize_filters(raw.get(FIELD_FILTERS)))

    try:
        active_index = int(payload.get(FIELD_ACTIVE_INDEX, 0))
    except (TypeError, ValueError):
        active_index = 0

    return {
        FIELD_SCHEMA_VERSION: payload.get(FIELD_SCHEMA_VERSION, EDIT_STATE_SCHEMA_VERSION),
        FIELD_ACTIVE_INDEX: max(0, active_index),
        "labels": labels,
        FIELD_FILTERS: filters,
    }


def list_edit_state_files(directory: Path) -> List[Path]:
    """
    List edit state files in a directory.

    Args:
        directory: Directory to search

    Returns:
        Sorted list of paths; empty if the directory does not exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(directory.glob(f"*{EDIT_STATE_EXTENSION}"))
