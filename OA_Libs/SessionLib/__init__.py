"""
SessionLib - Editing session management

This module holds the multi-image editing session and the persistence
of its filter state.
"""

from OA_Libs.SessionLib.edit_session import EditSession, SessionEntry
from OA_Libs.SessionLib.edit_state_store import (
    build_edit_state,
    list_edit_state_files,
    load_edit_state,
    save_edit_state,
)

__all__ = [
    "EditSession",
    "SessionEntry",
    "build_edit_state",
    "list_edit_state_files",
    "load_edit_state",
    "save_edit_state",
]
