"""Record payloads for the locator, title and control records of a document."""

from __future__ import annotations

from threadstore.store import Control, RecordContent

from .model import LOCK_STATE_FIELD, LockState

EDIT_BUTTON = "DOCUMENT_BUTTON_EDIT"
LOCK_BUTTON = "DOCUMENT_BUTTON_LOCK"
UNLOCK_BUTTON = "DOCUMENT_BUTTON_UNLOCK"
HELP_BUTTON = "DOCUMENT_BUTTON_SHOW_HELP"
EDIT_MODAL = "DOCUMENT_MODAL_EDIT"
EDIT_VALUE = "DOCUMENT_VALUE_EDIT"

CONTROL_PREFIX = "DOCUMENT_"

HELP_TEXT = (
    "`📝 Edit` changes the local file and the copy in this thread. "
    "`🔓 Unlocked` documents upload the local file here as a backup copy. "
    "`🔒 Locked` documents overwrite the local file with the copy in this thread. "
    "Every change that replaces the local file leaves a numbered backup next to it."
)


def locator_content(state: LockState) -> RecordContent:
    return RecordContent(text=state.display, fields={LOCK_STATE_FIELD: state.value})


def title_content(name: str) -> RecordContent:
    return RecordContent(text=f"**{name}**")


def control_content(state: LockState) -> RecordContent:
    """Buttons for the trailing control record; editing is disabled while locked."""

    locked = state is LockState.LOCKED
    edit = Control(
        custom_id=EDIT_BUTTON,
        label="Edit",
        emoji="📝",
        style="primary",
        disabled=locked,
    )
    if locked:
        toggle = Control(custom_id=UNLOCK_BUTTON, label="Unlock", emoji="🔓", style="danger")
    else:
        toggle = Control(custom_id=LOCK_BUTTON, label="Lock", emoji="🔒", style="success")
    show_help = Control(custom_id=HELP_BUTTON, label="Show Help", emoji="❔")
    return RecordContent(text=state.display, controls=(edit, toggle, show_help))


def is_control_record(controls) -> bool:
    return any(c.custom_id.startswith(CONTROL_PREFIX) for c in controls)
