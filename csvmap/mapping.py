"""
Column mapping state machine.

Every user interaction is an event; ``apply`` turns the current
``MappingState`` snapshot into the next one. Snapshots are frozen, so a
state handed to a query or to ``save`` cannot change underneath it.

Two drafts exist:

- ``FullDraft``: one column holds the whole name.
- ``SplitDraft``: first and last names live in separate columns.

Both carry the ticket number column, which survives mode switches.
"""

from __future__ import annotations

import logging
from typing import (
    Annotated,
    Any,
    Awaitable,
    Callable,
    ClassVar,
    List,
    Literal,
    Optional,
    Set,
    Tuple,
    Union,
)

from pydantic import BaseModel, ConfigDict, Field

from .errors import MappingError, SubmissionError
from .models import FullNameMapping, NormalizedMapping, SplitNameMapping

logger = logging.getLogger(__name__)

Mode = Literal["full", "split"]
Slot = Literal["name", "first_name", "last_name", "ticket_number"]

NOT_SET = "not set"

SLOT_LABELS = {
    "name": "Name",
    "first_name": "First name",
    "last_name": "Last name",
    "ticket_number": "Ticket number",
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class FullDraft(_Frozen):
    slots: ClassVar[Tuple[str, ...]] = ("name", "ticket_number")

    mode: Literal["full"] = "full"
    name_column: str = ""
    ticket_number_column: str = ""


class SplitDraft(_Frozen):
    slots: ClassVar[Tuple[str, ...]] = ("first_name", "last_name", "ticket_number")

    mode: Literal["split"] = "split"
    first_name_column: str = ""
    last_name_column: str = ""
    ticket_number_column: str = ""


Draft = Annotated[Union[FullDraft, SplitDraft], Field(discriminator="mode")]


class MappingState(_Frozen):
    file_name: Optional[str] = None
    headers: Tuple[str, ...] = ()
    draft: Draft = Field(default_factory=FullDraft)
    saving: bool = False


# --- events ---

class FileSelected(_Frozen):
    type: Literal["file_selected"] = "file_selected"
    file_name: str
    headers: Tuple[str, ...]


class Reset(_Frozen):
    type: Literal["reset"] = "reset"


class ModeChanged(_Frozen):
    type: Literal["mode_changed"] = "mode_changed"
    mode: Mode


class ColumnAssigned(_Frozen):
    type: Literal["column_assigned"] = "column_assigned"
    slot: Slot
    column: str = ""


class SaveStarted(_Frozen):
    type: Literal["save_started"] = "save_started"


class SaveFinished(_Frozen):
    type: Literal["save_finished"] = "save_finished"


Event = Annotated[
    Union[FileSelected, Reset, ModeChanged, ColumnAssigned, SaveStarted, SaveFinished],
    Field(discriminator="type"),
]


def _slot_value(draft: Draft, slot: str) -> str:
    if slot not in draft.slots:
        raise MappingError(f"{slot!r} is not a {draft.mode}-mode slot")
    return getattr(draft, f"{slot}_column")


def apply(state: MappingState, event: Event) -> MappingState:
    """Return the state that follows ``state`` once ``event`` happened."""
    if isinstance(event, FileSelected):
        return MappingState(file_name=event.file_name, headers=event.headers)

    if isinstance(event, Reset):
        return MappingState()

    if isinstance(event, ModeChanged):
        if event.mode == state.draft.mode:
            return state
        # name slots never carry over between modes
        ticket = state.draft.ticket_number_column
        if event.mode == "full":
            draft = FullDraft(ticket_number_column=ticket)
        else:
            draft = SplitDraft(ticket_number_column=ticket)
        return state.model_copy(update={"draft": draft})

    if isinstance(event, ColumnAssigned):
        _slot_value(state.draft, event.slot)
        draft = state.draft.model_copy(update={f"{event.slot}_column": event.column})
        return state.model_copy(update={"draft": draft})

    if isinstance(event, SaveStarted):
        return state.model_copy(update={"saving": True})

    if isinstance(event, SaveFinished):
        return state.model_copy(update={"saving": False})

    raise MappingError(f"Unsupported event: {event!r}")


def assigned_columns(draft: Draft) -> List[str]:
    """Slot values of the active mode, in slot order (empty when not set)."""
    return [_slot_value(draft, slot) for slot in draft.slots]


def taken_columns(state: MappingState) -> Set[str]:
    return {column for column in assigned_columns(state.draft) if column}


class ColumnOption(_Frozen):
    header: str
    disabled: bool = False


def column_options(state: MappingState, slot: str) -> List[ColumnOption]:
    """
    Choices for one slot's column picker.

    A header already used by another slot is disabled, so one column can
    never fill two roles. Empty headers are not offered.
    """
    current = _slot_value(state.draft, slot)
    taken = taken_columns(state)
    return [
        ColumnOption(header=header, disabled=header in taken and header != current)
        for header in state.headers
        if header
    ]


def validation_messages(state: MappingState) -> List[str]:
    if not state.file_name:
        return ["Select a CSV file first."]

    messages: List[str] = []
    for slot in state.draft.slots:
        column = _slot_value(state.draft, slot)
        if not column:
            messages.append(f"{SLOT_LABELS[slot]} column is not set.")
        elif column not in state.headers:
            messages.append(f"'{column}' is not a detected column.")

    assigned = [column for column in assigned_columns(state.draft) if column]
    if len(set(assigned)) != len(assigned):
        messages.append("Each field must use a different column.")
    return messages


def can_save(state: MappingState) -> bool:
    return not state.saving and not validation_messages(state)


def summarize(draft: Draft) -> List[Tuple[str, str]]:
    return [(SLOT_LABELS[slot], _slot_value(draft, slot) or NOT_SET) for slot in draft.slots]


def normalize(state: MappingState) -> Optional[NormalizedMapping]:
    """Freeze the draft into its submission shape, or None if not savable."""
    if state.saving:
        return None
    return _freeze(state)


def _freeze(state: MappingState) -> Optional[NormalizedMapping]:
    if validation_messages(state):
        return None

    draft = state.draft
    if isinstance(draft, FullDraft):
        return FullNameMapping(
            name_column=draft.name_column,
            ticket_number_column=draft.ticket_number_column,
        )
    return SplitNameMapping(
        first_name_column=draft.first_name_column,
        last_name_column=draft.last_name_column,
        ticket_number_column=draft.ticket_number_column,
    )


def state_from_mapping(
    file_name: str, headers: List[str], mapping: NormalizedMapping
) -> MappingState:
    """Replay a structured mapping as events on a freshly selected file."""
    state = apply(MappingState(), FileSelected(file_name=file_name, headers=tuple(headers)))
    state = apply(state, ModeChanged(mode=mapping.type))
    for slot in state.draft.slots:
        state = apply(state, ColumnAssigned(slot=slot, column=getattr(mapping, f"{slot}_column")))
    return state


class SaveOutcome(_Frozen):
    submitted: bool
    ok: bool = False
    mapping: Optional[NormalizedMapping] = None
    result: Any = None
    message: Optional[str] = None
    retryable: bool = False


Submit = Callable[[Any, NormalizedMapping], Awaitable[Any]]


async def save(state: MappingState, file: Any, submit: Submit) -> SaveOutcome:
    """
    Hand ``file`` and the normalized mapping to ``submit`` exactly once.

    The ``saving`` flag belongs to the caller: check ``can_save``, apply
    ``SaveStarted``, await ``save`` with that state, then apply
    ``SaveFinished``. Nothing is submitted while the mapping itself is
    invalid. A SubmissionError is reported back as a retryable outcome;
    retrying is up to the caller.
    """
    mapping = _freeze(state)
    if mapping is None:
        messages = validation_messages(state)
        logger.debug("save skipped for %s: %s", state.file_name, messages)
        return SaveOutcome(submitted=False, message=" ".join(messages))

    try:
        result = await submit(file, mapping)
    except SubmissionError as exc:
        logger.warning("submission of %s failed: %s", state.file_name, exc)
        return SaveOutcome(submitted=True, mapping=mapping, message=str(exc), retryable=True)

    return SaveOutcome(submitted=True, ok=True, mapping=mapping, result=result)
