"""Pure helpers for the table's row-selection state."""

from typing import FrozenSet, Iterable

from grant_portal.core.exceptions import ValidationError


def update_selection(current: FrozenSet[str], user_id: str, included: bool) -> FrozenSet[str]:
    """Return a new selection with ``user_id`` added or removed."""
    if included:
        return current | {user_id}
    return current - {user_id}


def select_all(current: FrozenSet[str], user_ids: Iterable[str]) -> FrozenSet[str]:
    return current | frozenset(user_ids)


def clear_selection() -> FrozenSet[str]:
    return frozenset()


def ordered(selection: FrozenSet[str], row_order: Iterable[str]) -> list[str]:
    """Selected ids in the order the rows are displayed, each once."""
    return [uid for uid in dict.fromkeys(row_order) if uid in selection]


def normalize_ids(user_ids: Iterable[str]) -> list[str]:
    """Drop duplicates keeping first-seen order; reject an empty selection."""
    ids = list(user_ids)
    ids = ordered(select_all(clear_selection(), ids), ids)
    if not ids:
        raise ValidationError("Select at least one user", code="empty_selection")
    return ids
