"""
Ordering helpers for groups and for links within a group.

Everything here is pure: functions take a sequence and return a new tuple,
leaving persistence to the caller. Elements are expected to expose `id`,
`orderby` and `with_rank(rank)` (see hyperspace.models).
"""

from typing import Any, List, Optional, Sequence, Tuple


def reorder(sequence: Sequence, from_index: int, to_index: int) -> Tuple:
	"""Move the element at from_index to to_index, shifting the rest."""
	items = list(sequence)
	size = len(items)
	if from_index == to_index:
		return tuple(items)
	if not (0 <= from_index < size and 0 <= to_index < size):
		return tuple(items)

	item = items.pop(from_index)
	items.insert(to_index, item)
	return tuple(items)


def move_up(sequence: Sequence, index: int) -> Tuple:
	"""Swap with the previous element; the first element stays put."""
	if index <= 0:
		return tuple(sequence)
	return reorder(sequence, index, index - 1)


def move_down(sequence: Sequence, index: int) -> Tuple:
	"""Swap with the next element; the last element stays put."""
	if index >= len(sequence) - 1:
		return tuple(sequence)
	return reorder(sequence, index, index + 1)


def index_of(sequence: Sequence, item_id: Any) -> int:
	for i, item in enumerate(sequence):
		if item.id == item_id:
			return i
	return -1


def move_by_id(sequence: Sequence, active_id: Any, over_id: Optional[Any]) -> Tuple:
	"""
	Drag-and-drop form of reorder: drop `active_id` onto the slot of `over_id`.
	A cancelled drag (over_id None), a drop onto itself or an unknown id is a no-op.
	"""
	if over_id is None or active_id == over_id:
		return tuple(sequence)

	old_index = index_of(sequence, active_id)
	new_index = index_of(sequence, over_id)
	if old_index == -1 or new_index == -1:
		return tuple(sequence)
	return reorder(sequence, old_index, new_index)


def renumber(sequence: Sequence) -> Tuple:
	"""Return the sequence with every orderby equal to its zero-based position."""
	return tuple(
		item if item.orderby == rank else item.with_rank(rank)
		for rank, item in enumerate(sequence)
	)


def rank_updates(sequence: Sequence) -> List[Tuple[Any, int]]:
	"""(item, new_rank) for every element whose stored rank differs from its position."""
	return [
		(item, rank)
		for rank, item in enumerate(sequence)
		if item.orderby != rank
	]
