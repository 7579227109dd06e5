"""
Editor: an immutable working copy of the group/link tree kept in sync with the API.

Every mutation is applied in two phases. The tentative snapshot is installed
first, then the API call runs; the server's answer is merged on success and
the previous snapshot is restored on failure. Failures are logged and kept
in `Editor.errors` so callers can surface them.

Reordering is the exception: each changed rank is persisted with its own
update call, and a failing call is only logged and recorded. The local order
stays as the user arranged it and is corrected by the next `load()`.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Tuple

from . import bundle, ordering
from .client import HyperSpaceClient
from .dashboard import background_image
from .errors import HyperSpaceError, NotFoundError
from .models import Group, Link

logger = logging.getLogger(__name__)

_SAME = object()


@dataclass(frozen=True)
class EditorState:
	"""Snapshot of the whole tree. Update methods return new snapshots."""
	groups: Tuple[Group, ...] = field(default_factory=tuple)

	@classmethod
	def from_groups(cls, groups) -> 'EditorState':
		return cls(tuple(groups))

	def to_list(self) -> List[dict]:
		return [group.to_dict() for group in self.groups]

	def group_index(self, group_id) -> int:
		return ordering.index_of(self.groups, group_id)

	def find_group(self, group_id) -> Optional[Group]:
		index = self.group_index(group_id)
		return self.groups[index] if index != -1 else None

	def find_link(self, link_id) -> Tuple[Optional[Group], Optional[Link]]:
		for group in self.groups:
			link = group.find_link(link_id)
			if link is not None:
				return group, link
		return None, None

	def with_groups(self, groups) -> 'EditorState':
		return replace(self, groups=tuple(groups))

	def with_group_added(self, group: Group) -> 'EditorState':
		return self.with_groups(self.groups + (group,))

	def with_group_removed(self, group_id) -> 'EditorState':
		return self.with_groups(g for g in self.groups if g.id != group_id)

	def with_group_replaced(self, group: Group, group_id=_SAME) -> 'EditorState':
		"""Swap in `group` where the group with `group_id` (default: group.id) sits."""
		target = group.id if group_id is _SAME else group_id
		return self.with_groups(group if g.id == target else g for g in self.groups)

	def with_links(self, group_id, links) -> 'EditorState':
		group = self.find_group(group_id)
		if group is None:
			return self
		return self.with_group_replaced(group.with_links(links))

	def with_link_added(self, link: Link) -> 'EditorState':
		group = self.find_group(link.group_id)
		if group is None:
			return self
		return self.with_links(group.id, group.links + (link,))

	def with_link_removed(self, link_id) -> 'EditorState':
		return self.with_groups(
			g.with_links(l for l in g.links if l.id != link_id) for g in self.groups
		)

	def with_link_replaced(self, link: Link, link_id=_SAME) -> 'EditorState':
		"""
		Swap in `link` for the link with `link_id` (default: link.id).
		If the link changed group it is moved to the end of its new group.
		"""
		target = link.id if link_id is _SAME else link_id
		owner, _ = self.find_link(target)
		if owner is None:
			return self
		if owner.id == link.group_id:
			return self.with_links(owner.id, (link if l.id == target else l for l in owner.links))
		return self.with_link_removed(target).with_link_added(link)


class Editor:
	"""Stateful editing session over a HyperSpaceClient."""

	def __init__(self, client: HyperSpaceClient, state: Optional[EditorState] = None):
		self.client = client
		self.state = state or EditorState()
		self.errors: List[str] = []

	@property
	def groups(self) -> Tuple[Group, ...]:
		return self.state.groups

	def pop_errors(self) -> List[str]:
		errors, self.errors = self.errors, []
		return errors

	def _record(self, action: str, error: HyperSpaceError):
		logger.error(f"Failed to {action}: {error}")
		self.errors.append(f"Failed to {action}: {error.message}")

	def _apply(self, tentative: EditorState, action: str, call: Callable, merge: Callable = None):
		"""Install `tentative`, run `call`, then merge its result or roll back."""
		previous = self.state
		self.state = tentative
		try:
			result = call()
		except HyperSpaceError as e:
			self._record(action, e)
			self.state = previous
			return None
		if merge is not None:
			self.state = merge(self.state, result)
		return result

	# --- Loading ---

	def load(self) -> EditorState:
		"""Replace the working copy with the server's tree."""
		self.state = EditorState.from_groups(self.client.list_groups())
		logger.debug(f"Loaded {len(self.state.groups)} groups")
		return self.state

	def background_image(self) -> str:
		return background_image(self.state.groups)

	# --- Groups ---

	def add_group(self, title: str) -> Optional[Group]:
		title = (title or "").strip()
		if not title:
			return None
		rank = len(self.state.groups)
		placeholder = Group(id=None, title=title, orderby=rank)
		return self._apply(
			self.state.with_group_added(placeholder),
			"create group",
			lambda: self.client.create_group(title, rank),
			lambda state, created: state.with_group_replaced(created, group_id=None),
		)

	def rename_group(self, group_id, title: str) -> Optional[Group]:
		group = self.state.find_group(group_id)
		if group is None:
			return None
		renamed = replace(group, title=title)
		return self._apply(
			self.state.with_group_replaced(renamed),
			"update group",
			lambda: self.client.update_group(group_id, title=title, orderby=group.orderby),
			lambda state, saved: state.with_group_replaced(saved.with_links(renamed.links)),
		)

	def delete_group(self, group_id, cascade: bool = True) -> bool:
		"""
		Delete a group. With cascade (the default) its links are deleted first so
		no orphans are left behind; the API itself never cascades.
		"""
		group = self.state.find_group(group_id)
		if group is None:
			return False

		def call():
			if cascade:
				for link in group.links:
					try:
						self.client.delete_link(link.id)
					except NotFoundError:
						pass
			return self.client.delete_group(group_id)

		result = self._apply(self.state.with_group_removed(group_id), "delete group", call)
		return result is not None

	def _persist_group_ranks(self, sequence) -> List[Tuple[int, int]]:
		updates = ordering.rank_updates(sequence)
		self.state = self.state.with_groups(ordering.renumber(sequence))
		persisted = []
		for group, rank in updates:
			try:
				self.client.update_group(group.id, title=group.title, orderby=rank)
				persisted.append((group.id, rank))
			except HyperSpaceError as e:
				self._record(f"save order of group {group.id}", e)
		return persisted

	def move_group(self, from_index: int, to_index: int) -> List[Tuple[int, int]]:
		"""Reorder groups; returns the (group_id, rank) pairs persisted."""
		current = self.state.groups
		moved = ordering.reorder(current, from_index, to_index)
		if moved == current:
			return []
		return self._persist_group_ranks(moved)

	def move_group_up(self, index: int) -> List[Tuple[int, int]]:
		return self.move_group(index, index - 1) if index > 0 else []

	def move_group_down(self, index: int) -> List[Tuple[int, int]]:
		return self.move_group(index, index + 1)

	def drop_group(self, active_id, over_id) -> List[Tuple[int, int]]:
		current = self.state.groups
		moved = ordering.move_by_id(current, active_id, over_id)
		if moved == current:
			return []
		return self._persist_group_ranks(moved)

	# --- Links ---

	def _upload(self, image) -> Optional[str]:
		"""Accepts a path or a (stream, filename) pair."""
		if isinstance(image, tuple):
			stream, filename = image
			return self.client.upload(stream, filename)
		return self.client.upload_path(image)

	def add_link(self, group_id, title: str, url: str, image=None, notes: str = "",
				imageurl: str = "") -> Optional[Link]:
		group = self.state.find_group(group_id)
		if group is None or not title.strip() or not url.strip():
			return None

		if image is not None:
			try:
				imageurl = self._upload(image)
			except (HyperSpaceError, OSError) as e:
				error = e if isinstance(e, HyperSpaceError) else HyperSpaceError(str(e))
				self._record("upload icon", error)
				return None

		placeholder = Link(
			id=None, group_id=group_id, title=title, link=url,
			imageurl=imageurl, notes=notes, orderby=len(group.links)
		)
		return self._apply(
			self.state.with_link_added(placeholder),
			"create link",
			lambda: self.client.create_link(**placeholder.to_payload()),
			lambda state, created: state.with_link_replaced(created, link_id=None),
		)

	def update_link(self, link_id, image=None, **fields) -> Optional[Link]:
		"""Update title/link/imageurl/notes/orderby/group_id; `image` uploads a new icon first."""
		_, link = self.state.find_link(link_id)
		if link is None:
			return None

		if image is not None:
			try:
				fields["imageurl"] = self._upload(image)
			except (HyperSpaceError, OSError) as e:
				error = e if isinstance(e, HyperSpaceError) else HyperSpaceError(str(e))
				self._record("upload icon", error)
				return None

		known = {k: v for k, v in fields.items() if k in Link.__dataclass_fields__ and k != "id"}
		updated = replace(link, **known)
		return self._apply(
			self.state.with_link_replaced(updated, link_id=link_id),
			"update link",
			lambda: self.client.update_link(link_id, **updated.to_payload()),
			lambda state, saved: state.with_link_replaced(saved),
		)

	def delete_link(self, link_id) -> bool:
		_, link = self.state.find_link(link_id)
		if link is None:
			return False
		result = self._apply(
			self.state.with_link_removed(link_id),
			"delete link",
			lambda: self.client.delete_link(link_id),
		)
		return result is not None

	def _persist_link_ranks(self, group: Group, sequence) -> List[Tuple[int, int]]:
		updates = ordering.rank_updates(sequence)
		self.state = self.state.with_links(group.id, ordering.renumber(sequence))
		persisted = []
		for link, rank in updates:
			try:
				self.client.update_link(link.id, **link.with_rank(rank).to_payload())
				persisted.append((link.id, rank))
			except HyperSpaceError as e:
				self._record(f"save order of link {link.id}", e)
		return persisted

	def move_link(self, group_id, from_index: int, to_index: int) -> List[Tuple[int, int]]:
		"""Reorder links inside one group; other groups are untouched."""
		group = self.state.find_group(group_id)
		if group is None:
			return []
		moved = ordering.reorder(group.links, from_index, to_index)
		if moved == group.links:
			return []
		return self._persist_link_ranks(group, moved)

	def move_link_up(self, group_id, index: int) -> List[Tuple[int, int]]:
		return self.move_link(group_id, index, index - 1) if index > 0 else []

	def move_link_down(self, group_id, index: int) -> List[Tuple[int, int]]:
		return self.move_link(group_id, index, index + 1)

	def drop_link(self, group_id, active_id, over_id) -> List[Tuple[int, int]]:
		group = self.state.find_group(group_id)
		if group is None:
			return []
		moved = ordering.move_by_id(group.links, active_id, over_id)
		if moved == group.links:
			return []
		return self._persist_link_ranks(group, moved)

	# --- Bundles ---

	def export_bundle(self) -> bytes:
		"""Zip the working copy together with every icon it references."""
		return bundle.export_bundle(self.client, self.state.groups)

	def import_bundle(self, payload) -> bool:
		"""
		Destructively replace the server's content with `payload` and reload.
		Returns False (with the reason in `errors`) when the import fails.
		"""
		try:
			result = bundle.import_bundle(self.client, payload)
		except (HyperSpaceError, OSError) as e:
			error = e if isinstance(e, HyperSpaceError) else HyperSpaceError(str(e))
			self._record("import bundle", error)
			try:
				self.load()
			except HyperSpaceError as reload_error:
				logger.error(f"Could not reload after failed import: {reload_error}")
			return False
		self.state = EditorState.from_groups(result.groups)
		return True
