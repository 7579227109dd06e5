from dataclasses import dataclass, field, asdict, replace
from typing import Optional, Tuple


def _as_int(value, default: int = 0) -> int:
	if value is None or value == "":
		return default
	return int(value)


@dataclass(frozen=True)
class Link:
	"""A single bookmark card inside a group."""
	id: Optional[int]
	group_id: Optional[int]
	title: str
	link: str
	imageurl: str = ""
	notes: str = ""
	orderby: int = 0

	def to_dict(self) -> dict:
		return asdict(self)

	def to_payload(self) -> dict:
		"""Fields accepted by POST/PUT /links (everything but the id)."""
		data = self.to_dict()
		data.pop("id")
		return data

	def with_rank(self, rank: int) -> 'Link':
		return replace(self, orderby=rank)

	@classmethod
	def from_dict(cls, data: dict) -> 'Link':
		return cls(
			id=data.get("id"),
			group_id=data.get("group_id"),
			title=data.get("title") or "",
			link=data.get("link") or "",
			imageurl=data.get("imageurl") or "",
			notes=data.get("notes") or "",
			orderby=_as_int(data.get("orderby")),
		)


@dataclass(frozen=True)
class Group:
	"""A named column of links. `links` is kept in display order."""
	id: Optional[int]
	title: str
	orderby: int = 0
	links: Tuple[Link, ...] = field(default_factory=tuple)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"title": self.title,
			"orderby": self.orderby,
			"links": [link.to_dict() for link in self.links],
		}

	def to_payload(self) -> dict:
		return {"title": self.title, "orderby": self.orderby}

	def with_rank(self, rank: int) -> 'Group':
		return replace(self, orderby=rank)

	def with_links(self, links) -> 'Group':
		return replace(self, links=tuple(links))

	def find_link(self, link_id) -> Optional[Link]:
		for link in self.links:
			if link.id == link_id:
				return link
		return None

	@classmethod
	def from_dict(cls, data: dict) -> 'Group':
		return cls(
			id=data.get("id"),
			title=data.get("title") or "",
			orderby=_as_int(data.get("orderby")),
			links=tuple(Link.from_dict(l) for l in (data.get("links") or [])),
		)


@dataclass
class Configuration:
	"""Key/value setting row, e.g. title="Background Image"."""
	id: Optional[int]
	title: str
	datavalue: Optional[str] = None

	def to_dict(self) -> dict:
		return asdict(self)

	@classmethod
	def from_dict(cls, data: dict) -> 'Configuration':
		known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
		known.setdefault("id", None)
		known.setdefault("title", "")
		return cls(**known)
