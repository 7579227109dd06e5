from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .models import Configuration, Group, Link
from .sanitize import clean_html

SETTINGS_GROUP = "Settings"
BACKGROUND_TITLE = "Background Image"
DEFAULT_BACKGROUND = "/static/background.svg"
UPLOADS_URL = "/uploads/"


@dataclass(frozen=True)
class Card:
	"""Render-ready view of a link."""
	id: Optional[int]
	title: str
	url: str
	icon_url: Optional[str]
	notes_html: str


@dataclass(frozen=True)
class Column:
	id: Optional[int]
	title: str
	cards: List[Card]


def upload_url(name: str) -> Optional[str]:
	return f"{UPLOADS_URL}{name}" if name else None


def visible_groups(groups: Iterable[Group]) -> List[Group]:
	"""Groups shown on the dashboard, in display order. The Settings group is hidden."""
	shown = [g for g in groups if g.title != SETTINGS_GROUP]
	return sorted(shown, key=lambda g: (g.orderby, g.id if g.id is not None else 0))


def background_image(groups: Sequence[Group], configurations: Sequence[Configuration] = ()) -> str:
	"""
	Resolve the page background.

	Looks for the "Background Image" link inside the Settings group first
	(its uploaded icon, else its URL), then a "Background Image" configuration
	row, then falls back to the bundled default.
	"""
	for group in groups:
		if group.title != SETTINGS_GROUP:
			continue
		for link in group.links:
			if link.title != BACKGROUND_TITLE:
				continue
			if link.imageurl:
				return upload_url(link.imageurl)
			if link.link:
				return link.link

	for configuration in configurations:
		if configuration.title == BACKGROUND_TITLE and configuration.datavalue:
			value = configuration.datavalue
			if "/" in value:
				return value
			return upload_url(value)

	return DEFAULT_BACKGROUND


def build_card(link: Link) -> Card:
	return Card(
		id=link.id,
		title=link.title,
		url=link.link,
		icon_url=upload_url(link.imageurl),
		notes_html=clean_html(link.notes),
	)


def build_columns(groups: Iterable[Group]) -> List[Column]:
	columns = []
	for group in visible_groups(groups):
		links = sorted(group.links, key=lambda l: (l.orderby, l.id if l.id is not None else 0))
		columns.append(Column(id=group.id, title=group.title, cards=[build_card(l) for l in links]))
	return columns
