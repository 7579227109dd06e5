"""
Export/import of the whole dashboard as a zip bundle.

Layout of a bundle:
	data.json           array of groups, each with a nested "links" array
	images/<filename>   one entry per distinct icon referenced by a link

Importing is destructive: existing links, groups and configurations are
deleted before the bundle's content is recreated. The archive is fully read
and validated before anything is deleted, but there is no rollback once
deletion has started.
"""

import io
import json
import os
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Sequence, Union

from .client import HyperSpaceClient
from .errors import ArchiveFormatError, HyperSpaceError
from .models import Group

logger = logging.getLogger(__name__)

DATA_FILE = "data.json"
IMAGES_PREFIX = "images/"


@dataclass
class ImportResult:
	groups: List[Group] = field(default_factory=list)
	group_count: int = 0
	link_count: int = 0
	image_map: Dict[str, str] = field(default_factory=dict)
	unmapped_images: List[str] = field(default_factory=list)


def bundle_filename(now: Optional[datetime] = None) -> str:
	"""Timestamped archive name so repeated exports do not collide."""
	now = now or datetime.now()
	return f"hyperspace-export-{now.strftime('%Y%m%d-%H%M%S')}.zip"


def referenced_images(groups: Sequence[Group]) -> List[str]:
	"""Distinct non-empty imageurl values, in first-seen order."""
	seen = []
	for group in groups:
		for link in group.links:
			if link.imageurl and link.imageurl not in seen:
				seen.append(link.imageurl)
	return seen


def export_bundle(client: HyperSpaceClient, groups: Optional[Sequence[Group]] = None) -> bytes:
	"""
	Build a bundle from `groups` (default: the server's current tree).
	Icons that cannot be fetched are logged and left out.
	"""
	if groups is None:
		groups = client.list_groups()

	document = json.dumps([g.to_dict() for g in groups], indent=2, ensure_ascii=False)

	buf = io.BytesIO()
	with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
		zf.writestr(DATA_FILE, document)

		for name in referenced_images(groups):
			try:
				data = client.fetch_upload(name)
			except HyperSpaceError as e:
				logger.warning(f"Skipping image {name} in export: {e}")
				continue
			zf.writestr(IMAGES_PREFIX + name, data)
			logger.debug(f"Exported image {name} ({len(data)} bytes)")

	logger.info(f"Exported {len(groups)} groups")
	return buf.getvalue()


def _read_payload(payload: Union[bytes, str, os.PathLike]) -> bytes:
	if isinstance(payload, (bytes, bytearray)):
		return bytes(payload)
	with open(payload, "rb") as f:
		return f.read()


def _parse_groups(raw: bytes) -> List[Group]:
	try:
		document = json.loads(raw.decode("utf-8"))
	except (UnicodeDecodeError, json.JSONDecodeError) as e:
		raise ArchiveFormatError(f"{DATA_FILE} is not valid JSON: {e}")

	if not isinstance(document, list):
		raise ArchiveFormatError(f"{DATA_FILE} must contain an array of groups")

	groups = []
	for i, entry in enumerate(document):
		if not isinstance(entry, dict) or not str(entry.get("title") or "").strip():
			raise ArchiveFormatError(f"Group #{i} in {DATA_FILE} has no title")
		links = entry.get("links") or []
		if not isinstance(links, list) or not all(isinstance(l, dict) for l in links):
			raise ArchiveFormatError(f"Group {entry['title']!r} has malformed links")
		for j, link in enumerate(links):
			for key in ("title", "link"):
				value = link.get(key)
				if not isinstance(value, str) or not value.strip():
					raise ArchiveFormatError(f"Link #{j} in group {entry['title']!r} has no {key}")
		try:
			groups.append(Group.from_dict(entry))
		except (TypeError, ValueError) as e:
			raise ArchiveFormatError(f"Group {entry['title']!r} is malformed: {e}")
	return groups


def read_bundle(payload) -> tuple:
	"""Return (groups, {archive filename: bytes}) without touching the server."""
	try:
		archive = zipfile.ZipFile(io.BytesIO(_read_payload(payload)))
	except zipfile.BadZipFile as e:
		raise ArchiveFormatError(f"Not a zip archive: {e}")

	with archive:
		names = archive.namelist()
		if DATA_FILE not in names:
			raise ArchiveFormatError(f"Archive has no {DATA_FILE}")
		groups = _parse_groups(archive.read(DATA_FILE))

		images = {}
		for name in names:
			if not name.startswith(IMAGES_PREFIX) or name.endswith("/"):
				continue
			filename = PurePosixPath(name).name
			if filename:
				images[filename] = archive.read(name)
	return groups, images


def wipe(client: HyperSpaceClient):
	"""Delete every link, then every group, then every configuration."""
	for link in client.list_links():
		client.delete_link(link.id)
	for group in client.list_groups():
		client.delete_group(group.id)
	for configuration in client.list_configurations():
		client.delete_configuration(configuration.id)


def import_bundle(client: HyperSpaceClient, payload) -> ImportResult:
	"""
	Replace the server's content with the bundle's.
	Raises ArchiveFormatError before any deletion if the archive is unusable.
	"""
	groups, images = read_bundle(payload)
	result = ImportResult()

	logger.warning("Import: deleting existing links, groups and configurations")
	wipe(client)

	try:
		for filename, data in images.items():
			stored = client.upload(io.BytesIO(data), filename)
			result.image_map[filename] = stored
			logger.debug(f"Re-uploaded {filename} as {stored}")

		for group in groups:
			created = client.create_group(group.title, group.orderby or 0)
			result.group_count += 1
			for link in group.links:
				imageurl = result.image_map.get(link.imageurl, "") if link.imageurl else ""
				if link.imageurl and not imageurl:
					result.unmapped_images.append(link.imageurl)
				client.create_link(
					group_id=created.id,
					title=link.title,
					link=link.link,
					imageurl=imageurl,
					notes=link.notes,
					orderby=link.orderby or 0,
				)
				result.link_count += 1
	except HyperSpaceError:
		logger.error(
			f"Import failed after wiping the store "
			f"({result.group_count} groups, {result.link_count} links restored)"
		)
		raise

	if result.unmapped_images:
		logger.warning(f"Imported without icons (missing from archive): {result.unmapped_images}")

	result.groups = client.list_groups()
	logger.info(f"Imported {result.group_count} groups and {result.link_count} links")
	return result
