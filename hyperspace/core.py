import sqlite3
import threading
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Dict, List, Any

from .errors import NotFoundError, ValidationError, PersistenceError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class HyperSpace:
	"""
	Persistence layer for the start page: groups, links and configurations.

	All reads return plain dict rows so they can be handed straight to jsonify.
	"""
	SCHEMA_VERSION = 2

	GROUP_FIELDS = ("title", "orderby")
	LINK_FIELDS = ("group_id", "title", "link", "imageurl", "notes", "orderby")
	CONFIGURATION_FIELDS = ("title", "datavalue")

	def __init__(self, db_path: str = MEMORY_DB):
		"""
		Open (and create if needed) the database.
		:param db_path: Path of the SQLite file, or ":memory:".
		"""
		if str(db_path) == MEMORY_DB:
			self.db_path = MEMORY_DB
		else:
			self.db_path = Path(db_path).resolve()
			self.db_path.parent.mkdir(parents=True, exist_ok=True)

		self._lock = threading.RLock()
		self.conn = self._get_connection()
		self._initialize_schema()
		self._run_migrations()
		logger.info(f"Opened database at {self.db_path}")

	def _get_connection(self) -> sqlite3.Connection:
		"""Returns a tuned SQLite connection."""
		conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
		conn.row_factory = sqlite3.Row
		if self.db_path != MEMORY_DB:
			conn.execute("PRAGMA journal_mode=WAL;")
		conn.execute("PRAGMA synchronous=NORMAL;")
		# Foreign keys stay unenforced: deleting a group leaves its links behind
		conn.execute("PRAGMA foreign_keys=OFF;")
		return conn

	def _initialize_schema(self):
		"""Creates the tables if they don't exist."""
		with self._lock, self.conn:
			self.conn.execute("""
				CREATE TABLE IF NOT EXISTS groups (
					id INTEGER PRIMARY KEY AUTOINCREMENT,
					title VARCHAR(255) NOT NULL,
					orderby INTEGER DEFAULT 0
				);
			""")
			self.conn.execute("""
				CREATE TABLE IF NOT EXISTS links (
					id INTEGER PRIMARY KEY AUTOINCREMENT,
					group_id INTEGER REFERENCES groups(id),
					title VARCHAR(255) NOT NULL,
					link VARCHAR(255) NOT NULL,
					imageurl VARCHAR(255),
					notes TEXT,
					orderby INTEGER DEFAULT 0
				);
			""")
			self.conn.execute("CREATE INDEX IF NOT EXISTS idx_links_group ON links(group_id);")
			self.conn.execute("""
				CREATE TABLE IF NOT EXISTS configurations (
					id INTEGER PRIMARY KEY AUTOINCREMENT,
					title VARCHAR(255) NOT NULL,
					datavalue VARCHAR(255)
				);
			""")

	def _columns(self, table: str) -> List[str]:
		cursor = self.conn.execute(f"PRAGMA table_info({table})")
		return [row["name"] for row in cursor.fetchall()]

	def _run_migrations(self):
		"""Patch older databases that predate the notes and orderby columns."""
		with self._lock, self.conn:
			link_columns = self._columns("links")
			if "notes" not in link_columns:
				logger.info("Migrating: adding links.notes")
				self.conn.execute("ALTER TABLE links ADD COLUMN notes TEXT;")
			if "orderby" not in link_columns:
				logger.info("Migrating: adding links.orderby")
				self.conn.execute("ALTER TABLE links ADD COLUMN orderby INTEGER DEFAULT 0;")
			if "orderby" not in self._columns("groups"):
				logger.info("Migrating: adding groups.orderby")
				self.conn.execute("ALTER TABLE groups ADD COLUMN orderby INTEGER DEFAULT 0;")

			version = self.conn.execute("PRAGMA user_version").fetchone()[0]
			if version < self.SCHEMA_VERSION:
				self.conn.execute(f"PRAGMA user_version = {self.SCHEMA_VERSION}")
				logger.debug(f"Schema version {version} -> {self.SCHEMA_VERSION}")

	def close(self):
		"""Close the database connection."""
		with self._lock:
			self.conn.close()

	# --- Helpers ---

	@contextmanager
	def _guard(self, action: str):
		"""Serialize access to the connection and translate driver errors."""
		with self._lock:
			try:
				yield
			except sqlite3.Error as e:
				logger.exception(f"Database error while trying to {action}")
				raise PersistenceError(f"Failed to {action}") from e

	def _fetch_all(self, sql: str, params: tuple = (), action: str = "query") -> List[Dict[str, Any]]:
		with self._guard(action):
			return [dict(row) for row in self.conn.execute(sql, params).fetchall()]

	def _fetch_one(self, sql: str, params: tuple, resource: str, row_id) -> Dict[str, Any]:
		with self._guard(f"retrieve {resource.lower()}"):
			row = self.conn.execute(sql, params).fetchone()
		if row is None:
			raise NotFoundError(resource, row_id)
		return dict(row)

	def _insert(self, table: str, values: Dict[str, Any], action: str) -> int:
		columns = ", ".join(values)
		placeholders = ", ".join("?" for _ in values)
		with self._guard(action), self.conn:
			cursor = self.conn.execute(
				f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
				tuple(values.values())
			)
			return cursor.lastrowid

	def _update(self, table: str, row_id: int, values: Dict[str, Any], action: str):
		assignments = ", ".join(f"{column} = ?" for column in values)
		with self._guard(action), self.conn:
			self.conn.execute(
				f"UPDATE {table} SET {assignments} WHERE id = ?",
				tuple(values.values()) + (row_id,)
			)

	def _delete(self, table: str, row_id: int, resource: str) -> Dict[str, Any]:
		row = self._fetch_one(f"SELECT * FROM {table} WHERE id = ?", (row_id,), resource, row_id)
		with self._guard(f"delete {resource.lower()}"), self.conn:
			self.conn.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
		return row

	@staticmethod
	def _pick(data: Optional[dict], fields: tuple) -> Dict[str, Any]:
		data = data or {}
		return {k: data[k] for k in fields if k in data}

	@staticmethod
	def _coerce_int(values: Dict[str, Any], key: str, allow_none: bool = True):
		if key not in values:
			return
		value = values[key]
		if value is None or value == "":
			if allow_none:
				values[key] = None
				return
			raise ValidationError(f"{key} is required", key)
		if isinstance(value, bool):
			raise ValidationError(f"{key} must be an integer", key)
		try:
			values[key] = int(value)
		except (TypeError, ValueError):
			raise ValidationError(f"{key} must be an integer", key)

	@staticmethod
	def _require_text(values: Dict[str, Any], key: str):
		value = values.get(key)
		if not isinstance(value, str) or not value.strip():
			raise ValidationError(f"{key} is required", key)

	def _require_group(self, group_id: int):
		try:
			self.get_group(group_id)
		except NotFoundError:
			raise ValidationError("group_id does not reference an existing group", "group_id")

	def _next_rank(self, table: str, where: str = "", params: tuple = ()) -> int:
		with self._guard("compute next rank"):
			row = self.conn.execute(
				f"SELECT MAX(orderby) FROM {table} {where}", params
			).fetchone()
		return 0 if row[0] is None else row[0] + 1

	# --- Groups ---

	def list_groups(self) -> List[Dict[str, Any]]:
		return self._fetch_all(
			"SELECT * FROM groups ORDER BY orderby, id", action="retrieve groups"
		)

	def group_tree(self) -> List[Dict[str, Any]]:
		"""All groups in display order, each with its links in display order."""
		groups = self.list_groups()
		links = self.list_links()

		by_group: Dict[int, List[dict]] = {}
		for link in links:
			by_group.setdefault(link["group_id"], []).append(link)

		for group in groups:
			group["links"] = by_group.get(group["id"], [])
		return groups

	def get_group(self, group_id: int) -> Dict[str, Any]:
		return self._fetch_one("SELECT * FROM groups WHERE id = ?", (group_id,), "Group", group_id)

	def create_group(self, data: dict) -> Dict[str, Any]:
		values = self._pick(data, self.GROUP_FIELDS)
		self._require_text(values, "title")
		self._coerce_int(values, "orderby")
		if values.get("orderby") is None:
			values["orderby"] = self._next_rank("groups")

		new_id = self._insert("groups", values, "create group")
		logger.debug(f"Created group {new_id}: {values['title']}")
		return self.get_group(new_id)

	def update_group(self, group_id: int, data: dict) -> Dict[str, Any]:
		current = self.get_group(group_id)
		values = self._pick(data, self.GROUP_FIELDS)
		if "title" in values:
			self._require_text(values, "title")
		self._coerce_int(values, "orderby")
		if values.get("orderby", 0) is None:
			values["orderby"] = current["orderby"]
		if values:
			self._update("groups", group_id, values, "update group")
		return self.get_group(group_id)

	def delete_group(self, group_id: int) -> Dict[str, Any]:
		"""Remove a group row. Links that still reference it are left in place."""
		row = self._delete("groups", group_id, "Group")
		orphans = self._fetch_all(
			"SELECT id FROM links WHERE group_id = ?", (group_id,), action="count orphaned links"
		)
		if orphans:
			logger.warning(f"Group {group_id} deleted with {len(orphans)} link(s) still referencing it")
		return row

	# --- Links ---

	def list_links(self) -> List[Dict[str, Any]]:
		return self._fetch_all(
			"SELECT * FROM links ORDER BY orderby, id", action="retrieve links"
		)

	def get_link(self, link_id: int) -> Dict[str, Any]:
		return self._fetch_one("SELECT * FROM links WHERE id = ?", (link_id,), "Link", link_id)

	def create_link(self, data: dict) -> Dict[str, Any]:
		values = self._pick(data, self.LINK_FIELDS)
		self._coerce_int(values, "group_id", allow_none=False)
		if "group_id" not in values:
			raise ValidationError("group_id is required", "group_id")
		self._require_group(values["group_id"])
		self._require_text(values, "title")
		self._require_text(values, "link")
		self._coerce_int(values, "orderby")
		if values.get("orderby") is None:
			values["orderby"] = self._next_rank("links", "WHERE group_id = ?", (values["group_id"],))
		values.setdefault("imageurl", "")
		values.setdefault("notes", "")

		new_id = self._insert("links", values, "create link")
		logger.debug(f"Created link {new_id} in group {values['group_id']}: {values['title']}")
		return self.get_link(new_id)

	def update_link(self, link_id: int, data: dict) -> Dict[str, Any]:
		current = self.get_link(link_id)
		values = self._pick(data, self.LINK_FIELDS)
		self._coerce_int(values, "group_id", allow_none=False)
		# Orphaned links stay editable as long as they are not moved
		if "group_id" in values and values["group_id"] != current["group_id"]:
			self._require_group(values["group_id"])
		for key in ("title", "link"):
			if key in values:
				self._require_text(values, key)
		self._coerce_int(values, "orderby")
		if values.get("orderby", 0) is None:
			values["orderby"] = current["orderby"]
		if values:
			self._update("links", link_id, values, "update link")
		return self.get_link(link_id)

	def delete_link(self, link_id: int) -> Dict[str, Any]:
		return self._delete("links", link_id, "Link")

	# --- Configurations ---

	def list_configurations(self) -> List[Dict[str, Any]]:
		return self._fetch_all(
			"SELECT * FROM configurations ORDER BY id", action="retrieve configurations"
		)

	def get_configuration(self, configuration_id: int) -> Dict[str, Any]:
		return self._fetch_one(
			"SELECT * FROM configurations WHERE id = ?", (configuration_id,),
			"Configuration", configuration_id
		)

	def find_configuration(self, title: str) -> Optional[Dict[str, Any]]:
		"""First configuration row with the given title, or None."""
		rows = self._fetch_all(
			"SELECT * FROM configurations WHERE title = ? ORDER BY id LIMIT 1", (title,),
			action="retrieve configuration"
		)
		return rows[0] if rows else None

	def create_configuration(self, data: dict) -> Dict[str, Any]:
		values = self._pick(data, self.CONFIGURATION_FIELDS)
		self._require_text(values, "title")
		new_id = self._insert("configurations", values, "create configuration")
		return self.get_configuration(new_id)

	def update_configuration(self, configuration_id: int, data: dict) -> Dict[str, Any]:
		self.get_configuration(configuration_id)
		values = self._pick(data, self.CONFIGURATION_FIELDS)
		if "title" in values:
			self._require_text(values, "title")
		if values:
			self._update("configurations", configuration_id, values, "update configuration")
		return self.get_configuration(configuration_id)

	def delete_configuration(self, configuration_id: int) -> Dict[str, Any]:
		return self._delete("configurations", configuration_id, "Configuration")
