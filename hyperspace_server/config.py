from dataclasses import dataclass, field
from pathlib import Path
import os
import logging

logger = logging.getLogger(__name__)

ENV_PREFIX = "HYPERSPACE_"


def _env(name: str, default=None):
	"""Read HYPERSPACE_<name>, falling back to the bare <name>."""
	value = os.environ.get(ENV_PREFIX + name)
	if value is None:
		value = os.environ.get(name)
	return value if value not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
	value = _env(name)
	if value is None:
		return default
	return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
	"""Configuration for the HyperSpace web server."""
	host: str = "127.0.0.1"
	port: int = 3003
	debug: bool = False
	secret_key: str = field(default_factory=lambda: os.urandom(24).hex())
	data_dir: Path = None
	db_path: str = None
	uploads_dir: Path = None
	upload_naming: str = "timestamp"
	api_port: int = None  # Port the frontend proxies API calls to
	max_upload_size: int = 10 * 1024 * 1024  # 10MB

	def __post_init__(self):
		# Set default data dir if not provided
		if self.data_dir is None:
			self.data_dir = Path.cwd() / ".hyperspace"
		elif isinstance(self.data_dir, str):
			self.data_dir = Path(self.data_dir)

		# Ensure it's resolved
		self.data_dir = self.data_dir.resolve()

		if self.db_path is None:
			self.db_path = str(self.data_dir / "hyperspace.db")

		if self.uploads_dir is None:
			self.uploads_dir = self.data_dir / "uploads"
		elif isinstance(self.uploads_dir, str):
			self.uploads_dir = Path(self.uploads_dir)
		self.uploads_dir = self.uploads_dir.resolve()

		if self.upload_naming not in ("timestamp", "original"):
			logger.warning(f"Unknown upload naming {self.upload_naming!r}, using 'timestamp'")
			self.upload_naming = "timestamp"

		if self.api_port is None:
			self.api_port = self.port

	@classmethod
	def from_env(cls, **overrides) -> 'ServerConfig':
		"""
		Build a config from the environment:
		HYPERSPACE_HOST, HYPERSPACE_PORT (or PORT), HYPERSPACE_DEBUG,
		HYPERSPACE_DATA_DIR, HYPERSPACE_DB_PATH, HYPERSPACE_UPLOADS_DIR,
		HYPERSPACE_UPLOAD_NAMING, HYPERSPACE_API_PORT (or API_PORT),
		HYPERSPACE_SECRET_KEY, HYPERSPACE_MAX_UPLOAD_SIZE.
		"""
		values = {}
		if _env("HOST"):
			values["host"] = _env("HOST")
		if _env("PORT"):
			values["port"] = int(_env("PORT"))
		values["debug"] = _env_bool("DEBUG", False)
		for key, name in (
			("data_dir", "DATA_DIR"),
			("db_path", "DB_PATH"),
			("uploads_dir", "UPLOADS_DIR"),
			("upload_naming", "UPLOAD_NAMING"),
			("secret_key", "SECRET_KEY"),
		):
			if _env(name):
				values[key] = _env(name)
		if _env("API_PORT"):
			values["api_port"] = int(_env("API_PORT"))
		if _env("MAX_UPLOAD_SIZE"):
			values["max_upload_size"] = int(_env("MAX_UPLOAD_SIZE"))

		values.update({k: v for k, v in overrides.items() if v is not None})
		return cls(**values)
