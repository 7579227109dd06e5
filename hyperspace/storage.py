import os
import time
import shutil
import logging
import tempfile
from io import BytesIO
from pathlib import Path
from typing import IO, Optional

from werkzeug.utils import secure_filename

from .errors import ValidationError

logger = logging.getLogger(__name__)


class UploadStore:
	"""
	Flat directory of uploaded link icons.

	Two naming schemes are supported:
	- "timestamp": store as "<epoch-ms>-<name>", never overwriting an existing file.
	  Uploads landing in the same millisecond become "<epoch-ms>-<n>-<name>".
	- "original": store under the sanitized original name, overwriting silently.
	"""
	NAMING_SCHEMES = ("timestamp", "original")
	CHUNK_SIZE = 65536

	def __init__(self, root, naming: str = "timestamp"):
		if naming not in self.NAMING_SCHEMES:
			raise ValueError(f"Unknown upload naming scheme: {naming}")
		self.root = Path(root).resolve()
		self.naming = naming
		os.makedirs(self.root, exist_ok=True)

	def _claim(self, name: str) -> bool:
		"""Create an empty placeholder for `name`; False if it is already taken."""
		try:
			fd = os.open(self.root / name, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
		except FileExistsError:
			return False
		os.close(fd)
		return True

	def _target_name(self, filename: str) -> str:
		safe = secure_filename(filename or "")
		if not safe:
			raise ValidationError("Invalid filename", "file")

		if self.naming == "original":
			if (self.root / safe).exists():
				logger.warning(f"Overwriting existing upload: {safe}")
			return safe

		stamp = int(time.time() * 1000)
		candidate = f"{stamp}-{safe}"
		counter = 1
		while not self._claim(candidate):
			candidate = f"{stamp}-{counter}-{safe}"
			counter += 1
		return candidate

	def save(self, stream: IO[bytes], filename: str) -> str:
		"""Write the stream to the store and return the stored filename."""
		name = self._target_name(filename)
		target = self.root / name
		tmp = tempfile.NamedTemporaryFile(dir=self.root, prefix=".", suffix=".part", delete=False)
		try:
			with tmp:
				shutil.copyfileobj(stream, tmp, self.CHUNK_SIZE)
			os.replace(tmp.name, target)
		except OSError:
			if os.path.exists(tmp.name):
				os.unlink(tmp.name)
			# Release the placeholder claimed for this upload
			if self.naming == "timestamp" and target.exists() and target.stat().st_size == 0:
				target.unlink()
			raise
		logger.info(f"Stored upload {filename!r} as {name}")
		return name

	def save_bytes(self, data: bytes, filename: str) -> str:
		return self.save(BytesIO(data), filename)

	def path_for(self, name: str) -> Optional[Path]:
		"""Resolve a stored name to its path, refusing anything outside the store."""
		if not name:
			return None
		path = (self.root / name).resolve()
		if path.parent != self.root:
			return None
		return path

	def exists(self, name: str) -> bool:
		path = self.path_for(name)
		return path is not None and path.is_file()

	def read(self, name: str) -> Optional[bytes]:
		if not self.exists(name):
			return None
		return self.path_for(name).read_bytes()

	def delete(self, name: str) -> bool:
		if not self.exists(name):
			return False
		self.path_for(name).unlink()
		logger.debug(f"Deleted upload {name}")
		return True
