"""
Exception hierarchy shared by the persistence layer, the API client
and the bundle importer.
"""


class HyperSpaceError(Exception):
	"""Base class for all HyperSpace errors."""
	def __init__(self, message: str):
		self.message = message
		super().__init__(message)


class NotFoundError(HyperSpaceError):
	"""Raised when no row matches the requested id."""
	def __init__(self, resource: str, row_id=None, message: str = None):
		self.resource = resource
		self.row_id = row_id
		super().__init__(message or f"{resource} not found")


class ValidationError(HyperSpaceError):
	"""Raised when a request body is missing or has malformed fields."""
	def __init__(self, message: str, field: str = None):
		self.field = field
		super().__init__(message)


class PersistenceError(HyperSpaceError):
	"""Raised when the database call fails."""


class TransportError(HyperSpaceError):
	"""Raised by the API client when a request fails or returns an error status."""
	def __init__(self, message: str, status: int = None):
		self.status = status
		super().__init__(message)


class ArchiveFormatError(HyperSpaceError):
	"""Raised when an import bundle is unreadable or lacks data.json."""
