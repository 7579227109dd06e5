import logging
from pathlib import Path
from typing import IO, List, Optional

import requests

from .errors import NotFoundError, TransportError
from .models import Configuration, Group, Link

logger = logging.getLogger(__name__)


class HyperSpaceClient:
	"""Thin wrapper over the HyperSpace HTTP API."""

	def __init__(self, base_url: str = "http://127.0.0.1:3003", session: Optional[requests.Session] = None,
				timeout: float = 30):
		self.base_url = base_url.rstrip("/")
		self.session = session or requests.Session()
		self.timeout = timeout
		self.session.headers.update({"Accept": "application/json"})

	def _url(self, path: str) -> str:
		return f"{self.base_url}/{path.lstrip('/')}"

	def _request(self, method: str, path: str, **kwargs) -> requests.Response:
		"""
		Modular request wrapper handling timeouts, status checks, and logging.
		"""
		url = self._url(path)
		kwargs.setdefault("timeout", self.timeout)
		try:
			resp = self.session.request(method, url, **kwargs)
		except requests.RequestException as e:
			logger.error(f"Request failed: {method} {url} - {e}")
			raise TransportError(f"{method} {path} failed: {e}") from e

		if resp.status_code == 404:
			raise NotFoundError(path, message=self._error_message(resp))
		if not resp.ok:
			message = self._error_message(resp) or resp.reason
			logger.error(f"Request failed: {method} {url} - {resp.status_code} {message}")
			raise TransportError(f"{method} {path} returned {resp.status_code}: {message}", resp.status_code)
		return resp

	@staticmethod
	def _error_message(resp: requests.Response) -> Optional[str]:
		try:
			body = resp.json()
		except ValueError:
			return None
		if isinstance(body, dict):
			return body.get("error")
		return None

	def _json(self, method: str, path: str, **kwargs):
		return self._request(method, path, **kwargs).json()

	# --- Groups ---

	def list_groups(self) -> List[Group]:
		"""GET /groups: every group with its links attached."""
		return [Group.from_dict(g) for g in self._json("GET", "/groups")]

	def get_group(self, group_id) -> Group:
		return Group.from_dict(self._json("GET", f"/groups/{group_id}"))

	def create_group(self, title: str, orderby: Optional[int] = None) -> Group:
		payload = {"title": title}
		if orderby is not None:
			payload["orderby"] = orderby
		return Group.from_dict(self._json("POST", "/groups", json=payload))

	def update_group(self, group_id, **fields) -> Group:
		return Group.from_dict(self._json("PUT", f"/groups/{group_id}", json=fields))

	def delete_group(self, group_id) -> dict:
		return self._json("DELETE", f"/groups/{group_id}")

	# --- Links ---

	def list_links(self) -> List[Link]:
		return [Link.from_dict(l) for l in self._json("GET", "/links")]

	def get_link(self, link_id) -> Link:
		return Link.from_dict(self._json("GET", f"/links/{link_id}"))

	def create_link(self, **fields) -> Link:
		return Link.from_dict(self._json("POST", "/links", json=fields))

	def update_link(self, link_id, **fields) -> Link:
		return Link.from_dict(self._json("PUT", f"/links/{link_id}", json=fields))

	def delete_link(self, link_id) -> dict:
		return self._json("DELETE", f"/links/{link_id}")

	# --- Configurations ---

	def list_configurations(self) -> List[Configuration]:
		return [Configuration.from_dict(c) for c in self._json("GET", "/configurations")]

	def get_configuration(self, configuration_id) -> Configuration:
		return Configuration.from_dict(self._json("GET", f"/configurations/{configuration_id}"))

	def create_configuration(self, title: str, datavalue: Optional[str] = None) -> Configuration:
		payload = {"title": title, "datavalue": datavalue}
		return Configuration.from_dict(self._json("POST", "/configurations", json=payload))

	def update_configuration(self, configuration_id, title: str, datavalue: Optional[str]) -> Configuration:
		# The update route is singular on the server
		payload = {"title": title, "datavalue": datavalue}
		return Configuration.from_dict(self._json("PUT", f"/configuration/{configuration_id}", json=payload))

	def delete_configuration(self, configuration_id) -> dict:
		return self._json("DELETE", f"/configurations/{configuration_id}")

	# --- Uploads ---

	def upload(self, stream: IO[bytes], filename: str) -> str:
		"""POST /upload and return the storage filename assigned by the server."""
		body = self._json("POST", "/upload", files={"file": (filename, stream)})
		return body["file"]["filename"]

	def upload_path(self, path) -> str:
		path = Path(path)
		with open(path, "rb") as f:
			return self.upload(f, path.name)

	def fetch_upload(self, name: str) -> bytes:
		return self._request("GET", f"/uploads/{name}").content
