"""Pytest configuration and fixtures for HyperSpace tests."""

from urllib.parse import urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict
from requests.utils import get_encoding_from_headers

from hyperspace import HyperSpaceClient
from hyperspace_server import ServerConfig, create_app

BASE_URL = "http://hyperspace.test"


class FlaskAdapter(BaseAdapter):
	"""
	requests transport that hands every request to a Flask test client,
	so the API client can be exercised without opening a socket.

	`calls` records (method, path) for each request; `fail_when` is an
	optional predicate(method, path) that turns a request into a
	ConnectionError before it reaches the app.
	"""

	def __init__(self, test_client):
		super().__init__()
		self.test_client = test_client
		self.calls = []
		self.fail_when = None

	def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
		url = urlsplit(request.url)
		self.calls.append((request.method, url.path))

		if self.fail_when is not None and self.fail_when(request.method, url.path):
			raise requests.ConnectionError(f"simulated failure for {request.method} {url.path}")

		headers = dict(request.headers)
		headers.pop("Content-Length", None)
		content_type = headers.pop("Content-Type", None)
		body = request.body
		if isinstance(body, str):
			body = body.encode("utf-8")

		resp = self.test_client.open(
			url.path,
			method=request.method,
			query_string=url.query,
			headers=headers,
			data=body,
			content_type=content_type,
		)

		response = requests.Response()
		response.status_code = resp.status_code
		response.reason = resp.status.split(" ", 1)[1] if " " in resp.status else ""
		response.headers = CaseInsensitiveDict(resp.headers)
		response.encoding = get_encoding_from_headers(response.headers)
		response._content = resp.get_data()
		response.url = request.url
		response.request = request
		return response

	def close(self):
		pass

	def reset(self):
		self.calls.clear()
		self.fail_when = None

	def calls_for(self, method: str, prefix: str = "/"):
		return [path for m, path in self.calls if m == method and path.startswith(prefix)]


@pytest.fixture
def config(tmp_path):
	return ServerConfig(data_dir=tmp_path / "data", secret_key="test-secret")


@pytest.fixture
def app(config):
	app = create_app(config)
	app.config["TESTING"] = True
	yield app
	app.config["HYPERSPACE_DB"].close()


@pytest.fixture
def http(app):
	"""Flask test client."""
	return app.test_client()


@pytest.fixture
def db(app):
	return app.config["HYPERSPACE_DB"]


@pytest.fixture
def transport(http):
	return FlaskAdapter(http)


@pytest.fixture
def api(transport):
	"""HyperSpaceClient wired to the test app."""
	session = requests.Session()
	session.mount(BASE_URL, transport)
	return HyperSpaceClient(BASE_URL, session=session)


@pytest.fixture
def make_api():
	"""Factory for clients bound to another app instance."""
	def factory(app):
		session = requests.Session()
		session.mount(BASE_URL, FlaskAdapter(app.test_client()))
		return HyperSpaceClient(BASE_URL, session=session)
	return factory


@pytest.fixture
def seeded(db):
	"""Two groups with links; returns the ids for convenience."""
	apps = db.create_group({"title": "Apps", "orderby": 0})
	dev = db.create_group({"title": "Dev", "orderby": 1})
	mail = db.create_link({
		"group_id": apps["id"], "title": "Mail", "link": "https://mail.example.com",
		"imageurl": "", "orderby": 0,
	})
	calendar = db.create_link({
		"group_id": apps["id"], "title": "Calendar", "link": "https://cal.example.com",
		"imageurl": "", "notes": "<p>Team <strong>events</strong></p>", "orderby": 1,
	})
	git = db.create_link({
		"group_id": dev["id"], "title": "Git", "link": "https://git.example.com",
		"imageurl": "", "orderby": 0,
	})
	return {
		"apps": apps["id"], "dev": dev["id"],
		"mail": mail["id"], "calendar": calendar["id"], "git": git["id"],
	}
