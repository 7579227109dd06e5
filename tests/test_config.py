import threading
from io import BytesIO

import pytest

from hyperspace.errors import ValidationError
from hyperspace.storage import UploadStore
from hyperspace_server import ServerConfig


def test_defaults_derive_from_data_dir(tmp_path):
	config = ServerConfig(data_dir=str(tmp_path))
	assert config.db_path == str(tmp_path.resolve() / "hyperspace.db")
	assert config.uploads_dir == tmp_path.resolve() / "uploads"
	assert config.api_port == config.port == 3003


def test_unknown_naming_falls_back(tmp_path):
	assert ServerConfig(data_dir=tmp_path, upload_naming="random").upload_naming == "timestamp"


def test_from_env(monkeypatch, tmp_path):
	monkeypatch.setenv("HYPERSPACE_DATA_DIR", str(tmp_path))
	monkeypatch.setenv("PORT", "8080")
	monkeypatch.setenv("HYPERSPACE_PORT", "9090")
	monkeypatch.setenv("API_PORT", "3004")
	monkeypatch.setenv("HYPERSPACE_DEBUG", "yes")
	monkeypatch.setenv("HYPERSPACE_UPLOAD_NAMING", "original")

	config = ServerConfig.from_env(host="0.0.0.0", port=None)
	assert config.port == 9090
	assert config.api_port == 3004
	assert config.debug is True
	assert config.host == "0.0.0.0"
	assert config.upload_naming == "original"
	assert config.data_dir == tmp_path.resolve()


def test_timestamp_naming_never_overwrites(tmp_path, monkeypatch):
	monkeypatch.setattr("hyperspace.storage.time.time", lambda: 1700000000.0)
	store = UploadStore(tmp_path)
	names = [store.save_bytes(str(i).encode(), "../../etc/logo.png") for i in range(3)]
	assert names == [
		"1700000000000-etc_logo.png",
		"1700000000000-1-etc_logo.png",
		"1700000000000-2-etc_logo.png",
	]
	assert [store.read(n) for n in names] == [b"0", b"1", b"2"]


def test_concurrent_uploads_get_distinct_files(tmp_path, monkeypatch):
	monkeypatch.setattr("hyperspace.storage.time.time", lambda: 1700000000.0)
	store = UploadStore(tmp_path)
	start = threading.Barrier(8)
	names = []

	def upload(i):
		start.wait()
		names.append((store.save_bytes(f"icon-{i}".encode(), "logo.png"), i))

	threads = [threading.Thread(target=upload, args=(i,)) for i in range(8)]
	for t in threads:
		t.start()
	for t in threads:
		t.join()

	assert len({name for name, _ in names}) == 8
	for name, i in names:
		assert store.read(name) == f"icon-{i}".encode()
	assert not list(tmp_path.glob("*.part"))
	assert not list(tmp_path.glob(".*.part"))


def test_original_naming_overwrites(tmp_path):
	store = UploadStore(tmp_path, naming="original")
	assert store.save(BytesIO(b"old"), "icon.png") == "icon.png"
	assert store.save(BytesIO(b"new"), "icon.png") == "icon.png"
	assert store.read("icon.png") == b"new"


def test_store_rejects_unusable_names(tmp_path):
	store = UploadStore(tmp_path)
	with pytest.raises(ValidationError):
		store.save_bytes(b"x", "../")
	assert store.path_for("../outside.png") is None
	assert store.exists("missing.png") is False
	assert store.delete("missing.png") is False
