import logging
from functools import wraps
from flask import Blueprint, request, jsonify, current_app, send_from_directory

from hyperspace.errors import NotFoundError, ValidationError, PersistenceError

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def get_db():
	"""Get the HyperSpace persistence layer."""
	return current_app.config["HYPERSPACE_DB"]


def get_uploads():
	"""Get the upload store."""
	return current_app.config["HYPERSPACE_UPLOADS"]


def json_body() -> dict:
	data = request.get_json(silent=True)
	if data is None:
		if request.get_data(cache=True):
			raise ValidationError("Request body must be valid JSON")
		data = {}
	if not isinstance(data, dict):
		raise ValidationError("Request body must be a JSON object")
	return data


def api_errors(failure_message: str):
	"""
	Decorator mapping domain errors to JSON responses.
	Persistence failures get `failure_message` only; details stay in the log.
	"""
	def decorator(f):
		@wraps(f)
		def decorated(*args, **kwargs):
			try:
				return f(*args, **kwargs)
			except NotFoundError as e:
				return jsonify({"error": e.message}), 404
			except ValidationError as e:
				return jsonify({"error": e.message}), 400
			except PersistenceError:
				return jsonify({"error": failure_message}), 500
		return decorated
	return decorator


@api_bp.route("/health", methods=["GET"])
def health():
	return jsonify({"status": "ok"})


# ============ Groups ============

@api_bp.route("/groups", methods=["GET"])
@api_errors("Failed to retrieve groups with links")
def list_groups():
	"""All groups in display order, each with its links attached."""
	return jsonify(get_db().group_tree())


@api_bp.route("/groups", methods=["POST"])
@api_errors("Failed to create group")
def create_group():
	group = get_db().create_group(json_body())
	return jsonify(group), 201


@api_bp.route("/groups/<int:group_id>", methods=["GET"])
@api_errors("Failed to retrieve group")
def get_group(group_id: int):
	return jsonify(get_db().get_group(group_id))


@api_bp.route("/groups/<int:group_id>", methods=["PUT"])
@api_errors("Failed to update group")
def update_group(group_id: int):
	return jsonify(get_db().update_group(group_id, json_body()))


@api_bp.route("/groups/<int:group_id>", methods=["DELETE"])
@api_errors("Failed to delete group")
def delete_group(group_id: int):
	get_db().delete_group(group_id)
	return jsonify({"message": "Group deleted successfully"})


# ============ Configurations ============

@api_bp.route("/configurations", methods=["GET"])
@api_errors("Failed to retrieve configurations")
def list_configurations():
	return jsonify(get_db().list_configurations())


@api_bp.route("/configurations", methods=["POST"])
@api_errors("Failed to create configuration")
def create_configuration():
	configuration = get_db().create_configuration(json_body())
	return jsonify(configuration), 201


@api_bp.route("/configurations/<int:configuration_id>", methods=["GET"])
@api_errors("Failed to retrieve configuration")
def get_configuration(configuration_id: int):
	return jsonify(get_db().get_configuration(configuration_id))


# Existing clients update through the singular path
@api_bp.route("/configuration/<int:configuration_id>", methods=["PUT"])
@api_bp.route("/configurations/<int:configuration_id>", methods=["PUT"])
@api_errors("Failed to update configuration")
def update_configuration(configuration_id: int):
	return jsonify(get_db().update_configuration(configuration_id, json_body()))


@api_bp.route("/configurations/<int:configuration_id>", methods=["DELETE"])
@api_errors("Failed to delete configuration")
def delete_configuration(configuration_id: int):
	get_db().delete_configuration(configuration_id)
	return jsonify({"message": "Configuration deleted successfully"})


# ============ Links ============

@api_bp.route("/links", methods=["GET"])
@api_errors("Failed to retrieve links")
def list_links():
	return jsonify(get_db().list_links())


@api_bp.route("/links", methods=["POST"])
@api_errors("Failed to create link")
def create_link():
	link = get_db().create_link(json_body())
	return jsonify(link), 201


@api_bp.route("/links/<int:link_id>", methods=["GET"])
@api_errors("Failed to retrieve link")
def get_link(link_id: int):
	return jsonify(get_db().get_link(link_id))


@api_bp.route("/links/<int:link_id>", methods=["PUT"])
@api_errors("Failed to update link")
def update_link(link_id: int):
	return jsonify(get_db().update_link(link_id, json_body()))


@api_bp.route("/links/<int:link_id>", methods=["DELETE"])
@api_errors("Failed to delete link")
def delete_link(link_id: int):
	get_db().delete_link(link_id)
	return jsonify({"message": "Link deleted successfully"})


# ============ Uploads ============

@api_bp.route("/upload", methods=["POST"])
@api_errors("Failed to upload file")
def upload_file():
	"""Store one icon and report the name links should reference."""
	if "file" not in request.files:
		raise ValidationError("No file provided", "file")

	file = request.files["file"]
	if not file.filename:
		raise ValidationError("No filename", "file")

	store = get_uploads()
	try:
		stored = store.save(file.stream, file.filename)
	except OSError:
		logger.exception(f"Failed to store upload {file.filename!r}")
		return jsonify({"error": "Failed to upload file"}), 500

	return jsonify({
		"message": "File uploaded successfully",
		"file": {
			"filename": stored,
			"originalname": file.filename,
			"mimetype": file.mimetype,
			"size": store.path_for(stored).stat().st_size,
		}
	})


@api_bp.route("/uploads/<path:name>", methods=["GET"])
def get_upload(name: str):
	"""Serve a previously uploaded file."""
	store = get_uploads()
	if not store.exists(name):
		return jsonify({"error": "File not found"}), 404
	return send_from_directory(store.root, name, max_age=31536000)
