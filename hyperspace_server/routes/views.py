import logging
from flask import Blueprint, render_template, current_app

from hyperspace.dashboard import background_image, build_columns
from hyperspace.errors import PersistenceError
from hyperspace.models import Configuration, Group

logger = logging.getLogger(__name__)

views_bp = Blueprint("views", __name__)


@views_bp.route("/")
def dashboard():
	"""Read-only start page: one column per group, one card per link."""
	db = current_app.config["HYPERSPACE_DB"]

	try:
		groups = [Group.from_dict(g) for g in db.group_tree()]
		configurations = [Configuration.from_dict(c) for c in db.list_configurations()]
	except PersistenceError:
		return render_template(
			"dashboard.html",
			columns=[],
			background=background_image([]),
			error="Failed to load dashboard"
		), 500

	return render_template(
		"dashboard.html",
		columns=build_columns(groups),
		background=background_image(groups, configurations),
		error=None
	)
