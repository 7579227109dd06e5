import logging
from pathlib import Path
from typing import Optional
from flask import Flask

from hyperspace import HyperSpace, UploadStore
from .config import ServerConfig

logger = logging.getLogger(__name__)


def create_app(config: Optional[ServerConfig] = None) -> Flask:
	"""Create and configure the Flask application."""
	if config is None:
		config = ServerConfig()

	# Determine paths
	server_dir = Path(__file__).parent
	template_dir = server_dir / "templates"
	static_dir = server_dir / "static"

	app = Flask(
		__name__,
		template_folder=str(template_dir),
		static_folder=str(static_dir),
		static_url_path="/static"
	)

	# Configure app
	app.config["SECRET_KEY"] = config.secret_key
	app.config["MAX_CONTENT_LENGTH"] = config.max_upload_size
	app.json.sort_keys = False
	app.config["HYPERSPACE_CONFIG"] = config
	app.config["HYPERSPACE_DB"] = HyperSpace(config.db_path)
	app.config["HYPERSPACE_UPLOADS"] = UploadStore(config.uploads_dir, naming=config.upload_naming)

	# Register blueprints
	from .routes.views import views_bp
	from .routes.api import api_bp

	app.register_blueprint(views_bp)
	app.register_blueprint(api_bp)

	logger.info(f"HyperSpace Server initialized (db: {config.db_path}, uploads: {config.uploads_dir})")

	return app


def run_server(config: Optional[ServerConfig] = None):
	"""Run the HyperSpace web server."""
	if config is None:
		config = ServerConfig.from_env()

	app = create_app(config)

	logger.info(f"Starting HyperSpace Server on http://{config.host}:{config.port}")

	try:
		app.run(
			host=config.host,
			port=config.port,
			debug=config.debug,
			threaded=True
		)
	finally:
		app.config["HYPERSPACE_DB"].close()
		logger.info("Database closed")
