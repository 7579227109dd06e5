import logging, sys


def setup_logging(level = logging.INFO):
	root_logger = logging.getLogger()
	root_logger.setLevel(level)

	# Avoid stacking handlers when the server or CLI initialises twice
	for existing in list(root_logger.handlers):
		if getattr(existing, "_hyperspace", False):
			root_logger.removeHandler(existing)

	handler = logging.StreamHandler(sys.stdout)
	handler._hyperspace = True
	
	formatter = logging.Formatter(
		"[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
		datefmt="%H:%M:%S"
	)
	handler.setFormatter(formatter)
	root_logger.addHandler(handler)

	# Werkzeug request lines are noisy at INFO
	if level > logging.DEBUG:
		logging.getLogger("werkzeug").setLevel(logging.WARNING)
