import argparse
import logging
import sys
from pathlib import Path

from hyperspace import Editor, HyperSpaceClient
from hyperspace.bundle import bundle_filename
from hyperspace.errors import HyperSpaceError
from hyperspace.logger import setup_logging
from hyperspace_server import ServerConfig, run_server

DEFAULT_URL = "http://127.0.0.1:3003"


def cmd_serve(args: argparse.Namespace) -> int:
	config = ServerConfig.from_env(
		host=args.host,
		port=args.port,
		data_dir=args.data_dir,
		debug=args.debug or None,
	)
	run_server(config)
	return 0


def cmd_export(args: argparse.Namespace) -> int:
	editor = Editor(HyperSpaceClient(args.url))
	editor.load()
	output = Path(args.output) if args.output else Path.cwd() / bundle_filename()
	output.write_bytes(editor.export_bundle())
	logging.info(f"Exported {len(editor.groups)} groups to {output}")
	return 0


def cmd_import(args: argparse.Namespace) -> int:
	bundle = Path(args.bundle)
	if not bundle.is_file():
		logging.error(f"Bundle not found: {bundle}")
		return 1

	if not args.yes:
		answer = input("Importing deletes every existing group, link and configuration. Continue? [y/N] ")
		if answer.strip().lower() not in ("y", "yes"):
			logging.info("Import cancelled")
			return 1

	editor = Editor(HyperSpaceClient(args.url))
	if not editor.import_bundle(bundle):
		for error in editor.pop_errors():
			logging.error(error)
		return 1

	logging.info(f"Imported {len(editor.groups)} groups from {bundle}")
	return 0


def main() -> int:
	parser = argparse.ArgumentParser(description="HyperSpace start page")
	parser.add_argument("--debug", action="store_true", help="Enable debug logging")
	subparsers = parser.add_subparsers(dest="command")

	serve = subparsers.add_parser("serve", help="Run the web server (default)")
	serve.add_argument("--host", default=None, help="Server host")
	serve.add_argument("--port", type=int, default=None, help="Server port")
	serve.add_argument("--data-dir", default=None, help="Directory for the database and uploads")
	serve.set_defaults(func=cmd_serve)

	export = subparsers.add_parser("export", help="Export groups, links and icons to a zip bundle")
	export.add_argument("--url", default=DEFAULT_URL, help="HyperSpace server URL")
	export.add_argument("--output", "-o", default=None, help="Bundle path (default: timestamped name)")
	export.set_defaults(func=cmd_export)

	restore = subparsers.add_parser("import", help="Replace all content with a zip bundle")
	restore.add_argument("bundle", help="Bundle to import")
	restore.add_argument("--url", default=DEFAULT_URL, help="HyperSpace server URL")
	restore.add_argument("--yes", "-y", action="store_true", help="Don't ask for confirmation")
	restore.set_defaults(func=cmd_import)

	args = parser.parse_args()

	setup_logging(level=logging.DEBUG if args.debug else logging.INFO)

	if args.command is None:
		args = parser.parse_args(sys.argv[1:] + ["serve"])

	try:
		return args.func(args)
	except KeyboardInterrupt:
		logging.info("Shutting down...")
		return 0
	except HyperSpaceError as e:
		logging.error(e.message)
		return 1


if __name__ == "__main__":
	sys.exit(main())
