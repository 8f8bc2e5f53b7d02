import argparse
import sys
from typing import Any

from .config import (
	ConfigError,
	VERSION_LINE,
	loadConfig,
	merge,
	parseBool,
	parseInt,
	writeDefaultConfig,
)
from .server import run
from .utils import logging
from .utils.logging import error, info

# Flags as `(name, field, help)`, each accepted with one or two dashes
FLAGS: list[tuple[str, str, str]] = [
	("addr", "addr", "TCP address to listen to, ie. 0.0.0.0:8080"),
	("addrtls", "addrTLS", "TCP address to listen to for TLS, empty disables TLS"),
	("certfile", "certFile", "Path to the TLS certificate file"),
	("keyfile", "keyFile", "Path to the TLS key file"),
	("compress", "compress", "Enables transparent response compression: true|false"),
	("username", "username", "Username for basic authentication"),
	("password", "password", "Password for basic authentication"),
	("path", "path", "Local path to map to the web root, ie. ./"),
	("indexnames", "indexNames", "Index file names, ie. index.html,index.htm"),
	("verbose", "verbose", "Prints the access log: true|false"),
	("logfile", "logFile", "Also writes the log to the given file"),
	("fallback", "fallback", "Fallback file for missing paths, ie. ./index.html"),
	("enablecolor", "enableColor", "Colors the log by status code: true|false"),
	("enableupload", "enableUpload", "Enables file uploads: true|false"),
	(
		"maxrequestbodysize",
		"maxRequestBodySize",
		"Maximum request body size, 0 for the default",
	),
]

BOOL_FLAGS: set[str] = {"compress", "verbose", "enablecolor", "enableupload"}


def makeParser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="simplehttp",
		description="Serves local directories over HTTP(S)",
		allow_abbrev=False,
	)
	parser.add_argument(
		"-version", "--version", action="store_true", help="Outputs the version only"
	)
	parser.add_argument("-config", "--config", help="The config file path")
	parser.add_argument(
		"-makeconfig", "--makeconfig", help="Makes a config file, ie. config.yaml"
	)
	for name, _, help in FLAGS:
		parser.add_argument(f"-{name}", f"--{name}", dest=name, help=help)
	return parser


def flagValues(args: argparse.Namespace) -> dict[str, Any]:
	"""Converts the given flags to `Config` fields, flags that are not
	given being `None`."""
	res: dict[str, Any] = {}
	for name, field, _ in FLAGS:
		value = getattr(args, name)
		if value is None or value == "":
			continue
		elif name in BOOL_FLAGS:
			res[field] = parseBool(name, value)
		elif name == "maxrequestbodysize":
			res[field] = parseInt(name, value)
		elif name == "indexnames":
			res[field] = tuple(_ for _ in value.split(",") if _)
		else:
			res[field] = value
	return res


def main(argv: list[str] | None = None) -> int:
	args = makeParser().parse_args(argv)
	if args.version:
		print(VERSION_LINE)
		return 0
	try:
		if args.makeconfig:
			writeDefaultConfig(args.makeconfig)
			info("The config file is created", Path=args.makeconfig)
			return 0
		info(VERSION_LINE)
		values: dict[str, Any] = {}
		if args.config:
			info("Loading config", Path=args.config)
			values = loadConfig(args.config)
		config = merge(flagValues(args), values)
		try:
			logging.configure(
				color=config.enableColor,
				logFile=config.logFile or None,
				header=VERSION_LINE,
			)
		except OSError as e:
			raise ConfigError(f"Could not open log file {config.logFile}: {e}") from e
		if config.logFile:
			info("Logging to file", Path=config.logFile)
		run(config)
	except ConfigError as e:
		error(str(e), "CONFIG")
		return 1
	except OSError as e:
		error(str(e), "OSERROR")
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
