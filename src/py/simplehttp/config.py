import os
import sys
from pathlib import Path
from typing import Any, NamedTuple, TypeAlias

import yaml

from .utils.logging import info, warning

VERSION: str = "1.3.0"
VERSION_LINE: str = f"SimpleHTTP v{VERSION}"

PORT: int = int(os.getenv("PORT", 8080))

# The server is meant to be reachable from the network by default
HOST: str = os.getenv("HOST", "0.0.0.0")  # nosec: B104

# Used when the configured maximum request body size is not positive
DEFAULT_MAX_REQUEST_BODY_SIZE: int = 4 * 1024 * 1024

PROXY_VARIABLES: tuple[str, ...] = ("HTTP_PROXY", "HTTPS_PROXY", "NO_PROXY")

# A sequence of `(prefix, root)` pairs, longest prefix first
PrefixMap: TypeAlias = tuple[tuple[str, str], ...]


class ConfigError(Exception):
	"""Raised when the configuration can't be loaded or is invalid."""


class Config(NamedTuple):
	addr: str = ""
	addrTLS: str = ""
	certFile: str = ""
	keyFile: str = ""
	username: str = ""
	password: str = ""
	compress: bool = False
	paths: tuple[tuple[str, str], ...] = ()
	indexNames: tuple[str, ...] = ()
	verbose: bool = True
	enableColor: bool = True
	enableUpload: bool = True
	fallback: str = ""
	maxRequestBodySize: int = sys.maxsize
	logFile: str = ""
	httpProxy: str = ""
	httpsProxy: str = ""
	noProxy: str = ""

	@property
	def basicAuth(self) -> bool:
		"""Basic authentication is on only when both credentials are set."""
		return bool(self.username and self.password)

	@property
	def isSafe(self) -> bool:
		return bool(self.addrTLS) and self.basicAuth


# -----------------------------------------------------------------------------
#
# VALUES
#
# -----------------------------------------------------------------------------


def parseBool(name: str, value: Any) -> bool:
	"""Parses `true`/`false` (any case), raising a `ConfigError` otherwise."""
	if isinstance(value, bool):
		return value
	text = str(value).strip().lower()
	if text == "true":
		return True
	elif text == "false":
		return False
	else:
		raise ConfigError(f"Argument {name} error: expected true or false, got {value!r}")


def parseInt(name: str, value: Any) -> int:
	if isinstance(value, bool):
		raise ConfigError(f"Argument {name} error: expected an integer, got {value!r}")
	try:
		return int(value)
	except (TypeError, ValueError) as e:
		raise ConfigError(f"Argument {name} error: {e}") from e


def parseAddress(addr: str) -> tuple[str | None, int]:
	"""Parses `host:port`, `:port` or `[ipv6]:port`. An empty host means all
	interfaces and is returned as `None`."""
	host, sep, port = addr.rpartition(":")
	if not sep:
		raise ConfigError(f"Address {addr!r} error: expected host:port")
	host = host.strip("[]")
	try:
		number = int(port)
	except ValueError as e:
		raise ConfigError(f"Address {addr!r} error: invalid port {port!r}") from e
	if not 0 <= number <= 65535:
		raise ConfigError(f"Address {addr!r} error: port out of range")
	return host or None, number


# -----------------------------------------------------------------------------
#
# LOADING
#
# -----------------------------------------------------------------------------

# Maps the configuration file keys to `Config` fields
CONFIG_KEYS: dict[str, str] = {
	"addr": "addr",
	"addrtls": "addrTLS",
	"certfile": "certFile",
	"keyfile": "keyFile",
	"username": "username",
	"password": "password",
	"compress": "compress",
	"paths": "paths",
	"indexnames": "indexNames",
	"verbose": "verbose",
	"enablecolor": "enableColor",
	"enableupload": "enableUpload",
	"fallback": "fallback",
	"maxrequestbodysize": "maxRequestBodySize",
	"logfile": "logFile",
	"HTTP_PROXY": "httpProxy",
	"HTTPS_PROXY": "httpsProxy",
	"NO_PROXY": "noProxy",
}

BOOL_FIELDS: set[str] = {"compress", "verbose", "enableColor", "enableUpload"}


def loadConfig(path: str | Path) -> dict[str, Any]:
	"""Loads the YAML configuration file at `path`, returning the `Config`
	fields it defines. Unknown keys are ignored."""
	try:
		with open(path, "rt", encoding="utf8") as f:
			data = yaml.safe_load(f)
	except OSError as e:
		raise ConfigError(f"Could not read config file {path}: {e}") from e
	except yaml.YAMLError as e:
		raise ConfigError(f"Could not parse config file {path}: {e}") from e
	if data is None:
		return {}
	elif not isinstance(data, dict):
		raise ConfigError(f"Config file {path} should contain a mapping")
	return configValues(data)


def configValues(data: dict[str, Any]) -> dict[str, Any]:
	"""Converts configuration file values to `Config` fields."""
	res: dict[str, Any] = {}
	for key, value in data.items():
		field = CONFIG_KEYS.get(key) or CONFIG_KEYS.get(str(key).lower())
		if not field:
			warning("Unknown configuration key", Key=str(key))
			continue
		if value is None:
			continue
		if field == "paths":
			if not isinstance(value, dict):
				raise ConfigError("Config paths should be a mapping of URI to path")
			res[field] = tuple((str(k), str(v)) for k, v in value.items())
		elif field == "indexNames":
			items = value if isinstance(value, list) else str(value).split(",")
			res[field] = tuple(str(_) for _ in items if _)
		elif field in BOOL_FIELDS:
			res[field] = parseBool(key, value)
		elif field == "maxRequestBodySize":
			res[field] = parseInt(key, value)
		else:
			res[field] = str(value)
	return res


def merge(flags: dict[str, Any], values: dict[str, Any] | None = None) -> Config:
	"""Creates the configuration from command line `flags`, which take
	precedence over configuration file `values`. Flags that are `None` are
	not set."""
	fields: dict[str, Any] = dict(values or {})
	for k, v in flags.items():
		if v is None:
			continue
		elif k == "path":
			# The path flag maps the given directory at the root
			fields["paths"] = tuple(
				_ for _ in fields.get("paths", ()) if _[0] != "/"
			) + (("/", v),)
		else:
			fields[k] = v
	if not fields.get("addr") and not fields.get("addrTLS"):
		fields["addr"] = f"{HOST}:{PORT}"
	if fields.get("maxRequestBodySize", sys.maxsize) <= 0:
		fields["maxRequestBodySize"] = DEFAULT_MAX_REQUEST_BODY_SIZE
	return Config(**fields)


# -----------------------------------------------------------------------------
#
# PATHS
#
# -----------------------------------------------------------------------------


def normalizePaths(paths: tuple[tuple[str, str], ...] | dict[str, str]) -> PrefixMap:
	"""Turns the configured `prefix → root` pairs into the prefix map,
	sorted by decreasing prefix length so that the first match is the
	longest one."""
	res: dict[str, str] = {}
	for prefix, root in paths.items() if isinstance(paths, dict) else paths:
		if not prefix.startswith("/"):
			warning(
				"URI path should start with '/', ignored", Prefix=prefix, Root=root
			)
			continue
		res[prefix] = os.path.abspath(root) if root.startswith(".") else root
	if not res:
		res["/"] = os.path.abspath(".")
	if len(res) > 1 and "/" in res:
		warning(
			"Root path is mapped along other paths, it overrides the root index",
			Root=res["/"],
		)
	return tuple(sorted(res.items(), key=lambda _: (-len(_[0]), _[0])))


# -----------------------------------------------------------------------------
#
# ENVIRONMENT
#
# -----------------------------------------------------------------------------


def exportProxy(config: Config) -> dict[str, str]:
	"""Exports the configured proxies to the environment, returning the
	resulting proxy variables."""
	for name, value in zip(
		PROXY_VARIABLES, (config.httpProxy, config.httpsProxy, config.noProxy)
	):
		if value:
			os.environ[name] = value
	res = {_: os.environ[_] for _ in PROXY_VARIABLES if os.environ.get(_)}
	for k, v in res.items():
		info("Proxy", Name=k, Value=v)
	return res


DEFAULT_CONFIG: str = f"""\
addr: 0.0.0.0:8080
#addrtls: 0.0.0.0:8081
#certfile: ./ssl-cert.pem
#keyfile: ./ssl-cert.key
#username: admin
#password: admin
compress: false
paths:
  #/c: "C:\\\\"
  #/d: "D:\\\\"
indexnames:
  - index.html
  - index.htm
verbose: true
enablecolor: true
enableupload: true
## maxrequestbodysize:0 to default size
#maxrequestbodysize: {sys.maxsize}
#logfile: ./simplehttpserver.log
#fallback: ./index.html
#HTTP_PROXY:
#HTTPS_PROXY:
#NO_PROXY: ::1,127.0.0.1,localhost
"""


def writeDefaultConfig(path: str | Path) -> Path:
	"""Writes the default configuration template at `path`, which must not
	exist."""
	p = Path(path)
	try:
		with open(p, "xt", encoding="utf8") as f:
			f.write(DEFAULT_CONFIG)
	except FileExistsError as e:
		raise ConfigError(f"The file {path} exists") from e
	except OSError as e:
		raise ConfigError(f"Could not create {path}: {e}") from e
	return p


# EOF
