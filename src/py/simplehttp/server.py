import asyncio
import ssl
import sys
import threading
from asyncio import StreamReader, StreamWriter
from email.utils import formatdate
from functools import partial
from signal import SIGINT, SIGTERM
from ssl import SSLContext
from typing import Any, NamedTuple

from .config import Config, ConfigError, exportProxy, normalizePaths, parseAddress
from .http.model import (
	HTTPBodyReader,
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .http.status import HTTP_STATUS
from .model import Application
from .router import Router
from .utils.limits import LimitType, unlimit
from .utils.logging import debug, error, event, exception, info, warning


class ServerState:
	"""Holds the running state of the server, stopped by signals."""

	def __init__(self) -> None:
		self.stopped: asyncio.Event = asyncio.Event()

	def stop(self) -> None:
		info("Server stopping…")
		self.stopped.set()

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)
		else:
			warning("Event loop error", Message=str(context.get("message")))


class ServerOptions(NamedTuple):
	backlog: int = 10_000
	readsize: int = 64_000
	# Idle connections are closed after this many seconds
	keepalive: float = 75.0
	maxRequestBodySize: int = sys.maxsize
	# Maximum size of the request line and headers
	maxHeadSize: int = 1024 * 1024
	stopSignals: bool = True


class Listener(NamedTuple):
	"""An address to listen to, with the TLS context for HTTPS."""

	addr: str
	host: str | None
	port: int
	context: SSLContext | None = None

	@property
	def scheme(self) -> str:
		return "https" if self.context else "http"


def respondRaw(status: int) -> bytes:
	"""An error response sent before the request reaches the application."""
	message = HTTP_STATUS.get(status, "Error")
	return (
		f"HTTP/1.1 {status} {message}\r\n"
		f"Content-Type: text/plain; charset=utf-8\r\n"
		f"Content-Length: {len(message)}\r\n"
		"Connection: close\r\n"
		"\r\n"
		f"{message}"
	).encode("ascii")


# -----------------------------------------------------------------------------
#
# STREAMS
#
# -----------------------------------------------------------------------------


class AIOStreamBodyReader(HTTPBodyReader):
	"""Reads request bodies from an asyncio stream."""

	__slots__ = ["reader", "size"]

	def __init__(self, reader: StreamReader, size: int = 64_000) -> None:
		self.reader: StreamReader = reader
		self.size: int = size

	async def _read(
		self, timeout: float = 10.0, size: int | None = None
	) -> bytes | None:
		return await asyncio.wait_for(
			self.reader.read(size or self.size), timeout=timeout
		)


class AIOStreamBodyWriter(HTTPBodyWriter):
	"""Writes responses to an asyncio stream."""

	__slots__ = ["writer"]

	def __init__(self, writer: StreamWriter) -> None:
		super().__init__()
		self.writer: StreamWriter = writer

	async def _writeBytes(self, chunk: bytes, more: bool = False) -> bool:
		if chunk:
			self.writer.write(chunk)
			await self.writer.drain()
		return True


# -----------------------------------------------------------------------------
#
# SERVER
#
# -----------------------------------------------------------------------------


class AIOStreamServer:
	"""AsyncIO backend using streams, which gives TLS for free."""

	@classmethod
	async def OnRequest(
		cls,
		app: Application,
		reader: StreamReader,
		writer: StreamWriter,
		*,
		options: ServerOptions,
	) -> None:
		"""Processes the requests of a connection, sequentially, until the
		client closes it or stops keeping it alive."""
		peername = writer.get_extra_info("peername")
		peer: str | None = peername[0] if peername else None
		parser: HTTPParser = HTTPParser(peer=peer)
		body: AIOStreamBodyReader = AIOStreamBodyReader(reader, options.readsize)
		output: AIOStreamBodyWriter = AIOStreamBodyWriter(writer)
		keep_alive: bool = True
		req_count: int = 0
		try:
			while keep_alive:
				try:
					chunk = await asyncio.wait_for(
						reader.read(options.readsize), timeout=options.keepalive
					)
				except TimeoutError:
					debug("Client timed out", Peer=peer, Requests=req_count)
					break
				if not chunk:
					# A no-data means a close
					break
				# NOTE: With HTTP Pipelining, we may receive more than one
				# request in the same payload.
				for atom in parser.feed(chunk):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Peer=peer)
						await output.write(respondRaw(400))
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req_count += 1
						# The request may need more of the body than what was
						# available in the chunk.
						atom._reader = body
						keep_alive = await cls.SendResponse(atom, app, output, options)
						if not keep_alive:
							break
				if keep_alive and parser.headSize > options.maxHeadSize:
					warning("Request head too large", Peer=peer, Size=parser.headSize)
					await output.write(respondRaw(431))
					break
		except (ConnectionError, ssl.SSLError) as e:
			debug("Connection error", Peer=peer, Error=str(e))
		except Exception as e:
			exception(e, "Could not process connection")
		finally:
			writer.close()
			try:
				await writer.wait_closed()
			except (ConnectionError, ssl.SSLError):
				pass

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		app: Application,
		writer: HTTPBodyWriter,
		options: ServerOptions,
	) -> bool:
		"""Processes the request within the application and sends the response,
		returning `True` when the connection can be kept alive."""
		encoding = (request.header("Transfer-Encoding") or "").strip().lower()
		if encoding and encoding != "identity":
			# Only bodies with a length are supported
			await writer.write(respondRaw(411))
			return False
		elif (request.contentLength or 0) > options.maxRequestBodySize:
			warning(
				"Request body too large",
				Peer=request.peer,
				Size=request.contentLength,
				Limit=options.maxRequestBodySize,
			)
			await writer.write(respondRaw(413))
			return False
		res: HTTPResponse = await app.process(request)
		connection = (request.header("Connection") or "").lower()
		keep_alive: bool = not (
			res.shouldClose
			or request.hasRemaining
			or connection == "close"
			or (request.protocol == "HTTP/1.0" and connection != "keep-alive")
		)
		res.setHeader("Date", formatdate(usegmt=True))
		res.setHeader("Connection", "keep-alive" if keep_alive else "close")
		await writer.write(res.head())
		if request.method != "HEAD":
			await writer.write(res.body)
		return keep_alive

	@classmethod
	async def Serve(
		cls,
		app: Application,
		listeners: list[Listener],
		options: ServerOptions = ServerOptions(),
	) -> None:
		"""Main server coroutine, listening on all the listeners until a stop
		signal is received."""
		loop = asyncio.get_running_loop()
		state = ServerState()
		# Signal handlers can only be set from the main thread
		if options.stopSignals and threading.current_thread() is threading.main_thread():
			loop.add_signal_handler(SIGINT, state.stop)
			loop.add_signal_handler(SIGTERM, state.stop)
		loop.set_exception_handler(state.onException)
		servers: list[asyncio.Server] = []
		try:
			for listener in listeners:
				try:
					server = await asyncio.start_server(
						partial(cls.OnRequest, app, options=options),
						listener.host,
						listener.port,
						ssl=listener.context,
						backlog=options.backlog,
						reuse_address=True,
					)
				except OSError as e:
					error(f"Unable to listen to {listener.addr}: {e}", "BINDERR")
					raise
				servers.append(server)
				info(
					"Server listening",
					icon="🚀",
					Address=listener.addr,
					Scheme=listener.scheme,
				)
			await state.stopped.wait()
		finally:
			for server in servers:
				server.close()
			for server in servers:
				await server.wait_closed()


# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------


def listeners(config: Config) -> list[Listener]:
	"""Returns the listeners for the configured addresses, raising a
	`ConfigError` when they're invalid."""
	res: list[Listener] = []
	if config.addr:
		res.append(Listener(config.addr, *parseAddress(config.addr)))
	if config.addrTLS:
		if not (config.certFile and config.keyFile):
			raise ConfigError("TLS requires both a certificate and a key file")
		context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
		try:
			context.load_cert_chain(config.certFile, config.keyFile)
		except (OSError, ssl.SSLError) as e:
			raise ConfigError(f"Could not load TLS certificate: {e}") from e
		res.append(Listener(config.addrTLS, *parseAddress(config.addrTLS), context))
	return res


def run(config: Config) -> None:
	"""Runs the server with the given configuration, until interrupted."""
	unlimit(LimitType.Files)
	prefixes = normalizePaths(config.paths)
	for prefix, root in prefixes:
		info("Path mapped", Prefix=prefix, Root=root)
	if not config.isSafe:
		warning("NOT SAFE WARNING: PLEASE TURN ON TLS AND BASIC AUTHORIZATION")
	exportProxy(config)
	info(
		"Configuration",
		BasicAuth=config.basicAuth,
		Compress=config.compress,
		Fallback=config.fallback or None,
		EnableColor=config.enableColor,
		EnableUpload=config.enableUpload,
		MaxRequestBodySize=config.maxRequestBodySize,
		IndexNames=list(config.indexNames) or None,
	)
	servers = listeners(config)
	if config.addrTLS:
		info("TLS", CertFile=config.certFile, KeyFile=config.keyFile)
	options = ServerOptions(maxRequestBodySize=config.maxRequestBodySize)
	try:
		asyncio.run(
			AIOStreamServer.Serve(Router(config, prefixes), servers, options)
		)
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
