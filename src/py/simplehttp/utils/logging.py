import sys
import time
import inspect
import re
import threading
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Any, TypeAlias, TextIO
from contextvars import ContextVar
from .primitives import TPrimitive
from .term import Term, TermColor


LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="simplehttp")

RE_ANSI = re.compile(r"\033\[[0-9;]*m")


class LogType(Enum):
	Message = 0  # A general information message
	Event = 20  # An event
	Access = 30  # An access log line


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30  # A Warning
	Error = 40  # A managed error
	Exception = 50  # An un-managed error


LOG_LEVEL_COLOR = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}


class LogEntry(NamedTuple):
	origin: str
	time: float
	type: LogType = LogType.Message
	level: LogLevel = LogLevel.Info
	message: str | None = None
	name: str | None = None
	value: TPrimitive | None = None
	context: dict[str, TPrimitive] | None = None
	icon: str | None = None
	stack: list[str] | None = None


TStack: TypeAlias = list[str]

# -----------------------------------------------------------------------------
#
# OUTPUT
#
# -----------------------------------------------------------------------------


class LogOutput:
	"""Where log lines go: the console stream, and optionally a log file
	that receives the same lines without escape sequences. Writes are
	serialized so that colored lines never interleave."""

	__slots__ = ["stream", "file", "level", "lock"]

	def __init__(self, stream: TextIO | None = None) -> None:
		self.stream: TextIO | None = stream
		self.file: TextIO | None = None
		self.level: LogLevel = LogLevel.Info
		self.lock = threading.Lock()

	def write(self, text: str) -> None:
		with self.lock:
			stream = self.stream or sys.stdout
			stream.write(text)
			stream.flush()
			if self.file:
				self.file.write(RE_ANSI.sub("", text))
				self.file.flush()

	def open(self, path: str | Path, header: str | None = None) -> TextIO:
		"""Duplicates the output to the file at `path`, creating parent
		directories as needed. Raises `OSError` when the file can't be opened."""
		p = Path(path)
		p.parent.mkdir(parents=True, exist_ok=True)
		f = open(p, "a", encoding="utf8")
		if header:
			f.write(f"{header}\n")
			f.flush()
		with self.lock:
			if self.file:
				self.file.close()
			self.file = f
		return f

	def close(self) -> None:
		with self.lock:
			if self.file:
				self.file.close()
				self.file = None


OUTPUT: LogOutput = LogOutput()


def configure(
	*,
	color: bool | None = None,
	logFile: str | Path | None = None,
	header: str | None = None,
	level: LogLevel | None = None,
) -> LogOutput:
	"""Configures the process-wide log output."""
	if color is not None:
		Term.Enable(color)
	if level is not None:
		OUTPUT.level = level
	if logFile:
		OUTPUT.open(logFile, header)
	return OUTPUT


# -----------------------------------------------------------------------------
#
# FORMATTING
#
# -----------------------------------------------------------------------------


def callstack(offset: int = 1) -> list[str]:
	"""
	Returns a list of function/method names on the call stack.
	For methods, the class name is included as 'ClassName.methodName'.
	"""
	return [
		(
			f"{_.frame.f_locals['self'].__class__.__qualname__}.{_.function}"
			if "self" in _.frame.f_locals
			else _.function
		).replace("<lambda>", "λ")
		for _ in reversed(inspect.stack()[offset:])
	]


def formatData(value: Any) -> str:
	if value is None or value == () or value == [] or value == {}:
		return "◌"
	elif isinstance(value, dict):
		return " ".join(
			f"{Term.BOLD}{k}{Term.NORMAL}={formatData(v)}" for k, v in value.items()
		)
	elif isinstance(value, list) or isinstance(value, tuple):
		return ",".join(formatData(v) for v in value)
	elif isinstance(value, str):
		return repr(value) if " " in value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def statusColor(status: int) -> int:
	"""Returns the terminal color for the given HTTP status class."""
	if status >= 500:
		return TermColor.Red
	elif status >= 400:
		return TermColor.Magenta
	elif status >= 300:
		return TermColor.Yellow
	elif status >= 200:
		return TermColor.Green
	elif status >= 100:
		return TermColor.HiCyan
	else:
		return TermColor.Blue


def formatEntry(entry: LogEntry) -> str:
	if entry.type == LogType.Access:
		clr = Term.Color(statusColor(int(entry.value or 0)))
		return f"{clr}{entry.message}{Term.RESET}\n"
	icon: str = f" {entry.icon}" if entry.icon else ""
	clr = Term.Color(LOG_LEVEL_COLOR[entry.level])
	if entry.type == LogType.Event:
		line = f"{clr}{Term.BOLD}[{entry.origin}] {entry.name}{Term.RESET} {formatData(entry.value)} {formatData(entry.context)}{Term.RESET}\n"
	else:
		line = f"{clr}{Term.BOLD}[{entry.origin}]{Term.RESET}{icon} {entry.message} {formatData(entry.context)}{Term.RESET}\n"
	if entry.stack:
		line += f"{clr}{Term.Color(38)}  {' ' * len(entry.origin)} {'→'.join(entry.stack)}{Term.RESET}\n"
	return line


def send(entry: LogEntry) -> LogEntry:
	if entry.level.value >= OUTPUT.level.value:
		OUTPUT.write(formatEntry(entry))
	return entry


# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------


def entry(
	*,
	origin: str | None = None,
	at: float | None = None,
	type: LogType = LogType.Message,
	level: LogLevel = LogLevel.Info,
	message: str | None = None,
	name: str | None = None,
	value: TPrimitive | None = None,
	context: dict[str, TPrimitive],
	icon: str | None = None,
	stack: TStack | bool | None = None,
) -> LogEntry:
	return LogEntry(
		origin=origin or LogOrigin.get(),
		time=time.time() if at is None else at,
		type=type,
		level=level,
		message=message,
		name=name,
		value=value,
		context=context,
		icon=icon,
		stack=callstack(2) if stack is True else stack if stack else None,
	)


def debug(
	message: str,
	*,
	origin: str | None = None,
	icon: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(
			message=message,
			level=LogLevel.Debug,
			origin=origin,
			context=context,
			icon=icon,
		)
	)


def info(
	message: str,
	*,
	origin: str | None = None,
	icon: str | None = None,
	stack: TStack | bool | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(
			message=message,
			origin=origin,
			context=context,
			icon=icon,
			stack=stack,
		)
	)


def warning(
	message: str,
	*,
	origin: str | None = None,
	icon: str | None = None,
	stack: TStack | bool | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(
			message=message,
			level=LogLevel.Warning,
			origin=origin,
			context=context,
			icon=icon,
			stack=stack,
		)
	)


def error(
	message: str,
	code: int | str | None,
	*,
	origin: str | None = None,
	icon: str | None = None,
	stack: TStack | bool | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(
			message=message,
			value=code,
			level=LogLevel.Error,
			origin=origin,
			context=context,
			icon=icon,
			stack=stack,
		)
	)


def event(
	event: str,
	value: Any = None,
	*,
	origin: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(
			name=event,
			value=value,
			type=LogType.Event,
			origin=origin,
			context=context,
		)
	)


def access(status: int, *fields: Any) -> LogEntry:
	"""Emits an access log line like `200 | 127.0.0.1 | GET | /index.html`,
	colored by status class."""
	return send(
		entry(
			message=" | ".join(str(_) for _ in (status, *fields)),
			value=status,
			type=LogType.Access,
			context={},
		)
	)


def exception(
	exception: BaseException,
	message: str | None = None,
) -> BaseException:
	try:
		lines: list[str] = [
			f"!!! EXCP {f'{message}: [{exception.__class__.__name__}] {exception}' if message else f'[{exception.__class__.__name__}] {exception}'}\n"
		]
		tb = exception.__traceback__
		while tb:
			code = tb.tb_frame.f_code
			lines.append(
				f"... in {code.co_name:15s} at {tb.tb_lineno:4d} in {code.co_filename}\n",
			)
			tb = tb.tb_next
		OUTPUT.write("".join(lines))
	except Exception:  # nosec: B110
		# Swallow all exceptions so that this function can be called from an exception
		# handler safely, such as in the implementation of logging/logging sinks.
		pass

	# Return the exception so that this function can be called like:
	#   raise exception(e)
	return exception


# EOF
