from typing import ClassVar
import os

# SEE: https://no-color.org/
NO_COLOR: bool = "NO_COLOR" in os.environ
FORCE_COLOR: bool = "FORCE_COLOR" in os.environ
COLOR: bool = FORCE_COLOR or NO_COLOR is False


class TermColor:
	"""The basic ANSI palette, as 256-color indexes."""

	Black: ClassVar[int] = 0
	Red: ClassVar[int] = 1
	Green: ClassVar[int] = 2
	Yellow: ClassVar[int] = 3
	Blue: ClassVar[int] = 4
	Magenta: ClassVar[int] = 5
	Cyan: ClassVar[int] = 6
	White: ClassVar[int] = 7
	HiCyan: ClassVar[int] = 14


class Term:
	"""Escape sequences, which collapse to empty strings when color
	is disabled (see `Term.Enable`)."""

	Enabled: ClassVar[bool] = COLOR
	BOLD: ClassVar[str] = "\033[1m" if COLOR else ""
	NORMAL: ClassVar[str] = "\033[0m" if COLOR else ""
	RESET: ClassVar[str] = "\033[0m" if COLOR else ""

	@classmethod
	def Enable(cls, enabled: bool = True) -> bool:
		"""Turns color on or off at runtime, `NO_COLOR` always wins
		unless `FORCE_COLOR` is set."""
		cls.Enabled = FORCE_COLOR or (enabled and not NO_COLOR)
		cls.BOLD = "\033[1m" if cls.Enabled else ""
		cls.NORMAL = "\033[0m" if cls.Enabled else ""
		cls.RESET = "\033[0m" if cls.Enabled else ""
		return cls.Enabled

	@classmethod
	def Color(cls, color: int, bold: bool = False) -> str:
		return f"\033[{'1' if bold else '0'};38;5;{color}m" if cls.Enabled else ""


# EOF
