import binascii
import hmac
from base64 import b64decode
from typing import NamedTuple

from .http.model import HTTPRequest

BASIC_PREFIX: str = "Basic "


class Credentials(NamedTuple):
	user: str = ""
	password: str = ""
	ok: bool = False


def authenticate(headers: dict[str, str]) -> Credentials:
	"""Extracts the Basic credentials from the `Authorization` header. The
	result is not `ok` when the header is missing or malformed."""
	value = headers.get("Authorization")
	if not value or not value.startswith(BASIC_PREFIX):
		return Credentials()
	try:
		decoded = b64decode(value[len(BASIC_PREFIX) :], validate=True)
	except (binascii.Error, ValueError):
		return Credentials()
	text = decoded.decode("utf8", errors="replace")
	user, sep, password = text.partition(":")
	return Credentials(user, password, True) if sep else Credentials()


class BasicAuth:
	"""Checks requests against a single username/password pair."""

	__slots__ = ["username", "password"]

	def __init__(self, username: str, password: str):
		self.username: str = username
		self.password: str = password

	def check(self, request: HTTPRequest) -> tuple[bool, Credentials]:
		"""Returns whether the request is authorized, along with the
		credentials it supplied."""
		creds = authenticate(request.headers)
		# Both are compared so that timing doesn't tell which one is wrong
		user = hmac.compare_digest(creds.user.encode(), self.username.encode())
		password = hmac.compare_digest(
			creds.password.encode(), self.password.encode()
		)
		return creds.ok and user and password, creds


# EOF
