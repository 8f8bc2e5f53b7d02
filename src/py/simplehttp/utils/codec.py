import zlib
from pathlib import Path

# Level 6 is zlib's default trade-off, and what Go's `gzip.DefaultCompression` uses
COMPRESSION_LEVEL: int = 6

# Files are read and encoded by blocks of this size
READ_SIZE: int = 64_000


class GZipEncoder:
	"""Encodes bytes as a Gzip member, fed in one or more chunks."""

	__slots__ = ["compressor"]

	def __init__(self, level: int = COMPRESSION_LEVEL) -> None:
		self.compressor = zlib.compressobj(level=level, wbits=zlib.MAX_WBITS | 16)

	def feed(self, chunk: bytes) -> bytes:
		return self.compressor.compress(chunk)

	def flush(self) -> bytes:
		return self.compressor.flush()

	def encode(self, data: bytes) -> bytes:
		return self.feed(data) + self.flush()

	def encodeFile(self, path: Path, offset: int = 0, length: int | None = None) -> bytes:
		"""Encodes `length` bytes of the file at `path` starting from `offset`,
		or the rest of the file when `length` is `None`."""
		res = bytearray()
		left = length
		with open(path, "rb") as f:
			f.seek(offset)
			while left is None or left > 0:
				chunk = f.read(READ_SIZE if left is None else min(READ_SIZE, left))
				if not chunk:
					break
				if left is not None:
					left -= len(chunk)
				res += self.feed(chunk)
		res += self.flush()
		return bytes(res)


# EOF
