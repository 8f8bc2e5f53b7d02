from ..http.model import HTTPBodyBlob, HTTPBodyFile, HTTPRequest, HTTPResponse
from ..utils.codec import GZipEncoder

# Bodies bigger than this are sent as-is, as they're encoded in memory
COMPRESS_MAX_SIZE: int = 16 * 1024 * 1024

COMPRESSIBLE_TYPES: set[str] = {
	"application/javascript",
	"application/json",
	"application/xml",
	"application/wasm",
	"image/svg+xml",
}


def acceptsGZip(value: str | None) -> bool:
	"""Tells if the `Accept-Encoding` header value lists `gzip` (or `*`)
	with a non-zero quality."""
	for item in (value or "").split(","):
		name, _, params = item.partition(";")
		if name.strip().lower() not in ("gzip", "*"):
			continue
		q = params.strip().lower()
		if q.startswith("q="):
			try:
				if float(q[2:]) <= 0:
					continue
			except ValueError:
				continue
		return True
	return False


def isCompressible(contentType: str | None) -> bool:
	if not contentType:
		return False
	kind = contentType.split(";", 1)[0].strip().lower()
	return kind.startswith("text/") or kind in COMPRESSIBLE_TYPES


def compress(request: HTTPRequest, response: HTTPResponse) -> HTTPResponse:
	"""Gzip-encodes the body of the response, when the client accepts it
	and the response is a good fit."""
	if (
		response.status != 200
		or response.getHeader("Content-Encoding")
		or not acceptsGZip(request.header("Accept-Encoding"))
		or not isCompressible(response.contentType)
	):
		return response
	body = response.body
	if isinstance(body, HTTPBodyBlob):
		if not body.payload or body.length > COMPRESS_MAX_SIZE:
			return response
		encoded = GZipEncoder().encode(body.payload)
	elif isinstance(body, HTTPBodyFile):
		if body.length > COMPRESS_MAX_SIZE:
			return response
		encoded = GZipEncoder().encodeFile(body.path, body.offset, body.length)
	else:
		return response
	response.body = HTTPBodyBlob(encoded, len(encoded))
	response.setHeaders(
		{
			"Content-Encoding": "gzip",
			"Vary": "Accept-Encoding",
			"Content-Length": len(encoded),
		}
	)
	return response


# EOF
