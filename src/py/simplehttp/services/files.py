import os
from pathlib import Path
from urllib.parse import quote

from ..config import PrefixMap
from ..decorators import on
from ..http.model import HTTPRequest, HTTPResponse
from ..model import Service
from ..utils.files import FileEntry, isDir, isFile, isWithin, listdir
from ..utils.htmpl import H, Node, html
from ..utils.logging import warning

LISTING_CSS: str = (
	"table{width:100%;} th,td{text-align:left;padding-right:10px;} "
	".size{text-align:right;} a{text-decoration:none} "
	"tr:hover{background-color:#ffff99;}"
)


class StaticService(Service):
	"""Serves the files of the mapped roots. A request path is resolved
	against the longest matching prefix, which is stripped before being
	joined to the prefix's root."""

	def __init__(
		self,
		prefixes: PrefixMap,
		*,
		indexNames: tuple[str, ...] = (),
		fallback: str = "",
		enableUpload: bool = True,
	):
		super().__init__()
		self.prefixes: PrefixMap = prefixes
		self.indexNames: tuple[str, ...] = indexNames
		self.fallback: str = fallback
		self.enableUpload: bool = enableUpload

	# =========================================================================
	# RESOLUTION
	# =========================================================================

	def match(self, path: str) -> tuple[str, str] | None:
		"""Returns the `(prefix, root)` pair with the longest prefix of `path`."""
		for prefix, root in self.prefixes:
			if path.startswith(prefix):
				return prefix, root
		return None

	def localPath(self, root: str, rest: str) -> Path | None:
		"""Joins `rest` to `root`, returning `None` when the result is not
		within `root`."""
		local = os.path.normpath(os.path.join(root, rest.lstrip("/")))
		return Path(local) if isWithin(local, root) else None

	def indexFile(self, directory: Path) -> Path | None:
		for name in self.indexNames:
			index = directory / name
			if isFile(index):
				return index
		return None

	# =========================================================================
	# HANDLERS
	# =========================================================================

	@on(GET="/{path:any}")
	def read(self, request: HTTPRequest, path: str) -> HTTPResponse:
		if request.path == "/" and len(self.prefixes) > 1:
			return self.renderRoot(request)
		matched = self.match(request.path)
		if not matched:
			return request.notFound()
		prefix, root = matched
		local = self.localPath(root, request.path[len(prefix) :])
		if local is None:
			warning("Path outside of its root", Path=request.path, Root=root)
			return request.notFound()
		elif isDir(local):
			index = self.indexFile(local)
			if index:
				return self.respondFile(request, index)
			try:
				entries = listdir(local)
			except OSError as e:
				return request.fail(str(e))
			return self.renderDir(request, local, entries)
		elif isFile(local):
			return self.respondFile(request, local)
		elif self.fallback and isFile(fallback := Path(root, self.fallback)):
			return self.respondFile(request, fallback)
		else:
			return request.notFound()

	def respondFile(self, request: HTTPRequest, path: Path) -> HTTPResponse:
		return request.respondFile(path, range=request.header("Range"))

	# =========================================================================
	# RENDERING
	# =========================================================================

	def renderRoot(self, request: HTTPRequest) -> HTTPResponse:
		"""Lists the mapped prefixes, when more than one is mapped."""
		return request.respondHTML(
			html(
				H.html(
					H.head(),
					H.body(
						H.h1("Root"),
						H.ul(
							*(
								H.li(H.a(prefix, href=prefix), f" -> {root}")
								for prefix, root in sorted(self.prefixes)
								if prefix != "/"
							)
						),
					),
				)
			)
		)

	def renderDir(
		self, request: HTTPRequest, local: Path, entries: list[FileEntry]
	) -> HTTPResponse:
		path = request.path.rstrip("/")
		title = path[path.rfind("/") + 1 :]
		parent: Node | None = None
		if path:
			i = path.rfind(title)
			parent = H.a(H.b(".."), href=quote(path[:i]) if i > 0 else "/")
		rows: list[Node] = [
			H.tr(
				H.th("Name"),
				H.th("Type"),
				H.th("Mode"),
				H.th("Size", _="size"),
				H.th("Modified"),
			),
			H.tr(H.td(parent)),
		]
		for entry in entries:
			href = quote(f"{path}/{entry.name}")
			rows.append(
				H.tr(
					H.td(H.a(H.b(entry.name) if entry.isDir else entry.name, href=href)),
					H.td("dir" if entry.isDir else "file"),
					H.td(entry.mode),
					H.td(None if entry.isDir else str(entry.size), _="size"),
					H.td(entry.modified),
				)
			)
		return request.respondHTML(
			html(
				H.html(
					H.head(H.meta(charset="utf-8"), H.style(LISTING_CSS)),
					H.body(
						H.h1(title or "Root"),
						self.renderUploadForm(request, local) if self.enableUpload else None,
						H.p(f"{len(entries)} item(s)"),
						H.table(*rows),
					),
				)
			)
		)

	def renderUploadForm(self, request: HTTPRequest, local: Path) -> Node:
		return H.form(
			H.input(name="files[]", type="file", multiple=True),
			H.input(
				type="submit",
				value="Upload",
				onclick="this.disabled=true;this.value='Sending...';this.form.submit();",
			),
			H.input(type="checkbox", name="o", value="true"),
			"Overwrite",
			H.input(type="hidden", id="r", name="r", value=request.uri),
			H.input(type="hidden", id="p", name="p", value=str(local)),
			enctype="multipart/form-data",
			action="/upload",
			method="post",
		)


# EOF
