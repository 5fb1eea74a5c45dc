"""
tablefs/Upath.py

Purpose:
Implements the universal path class that turns a slash-delimited path (upath) into the ordered segment names a path walk looks up.

Place in Architecture:
The string half of path resolution. It never touches the backing store and never fails; PathWalker consumes the segments it produces.

Interface:

	__init__(path=""): Constructs a UniversalPath from a string or another UniversalPath.
	__str__(): Returns the upath as given (relative paths gain a leading '/').
	__iter__(): Yields the segments, starting with the root segment "/". Restartable.
	GetSegments(): The segments as a list.
	GetName(): The last segment.
	GetParent(): The upath of the containing directory.
	ResolvePath(path): Module-level shortcut for UniversalPath(path).GetSegments().

TODOs/FIXMEs:
None noted.
"""

ROOT = "/"

# Upaths are matched byte-for-byte against the names stored in the tree table.
# Nothing is normalized: "//" and trailing slashes produce empty segments, which never match a stored name.
class UniversalPath:
	def __init__(this, path=""):
		if (isinstance(path, UniversalPath)):
			this.upath = path.upath
		elif (isinstance(path, str)):
			this.FromPath(path)
		else:
			raise TypeError(f"Cannot build a UniversalPath from {type(path).__name__}")

	def __str__(this):
		return this.upath

	def __repr__(this):
		return f"UniversalPath({this.upath!r})"

	def __eq__(this, other):
		if (isinstance(other, UniversalPath)):
			return this.upath == other.upath
		return NotImplemented

	def __hash__(this):
		return hash(this.upath)

	# Paths without a parent context are rooted at '/'.
	def FromPath(this, path):
		assert isinstance(path, str)
		if (not path.startswith(ROOT)):
			path = ROOT + path
		this.upath = path

	def __iter__(this):
		yield ROOT
		if (this.upath == ROOT):
			return

		start = len(ROOT)
		while True:
			end = this.upath.find('/', start)
			if (end < 0):
				yield this.upath[start:]
				return
			yield this.upath[start:end]
			start = end + 1

	def GetSegments(this):
		return list(this)

	def GetName(this):
		return this.GetSegments()[-1]

	def GetParent(this):
		if (this.upath == ROOT):
			return UniversalPath(ROOT)
		head = this.upath[:this.upath.rfind('/')]
		return UniversalPath(head or ROOT)


def ResolvePath(path):
	return UniversalPath(path).GetSegments()
