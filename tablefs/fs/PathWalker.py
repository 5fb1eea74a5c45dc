"""
tablefs/fs/PathWalker.py

Purpose:
Resolves a path to its terminal Node by looking up one edge per segment, starting in root scope.

Place in Architecture:
The namespace half of path resolution. UniversalPath produces the segments; this module walks them against the NamespaceStore. Nothing is cached: every call re-walks from the backing store.

Interface:

	PathWalker(namespace)
	Walk(path): The terminal Node. Raises NotFound naming the last resolved parent and the failing segment.
	WalkAsFarAsPossible(path): (deepest Node found or None, index of the first unresolved segment or None if all resolved).

	`path` may be a string, a UniversalPath or an already split list of segments.

TODOs/FIXMEs:
None.
"""

import logging

from ..Errors import NotFound
from ..Upath import UniversalPath


def GetSegments(path):
	if (isinstance(path, (list, tuple))):
		return list(path)
	return UniversalPath(path).GetSegments()


class PathWalker(object):
	def __init__(this, namespace):
		this.namespace = namespace

	def WalkAsFarAsPossible(this, path):
		segments = GetSegments(path)
		node = None
		for index, segment in enumerate(segments):
			found = this.namespace.FindEdge(segment, node.id if node else None)
			if (found is None):
				return node, index
			node = found
		return node, None

	def Walk(this, path):
		segments = GetSegments(path)
		node, index = this.WalkAsFarAsPossible(segments)
		if (index is not None):
			parent = node.id if node else None
			logging.debug(f"Could not resolve {segments[index]!r} under {parent} in {segments}")
			raise NotFound(
				f"No such file or directory: {segments[index]!r} in /{'/'.join(segments[1:])}",
				parent=parent,
				segment=segments[index],
				index=index,
				remaining=segments[index+1:],
			)
		return node
