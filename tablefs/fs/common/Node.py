"""
tablefs/fs/common/Node.py

Purpose:
Plain value types for what the stores read back: a Node (one inode joined with the edge that names it) and a DirectoryEntry (one row of a directory listing).

Place in Architecture:
Returned by the Namespace and Metadata stores and by TableFS. They carry no connection and do no I/O, so they are safe to hand to any caller.

Interface:

	Node.FromRow(row): Builds a Node from a mapping with inode columns and, optionally, tree columns.
	Node.IsDirectory() / Node.IsFile()
	Node.AsDict()
	DirectoryEntry.FromNode(node, name=None): Listing row; `name` overrides the node's own (used for ".").

TODOs/FIXMEs:
None.
"""

from .Mode import IsDirectoryMode, IsFileMode


class Node(object):
	fields = [
		'id',
		'name',
		'parent',
		'mode',
		'uid',
		'gid',
		'atime',
		'ctime',
		'mtime',
		'size',
		'inuse',
		'deleted',
	]

	def __init__(this, **kwargs):
		for field in this.fields:
			setattr(this, field, kwargs.get(field))

	def __repr__(this):
		return f"<{this.name} ({this.id}) mode={oct(this.mode or 0)} size={this.size}>"

	def __eq__(this, other):
		if (not isinstance(other, Node)):
			return NotImplemented
		return this.AsDict() == other.AsDict()

	@classmethod
	def FromRow(cls, row):
		return cls(
			id = row['inode'],
			name = row.get('name'),
			parent = row.get('parent'),
			mode = row['mode'],
			uid = row['uid'],
			gid = row['gid'],
			atime = row['atime'],
			ctime = row['ctime'],
			mtime = row['mtime'],
			size = row['size'],
			inuse = row['inuse'],
			deleted = bool(row['deleted']),
		)

	def IsDirectory(this):
		return IsDirectoryMode(this.mode)

	def IsFile(this):
		return IsFileMode(this.mode)

	def AsDict(this):
		return {field: getattr(this, field) for field in this.fields}


class DirectoryEntry(Node):

	@classmethod
	def FromNode(cls, node, name=None):
		ret = cls(**node.AsDict())
		if (name is not None):
			ret.name = name
		return ret
