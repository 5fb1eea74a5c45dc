"""
tablefs/fs/Namespace.py

Purpose:
Manages the tree of (name, parent) -> inode edges: single-segment lookups, sibling-unique creation and ordered child listing.

Place in Architecture:
Sits directly on the BackingStore. PathWalker calls FindEdge once per segment; TableFS calls CreateEdge (through CreateItem) and ListChildren.

Interface:

	NamespaceStore(store)
	FindEdge(name, parent): The Node the edge names, or None.
	CreateEdge(name, parent, mode, uid, gid, exclusive=False): Inode id of the new (or concurrently created) node.
	ListChildren(parent): Child Nodes ordered by name.
	CountLinks(inode): Number of edges naming the inode.
	CountNodes(): Number of inodes.

TODOs/FIXMEs:
None.
"""

import logging
import sqlalchemy as sql

from ..Errors import AlreadyExists, ConflictOnCreate, ConstraintViolation
from ..Utils import Now
from ..db.Schema import ParentKey
from .common.Node import Node


class NamespaceStore(object):
	def __init__(this, store):
		this.store = store
		this.tables = store.tables

	# Node columns joined with the naming edge.
	def SelectNodes(this):
		inodes = this.tables.inodes
		tree = this.tables.tree
		return sql.select(
			inodes,
			tree.c.name,
			tree.c.parent,
		).select_from(
			tree.join(inodes, tree.c.inode == inodes.c.inode)
		)

	# RETURNS the Node named `name` under `parent` or None if there is no such edge.
	# A parent of None looks in root scope.
	def FindEdge(this, name, parent, connection=None):
		tree = this.tables.tree
		statement = this.SelectNodes().where(tree.c.name == name)
		if (parent is None):
			statement = statement.where(tree.c.parent.is_(None))
		else:
			statement = statement.where(tree.c.parent == parent)

		row = this.store.QueryOne(statement, connection)
		if (row is None):
			logging.debug(f"No edge {name!r} under {parent}")
			return None
		return Node.FromRow(row)

	# Insert the inode and its edge in one transaction.
	# If another writer created the same (name, parent) first, the unique constraint on the tree table rejects our insert, the transaction (including our inode row) is rolled back, and the winner's inode is returned instead.
	# With `exclusive`, losing that race raises AlreadyExists.
	# RETURNS the inode id now stored under (name, parent).
	def CreateEdge(this, name, parent, mode, uid=0, gid=0, exclusive=False):
		now = Now()
		try:
			with this.store.Transaction() as connection:
				inode = this.store.Insert(
					this.tables.inodes.insert().values(
						mode=mode,
						uid=uid,
						gid=gid,
						atime=now,
						ctime=now,
						mtime=now,
						size=0,
						inuse=0,
						deleted=False,
					),
					connection
				)
				this.store.Insert(
					this.tables.tree.insert().values(
						name=name,
						parent=parent,
						parent_key=ParentKey(parent),
						inode=inode,
					),
					connection
				)
			logging.info(f"Created {name!r} ({inode}) under {parent} with mode {oct(mode)}")
			return inode

		except ConstraintViolation as e:
			if (exclusive):
				raise AlreadyExists(f"{name!r} already exists under {parent}") from e

			logging.warning(f"Lost creation race for {name!r} under {parent}; using the existing edge.")
			existing = this.FindEdge(name, parent)
			if (existing is None):
				raise ConflictOnCreate(f"Could not create or find {name!r} under {parent}: {e.message}") from e
			return existing.id

	def ListChildren(this, parent):
		tree = this.tables.tree
		statement = this.SelectNodes().where(tree.c.parent == parent).order_by(tree.c.name.asc())
		return [Node.FromRow(row) for row in this.store.QueryAll(statement)]

	def CountLinks(this, inode):
		tree = this.tables.tree
		statement = sql.select(sql.func.count()).select_from(tree).where(tree.c.inode == inode)
		return this.store.QueryScalar(statement) or 0

	def CountNodes(this):
		inodes = this.tables.inodes
		statement = sql.select(sql.func.count()).select_from(inodes)
		return this.store.QueryScalar(statement) or 0
