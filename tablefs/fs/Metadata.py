"""
tablefs/fs/Metadata.py

Purpose:
Reads and updates per-node attributes in the inodes table: size, timestamps, mode, ownership and the in-use counter.

Place in Architecture:
Used by TableFS for stat-like calls and attribute changes, and by the BlockStore to keep `size` equal to the sum of a node's block lengths.

Interface:

	MetadataStore(store)
	Get(inode): Node (without name/parent). NotFound if missing.
	SetSize(inode, size), TouchModifyTime(inode), TouchAccessTime(inode)
	SetMode(inode, mode): chmod; the node kind is kept.
	SetOwner(inode, uid=None, gid=None): chown; None leaves a field unchanged.
	SetTimes(inode, atime, mtime): utime.
	AdjustInUse(inode, delta): Open-handle counter.
	ResetInUse(): Sets every counter back to 0. RETURNS the number of nodes changed.

	Every update accepts an optional connection so it can join a caller's transaction.

TODOs/FIXMEs:
None.
"""

import logging
import sqlalchemy as sql

from ..Errors import NotFound
from ..Utils import Now
from .common.Mode import WithPermissions
from .common.Node import Node


class MetadataStore(object):
	def __init__(this, store):
		this.store = store
		this.inodes = store.tables.inodes

	def Get(this, inode, connection=None):
		row = this.store.QueryOne(sql.select(this.inodes).where(this.inodes.c.inode == inode), connection)
		if (row is None):
			raise NotFound(f"Inode {inode} does not exist")
		return Node.FromRow(row)

	# Apply `values` to a single inode.
	# RETURNS nothing; raises NotFound if the inode does not exist.
	def Update(this, inode, connection=None, **values):
		statement = this.inodes.update().where(this.inodes.c.inode == inode).values(**values)
		count = this.store.Execute(statement, connection)
		if (not count):
			# MySQL reports 0 affected rows when nothing changed, so check that the row really is missing.
			exists = this.store.QueryScalar(sql.select(this.inodes.c.inode).where(this.inodes.c.inode == inode), connection)
			if (exists is None):
				raise NotFound(f"Inode {inode} does not exist")
		logging.debug(f"Inode {inode} updated: {values}")

	def SetSize(this, inode, size, connection=None):
		this.Update(inode, connection, size=size)

	def TouchModifyTime(this, inode, connection=None):
		this.Update(inode, connection, mtime=Now())

	def TouchAccessTime(this, inode, connection=None):
		this.Update(inode, connection, atime=Now())

	def SetMode(this, inode, mode):
		with this.store.Transaction() as connection:
			node = this.Get(inode, connection)
			this.Update(inode, connection, mode=WithPermissions(node.mode, mode), ctime=Now())

	def SetOwner(this, inode, uid=None, gid=None):
		values = {}
		if (uid is not None):
			values['uid'] = uid
		if (gid is not None):
			values['gid'] = gid
		if (not values):
			this.Get(inode)
			return
		values['ctime'] = Now()
		this.Update(inode, **values)

	def SetTimes(this, inode, atime, mtime):
		this.Update(inode, atime=int(atime), mtime=int(mtime))

	def AdjustInUse(this, inode, delta):
		this.Update(inode, inuse=this.inodes.c.inuse + delta)

	def ResetInUse(this):
		return this.store.Execute(this.inodes.update().where(this.inodes.c.inuse != 0).values(inuse=0))
