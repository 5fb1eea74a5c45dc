"""
tablefs/block/Storage.py

Purpose:
Implements the storage manager for a node's content: an ordered, gap-free run of blocks (seq 0..k-1) in the data_blocks table, each at most block_size bytes.

Place in Architecture:
Provides the block layer for TableFS. It keeps the node's `size` in the inodes table equal to the sum of its block lengths, and relies on TableDelta to serialize appends to the same inode.

Interface:

	BlockStore(store, metadata, delta, block_size): Constructor.
	AppendBlock(inode, payload): Stores payload as the next block. RETURNS its sequence number.
	ReadBlock(inode, seq): The payload. NotFound past the end.
	ReadAll(inode): Every block concatenated in sequence order.
	CountBlocks(inode), SumLengths(inode), ListSequences(inode)
	CountAllBlocks(), SumAllLengths(): Totals over every node.
	ResyncLengths(): Recomputes datalength from the stored data.

TODOs/FIXMEs:
None explicitly noted.
"""

import logging
import sqlalchemy as sql

from ..Errors import NotFound, PayloadTooLarge, ConstraintViolation, ConflictOnAppend
from ..Utils import ExponentialSleep, Now


BLOCK_SIZE = 131072


class BlockStore(object):
	"""
	Blocks of one node, addressed by (inode, seq).
	"""

	def __init__(this, store, metadata, delta, block_size=BLOCK_SIZE, retries=15):
		this.store = store
		this.metadata = metadata
		this.delta = delta
		this.block_size = block_size
		this.retries = retries
		this.blocks = store.tables.data_blocks

	def AppendBlock(this, inode, payload):
		payload = bytes(payload)
		if (len(payload) > this.block_size):
			raise PayloadTooLarge(
				f"Block of {len(payload)} bytes exceeds the {this.block_size} byte limit",
				length=len(payload),
				limit=this.block_size,
			)

		with this.delta.Hold(inode):
			for attempt in range(this.retries):
				try:
					return this.TryAppend(inode, payload)
				except ConstraintViolation as e:
					# Another process took our sequence number; recount and try again.
					logging.warning(f"Sequence conflict appending to inode {inode} (attempt {attempt+1}): {e.message}")
					ExponentialSleep(attempt, start=0.01, max_sleep=1)

		raise ConflictOnAppend(f"Could not allocate a block sequence number for inode {inode} after {this.retries} attempts")

	# One attempt at an append, in a single transaction: count, insert, recompute size.
	def TryAppend(this, inode, payload):
		with this.store.Transaction() as connection:
			this.metadata.Get(inode, connection)
			seq = this.CountBlocks(inode, connection)
			this.store.Execute(
				this.blocks.insert().values(
					inode=inode,
					seq=seq,
					data=payload,
					datalength=len(payload),
				),
				connection
			)
			size = this.SumLengths(inode, connection)
			this.metadata.Update(inode, connection, size=size, mtime=Now())

		logging.info(f"Appended block {seq} ({len(payload)} bytes) to inode {inode}; size is now {size}")
		return seq

	def ReadBlock(this, inode, seq):
		statement = sql.select(this.blocks.c.data).where(
			this.blocks.c.inode == inode,
			this.blocks.c.seq == seq,
		)
		row = this.store.QueryOne(statement)
		if (row is None):
			raise NotFound(f"Block {seq} of inode {inode} does not exist")
		return bytes(row['data'])

	# Whole-file content is exactly blocks 0, 1, 2, ... up to the first missing one.
	def ReadAll(this, inode):
		ret = []
		seq = 0
		while True:
			try:
				ret.append(this.ReadBlock(inode, seq))
			except NotFound:
				break
			seq += 1
		logging.debug(f"Read {seq} blocks from inode {inode}")
		return b"".join(ret)

	def CountBlocks(this, inode, connection=None):
		statement = sql.select(sql.func.count()).select_from(this.blocks).where(this.blocks.c.inode == inode)
		return this.store.QueryScalar(statement, connection) or 0

	def SumLengths(this, inode, connection=None):
		statement = sql.select(sql.func.coalesce(sql.func.sum(this.blocks.c.datalength), 0)).where(this.blocks.c.inode == inode)
		return int(this.store.QueryScalar(statement, connection) or 0)

	def ListSequences(this, inode):
		statement = sql.select(this.blocks.c.seq).where(this.blocks.c.inode == inode).order_by(this.blocks.c.seq)
		return [row['seq'] for row in this.store.QueryAll(statement)]

	def CountAllBlocks(this):
		return this.store.QueryScalar(sql.select(sql.func.count()).select_from(this.blocks)) or 0

	def SumAllLengths(this):
		statement = sql.select(sql.func.coalesce(sql.func.sum(this.blocks.c.datalength), 0))
		return int(this.store.QueryScalar(statement) or 0)

	# RETURNS a {inode: total length} map after rewriting every datalength from the stored data.
	def ResyncLengths(this):
		with this.store.Transaction() as connection:
			this.store.Execute(
				this.blocks.update().values(datalength=sql.func.length(this.blocks.c.data)),
				connection
			)
			rows = this.store.QueryAll(
				sql.select(
					this.blocks.c.inode,
					sql.func.sum(this.blocks.c.datalength).label('size'),
				).group_by(this.blocks.c.inode),
				connection
			)
		return {row['inode']: int(row['size']) for row in rows}
