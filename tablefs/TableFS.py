"""
tablefs/TableFS.py

Purpose:
Implements TableFS, a filesystem-like namespace (directories, files, metadata) whose storage is a set of relational tables instead of disk blocks. This is the data layer a POSIX-style driver would call into.

Place in Architecture:
The orchestrator. It owns one BackingStore and composes the NamespaceStore, MetadataStore, PathWalker and BlockStore into whole-path operations. It also owns the invariants that span those stores: every node except the root has exactly one edge, and only CreatePath materializes missing directories.

Interface:

	TableFS(config, delta=None): Connects to the backing store described by a TableFSConfig.
	Format(): Creates missing tables and the root directory.
	ListDirectory(path), ReadFile(path), WriteFile(path, content), CreateDirectory(path)
	CreateItem(name, parent, mode, exclusive=False), CreatePath(path)
	Resolve(path): The Node at path.
	GetAttributes(path), Chmod(path, mode), Chown(path, uid=None, gid=None), Utime(path, atime, mtime)
	Open(path) / Release(inode): In-use counter.
	GetStatistics(), Check()
	Close(): Releases pooled connections.

TODOs/FIXMEs:
None.
"""

import logging

from .Errors import AlreadyExists, InvalidName, IsADirectory, NotADirectory, NotFound
from .Upath import ROOT, UniversalPath
from .TableDelta import TableDelta
from .db.BackingStore import BackingStore
from .fs.Namespace import NamespaceStore
from .fs.Metadata import MetadataStore
from .fs.PathWalker import PathWalker
from .fs.common.Mode import DIRECTORY_MODE, FILE_MODE
from .fs.common.Node import DirectoryEntry
from .block.Storage import BlockStore
from .block.Utils import block_count, split_blocks

MAX_NAME_LENGTH = 255


# TableFS is stateless apart from its connection pool and lock table: every call re-walks the namespace from the backing store, so any number of TableFS instances, in any number of processes, may share one database.
# Writes that span several statements (CreatePath, WriteFile) are not atomic. A failure midway leaves the steps already taken committed.
class TableFS(object):
	def __init__(this, config, delta=None):
		this.config = config
		this.block_size = config.block_size

		this.store = BackingStore(config)
		this.delta = delta if delta is not None else TableDelta.FromConfig(config)

		this.namespace = NamespaceStore(this.store)
		this.metadata = MetadataStore(this.store)
		this.walker = PathWalker(this.namespace)
		this.blocks = BlockStore(this.store, this.metadata, this.delta, this.block_size, retries=config.append_retries)

	def __repr__(this):
		return f"<TableFS {this.config!r}>"

	def Close(this):
		this.store.Dispose()

	# Create any missing tables and the root directory.
	# Safe to call on an already formatted store.
	# RETURNS the root inode.
	def Format(this):
		this.store.CreateSchema()
		return this.CreatePath(ROOT)

	def Resolve(this, path):
		return this.walker.Walk(path)

	# Names are single path segments. The only root-scope name is ROOT itself.
	def ValidateName(this, name, parent):
		if (parent is None):
			if (name != ROOT):
				raise InvalidName(f"Only {ROOT!r} may be created without a parent, not {name!r}")
			return
		if (not name or '/' in name):
			raise InvalidName(f"{name!r} is not a valid file name")
		if (len(name) > MAX_NAME_LENGTH):
			raise InvalidName(f"{name[:32]!r}... is longer than {MAX_NAME_LENGTH} characters")

	# Allocate an edge and its node under `parent`.
	# Concurrent creators of the same (name, parent) all get the id of the one node actually stored, unless `exclusive` is set, in which case every creator but the winner gets AlreadyExists.
	# RETURNS the inode id.
	def CreateItem(this, name, parent, mode, exclusive=False):
		this.ValidateName(name, parent)
		return this.namespace.CreateEdge(
			name,
			parent,
			mode,
			uid=this.config.uid,
			gid=this.config.gid,
			exclusive=exclusive,
		)

	# Walk `path`, creating a directory for every segment that does not exist yet.
	# This is the only operation that creates intermediate directories.
	# RETURNS the terminal inode id.
	def CreatePath(this, path):
		parent = None
		for segment in UniversalPath(path):
			existing = this.namespace.FindEdge(segment, parent)
			if (existing is None):
				inode = this.CreateItem(segment, parent, DIRECTORY_MODE)
				# A concurrent creator may have stored this name first, possibly as a file.
				existing = this.metadata.Get(inode)

			if (not existing.IsDirectory()):
				raise NotADirectory(f"{segment!r} ({existing.id}) in {path} is not a directory")
			parent = existing.id

		return parent

	def CreateDirectory(this, path):
		return this.CreatePath(path)

	# RETURNS the entries of the directory at `path`: "." for the directory itself, then its children sorted by name.
	def ListDirectory(this, path):
		node = this.Resolve(path)
		if (not node.IsDirectory()):
			raise NotADirectory(f"{path} is not a directory")

		ret = [DirectoryEntry.FromNode(node, name=".")]
		ret.extend(DirectoryEntry.FromNode(child) for child in this.namespace.ListChildren(node.id))
		return ret

	def ReadFile(this, path):
		node = this.Resolve(path)
		if (node.IsDirectory()):
			raise IsADirectory(f"{path} is a directory")
		return this.blocks.ReadAll(node.id)

	# Create a new file at `path` holding `content`.
	# There is no overwrite and no append: an existing path raises AlreadyExists. The parent directory must already exist.
	# RETURNS the new inode id.
	def WriteFile(this, path, content):
		segments = UniversalPath(path).GetSegments()
		parent, index = this.walker.WalkAsFarAsPossible(segments)

		if (index is None):
			raise AlreadyExists(f"{path} already exists")

		if (parent is None):
			raise NotFound("The root directory does not exist; call Format() first", segment=ROOT, index=0, remaining=segments[1:])

		if (index != len(segments) - 1):
			raise NotFound(
				f"No such directory: {segments[index]!r} in {path}",
				parent=parent.id,
				segment=segments[index],
				index=index,
				remaining=segments[index+1:],
			)

		if (not parent.IsDirectory()):
			raise NotADirectory(f"{parent.name!r} ({parent.id}) in {path} is not a directory")

		inode = this.CreateItem(segments[-1], parent.id, FILE_MODE, exclusive=True)

		count = 0
		for chunk in split_blocks(content, this.block_size):
			this.blocks.AppendBlock(inode, chunk)
			count += 1

		logging.info(f"Wrote {len(content)} bytes in {count} blocks to {path} ({inode})")
		return inode

	# RETURNS a stat-like dict for the node at `path`.
	def GetAttributes(this, path):
		node = this.Resolve(path)
		return {
			'st_ino': node.id,
			'st_mode': node.mode,
			'st_nlink': this.namespace.CountLinks(node.id),
			'st_uid': node.uid,
			'st_gid': node.gid,
			'st_size': node.size,
			'st_atime': node.atime,
			'st_mtime': node.mtime,
			'st_ctime': node.ctime,
			'st_blksize': this.block_size,
			'st_blocks': block_count(node.size, this.block_size),
		}

	def Chmod(this, path, mode):
		this.metadata.SetMode(this.Resolve(path).id, mode)

	def Chown(this, path, uid=None, gid=None):
		this.metadata.SetOwner(this.Resolve(path).id, uid, gid)

	def Utime(this, path, atime, mtime):
		this.metadata.SetTimes(this.Resolve(path).id, atime, mtime)

	# Mark the node at `path` as in use by one more handle.
	# RETURNS the inode, which must be handed back to Release.
	def Open(this, path):
		inode = this.Resolve(path).id
		this.metadata.AdjustInUse(inode, 1)
		return inode

	def Release(this, inode):
		this.metadata.AdjustInUse(inode, -1)

	def GetStatistics(this):
		return {
			'block_size': this.block_size,
			'total_inodes': this.namespace.CountNodes(),
			'total_blocks': this.blocks.CountAllBlocks(),
			'total_bytes': this.blocks.SumAllLengths(),
		}

	# Non-destructive consistency pass.
	# 1. Reset every in-use counter (no handle survives a restart).
	# 2. Rewrite datalength from the stored data and every node's size from its blocks.
	# 3. Report nodes whose block sequence has gaps. These are not repaired: content is defined as blocks 0..first gap.
	# RETURNS a report dict.
	def Check(this):
		logging.info("Starting check")

		released = this.metadata.ResetInUse()

		sizes = this.blocks.ResyncLengths()
		resized = []
		for node in this.store.QueryAll(this.store.tables.inodes.select()):
			expected = sizes.get(node['inode'], 0)
			if (node['size'] != expected):
				logging.warning(f"Inode {node['inode']} recorded size {node['size']}, blocks hold {expected}")
				this.metadata.SetSize(node['inode'], expected)
				resized.append(node['inode'])

		gaps = {}
		for inode in sizes:
			sequences = this.blocks.ListSequences(inode)
			missing = sorted(set(range(sequences[-1] + 1)) - set(sequences))
			if (missing):
				logging.warning(f"Inode {inode} is missing blocks {missing}")
				gaps[inode] = missing

		logging.info(f"Check done: {released} handles released, {len(resized)} sizes fixed, {len(gaps)} nodes with gaps")
		return {
			'released': released,
			'resized': resized,
			'gaps': gaps,
		}
