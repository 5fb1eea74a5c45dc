"""
tablefs/db/Schema.py

Purpose:
Defines the SQLAlchemy tables that hold the namespace: inodes (node metadata), tree (namespace edges) and data_blocks (file content).

Place in Architecture:
Used by the BackingStore to create the tables and by every store (Namespace, Metadata, Block) to build bound statements.

Interface:

	Schema(prefix=""): Builds the three tables, each name prefixed with `prefix`.
	Create(engine): Creates any missing tables.

TODOs/FIXMEs:
None.
"""

import sqlalchemy as sql
from sqlalchemy.dialects import mysql

# Inodes store the usable metadata for files and directories.
# The inode number is the primary key and the path-independent means of access; the tree table maps names to it.
# Files and directories share the table and are told apart by the S_IFMT bits of `mode`.
#
# tree.parent is NULL for the root edge. SQL unique indexes treat NULLs as distinct, so sibling uniqueness is enforced on parent_key instead, which mirrors parent but is 0 (never a valid inode) in root scope.
class Schema(object):
	def __init__(this, prefix=""):
		this.prefix = prefix
		this.metadata = sql.MetaData()

		this.inodes = sql.Table(
			f"{prefix}inodes", this.metadata,
			sql.Column('inode', sql.Integer, primary_key=True, autoincrement=True),
			sql.Column('mode', sql.Integer, nullable=False, default=0),
			sql.Column('uid', sql.Integer, nullable=False, default=0),
			sql.Column('gid', sql.Integer, nullable=False, default=0),
			sql.Column('atime', sql.BigInteger, nullable=False, default=0),
			sql.Column('ctime', sql.BigInteger, nullable=False, default=0),
			sql.Column('mtime', sql.BigInteger, nullable=False, default=0),
			sql.Column('size', sql.BigInteger, nullable=False, default=0),
			sql.Column('inuse', sql.Integer, nullable=False, default=0),
			sql.Column('deleted', sql.Boolean, nullable=False, default=False),
		)

		this.tree = sql.Table(
			f"{prefix}tree", this.metadata,
			sql.Column('id', sql.Integer, primary_key=True, autoincrement=True),
			sql.Column('name', sql.String(255).with_variant(mysql.VARCHAR(255, collation='utf8mb4_bin'), 'mysql'), nullable=False), # Case-sensitive everywhere.
			sql.Column('parent', sql.Integer, nullable=True),
			sql.Column('parent_key', sql.Integer, nullable=False),
			sql.Column('inode', sql.Integer, sql.ForeignKey(f"{prefix}inodes.inode"), nullable=False),
			sql.UniqueConstraint('name', 'parent_key', name=f"{prefix}tree_name_parent"),
			sql.Index(f"{prefix}tree_inode", 'inode'),
		)

		this.data_blocks = sql.Table(
			f"{prefix}data_blocks", this.metadata,
			sql.Column('inode', sql.Integer, sql.ForeignKey(f"{prefix}inodes.inode"), primary_key=True, autoincrement=False),
			sql.Column('seq', sql.Integer, primary_key=True, autoincrement=False),
			sql.Column('data', sql.LargeBinary().with_variant(mysql.LONGBLOB(), 'mysql'), nullable=False),
			sql.Column('datalength', sql.Integer, nullable=False, default=0),
		)

	def Create(this, engine):
		this.metadata.create_all(engine)


# The key sibling uniqueness is enforced on.
def ParentKey(parent):
	return 0 if parent is None else parent
