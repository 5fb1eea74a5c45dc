"""
tablefs/Errors.py

Purpose:
Defines the typed failures raised by every TableFS component.

Place in Architecture:
Shared by all layers. The store layer translates SQLAlchemy failures into StoreError; the namespace, metadata and block layers raise the lookup and validation errors; TableFS lets all of them reach the caller.

Interface:

	TableFSError: base class, carries an errno for callers that speak POSIX.
	NotFound, AlreadyExists, PayloadTooLarge, ConflictOnCreate, NotADirectory, IsADirectory, InvalidName, ConfigError.
	StoreError and its children ConstraintViolation, ConflictOnAppend, LockTimeout.

TODOs/FIXMEs:
None.
"""

import errno


class TableFSError(Exception):
	errno = errno.EIO

	def __init__(this, message=""):
		super().__init__(message)
		this.message = message


# A path segment, node, or block does not exist.
# When raised by a path walk, parent is the last inode that did resolve (None for root scope), segment is the name that failed and remaining holds the segments that were never looked up.
class NotFound(TableFSError, LookupError):
	errno = errno.ENOENT

	def __init__(this, message="", parent=None, segment=None, index=None, remaining=None):
		super().__init__(message)
		this.parent = parent
		this.segment = segment
		this.index = index
		this.remaining = remaining or []


class AlreadyExists(TableFSError):
	errno = errno.EEXIST


class PayloadTooLarge(TableFSError, ValueError):
	errno = errno.EFBIG

	def __init__(this, message="", length=None, limit=None):
		super().__init__(message)
		this.length = length
		this.limit = limit


# Only surfaced when a sibling-creation race could not be resolved by re-reading the winning edge.
class ConflictOnCreate(TableFSError):
	errno = errno.EEXIST


class NotADirectory(TableFSError):
	errno = errno.ENOTDIR


class IsADirectory(TableFSError):
	errno = errno.EISDIR


class InvalidName(TableFSError, ValueError):
	errno = errno.EINVAL


class ConfigError(TableFSError, ValueError):
	errno = errno.EINVAL


# Any backing store failure. The original driver message is kept in message and the original exception is chained.
class StoreError(TableFSError):
	errno = errno.EIO


class ConstraintViolation(StoreError):
	pass


class ConflictOnAppend(StoreError):
	pass


class LockTimeout(StoreError):
	errno = errno.EBUSY
