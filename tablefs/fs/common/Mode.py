"""
tablefs/fs/common/Mode.py

Purpose:
Mode bit helpers. A node's `mode` holds both its kind (directory or regular file) and its permission bits, exactly as st_mode does.

Place in Architecture:
Used by TableFS when creating nodes and by the Node value type to tell files from directories.

Interface:

	DIRECTORY_MODE, FILE_MODE: Defaults for new directories and files.
	IsDirectoryMode(mode), IsFileMode(mode).
	WithPermissions(mode, permissions): Replaces the permission bits, keeps the kind.

TODOs/FIXMEs:
None.
"""

import stat

DIRECTORY_MODE = stat.S_IFDIR | 0o755
FILE_MODE = stat.S_IFREG | 0o644


def IsDirectoryMode(mode):
	return stat.S_ISDIR(mode)


def IsFileMode(mode):
	return stat.S_ISREG(mode)


# chmod never changes what a node is.
def WithPermissions(mode, permissions):
	return stat.S_IFMT(mode) | stat.S_IMODE(permissions)
