"""
tablefs/block/Utils.py

Purpose:
Provides utility functions for block-level operations.

Place in Architecture:
Used by the BlockStore and TableFS to split whole-file content into blocks no larger than the configured block size.

Interface:

	ceildiv(a, b): Computes the ceiling of a division.
	block_count(length, block_size): Number of blocks `length` bytes occupy.
	split_blocks(data, block_size): Yields consecutive slices of at most block_size bytes.

TODOs/FIXMEs:
None.
"""


def ceildiv(a, b):
	"""Compute ceil(a/b); i.e. rounded towards positive infinity"""
	return 1 + (a-1)//b

def block_count(length, block_size):
	"""Number of blocks needed to hold `length` bytes. Empty content needs none."""
	if length <= 0:
		return 0
	return ceildiv(length, block_size)

def split_blocks(data, block_size):
	"""
	Split `data` into the blocks it is stored as.

	Every block is exactly `block_size` bytes except the last, which holds the
	remainder. Content whose length is a multiple of `block_size` ends with a
	full block; no empty trailing block is produced.
	"""
	if block_size <= 0:
		raise ValueError("block_size must be positive")

	view = memoryview(data)
	for idx in range(block_count(len(view), block_size)):
		yield bytes(view[idx*block_size:(idx+1)*block_size])
