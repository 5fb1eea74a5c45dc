import threading

import pytest

from StandardTestFixture import StandardTestFixture

from tablefs import ConflictOnAppend, FILE_MODE, NotFound, PayloadTooLarge
from tablefs.block.Utils import block_count, ceildiv, split_blocks


class TestBlockUtils(object):

	def test_ceildiv(this):
		assert ceildiv(10, 4) == 3
		assert ceildiv(8, 4) == 2
		assert ceildiv(1, 4) == 1

	def test_block_count(this):
		assert block_count(0, 4) == 0
		assert block_count(12, 4) == 3
		assert block_count(13, 4) == 4

	def test_split_remainder(this):
		assert list(split_blocks(b"AAAABBBBCC", 4)) == [b"AAAA", b"BBBB", b"CC"]

	def test_split_exact_multiple(this):
		assert list(split_blocks(b"AAAABBBB", 4)) == [b"AAAA", b"BBBB"]

	def test_split_empty(this):
		assert list(split_blocks(b"", 4)) == []

	def test_split_bad_size(this):
		with pytest.raises(ValueError):
			list(split_blocks(b"abc", 0))


class TestBlockStore(StandardTestFixture):
	block_size = 4

	def NewFile(this, name="data.bin"):
		return this.fs.namespace.CreateEdge(name, this.root, FILE_MODE)

	def test_append_sequence(this):
		inode = this.NewFile()
		sequences = [this.fs.blocks.AppendBlock(inode, payload) for payload in [b"AAAA", b"BBBB", b"CC"]]

		this.assert_equal(sequences, [0, 1, 2])
		this.assert_equal(this.fs.blocks.ReadAll(inode), b"AAAABBBBCC")
		this.assert_equal(this.fs.metadata.Get(inode).size, 10)
		this.assert_equal(this.fs.blocks.ListSequences(inode), [0, 1, 2])

	def test_append_touches_mtime(this):
		inode = this.NewFile()
		this.fs.metadata.SetTimes(inode, 0, 0)
		this.fs.blocks.AppendBlock(inode, b"x")
		assert this.fs.metadata.Get(inode).mtime > 0

	def test_payload_too_large(this):
		inode = this.NewFile()
		this.fs.blocks.AppendBlock(inode, b"AB")

		with pytest.raises(PayloadTooLarge) as info:
			this.fs.blocks.AppendBlock(inode, b"x" * (this.block_size + 1))

		this.assert_equal(info.value.limit, this.block_size)
		this.assert_equal(this.fs.blocks.CountBlocks(inode), 1)
		this.assert_equal(this.fs.metadata.Get(inode).size, 2)

	def test_read_block(this):
		inode = this.NewFile()
		this.fs.blocks.AppendBlock(inode, b"AAAA")
		this.assert_equal(this.fs.blocks.ReadBlock(inode, 0), b"AAAA")
		this.assert_raises(NotFound, this.fs.blocks.ReadBlock, inode, 1)

	def test_read_all_empty(this):
		this.assert_equal(this.fs.blocks.ReadAll(this.NewFile()), b"")

	def test_append_to_missing_inode(this):
		this.assert_raises(NotFound, this.fs.blocks.AppendBlock, 9999, b"AAAA")
		this.assert_equal(this.fs.blocks.CountBlocks(9999), 0)

	def test_sequence_conflict_is_retried(this):
		inode = this.NewFile()
		this.fs.blocks.AppendBlock(inode, b"AAAA")

		# Pretend another process had not yet seen block 0 when we counted.
		realCount = this.fs.blocks.CountBlocks
		calls = []
		def StaleCount(target, connection=None):
			calls.append(target)
			if (len(calls) == 1):
				return 0
			return realCount(target, connection)
		this.fs.blocks.CountBlocks = StaleCount

		this.assert_equal(this.fs.blocks.AppendBlock(inode, b"BBBB"), 1)
		this.assert_equal(len(calls), 2)
		this.assert_equal(this.fs.blocks.ReadAll(inode), b"AAAABBBB")
		this.assert_equal(this.fs.metadata.Get(inode).size, 8)

	def test_sequence_conflict_gives_up(this):
		inode = this.NewFile()
		this.fs.blocks.AppendBlock(inode, b"AAAA")
		this.fs.blocks.retries = 3
		this.fs.blocks.CountBlocks = lambda target, connection=None: 0

		this.assert_raises(ConflictOnAppend, this.fs.blocks.AppendBlock, inode, b"BBBB")
		this.assert_equal(this.fs.metadata.Get(inode).size, 4)

	def test_concurrent_appends(this):
		inode = this.NewFile()
		errors = []
		sequences = []

		def Append(payload):
			try:
				sequences.append(this.fs.blocks.AppendBlock(inode, payload))
			except Exception as e:
				errors.append(e)

		threads = [threading.Thread(target=Append, args=(bytes([65 + i]) * 4,)) for i in range(8)]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()

		this.assert_equal(errors, [])
		this.assert_equal(sorted(sequences), list(range(8)))
		this.assert_equal(this.fs.blocks.ListSequences(inode), list(range(8)))
		this.assert_equal(this.fs.metadata.Get(inode).size, 32)
		this.assert_equal(len(this.fs.blocks.ReadAll(inode)), 32)

	def test_totals(this):
		first = this.NewFile("one")
		second = this.NewFile("two")
		this.fs.blocks.AppendBlock(first, b"AAAA")
		this.fs.blocks.AppendBlock(first, b"B")
		this.fs.blocks.AppendBlock(second, b"CC")

		this.assert_equal(this.fs.blocks.CountAllBlocks(), 3)
		this.assert_equal(this.fs.blocks.SumAllLengths(), 7)
		this.assert_equal(this.fs.blocks.SumLengths(first), 5)

	def test_resync_lengths(this):
		inode = this.NewFile()
		this.fs.blocks.AppendBlock(inode, b"AAAA")
		this.fs.blocks.AppendBlock(inode, b"BB")
		blocks = this.fs.store.tables.data_blocks
		this.fs.store.Execute(blocks.update().values(datalength=0))

		this.assert_equal(this.fs.blocks.ResyncLengths(), {inode: 6})
		this.assert_equal(this.fs.blocks.SumLengths(inode), 6)
