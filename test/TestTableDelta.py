import importlib
from unittest import mock

import pytest
import redis

from StandardTestFixture import StandardTestFixture

from tablefs import FILE_MODE, LockTimeout, StoreError, TableDelta, TableFS, TableFSConfig

deltaModule = importlib.import_module("tablefs.TableDelta")


class TestTableDelta(object):

	def test_local_only(this):
		delta = TableDelta()
		with delta.Hold(1):
			assert delta.GetLocalLock(1).locked()
		assert not delta.GetLocalLock(1).locked()

	def test_same_local_lock(this):
		delta = TableDelta()
		assert delta.GetLocalLock(3) is delta.GetLocalLock(3)
		assert delta.GetLocalLock(3) is not delta.GetLocalLock(4)

	def test_local_locks_are_dropped(this):
		delta = TableDelta()
		for inode in range(1000):
			with delta.Hold(inode):
				assert len(delta.localLocks) == 1
		assert len(delta.localLocks) == 0

	def test_held_lock_is_shared(this):
		delta = TableDelta()
		with delta.Hold(5):
			held = delta.GetLocalLock(5)
			assert held.locked()
			assert delta.GetLocalLock(5) is held

	def test_fractional_timeout(this):
		client = mock.MagicMock()
		client.set.return_value = True
		delta = TableDelta(client, timeout=0.5)

		with delta.Hold(7):
			pass

		assert client.set.call_args[1]['px'] == 500
		assert 'ex' not in client.set.call_args[1]

	def test_prefixed_key(this):
		client = mock.MagicMock()
		client.set.return_value = True
		client.eval.return_value = 1
		delta = TableDelta(client, prefix="fs_")

		with delta.Hold(7):
			pass

		assert client.set.call_args[0][0] == "fs_7:append"
		assert client.eval.call_args[0][2] == "fs_7:append"
		assert TableDelta(client, prefix="other_").GetKey(7) != delta.GetKey(7)

	def test_redis_lock(this):
		client = mock.MagicMock()
		client.set.return_value = True
		client.eval.return_value = 1
		delta = TableDelta(client, timeout=60)

		with delta.Hold(7):
			client.set.assert_called_once()
			args, kwargs = client.set.call_args
			assert args[0] == "7:append"
			assert kwargs == {'nx': True, 'px': 60000}
			client.eval.assert_not_called()

		client.eval.assert_called_once_with(TableDelta.releaseScript, 1, "7:append", args[1])

	@mock.patch.object(deltaModule, 'ExponentialSleep')
	def test_redis_contention(this, sleep):
		client = mock.MagicMock()
		client.set.side_effect = [False, False, True]
		delta = TableDelta(client)

		with delta.Hold(7):
			pass

		assert client.set.call_count == 3
		assert sleep.call_count == 2

	@mock.patch.object(deltaModule, 'ExponentialSleep')
	def test_redis_timeout(this, sleep):
		client = mock.MagicMock()
		client.set.return_value = False
		delta = TableDelta(client, retries=2)

		with pytest.raises(LockTimeout):
			with delta.Hold(7):
				pass

		client.eval.assert_not_called()
		assert not delta.GetLocalLock(7).locked()

	def test_redis_down(this):
		client = mock.MagicMock()
		client.set.side_effect = redis.ConnectionError("refused")
		delta = TableDelta(client)

		with pytest.raises(StoreError):
			with delta.Hold(7):
				pass

	def test_expired_release(this):
		client = mock.MagicMock()
		client.set.return_value = True
		client.eval.return_value = 0
		delta = TableDelta(client)

		with delta.Hold(7):
			pass

		client.eval.assert_called_once()

	def test_from_config(this):
		config = TableFSConfig(sql_url="sqlite://", redis_host="cache.local", redis_port=6380, redis_lock_timeout=30, table_prefix="fs_")
		delta = TableDelta.FromConfig(config)

		assert isinstance(delta.redis, redis.Redis)
		assert delta.timeout == 30
		assert delta.GetKey(12) == "fs_12:append"
		assert delta.retries == config.append_retries

	def test_from_config_without_redis(this):
		assert TableDelta.FromConfig(TableFSConfig(sql_url="sqlite://")).redis is None


class TestSharedAppends(StandardTestFixture):
	block_size = 4

	def setup_method(this, method):
		super().setup_method(method)
		this.fs.Close()

		this.client = mock.MagicMock()
		this.client.set.return_value = True
		this.client.eval.return_value = 1
		this.fs = TableFS(this.config, delta=TableDelta(this.client))

	def test_append_holds_redis_lock(this):
		inode = this.fs.namespace.CreateEdge("shared", this.root, FILE_MODE)
		this.fs.blocks.AppendBlock(inode, b"AAAA")

		assert this.client.set.call_args[0][0] == f"{inode}:append"
		this.client.eval.assert_called_once()

	def test_write_file_locks_each_block(this):
		inode = this.fs.WriteFile("/shared", b"AAAABBBBCC")
		assert this.client.set.call_count == 3
		assert all(call[0][0] == f"{inode}:append" for call in this.client.set.call_args_list)
