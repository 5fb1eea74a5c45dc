"""
tablefs/TableDelta.py

Purpose:
Serializes appends per inode. Within a process this is a threading.Lock per inode; across processes (several TableFS servers sharing one database) it is a lock key in Redis.

Place in Architecture:
Held by the BlockStore around the "next sequence number = current block count" read-modify-write. The (inode, seq) primary key in the data_blocks table remains the last line of defence if a lock expires.

Interface:

	TableDelta(client=None, timeout=1800, retries=15, prefix="")
	Hold(inode): Context manager holding the inode's lock.
	Acquire(inode) / Release(inode, token): The Redis half of Hold.
	GetLocalLock(inode): The in-process lock for an inode. Kept only while something references it.
	GetKey(inode): The Redis key for an inode; `prefix` keeps namespaces sharing one Redis server apart.

TODOs/FIXMEs:
None.
"""

import os
import socket
import logging
import threading
import weakref
from contextlib import contextmanager

import redis

from .Errors import LockTimeout, StoreError
from .Utils import ExponentialSleep

# Reading and writing these locks needs to be fast and must expire if a server dies, so we use Redis, not the database.
# A lock is the key "<prefix><inode>:append" holding a token unique to the holder. The key expires after `timeout` seconds in case the holder crashed.
# Release only deletes the key if it still holds our token, so an expired-and-reacquired lock is never released by its previous owner.
class TableDelta(object):

	releaseScript = """\
if redis.call('GET', KEYS[1]) == ARGV[1] then
	return redis.call('DEL', KEYS[1])
else
	return 0
end
"""

	def __init__(this, client=None, timeout=1800, retries=15, prefix=""):
		this.redis = client
		this.timeout = timeout
		this.retries = retries
		this.prefix = prefix

		this.lock = threading.Lock()
		this.localLocks = weakref.WeakValueDictionary()

	@classmethod
	def FromConfig(cls, config):
		client = None
		if (config.redis_host):
			client = redis.Redis(host=config.redis_host, port=config.redis_port, db=config.redis_db)
		return cls(client, timeout=config.redis_lock_timeout, retries=config.append_retries, prefix=config.table_prefix)

	# Thread safe means of getting the lock for an inode.
	# Entries are weak: a lock disappears once no caller holds or waits on it.
	def GetLocalLock(this, inode):
		with this.lock:
			ret = this.localLocks.get(inode)
			if (ret is None):
				ret = threading.Lock()
				this.localLocks[inode] = ret
			return ret

	def GetKey(this, inode):
		return f"{this.prefix}{inode}:append"

	@contextmanager
	def Hold(this, inode):
		lock = this.GetLocalLock(inode)
		with lock:
			token = this.Acquire(inode)
			try:
				yield
			finally:
				this.Release(inode, token)

	# RETURNS the token to release with, or None if there is no Redis server to coordinate with.
	def Acquire(this, inode):
		if (this.redis is None):
			return None

		key = this.GetKey(inode)
		token = f"{socket.gethostname()}:{os.getpid()}:{threading.get_ident()}"
		for i in range(this.retries):
			try:
				if (this.redis.set(key, token, nx=True, px=max(1, int(this.timeout * 1000)))):
					logging.debug(f"Acquired {key} as {token}")
					return token
			except redis.RedisError as e:
				logging.error(f"Error acquiring {key}: {e}")
				raise StoreError(f"Could not acquire append lock for inode {inode}: {e}") from e

			ExponentialSleep(i, start=0.01, max_sleep=1)

		raise LockTimeout(f"Timed out waiting for the append lock on inode {inode}")

	def Release(this, inode, token):
		if (this.redis is None or token is None):
			return

		key = this.GetKey(inode)
		try:
			released = this.redis.eval(this.releaseScript, 1, key, token)
		except redis.RedisError as e:
			# The key still expires after `timeout`.
			logging.error(f"Error releasing {key}: {e}")
			return

		if (not released):
			logging.warning(f"Lock {key} expired before it was released by {token}")
