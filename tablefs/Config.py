"""
tablefs/Config.py

Purpose:
Holds every setting TableFS needs: backing store connection parameters, the optional table-name prefix, the maximum block size and the optional Redis lock server.

Place in Architecture:
Built by the caller and handed to TableFS at construction. Nothing in the package reads settings from anywhere else, so two TableFS instances with different configs can coexist in one process.

Interface:

	TableFSConfig(**kwargs): Required and optional settings, see the tables below.
	ValidateArgs(): Coerces and checks values. Raises ConfigError.
	GetDatabaseUrl(): The SQLAlchemy URL to connect with.
	GetDisplayUrl(): The same URL with the password masked.
	FromEnvironment(environ=None, prefix="TABLEFS_"): Builds a config from environment variables.

TODOs/FIXMEs:
None.
"""

import os
import sqlalchemy
import sqlalchemy.exc

from .Errors import ConfigError


class TableFSConfig(object):

	# Needed unless sql_url is given.
	required = [
		'sql_host',
		'sql_db',
		'sql_user',
		'sql_pass',
	]

	optional = {
		'sql_engine': "mysql",
		'sql_port': 3306,
		'sql_ssl': False,
		'sql_url': None, # Full SQLAlchemy URL. Overrides the other sql_ settings.
		'sql_echo': False,
		'table_prefix': "",
		'block_size': 131072, # Maximum size of a single data block (bytes).
		'uid': None, # Owner of new nodes. None means the current process.
		'gid': None,
		'redis_host': None, # Without a Redis host, appends are only serialized within this process.
		'redis_port': 6379,
		'redis_db': 0,
		'redis_lock_timeout': 1800, # Seconds. Should only matter if a server crashed while holding a lock.
		'append_retries': 15,
	}

	def __init__(this, **kwargs):
		for key in this.required:
			setattr(this, key, kwargs.pop(key, None))
		for key, default in this.optional.items():
			setattr(this, key, kwargs.pop(key, default))

		if (kwargs):
			raise ConfigError(f"Unknown settings: {', '.join(sorted(kwargs))}")

		this.ValidateArgs()

	def __repr__(this):
		return f"<TableFSConfig {this.GetDisplayUrl()} prefix={this.table_prefix!r}>"

	# The database URL with any password masked, for logs.
	def GetDisplayUrl(this):
		try:
			return sqlalchemy.engine.make_url(this.GetDatabaseUrl()).render_as_string(hide_password=True)
		except sqlalchemy.exc.ArgumentError:
			return "<unparseable sql_url>"

	def ValidateArgs(this):
		if (not this.sql_url):
			missing = [key for key in this.required if getattr(this, key) in (None, "")]
			if (missing):
				raise ConfigError(f"Missing required settings: {', '.join(missing)}")

		try:
			this.block_size = int(this.block_size)
			if (this.block_size <= 0):
				raise ValueError()
		except (TypeError, ValueError):
			raise ConfigError(f"block_size {this.block_size} is not a valid size")

		for key in ['sql_port', 'redis_port', 'redis_db', 'append_retries']:
			try:
				setattr(this, key, int(getattr(this, key)))
			except (TypeError, ValueError):
				raise ConfigError(f"{key} {getattr(this, key)} is not a valid integer")

		if (this.append_retries < 1):
			raise ConfigError(f"append_retries must be at least 1, not {this.append_retries}")

		try:
			this.redis_lock_timeout = float(this.redis_lock_timeout)
			if not 0 < this.redis_lock_timeout < float('inf'):
				raise ValueError()
		except (TypeError, ValueError):
			raise ConfigError(f"redis_lock_timeout {this.redis_lock_timeout} is not a valid timeout")

		this.sql_ssl = ParseBool(this.sql_ssl)
		this.sql_echo = ParseBool(this.sql_echo)

		this.table_prefix = this.table_prefix or ""
		if (not all(c.isalnum() or c == '_' for c in this.table_prefix)):
			raise ConfigError(f"table_prefix {this.table_prefix!r} may only contain letters, digits and underscores")

		if (this.uid is None):
			this.uid = os.getuid() if hasattr(os, 'getuid') else 0
		if (this.gid is None):
			this.gid = os.getgid() if hasattr(os, 'getgid') else 0
		this.uid = int(this.uid)
		this.gid = int(this.gid)

	def GetDatabaseUrl(this):
		if (this.sql_url):
			return this.sql_url

		query = {}
		if (this.sql_ssl):
			query['ssl'] = "true"

		return sqlalchemy.engine.URL.create(
			drivername=this.sql_engine,
			username=this.sql_user,
			password=this.sql_pass,
			host=this.sql_host,
			port=this.sql_port,
			database=this.sql_db,
			query=query,
		)

	# Build a config from TABLEFS_SQL_HOST, TABLEFS_BLOCK_SIZE, etc.
	# Explicit kwargs win over the environment.
	@classmethod
	def FromEnvironment(cls, environ=None, prefix="TABLEFS_", **kwargs):
		if (environ is None):
			environ = os.environ

		settings = {}
		for key in cls.required + list(cls.optional.keys()):
			name = f"{prefix}{key.upper()}"
			if (name in environ):
				settings[key] = environ[name]

		settings.update(kwargs)
		return cls(**settings)


def ParseBool(value):
	if (isinstance(value, str)):
		return value.strip().lower() in ('1', 'true', 'yes', 'on')
	return bool(value)
