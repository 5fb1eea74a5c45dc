"""
tablefs/db/BackingStore.py

Purpose:
Wraps a SQLAlchemy engine in the small contract every TableFS store is written against: a point query, an ordered multi-row query, statement execution with an affected-row count, and an explicit transaction.

Place in Architecture:
The only module that talks to the database driver. Everything above it builds SQLAlchemy Core statements (so every name and payload crosses the boundary as a bound parameter) and hands them here.

Interface:

	BackingStore(config): Creates the engine and the Schema for config.table_prefix.
	CreateSchema(): Creates any missing tables.
	Transaction(): Context manager yielding a connection; commits on success, rolls back on any exception.
	QueryOne(statement, connection=None): Zero or one row (as a mapping), StoreError if more.
	QueryAll(statement, connection=None): All rows, in the order the statement asks for.
	QueryScalar(statement, connection=None): The first column of the first row, or None.
	Execute(statement, connection=None): Affected row count.
	Insert(statement, connection=None): Primary key of the inserted row.
	Dispose(): Closes pooled connections.

	Statements run without a connection get their own short transaction.

TODOs/FIXMEs:
None.
"""

import logging
from contextlib import contextmanager

import sqlalchemy as sql
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..Errors import StoreError, ConstraintViolation
from .Schema import Schema


class BackingStore(object):
	def __init__(this, config):
		this.config = config
		this.tables = Schema(config.table_prefix)

		url = config.GetDatabaseUrl()
		kwargs = {'echo': config.sql_echo}
		if (str(url).startswith('sqlite')):
			# Pooled sqlite connections are handed between worker threads.
			kwargs['connect_args'] = {'check_same_thread': False}

		try:
			this.engine = sql.create_engine(url, **kwargs)
		except (SQLAlchemyError, ImportError) as e:
			logging.error(f"Could not create engine for {config}: {e}")
			raise StoreError(f"Could not create engine: {e}") from e

	def CreateSchema(this):
		with this.Translate("create schema"):
			this.tables.Create(this.engine)
		logging.info(f"Schema ready (prefix {this.config.table_prefix!r}).")

	def Dispose(this):
		this.engine.dispose()

	# Turn driver failures into StoreError while keeping the backing message.
	@contextmanager
	def Translate(this, what):
		try:
			yield
		except IntegrityError as e:
			logging.debug(f"Constraint violation during {what}: {e.orig}")
			raise ConstraintViolation(str(e.orig)) from e
		except SQLAlchemyError as e:
			logging.error(f"Backing store failure during {what}: {e}")
			raise StoreError(str(e)) from e

	@contextmanager
	def Transaction(this):
		with this.Translate("transaction"):
			with this.engine.begin() as connection:
				yield connection

	def Run(this, statement, connection, consume):
		if (connection is not None):
			with this.Translate("statement"):
				return consume(connection.execute(statement))

		with this.Transaction() as connection:
			return consume(connection.execute(statement))

	def QueryOne(this, statement, connection=None):
		return this.Run(statement, connection, lambda result: result.mappings().one_or_none())

	def QueryAll(this, statement, connection=None):
		return this.Run(statement, connection, lambda result: result.mappings().all())

	def QueryScalar(this, statement, connection=None):
		return this.Run(statement, connection, lambda result: result.scalar())

	def Execute(this, statement, connection=None):
		return this.Run(statement, connection, lambda result: result.rowcount)

	def Insert(this, statement, connection=None):
		return this.Run(statement, connection, lambda result: result.inserted_primary_key[0])
