from __future__ import annotations

import typing as t
from pathlib import Path

import alembic.config
import sqlalchemy
import sqlalchemy.event
import sqlalchemy.orm
import sqlalchemy.pool
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Container, Factory, Object, Provider, Resource, Singleton
from sqlalchemy.engine.url import URL as DSN

from ..config.storage import PersistentSettings, PostgresqlSettings, SqliteSettings, StorageSettings
from ..di import NotReady
from ..provider import LoggingProvider


def create_dsn(config: PersistentSettings) -> DSN:
    if config.postgresql is not None:
        pg: PostgresqlSettings = config.postgresql
        return DSN.create(
            pg.driver,
            database=pg.database,
            username=pg.username,
            password=pg.password.get_secret_value() if pg.password else None,
            port=pg.port,
            host=str(pg.host) if pg.host else None,
        )
    sq = t.cast(SqliteSettings, config.sqlite)
    return DSN.create(sq.driver, database=sq.path)


def provide_alembic_conf(
    migration_path: Path, config: PersistentSettings, root: Path | NotReady
) -> alembic.config.Config:
    if isinstance(root, NotReady):
        raise RuntimeError("root path is unavailable")

    escaped_str = create_dsn(config).render_as_string(hide_password=False).replace("%", "%%")

    ac = alembic.config.Config()
    ac.set_main_option("script_location", str(root / migration_path))
    ac.set_section_option("alembic", "sqlalchemy.url", escaped_str)
    ac.set_section_option("alembic", "file_template", "%%(year)d-%%(month).2d-%%(day).2d-%%(slug)s-%%(rev)s")
    return ac


def provide_engine(config: PersistentSettings, logging: LoggingProvider) -> sqlalchemy.Engine:
    logger = logging.get_logger()
    dsn = create_dsn(config)

    if config.sqlite is not None:
        kwargs: dict[str, t.Any] = {"connect_args": {"check_same_thread": False}}
        if config.sqlite.path is None:
            # every connection must see the same in-memory database
            kwargs["poolclass"] = sqlalchemy.pool.StaticPool
        engine = sqlalchemy.create_engine(dsn, **kwargs)
        sqlalchemy.event.listen(engine, "connect", sqlite_disable_autobegin)
        sqlalchemy.event.listen(engine, "begin", sqlite_emit_begin)
        logger.info(
            "initialized SQLAlchemy engine",
            extra={
                "driver": config.sqlite.driver,
                "database": config.sqlite.path or ":memory:",
            },
        )
        return engine

    pg = t.cast(PostgresqlSettings, config.postgresql)
    engine = sqlalchemy.create_engine(dsn)
    sqlalchemy.event.listen(engine, "connect", register_timezone)
    logger.info(
        "initialized SQLAlchemy engine",
        extra={
            "driver": pg.driver,
            "database": pg.database,
            "host": pg.host,
            "port": pg.port,
        },
    )
    return engine


def provide_session(engine: sqlalchemy.Engine) -> sqlalchemy.orm.Session:
    """Create a new session. Caller is responsible for closing it (via di.Manage)."""
    maker = sqlalchemy.orm.sessionmaker(engine, expire_on_commit=False, autoflush=False)
    return maker(autobegin=False)


class PersistentContainer(DeclarativeContainer):
    config = Configuration()
    logging: Provider[LoggingProvider] = Resource()
    root: Provider[Path | NotReady] = Object()

    alembic_config: Provider[alembic.config.Config] = Singleton(
        provide_alembic_conf,
        migration_path=Path("migrations/"),
        config=config.as_(PersistentSettings),
        root=root,
    )
    engine: Provider[sqlalchemy.Engine] = Singleton(
        provide_engine,
        config=config.as_(PersistentSettings),
        logging=logging,
    )
    session: Provider[sqlalchemy.orm.Session] = Factory(provide_session, engine=engine)


class StorageContainer(DeclarativeContainer):
    config: Provider[StorageSettings] = Configuration(strict=True)
    logging: Provider[LoggingProvider] = Resource()
    root: Provider[Path | NotReady] = Object()

    persistent: Provider[PersistentContainer] = Container(
        PersistentContainer, config=config.persistent, logging=logging, root=root
    )


def register_timezone(dbapi_conn: t.Any, _: t.Any) -> None:
    """Set connection timezone to UTC so timestamptz values come back in UTC."""
    cursor = dbapi_conn.cursor()
    cursor.execute("SET TIMEZONE TO 'UTC'")
    cursor.close()


def sqlite_disable_autobegin(dbapi_conn: t.Any, _: t.Any) -> None:
    # pysqlite issues its own BEGIN lazily, which breaks SAVEPOINT handling
    dbapi_conn.isolation_level = None


def sqlite_emit_begin(conn: sqlalchemy.Connection) -> None:
    conn.exec_driver_sql("BEGIN")
