import logging
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from equiplend.configs import DB_URI, DEBUG, DEFAULT_LIMIT

logger = logging.getLogger(__name__)


def make_engine(uri=DB_URI):
    engine_kwargs = {'echo': DEBUG}
    if uri.startswith('sqlite'):
        engine_kwargs['connect_args'] = {'check_same_thread': False}
        if ':memory:' in uri:
            # Every thread must see the same in-memory database
            engine_kwargs['poolclass'] = StaticPool
    else:
        engine_kwargs['client_encoding'] = 'utf8'
        engine_kwargs['pool_pre_ping'] = True
    return create_engine(uri, **engine_kwargs)


engine = make_engine()
session = scoped_session(sessionmaker(
    bind=engine, autocommit=False, autoflush=False))


class EquiplendBase:
    @classmethod
    def get_many(cls, query=None, offset=None, limit=None):
        query = query if query is not None else session.query(cls)
        return query.offset(offset).limit(limit or DEFAULT_LIMIT).all()


Base = declarative_base(cls=EquiplendBase)


def bind(engine_to_bind):
    """Points the thread-local session factory at another engine."""
    session.remove()
    session.configure(bind=engine_to_bind)
    return session


def init(engine_to_init=None):
    try:
        Base.metadata.create_all(bind=engine_to_init or engine)
        return session
    except Exception as e:
        logger.warning(f"[WARNING] Database initialization failed: {e}")
