"""Database configuration and initialization."""
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = scoped_session(sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False))


def _engine_options(app):
    """Pool options for the configured backend."""
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {'echo': app.config.get('SQLALCHEMY_ECHO', False)}

    if database_uri.startswith('sqlite'):
        # In-memory SQLite must share one connection across the session scope
        options['connect_args'] = {'check_same_thread': False}
        options['poolclass'] = StaticPool
    else:
        options.update(
            pool_pre_ping=True,  # Enable connection health checks
            pool_size=app.config.get('SQLALCHEMY_POOL_SIZE', 10),
            max_overflow=app.config.get('SQLALCHEMY_MAX_OVERFLOW', 20),
        )
    return options


def init_db(app):
    """Initialize database connection."""
    global engine

    engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], **_engine_options(app))
    db_session.remove()
    db_session.configure(bind=engine)

    Base.query = db_session.query_property()

    if app.config.get('DB_CREATE_ALL'):
        create_all()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table registered on the declarative base."""
    import flowcrm.models  # noqa: F401  (registers mappers)
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every table registered on the declarative base."""
    import flowcrm.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def utcnow():
    """Timezone-aware timestamp used as column default."""
    return datetime.now(timezone.utc)


def get_session():
    """Get database session."""
    return db_session
