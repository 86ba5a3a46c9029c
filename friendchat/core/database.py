import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from friendchat.core.config import DATABASE_URL, SQL_ECHO

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    options = {"echo": SQL_ECHO}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        # In-memory databases only live as long as their connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
    return options


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create every table registered on ``Base``."""
    # Model modules register their tables on import
    from friendchat.users import models as _users  # noqa: F401
    from friendchat.friendship import models as _friendship  # noqa: F401
    from friendchat.chat import models as _chat  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"database_ready url={engine.url.render_as_string(hide_password=True)}")


def drop_db():
    Base.metadata.drop_all(bind=engine)
