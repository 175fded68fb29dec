from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from knoweat.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared between FastAPI's worker threads
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url, connect_args=_connect_args(settings.database_url)
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Create the key-value table if it does not exist."""
    from knoweat.models import kv_entry  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
