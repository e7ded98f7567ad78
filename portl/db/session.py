from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from portl.core.config import settings

_connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite connections are shared with the threads FastAPI runs sync endpoints on.
    _connect_args = {"check_same_thread": False}

# The engine is the entry point to the database. It's configured with the
# database URL and handles the connection pooling.
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)

# SessionLocal is a factory for creating new Session objects.
# Think of a session as a temporary workspace for all your database
# operations within a single request.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        # Runs after the endpoint has finished, even if it raised.
        db.close()
