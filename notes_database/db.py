import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv

IN_MEMORY_URL = "sqlite://"


# PUBLIC_INTERFACE
def get_database_url():
    """
    Retrieves the database URL from the environment variable DATABASE_URL.
    Falls back to an in-memory SQLite store that lives as long as the process.
    """
    load_dotenv()
    return os.getenv("DATABASE_URL") or IN_MEMORY_URL


# PUBLIC_INTERFACE
def make_engine(db_url):
    """
    Build an engine for the given URL.

    In-memory SQLite gets a single shared connection so that every session
    sees the same data.
    """
    if db_url == IN_MEMORY_URL:
        return create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
            echo=False,
        )
    if db_url.startswith("sqlite"):
        return create_engine(db_url, connect_args={"check_same_thread": False}, future=True, echo=False)
    return create_engine(db_url, future=True, echo=False)


DATABASE_URL = get_database_url()

engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
