"""
Database engine and session management for PcAnalys.
"""

from pathlib import Path
from typing import Optional, Union

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from pcanalys.services.database.models import Base
from pcanalys.utils.logger import log


class DatabaseManager:
    """
    Manages the SQLAlchemy engine and sessions.

    Constructed once by the process entry point and handed to the store.
    """
    def __init__(self, db_path: Optional[Union[str, Path]] = None, url: Optional[str] = None):
        if url is None:
            if db_path is None:
                raise ValueError("DatabaseManager needs a db_path or a url")
            self.db_path = Path(db_path)
            # Ensure data directory exists
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            url = f"sqlite:///{self.db_path}"
        else:
            self.db_path = None

        self.url = url
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.engine = create_engine(url, connect_args=connect_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_db(self):
        """
        Create all tables if they don't exist.
        """
        try:
            Base.metadata.create_all(bind=self.engine)
            log.info(f"Database initialized at {self.db_path or self.engine.url.render_as_string(hide_password=True)}")
        except Exception as e:
            log.error(f"Failed to initialize database: {e}")
            raise

    def get_session(self) -> Session:
        """
        Get a new database session.
        """
        return self.SessionLocal()

    def dispose(self):
        self.engine.dispose()
