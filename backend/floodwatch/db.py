import os
import time
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import OperationalError
from floodwatch.config import settings

logger = logging.getLogger(__name__)

if settings.SQLALCHEMY_DEBUG:
    log_dir = os.path.join(os.path.dirname(__file__), '..', 'logs')
    os.makedirs(log_dir, exist_ok=True)
    sql_logger = logging.getLogger("sqlalchemy.engine")
    sql_logger.addHandler(logging.FileHandler(os.path.join(log_dir, "sqlalchemy.log")))
    sql_logger.setLevel(logging.INFO)


def connect_with_retry(url, max_retries=settings.DB_MAX_RETRIES, retry_delay=settings.DB_RETRY_DELAY):
    """Create an engine and wait until the database accepts connections."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    for i in range(max_retries):
        try:
            engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
            with engine.connect():
                logger.info(f"Database connected on attempt {i+1}")
            return engine
        except OperationalError:
            logger.warning(f"Waiting for database... attempt {i+1}/{max_retries}")
            time.sleep(retry_delay)
    raise RuntimeError("Could not connect to the database.")


engine = connect_with_retry(settings.DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False)


def get_db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
