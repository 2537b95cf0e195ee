import os
from pathlib import Path
from sqlalchemy import create_engine, text, inspect
from sqlalchemy.orm import sessionmaker, declarative_base

# Determine database path; allow override with environment variable for testing
DB_FILE = os.getenv("FINCAL_DB", None)
if DB_FILE is None:
    DB_FILE = Path(__file__).resolve().parent / "fincal.db"
else:
    DB_FILE = Path(DB_FILE)

engine = create_engine(f"sqlite:///{DB_FILE}", echo=False, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

Base = declarative_base()


def init_db() -> None:
    """Create database tables if they do not exist."""
    from . import models  # noqa: F401
    insp = inspect(engine)
    required = {"stored_documents", "user_data"}
    existing = set(insp.get_table_names())
    if not required.issubset(existing):
        Base.metadata.create_all(engine)

    SessionLocal.configure(bind=engine)

    with engine.begin() as conn:
        # Documents written before timestamps were tracked
        cols = [r[1] for r in conn.execute(text("PRAGMA table_info(stored_documents)"))]
        if "updated_at" not in cols:
            conn.execute(
                text("ALTER TABLE stored_documents ADD COLUMN updated_at DATETIME")
            )
            conn.execute(
                text(
                    "UPDATE stored_documents SET updated_at = CURRENT_TIMESTAMP WHERE updated_at IS NULL"
                )
            )

        # Early cloud documents only carried accounts and balances
        cols = [r[1] for r in conn.execute(text("PRAGMA table_info(user_data)"))]
        if "calendar_events" not in cols:
            conn.execute(
                text("ALTER TABLE user_data ADD COLUMN calendar_events TEXT")
            )
        conn.execute(
            text(
                "CREATE UNIQUE INDEX IF NOT EXISTS ix_user_data_user_id ON user_data(user_id)"
            )
        )
