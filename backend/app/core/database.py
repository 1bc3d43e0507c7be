from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings


def _get_engine_kwargs() -> dict[str, Any]:
    """Get engine configuration based on database type."""
    # In-memory SQLite must share one connection across threads (TestClient)
    if settings.is_sqlite:
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }

    kwargs: dict[str, Any] = {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }

    # Supabase pooler connections (port 6543) work in transaction mode
    # and require specific settings
    if "pooler.supabase.com" in settings.DATABASE_URL:
        kwargs.update({
            "pool_size": 5,  # Smaller pool for Supabase free tier
            "max_overflow": 10,
            "pool_timeout": 30,
            "pool_recycle": 1800,  # Recycle connections every 30 mins
        })

    return kwargs


engine = create_engine(settings.DATABASE_URL, **_get_engine_kwargs())
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
