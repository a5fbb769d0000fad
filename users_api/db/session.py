# users_api/db/session.py
# Инициализация SQLAlchemy engine и фабрики сессий.
# Поддерживает как Postgres, так и SQLite (для тестов/локального использования).

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker
from users_api.core.config import settings

DATABASE_URL = settings.DATABASE_URL


def build_engine(url: str):
    """Создаёт engine с учётом особенностей sqlite."""
    engine_kwargs = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        # Для sqlite требуется connect_args; для Postgres — пустой dict
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        # In-memory база живёт, пока жив единственный коннект
        if url in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs["poolclass"] = StaticPool
    return create_engine(url, **engine_kwargs)


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
