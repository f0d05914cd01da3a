from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from reparto.config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def build_engine(url: str = SQLALCHEMY_DATABASE_URL, echo: bool = settings.SQL_ECHO):
    kwargs = {"echo": echo}
    if url.startswith("sqlite"):
        # connect_args={"check_same_thread": False} es necesario solo para SQLite
        kwargs["connect_args"] = {"check_same_thread": False}
        # En memoria: una sola conexión compartida, si no cada sesión ve una BD vacía
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ESTA es la Base que todos los modelos deben usar
Base = declarative_base()


# Dependencia para obtener la DB en los endpoints
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Dependencia para tareas en segundo plano (abren su propia sesión)
def get_session_factory():
    return SessionLocal
