# storefront/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from storefront.utils.settings import LOCAL_CART_DATABASE_URL

#sqlite wymaga check_same_thread=False bo fastapi obsluguje requesty w threadpoolu
_connect_args = {"check_same_thread": False} if LOCAL_CART_DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(LOCAL_CART_DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
