from sqlmodel import SQLModel, create_engine, Session

from config import get_settings

DATABASE_URL = get_settings().database_url

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def init_db():
    import models  # noqa: F401  registers the tables

    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
