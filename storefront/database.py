from sqlmodel import SQLModel, create_engine, Session
from storefront.config import settings

engine = create_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
    pool_recycle=1800,
)


def create_db_and_tables():
    from storefront.models import user, book, order, order_event, notifications  # noqa: F401
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
