# db/init_db.py
from sqlalchemy.engine import Engine

from db.models import Base


def init_db(engine: Engine) -> None:
    """Create the chats, voice and posts tables if they are missing."""
    Base.metadata.create_all(bind=engine)
