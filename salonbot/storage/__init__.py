from salonbot.storage.database import Base, create_db_engine, init_db, make_session_factory

__all__ = ["Base", "create_db_engine", "init_db", "make_session_factory"]
