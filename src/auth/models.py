from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy.orm import declarative_base

# separate metadata from the links tables; database.create_tables creates both
Base = declarative_base()


class User(SQLAlchemyBaseUserTableUUID, Base):
    """Account owning short links; ``is_superuser`` accounts may manage any link."""
