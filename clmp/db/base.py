import uuid
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Note: Models are registered through clmp.db.models
# All models must import Base from this module


def generate_uuid() -> str:
    """Primary key default for tables keyed by text UUIDs."""
    return str(uuid.uuid4())
