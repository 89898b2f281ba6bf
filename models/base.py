from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class RunStatus(str, enum.Enum):
    """Outcome recorded for each run log row"""
    OK = "ok"
    ERROR = "error"
