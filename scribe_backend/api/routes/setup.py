from fastapi import APIRouter, Depends

from scribe_database.init_db import ensure_schema
from scribe_database.models import User

from ..dependencies import get_db
from ..logger import get_logger
from ..security import get_current_user

logger = get_logger("api.setup")

router = APIRouter(prefix="/setup", tags=["Setup"])


# PUBLIC_INTERFACE
@router.api_route("/fix-schema", methods=["GET", "POST"], summary="Create or repair the database schema")
def fix_schema(db=Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Create missing tables and add columns missing from legacy notes tables.
    Safe to run repeatedly.
    """
    db.commit()
    changes = ensure_schema(db.get_bind())
    logger.info("Schema check requested by %s: %d change(s)", current_user.id, len(changes))
    return {"message": "Database schema updated successfully", "changes": changes}
