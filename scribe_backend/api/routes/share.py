import uuid

from fastapi import APIRouter, Depends, HTTPException, Request

from scribe_database.models import Note, User

from ..config import get_settings
from ..dependencies import get_db
from ..logger import get_logger
from ..schemas import SharedNoteOut, ShareRequest
from ..security import get_current_user

logger = get_logger("api.share")

router = APIRouter(tags=["Sharing"])


def find_note_for_sharing(db, note_id, user_id, require_ownership):
    query = db.query(Note).filter(Note.id == note_id)
    if require_ownership:
        query = query.filter(Note.user_id == user_id)
    else:
        logger.warning(
            "SHARE_REQUIRE_OWNERSHIP is off: user %s may toggle sharing on note %s without owning it",
            user_id, note_id,
        )
    return query.first()


def share_base_url(request: Request, settings):
    return settings.app_url or str(request.base_url).rstrip("/")


# PUBLIC_INTERFACE
@router.post("/share", summary="Enable public sharing for a note")
def enable_share(
    body: ShareRequest,
    request: Request,
    db=Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings=Depends(get_settings),
):
    """
    Mint a fresh share token for the note and make it publicly readable.
    Sharing an already shared note replaces its token.
    """
    note = find_note_for_sharing(db, body.note_id, current_user.id, settings.share_require_ownership)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    share_id = str(uuid.uuid4())
    note.share_id = share_id
    note.is_public = True
    db.commit()
    logger.info("Note %s shared", note.id)
    return {
        "shareId": share_id,
        "shareUrl": f"{share_base_url(request, settings)}/shared/{share_id}",
    }

# PUBLIC_INTERFACE
@router.delete("/share", summary="Disable public sharing for a note")
def disable_share(
    body: ShareRequest,
    db=Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings=Depends(get_settings),
):
    """
    Clear the share token. Links using the old token stop working immediately.
    """
    note = find_note_for_sharing(db, body.note_id, current_user.id, settings.share_require_ownership)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    note.share_id = None
    note.is_public = False
    db.commit()
    logger.info("Note %s unshared", note.id)
    return {"success": True}

# PUBLIC_INTERFACE
@router.get("/shared/{share_id}", response_model=SharedNoteOut, summary="Read a shared note")
def read_shared_note(share_id: str, db=Depends(get_db)):
    """
    Public read path. The token is the capability, so no user is checked,
    but the note must still be marked public.
    """
    note = db.query(Note).filter(Note.share_id == share_id).first()
    if not note or not note.is_public:
        raise HTTPException(status_code=404, detail="Shared note not found")
    return note
