from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from scribe_database.models import Note, User

from ..dependencies import get_db
from ..logger import get_logger
from ..schemas import NoteCreate, NoteOut, NoteUpdate
from ..security import get_current_user

logger = get_logger("api.notes")

router = APIRouter(prefix="/notes", tags=["Notes"])

DEFAULT_TITLE = "Untitled Note"


def get_owned_note(db, note_id: str, user_id: str):
    """Returns the note only if user_id owns it; ownership is the sole access check."""
    return db.query(Note).filter(Note.id == note_id, Note.user_id == user_id).first()


# PUBLIC_INTERFACE
@router.post("", response_model=NoteOut, summary="Create a new note")
def create_note(note: NoteCreate, db=Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Create a new note for the authenticated user.
    Content may be empty; new documents start blank. A blank title is stored as "Untitled Note".
    """
    if note.title is None:
        raise HTTPException(status_code=400, detail="Title is required")
    note_obj = Note(
        title=note.title.strip() or DEFAULT_TITLE,
        content=note.content or "",
        user_id=current_user.id,
    )
    db.add(note_obj)
    db.commit()
    db.refresh(note_obj)
    logger.info("Created note %s for user %s", note_obj.id, current_user.id)
    return note_obj

# PUBLIC_INTERFACE
@router.get("", response_model=List[NoteOut], summary="List all user notes")
def list_notes(
    q: Optional[str] = Query(None, description="Search term for note title or content"),
    skip: int = 0,
    limit: int = 100,
    db=Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Get all notes for the authenticated user, newest first.
    Supports filtering by search term (on title or content).
    """
    query = db.query(Note).filter(Note.user_id == current_user.id)
    if q:
        search = f"%{q}%"
        query = query.filter((Note.title.ilike(search)) | (Note.content.ilike(search)))
    return query.order_by(Note.created_at.desc()).offset(skip).limit(limit).all()

# PUBLIC_INTERFACE
@router.get("/{note_id}", response_model=NoteOut, summary="Get a single note")
def get_note(note_id: str, db=Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Retrieve a single note belonging to the authenticated user.
    """
    note = get_owned_note(db, note_id, current_user.id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found.")
    return note

# PUBLIC_INTERFACE
@router.put("/{note_id}", response_model=NoteOut, summary="Save a note")
def update_note(note_id: str, note_update: NoteUpdate, db=Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Overwrite a note's title and content; this is the autosave target.

    A blank title is stored as "Untitled Note" and omitted content as an empty
    document. Concurrent saves are not reconciled: the last one wins.
    """
    note = get_owned_note(db, note_id, current_user.id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found.")
    note.title = (note_update.title or "").strip() or DEFAULT_TITLE
    note.content = note_update.content or ""
    db.commit()
    db.refresh(note)
    logger.info("Saved note %s (%d chars)", note.id, len(note.content))
    return note

# PUBLIC_INTERFACE
@router.delete("/{note_id}", summary="Delete a note")
def delete_note(note_id: str, db=Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Permanently delete a note belonging to the authenticated user.
    """
    note = get_owned_note(db, note_id, current_user.id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found.")
    db.delete(note)
    db.commit()
    logger.info("Deleted note %s", note_id)
    return {"success": True}
