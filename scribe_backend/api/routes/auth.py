from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm

from scribe_database.models import User

from ..dependencies import get_db
from ..logger import get_logger
from ..schemas import Token, UserCreate, UserOut
from ..security import (
    authenticate_user,
    create_access_token,
    get_current_user,
    get_password_hash,
    get_user_by_email,
    get_user_by_username,
)

logger = get_logger("api.auth")

router = APIRouter(prefix="/auth", tags=["Authentication"])


# PUBLIC_INTERFACE
@router.post("/register", response_model=UserOut, summary="Register a new user")
def register(user: UserCreate, db=Depends(get_db)):
    """
    Register a new user.
    Returns the newly created user record (excluding password).
    """
    if get_user_by_username(db, user.username):
        raise HTTPException(status_code=409, detail="Username already taken.")
    if get_user_by_email(db, user.email):
        raise HTTPException(status_code=409, detail="Email already in use.")
    user_obj = User(
        username=user.username,
        email=user.email,
        hashed_password=get_password_hash(user.password)
    )
    db.add(user_obj)
    db.commit()
    db.refresh(user_obj)
    logger.info("Registered user %s", user_obj.id)
    return user_obj

# PUBLIC_INTERFACE
@router.post("/login", response_model=Token, summary="Login and get JWT token")
def login(form_data: OAuth2PasswordRequestForm = Depends(), db=Depends(get_db)):
    """
    User login.
    Returns JWT access token on success.
    Use 'username' field for either username or email.
    """
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    access_token = create_access_token(data={"sub": user.id})
    return {"access_token": access_token, "token_type": "bearer"}

# PUBLIC_INTERFACE
@router.get("/me", response_model=UserOut, summary="Get current user profile")
def get_profile(current_user: User = Depends(get_current_user)):
    """
    Get details about the current authed user.
    """
    return current_user
