"""FastAPI dependencies for the Julienned API.

Provides:
- Caller identity from the X-User-Id header
- Recipe store and extraction service bound to the request's DB session
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .db import get_db
from .services.extraction import ExtractionService
from .services.recipe_store import RecipeStore


def get_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """Resolve the calling user.

    Authentication happens upstream; the gateway forwards an opaque user id.

    Raises:
        HTTPException 400 if the header is missing or blank
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="Missing X-User-Id header")
    if len(user_id) > 64:
        raise HTTPException(status_code=400, detail="X-User-Id is too long")
    return user_id


def get_recipe_store(db: Session = Depends(get_db)) -> RecipeStore:
    return RecipeStore(db)


def get_extraction_service(db: Session = Depends(get_db)) -> ExtractionService:
    return ExtractionService(db)
