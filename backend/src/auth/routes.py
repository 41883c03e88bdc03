"""Authentication routes (session cookie login for recruiters)."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..database import get_db
from ..dependencies import get_current_user
from .models import User
from .schemas import LoginRequest, UserResponse
from .service import authenticate_user

router = APIRouter(tags=["auth"])


def _user_payload(user: User) -> dict:
    return UserResponse(
        id=str(user.id),
        email=user.email,
        full_name=user.full_name or "",
        is_active=bool(user.is_active),
    ).model_dump()


@router.post("/login")
def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
):
    user = authenticate_user(db, body.email, body.password)
    if not user:
        audit(db, request, "login_failed", f"email={body.email}")
        db.commit()
        return JSONResponse({"error": "Invalid credentials"}, status_code=401)
    request.session["user_id"] = str(user.id)
    audit(db, request, "login", f"email={body.email}", user_id=user.id)
    db.commit()
    return JSONResponse({"ok": True, "user": _user_payload(user)})


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db)):
    audit(db, request, "logout")
    db.commit()
    request.session.clear()
    return JSONResponse({"ok": True})


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return JSONResponse(_user_payload(user))
