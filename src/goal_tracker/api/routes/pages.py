"""Application pages."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from goal_tracker.api.dependencies import get_current_user_optional, require_user
from goal_tracker.api.pages import render_home
from goal_tracker.auth.identity import LocalUser

router = APIRouter()


class UserResponse(BaseModel):
    """Current user response."""

    id: int
    username: str
    email: str | None


@router.get("/", response_class=HTMLResponse)
async def index(
    user: LocalUser | None = Depends(get_current_user_optional),
) -> HTMLResponse:
    """Home page, open to everyone."""
    return render_home(user.username if user else None)


@router.get("/me", response_model=UserResponse)
async def me(user: LocalUser = Depends(require_user)) -> UserResponse:
    """The logged-in user's account."""
    return UserResponse(id=user.id, username=user.username, email=user.email)
