"""
Server-rendered gallery pages.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from gallery.auth import AuthClient, CurrentUser, get_current_user
from gallery.config import get_settings
from gallery.db import DbClient
from gallery.dependencies import get_auth_client, get_db_client, get_like_store
from gallery.errors import AuthError, BackendError
from gallery.feed import load_feed
from gallery.likes import LikeStore
from gallery.templates import render_template
from gallery.views import feed_out
from gallery.votes import toggle_vote

logger = logging.getLogger(__name__)

router = APIRouter(include_in_schema=False)

LOGIN_PATH = "/login"

# Banner text for the `error` query parameter; unknown codes show nothing.
ERROR_MESSAGES = {
    "vote_failed": "Failed to vote. Please try again.",
    "invalid_vote": "Votes must be 1 or -1.",
}


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


def _gallery_url(image_id: Optional[str] = None, error: Optional[str] = None) -> str:
    params = {}
    if image_id:
        params["image"] = image_id
    if error:
        params["error"] = error
    return f"/?{urlencode(params)}" if params else "/"


@router.get("/", response_class=HTMLResponse)
def gallery_page(
    request: Request,
    image: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    current: Optional[CurrentUser] = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    likes: LikeStore = Depends(get_like_store),
):
    if not current:
        return _redirect(LOGIN_PATH)

    settings = get_settings()
    try:
        feed = load_feed(
            db.for_token(current.access_token),
            current.id,
            image_limit=settings.image_limit,
        )
    except BackendError as exc:
        logger.exception("Failed to load gallery")
        return render_template(
            request, "error.html", {"error": exc.message}, status_code=502
        )

    images = feed_out(feed, likes.liked_ids(current.id))
    selected = next((entry for entry in images if entry.id == image), None)
    return render_template(
        request,
        "gallery.html",
        {
            "user": current,
            "images": images,
            "selected": selected,
            "error": ERROR_MESSAGES.get(error) if error else None,
            "vote_mode": settings.vote_mode,
            "preview_count": settings.caption_preview_count,
        },
    )


@router.get(LOGIN_PATH, response_class=HTMLResponse)
def login_page(
    request: Request,
    current: Optional[CurrentUser] = Depends(get_current_user),
):
    if current:
        return _redirect("/")
    return render_template(request, "login.html", {"error": None, "email": ""})


@router.post(LOGIN_PATH, response_class=HTMLResponse)
def login_submit(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    auth: AuthClient = Depends(get_auth_client),
):
    try:
        session = auth.sign_in_with_password(email, password)
    except AuthError as exc:
        return render_template(
            request,
            "login.html",
            {"error": exc.message, "email": email},
            status_code=400,
        )
    except BackendError as exc:
        logger.exception("Sign-in failed")
        return render_template(
            request,
            "login.html",
            {"error": exc.message, "email": email},
            status_code=502,
        )

    response = _redirect("/")
    response.set_cookie(
        get_settings().session_cookie_name,
        session.access_token,
        httponly=True,
        samesite="lax",
    )
    return response


@router.post("/logout")
def logout_submit(
    current: Optional[CurrentUser] = Depends(get_current_user),
    auth: AuthClient = Depends(get_auth_client),
):
    if current:
        try:
            auth.sign_out(current.access_token)
        except BackendError as exc:
            logger.warning("Sign-out failed: %s", exc)
    response = _redirect(LOGIN_PATH)
    response.delete_cookie(get_settings().session_cookie_name)
    return response


@router.post("/captions/{caption_id}/vote")
def vote_submit(
    caption_id: str,
    value: int = Form(...),
    image: Optional[str] = Form(None),
    current: Optional[CurrentUser] = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not current:
        return _redirect(LOGIN_PATH)
    try:
        toggle_vote(db.for_token(current.access_token), current.id, caption_id, value)
    except ValueError:
        return _redirect(_gallery_url(image, "invalid_vote"))
    except BackendError:
        logger.exception("Vote on caption %s failed", caption_id)
        return _redirect(_gallery_url(image, "vote_failed"))
    return _redirect(_gallery_url(image))


@router.post("/captions/{caption_id}/like")
def like_submit(
    caption_id: str,
    image: Optional[str] = Form(None),
    current: Optional[CurrentUser] = Depends(get_current_user),
    likes: LikeStore = Depends(get_like_store),
):
    if not current:
        return _redirect(LOGIN_PATH)
    likes.toggle(current.id, caption_id)
    return _redirect(_gallery_url(image))
