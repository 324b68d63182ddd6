"""
JSON routes for the gallery API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from gallery.auth import AuthClient, CurrentUser, require_user
from gallery.config import get_settings
from gallery.db import DbClient
from gallery.dependencies import get_auth_client, get_db_client, get_like_store
from gallery.errors import AuthError, BackendError
from gallery.feed import load_feed
from gallery.likes import LikeStore
from gallery.schemas import (
    FeedResponse,
    HealthResponse,
    ImageOut,
    LikeResponse,
    LoginRequest,
    LogoutResponse,
    SessionResponse,
    UserResponse,
    VoteRequest,
    VoteResponse,
)
from gallery.views import feed_out, image_out
from gallery.votes import caption_score, toggle_vote

logger = logging.getLogger(__name__)

router = APIRouter()


def get_user_db(
    current: CurrentUser = Depends(require_user),
    db: DbClient = Depends(get_db_client),
) -> DbClient:
    return db.for_token(current.access_token)


def _bad_gateway(exc: BackendError) -> HTTPException:
    return HTTPException(status_code=502, detail=exc.message)


@router.get("/healthz", response_model=HealthResponse)
def healthz():
    return HealthResponse(status="ok")


@router.post("/auth/login", response_model=SessionResponse)
def login(
    payload: LoginRequest,
    response: Response,
    auth: AuthClient = Depends(get_auth_client),
):
    try:
        session = auth.sign_in_with_password(payload.email, payload.password)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=exc.message)
    except BackendError as exc:
        logger.exception("Sign-in failed")
        raise _bad_gateway(exc)
    response.set_cookie(
        get_settings().session_cookie_name,
        session.access_token,
        httponly=True,
        samesite="lax",
    )
    return SessionResponse(
        access_token=session.access_token,
        user=UserResponse(id=session.user.id, email=session.user.email),
    )


@router.post("/auth/logout", response_model=LogoutResponse)
def logout(
    response: Response,
    current: CurrentUser = Depends(require_user),
    auth: AuthClient = Depends(get_auth_client),
):
    try:
        auth.sign_out(current.access_token)
    except BackendError as exc:
        logger.warning("Sign-out failed: %s", exc)
    response.delete_cookie(get_settings().session_cookie_name)
    return LogoutResponse(status="ok")


@router.get("/me", response_model=UserResponse)
def me(current: CurrentUser = Depends(require_user)):
    return UserResponse(id=current.id, email=current.email)


@router.get("/feed", response_model=FeedResponse)
def get_feed(
    current: CurrentUser = Depends(require_user),
    db: DbClient = Depends(get_user_db),
    likes: LikeStore = Depends(get_like_store),
):
    settings = get_settings()
    try:
        feed = load_feed(db, current.id, image_limit=settings.image_limit)
    except BackendError as exc:
        logger.exception("Failed to load feed")
        raise _bad_gateway(exc)
    return FeedResponse(
        vote_mode=settings.vote_mode,
        images=feed_out(feed, likes.liked_ids(current.id)),
    )


@router.get("/images/{image_id}", response_model=ImageOut)
def get_image(
    image_id: str,
    current: CurrentUser = Depends(require_user),
    db: DbClient = Depends(get_user_db),
    likes: LikeStore = Depends(get_like_store),
):
    try:
        feed = load_feed(db, current.id, image_limit=get_settings().image_limit)
    except BackendError as exc:
        logger.exception("Failed to load feed")
        raise _bad_gateway(exc)
    entry = feed.find(image_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Image not found")
    return image_out(entry, feed, likes.liked_ids(current.id))


@router.post("/captions/{caption_id}/vote", response_model=VoteResponse)
def vote_caption(
    caption_id: str,
    payload: VoteRequest,
    current: CurrentUser = Depends(require_user),
    db: DbClient = Depends(get_user_db),
):
    try:
        outcome = toggle_vote(db, current.id, caption_id, payload.value)
        score = caption_score(db, caption_id)
    except BackendError as exc:
        logger.exception("Vote on caption %s failed", caption_id)
        raise _bad_gateway(exc)
    return VoteResponse(
        caption_id=caption_id,
        action=outcome.action.value,
        my_vote=outcome.my_vote,
        score=score,
    )


@router.post("/captions/{caption_id}/like", response_model=LikeResponse)
def like_caption(
    caption_id: str,
    current: CurrentUser = Depends(require_user),
    likes: LikeStore = Depends(get_like_store),
):
    liked = likes.toggle(current.id, caption_id)
    return LikeResponse(caption_id=caption_id, liked=liked)
