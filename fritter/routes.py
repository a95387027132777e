"""
HTTP routes for the Fritter API.

Every handler receives the signed-in user explicitly (the "viewer") and runs
its ordered guard list before touching the store.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request

from fritter import formatters, freets, upvotes, users
from fritter import guards as g
from fritter.db import DbClient, DuplicateUpvoteError, DuplicateUsernameError, UserRecord
from fritter.dependencies import SESSION_USER_KEY, get_db_client, get_viewer
from fritter.schemas import (
    FreetEnvelope,
    FreetResponse,
    LoginRequest,
    MessageResponse,
    SignUpRequest,
    UpdateUserRequest,
    UpvoteEnvelope,
    UpvoteResponse,
    UserEnvelope,
)

logger = logging.getLogger(__name__)

users_router = APIRouter(prefix="/users", tags=["users"])
freets_router = APIRouter(prefix="/freets", tags=["freets"])
upvotes_router = APIRouter(prefix="/upvotes", tags=["upvotes"])


# Users and sessions


@users_router.get("/session", response_model=UserEnvelope)
def get_signed_in_user(viewer: Optional[UserRecord] = Depends(get_viewer)):
    message = "Session found." if viewer else "No user is signed in."
    return UserEnvelope(message=message, user=formatters.user_response(viewer))


@users_router.post("/session", response_model=UserEnvelope, status_code=201)
def sign_in(
    payload: LoginRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    ctx = g.GuardContext(db=db, viewer=viewer, params=payload.model_dump())
    g.run_guards([g.is_user_logged_out, g.require_fields("username", "password")], ctx)

    user = users.find_by_credentials(db, payload.username, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid user login credentials provided.")
    request.session[SESSION_USER_KEY] = user.user_id
    return UserEnvelope(
        message="You have logged in successfully.",
        user=formatters.user_response(user),
    )


@users_router.delete("/session", response_model=MessageResponse)
def sign_out(
    request: Request,
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    g.run_guards([g.is_user_logged_in], g.GuardContext(db=db, viewer=viewer))
    request.session.clear()
    return MessageResponse(message="You have been logged out successfully.")


@users_router.post("", response_model=UserEnvelope, status_code=201)
def create_user(
    payload: SignUpRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    ctx = g.GuardContext(db=db, viewer=viewer, params=payload.model_dump())
    g.run_guards(
        [
            g.is_user_logged_out,
            g.require_fields("username", "password", "birthday"),
            g.is_valid_username,
            g.is_valid_password,
            g.is_username_not_taken,
            g.is_valid_birthday,
        ],
        ctx,
    )

    try:
        user = users.create_user(
            db, payload.username, payload.password, date.fromisoformat(payload.birthday)
        )
    except DuplicateUsernameError as exc:
        logger.warning("Concurrent duplicate signup rejected: %s", exc)
        raise HTTPException(
            status_code=409, detail="An account with this username already exists."
        ) from exc
    request.session[SESSION_USER_KEY] = user.user_id
    return UserEnvelope(
        message=f"Your account was created successfully. You have been logged in as {user.username}",
        user=formatters.user_response(user),
    )


@users_router.patch("", response_model=UserEnvelope)
def update_user(
    payload: UpdateUserRequest,
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    ctx = g.GuardContext(db=db, viewer=viewer, params=payload.model_dump())
    g.run_guards(
        [
            g.is_user_logged_in,
            g.is_valid_username,
            g.is_valid_password,
            g.is_username_not_taken,
        ],
        ctx,
    )

    try:
        user = users.update_user(
            db, viewer, username=payload.username, password=payload.password
        )
    except DuplicateUsernameError as exc:
        logger.warning("Concurrent username change rejected: %s", exc)
        raise HTTPException(
            status_code=409, detail="An account with this username already exists."
        ) from exc
    return UserEnvelope(
        message="Your profile was updated successfully.",
        user=formatters.user_response(user),
    )


@users_router.delete("", response_model=MessageResponse)
def delete_user(
    request: Request,
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    g.run_guards([g.is_user_logged_in], g.GuardContext(db=db, viewer=viewer))
    users.delete_user(db, viewer)
    request.session.clear()
    return MessageResponse(message="Your account has been deleted successfully.")


# Freets


@freets_router.get("", response_model=list[FreetResponse])
def list_freets(
    author: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    if author is None:
        records = freets.list_visible_freets(db, viewer)
    else:
        ctx = g.GuardContext(db=db, viewer=viewer, params={"author": author})
        g.run_guards([g.is_author_exists], ctx)
        records = freets.list_freets_by_author(db, author)
    return [formatters.freet_response(db, freet) for freet in records]


@freets_router.get("/{freet_id}", response_model=FreetEnvelope)
def get_freet(
    freet_id: str,
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    ctx = g.GuardContext(db=db, viewer=viewer, params={"freetId": freet_id})
    g.run_guards([g.is_freet_exists, g.is_flagged_freet_viewable], ctx)

    freet = db.get_freet(freet_id)
    if freet.self_flagged:
        message = "Success. Here is the flagged Freet."
    else:
        message = "Freet is not flagged, but here it is still for viewing!"
    return FreetEnvelope(
        message=message, freet=formatters.raw_freet_response(db, freet)
    )


@freets_router.post("", response_model=FreetEnvelope, status_code=201)
def create_freet(
    body: dict[str, Any] = Body(...),
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    ctx = g.GuardContext(db=db, viewer=viewer, params=body)
    g.run_guards([g.is_user_logged_in, g.is_valid_freet_content], ctx)

    freet = freets.create_freet(db, viewer, body["content"], freets.collect_flags(body))
    return FreetEnvelope(
        message="Your freet was created successfully.",
        freet=formatters.raw_freet_response(db, freet),
    )


@freets_router.delete("/{freet_id}", response_model=MessageResponse)
def delete_freet(
    freet_id: str,
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    ctx = g.GuardContext(db=db, viewer=viewer, params={"freetId": freet_id})
    g.run_guards(
        [g.is_user_logged_in, g.is_freet_exists, g.is_valid_freet_modifier], ctx
    )
    freets.delete_freet(db, freet_id)
    return MessageResponse(message="Your freet was deleted successfully.")


# Upvotes


@upvotes_router.get("", response_model=list[UpvoteResponse])
def list_upvotes(
    author: Optional[str] = Query(None),
    freet_id: Optional[str] = Query(None, alias="freetId"),
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    ctx = g.GuardContext(
        db=db, viewer=viewer, params={"author": author, "freetId": freet_id}
    )
    checks = []
    if author is not None:
        checks.append(g.is_author_exists)
    if freet_id is not None:
        checks.append(g.is_freet_exists)
    g.run_guards(checks, ctx)

    records = upvotes.list_upvotes(db, author_username=author, freet_id=freet_id)
    return [formatters.upvote_response(db, upvote) for upvote in records]


@upvotes_router.post("/{freet_id}", response_model=UpvoteEnvelope, status_code=201)
def create_upvote(
    freet_id: str,
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    ctx = g.GuardContext(db=db, viewer=viewer, params={"freetId": freet_id})
    g.run_guards(
        [g.is_user_logged_in, g.is_freet_exists, g.is_freet_not_upvoted], ctx
    )

    try:
        upvote = upvotes.add_upvote(db, viewer, freet_id)
    except DuplicateUpvoteError as exc:
        logger.warning("Concurrent duplicate upvote rejected: %s", exc)
        raise HTTPException(
            status_code=409, detail="User has already upvoted this Freet."
        ) from exc
    return UpvoteEnvelope(
        message="You have upvoted this freet successfully.",
        upvote=formatters.upvote_response(db, upvote),
    )


@upvotes_router.delete("/{upvote_id}", response_model=MessageResponse)
def delete_upvote(
    upvote_id: str,
    db: DbClient = Depends(get_db_client),
    viewer: Optional[UserRecord] = Depends(get_viewer),
):
    ctx = g.GuardContext(db=db, viewer=viewer, params={"upvoteId": upvote_id})
    g.run_guards(
        [g.is_user_logged_in, g.is_upvote_exists, g.is_valid_upvote_modifier], ctx
    )
    upvotes.remove_upvote(db, db.get_upvote(upvote_id))
    return MessageResponse(message="Your upvote was deleted successfully.")


router = APIRouter()
router.include_router(users_router)
router.include_router(freets_router)
router.include_router(upvotes_router)
