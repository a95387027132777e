"""
Pydantic schemas for the Fritter API.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SignUpRequest(BaseModel):
    # Fields stay optional so the guards can report what is missing.
    username: Optional[str] = None
    password: Optional[str] = None
    birthday: Optional[str] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UpdateUserRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    username: str
    dateJoined: str
    birthday: str
    underage: bool
    upvotedFreets: list[str]


class FreetResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    author: str
    content: str
    dateCreated: str
    dateModified: str
    selfFlagged: bool


class RawFreetResponse(FreetResponse):
    flags: list[str]


class UpvoteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    freetId: str
    author: str
    dateCreated: str


class MessageResponse(BaseModel):
    message: str


class UserEnvelope(MessageResponse):
    user: Optional[UserResponse] = None


class FreetEnvelope(MessageResponse):
    freet: RawFreetResponse


class UpvoteEnvelope(MessageResponse):
    upvote: UpvoteResponse
