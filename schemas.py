"""
Database Schemas for the Alphaingen community

Each Pydantic model describes the document stored in a MongoDB collection.
The createdAt stamp and _id are added when the document is inserted.
"""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional

DEFAULT_TOPIC = "General"
DEFAULT_AUTHOR = "Anonymous"
DEFAULT_GUIDELINE_IMAGE = "https://via.placeholder.com/600x400?text=Guideline"


def is_blank(value: Optional[str]) -> bool:
    """Required text fields must contain something other than whitespace"""
    return not value or not value.strip()


class User(BaseModel):
    """
    Registered members
    Collection: "signin"
    """
    username: str = Field(..., description="Display name")
    email: str = Field(..., min_length=1, description="Unique login email, case-sensitive as stored")
    password: str = Field(..., description="bcrypt hash of the password")


class Reply(BaseModel):
    """
    Replies embedded in a question, oldest first
    """
    text: str = Field(..., min_length=1, description="Reply text")
    author: str = Field(DEFAULT_AUTHOR, description="Free-text display name")
    createdAt: datetime = Field(..., description="Server-assigned time of the reply")


class Question(BaseModel):
    """
    Questions asked by the community
    Collection: "questions"
    """
    title: str = Field(..., min_length=1, description="Question title")
    content: str = Field(..., min_length=1, description="Question body")
    topic: str = Field(DEFAULT_TOPIC, description="Coding topic the question belongs to")
    author: str = Field(DEFAULT_AUTHOR, description="Free-text display name, not a user reference")
    tags: List[str] = Field(default_factory=list, description="Ordered tags")
    replies: List[Reply] = Field(default_factory=list, description="Append-only reply thread")


class Guideline(BaseModel):
    """
    Guideline posts published by moderators
    Collection: "guidelines"
    """
    title: str = Field(..., min_length=1, description="Guideline title")
    content: str = Field(..., min_length=1, description="Guideline body")
    image: str = Field(DEFAULT_GUIDELINE_IMAGE, description="Inline-encoded image or URL")
    likeCount: int = Field(0, ge=0, description="Always equal to len(likedBy)")
    likedBy: List[str] = Field(default_factory=list, description="Emails that liked this post, each once")
