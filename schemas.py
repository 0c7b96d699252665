"""
Database Schemas

Collections are schema-less: blogs, users and update bodies are stored as
sent. The models below only cover request bodies whose fields the routes
read directly.

Collections:
- users
- blogs
- comments
- wishlist
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

USERS = "users"
BLOGS = "blogs"
COMMENTS = "comments"
WISHLIST = "wishlist"


class LoginRequest(BaseModel):
    email: str = Field(..., description="Email of a registered user")
    username: Optional[str] = Field(None, description="Also matched when given")


class CommentCreate(BaseModel):
    """
    New comment on a blog
    Any extra fields sent by the client are stored with the comment.
    """
    model_config = ConfigDict(extra="allow")

    blogId: str = Field(..., description="Commented blog id")
    comment: str = Field(..., description="Comment text")


class WishlistAdd(BaseModel):
    blogId: str = Field(..., description="Blog to bookmark")
