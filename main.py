import logging
import re
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Path as PathParam, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from auth import clear_token_cookie, create_access_token, set_token_cookie, verify_token
from config import settings
from database import (
    close_client,
    create_document,
    delete_result,
    get_db,
    get_documents,
    insert_result,
    parse_object_id,
    serialize,
    strip_id,
    update_result,
)
from middleware import RequestLoggingMiddleware
from schemas import BLOGS, COMMENTS, USERS, WISHLIST, CommentCreate, LoginRequest, WishlistAdd

logger = logging.getLogger(__name__)

FAVICON_PATH = Path(__file__).resolve().parent / "public" / "favicon.png"


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    # Reduce noise from third-party libraries
    for name in ("uvicorn.access", "pymongo", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if settings.database_url:
        logger.info("Using MongoDB database '%s'", settings.database_name)
    else:
        logger.warning("DATABASE_URL is not set; data routes will answer 500")
    logger.info("Server is running on port %d", settings.port)
    yield
    close_client()
    logger.info("Shutdown complete")


app = FastAPI(title="MindMosaic API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(PyMongoError)
async def handle_database_error(request: Request, exc: PyMongoError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Database error"})


# Query helpers

def build_blog_filter(category: Optional[str] = None, title: Optional[str] = None) -> Dict[str, Any]:
    """Exact match on category, case-insensitive substring match on title. Both optional."""
    query: Dict[str, Any] = {}
    if category:
        query["category"] = category
    if title:
        query["title"] = {"$regex": re.escape(title), "$options": "i"}
    return query


def word_count(text: Any) -> int:
    return len(text.split()) if isinstance(text, str) else 0


def find_user(db: Database, user_id: str) -> Dict[str, Any]:
    """User record behind a token, or an empty dict when it no longer exists."""
    return db[USERS].find_one({"_id": parse_object_id(user_id)}) or {}


def wishlisted_blog_ids(db: Database, user_id: str) -> List[Any]:
    entries = db[WISHLIST].find({"userId": user_id}, {"blogId": 1})
    return [parse_object_id(entry["blogId"]) for entry in entries]


def require_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    fields = strip_id(updates)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    return fields


@app.get("/")
def read_root():
    return {"message": "Welcome to MindMosaic API"}


@app.get("/favicon.ico", include_in_schema=False)
def favicon():
    if not FAVICON_PATH.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(FAVICON_PATH, media_type="image/png")


# ---------------------------------------------
# Auth
# ---------------------------------------------

@app.post("/api/login")
def login(payload: LoginRequest, response: Response, db: Database = Depends(get_db)):
    query = {"email": payload.email}
    if payload.username:
        query["username"] = payload.username
    user = db[USERS].find_one(query)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid username or email")

    token = create_access_token({
        "userId": str(user["_id"]),
        "username": user.get("username"),
        "email": user.get("email"),
    })
    set_token_cookie(response, token)
    logger.info("User %s logged in", user["_id"])
    return {"message": "Login successful", "token": token}


@app.post("/api/logout")
def logout(response: Response):
    clear_token_cookie(response)
    return {"message": "Logout successful"}


# ---------------------------------------------
# Users
# ---------------------------------------------

@app.get("/api/users/exists/{email}")
def user_exists(email: str, db: Database = Depends(get_db)):
    return {"exists": db[USERS].find_one({"email": email}, {"_id": 1}) is not None}


@app.get("/api/users/{email}")
def get_user(email: str, current_user: dict = Depends(verify_token), db: Database = Depends(get_db)):
    user = db[USERS].find_one({"email": email})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return serialize(user)


@app.post("/api/users", status_code=201)
def create_user(user: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    result = create_document(db, USERS, strip_id(user))
    logger.info("Created user %s", result.inserted_id)
    return insert_result(result)


@app.put("/api/users/{user_id}")
def update_user(
    user_id: str,
    updates: Dict[str, Any] = Body(...),
    current_user: dict = Depends(verify_token),
    db: Database = Depends(get_db),
):
    fields = require_updates(updates)
    fields["updatedAt"] = datetime.now(timezone.utc)
    result = db[USERS].update_one({"_id": parse_object_id(user_id)}, {"$set": fields})
    return update_result(result)


@app.delete("/api/users/{user_id}")
def delete_user(user_id: str, current_user: dict = Depends(verify_token), db: Database = Depends(get_db)):
    result = db[USERS].delete_one({"_id": parse_object_id(user_id)})
    return delete_result(result)


# ---------------------------------------------
# Blogs
# ---------------------------------------------

@app.get("/api/blogs")
def list_blogs(db: Database = Depends(get_db)):
    return get_documents(db, BLOGS)


@app.get("/api/blogs/search")
def search_blogs(category: Optional[str] = None, title: Optional[str] = None, db: Database = Depends(get_db)):
    return get_documents(db, BLOGS, build_blog_filter(category, title))


@app.get("/api/blogs/recent")
def recent_blogs(db: Database = Depends(get_db)):
    return get_documents(db, BLOGS, sort=[("publishedDate", DESCENDING)])


@app.get("/api/blogs/recent/{limit}")
def recent_blogs_limited(limit: int = PathParam(..., ge=1), db: Database = Depends(get_db)):
    return get_documents(db, BLOGS, sort=[("publishedDate", DESCENDING)], limit=limit)


@app.get("/api/blogs/top/{limit}")
def top_blogs(limit: int = PathParam(..., ge=1), db: Database = Depends(get_db)):
    # Featured blogs: the longest long descriptions by word count
    blogs = get_documents(db, BLOGS)
    blogs.sort(key=lambda blog: word_count(blog.get("longDescription")), reverse=True)
    return blogs[:limit]


@app.get("/api/blogs/{blog_id}")
def get_blog(blog_id: str, db: Database = Depends(get_db)):
    blog = db[BLOGS].find_one({"_id": parse_object_id(blog_id)})
    if not blog:
        raise HTTPException(status_code=404, detail="Blog not found")
    return serialize(blog)


@app.post("/api/blogs", status_code=201)
def create_blog(
    blog: Dict[str, Any] = Body(...),
    current_user: dict = Depends(verify_token),
    db: Database = Depends(get_db),
):
    author = find_user(db, current_user["userId"])
    doc = strip_id(blog)
    doc.update({
        "authorId": current_user["userId"],
        "authorName": author.get("name") or author.get("username") or current_user.get("username"),
        "authorEmail": author.get("email") or current_user.get("email"),
        "authorImage": author.get("image"),
    })
    doc.setdefault("publishedDate", datetime.now(timezone.utc))
    result = create_document(db, BLOGS, doc)
    logger.info("User %s created blog %s", current_user["userId"], result.inserted_id)
    return insert_result(result)


@app.put("/api/blogs/{blog_id}")
def update_blog(
    blog_id: str,
    updates: Dict[str, Any] = Body(...),
    current_user: dict = Depends(verify_token),
    db: Database = Depends(get_db),
):
    fields = require_updates(updates)
    fields["updatedAt"] = datetime.now(timezone.utc)
    result = db[BLOGS].update_one({"_id": parse_object_id(blog_id)}, {"$set": fields})
    return update_result(result)


@app.delete("/api/blogs/{blog_id}")
def delete_blog(blog_id: str, current_user: dict = Depends(verify_token), db: Database = Depends(get_db)):
    result = db[BLOGS].delete_one({"_id": parse_object_id(blog_id)})
    return delete_result(result)


# ---------------------------------------------
# Comments
# ---------------------------------------------

@app.get("/api/comments/{blog_id}")
def list_comments(blog_id: str, db: Database = Depends(get_db)):
    return get_documents(db, COMMENTS, {"blogId": blog_id}, sort=[("createdAt", DESCENDING)])


@app.post("/api/comments", status_code=201)
def create_comment(
    payload: CommentCreate,
    current_user: dict = Depends(verify_token),
    db: Database = Depends(get_db),
):
    user = find_user(db, current_user["userId"])
    doc = payload.model_dump()
    doc.update({
        "userId": current_user["userId"],
        "userName": user.get("name") or user.get("username") or current_user.get("username"),
        "userImage": user.get("image"),
    })
    result = create_document(db, COMMENTS, doc)
    return insert_result(result)


@app.put("/api/comments/{comment_id}")
def update_comment(
    comment_id: str,
    updates: Dict[str, Any] = Body(...),
    current_user: dict = Depends(verify_token),
    db: Database = Depends(get_db),
):
    fields = require_updates(updates)
    fields["updatedAt"] = datetime.now(timezone.utc)
    result = db[COMMENTS].update_one({"_id": parse_object_id(comment_id)}, {"$set": fields})
    return update_result(result)


@app.delete("/api/comments/{comment_id}")
def delete_comment(comment_id: str, current_user: dict = Depends(verify_token), db: Database = Depends(get_db)):
    result = db[COMMENTS].delete_one({"_id": parse_object_id(comment_id)})
    return delete_result(result)


# ---------------------------------------------
# Wishlist
# ---------------------------------------------

@app.get("/api/wishlist")
def list_wishlist(current_user: dict = Depends(verify_token), db: Database = Depends(get_db)):
    entries = get_documents(db, WISHLIST, {"userId": current_user["userId"]}, sort=[("createdAt", DESCENDING)])
    blog_ids = [parse_object_id(entry["blogId"]) for entry in entries]
    blogs = {blog["_id"]: blog for blog in get_documents(db, BLOGS, {"_id": {"$in": blog_ids}})}
    for entry in entries:
        entry["blog"] = blogs.get(entry["blogId"])
    return entries


@app.get("/api/wishlist/search")
def search_wishlist(
    category: Optional[str] = None,
    title: Optional[str] = None,
    current_user: dict = Depends(verify_token),
    db: Database = Depends(get_db),
):
    try:
        query = build_blog_filter(category, title)
        query["_id"] = {"$in": wishlisted_blog_ids(db, current_user["userId"])}
        return get_documents(db, BLOGS, query)
    except Exception:
        logger.exception("Wishlist search failed for user %s", current_user["userId"])
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


@app.get("/api/wishlist/check/{blog_id}")
def check_wishlist(blog_id: str, current_user: dict = Depends(verify_token), db: Database = Depends(get_db)):
    blog_id = str(parse_object_id(blog_id))
    entry = db[WISHLIST].find_one({"userId": current_user["userId"], "blogId": blog_id})
    return {"inWishlist": entry is not None}


@app.post("/api/wishlist", status_code=201)
def add_to_wishlist(payload: WishlistAdd, current_user: dict = Depends(verify_token), db: Database = Depends(get_db)):
    blog_oid = parse_object_id(payload.blogId)
    # Stored in the canonical lower-case hex form
    blog_id = str(blog_oid)
    if not db[BLOGS].find_one({"_id": blog_oid}, {"_id": 1}):
        raise HTTPException(status_code=404, detail="Blog not found")

    # Lookup then insert; two concurrent adds may both pass this check
    entry = {"userId": current_user["userId"], "blogId": blog_id}
    if db[WISHLIST].find_one(entry):
        return JSONResponse(status_code=400, content={"message": "Blog already in wishlist"})

    result = create_document(db, WISHLIST, entry)
    return insert_result(result)


@app.delete("/api/wishlist/{blog_id}")
def remove_from_wishlist(blog_id: str, current_user: dict = Depends(verify_token), db: Database = Depends(get_db)):
    blog_id = str(parse_object_id(blog_id))
    result = db[WISHLIST].delete_one({"userId": current_user["userId"], "blogId": blog_id})
    return delete_result(result)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
