import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from ..database import get_db
from ..models.post import POST_TYPES, POST_VISIBILITIES, Post, PostComment, PostLike
from ..schemas.public import comment_public, post_public
from ..services.notifications import NotificationFanout, NotificationType
from ..utils.dependencies import get_current_user, get_notifier
from ..utils.error_handlers import get_error_message
from ..utils.timeutils import utcnow
from ..utils.validation import (
    page_params,
    pagination_meta,
    validate_choice,
    validate_string_field,
    validate_string_list,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

MAX_POST_CHARS = 3000
MAX_COMMENT_CHARS = 1000


class PostCreate(BaseModel):
    content: str | None = None
    postType: str | None = None
    images: list[str] | None = None
    tags: list[str] | None = None
    visibility: str | None = None


class PostUpdate(BaseModel):
    content: str | None = None
    images: list[str] | None = None
    tags: list[str] | None = None
    visibility: str | None = None


class CommentCreate(BaseModel):
    content: str | None = None


def _posts(db: Session):
    return db.query(Post).options(
        joinedload(Post.author),
        selectinload(Post.likes),
        selectinload(Post.comments).joinedload(PostComment.user),
    )


def _get_post(db: Session, post_id: int) -> Post:
    post = _posts(db).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail=get_error_message("post_not_found"))
    return post


def _owned_post(db: Session, post_id: int, user: dict) -> Post:
    post = _posts(db).filter(Post.id == post_id, Post.author_id == int(user["sub"])).first()
    if not post:
        raise HTTPException(status_code=404, detail=get_error_message("post_not_owned"))
    return post


@router.post("/", status_code=201)
def create_post(payload: PostCreate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    if not payload.content or not payload.content.strip():
        raise HTTPException(status_code=400, detail="Content is required")

    now = utcnow()
    post = Post(
        content=validate_string_field(payload.content, "Content", max_length=MAX_POST_CHARS),
        author_id=int(user["sub"]),
        post_type=validate_choice(payload.postType, "post type", POST_TYPES, default="update"),
        images=validate_string_list(payload.images, "Images"),
        tags=validate_string_list(payload.tags, "Tags"),
        visibility=validate_choice(payload.visibility, "visibility", POST_VISIBILITIES, default="public"),
        created_at=now,
        updated_at=now,
    )
    db.add(post)
    db.commit()
    return {"message": "Post created successfully", "post": post_public(_get_post(db, post.id))}


@router.get("/feed")
def feed(page: int = 1, limit: int = 20, db: Session = Depends(get_db), user=Depends(get_current_user)):
    page, limit = page_params(page, limit, default_limit=20)
    base = db.query(Post).filter(Post.visibility == "public")
    total = base.count()
    posts = (
        _posts(db)
        .filter(Post.visibility == "public")
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"posts": [post_public(p) for p in posts], "pagination": pagination_meta(page, limit, total)}


@router.get("/user/{user_id:int}")
def user_posts(user_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    posts = _posts(db).filter(Post.author_id == user_id).order_by(Post.created_at.desc(), Post.id.desc()).all()
    return {"posts": [post_public(p) for p in posts]}


@router.get("/{post_id:int}")
def get_post(post_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    return {"post": post_public(_get_post(db, post_id))}


@router.post("/{post_id:int}/like")
def toggle_like(
    post_id: int,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    notifier: NotificationFanout = Depends(get_notifier),
):
    """Like or unlike; only a new like notifies the author."""
    user_id = int(user["sub"])
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail=get_error_message("post_not_found"))

    existing = db.query(PostLike).filter(PostLike.post_id == post_id, PostLike.user_id == user_id).first()
    if existing:
        db.delete(existing)
        liked = False
    else:
        try:
            with db.begin_nested():
                db.add(PostLike(post_id=post_id, user_id=user_id))
        except IntegrityError:
            # Liked concurrently; the like stands and nobody gets notified twice.
            logger.info("Concurrent like ignored post=%s user=%s", post_id, user_id)
            liked = True
        else:
            liked = True
            notifier.try_notify(post.author_id, user_id, NotificationType.POST_LIKED, post_id=post_id)

    db.commit()
    likes_count = db.query(PostLike).filter(PostLike.post_id == post_id).count()
    return {"message": "Post liked" if liked else "Post unliked", "likesCount": likes_count}


@router.post("/{post_id:int}/comment")
def add_comment(
    post_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    notifier: NotificationFanout = Depends(get_notifier),
):
    if not payload.content or not payload.content.strip():
        raise HTTPException(status_code=400, detail="Comment content is required")
    content = validate_string_field(payload.content, "Comment", max_length=MAX_COMMENT_CHARS)

    user_id = int(user["sub"])
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail=get_error_message("post_not_found"))

    db.add(PostComment(post_id=post_id, user_id=user_id, content=content, created_at=utcnow()))
    db.flush()
    notifier.try_notify(post.author_id, user_id, NotificationType.POST_COMMENTED, post_id=post_id)
    db.commit()

    comments = (
        db.query(PostComment)
        .options(joinedload(PostComment.user))
        .filter(PostComment.post_id == post_id)
        .order_by(PostComment.created_at.asc(), PostComment.id.asc())
        .all()
    )
    return {"message": "Comment added successfully", "comments": [comment_public(c) for c in comments]}


@router.put("/{post_id:int}")
def update_post(post_id: int, payload: PostUpdate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    post = _owned_post(db, post_id, user)

    if payload.content:
        post.content = validate_string_field(payload.content, "Content", max_length=MAX_POST_CHARS)
    if payload.images:
        post.images = validate_string_list(payload.images, "Images")
    if payload.tags:
        post.tags = validate_string_list(payload.tags, "Tags")
    if payload.visibility:
        post.visibility = validate_choice(payload.visibility, "visibility", POST_VISIBILITIES)

    db.commit()
    return {"message": "Post updated successfully", "post": post_public(_get_post(db, post_id))}


@router.delete("/{post_id:int}")
def delete_post(post_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    post = _owned_post(db, post_id, user)
    db.delete(post)
    db.commit()
    return {"message": "Post deleted successfully"}
