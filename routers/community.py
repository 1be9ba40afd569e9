# Community Router for Collabzz
# Posts, likes and comments on the community feed

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy import or_, and_
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User
from database.community_models import Post, PostLike, Comment, PostVisibilityDB
from schemas.community import PostCreate, PostUpdate, CommentCreate, PostBlockUpdate
from auth.roles import StaffPermission, has_permission
from auth.decorators import require_staff
from auth.dependencies import get_current_user
from services.settings_service import get_settings

router = APIRouter(prefix="/community", tags=["Community"])


def _require_feed_enabled(db: Session) -> None:
    if not get_settings(db).get("is_community_feed_enabled"):
        raise HTTPException(status_code=403, detail="The community feed is currently disabled")


def _post_to_response(post: Post, viewer: User, liked_ids=()) -> dict:
    return {
        "id": post.id,
        "user_id": post.user_id,
        "user_name": post.user_name,
        "user_avatar": post.user_avatar,
        "user_role": post.user_role,
        "text": post.text,
        "image_url": post.image_url,
        "visibility": post.visibility.value,
        "is_blocked": post.is_blocked,
        "like_count": post.like_count,
        "comment_count": post.comment_count,
        "liked_by_me": post.id in liked_ids,
        "is_mine": post.user_id == viewer.id,
        "created_at": post.created_at,
    }


def _get_post_or_404(db: Session, post_id: str) -> Post:
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def _can_moderate(user: User) -> bool:
    return user.is_staff and has_permission(user.staff_permissions, StaffPermission.COMMUNITY)


@router.get("/posts", response_model=dict)
async def list_posts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Public, unblocked posts plus the user's own posts, newest first."""
    _require_feed_enabled(db)
    query = db.query(Post).filter(
        or_(
            and_(Post.visibility == PostVisibilityDB.PUBLIC, Post.is_blocked == False),
            Post.user_id == current_user.id,
        )
    )
    total = query.count()
    posts = query.order_by(Post.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    liked_ids = {
        like.post_id for like in db.query(PostLike).filter(
            PostLike.user_id == current_user.id,
            PostLike.post_id.in_([p.id for p in posts]),
        ).all()
    }

    return {
        "posts": [_post_to_response(p, current_user, liked_ids) for p in posts],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


@router.post("/posts", status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_feed_enabled(db)
    post = Post(
        user_id=current_user.id,
        user_name=current_user.name,
        user_avatar=current_user.avatar_url,
        user_role=current_user.role.value,
        text=post_data.text,
        image_url=post_data.image_url,
        visibility=PostVisibilityDB(post_data.visibility.value),
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    return _post_to_response(post, current_user)


@router.put("/posts/{post_id}")
async def update_post(
    post_id: str,
    post_data: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    post = _get_post_or_404(db, post_id)
    if post.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="You can only edit your own posts")

    updates = post_data.model_dump(exclude_unset=True)
    if updates.get("visibility") is not None:
        updates["visibility"] = PostVisibilityDB(updates["visibility"].value)
    for field, value in updates.items():
        setattr(post, field, value)

    db.commit()
    db.refresh(post)
    return _post_to_response(post, current_user)


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    post = _get_post_or_404(db, post_id)
    if post.user_id != current_user.id and not _can_moderate(current_user):
        raise HTTPException(status_code=403, detail="Access denied")
    db.delete(post)
    db.commit()


@router.post("/posts/{post_id}/like")
async def toggle_like(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Like the post, or remove the like if already liked."""
    _require_feed_enabled(db)
    post = _get_post_or_404(db, post_id)
    existing = db.query(PostLike).filter(PostLike.post_id == post.id, PostLike.user_id == current_user.id).first()

    if existing:
        db.delete(existing)
        post.like_count = max(0, (post.like_count or 0) - 1)
        liked = False
    else:
        db.add(PostLike(post_id=post.id, user_id=current_user.id))
        post.like_count = (post.like_count or 0) + 1
        liked = True

    db.commit()
    return {"liked": liked, "like_count": post.like_count}


@router.get("/posts/{post_id}/comments")
async def list_comments(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_feed_enabled(db)
    post = _get_post_or_404(db, post_id)
    comments = db.query(Comment).filter(Comment.post_id == post.id).order_by(Comment.created_at.asc()).all()
    return [
        {"id": c.id, "user_id": c.user_id, "user_name": c.user_name, "user_avatar": c.user_avatar, "text": c.text, "created_at": c.created_at}
        for c in comments
    ]


@router.post("/posts/{post_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: str,
    comment_data: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_feed_enabled(db)
    post = _get_post_or_404(db, post_id)
    if post.is_blocked:
        raise HTTPException(status_code=400, detail="This post has been blocked")

    comment = Comment(
        post_id=post.id,
        user_id=current_user.id,
        user_name=current_user.name,
        user_avatar=current_user.avatar_url,
        text=comment_data.text,
    )
    db.add(comment)
    post.comment_count = (post.comment_count or 0) + 1
    db.commit()
    db.refresh(comment)
    return {
        "id": comment.id,
        "user_id": comment.user_id,
        "user_name": comment.user_name,
        "user_avatar": comment.user_avatar,
        "text": comment.text,
        "created_at": comment.created_at,
        "comment_count": post.comment_count,
    }


@router.put("/admin/posts/{post_id}/block")
async def block_post(
    post_id: str,
    update: PostBlockUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.COMMUNITY))
):
    post = _get_post_or_404(db, post_id)
    post.is_blocked = update.is_blocked
    db.commit()
    db.refresh(post)
    return _post_to_response(post, current_user)
