from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from postboard.database import get_db
from postboard.dependencies import get_current_user_id
from postboard.schemas import CommentCreate, DeleteResponse, LikeResponse, PostCreate, PostResponse
from postboard.services import post_service

# PostError subclasses raised below are rendered by the handler in main.py.
router = APIRouter(prefix="/api/posts", tags=["posts"])

@router.get("/test")
async def ping():
    return {"msg": "Posts Work"}

@router.get("", response_model=list[PostResponse])
async def list_posts(db: AsyncSession = Depends(get_db)):
    return await post_service.list_posts(db)

@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: str, db: AsyncSession = Depends(get_db)):
    return await post_service.get_post(db, post_id)

@router.post("", status_code=201, response_model=PostResponse)
async def create_post(
    data: PostCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.create_post(db, user_id, data)

@router.delete("/{post_id}", response_model=DeleteResponse)
async def delete_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await post_service.delete_post(db, post_id, user_id)
    return DeleteResponse(success=True)

@router.put("/like/{post_id}", response_model=list[LikeResponse])
async def like_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.like_post(db, post_id, user_id)

@router.put("/unlike/{post_id}", response_model=list[LikeResponse])
async def unlike_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.unlike_post(db, post_id, user_id)

@router.post("/comment/{post_id}", response_model=PostResponse)
async def add_comment(
    post_id: str,
    data: CommentCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.add_comment(db, post_id, user_id, data)

@router.delete(
    "/comment/{post_id}/{comment_id}",
    response_model=PostResponse,
    dependencies=[Depends(get_current_user_id)],
)
async def remove_comment(post_id: str, comment_id: str, db: AsyncSession = Depends(get_db)):
    return await post_service.remove_comment(db, post_id, comment_id)
