from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import get_db
from conduit.dependencies import require_viewer_id
from conduit.schemas import LoginUserRequest, NewUserRequest, UpdateUserRequest, UserResponse
from conduit.services import user_service

router = APIRouter(prefix="/api", tags=["users"])


@router.post("/users", status_code=201, response_model=UserResponse)
async def register(payload: NewUserRequest, db: AsyncSession = Depends(get_db)):
    return {"user": await user_service.register(db, payload.user)}


@router.post("/users/login", response_model=UserResponse)
async def login(payload: LoginUserRequest, db: AsyncSession = Depends(get_db)):
    return {"user": await user_service.login(db, payload.user)}


@router.get("/user", response_model=UserResponse)
async def get_current_user(
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return {"user": await user_service.get_current_user(db, viewer_id)}


@router.put("/user", response_model=UserResponse)
async def update_current_user(
    payload: UpdateUserRequest,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return {"user": await user_service.update_current_user(db, viewer_id, payload.user)}
