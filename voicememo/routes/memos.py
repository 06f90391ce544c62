"""
Voice Memo Backend — Memo Route Handlers
==========================================

What:  CRUD over the caller's voice memos.
How:   Every handler depends on get_current_user and passes user.id to
       MemoService, which scopes each statement to that owner.

Endpoints:
    POST   /api/save_memo
    GET    /api/get_memos
    GET    /api/get_memo/{memo_id}
    PATCH  /api/update_memo/{memo_id}
    DELETE /api/delete_memo/{memo_id}
    DELETE /api/delete_all_memos
"""

from typing import List

from fastapi import APIRouter, Depends, Path, Response
from sqlalchemy.ext.asyncio import AsyncSession

from voicememo.database import get_db_session
from voicememo.dependencies import get_current_user
from voicememo.models.user import User
from voicememo.schemas.common import ErrorResponse
from voicememo.schemas.memo import (
    DeleteAllResponse,
    MemoInput,
    MemoOutput,
    MemoResponse,
    MemoUpdate,
)
from voicememo.services.memo_service import memo_service

router = APIRouter(prefix="/api", tags=["Memos"])

_NOT_FOUND = {404: {"description": "Memo not found or access denied", "model": ErrorResponse}}


@router.post(
    "/save_memo",
    response_model=MemoResponse,
    responses={
        400: {"description": "Title and duration are required", "model": ErrorResponse},
        403: {"description": "Memo id belongs to another user", "model": ErrorResponse},
    },
    summary="Create a memo, or overwrite one you own",
)
async def save_memo(
    payload: MemoInput,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MemoResponse:
    return await memo_service.save_memo(db, user.id, payload)


@router.get(
    "/get_memos",
    response_model=List[MemoOutput],
    summary="List your memos, newest first",
)
async def get_memos(
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[MemoOutput]:
    memos = await memo_service.list_memos(db, user.id)
    response.headers["X-Total-Count"] = str(len(memos))
    return memos


@router.get(
    "/get_memo/{memo_id}",
    response_model=MemoOutput,
    responses=_NOT_FOUND,
    summary="Get one memo",
)
async def get_memo(
    memo_id: str = Path(description="Memo UUID"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MemoOutput:
    return await memo_service.get_memo(db, user.id, memo_id)


@router.patch(
    "/update_memo/{memo_id}",
    response_model=MemoResponse,
    responses=_NOT_FOUND,
    summary="Update selected fields of a memo",
    description=(
        "Only fields present in the body are changed. An empty title is ignored; "
        "an empty transcript, translation or summary clears that field. "
        "tags replaces the whole list."
    ),
)
async def update_memo(
    payload: MemoUpdate,
    memo_id: str = Path(description="Memo UUID"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MemoResponse:
    return await memo_service.update_memo(db, user.id, memo_id, payload)


@router.delete(
    "/delete_memo/{memo_id}",
    response_model=MemoResponse,
    responses=_NOT_FOUND,
    summary="Delete one memo",
)
async def delete_memo(
    memo_id: str = Path(description="Memo UUID"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MemoResponse:
    return await memo_service.delete_memo(db, user.id, memo_id)


@router.delete(
    "/delete_all_memos",
    response_model=DeleteAllResponse,
    summary="Delete all of your memos",
)
async def delete_all_memos(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DeleteAllResponse:
    return await memo_service.delete_all_memos(db, user.id)
