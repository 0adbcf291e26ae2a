"""User Endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from trackmoji.api.dependencies import get_user_directory
from trackmoji.api.responses import success
from trackmoji.models.ledger import CreateUserRequest
from trackmoji.orchestrator import UserDirectory


router = APIRouter(prefix="/users", tags=["users"])


@router.post("")
async def create_user(
    body: Optional[CreateUserRequest] = None,
    directory: UserDirectory = Depends(get_user_directory),
):
    body = body or CreateUserRequest()
    created = await directory.create_user(body.user_phone, body.name)
    return success(created, status_code=201)


@router.get("/search")
async def search_user(
    user_phone: Optional[str] = Query(default=None, alias="userPhone"),
    directory: UserDirectory = Depends(get_user_directory),
):
    return success(await directory.find_user(user_phone))
