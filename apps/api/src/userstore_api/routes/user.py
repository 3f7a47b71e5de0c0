"""User API routes."""

from fastapi import APIRouter, Depends, Request, Response, status
from userstore_api.handlers import UserHandlers, decode_user
from userstore_api.services import get_user_handlers
from userstore_common.models.user import User

router = APIRouter(prefix="/users", tags=["users"], redirect_slashes=False)

_NOT_EXIST = {status.HTTP_404_NOT_FOUND: {"description": "`<id> not exist`", "content": {"text/plain": {}}}}
_USER_BODY = {
    "requestBody": {
        "content": {
            "application/json": {"schema": User.model_json_schema()},
            "application/x-www-form-urlencoded": {"schema": User.model_json_schema()},
        }
    }
}


@router.post(
    "",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    openapi_extra=_USER_BODY,
)
async def save_user(request: Request, handlers: UserHandlers = Depends(get_user_handlers)) -> Response:
    user = await decode_user(request)
    result = await handlers.create(user)
    return result.to_response()


@router.get("/{user_id}", response_model=User, responses=_NOT_EXIST)
async def get_user(user_id: str, handlers: UserHandlers = Depends(get_user_handlers)) -> Response:
    result = await handlers.get(user_id)
    return result.to_response()


@router.put("/{user_id}", response_model=User, responses=_NOT_EXIST, openapi_extra=_USER_BODY)
async def update_user(
    user_id: str,
    request: Request,
    handlers: UserHandlers = Depends(get_user_handlers),
) -> Response:
    """Replace the whole stored user with the request body."""
    user = await decode_user(request, user_id)
    result = await handlers.update(user_id, user)
    return result.to_response()


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_user(user_id: str, handlers: UserHandlers = Depends(get_user_handlers)) -> Response:
    """Delete every stored user with this id. Unknown ids also return 204."""
    result = await handlers.delete(user_id)
    return result.to_response()
