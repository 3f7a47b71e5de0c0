"""Request handlers mapping decoded requests to repository calls and responses.

Each handler takes already-decoded input, makes exactly one repository
call and returns a ``HandlerResult``. Repository errors are not caught
here except ``UserNotFoundError`` on read, which is part of the Get
contract; everything else propagates to the application's exception
handlers.
"""

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from pydantic_core import from_json
from starlette.datastructures import UploadFile
from starlette.formparsers import MultiPartException
from userstore_common.errors import DecodeError, UserNotFoundError
from userstore_common.models.user import User
from userstore_common.services.user_repository import UserRepository

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
FORM_MEDIA_TYPES = frozenset({"application/x-www-form-urlencoded", "multipart/form-data"})


class UnsupportedMediaTypeError(DecodeError):
    """Request body has a content type that cannot be decoded into a User."""

    http_status = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE


@dataclass(frozen=True)
class HandlerResult:
    """Outcome of a handler: status code plus a User or a plain-text message."""

    status_code: int
    body: User | str

    def to_response(self) -> Response:
        if self.status_code == status.HTTP_204_NO_CONTENT:
            # HTTP does not allow a payload on 204
            return Response(status_code=self.status_code)
        if isinstance(self.body, User):
            return JSONResponse(status_code=self.status_code, content=self.body.model_dump())
        return PlainTextResponse(self.body, status_code=self.status_code)


def _not_exist(user_id: str) -> str:
    return f"{user_id} not exist"


def _validate(fields: dict[str, Any]) -> User:
    try:
        return User.model_validate(fields)
    except ValidationError as e:
        errors = "; ".join(f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in e.errors())
        raise DecodeError(f"Malformed user payload: {errors}") from e


async def decode_user(request: Request, user_id: str | None = None) -> User:
    """Decode a User from the request.

    Fields are bound in layers, each overriding the one before: the path
    ``user_id``, then ``id``/``name``/``email`` query parameters, then the
    body. JSON is assumed when no content type is given; form bodies are
    bound field by field. A JSON ``null`` leaves the field as bound so far.

    Raises:
        DecodeError: Body is not valid JSON, not an object, or has a field of the wrong type
        UnsupportedMediaTypeError: Body uses a content type other than JSON or form data
    """
    fields: dict[str, Any] = {}
    if user_id is not None:
        fields["id"] = user_id
    fields.update((key, value) for key, value in request.query_params.items() if key in User.model_fields)

    content_type = request.headers.get("content-type", "")
    media_type = content_type.split(";", 1)[0].strip().lower()

    if media_type in FORM_MEDIA_TYPES:
        try:
            form = await request.form()
        except MultiPartException as e:
            raise DecodeError(f"Malformed form body: {e.message}") from e
        for key, value in form.items():
            if isinstance(value, UploadFile):
                raise DecodeError(f"Field '{key}' must be text, not a file")
            fields[key] = value
        return _validate(fields)

    body = await request.body()
    if not body.strip():
        return _validate(fields)

    if media_type and media_type != JSON_MEDIA_TYPE:
        raise UnsupportedMediaTypeError(f"Unsupported media type: {media_type}")

    try:
        payload = from_json(body)
    except ValueError as e:
        raise DecodeError(f"Malformed user payload: {e}") from e
    if not isinstance(payload, dict):
        raise DecodeError("Malformed user payload: body must be a JSON object")

    fields.update((key, value) for key, value in payload.items() if value is not None)
    return _validate(fields)


class UserHandlers:
    """Create/get/update/delete handlers over an injected repository."""

    def __init__(self, repository: UserRepository) -> None:
        self.repository = repository

    async def create(self, user: User) -> HandlerResult:
        document_id = await self.repository.insert(user)
        logger.info("Inserted a single document: %s", document_id)
        return HandlerResult(status.HTTP_201_CREATED, user)

    async def get(self, user_id: str) -> HandlerResult:
        try:
            user = await self.repository.find_by_id(user_id)
        except UserNotFoundError:
            logger.info("User %s not found", user_id)
            return HandlerResult(status.HTTP_404_NOT_FOUND, _not_exist(user_id))
        return HandlerResult(status.HTTP_200_OK, user)

    async def update(self, user_id: str, user: User) -> HandlerResult:
        matched = await self.repository.replace_by_id(user_id, user)
        if matched == 0:
            logger.info("User %s not found for update", user_id)
            return HandlerResult(status.HTTP_404_NOT_FOUND, _not_exist(user_id))
        logger.info("Updated user %s", user_id)
        return HandlerResult(status.HTTP_200_OK, user)

    async def delete(self, user_id: str) -> HandlerResult:
        # Deleting an unknown id is still a success
        deleted = await self.repository.delete_by_id(user_id)
        logger.info("%s is deleted (%d document(s))", user_id, deleted)
        return HandlerResult(status.HTTP_204_NO_CONTENT, f"{user_id} is deleted")
