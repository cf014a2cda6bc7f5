"""FastAPI routes that expose the users resource."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence
from uuid import UUID

from fastapi import APIRouter, Body, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .dto import NewUserDto, ReplaceUserDto, UserDto
from .errors import MalformedRequestError, NotAcceptableError, UserNotFoundError, ValidationFailedError
from .formatters import negotiate, render
from .mapping import MappingRules
from .models import UserEntity
from .pagination import DEFAULT_PAGE_NUMBER, DEFAULT_PAGE_SIZE, PageLink, PageRequest, paginate
from .reconciler import UserReconciler, collect_violations

USERS_PREFIX = "/api/users"
ALLOWED_COLLECTION_METHODS = "POST, GET, OPTIONS"

_NOT_FOUND = "User not found"
# Starlette renamed the 422 constant; the literal avoids its deprecation warning.
HTTP_422_UNPROCESSABLE = 422

_BODY_MODELS = {"POST": NewUserDto, "PUT": ReplaceUserDto}

_ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"description": "Missing or malformed request body or identifier"},
    status.HTTP_404_NOT_FOUND: {"description": "No user with this identifier"},
    status.HTTP_406_NOT_ACCEPTABLE: {"description": "Accept header names no supported media type"},
    HTTP_422_UNPROCESSABLE: {"description": "Field validation failed"},
}


def _responses(*codes: int) -> Dict[int | str, Dict[str, Any]]:
    return {code: _ERROR_RESPONSES[code] for code in codes}


def validation_detail(errors: Mapping[str, Sequence[str]]) -> Dict[str, object]:
    return {
        "message": "One or more fields are invalid",
        "errors": {field: list(messages) for field, messages in errors.items()},
    }


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map FastAPI's own parsing failures onto the API's error shapes."""

    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = tuple(error.get("loc", ()))
        source = loc[0] if loc else "body"
        if source == "path":
            if request.method == "PUT":
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"detail": "User identifier is malformed"},
                )
            return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": _NOT_FOUND})
        if source == "body" and (len(loc) == 1 or error.get("type") == "json_invalid"):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"detail": "Request body is malformed"},
            )
        field = str(loc[-1]) if len(loc) > 1 else str(source)
        errors.setdefault(field, []).append(str(error.get("msg", "Invalid value")))

    body_model = _BODY_MODELS.get(request.method)
    if errors and body_model is not None and isinstance(exc.body, dict):
        # Run the field rules too, so one response lists every broken field.
        errors = collect_violations(exc.body, body_model, require_names=request.method == "PUT")

    return JSONResponse(
        status_code=HTTP_422_UNPROCESSABLE,
        content={"detail": validation_detail(errors)},
    )


def _negotiate(request: Request) -> str:
    try:
        return negotiate(request.headers.get("accept"))
    except NotAcceptableError as exc:
        raise HTTPException(status_code=status.HTTP_406_NOT_ACCEPTABLE, detail=str(exc)) from exc


def _page_uri(request: Request, link: Optional[PageLink]) -> Optional[str]:
    if link is None:
        return None
    url = request.url_for("list_users").include_query_params(
        pageNumber=link.page_number,
        pageSize=link.page_size,
    )
    return str(url)


def register_user_routes(app: FastAPI, reconciler: UserReconciler, mapping: MappingRules) -> None:
    """Expose the users resource on the provided FastAPI application."""

    router = APIRouter(prefix=USERS_PREFIX, tags=["users"])

    def to_payload(user: UserEntity) -> Dict[str, Any]:
        return mapping.map(user, UserDto).model_dump(by_alias=True, mode="json")

    @router.get(
        "",
        name="list_users",
        response_model=List[UserDto],
        summary="List users",
        description=(
            "Return one page of users. The page number is clamped to at least 1 and the page "
            "size to the range 1-20. Navigation data is sent in the X-Pagination header."
        ),
        responses=_responses(status.HTTP_406_NOT_ACCEPTABLE),
    )
    async def list_users(
        request: Request,
        page_number: int = Query(default=DEFAULT_PAGE_NUMBER, alias="pageNumber"),
        page_size: int = Query(default=DEFAULT_PAGE_SIZE, alias="pageSize"),
    ) -> Response:
        media_type = _negotiate(request)
        page_request = PageRequest.clamped(page_number, page_size)
        page = reconciler.repository.get_page(page_request.number, page_request.size)
        info = paginate(page_request, page.total_count)

        pagination_header = {
            "previousPageLink": _page_uri(request, info.previous_link),
            "nextPageLink": _page_uri(request, info.next_link),
            "totalCount": info.total_count,
            "pageSize": info.page_size,
            "currentPage": info.current_page,
            "totalPages": info.total_pages,
        }
        return Response(
            content=render([to_payload(user) for user in page.items], media_type, root="UserDto"),
            media_type=media_type,
            headers={"X-Pagination": json.dumps(pagination_header)},
        )

    @router.options("", summary="Describe allowed methods on the users collection")
    async def users_options() -> Response:
        return Response(status_code=status.HTTP_200_OK, headers={"Allow": ALLOWED_COLLECTION_METHODS})

    def read_user(user_id: UUID, request: Request) -> Response:
        media_type = _negotiate(request)
        try:
            user = reconciler.get(user_id)
        except UserNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)

        body = render(to_payload(user), media_type, root="UserDto")
        if request.method == "HEAD":
            return Response(
                status_code=status.HTTP_200_OK,
                media_type=media_type,
                headers={"Content-Length": str(len(body))},
            )
        return Response(content=body, media_type=media_type)

    @router.get(
        "/{user_id}",
        name="get_user",
        response_model=UserDto,
        summary="Get a user",
        description="Return the user with the given identifier.",
        responses=_responses(status.HTTP_404_NOT_FOUND, status.HTTP_406_NOT_ACCEPTABLE),
    )
    async def get_user(user_id: UUID, request: Request) -> Response:
        return read_user(user_id, request)

    @router.head(
        "/{user_id}",
        name="head_user",
        summary="Get the headers of a user response",
        responses=_responses(status.HTTP_404_NOT_FOUND, status.HTTP_406_NOT_ACCEPTABLE),
    )
    async def head_user(user_id: UUID, request: Request) -> Response:
        return read_user(user_id, request)

    @router.post(
        "",
        name="create_user",
        status_code=status.HTTP_201_CREATED,
        summary="Create a user",
        description=(
            "Create a user with a generated identifier. The login may contain only letters and "
            "digits; missing names default to John Doe. The new identifier is returned in the "
            "body and the Location header."
        ),
        responses={
            status.HTTP_201_CREATED: {"description": "Identifier of the created user"},
            **_responses(
                status.HTTP_400_BAD_REQUEST,
                status.HTTP_406_NOT_ACCEPTABLE,
                HTTP_422_UNPROCESSABLE,
            ),
        },
    )
    async def create_user(
        request: Request,
        payload: Optional[NewUserDto] = Body(default=None),
    ) -> Response:
        media_type = _negotiate(request)
        try:
            user = reconciler.create(payload)
        except MalformedRequestError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except ValidationFailedError as exc:
            raise HTTPException(
                status_code=HTTP_422_UNPROCESSABLE,
                detail=validation_detail(exc.errors),
            ) from exc

        return Response(
            content=render(str(user.id), media_type, root="guid"),
            status_code=status.HTTP_201_CREATED,
            media_type=media_type,
            headers={"Location": str(request.url_for("get_user", user_id=str(user.id)))},
        )

    @router.put(
        "/{user_id}",
        name="replace_user",
        summary="Create or replace a user",
        description=(
            "Replace login, first name and last name of the user. When no user has this "
            "identifier it is created under the supplied identifier."
        ),
        responses={
            status.HTTP_201_CREATED: {"description": "User created under the supplied identifier"},
            status.HTTP_204_NO_CONTENT: {"description": "Existing user replaced"},
            **_responses(
                status.HTTP_400_BAD_REQUEST,
                status.HTTP_406_NOT_ACCEPTABLE,
                HTTP_422_UNPROCESSABLE,
            ),
        },
    )
    async def replace_user(
        user_id: UUID,
        request: Request,
        payload: Optional[ReplaceUserDto] = Body(default=None),
    ) -> Response:
        media_type = _negotiate(request)
        try:
            result = reconciler.replace(user_id, payload)
        except MalformedRequestError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except ValidationFailedError as exc:
            raise HTTPException(
                status_code=HTTP_422_UNPROCESSABLE,
                detail=validation_detail(exc.errors),
            ) from exc

        if not result.created:
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        return Response(
            content=render(str(result.user.id), media_type, root="guid"),
            status_code=status.HTTP_201_CREATED,
            media_type=media_type,
            headers={"Location": str(request.url_for("get_user", user_id=str(result.user.id)))},
        )

    @router.patch(
        "/{user_id}",
        name="patch_user",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Partially update a user",
        description=(
            "Apply an object of field name to new value (login, firstName, lastName) to an "
            "existing user. The patched user must still pass full validation."
        ),
        responses=_responses(
            status.HTTP_400_BAD_REQUEST,
            status.HTTP_404_NOT_FOUND,
            HTTP_422_UNPROCESSABLE,
        ),
    )
    async def patch_user(
        user_id: UUID,
        changes: Optional[Dict[str, Any]] = Body(default=None),
    ) -> Response:
        try:
            reconciler.patch(user_id, changes)
        except MalformedRequestError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except UserNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
        except ValidationFailedError as exc:
            raise HTTPException(
                status_code=HTTP_422_UNPROCESSABLE,
                detail=validation_detail(exc.errors),
            ) from exc
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.delete(
        "/{user_id}",
        name="delete_user",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete a user",
        responses=_responses(status.HTTP_404_NOT_FOUND),
    )
    async def delete_user(user_id: UUID) -> Response:
        try:
            reconciler.delete(user_id)
        except UserNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    app.include_router(router)


__all__ = [
    "ALLOWED_COLLECTION_METHODS",
    "USERS_PREFIX",
    "register_user_routes",
    "request_validation_handler",
    "validation_detail",
]
