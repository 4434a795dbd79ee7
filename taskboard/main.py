import logging
import uuid
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Any, Iterator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .access import get_current_user
from .aggregation import board_out, card_out, get_board_view, list_out
from .config import VERSION, Settings, get_settings
from .db import init_db, make_engine, make_session_factory
from .errors import TaskboardError
from .ordering import OrderingEngine
from .schemas import (
    BoardCreate,
    BoardOut,
    BoardUpdate,
    BoardView,
    CardCreate,
    CardMove,
    CardOut,
    CardUpdate,
    ErrorBody,
    ErrorEnvelope,
    Health,
    ListCreate,
    ListMove,
    ListOut,
    ListUpdate,
    MemberIn,
    Message,
    Version,
)
from .storage import Storage

logger = logging.getLogger(__name__)


# === Helpers ===


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    body = ErrorEnvelope(
        error=ErrorBody(
            code=code,
            message=message,
            details=details or {},
            requestId=str(uuid.uuid4()),
        )
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def http_error_code(exc: StarletteHTTPException) -> str:
    """Machine code for a framework HTTP error, e.g. ``not_found``.

    Details raised as identifiers (``invalid_token``) are already codes.
    """
    if isinstance(exc.detail, str) and exc.detail.isidentifier():
        return exc.detail
    try:
        phrase = HTTPStatus(exc.status_code).phrase
    except ValueError:
        return "error"
    return phrase.lower().replace(" ", "_").replace("-", "_")


def get_storage(request: Request) -> Iterator[Storage]:
    session = request.app.state.session_factory()
    try:
        yield Storage(session)
    finally:
        session.close()


def get_ordering(storage: Storage = Depends(get_storage)) -> OrderingEngine:
    return OrderingEngine(storage)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    engine = make_engine(settings.database_url, echo=settings.sql_echo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(engine)
        yield
        engine.dispose()

    app = FastAPI(title="Taskboard API", version=VERSION, lifespan=lifespan)
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)

    @app.exception_handler(TaskboardError)
    async def taskboard_error_handler(request: Request, exc: TaskboardError) -> JSONResponse:
        return error_response(exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("Rejected request to %s: %s", request.url.path, exc.errors())
        return error_response(
            400,
            "validation_error",
            "Invalid request",
            {"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(exc.status_code, http_error_code(exc), str(exc.detail))

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    # === Health & metadata ===

    @app.get("/health", response_model=Health)
    def health():
        return Health()

    @app.get("/version", response_model=Version)
    def version():
        return Version(version=VERSION)

    # === Board endpoints ===

    @app.post("/boards", response_model=BoardOut, status_code=201)
    def create_board(
        payload: BoardCreate,
        user: str = Depends(get_current_user),
        storage: Storage = Depends(get_storage),
    ):
        board = storage.create_board(user, payload.title, payload.description)
        return board_out(board)

    @app.get("/boards", response_model=list[BoardOut])
    def list_boards(
        user: str = Depends(get_current_user),
        storage: Storage = Depends(get_storage),
    ):
        return [board_out(b) for b in storage.list_boards(user)]

    @app.get("/boards/{board_id}", response_model=BoardView)
    def get_board(
        board_id: str,
        user: str = Depends(get_current_user),
        storage: Storage = Depends(get_storage),
    ):
        return get_board_view(storage, board_id, user)

    @app.put("/boards/{board_id}", response_model=BoardOut)
    def update_board(
        board_id: str,
        payload: BoardUpdate,
        user: str = Depends(get_current_user),
        storage: Storage = Depends(get_storage),
    ):
        board = storage.update_board(user, board_id, payload.title, payload.description)
        return board_out(board)

    @app.delete("/boards/{board_id}", response_model=Message)
    def delete_board(
        board_id: str,
        user: str = Depends(get_current_user),
        storage: Storage = Depends(get_storage),
    ):
        storage.delete_board(user, board_id)
        return Message(message="Board deleted successfully")

    @app.post("/boards/{board_id}/members", response_model=BoardOut)
    def add_member(
        board_id: str,
        payload: MemberIn,
        user: str = Depends(get_current_user),
        storage: Storage = Depends(get_storage),
    ):
        board = storage.add_member(user, board_id, payload.userId)
        return board_out(board)

    @app.delete("/boards/{board_id}/members/{member_id}", response_model=BoardOut)
    def remove_member(
        board_id: str,
        member_id: str,
        user: str = Depends(get_current_user),
        storage: Storage = Depends(get_storage),
    ):
        board = storage.remove_member(user, board_id, member_id)
        return board_out(board)

    # === List endpoints ===

    @app.post("/lists", response_model=ListOut, status_code=201)
    def create_list(
        payload: ListCreate,
        user: str = Depends(get_current_user),
        ordering: OrderingEngine = Depends(get_ordering),
    ):
        lst = ordering.create_list(user, payload.boardId, payload.title)
        return list_out(lst)

    @app.put("/lists/{list_id}", response_model=ListOut)
    def update_list(
        list_id: str,
        payload: ListUpdate,
        user: str = Depends(get_current_user),
        storage: Storage = Depends(get_storage),
    ):
        lst = storage.update_list(user, list_id, payload.title)
        return list_out(lst)

    @app.put("/lists/{list_id}/move", response_model=ListOut)
    def move_list(
        list_id: str,
        payload: ListMove,
        user: str = Depends(get_current_user),
        ordering: OrderingEngine = Depends(get_ordering),
    ):
        lst = ordering.move_list(user, list_id, payload.destinationIndex)
        return list_out(lst)

    @app.delete("/lists/{list_id}", response_model=Message)
    def delete_list(
        list_id: str,
        user: str = Depends(get_current_user),
        ordering: OrderingEngine = Depends(get_ordering),
    ):
        ordering.delete_list(user, list_id)
        return Message(message="List deleted successfully")

    # === Card endpoints ===

    @app.post("/cards", response_model=CardOut, status_code=201)
    def create_card(
        payload: CardCreate,
        user: str = Depends(get_current_user),
        ordering: OrderingEngine = Depends(get_ordering),
    ):
        card = ordering.create_card(user, payload.listId, payload.title, payload.description)
        return card_out(card)

    @app.put("/cards/{card_id}", response_model=CardOut)
    def update_card(
        card_id: str,
        payload: CardUpdate,
        user: str = Depends(get_current_user),
        storage: Storage = Depends(get_storage),
    ):
        card = storage.update_card(user, card_id, payload.title, payload.description)
        return card_out(card)

    @app.put("/cards/{card_id}/move", response_model=CardOut)
    def move_card(
        card_id: str,
        payload: CardMove,
        user: str = Depends(get_current_user),
        ordering: OrderingEngine = Depends(get_ordering),
    ):
        card = ordering.move_card(
            user,
            card_id,
            payload.sourceListId,
            payload.destinationListId,
            payload.sourceIndex,
            payload.destinationIndex,
        )
        return card_out(card)

    @app.delete("/cards/{card_id}", response_model=Message)
    def delete_card(
        card_id: str,
        user: str = Depends(get_current_user),
        ordering: OrderingEngine = Depends(get_ordering),
    ):
        ordering.delete_card(user, card_id)
        return Message(message="Card deleted successfully")


app = create_app()
