"""FastAPI server exposing the quiz API and the live update socket."""

from __future__ import annotations

import asyncio
import logging

from fastapi import Depends, FastAPI, HTTPException, Request, Response, WebSocket
from starlette.middleware.sessions import SessionMiddleware
import uvicorn

from livequiz.constants.about import APP_ABOUT_TEXT, APP_NAME, APP_VERSION
from livequiz.constants.network_constants import (
    API_PREFIX,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SECRET_KEY,
    SESSION_COOKIE_NAME,
    WEBSOCKET_PATH,
)
from livequiz.core.errors import (
    ConflictError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from livequiz.core.markdown_math_renderer import renderer
from livequiz.core.models import User
from livequiz.core.notifications import Broadcaster, Subscription
from livequiz.core.quiz_manager import QuizManager
from livequiz.server.schemas import (
    LoginPayload,
    QuizCreatePayload,
    QuizUpdatePayload,
    ResponsePayload,
    StateUpdatePayload,
)

logger = logging.getLogger(__name__)

_SESSION_USER_KEY = "user_id"
# 1013 "try again later": the listener fell behind and should reconnect.
_CLOSE_TOO_SLOW = 1013


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


async def _pump_notifications(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        message = await subscription.next_message()
        if message is None:
            await websocket.close(code=_CLOSE_TOO_SLOW)
            return
        await websocket.send_json(message)


async def _drain_client(websocket: WebSocket) -> None:
    """Discard inbound frames until the client disconnects."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


def create_api_app(
    quiz_manager: QuizManager,
    broadcaster: Broadcaster,
    secret_key: str = DEFAULT_SECRET_KEY,
) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION, description=APP_ABOUT_TEXT)
    app.add_middleware(
        SessionMiddleware,
        secret_key=secret_key,
        session_cookie=SESSION_COOKIE_NAME,
        same_site="lax",
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    def current_user(
        request: Request,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> User:
        try:
            return manager.get_user(request.session.get(_SESSION_USER_KEY))
        except UnauthenticatedError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc

    def admin_user(user: User = Depends(current_user)) -> User:
        if not user.is_admin:
            raise HTTPException(status_code=403, detail="Admin privileges required.")
        return user

    @app.get(f"{API_PREFIX}/health")
    def health_check() -> dict[str, object]:
        return {
            "status": "healthy",
            "service": APP_NAME,
            "listeners": broadcaster.listener_count(),
        }

    # --- Auth ---

    @app.post(f"{API_PREFIX}/login")
    def login(
        payload: LoginPayload,
        request: Request,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            user = manager.login(payload.name)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        request.session[_SESSION_USER_KEY] = user.id
        return user.to_payload()

    @app.get(f"{API_PREFIX}/me")
    def get_me(user: User = Depends(current_user)) -> dict[str, object]:
        return user.to_payload()

    @app.post(f"{API_PREFIX}/logout")
    def logout(request: Request) -> dict[str, object]:
        request.session.clear()
        return {"success": True}

    # --- Quizzes ---

    @app.get(f"{API_PREFIX}/quizzes")
    def list_quizzes(manager: QuizManager = Depends(quiz_manager_dep)) -> list[dict[str, object]]:
        return [renderer.render_quiz(quiz) for quiz in manager.list_quizzes()]

    @app.post(f"{API_PREFIX}/quizzes", status_code=201)
    def create_quiz(
        payload: QuizCreatePayload,
        _admin: User = Depends(admin_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            quiz = manager.create_quiz(payload.to_draft())
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return renderer.render_quiz(quiz)

    @app.put(f"{API_PREFIX}/quizzes/{{quiz_id}}")
    def update_quiz(
        quiz_id: int,
        payload: QuizUpdatePayload,
        _admin: User = Depends(admin_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            quiz = manager.update_quiz(quiz_id, payload.to_changes())
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return renderer.render_quiz(quiz)

    @app.delete(f"{API_PREFIX}/quizzes/{{quiz_id}}", status_code=204)
    def delete_quiz(
        quiz_id: int,
        _admin: User = Depends(admin_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> Response:
        try:
            manager.delete_quiz(quiz_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return Response(status_code=204)

    # --- Session state ---

    @app.get(f"{API_PREFIX}/state")
    def get_state(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        return manager.get_state().to_payload()

    @app.post(f"{API_PREFIX}/state")
    def update_state(
        payload: StateUpdatePayload,
        _admin: User = Depends(admin_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            state = manager.update_state(payload.to_command())
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ConflictError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return state.to_payload()

    # --- Responses ---

    @app.get(f"{API_PREFIX}/responses")
    def list_responses(manager: QuizManager = Depends(quiz_manager_dep)) -> list[dict[str, object]]:
        return [entry.to_payload() for entry in manager.list_responses()]

    @app.post(f"{API_PREFIX}/responses")
    def submit_response(
        payload: ResponsePayload,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            response = manager.submit_response(user.id, payload.quiz_id, payload.selection)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ConflictError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except UnauthenticatedError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        return response.to_payload()

    # --- Leaderboard & maintenance ---

    @app.get(f"{API_PREFIX}/leaderboard")
    def get_leaderboard(manager: QuizManager = Depends(quiz_manager_dep)) -> list[dict[str, object]]:
        return [row.to_payload() for row in manager.get_leaderboard()]

    @app.post(f"{API_PREFIX}/reset")
    def reset_all(
        _admin: User = Depends(admin_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        manager.reset_all()
        return {"success": True}

    # --- Live updates ---

    @app.websocket(WEBSOCKET_PATH)
    async def live_updates(websocket: WebSocket) -> None:
        # Subscribe before accepting so nothing published after the handshake is missed.
        subscription = broadcaster.subscribe()
        try:
            await websocket.accept()
            sender = asyncio.create_task(_pump_notifications(websocket, subscription))
            receiver = asyncio.create_task(_drain_client(websocket))
            done, pending = await asyncio.wait(
                {sender, receiver}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                if task.exception() is not None:
                    logger.info("Live update listener dropped: %s", task.exception())
        finally:
            broadcaster.unsubscribe(subscription)

    return app


def serve_api(
    app: FastAPI,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Run the API server in the foreground until interrupted."""
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level)
    server = uvicorn.Server(config)
    server.run()
