"""Application entry point for the livequiz server."""

from __future__ import annotations

import logging
import socket

from fastapi import FastAPI

from livequiz.core.notifications import Broadcaster
from livequiz.core.quiz_importer import QuizImportError, load_quiz_from_file, sample_quiz_path
from livequiz.core.quiz_manager import QuizManager
from livequiz.core.services.record_store import RecordStore
from livequiz.server.api_server import create_api_app, serve_api
from livequiz.utils.logging_config import configure_logging
from livequiz.utils.settings import Settings

logger = logging.getLogger("livequiz")


def _determine_public_url(port: int) -> str:
    """Best-effort determination of the local IP for the participant-facing URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def _seed_sample_quiz(manager: QuizManager) -> None:
    try:
        imported = load_quiz_from_file(sample_quiz_path())
    except (OSError, QuizImportError) as exc:
        logger.warning("Sample quiz not loaded: %s", exc)
        return
    manager.seed_quizzes(imported.drafts)


def build_app(settings: Settings) -> FastAPI:
    """Wire store, broadcaster and manager into a FastAPI application."""
    store = RecordStore.from_url(settings.database_url)
    broadcaster = Broadcaster()
    quiz_manager = QuizManager(store, notifier=broadcaster, admin_names=settings.admin_names)
    if settings.seed_sample_quiz:
        _seed_sample_quiz(quiz_manager)
    return create_api_app(quiz_manager, broadcaster, secret_key=settings.secret_key)


def main() -> None:
    """Load settings, initialize logging and serve the API until interrupted."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info("Starting livequiz server…")

    app = build_app(settings)
    logger.info("Quiz API available at %s", _determine_public_url(settings.port))
    serve_api(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
