"""Quiz-related constants shared across the core and the API layer."""

DEFAULT_TIME_LIMIT_SECONDS: int = 20
POINTS_PER_CORRECT_ANSWER: int = 1
MAX_NAME_LENGTH: int = 64
DEFAULT_ADMIN_NAMES: tuple[str, ...] = ("admin",)
SAMPLE_QUIZ_PATH: str = "data/sample_quiz.txt"
