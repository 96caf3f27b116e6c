"""Static metadata describing livequiz."""

APP_NAME = "livequiz"
APP_VERSION = "0.1.0"
APP_ABOUT_TEXT = (
    "livequiz runs a presenter-driven multiple-choice quiz: participants answer "
    "from their own devices while a projector view shows live results, timers "
    "and a leaderboard."
)
