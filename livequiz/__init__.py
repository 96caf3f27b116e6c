"""Live multiple-choice quiz server with real-time result fan-out."""

from livequiz.constants.about import APP_VERSION as __version__

__all__ = ["__version__"]
