import os
import pathlib
import sys


def ensure_settings() -> None:
    """Seed the BLOOM_* environment variables the app reads at import time."""
    os.environ.setdefault("BLOOM_GEMINI_API_KEY", "placeholder-key")
    os.environ.setdefault("BLOOM_LOG_LEVEL", "WARNING")


def ensure_project_path() -> None:
    """Make sure the project root is on sys.path for local module imports."""
    project_root = pathlib.Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(project_root))


if __name__ == "__main__":
    ensure_settings()
    ensure_project_path()

    from digitalbloom.main import app  # noqa: E402

    print("FastAPI app imported successfully with", len(app.routes), "routes.")
