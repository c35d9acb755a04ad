import os

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    try:
        return int(val) if val is not None else default
    except ValueError:
        return default


def _as_float(val: str | None, default: float) -> float:
    try:
        return float(val) if val is not None else default
    except ValueError:
        return default


BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))


class Settings:
    def __init__(self) -> None:
        # Secrets stay server-side; nothing here is ever echoed back to clients.
        self.EXA_API_KEY: str = os.getenv("EXA_API_KEY", "")
        self.EXA_BASE_URL: str = os.getenv("EXA_BASE_URL", "https://api.exa.ai")
        self.MAPBOX_ACCESS_TOKEN: str = os.getenv("MAPBOX_ACCESS_TOKEN", "")
        self.MAPBOX_BASE_URL: str = os.getenv("MAPBOX_BASE_URL", "https://api.mapbox.com")
        self.CONVEX_URL: str = os.getenv("CONVEX_URL") or os.getenv("CONVEX_DEPLOYMENT", "")

        self.CACHE_BACKEND: str = os.getenv("CACHE_BACKEND", "convex").lower()
        self.LANDMARK_DB_PATH: str = os.getenv(
            "LANDMARK_DB_PATH", os.path.join(BACKEND_DIR, "data", "landmarks.sqlite")
        )
        self.SEARCH_POLICY: str = os.getenv("SEARCH_POLICY", "parallel").lower()
        self.DEFAULT_CITY: str = os.getenv("DEFAULT_CITY", "singapore").lower()

        self.HTTP_TIMEOUT_SECONDS: float = _as_float(os.getenv("HTTP_TIMEOUT_SECONDS"), 10.0)
        self.HTTP_RETRY_ATTEMPTS: int = max(1, _as_int(os.getenv("HTTP_RETRY_ATTEMPTS"), 2))
        self.MAX_EXA_SEARCH_RESULTS: int = _as_int(os.getenv("MAX_EXA_SEARCH_RESULTS"), 25)

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.PERSIST_EXA_RESULTS: bool = _as_bool(os.getenv("PERSIST_EXA_RESULTS"), True)


settings = Settings()
