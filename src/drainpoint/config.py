from __future__ import annotations

import os
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

# ----------------------------
# Server / process
# ----------------------------
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
DEBUG = bool(os.getenv("DEBUG"))


def log_level_from_env(environ: Mapping[str, str]) -> str:
    # uvicorn only accepts lower-case level names
    default = "debug" if environ.get("DEBUG") else "info"
    return environ.get("DRAIN_LOG_LEVEL", default).lower()


LOG_LEVEL = log_level_from_env(os.environ)
RELOAD = os.getenv("DRAIN_RELOAD", "0") == "1"

# statsd://host:port, defaults to localhost:8125
STATSD_URL = os.getenv("STATSD_URL")


class ConfigError(RuntimeError):
    """Raised at startup when the drain cannot be configured."""


class AllowedApp(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    password: str
    tags: List[str] = Field(default_factory=list)
    prefix: str = ""


def _env_name(app_name: str) -> str:
    return app_name.upper().replace("-", "_")


def load_allowed_app(name: str, environ: Mapping[str, str]) -> AllowedApp:
    env_name = _env_name(name)

    password_var = f"{env_name}_PASSWORD"
    password = environ.get(password_var)
    if not password:
        raise ConfigError(f"Environment variable {password_var} required")

    raw_tags = environ.get(f"{env_name}_TAGS")
    tags = [] if raw_tags is None else raw_tags.split(",")
    tags.append(f"app:{name}")

    prefix = environ.get(f"{env_name}_PREFIX") or ""
    if prefix and not prefix.endswith("."):
        prefix += "."

    return AllowedApp(name=name, password=password, tags=tags, prefix=prefix)


def load_allowed_apps(environ: Optional[Mapping[str, str]] = None) -> Dict[str, AllowedApp]:
    """
    Build the basic-auth table from the environment:

      ALLOWED_APPS=my-app,other_app
      MY_APP_PASSWORD=secret          (required)
      MY_APP_TAGS=env:prod,team:core  (optional, app:<name> is always added)
      MY_APP_PREFIX=myapp             (optional, "." appended)

    Keys of the returned table are the app names with "_" turned into "-",
    which is the user name Heroku sends in the drain URL.
    """
    environ = os.environ if environ is None else environ
    names = environ.get("ALLOWED_APPS")
    if not names:
        raise ConfigError("Environment variable ALLOWED_APPS required")

    apps: Dict[str, AllowedApp] = {}
    for name in names.split(","):
        apps[name.replace("_", "-")] = load_allowed_app(name, environ)
    return apps
