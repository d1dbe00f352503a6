from __future__ import annotations
import os
import pathlib
import typing as t
import yaml
from sqlalchemy.engine import URL, make_url

from dbscript.constants import DEFAULT_CONFIG_FILE, DEFAULT_DRIVER

_DEFAULT_PATH = pathlib.Path(DEFAULT_CONFIG_FILE)


class ConfigError(RuntimeError):
    """Raised for any user‑visible configuration problem."""


def _resolve_secret(raw: t.Any) -> str | None:
    # Allow `${ENV_VAR}` syntax for secrets
    if raw is None:
        return None
    raw = str(raw)
    return os.getenv(raw[2:-1]) if raw.startswith("${") else raw


class Environment:
    """
    A thin value‑object holding what is needed to open a database connection
    and to root a file provider.  Nothing here talks to the database.

    Either ``url`` (any SQLAlchemy URL) or the MySQL fields ``host`` /
    ``database`` / ``user`` / ``password`` must be present.
    """

    def __init__(self, name: str, d: dict[str, t.Any]) -> None:
        self.name: str = name
        self.url: str | None = _resolve_secret(d.get("url"))

        try:
            self.host: str | None = d["host"] if not self.url else d.get("host")
            self.database: str | None = (
                d["database"] if not self.url else d.get("database")
            )
            self.user: str | None = d["user"] if not self.url else d.get("user")
            raw_pwd = d["password"] if not self.url else d.get("password")
        except KeyError as exc:
            raise ConfigError(
                f"Environment {name!r} is missing {exc.args[0]!r} (or a `url`)"
            ) from exc

        self.port: int = int(d.get("port") or 3306)
        self.password: str | None = _resolve_secret(raw_pwd)

        # Used by the drop‑table guard‑rail and the auto‑create‑db logic
        self.allow_destructive: bool = bool(d.get("allow_destructive", False))

        # Roots handed to the file provider
        self.web_root: str = str(d.get("web_root") or os.getcwd())
        self.content_root: str = str(d.get("content_root") or self.web_root)

    # --------------------------------------------------------------------- #
    # Helpers
    # --------------------------------------------------------------------- #
    def sqlalchemy_url(self, *, with_database: bool = True) -> URL:
        """Return the SQLAlchemy URL for this environment."""
        if self.url:
            url = make_url(self.url)
        else:
            url = URL.create(
                DEFAULT_DRIVER,
                username=self.user,
                password=self.password,
                host=self.host,
                port=self.port,
                database=self.database,
            )
        return url if with_database else url.set(database=None)


def load(path: pathlib.Path | str | None = None, env: str | None = None) -> Environment:
    """
    Parse *path* (or the default YAML) and return an :class:`Environment`.
    """
    cfg_file = pathlib.Path(path) if path else _DEFAULT_PATH
    if not cfg_file.exists():
        raise ConfigError(f"Config file {cfg_file} not found.")

    with cfg_file.open() as fh:
        raw = yaml.safe_load(fh) or {}

    env_name = env or raw.get("default_env")
    if not env_name:
        raise ConfigError("No environment specified and no default_env in config")

    try:
        return Environment(env_name, raw["environments"][env_name])
    except KeyError as exc:
        raise ConfigError(f"Environment {env_name!r} not found in config") from exc
