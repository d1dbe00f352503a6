import pytest
import yaml

from dbscript.config import ConfigError, Environment, load


def _write(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_mysql_environment_builds_connector_url(tmp_path, monkeypatch):
    monkeypatch.setenv("SHOP_DB_PASSWORD", "s3cret")
    cfg = _write(
        tmp_path / "dbscript.config.yml",
        {
            "default_env": "dev",
            "environments": {
                "dev": {
                    "host": "db.local",
                    "database": "shop",
                    "user": "shop_app",
                    "password": "${SHOP_DB_PASSWORD}",
                }
            },
        },
    )

    env = load(cfg)
    url = env.sqlalchemy_url()

    assert env.name == "dev"
    assert env.port == 3306
    assert env.allow_destructive is False
    assert url.drivername == "mysql+mysqlconnector"
    assert url.password == "s3cret"
    assert url.database == "shop"
    assert env.sqlalchemy_url(with_database=False).database is None


def test_url_environment_and_roots(tmp_path):
    cfg = _write(
        tmp_path / "cfg.yml",
        {
            "environments": {
                "test": {
                    "url": "sqlite:///shop.db",
                    "allow_destructive": True,
                    "web_root": "/srv/shop/wwwroot",
                    "content_root": "/srv/shop",
                }
            }
        },
    )

    env = load(cfg, "test")

    assert env.sqlalchemy_url().database == "shop.db"
    assert env.allow_destructive is True
    assert env.web_root == "/srv/shop/wwwroot"
    assert env.content_root == "/srv/shop"


def test_content_root_defaults_to_web_root():
    env = Environment("x", {"url": "sqlite://", "web_root": "/srv/www"})

    assert env.content_root == "/srv/www"


def test_empty_port_falls_back_to_default():
    env = Environment("x", {"url": "sqlite://", "port": None})

    assert env.port == 3306


def test_missing_connection_fields():
    with pytest.raises(ConfigError, match="database"):
        Environment("broken", {"host": "h", "user": "u", "password": "p"})


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load(tmp_path / "nope.yml")


def test_unknown_environment(tmp_path):
    cfg = _write(tmp_path / "cfg.yml", {"environments": {}})

    with pytest.raises(ConfigError, match="staging"):
        load(cfg, "staging")


def test_no_environment_selected(tmp_path):
    cfg = _write(tmp_path / "cfg.yml", {"environments": {"dev": {"url": "sqlite://"}}})

    with pytest.raises(ConfigError, match="default_env"):
        load(cfg)
