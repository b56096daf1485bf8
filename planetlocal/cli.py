import argparse
import logging
from typing import List, Optional

import uvicorn

from planetlocal.core.config import Settings
from planetlocal.main import create_app

# CLI flag -> Settings field
FLAG_FIELDS = {
    "user": "MYSQL_USER",
    "password": "MYSQL_PASSWORD",
    "database": "MYSQL_DATABASE",
    "mysql_host": "MYSQL_HOST",
    "mysql_port": "MYSQL_PORT",
    "host": "HOST",
    "port": "PORT",
    "log_level": "LOG_LEVEL",
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="planetlocal",
        description="Serve the PlanetScale HTTP API in front of a local MySQL database.",
    )
    p.add_argument("--user", help="MySQL user.")
    p.add_argument("--password", help="MySQL password.")
    p.add_argument("--database", help="Default MySQL database.")
    p.add_argument("--mysql-host", help="MySQL host (default: localhost).")
    p.add_argument("--mysql-port", nargs="?", const="", help="MySQL port (default: 3306).")
    p.add_argument("--host", help="Interface to listen on (default: 127.0.0.1).")
    # Kept as a string: a missing or non-numeric value falls back to 4545 in Settings
    p.add_argument("--port", nargs="?", const="", help="HTTP port (default: 4545).")
    p.add_argument("--log-level", help="debug, info, warning or error (default: info).")
    return p


def settings_from_args(argv: Optional[List[str]] = None) -> Settings:
    # Unrecognised arguments are ignored
    args, _ = build_parser().parse_known_args(argv)
    overrides = {
        field: getattr(args, flag)
        for flag, field in FLAG_FIELDS.items()
        if getattr(args, flag) is not None
    }
    return Settings(**overrides)


def main(argv: Optional[List[str]] = None):
    settings = settings_from_args(argv)
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
