"""
Run Alembic against the packaged migrations without an alembic.ini.

    python -m joinery.db.run_migrations upgrade head
    python -m joinery.db.run_migrations downgrade -1
    python -m joinery.db.run_migrations current
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from alembic import command
from alembic.config import Config

from joinery.db.config import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# command name -> (alembic function, default arguments)
_COMMANDS: Dict[str, Tuple[Callable[..., object], Sequence[str]]] = {
    "upgrade": (command.upgrade, ("head",)),
    "downgrade": (command.downgrade, ("-1",)),
    "current": (command.current, ()),
    "heads": (command.heads, ()),
    "history": (command.history, ()),
    "show": (command.show, ("head",)),
    "stamp": (command.stamp, ("head",)),
}


# PUBLIC_INTERFACE
def build_config() -> Config:
    """Alembic Config pointing at joinery/db/migrations."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


# PUBLIC_INTERFACE
def main(argv: Optional[List[str]] = None) -> None:
    """Dispatch `<command> [args...]` to Alembic; exits with status 2 on bad usage."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] not in _COMMANDS:
        print(f"usage: run_migrations {{{','.join(sorted(_COMMANDS))}}} [args]", file=sys.stderr)
        sys.exit(2)

    func, defaults = _COMMANDS[args[0]]
    logger.info("alembic %s %s", args[0], " ".join(args[1:] or defaults))
    func(build_config(), *(args[1:] or defaults))


if __name__ == "__main__":
    main()
