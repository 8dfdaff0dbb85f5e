"""
Salon booking bot entry point.

Usage:
    Interactive chat:  python main.py console
    Scripted demo:     python main.py scenario booking
    Create tables:     python main.py init-db
"""

import logging
import sys

from salonbot.config import settings

logger = logging.getLogger(__name__)


def _run_init_db() -> None:
    """Create tables and load the demo salon for the default tenant."""
    from salonbot.storage.database import (
        check_db_connection, create_db_engine, init_db, make_session_factory,
    )
    from salonbot.storage.seed import seed_demo_tenant

    engine = create_db_engine()
    if not check_db_connection(engine):
        print(f"Cannot reach database at {settings.storage.database_url}")
        sys.exit(1)
    tables = init_db(engine)
    seeded = seed_demo_tenant(make_session_factory(engine), settings.default_tenant_id)
    if seeded:
        logger.info("Seeded %d services for %s", seeded, settings.default_tenant_id)
    else:
        logger.info("Tenant %s already has services, nothing seeded", settings.default_tenant_id)
    print(f"Database ready: {', '.join(sorted(tables))}")


def _run_console_mode() -> None:
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


def _run_scenario(name: str) -> None:
    from console_demo import main as console_main

    console_main(["--scenario", name])


if __name__ == "__main__":
    command = sys.argv[1] if len(sys.argv) > 1 else "console"
    if command == "init-db":
        _run_init_db()
    elif command == "scenario":
        _run_scenario(sys.argv[2] if len(sys.argv) > 2 else "booking")
    elif command == "console":
        _run_console_mode()
    else:
        print(__doc__)
        sys.exit(2)
