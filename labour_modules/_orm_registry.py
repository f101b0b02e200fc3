"""
Module ORM Registry (``labour_modules._orm_registry``).

Ensures every module's SQLAlchemy models are imported so that
``Base.metadata`` holds their tables before ``create_all()`` runs.
``labour_kernel.db.engine.create_tables()`` calls this first.
"""


def import_all_orm_models() -> None:
    """Import every ``labour_modules.*.orm`` module.  Idempotent."""
    # fmt: off
    import labour_modules.workers.orm  # noqa: F401
    import labour_modules.attendance.orm  # noqa: F401
    import labour_modules.penalties.orm  # noqa: F401
    import labour_modules.payments.orm  # noqa: F401
    # fmt: on


def create_all_tables(engine, install_immutability: bool = True) -> None:
    """
    Create every ledger table and register the immutability listeners.

    The single entry point used at application startup and by ``tests/conftest.py``.
    """
    from labour_kernel.db.engine import create_tables
    from labour_kernel.db.immutability import register_immutability_listeners

    create_tables(engine)
    if install_immutability:
        register_immutability_listeners()
