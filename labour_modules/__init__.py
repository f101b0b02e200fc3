"""
Labour ledger domain modules.

Each module follows the same layout: ``models.py`` (frozen dataclass DTOs
and enums), ``orm.py`` (SQLAlchemy persistence), ``service.py`` (writes
through a UnitOfWork) and ``selectors.py`` (read-only queries).
"""
