"""
Module ORM Registry (``messflow_modules._orm_registry``).

Ensures every module-level ORM model is imported so that ``Base.metadata``
holds all table definitions before ``create_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by
``messflow_kernel.db.engine.create_tables``.
"""


def import_all_orm_models() -> None:
    """Import every ``messflow_modules.*.orm`` module.  Idempotent."""
    # Expenses before payroll: salary_payments references expenses.id
    import messflow_modules.expenses.orm  # noqa: F401
    import messflow_modules.members.orm  # noqa: F401
    import messflow_modules.payroll.orm  # noqa: F401
