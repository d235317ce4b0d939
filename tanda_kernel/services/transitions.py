"""
Conditional (compare-and-set) state transitions.

Every automated status change is issued as
``UPDATE ... WHERE id = :id AND <column> = :expected``.  When another run
has already moved the row, the statement matches nothing and
``StaleTransitionError`` is raised, so overlapping scheduler firings can
never apply the same transition twice.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from tanda_kernel.exceptions import StaleTransitionError


def compare_and_set(
    session: Session,
    model: type,
    entity_id: UUID,
    column: str,
    expected: Any,
    values: dict[str, Any],
) -> None:
    """Apply ``values`` to one row only if ``column`` still equals ``expected``.

    Raises:
        StaleTransitionError: If no row matched.
    """
    stmt = (
        update(model)
        .where(model.id == entity_id, getattr(model, column) == expected)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    result = session.execute(stmt)
    if result.rowcount != 1:
        raise StaleTransitionError(
            entity_type=model.__name__,
            entity_id=str(entity_id),
            expected=f"{column}={expected}",
        )
