from typing import Iterable, Optional

from sqlalchemy import Select

from odontolegal.shared.exceptions import ValidationFailed

DEFAULT_SORT = "-created_at"


def apply_sort(query: Select, model, sort: Optional[str], allowed: Iterable[str]) -> Select:
    """Order by a comma separated list of fields, ``-`` prefix for descending.

    ``"-created_at,title"`` -> ``ORDER BY created_at DESC, title ASC``
    """
    allowed = set(allowed)
    for part in (sort or DEFAULT_SORT).split(","):
        part = part.strip()
        if not part:
            continue
        descending = part.startswith("-")
        name = part.lstrip("-")
        if name not in allowed:
            raise ValidationFailed(f"Cannot sort by '{name}'")
        column = getattr(model, name)
        query = query.order_by(column.desc() if descending else column.asc())
    return query
