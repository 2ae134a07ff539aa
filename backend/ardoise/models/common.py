from __future__ import annotations

import uuid


def new_id() -> str:
    """Opaque stable identifier shared by all four collections."""
    return uuid.uuid4().hex
