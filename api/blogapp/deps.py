"""Request dependencies shared by the routers."""

from __future__ import annotations

from typing import Annotated, Generator

from fastapi import Path
from sqlalchemy.orm import Session

from .db import get_session
from .models import MAX_ID

# Path ids beyond the key range fail validation (400) instead of reaching the database
ResourceId = Annotated[int, Path(ge=1, le=MAX_ID)]


def get_db() -> Generator[Session, None, None]:
    yield from get_session()
