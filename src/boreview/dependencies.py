"""Shared FastAPI dependencies."""

from boreview.database import get_session as _get_session

get_db = _get_session
