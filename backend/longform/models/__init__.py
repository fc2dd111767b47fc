"""
SQLAlchemy models for the longform editor.

This module exports all database models for convenient importing:

    from longform.models import Transcript, EditRecipe, Render

All models use UUID strings as primary keys for SQLite compatibility.
"""

from .transcript import Transcript
from .recipe import EditRecipe
from .render import Render, RenderStatus

__all__ = [
    "Transcript",
    "EditRecipe",
    "Render",
    "RenderStatus",
]
