"""
Mood Values
===========
The closed set of moods a journal entry can carry. Moods are never sent
by the client directly; they are extracted from mood markers embedded in
the editor document (see app.services.mood_extractor).
"""

from __future__ import annotations

from typing import Literal

# ---------------------------------------------------------------------------
# Allowed values
# ---------------------------------------------------------------------------

Mood = Literal["flow", "buggy", "learning", "meetings", "standard"]

# Canonical order, matching the Postgres enum.
MOODS: tuple[str, ...] = ("flow", "buggy", "learning", "meetings", "standard")

VALID_MOODS = frozenset(MOODS)
