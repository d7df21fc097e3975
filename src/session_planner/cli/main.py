"""
CLI entry point using Typer.

Provides commands for session planning:
- init / add-exercise: Create the profile, extend the catalog
- log-set / history: Record performed sets, review them
- show-day / estimate / generate: Inspect, time and complete a day
- generate-week: Plan all seven days in one generator call
- recovery / metrics / exercises: Recovery state, progression, catalog
"""

from .app import app
from .commands import analysis, planning, profile, sessions  # noqa: F401  (registers commands)

__all__ = ["app"]


if __name__ == "__main__":
    app()
