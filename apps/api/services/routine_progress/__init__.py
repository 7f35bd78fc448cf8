"""
Routine Progress Module

Weekly progress for any owner of routine definitions:
- registered owners (normalized routine_definition / routine_item rows)
- guests (routines embedded in a guest onboarding session)

Both adapters feed the same grid and completion calculator, so the same
routines produce the same WeeklyProgress before and after a guest migrates.
"""

from .base import RoutineDefinitionSource
from .guest import GuestRoutineSource, guest_routine_to_spec
from .registered import RegisteredRoutineSource

__all__ = [
    'RoutineDefinitionSource',
    'GuestRoutineSource',
    'RegisteredRoutineSource',
    'guest_routine_to_spec',
]
