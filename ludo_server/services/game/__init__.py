"""Game domain services: board geometry, rules and turn control.

This package contains pure(ish) domain logic that is driven by the room
manager, keeping transport concerns separated from core game mechanics.
"""
