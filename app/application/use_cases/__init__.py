"""Aggregate application use cases."""

from .notifications import AssessmentRef, Person

__all__ = [
    "AssessmentRef",
    "Person",
]
