"""Declarative base for the onboarding tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
