"""Importing this package registers every table with ``Base.metadata``."""
from .base import Base  # noqa: F401
from . import user, patient, appointment, clinical, plan, package, financial, audit  # noqa: F401
