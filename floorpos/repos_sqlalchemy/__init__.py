"""SQLAlchemy-backed repository implementations.

``SqlUnitOfWork`` binds the repositories to one session so that a service
operation either commits every change it staged or none of them.
"""

from .unit_of_work import SqlUnitOfWork

__all__ = ["SqlUnitOfWork"]
