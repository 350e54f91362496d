"""
Application package initializer.

The project is organised into ``core`` (configuration, logging,
database, security), ``schemas`` (pydantic models), ``services``
(business logic, including the cost allocation engine) and
``api/<version>/endpoints`` (routers).
"""

from .main import app  # noqa: F401
