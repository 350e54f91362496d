"""
Domain exceptions shared by services and routers.

Services raise ``ValueError`` subclasses so that endpoints can keep
translating them to ``HTTPException`` the same way everywhere:
``NotFoundError`` becomes 404, any other ``ValueError`` becomes 400.
"""


class NotFoundError(ValueError):
    """A participant, event or payment does not exist."""


class InvalidConfigurationError(ValueError):
    """An event's split configuration does not allow the requested operation."""
