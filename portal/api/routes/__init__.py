"""
Page and API Routes Package
"""
from . import (
    health,
    pages,
    auth,
    dashboard,
    activation,
    admin,
)
