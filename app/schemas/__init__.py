# ruff: noqa: F403, F401
"""Schemas package initialization."""

# Import all schemas to ensure they're registered
from .base import *
from .activity import *
from .analytics import *
from .comment import *
from .shared_list import *
from .task import *
from .team import *
from .user import *
