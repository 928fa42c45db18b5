"""
Test data factories for generating test objects.

This module provides Factory Boy factories for creating test data objects
with realistic default values and easy customization. Factories only add
objects to the bound session; tests commit explicitly.
"""

from datetime import timedelta

import factory
from factory.alchemy import SQLAlchemyModelFactory

from app.core.security import hash_password
from models import Comment, SharedList, Task, Team, User
from models.base import utcnow

DEFAULT_PASSWORD = "password123"


class UserFactory(SQLAlchemyModelFactory):
    """Factory for creating User test instances."""

    class Meta:
        model = User
        sqlalchemy_session = None  # Will be set at runtime
        sqlalchemy_session_persistence = None

    name = factory.Sequence(lambda n: f"Test User {n}")
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    password_hash = factory.LazyFunction(lambda: hash_password(DEFAULT_PASSWORD))
    role = "user"
    avatar = "default-avatar.png"
    profile = factory.LazyFunction(dict)
    is_email_verified = True
    is_active = True


class TaskFactory(SQLAlchemyModelFactory):
    """Factory for creating Task test instances."""

    class Meta:
        model = Task
        sqlalchemy_session = None  # Will be set at runtime
        sqlalchemy_session_persistence = None

    name = factory.Sequence(lambda n: f"Task {n}")
    description = factory.Faker("sentence", nb_words=8)
    completed = False
    priority = "medium"
    status = "todo"
    category = "work"
    tags = factory.LazyFunction(list)
    due_date = factory.LazyFunction(lambda: utcnow() + timedelta(days=7))
    is_markdown = False
    is_recurring = False
    # created_by will be passed when creating


class TeamFactory(SQLAlchemyModelFactory):
    class Meta:
        model = Team
        sqlalchemy_session = None  # Will be set at runtime
        sqlalchemy_session_persistence = None

    name = factory.Sequence(lambda n: f"Team {n}")
    description = ""
    avatar = "default-team-avatar.png"
    is_active = True


class SharedListFactory(SQLAlchemyModelFactory):
    class Meta:
        model = SharedList
        sqlalchemy_session = None  # Will be set at runtime
        sqlalchemy_session_persistence = None

    name = factory.Sequence(lambda n: f"List {n}")
    description = ""
    is_team_list = False
    is_public = False


class CommentFactory(SQLAlchemyModelFactory):
    class Meta:
        model = Comment
        sqlalchemy_session = None  # Will be set at runtime
        sqlalchemy_session_persistence = None

    content = factory.Faker("sentence", nb_words=6)
    attachments = factory.LazyFunction(list)
    is_edited = False


ALL_FACTORIES = (UserFactory, TaskFactory, TeamFactory, SharedListFactory, CommentFactory)
