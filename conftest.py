"""Shared fixtures for the engine test-suite."""

import pytest


@pytest.fixture
def owner(db):
    from apps.users.models import User
    from shared.testing import create_user

    return create_user(role=User.Role.OWNER)


@pytest.fixture
def guest(db):
    from shared.testing import create_user

    return create_user()


@pytest.fixture
def listing(owner):
    from shared.testing import create_property

    return create_property(owner)
