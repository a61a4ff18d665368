"""Shared fixtures for the clinical engine tests."""

import pytest

from application.clinical.substance_resolver import SubstanceResolver
from config.engine_config import ResolverConfig
from domain.knowledge_base import build_knowledge_base


@pytest.fixture(scope="session")
def knowledge_base():
    """Knowledge base built once for the whole run."""
    return build_knowledge_base()


@pytest.fixture(scope="session")
def resolver(knowledge_base):
    """Resolver with default matching settings, independent of the environment."""
    return SubstanceResolver(knowledge_base, ResolverConfig())
