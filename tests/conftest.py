import pytest

from helpers import InMemoryService, SwiftProject


@pytest.fixture
def project(tmp_path):
    return SwiftProject(tmp_path)


@pytest.fixture
def service():
    return InMemoryService()
