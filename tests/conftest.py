"""
Shared fixtures for the fafcore test suite.
"""

import copy
import sys
import warnings
from pathlib import Path

import pytest

# Filter deprecation warnings from pytest-asyncio; we cannot fix the library.
warnings.filterwarnings(
    "ignore",
    category=DeprecationWarning,
    module="pytest_asyncio",
)

# Ensure the src/ directory is on the import path so that
# fafcore.core.taxonomy / fafcore.core.compiler / etc. can be imported.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

FAF_ENV_VARS = (
    "FAF_TRUSTED_SCORING_VERSIONS",
    "FAF_CHECKSUM_LENGTH",
    "FAF_PROJECT_TYPE",
    "FAF_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_faf_env(monkeypatch):
    """Keep the developer's FAF_* settings out of every test."""
    for name in FAF_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Fixtures — sample context documents
# =============================================================================

_FULL_DOCUMENT = {
    "faf_version": "2.5.0",
    "generated": "2025-09-25T10:00:00Z",
    "project": {
        "name": "storefront",
        "goal": "Sell limited-run prints online",
        "main_language": "TypeScript",
        "type": "nextjs",
    },
    "stack": {
        "frontend": "Next.js",
        "css_framework": "Tailwind CSS",
        "ui_library": "shadcn/ui",
        "state_management": "Zustand",
        "backend": "Node.js",
        "api_type": "tRPC",
        "runtime": "Node 20",
        "database": "PostgreSQL",
        "connection": "Prisma",
        "hosting": "Vercel",
        "build": "Turbopack",
        "cicd": "GitHub Actions",
    },
    "human_context": {
        "who": "Independent artists",
        "what": "Selling prints without a marketplace cut",
        "why": "Keep margins with the artist",
        "where": "EU and UK",
        "when": "Launch Q1",
        "how": "Small releases every week",
    },
}


@pytest.fixture
def full_document() -> dict:
    """A nextjs document with all 21 slots filled and no structural issues."""
    return copy.deepcopy(_FULL_DOCUMENT)


@pytest.fixture
def team_document() -> dict:
    """A document filling exactly one human slot."""
    return {"human_context": {"who": "Team"}}


@pytest.fixture
def embedded_document() -> dict:
    """A document carrying an embedded score from the current scoring system."""
    return {
        "ai_score": "95%",
        "ai_scoring_system": "2025-08-30",
        "human_context": {"who": "Team"},
    }


@pytest.fixture
def faf_file(tmp_path: Path) -> Path:
    """A .faf file on disk filling one human slot of a cli project."""
    path = tmp_path / "project.faf"
    path.write_text(
        "faf_version: 2.5.0\n"
        "generated: '2025-09-25T10:00:00Z'\n"
        "project:\n"
        "  type: cli\n"
        "human_context:\n"
        "  who: Team\n",
        encoding="utf-8",
    )
    return path
