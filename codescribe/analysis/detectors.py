"""Framework, database and deployment detection.

Each detector is a declarative table of ``(keyword, tag)`` pairs read by
one matching routine: a tag is emitted as soon as any import target of
any file contains its keyword. Supporting a new technology means adding
a row, not code.
"""

import logging
from pathlib import Path
from typing import Iterable, Sequence

from codescribe.parsers.structure import DatabaseInfo, DeploymentInfo, FileRecord

logger = logging.getLogger(__name__)

KeywordTable = Sequence[tuple[str, str]]

FRAMEWORK_KEYWORDS: KeywordTable = (
    ("react", "React"),
    ("vue", "Vue"),
    ("svelte", "Svelte"),
    ("angular", "Angular"),
    ("next", "Next.js"),
    ("nuxt", "Nuxt.js"),
    ("express", "Express"),
    ("fastify", "Fastify"),
    ("flask", "Flask"),
    ("django", "Django"),
    ("fastapi", "FastAPI"),
)

DATABASE_KEYWORDS: KeywordTable = (
    ("prisma", "PostgreSQL/MySQL (Prisma)"),
    ("mongoose", "MongoDB (Mongoose)"),
    ("supabase", "Supabase"),
    ("sqlalchemy", "SQL (SQLAlchemy)"),
)

# Presence of the file at the project root signals the platform.
DEPLOYMENT_FILES: KeywordTable = (
    ("vercel.json", "Vercel"),
    ("netlify.toml", "Netlify"),
    ("Dockerfile", "Docker"),
    ("fly.toml", "Fly.io"),
)

FRONTEND_FRAMEWORKS = frozenset({"React", "Vue", "Angular", "Svelte", "Next.js", "Nuxt.js"})


def match_keywords(files: Iterable[FileRecord], table: KeywordTable) -> list[str]:
    """Scan every file's import targets against a keyword table.

    Args:
        files: File records to scan.
        table: ``(keyword, tag)`` pairs; matching is substring containment.

    Returns:
        Matched tags without duplicates, in order of first discovery.
    """
    tags: list[str] = []
    for record in files:
        for keyword, tag in table:
            if tag in tags:
                continue
            if any(keyword in dependency for dependency in record.dependencies):
                tags.append(tag)
    return tags


def detect_frameworks(files: Iterable[FileRecord]) -> list[str]:
    """Detect framework tags such as ``React`` or ``Express``."""
    return match_keywords(files, FRAMEWORK_KEYWORDS)


def detect_databases(files: Iterable[FileRecord]) -> list[DatabaseInfo]:
    """Detect database technologies. Table names are never resolved."""
    return [DatabaseInfo(type=tag) for tag in match_keywords(files, DATABASE_KEYWORDS)]


def detect_deployments(root_path: str, scripts: dict[str, str]) -> list[DeploymentInfo]:
    """Detect deployment platforms from root config files and scripts.

    Args:
        root_path: Project root directory.
        scripts: Manifest scripts; having both ``build`` and ``start``
            signals a generic Node.js deployment.

    Returns:
        Detected platforms, without duplicates.
    """
    root = Path(root_path)
    platforms: list[str] = []
    for filename, platform in DEPLOYMENT_FILES:
        if (root / filename).is_file() and platform not in platforms:
            platforms.append(platform)
    if scripts.get("build") and scripts.get("start"):
        platforms.append("Generic Node.js")

    logger.debug("Detected deployment platforms: %s", platforms)
    return [DeploymentInfo(platform=platform) for platform in platforms]
