"""Shared pytest fixtures for the stackforge test suite.

Provides reusable fixtures for:
- A synthetic template catalog built under ``tmp_path``
- Settings pointing at that catalog
- Sample project configurations and ``.stackrc`` records
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from stackforge.config import ProjectConfiguration, RemoteConfig, Settings
from stackforge.scaffolder.catalog import TemplateCatalog


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def write_fragment(root: Path, name: str, files: dict[str, Any]) -> Path:
    """Create a template fragment; dict/list values are written as JSON."""
    fragment = root / name
    fragment.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = fragment / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, (dict, list)):
            path.write_text(json.dumps(content, indent=2) + "\n", encoding="utf-8")
        else:
            path.write_text(content, encoding="utf-8")
    return fragment


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


CATALOG_FRAGMENTS: dict[str, dict[str, Any]] = {
    "base": {
        "package.json": {
            "name": "{{ projectName | slugify }}",
            "version": "0.1.0",
            "private": True,
            "scripts": {"dev": "next dev", "build": "next build"},
            "dependencies": {"next": "14.0.0", "react": "18.2.0"},
            "devDependencies": {"typescript": "5.4.0"},
        },
        "tsconfig.json": {
            "compilerOptions": {"strict": True, "paths": {"@/*": ["./*"]}},
            "include": ["**/*.ts"],
        },
        ".env": "APP_NAME={{ projectName }}\nSHARED=base\n",
        "README.md": "# {{ projectName }}\n\nCopyright {{ currentYear }}\n",
        "app/page.tsx": "export default function Home() { return 'base'; }\n",
        "app/layout.tsx": "export default function Layout() { return 'base'; }\n",
    },
    "drizzle": {
        "package.json": {
            "name": "drizzle-fragment",
            "scripts": {"dev": "drizzle dev", "db:push": "drizzle-kit push"},
            "dependencies": {"drizzle-orm": "0.30.0", "postgres": "3.4.0"},
            "devDependencies": {"drizzle-kit": "0.21.0"},
        },
        ".env": "DATABASE_URL=postgres://localhost/app\nSHARED=drizzle\n",
        "drizzle/index.ts": "export const db = {};\n",
    },
    "prisma": {
        "package.json": {"dependencies": {"@prisma/client": "5.0.0"}},
        ".env": "DATABASE_URL=postgresql://localhost/prisma\n",
        "prisma/schema.prisma": "model User { id String @id }\n",
    },
    "nextauth": {
        "package.json": {"dependencies": {"next-auth": "5.0.0", "next": "14.2.0"}},
        ".env": "AUTH_SECRET=secret\nSHARED=nextauth\n",
        "app/api/auth/route.ts": "export const GET = () => null;\n",
    },
    "mailing": {
        "package.json": {"dependencies": {"nodemailer": "6.9.0"}},
        ".env": "SMTP_HOST=localhost\n",
        "lib/mail.ts": "export const sendMail = () => null;\n",
    },
    "shadcn": {
        "package.json": {"dependencies": {"clsx": "2.1.0"}},
        "tsconfig.json": {"compilerOptions": {"baseUrl": ".", "strict": False}},
        ".env": "SHADCN_ONLY=1\n",
        "app/layout.tsx": "export default function Layout() { return 'shadcn'; }\n",
        "lib/utils.ts": "export const cn = () => '';\n",
    },
    "chakra": {
        "package.json": {"dependencies": {"@chakra-ui/react": "2.8.0"}},
        "app/providers.tsx": "export const Providers = () => null;\n",
    },
}


# ---------------------------------------------------------------------------
# Catalog fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def template_root(tmp_path: Path) -> Path:
    """A synthetic template catalog (no supabase, no clerk, no mailing-resend)."""
    root = tmp_path / "templates"
    for name, files in CATALOG_FRAGMENTS.items():
        write_fragment(root, name, files)
    return root


@pytest.fixture
def catalog(template_root: Path) -> TemplateCatalog:
    return TemplateCatalog(template_root)


@pytest.fixture
def settings(template_root: Path, tmp_path: Path) -> Settings:
    return Settings(
        templates_dir=template_root,
        remote=RemoteConfig(repository="acme/stacks", cache_dir=tmp_path / "cache"),
    )


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    return out


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def demo_config() -> ProjectConfiguration:
    """base + drizzle + nextauth + shadcn, no mailing."""
    return ProjectConfiguration(
        name="demo",
        ui="shadcn",
        databaseType="postgresql",
        databaseProvider="neon",
        orm="drizzle",
        auth=True,
        mailing=False,
    )


@pytest.fixture
def minimal_config() -> ProjectConfiguration:
    return ProjectConfiguration(name="plain")


@pytest.fixture
def sample_stack_record() -> dict[str, Any]:
    """A ``.stackrc`` written by the current version."""
    return {
        "name": "demo",
        "ui": "shadcn",
        "databaseType": "postgresql",
        "databaseProvider": "neon",
        "orm": "drizzle",
        "baas": "none",
        "auth": True,
        "authProvider": "nextauth",
        "mailing": False,
        "installDeps": False,
        "createdAt": "2024-05-01T12:00:00+00:00",
        "features": {"orm": "drizzle", "auth": True, "authProvider": "nextauth"},
    }
