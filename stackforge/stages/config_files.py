"""Static project configuration files.

These are not produced by a generator stage: the orchestrator appends them
to the tree after the last stage, so they bypass extraction. The root
``package.json`` is the only root artifact of a run.
"""

from __future__ import annotations

import json
from typing import Any

from stackforge.models import LogicalFile
from stackforge.stages._shared import BACKEND_PORT, FRONTEND_PORT
from stackforge.stages.templates import TemplateRenderer, default_renderer
from stackforge.utils import sanitize_name

SOURCE_STAGE = "config"


def _dump(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2) + "\n"


def root_package(slug: str) -> dict[str, Any]:
    return {
        "name": slug,
        "version": "1.0.0",
        "private": True,
        "workspaces": ["frontend", "backend"],
        "scripts": {
            "dev": 'concurrently "npm run dev --workspace=frontend" "npm run dev --workspace=backend"',
            "dev:frontend": "npm run dev --workspace=frontend",
            "dev:backend": "npm run dev --workspace=backend",
            "build": "npm run build --workspace=frontend && npm run build --workspace=backend",
            "start": "npm run start --workspace=backend",
            "test": "npm run test --workspaces",
        },
        "devDependencies": {"concurrently": "^8.2.2"},
    }


def frontend_package(slug: str) -> dict[str, Any]:
    return {
        "name": f"{slug}-frontend",
        "version": "1.0.0",
        "private": True,
        "type": "module",
        "scripts": {
            "dev": "vite",
            "build": "tsc && vite build",
            "preview": "vite preview",
            "test": "vitest run",
        },
        "dependencies": {
            "react": "^18.2.0",
            "react-dom": "^18.2.0",
            "react-router-dom": "^6.22.0",
        },
        "devDependencies": {
            "@testing-library/react": "^14.2.1",
            "@types/react": "^18.2.56",
            "@types/react-dom": "^18.2.19",
            "@vitejs/plugin-react": "^4.2.1",
            "autoprefixer": "^10.4.17",
            "jsdom": "^24.0.0",
            "postcss": "^8.4.32",
            "tailwindcss": "^3.4.1",
            "typescript": "^5.3.3",
            "vite": "^5.1.3",
            "vitest": "^1.3.1",
        },
    }


def backend_package(slug: str, has_database: bool) -> dict[str, Any]:
    dependencies: dict[str, str] = {
        "cors": "^2.8.5",
        "dotenv": "^16.4.1",
        "express": "^4.18.2",
        "zod": "^3.22.4",
    }
    dev_dependencies: dict[str, str] = {
        "@types/cors": "^2.8.17",
        "@types/express": "^4.17.21",
        "@types/node": "^20.11.19",
        "ts-node-dev": "^2.0.0",
        "typescript": "^5.3.3",
        "vitest": "^1.3.1",
    }
    if has_database:
        dependencies["@prisma/client"] = "^5.9.1"
        dev_dependencies["prisma"] = "^5.9.1"
    return {
        "name": f"{slug}-backend",
        "version": "1.0.0",
        "private": True,
        "scripts": {
            "dev": "ts-node-dev --respawn --transpile-only src/server.ts",
            "build": "tsc",
            "start": "node dist/server.js",
            "test": "vitest run",
        },
        "dependencies": dict(sorted(dependencies.items())),
        "devDependencies": dict(sorted(dev_dependencies.items())),
    }


FRONTEND_TSCONFIG: dict[str, Any] = {
    "compilerOptions": {
        "target": "ES2020",
        "useDefineForClassFields": True,
        "lib": ["ES2020", "DOM", "DOM.Iterable"],
        "module": "ESNext",
        "skipLibCheck": True,
        "moduleResolution": "bundler",
        "allowImportingTsExtensions": True,
        "resolveJsonModule": True,
        "isolatedModules": True,
        "noEmit": True,
        "jsx": "react-jsx",
        "strict": True,
        "noFallthroughCasesInSwitch": True,
    },
    "include": ["src"],
    "references": [{"path": "./tsconfig.node.json"}],
}

FRONTEND_TSCONFIG_NODE: dict[str, Any] = {
    "compilerOptions": {
        "composite": True,
        "skipLibCheck": True,
        "module": "ESNext",
        "moduleResolution": "bundler",
        "allowSyntheticDefaultImports": True,
    },
    "include": ["vite.config.ts"],
}

BACKEND_TSCONFIG: dict[str, Any] = {
    "compilerOptions": {
        "target": "ES2020",
        "module": "commonjs",
        "lib": ["ES2020"],
        "outDir": "./dist",
        "rootDir": "./src",
        "strict": True,
        "esModuleInterop": True,
        "skipLibCheck": True,
        "forceConsistentCasingInFileNames": True,
        "resolveJsonModule": True,
        "sourceMap": True,
    },
    "include": ["src"],
    "exclude": ["node_modules", "dist", "tests"],
}


def build_config_files(
    project_name: str,
    *,
    has_database: bool = True,
    renderer: TemplateRenderer | None = None,
) -> list[LogicalFile]:
    """Return every static configuration file for the project, in tree order."""
    renderer = renderer or default_renderer()
    slug = sanitize_name(project_name) or "project"
    ports = {"frontend_port": FRONTEND_PORT, "backend_port": BACKEND_PORT}

    def _file(directory: str, file_name: str, content: str, *, root: bool = False) -> LogicalFile:
        return LogicalFile(
            directory=directory,
            file_name=file_name,
            content=content,
            source_stage=SOURCE_STAGE,
            is_root_artifact=root,
        )

    return [
        _file("", "package.json", _dump(root_package(slug)), root=True),
        _file("frontend", "package.json", _dump(frontend_package(slug))),
        _file("frontend", "tsconfig.json", _dump(FRONTEND_TSCONFIG)),
        _file("frontend", "tsconfig.node.json", _dump(FRONTEND_TSCONFIG_NODE)),
        _file("frontend", "vite.config.ts", renderer.render("config/vite.config.ts.j2", ports)),
        _file("frontend", "tailwind.config.js", renderer.render("config/tailwind.config.js.j2", {})),
        _file("frontend", "postcss.config.js", renderer.render("config/postcss.config.js.j2", {})),
        _file("frontend", "index.html", renderer.render("config/index.html.j2", {
            "project_name": project_name,
        })),
        _file("backend", "package.json", _dump(backend_package(slug, has_database))),
        _file("backend", "tsconfig.json", _dump(BACKEND_TSCONFIG)),
    ]

