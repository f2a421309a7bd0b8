from pathlib import Path
from unittest.mock import MagicMock

import pytest

from intelligent_modifier.agents.executors.base import ExecutionContext
from intelligent_modifier.agents.structure_mapper import ProjectStructureMapper
from intelligent_modifier.agents.synthesis_client import SynthesisClient
from intelligent_modifier.cache.file_cache import ProjectFileCache
from intelligent_modifier.models.change_models import UsageStats
from intelligent_modifier.utils.workspace import ProjectWorkspace

APP_TSX = """import React from 'react';
import { BrowserRouter, Routes, Route } from 'react-router-dom';
import Header from './components/Header';
import Home from './pages/Home';
import Login from './pages/Login';

function App() {
  return (
    <BrowserRouter>
      <Header />
      <Routes>
        <Route path="/" element={<Home />} />
        <Route path="/login" element={<Login />} />
      </Routes>
    </BrowserRouter>
  );
}

export default App;
"""

HEADER_TSX = """import React from 'react';
import { Link } from 'react-router-dom';

const Header = () => {
  return (
    <header className="bg-white shadow">
      <nav className="flex items-center justify-between p-4">
        <Link to="/" className="text-xl font-bold">Acme</Link>
        <button className="bg-primary text-white px-4 py-2 rounded">Sign Up</button>
      </nav>
    </header>
  );
};

export default Header;
"""

HOME_TSX = """import React from 'react';
import { supabase } from '../lib/supabase';

export default function Home() {
  return (
    <main className="container mx-auto">
      <h1 className="text-4xl font-bold">Welcome to Acme</h1>
      <p>Sign Up today to get started.</p>
      <a href="/login" className="text-primary">SIGN UP</a>
    </main>
  );
}
"""

LOGIN_TSX = """import React from 'react';

export default function Login() {
  return (
    <form className="max-w-sm mx-auto">
      <input type="email" placeholder="Email" />
      <input type="password" placeholder="Password" />
    </form>
  );
}
"""

SUPABASE_TS = """import { createClient } from '@supabase/supabase-js';

export const supabase = createClient('https://example.supabase.co', 'anon-key');
"""

TAILWIND_CONFIG = """import type { Config } from 'tailwindcss';

const config: Config = {
  content: ['./index.html', './src/**/*.{ts,tsx}'],
  theme: {
    extend: {
      colors: {
        primary: '#2563eb',
      },
    },
  },
  plugins: [],
};

export default config;
"""

INDEX_CSS = """@tailwind base;
@tailwind components;
@tailwind utilities;

body {
  font-family: 'Inter', sans-serif;
  background-color: #ffffff;
}
"""

PACKAGE_JSON = """{
  "name": "acme-site",
  "private": true,
  "dependencies": {
    "react": "^18.2.0",
    "react-router-dom": "^6.22.0",
    "@supabase/supabase-js": "^2.39.0"
  }
}
"""

PROJECT_FILES = {
    "package.json": PACKAGE_JSON,
    "tailwind.config.ts": TAILWIND_CONFIG,
    "src/App.tsx": APP_TSX,
    "src/index.css": INDEX_CSS,
    "src/components/Header.tsx": HEADER_TSX,
    "src/pages/Home.tsx": HOME_TSX,
    "src/pages/Login.tsx": LOGIN_TSX,
    "src/lib/supabase.ts": SUPABASE_TS,
    "supabase/config.toml": 'project_id = "acme"\n',
    "supabase/migrations/001_init.sql": "create table profiles (id uuid primary key);\n",
    "supabase/seed.sql": "insert into profiles (id) values (gen_random_uuid());\n",
    "node_modules/react/index.js": "module.exports = {};\n",
}


def write_project(root: Path, files: dict[str, str]) -> Path:
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def react_project(tmp_path):
    """A small generated React + Tailwind + Supabase project on disk."""
    return write_project(tmp_path / "build", PROJECT_FILES)


@pytest.fixture
def file_cache():
    return ProjectFileCache()


@pytest.fixture
def hydrated_cache(react_project, file_cache):
    """File cache for session "s1" filled from a scan of react_project."""
    scan = ProjectStructureMapper(max_workers=1).scan(str(react_project))
    file_cache.bulk_replace("s1", scan.contents)
    return file_cache


@pytest.fixture
def make_context(react_project, hydrated_cache):
    """Factory for an ExecutionContext bound to react_project and session "s1"."""
    def factory(request: str, **overrides) -> ExecutionContext:
        values = {
            "session_id": "s1",
            "request": request,
            "workspace": ProjectWorkspace(react_project),
            "cache": hydrated_cache,
            "project_summary": "Project: 8 files",
        }
        values.update(overrides)
        return ExecutionContext(**values)

    return factory


@pytest.fixture
def mock_synthesis():
    """SynthesisClient stand-in; each test sets the return values it needs."""
    synthesis = MagicMock(spec=SynthesisClient)
    synthesis.usage = UsageStats()
    return synthesis
