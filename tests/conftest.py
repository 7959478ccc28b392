"""Shared test fixtures for ctxopt."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from ctxopt.embeddings.base import EmbeddingBackend


INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <title>Shop</title>
  <link rel="stylesheet" href="/src/styles.css" />
</head>
<body>
  <div id="root"></div>
  <script type="module" src="/src/main.tsx"></script>
</body>
</html>
"""

MAIN_TSX = """import React from 'react';
import ReactDOM from 'react-dom/client';
import App from './App';
import './styles.css';

ReactDOM.createRoot(document.getElementById('root')!).render(<App />);
"""

APP_TSX = """import React from 'react';
import Header from './components/Header';
import Footer from './components/Footer';
import { useCart } from './hooks/useCart';

export default function App() {
  const cart = useCart();
  return (
    <div className="app">
      <Header count={cart.items.length} />
      <main>Welcome to the shop</main>
      <Footer />
    </div>
  );
}
"""

HEADER_TSX = """import React from 'react';
import { formatPrice } from '@/utils/format';

export default function Header({ count }: { count: number }) {
  return (
    <header className="header">
      <h1>Shop</h1>
      <span className="cart-count">{count} items, {formatPrice(0)}</span>
    </header>
  );
}
"""

FOOTER_TSX = """import React from 'react';

export default function Footer() {
  return <footer className="footer">Contact us</footer>;
}
"""

USE_CART_TS = """import { useState } from 'react';

export function useCart() {
  const [items, setItems] = useState<string[]>([]);
  return { items, add: (item: string) => setItems([...items, item]) };
}
"""

FORMAT_TS = """export function formatPrice(value: number): string {
  return `$${value.toFixed(2)}`;
}
"""

STYLES_CSS = """.header {
  position: static;
  background: white;
}

.footer {
  color: gray;
}
"""

PACKAGE_JSON = """{
  "name": "shop",
  "dependencies": { "react": "^18.0.0" }
}
"""

NODE_MODULES_REACT = """// React header checkout cart
export function createElement() {}
"""


def _web_project() -> dict[str, str]:
    return {
        "index.html": INDEX_HTML,
        "package.json": PACKAGE_JSON,
        "src/main.tsx": MAIN_TSX,
        "src/App.tsx": APP_TSX,
        "src/components/Header.tsx": HEADER_TSX,
        "src/components/Footer.tsx": FOOTER_TSX,
        "src/hooks/useCart.ts": USE_CART_TS,
        "src/utils/format.ts": FORMAT_TS,
        "src/styles.css": STYLES_CSS,
    }


@pytest.fixture
def project_files() -> dict[str, str]:
    """In-memory snapshot of a small React shop."""
    return _web_project()


@pytest.fixture
def project_files_with_vendor() -> dict[str, str]:
    """Snapshot that also contains vendored and build output files."""
    files = _web_project()
    files["node_modules/react/index.js"] = NODE_MODULES_REACT
    files["dist/header.js"] = "// built header bundle\n"
    return files


@pytest.fixture
def tmp_web_project(tmp_path: Path) -> Path:
    """Write the sample project (plus a node_modules entry) to disk."""
    for rel_path, content in _web_project().items():
        full_path = tmp_path / rel_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content)

    vendor = tmp_path / "node_modules" / "react"
    vendor.mkdir(parents=True)
    (vendor / "index.js").write_text(NODE_MODULES_REACT)
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\r\n")
    return tmp_path


# ---------------------------------------------------------------------------
# Fake embedding backends
# ---------------------------------------------------------------------------


class CountingBackend(EmbeddingBackend):
    """Returns a constant unit vector and records every batch it receives."""

    name = "counting"

    def __init__(self, dimension: int = 4) -> None:
        super().__init__(model="counting")
        self.dimension = dimension
        self.calls: list[list[str]] = []

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [[1.0] + [0.0] * (self.dimension - 1) for _ in texts]


class FailingBackend(EmbeddingBackend):
    name = "failing"

    def __init__(self) -> None:
        super().__init__(model="failing")
        self.calls = 0

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls += 1
        raise RuntimeError("provider down")


class ShortBackend(EmbeddingBackend):
    """Returns a vector for the first text only."""

    name = "short"

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [[0.0, 1.0, 0.0, 0.0]]


class MalformedBackend(EmbeddingBackend):
    """Returns one valid vector followed by garbage."""

    name = "malformed"

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        garbage = [["x", "y"], [float("nan"), 1.0], [], None]
        return [[0.0, 0.0, 1.0, 0.0]] + garbage[: len(texts) - 1]


class SlowBackend(EmbeddingBackend):
    name = "slow"

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        await asyncio.sleep(5)
        return [[1.0] for _ in texts]


@pytest.fixture
def counting_backend() -> CountingBackend:
    return CountingBackend()


@pytest.fixture
def failing_backend() -> FailingBackend:
    return FailingBackend()


@pytest.fixture
def short_backend() -> ShortBackend:
    return ShortBackend()


@pytest.fixture
def malformed_backend() -> MalformedBackend:
    return MalformedBackend()


@pytest.fixture
def slow_backend() -> SlowBackend:
    return SlowBackend()
