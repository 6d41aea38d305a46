[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "spreadscan"
version = "0.1.0"
description = "Cross-exchange spot arbitrage spread scanner with a small HTTP query API"
requires-python = ">=3.10"
keywords = ["arbitrage", "spread", "crypto", "orderbook", "scanner", "market-data"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: aiohttp",
    "Framework :: AsyncIO",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "sortedcontainers>=2.4",
    "aiohttp>=3.9",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
    "aiohttp>=3.9",
]

[project.scripts]
spreadscan = "spreadscan.server:main"

[tool.hatch.build.targets.wheel]
packages = ["spreadscan"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
