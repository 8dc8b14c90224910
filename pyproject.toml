[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bento-indexer"
version = "0.1.0"
description = "Building blocks for a blockchain indexer: configuration, node client, parallel block fetching, metrics and API helpers"
requires-python = ">=3.11"
keywords = ["indexer", "blockchain", "alephium", "blocks", "events", "metrics", "prometheus"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "requests",
    "urllib3",
    "websockets",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["bento_indexer"]

[tool.hatch.build.targets.sdist]
include = ["bento_indexer", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
