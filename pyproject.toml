[build-system]
requires = ["hatchling>=1.18"]
build-backend = "hatchling.build"

[project]
name = "bytemodel"
version = "0.1.0"
description = "Big-endian binary object model, a small UDP exchange server, HTTP parsing helpers and an append-only Merkle tree"
requires-python = ">=3.10"
keywords = [
    "serialization",
    "binary",
    "big-endian",
    "merkle",
    "sha256",
    "udp",
    "http",
    "query-string",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]
dependencies = [
    "multidict>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
bytemodel-server = "bytemodel.udpserver:main"

[tool.hatch.build.targets.wheel]
packages = ["bytemodel"]

[tool.hatch.build.targets.sdist]
include = [
    "bytemodel",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
