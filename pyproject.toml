[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zinx"
version = "1.0.0"
description = "A lightweight TCP server framework with message routing, worker pools, a leveled logger and hierarchical timing wheels."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "tcp",
    "server",
    "framework",
    "networking",
    "router",
    "worker-pool",
    "timing-wheel",
    "logging",
    "aoi",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
zinx-server = "zinx.demo:server_main"
zinx-client = "zinx.demo:client_main"

[tool.hatch.build.targets.wheel]
packages = ["zinx"]

[tool.hatch.build.targets.sdist]
include = ["zinx", "tests", "pyproject.toml"]

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
