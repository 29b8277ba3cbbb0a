[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gatesrv"
version = "0.1.0"
description = "HTTP gate server for a chat service: registration and login backed by MySQL and Redis"
requires-python = ">=3.10"
keywords = ["chat", "gateway", "http", "login", "registration", "redis", "mysql", "connection-pool"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Database :: Front-Ends",
]
dependencies = [
    "pymysql",
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gatesrv = "gatesrv.server:main"

[tool.hatch.build.targets.wheel]
packages = ["gatesrv"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
